"""MachineState: mutable state container for the CHIP-8 virtual machine.

State Components:
    - Memory: 4096 bytes; font at 0x000-0x04F, program image from 0x200
    - Registers: V0-VF (16 x 8-bit), VF doubles as the flag register
    - Index: 16-bit index register I
    - PC: Program counter, starts at 0x200
    - Stack: Return addresses, at most 12 deep
    - Delay timer: 8-bit, decremented by the host at 60 Hz
    - Framebuffer: 64x32 monochrome cells, row-major
    - Keys: 16-slot input latch written by the host
    - Run state: RUNNING, PAUSED or HALTED
    - Await-key bookkeeping for FX0A

The container enforces structural invariants (stack depth, memory bounds)
but carries no instruction semantics; those live in the registry.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .errors import (
    ImageTooLarge,
    MemoryAccessOutOfBounds,
    StackOverflow,
    StackUnderflow,
)

logger = logging.getLogger(__name__)


MEMORY_SIZE = 4096
PROGRAM_START = 0x200
MAX_IMAGE_SIZE = MEMORY_SIZE - PROGRAM_START
NUM_REGISTERS = 16
FLAG_REGISTER = 0xF
STACK_CAPACITY = 12
NUM_KEYS = 16
SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32

FONT_ADDRESS = 0x000
GLYPH_SIZE = 5
FONT = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


class RunState(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    HALTED = "halted"


@dataclass
class MachineState:
    """Mutable CHIP-8 machine state.

    Attributes:
        memory: 4096-byte address space
        registers: V0-VF, each 0-255
        index: Index register I (16-bit)
        pc: Program counter
        stack: Return addresses, most recent last
        delay_timer: Delay timer, 0-255
        framebuffer: 64*32 cells (0 or 1), row-major
        keys: Input latch, one bool per key 0x0-0xF
        run_state: Host-controlled run state
        awaiting_key: An FX0A instruction is in progress
        pending_key: Key pressed during FX0A, waiting for its release
    """
    memory: bytearray = field(default_factory=lambda: bytearray(MEMORY_SIZE))
    registers: List[int] = field(default_factory=lambda: [0] * NUM_REGISTERS)
    index: int = 0
    pc: int = PROGRAM_START
    stack: List[int] = field(default_factory=list)
    delay_timer: int = 0
    framebuffer: bytearray = field(
        default_factory=lambda: bytearray(SCREEN_WIDTH * SCREEN_HEIGHT)
    )
    keys: List[bool] = field(default_factory=lambda: [False] * NUM_KEYS)
    run_state: RunState = RunState.RUNNING
    awaiting_key: bool = False
    pending_key: Optional[int] = None

    # =========================================================================
    # Memory
    # =========================================================================

    def read(self, address: int, count: int = 1) -> bytes:
        """Read count bytes starting at address.

        Raises:
            MemoryAccessOutOfBounds: If any byte lies outside memory
        """
        self._check_bounds(address, count)
        return bytes(self.memory[address:address + count])

    def write(self, address: int, data: bytes) -> None:
        """Write data starting at address.

        Raises:
            MemoryAccessOutOfBounds: If any byte lies outside memory
        """
        self._check_bounds(address, len(data))
        self.memory[address:address + len(data)] = data

    def _check_bounds(self, address: int, count: int) -> None:
        if address < 0 or address + count > MEMORY_SIZE:
            raise MemoryAccessOutOfBounds(address, count)

    # =========================================================================
    # Call stack
    # =========================================================================

    def push(self, address: int) -> None:
        """Push a return address.

        Raises:
            StackOverflow: If the stack already holds STACK_CAPACITY entries
        """
        if len(self.stack) >= STACK_CAPACITY:
            raise StackOverflow(f"Call stack overflow (capacity {STACK_CAPACITY})")
        self.stack.append(address)

    def pop(self) -> int:
        """Pop the most recent return address.

        Raises:
            StackUnderflow: If the stack is empty
        """
        if not self.stack:
            raise StackUnderflow("Return with empty call stack")
        return self.stack.pop()

    # =========================================================================
    # Framebuffer, timers, registers
    # =========================================================================

    def clear_screen(self) -> None:
        self.framebuffer[:] = bytes(len(self.framebuffer))

    def pixel(self, x: int, y: int) -> bool:
        """Return True if the cell at (x, y) is on."""
        return bool(self.framebuffer[y * SCREEN_WIDTH + x])

    def rows(self) -> List[List[bool]]:
        """Framebuffer as SCREEN_HEIGHT rows of SCREEN_WIDTH booleans."""
        return [
            [bool(c) for c in self.framebuffer[y * SCREEN_WIDTH:(y + 1) * SCREEN_WIDTH]]
            for y in range(SCREEN_HEIGHT)
        ]

    def tick_timers(self) -> None:
        """Decrement the delay timer by one tick, stopping at zero."""
        if self.delay_timer > 0:
            self.delay_timer -= 1

    def set_flag(self, value: int) -> None:
        self.registers[FLAG_REGISTER] = value

    def dump_registers(self) -> Dict[str, int]:
        """Get a copy of all register values keyed V0-VF."""
        return {f"V{i:X}": v for i, v in enumerate(self.registers)}

    # =========================================================================
    # Tracing and validation
    # =========================================================================

    def snapshot(self) -> dict:
        """Copy of the CPU-visible state for tracing.

        Memory and framebuffer are excluded to keep trace entries small.
        """
        return {
            "registers": list(self.registers),
            "index": self.index,
            "pc": self.pc,
            "stack": list(self.stack),
            "delay_timer": self.delay_timer,
            "run_state": self.run_state.value,
        }

    def validate(self) -> bool:
        """Check structural invariants.

        Returns:
            True if state is valid, False otherwise
        """
        if len(self.memory) != MEMORY_SIZE:
            return False
        if self.memory[FONT_ADDRESS:FONT_ADDRESS + len(FONT)] != FONT:
            return False
        if len(self.registers) != NUM_REGISTERS:
            return False
        if any(not 0 <= v <= 0xFF for v in self.registers):
            return False
        if not 0 <= self.index <= 0xFFFF or not 0 <= self.pc <= 0xFFFF:
            return False
        if len(self.stack) > STACK_CAPACITY:
            return False
        if not 0 <= self.delay_timer <= 0xFF:
            return False
        if len(self.framebuffer) != SCREEN_WIDTH * SCREEN_HEIGHT:
            return False
        if len(self.keys) != NUM_KEYS:
            return False
        if self.pending_key is not None and not 0 <= self.pending_key < NUM_KEYS:
            return False
        if self.pending_key is not None and not self.awaiting_key:
            return False
        return True

    def __str__(self) -> str:
        """Human-readable state representation."""
        regs = " ".join(f"V{i:X}={v:02X}" for i, v in enumerate(self.registers))
        return (
            f"PC={self.pc:03X} I={self.index:03X} "
            f"DT={self.delay_timer} SP={len(self.stack)} {regs} "
            f"{self.run_state.value.upper()}"
        )


def create_initial_state(image: bytes = b"") -> MachineState:
    """Create a fresh machine with the font and a program image loaded.

    Args:
        image: Program bytes, copied verbatim to PROGRAM_START

    Returns:
        New MachineState in RUNNING state with pc at PROGRAM_START

    Raises:
        ImageTooLarge: If the image exceeds MAX_IMAGE_SIZE bytes
    """
    if len(image) > MAX_IMAGE_SIZE:
        raise ImageTooLarge(len(image), MAX_IMAGE_SIZE)

    state = MachineState()
    state.memory[FONT_ADDRESS:FONT_ADDRESS + len(FONT)] = FONT
    state.memory[PROGRAM_START:PROGRAM_START + len(image)] = image
    logger.debug("Loaded %d byte image at 0x%03X", len(image), PROGRAM_START)
    return state
