"""chip8-vm: CHIP-8 Virtual Machine.

This package implements an interpreter for the CHIP-8 8-bit fantasy CPU:
4 KiB of memory, sixteen 8-bit registers, a 12-entry call stack, a delay
timer, a 64x32 monochrome framebuffer and a 16-key hex keypad.

Architecture:
    MEMORY -> FETCH -> DECODE -> INSTRUCTION -> REGISTRY -> EXECUTE -> STATE
               |         |          |             |           |
             [PC+2]  [bit masks] [Op, fields] [primitives] [MachineState]

Modules:
    state: MachineState container, font and memory layout constants
    decode: Opcode -> Instruction decoder
    registry: Execution primitives keyed by Op
    cpu: Interpreter orchestrator (step, run, timers, input, run state)
    config: Quirks (variant semantics) and EmulatorConfig (pacing)
    errors: Exception hierarchy
    display: Text rendering and keyboard mapping for hosts
"""

__version__ = "0.1.0"

from .config import EmulatorConfig, Quirks
from .cpu import ExecutionTraceEntry, Interpreter
from .decode import DecodedFields, Instruction, Op, decode, decode_fields
from .errors import (
    Chip8Error,
    ImageTooLarge,
    MachineFault,
    MachineNotRunning,
    MemoryAccessOutOfBounds,
    StackOverflow,
    StackUnderflow,
)
from .registry import InstructionRegistry, get_registry
from .state import MachineState, RunState, create_initial_state

__all__ = [
    "Chip8Error",
    "DecodedFields",
    "EmulatorConfig",
    "ExecutionTraceEntry",
    "ImageTooLarge",
    "Instruction",
    "InstructionRegistry",
    "Interpreter",
    "MachineFault",
    "MachineNotRunning",
    "MachineState",
    "MemoryAccessOutOfBounds",
    "Op",
    "Quirks",
    "RunState",
    "StackOverflow",
    "StackUnderflow",
    "create_initial_state",
    "decode",
    "decode_fields",
    "get_registry",
]
