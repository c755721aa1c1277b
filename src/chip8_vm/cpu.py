"""Interpreter: host-facing orchestrator for the CHIP-8 virtual machine.

This module implements the execution pipeline:
    MEMORY -> FETCH -> DECODE -> INSTRUCTION -> REGISTRY -> EXECUTE -> STATE

The Interpreter owns one MachineState for one emulation session together
with the session's Quirks and random source. The host drives it one cycle
at a time (step) or one timer frame at a time (run_frame), writes the key
latch between cycles and reads the framebuffer for presentation.
"""

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from .config import EmulatorConfig, Quirks
from .decode import Instruction, decode
from .errors import MachineFault, MachineNotRunning
from .registry import InstructionRegistry, get_registry
from .state import MachineState, NUM_KEYS, RunState, create_initial_state

logger = logging.getLogger(__name__)


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Attributes:
        cycle: Cycle number (0-indexed)
        pc: Address the instruction was fetched from
        instruction: Decoded instruction, None if the fetch itself faulted
        pre_state: State snapshot before execution
        post_state: State snapshot after execution
        error: Error message if execution faulted
    """
    cycle: int
    pc: int
    instruction: Optional[Instruction]
    pre_state: dict
    post_state: dict
    error: Optional[str] = None


class Interpreter:
    """CHIP-8 interpreter session.

    Attributes:
        quirks: Variant semantics for this session
        config: Host pacing configuration
        registry: InstructionRegistry with all primitives
        state: Current machine state
        rng: Random source used by CXNN
        trace: Execution trace entries (only filled when tracing is enabled)
        cycle_count: Number of executed cycles
        on_unknown_opcode: Optional callback receiving unrecognized instructions
    """

    def __init__(
        self,
        quirks: Optional[Quirks] = None,
        config: Optional[EmulatorConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        trace: bool = False,
        on_unknown_opcode: Optional[Callable[[Instruction], None]] = None,
    ):
        """Initialize the interpreter with an empty program.

        Args:
            quirks: Variant semantics (defaults to Quirks())
            config: Host pacing (defaults to EmulatorConfig())
            seed: Seed for a private random source; ignored when rng is given
            rng: Random source for CXNN
            trace: Record an ExecutionTraceEntry for every cycle
            on_unknown_opcode: Called with each unrecognized instruction
        """
        self.quirks = quirks if quirks is not None else Quirks()
        self.config = config if config is not None else EmulatorConfig()
        self.registry: InstructionRegistry = get_registry()
        self.rng = rng if rng is not None else random.Random(seed)
        self.tracing = trace
        self.trace: List[ExecutionTraceEntry] = []
        self.on_unknown_opcode = on_unknown_opcode
        self.cycle_count = 0
        self.state: MachineState = create_initial_state()

    # =========================================================================
    # Loading
    # =========================================================================

    def load_rom(self, image: bytes) -> None:
        """Start a new session with the given program image.

        Args:
            image: Program bytes, loaded at 0x200

        Raises:
            ImageTooLarge: If the image does not fit in memory
        """
        self.state = create_initial_state(bytes(image))
        self.trace = []
        self.cycle_count = 0
        logger.info("Loaded program (%d bytes)", len(image))

    def load_rom_file(self, path: Union[str, Path]) -> None:
        """Load a program image from a file.

        Raises:
            FileNotFoundError: If the file does not exist
            ImageTooLarge: If the image does not fit in memory
        """
        self.load_rom(Path(path).read_bytes())

    # =========================================================================
    # Execution
    # =========================================================================

    def fetch(self) -> int:
        """Read the big-endian opcode at pc and advance pc by 2.

        Raises:
            MemoryAccessOutOfBounds: If pc + 1 is past the end of memory
        """
        state = self.state
        high, low = state.read(state.pc, 2)
        state.pc = (state.pc + 2) & 0xFFFF
        return (high << 8) | low

    def step(self) -> Instruction:
        """Execute a single instruction cycle.

        Performs: FETCH -> DECODE -> EXECUTE

        Returns:
            The instruction that was executed

        Raises:
            MachineNotRunning: If the machine is paused or halted
            MachineFault: On stack overflow/underflow or an out-of-bounds
                memory access; the machine is halted before re-raising
        """
        state = self.state
        if state.run_state is not RunState.RUNNING:
            raise MachineNotRunning(f"Machine is {state.run_state.value}")

        pc = state.pc
        pre_state = state.snapshot() if self.tracing else {}
        instruction: Optional[Instruction] = None

        try:
            instruction = decode(self.fetch())
            logger.debug("%03X: %s", pc, instruction)
            if not instruction.valid:
                self._report_unknown(pc, instruction)
            self.registry.execute(state, instruction, self.quirks, self.rng)
        except MachineFault as e:
            if e.pc is None:
                e.pc = pc
            logger.error("Fault at %03X: %s", pc, e)
            state.run_state = RunState.HALTED
            self._record(pc, instruction, pre_state, error=str(e))
            raise

        self._record(pc, instruction, pre_state)
        self.cycle_count += 1
        return instruction

    def run(self, cycles: Optional[int] = None) -> int:
        """Run until the machine stops running or a cycle budget is spent.

        Args:
            cycles: Number of cycles to run; falls back to config.max_cycles.
                When both are None this only returns once the machine is
                paused, halted or faults, so a spin loop never ends.

        Returns:
            Number of cycles executed

        Raises:
            MachineFault: Propagated from step()
        """
        limit = cycles if cycles is not None else self.config.max_cycles
        executed = 0
        while self.state.run_state is RunState.RUNNING:
            if limit is not None and executed >= limit:
                break
            self.step()
            executed += 1
        return executed

    def run_frame(self) -> int:
        """Run one timer frame: cycles_per_frame cycles, then one timer tick.

        Nothing happens while the machine is paused or halted.

        Returns:
            Number of cycles executed
        """
        if self.state.run_state is not RunState.RUNNING:
            return 0
        executed = self.run(self.config.cycles_per_frame)
        self.tick_timers()
        return executed

    def tick_timers(self) -> None:
        """Decrement the delay timer by one tick (host calls this at 60 Hz)."""
        self.state.tick_timers()

    def _report_unknown(self, pc: int, instruction: Instruction) -> None:
        logger.warning("Unrecognized opcode %04X at %03X", instruction.fields.opcode, pc)
        if self.on_unknown_opcode is not None:
            self.on_unknown_opcode(instruction)

    def _record(
        self,
        pc: int,
        instruction: Optional[Instruction],
        pre_state: dict,
        error: Optional[str] = None,
    ) -> None:
        if not self.tracing:
            return
        self.trace.append(ExecutionTraceEntry(
            cycle=self.cycle_count,
            pc=pc,
            instruction=instruction,
            pre_state=pre_state,
            post_state=self.state.snapshot(),
            error=error,
        ))

    # =========================================================================
    # Run state (host-driven)
    # =========================================================================

    def pause(self) -> None:
        """RUNNING -> PAUSED. No effect in other states."""
        if self.state.run_state is RunState.RUNNING:
            self.state.run_state = RunState.PAUSED
            logger.info("Paused at %03X", self.state.pc)

    def resume(self) -> None:
        """PAUSED -> RUNNING. No effect in other states."""
        if self.state.run_state is RunState.PAUSED:
            self.state.run_state = RunState.RUNNING
            logger.info("Resumed at %03X", self.state.pc)

    def toggle_pause(self) -> None:
        if self.state.run_state is RunState.RUNNING:
            self.pause()
        else:
            self.resume()

    def halt(self) -> None:
        """Any state -> HALTED. HALTED is terminal for the session."""
        if self.state.run_state is not RunState.HALTED:
            self.state.run_state = RunState.HALTED
            logger.info("Halted at %03X", self.state.pc)

    # =========================================================================
    # Input latch (host-driven)
    # =========================================================================

    def press_key(self, key: int) -> None:
        self._check_key(key)
        self.state.keys[key] = True

    def release_key(self, key: int) -> None:
        self._check_key(key)
        self.state.keys[key] = False

    def set_keys(self, pressed: Iterable[int]) -> None:
        """Replace the whole latch: keys in pressed are down, all others up."""
        down = set(pressed)
        for key in down:
            self._check_key(key)
        self.state.keys[:] = [key in down for key in range(NUM_KEYS)]

    def _check_key(self, key: int) -> None:
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Invalid key: {key}")

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_register(self, reg: int) -> int:
        """Get value of register V0-VF by index."""
        return self.state.registers[reg]

    def dump_registers(self) -> Dict[str, int]:
        return self.state.dump_registers()

    def get_pc(self) -> int:
        return self.state.pc

    def is_running(self) -> bool:
        return self.state.run_state is RunState.RUNNING

    def is_halted(self) -> bool:
        return self.state.run_state is RunState.HALTED

    def is_waiting_for_key(self) -> bool:
        """True while an FX0A instruction is blocking on input."""
        return self.state.awaiting_key

    def print_trace(self) -> None:
        """Print execution trace in human-readable format."""
        print("=" * 70)
        print("CHIP-8 EXECUTION TRACE")
        print("=" * 70)

        for entry in self.trace:
            status = "OK" if not entry.error else f"ERROR: {entry.error}"
            print(f"\n[Cycle {entry.cycle}] {status}")
            print(f"  PC: {entry.pc:03X}")
            if entry.instruction is not None:
                print(f"  Instruction: {entry.instruction}")

            pre_regs = entry.pre_state.get("registers", [])
            post_regs = entry.post_state.get("registers", [])
            changes = [
                f"V{i:X}: {a:02X} -> {b:02X}"
                for i, (a, b) in enumerate(zip(pre_regs, post_regs))
                if a != b
            ]
            if changes:
                print(f"  Changes: {', '.join(changes)}")

            if entry.pre_state.get("index") != entry.post_state.get("index"):
                print(f"  I: {entry.pre_state['index']:03X} -> {entry.post_state['index']:03X}")

        print("\n" + "=" * 70)
        print("FINAL STATE")
        print("=" * 70)
        print(f"  {self.state}")
        print(f"  Cycles: {self.cycle_count}")

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "cycles": self.cycle_count,
            "run_state": self.state.run_state.value,
            "registers": self.dump_registers(),
            "index": self.state.index,
            "pc": self.state.pc,
            "stack_depth": len(self.state.stack),
            "delay_timer": self.state.delay_timer,
            "awaiting_key": self.state.awaiting_key,
            "trace_length": len(self.trace),
            "errors": [e.error for e in self.trace if e.error],
        }
