"""Exception hierarchy for the CHIP-8 virtual machine.

ImageTooLarge is raised before a session starts and is recoverable.
MachineFault subclasses are fatal for the running session: the interpreter
halts the machine and re-raises so the host can decide what to do next.
"""

from typing import Optional


class Chip8Error(Exception):
    """Base class for all errors raised by chip8_vm."""


class ImageTooLarge(Chip8Error):
    """Program image does not fit in memory above the program start."""

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"Program image too large: {size} bytes (max {max_size})"
        )


class MachineNotRunning(Chip8Error):
    """step() was called while the machine is paused or halted."""


class MachineFault(Chip8Error):
    """Fatal condition raised while executing an instruction.

    Attributes:
        pc: Address of the faulting instruction, when known
    """

    def __init__(self, message: str, pc: Optional[int] = None):
        self.pc = pc
        super().__init__(message)


class StackOverflow(MachineFault):
    """CALL with the call stack already at capacity."""


class StackUnderflow(MachineFault):
    """RET with an empty call stack."""


class MemoryAccessOutOfBounds(MachineFault):
    """Memory access past the end of the 4096-byte address space."""

    def __init__(self, address: int, count: int = 1, pc: Optional[int] = None):
        self.address = address
        self.count = count
        super().__init__(
            f"Memory access out of bounds: {count} byte(s) at 0x{address:04X}",
            pc=pc,
        )
