"""Session configuration for the CHIP-8 interpreter.

Quirks:
    Historical variant semantics. Different CHIP-8 implementations disagree on
    a handful of opcodes; each disagreement is one explicit flag here. The
    defaults reproduce the original COSMAC VIP CHIP-8 behaviour.

        legacy_shift_source (default True):
            8XY6/8XYE shift VY into VX. False shifts VX in place.
        legacy_bitwise_clears_flag (default True):
            8XY1/8XY2/8XY3 reset VF to 0. False leaves VF untouched.
        legacy_index_increment_on_bulk_transfer (default True):
            FX55/FX65 leave I advanced by X + 1. False leaves I unchanged.

EmulatorConfig:
    Host pacing: how many instructions run per timer tick.
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_MAX_CYCLES = 10000


@dataclass(frozen=True)
class Quirks:
    """Variant semantics threaded into every execute call."""
    legacy_shift_source: bool = True
    legacy_bitwise_clears_flag: bool = True
    legacy_index_increment_on_bulk_transfer: bool = True

    @classmethod
    def chip8(cls) -> "Quirks":
        """Original CHIP-8 behaviour (same as the defaults)."""
        return cls(
            legacy_shift_source=True,
            legacy_bitwise_clears_flag=True,
            legacy_index_increment_on_bulk_transfer=True,
        )

    @classmethod
    def superchip(cls) -> "Quirks":
        """SUPER-CHIP behaviour: in-place shifts, VF kept, I not advanced."""
        return cls(
            legacy_shift_source=False,
            legacy_bitwise_clears_flag=False,
            legacy_index_increment_on_bulk_transfer=False,
        )


QUIRK_PRESETS = {
    "chip8": Quirks.chip8,
    "superchip": Quirks.superchip,
}


@dataclass(frozen=True)
class EmulatorConfig:
    """Host-side pacing.

    Attributes:
        clock_rate: Instructions executed per second of emulated time
        timer_hz: Delay timer tick rate
        max_cycles: Safety limit for run() when no cycle count is given;
            None means unlimited
    """
    clock_rate: int = 750
    timer_hz: int = 60
    max_cycles: Optional[int] = DEFAULT_MAX_CYCLES

    def __post_init__(self):
        if self.clock_rate <= 0:
            raise ValueError(f"clock_rate must be positive, got {self.clock_rate}")
        if self.timer_hz <= 0:
            raise ValueError(f"timer_hz must be positive, got {self.timer_hz}")

    @property
    def cycles_per_frame(self) -> int:
        """Instructions executed between two timer ticks."""
        return max(1, self.clock_rate // self.timer_hz)
