"""InstructionRegistry: execution primitives for the CHIP-8 virtual machine.

Each Op produced by the decoder maps to exactly one primitive. A primitive
mutates the MachineState in place and returns nothing:

    primitive(state, fields, quirks, rng) -> None

The program counter has already been advanced past the instruction when a
primitive runs, so control-flow primitives overwrite it and skip primitives
add 2 to it.

The registry is frozen after initialization and refuses to freeze unless
every Op has a primitive, so dispatch is exhaustive by construction.
"""

import logging
import random
from typing import Callable, Dict, Optional, Set

from .config import Quirks
from .decode import DecodedFields, Instruction, Op
from .state import (
    FLAG_REGISTER,
    GLYPH_SIZE,
    FONT_ADDRESS,
    SCREEN_HEIGHT,
    SCREEN_WIDTH,
    MachineState,
)

logger = logging.getLogger(__name__)

Primitive = Callable[[MachineState, DecodedFields, Quirks, random.Random], None]


class InstructionRegistry:
    """Verified registry of instruction primitives.

    Attributes:
        _primitives: Dictionary mapping Op to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        """Initialize registry with all instruction primitives."""
        self._primitives: Dict[Op, Primitive] = {}
        self._frozen = False
        self._register_all_primitives()
        self.freeze()

    def _register_all_primitives(self) -> None:
        """Register all instruction primitives."""
        # Flow control
        self.register(Op.CLS, self._op_cls)
        self.register(Op.RET, self._op_ret)
        self.register(Op.JP, self._op_jp)
        self.register(Op.CALL, self._op_call)
        self.register(Op.JP_V0, self._op_jp_v0)

        # Conditional skips
        self.register(Op.SE_IMM, self._op_se_imm)
        self.register(Op.SNE_IMM, self._op_sne_imm)
        self.register(Op.SE_REG, self._op_se_reg)
        self.register(Op.SNE_REG, self._op_sne_reg)
        self.register(Op.SKP, self._op_skp)
        self.register(Op.SKNP, self._op_sknp)

        # Register loads and arithmetic
        self.register(Op.LD_IMM, self._op_ld_imm)
        self.register(Op.ADD_IMM, self._op_add_imm)
        self.register(Op.LD_REG, self._op_ld_reg)
        self.register(Op.OR, self._op_or)
        self.register(Op.AND, self._op_and)
        self.register(Op.XOR, self._op_xor)
        self.register(Op.ADD_REG, self._op_add_reg)
        self.register(Op.SUB, self._op_sub)
        self.register(Op.SHR, self._op_shr)
        self.register(Op.SUBN, self._op_subn)
        self.register(Op.SHL, self._op_shl)
        self.register(Op.RND, self._op_rnd)

        # Index register and memory
        self.register(Op.LD_I, self._op_ld_i)
        self.register(Op.ADD_I, self._op_add_i)
        self.register(Op.LD_FONT, self._op_ld_font)
        self.register(Op.BCD, self._op_bcd)
        self.register(Op.STORE, self._op_store)
        self.register(Op.LOAD, self._op_load)

        # Display, timers, input
        self.register(Op.DRW, self._op_drw)
        self.register(Op.LD_VX_DT, self._op_ld_vx_dt)
        self.register(Op.LD_DT_VX, self._op_ld_dt_vx)
        self.register(Op.LD_KEY, self._op_ld_key)

        # Special
        self.register(Op.UNKNOWN, self._op_unknown)

    def register(self, op: Op, handler: Primitive) -> None:
        """Register a primitive operation.

        Args:
            op: Operation kind
            handler: Function taking (state, fields, quirks, rng)

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If op already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register primitives: registry is frozen")
        if op in self._primitives:
            raise ValueError(f"Primitive already registered: {op.value}")
        self._primitives[op] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications.

        Raises:
            RuntimeError: If some Op has no primitive
        """
        missing = set(Op) - set(self._primitives)
        if missing:
            names = ", ".join(sorted(op.value for op in missing))
            raise RuntimeError(f"No primitive registered for: {names}")
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if registry is frozen."""
        return self._frozen

    def get_valid_keys(self) -> Set[Op]:
        """Get set of all registered operation kinds."""
        return set(self._primitives.keys())

    def execute(
        self,
        state: MachineState,
        instruction: Instruction,
        quirks: Quirks,
        rng: random.Random,
    ) -> None:
        """Execute a decoded instruction against the state.

        Args:
            state: Machine state, mutated in place
            instruction: Decoded instruction
            quirks: Variant semantics for this session
            rng: Random source for RND
        """
        handler = self._primitives[instruction.op]
        handler(state, instruction.fields, quirks, rng)

    # =========================================================================
    # Flow Control Primitives
    # =========================================================================

    def _op_cls(self, state, f, quirks, rng) -> None:
        """00E0 - Clear the framebuffer."""
        state.clear_screen()

    def _op_ret(self, state, f, quirks, rng) -> None:
        """00EE - Return from subroutine.

        Raises:
            StackUnderflow: If the call stack is empty
        """
        state.pc = state.pop()
        logger.debug("RET to %03X (depth %d)", state.pc, len(state.stack))

    def _op_jp(self, state, f, quirks, rng) -> None:
        """1NNN - Jump to NNN."""
        state.pc = f.nnn

    def _op_call(self, state, f, quirks, rng) -> None:
        """2NNN - Call subroutine at NNN.

        Raises:
            StackOverflow: If the call stack is full
        """
        state.push(state.pc)
        state.pc = f.nnn
        logger.debug("CALL %03X (depth %d)", f.nnn, len(state.stack))

    def _op_jp_v0(self, state, f, quirks, rng) -> None:
        """BNNN - Jump to V0 + NNN, masked to the 12-bit address space."""
        state.pc = (state.registers[0] + f.nnn) & 0x0FFF

    # =========================================================================
    # Skip Primitives
    # =========================================================================

    def _skip_if(self, state: MachineState, condition: bool) -> None:
        if condition:
            state.pc = (state.pc + 2) & 0xFFFF

    def _op_se_imm(self, state, f, quirks, rng) -> None:
        """3XNN - Skip next instruction if VX == NN."""
        self._skip_if(state, state.registers[f.x] == f.nn)

    def _op_sne_imm(self, state, f, quirks, rng) -> None:
        """4XNN - Skip next instruction if VX != NN."""
        self._skip_if(state, state.registers[f.x] != f.nn)

    def _op_se_reg(self, state, f, quirks, rng) -> None:
        """5XY0 - Skip next instruction if VX == VY."""
        self._skip_if(state, state.registers[f.x] == state.registers[f.y])

    def _op_sne_reg(self, state, f, quirks, rng) -> None:
        """9XYn - Skip next instruction if VX != VY (n is ignored)."""
        self._skip_if(state, state.registers[f.x] != state.registers[f.y])

    def _op_skp(self, state, f, quirks, rng) -> None:
        """EX9E - Skip next instruction if key VX is pressed."""
        self._skip_if(state, state.keys[state.registers[f.x] & 0x0F])

    def _op_sknp(self, state, f, quirks, rng) -> None:
        """EXA1 - Skip next instruction if key VX is not pressed."""
        self._skip_if(state, not state.keys[state.registers[f.x] & 0x0F])

    # =========================================================================
    # Register Primitives
    # =========================================================================

    def _op_ld_imm(self, state, f, quirks, rng) -> None:
        """6XNN - VX = NN."""
        state.registers[f.x] = f.nn

    def _op_add_imm(self, state, f, quirks, rng) -> None:
        """7XNN - VX += NN, wrapping; VF unaffected."""
        state.registers[f.x] = (state.registers[f.x] + f.nn) & 0xFF

    def _op_ld_reg(self, state, f, quirks, rng) -> None:
        """8XY0 - VX = VY."""
        state.registers[f.x] = state.registers[f.y]

    def _bitwise(self, state, f, quirks, value: int) -> None:
        state.registers[f.x] = value
        if quirks.legacy_bitwise_clears_flag:
            state.set_flag(0)

    def _op_or(self, state, f, quirks, rng) -> None:
        """8XY1 - VX |= VY."""
        self._bitwise(state, f, quirks, state.registers[f.x] | state.registers[f.y])

    def _op_and(self, state, f, quirks, rng) -> None:
        """8XY2 - VX &= VY."""
        self._bitwise(state, f, quirks, state.registers[f.x] & state.registers[f.y])

    def _op_xor(self, state, f, quirks, rng) -> None:
        """8XY3 - VX ^= VY."""
        self._bitwise(state, f, quirks, state.registers[f.x] ^ state.registers[f.y])

    def _op_add_reg(self, state, f, quirks, rng) -> None:
        """8XY4 - VX += VY; VF = 1 on carry out of bit 7, else 0."""
        total = state.registers[f.x] + state.registers[f.y]
        state.registers[f.x] = total & 0xFF
        state.set_flag(1 if total > 0xFF else 0)

    def _op_sub(self, state, f, quirks, rng) -> None:
        """8XY5 - VX -= VY; VF = 1 when no borrow (VX >= VY), else 0."""
        vx, vy = state.registers[f.x], state.registers[f.y]
        state.registers[f.x] = (vx - vy) & 0xFF
        state.set_flag(1 if vx >= vy else 0)

    def _op_subn(self, state, f, quirks, rng) -> None:
        """8XY7 - VX = VY - VX; VF = 1 when no borrow (VY >= VX), else 0."""
        vx, vy = state.registers[f.x], state.registers[f.y]
        state.registers[f.x] = (vy - vx) & 0xFF
        state.set_flag(1 if vy >= vx else 0)

    def _shift_source(self, state, f, quirks) -> int:
        if quirks.legacy_shift_source:
            return state.registers[f.y]
        return state.registers[f.x]

    def _op_shr(self, state, f, quirks, rng) -> None:
        """8XY6 - VX = source >> 1; VF = bit shifted out."""
        source = self._shift_source(state, f, quirks)
        state.registers[f.x] = source >> 1
        state.set_flag(source & 0x01)

    def _op_shl(self, state, f, quirks, rng) -> None:
        """8XYE - VX = source << 1, wrapping; VF = bit shifted out."""
        source = self._shift_source(state, f, quirks)
        state.registers[f.x] = (source << 1) & 0xFF
        state.set_flag((source >> 7) & 0x01)

    def _op_rnd(self, state, f, quirks, rng) -> None:
        """CXNN - VX = random byte AND NN."""
        state.registers[f.x] = rng.randrange(256) & f.nn

    # =========================================================================
    # Index Register and Memory Primitives
    # =========================================================================

    def _op_ld_i(self, state, f, quirks, rng) -> None:
        """ANNN - I = NNN."""
        state.index = f.nnn

    def _op_add_i(self, state, f, quirks, rng) -> None:
        """FX1E - I += VX."""
        state.index = (state.index + state.registers[f.x]) & 0xFFFF

    def _op_ld_font(self, state, f, quirks, rng) -> None:
        """FX29 - I = address of the glyph for digit VX."""
        state.index = FONT_ADDRESS + GLYPH_SIZE * state.registers[f.x]

    def _op_bcd(self, state, f, quirks, rng) -> None:
        """FX33 - Store hundreds, tens and ones of VX at I, I+1, I+2.

        Raises:
            MemoryAccessOutOfBounds: If I + 2 is past the end of memory
        """
        value = state.registers[f.x]
        state.write(state.index, bytes([value // 100, (value // 10) % 10, value % 10]))

    def _op_store(self, state, f, quirks, rng) -> None:
        """FX55 - Store V0..VX in memory starting at I.

        Raises:
            MemoryAccessOutOfBounds: If the block runs past the end of memory
        """
        count = f.x + 1
        state.write(state.index, bytes(state.registers[:count]))
        if quirks.legacy_index_increment_on_bulk_transfer:
            state.index = (state.index + count) & 0xFFFF

    def _op_load(self, state, f, quirks, rng) -> None:
        """FX65 - Load V0..VX from memory starting at I.

        Raises:
            MemoryAccessOutOfBounds: If the block runs past the end of memory
        """
        count = f.x + 1
        state.registers[:count] = list(state.read(state.index, count))
        if quirks.legacy_index_increment_on_bulk_transfer:
            state.index = (state.index + count) & 0xFFFF

    # =========================================================================
    # Display, Timer and Input Primitives
    # =========================================================================

    def _op_drw(self, state, f, quirks, rng) -> None:
        """DXYN - XOR an N-row sprite from I onto the screen at (VX, VY).

        The start position wraps around the screen; the sprite itself clips
        at the right and bottom edges. VF = 1 if any lit cell was turned off.

        Raises:
            MemoryAccessOutOfBounds: If I + N is past the end of memory
        """
        sprite = state.read(state.index, f.n)
        x0 = state.registers[f.x] % SCREEN_WIDTH
        y0 = state.registers[f.y] % SCREEN_HEIGHT
        collision = 0

        for row, bits in enumerate(sprite):
            y = y0 + row
            if y >= SCREEN_HEIGHT:
                break
            for col in range(8):
                x = x0 + col
                if x >= SCREEN_WIDTH:
                    break
                if bits & (0x80 >> col):
                    cell = y * SCREEN_WIDTH + x
                    if state.framebuffer[cell]:
                        collision = 1
                    state.framebuffer[cell] ^= 1

        state.set_flag(collision)

    def _op_ld_vx_dt(self, state, f, quirks, rng) -> None:
        """FX07 - VX = delay timer."""
        state.registers[f.x] = state.delay_timer

    def _op_ld_dt_vx(self, state, f, quirks, rng) -> None:
        """FX15 - Delay timer = VX."""
        state.delay_timer = state.registers[f.x]

    def _op_ld_key(self, state, f, quirks, rng) -> None:
        """FX0A - Wait for a key to be pressed and released, then VX = key.

        Each invocation that does not complete rewinds the program counter
        so the same instruction runs again on the next cycle. The first
        pressed key (lowest index) becomes the candidate; completion happens
        on the cycle that observes the candidate released.

        A new wait always starts without a candidate.
        """
        if not state.awaiting_key:
            state.awaiting_key = True
            state.pending_key = None
            logger.debug("Waiting for key into V%X", f.x)

        if state.pending_key is None:
            for key, down in enumerate(state.keys):
                if down:
                    state.pending_key = key
                    break
            state.pc = (state.pc - 2) & 0xFFFF
            return

        if state.keys[state.pending_key]:
            state.pc = (state.pc - 2) & 0xFFFF
            return

        state.registers[f.x] = state.pending_key
        logger.debug("Key %X released, stored in V%X", state.pending_key, f.x)
        state.pending_key = None
        state.awaiting_key = False

    # =========================================================================
    # Special Primitives
    # =========================================================================

    def _op_unknown(self, state, f, quirks, rng) -> None:
        """Unrecognized opcode - no operation."""


# Singleton registry instance
_registry: Optional[InstructionRegistry] = None


def get_registry() -> InstructionRegistry:
    """Get the singleton instruction registry instance.

    Returns:
        The frozen InstructionRegistry instance
    """
    global _registry
    if _registry is None:
        _registry = InstructionRegistry()
    return _registry
