"""Instruction decoder for the CHIP-8 virtual machine.

Decoding is split in two pure steps:

    opcode -> DecodedFields (fixed bit masks, always computed)
    opcode -> Instruction(op, fields)

The second step is total: every 16-bit word decodes to some Op, with
Op.UNKNOWN standing for anything outside the instruction set. The
registry then executes the Instruction without re-inspecting the opcode.

Field layout (nibbles 0xABCD):
    nnn = 0x0BCD  12-bit address literal
    nn  = 0x00CD  8-bit immediate
    n   = 0x000D  4-bit immediate
    x   = B       first register operand
    y   = C       second register operand
"""

from dataclasses import dataclass
from enum import Enum


class Op(Enum):
    """Every operation the engine can execute."""
    CLS = "OP_CLS"
    RET = "OP_RET"
    JP = "OP_JP"
    CALL = "OP_CALL"
    SE_IMM = "OP_SE_IMM"
    SNE_IMM = "OP_SNE_IMM"
    SE_REG = "OP_SE_REG"
    LD_IMM = "OP_LD_IMM"
    ADD_IMM = "OP_ADD_IMM"
    LD_REG = "OP_LD_REG"
    OR = "OP_OR"
    AND = "OP_AND"
    XOR = "OP_XOR"
    ADD_REG = "OP_ADD_REG"
    SUB = "OP_SUB"
    SHR = "OP_SHR"
    SUBN = "OP_SUBN"
    SHL = "OP_SHL"
    SNE_REG = "OP_SNE_REG"
    LD_I = "OP_LD_I"
    JP_V0 = "OP_JP_V0"
    RND = "OP_RND"
    DRW = "OP_DRW"
    SKP = "OP_SKP"
    SKNP = "OP_SKNP"
    LD_VX_DT = "OP_LD_VX_DT"
    LD_KEY = "OP_LD_KEY"
    LD_DT_VX = "OP_LD_DT_VX"
    ADD_I = "OP_ADD_I"
    LD_FONT = "OP_LD_FONT"
    BCD = "OP_BCD"
    STORE = "OP_STORE"
    LOAD = "OP_LOAD"
    UNKNOWN = "OP_UNKNOWN"


@dataclass(frozen=True)
class DecodedFields:
    """Operand fields derived from one opcode.

    Attributes:
        opcode: Raw 16-bit instruction word
        nnn: 12-bit address literal
        nn: 8-bit immediate
        n: 4-bit immediate
        x: First register index
        y: Second register index
    """
    opcode: int
    nnn: int
    nn: int
    n: int
    x: int
    y: int


@dataclass(frozen=True)
class Instruction:
    """Result of decoding one opcode: an operation kind and its operands."""
    op: Op
    fields: DecodedFields

    @property
    def valid(self) -> bool:
        return self.op is not Op.UNKNOWN

    def __str__(self) -> str:
        return f"{self.fields.opcode:04X} {self.op.value}"


# High nibble -> Op for families selected by the high nibble alone
_FAMILY = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_IMM,
    0x4: Op.SNE_IMM,
    0x6: Op.LD_IMM,
    0x7: Op.ADD_IMM,
    0x9: Op.SNE_REG,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
    0xC: Op.RND,
    0xD: Op.DRW,
}

# 0x0?NN, selected by the low byte; the X nibble is ignored
_SYSTEM = {
    0xE0: Op.CLS,
    0xEE: Op.RET,
}

# 0x8XYN, selected by the low nibble
_ALU = {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# 0xEXNN, selected by the low byte
_KEYS = {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
}

# 0xFXNN, selected by the low byte
_MISC = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_KEY,
    0x15: Op.LD_DT_VX,
    0x1E: Op.ADD_I,
    0x29: Op.LD_FONT,
    0x33: Op.BCD,
    0x55: Op.STORE,
    0x65: Op.LOAD,
}


def decode_fields(opcode: int) -> DecodedFields:
    """Split an opcode into its operand fields.

    Args:
        opcode: 16-bit instruction word

    Returns:
        DecodedFields for the opcode
    """
    opcode &= 0xFFFF
    return DecodedFields(
        opcode=opcode,
        nnn=opcode & 0x0FFF,
        nn=opcode & 0x00FF,
        n=opcode & 0x000F,
        x=(opcode >> 8) & 0x0F,
        y=(opcode >> 4) & 0x0F,
    )


def decode(opcode: int) -> Instruction:
    """Decode an opcode into an Instruction.

    Args:
        opcode: 16-bit instruction word

    Returns:
        Instruction; op is Op.UNKNOWN for words outside the instruction set
    """
    fields = decode_fields(opcode)
    family = (fields.opcode >> 12) & 0x0F

    if family in _FAMILY:
        op = _FAMILY[family]
    elif family == 0x0:
        op = _SYSTEM.get(fields.nn, Op.UNKNOWN)
    elif family == 0x5:
        # 9XYn accepts any low nibble; 5XYn requires zero
        op = Op.SE_REG if fields.n == 0 else Op.UNKNOWN
    elif family == 0x8:
        op = _ALU.get(fields.n, Op.UNKNOWN)
    elif family == 0xE:
        op = _KEYS.get(fields.nn, Op.UNKNOWN)
    else:
        op = _MISC.get(fields.nn, Op.UNKNOWN)

    return Instruction(op, fields)
