"""Tests for the opcode decoder."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm.decode import DecodedFields, Instruction, Op, decode, decode_fields


class TestDecodeFields:
    """Test operand field extraction."""

    def test_all_fields(self):
        """Every field is cut from the same opcode."""
        fields = decode_fields(0xD4A7)
        assert fields == DecodedFields(
            opcode=0xD4A7, nnn=0x4A7, nn=0xA7, n=0x7, x=0x4, y=0xA
        )

    def test_fields_computed_for_any_opcode(self):
        """Fields are derived even when the opcode is not an instruction."""
        fields = decode_fields(0xFFFF)
        assert fields.nnn == 0xFFF
        assert fields.x == 0xF and fields.y == 0xF

    def test_masks_to_16_bits(self):
        assert decode_fields(0x1_2345).opcode == 0x2345


class TestDecodeFamilies:
    """Test opcode -> Op mapping for every instruction."""

    @pytest.mark.parametrize("opcode,op", [
        (0x00E0, Op.CLS),
        (0x00EE, Op.RET),
        (0x1ABC, Op.JP),
        (0x2ABC, Op.CALL),
        (0x3A12, Op.SE_IMM),
        (0x4A12, Op.SNE_IMM),
        (0x5AB0, Op.SE_REG),
        (0x6A12, Op.LD_IMM),
        (0x7A12, Op.ADD_IMM),
        (0x8AB0, Op.LD_REG),
        (0x8AB1, Op.OR),
        (0x8AB2, Op.AND),
        (0x8AB3, Op.XOR),
        (0x8AB4, Op.ADD_REG),
        (0x8AB5, Op.SUB),
        (0x8AB6, Op.SHR),
        (0x8AB7, Op.SUBN),
        (0x8ABE, Op.SHL),
        (0x9AB0, Op.SNE_REG),
        (0xAABC, Op.LD_I),
        (0xBABC, Op.JP_V0),
        (0xCA12, Op.RND),
        (0xDAB5, Op.DRW),
        (0xEA9E, Op.SKP),
        (0xEAA1, Op.SKNP),
        (0xFA07, Op.LD_VX_DT),
        (0xFA0A, Op.LD_KEY),
        (0xFA15, Op.LD_DT_VX),
        (0xFA1E, Op.ADD_I),
        (0xFA29, Op.LD_FONT),
        (0xFA33, Op.BCD),
        (0xFA55, Op.STORE),
        (0xFA65, Op.LOAD),
    ])
    def test_opcode_maps_to_op(self, opcode, op):
        instruction = decode(opcode)
        assert instruction.op is op
        assert instruction.valid is True
        assert instruction.fields.opcode == opcode

    @pytest.mark.parametrize("opcode,op", [
        (0x01E0, Op.CLS),
        (0x0FEE, Op.RET),
        (0x9AB7, Op.SNE_REG),
        (0x901F, Op.SNE_REG),
    ])
    def test_nibbles_ignored(self, opcode, op):
        """System ops ignore X; 9XYn ignores n."""
        assert decode(opcode).op is op

    def test_every_op_reachable(self):
        """Every Op, UNKNOWN included, is produced by some opcode."""
        seen = {decode(opcode).op for opcode in range(0x10000)}
        assert seen == set(Op)


class TestDecodeUnknown:
    """Test opcodes outside the instruction set."""

    @pytest.mark.parametrize("opcode", [
        0x0000,  # machine code routine call, not supported
        0x0123,
        0x01E1,  # 0x0?NN other than E0 and EE
        0x5AB1,  # 5XY? with nonzero low nibble
        0x8AB8,
        0x8ABF,
        0xEA00,
        0xF000,
        0xFAFF,
    ])
    def test_unknown(self, opcode):
        instruction = decode(opcode)
        assert instruction.op is Op.UNKNOWN
        assert instruction.valid is False

    def test_unknown_keeps_fields(self):
        """Unknown instructions still carry their operand fields."""
        instruction = decode(0x8AB8)
        assert instruction.fields.x == 0xA
        assert instruction.fields.y == 0xB


class TestInstructionDataclass:
    """Test Instruction structure."""

    def test_str(self):
        assert str(decode(0x00E0)) == "00E0 OP_CLS"

    def test_frozen(self):
        instruction = decode(0x1234)
        with pytest.raises(AttributeError):
            instruction.op = Op.CLS

    def test_equality(self):
        assert decode(0x6A12) == Instruction(Op.LD_IMM, decode_fields(0x6A12))
