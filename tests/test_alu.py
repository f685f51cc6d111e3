import pytest

from z80core.alu import (
    AluOp,
    RotOp,
    adc16,
    add16,
    alu8,
    daa,
    dec8,
    inc8,
    rotate,
    sbc16,
)
from z80core.registers import Flag


def has(f, flag):
    return bool(f & flag)


@pytest.mark.parametrize(
    "a, b, expected, zero, carry",
    [
        (0x10, 0x20, 0x30, False, False),
        (0xF0, 0x20, 0x10, False, True),
        (0xF0, 0x10, 0x00, True, True),
    ],
)
def test_add(a, b, expected, zero, carry):
    result, f = alu8(AluOp.ADD, a, b, 0)
    assert result == expected
    assert has(f, Flag.Z) is zero
    assert has(f, Flag.C) is carry


def test_adc_without_and_with_carry():
    result, f = alu8(AluOp.ADC, 0x10, 0x20, 0)
    assert result == 0x30
    assert not has(f, Flag.Z)
    assert not has(f, Flag.C)
    result, f = alu8(AluOp.ADC, 0x10, 0x20, Flag.C)
    assert result == 0x31
    assert not has(f, Flag.C)


def test_sub():
    result, f = alu8(AluOp.SUB, 0x20, 0x10, 0)
    assert result == 0x10
    assert not has(f, Flag.C)
    assert has(f, Flag.N)
    result, f = alu8(AluOp.SUB, 0x10, 0x20, 0)
    assert result == 0xF0
    assert has(f, Flag.C)
    assert not has(f, Flag.Z)


def test_sbc():
    result, f = alu8(AluOp.SBC, 0x20, 0x10, 0)
    assert result == 0x10
    assert not has(f, Flag.C)
    result, f = alu8(AluOp.SBC, 0x10, 0x20, Flag.C)
    assert result == 0xEF
    assert has(f, Flag.C)
    assert not has(f, Flag.Z)


def test_logic_ops():
    result, f = alu8(AluOp.AND, 0xFF, 0x0F, 0)
    assert result == 0x0F
    assert has(f, Flag.H)
    assert not has(f, Flag.Z)
    result, f = alu8(AluOp.XOR, 0xFF, 0x0F, 0)
    assert result == 0xF0
    assert not has(f, Flag.Z)
    result, f = alu8(AluOp.OR, 0x00, 0x0F, Flag.C)
    assert result == 0x0F
    assert not has(f, Flag.C)
    assert has(f, Flag.PV)


def test_xor_self_is_zero():
    result, f = alu8(AluOp.XOR, 0x5A, 0x5A, 0)
    assert result == 0
    assert has(f, Flag.Z)
    assert has(f, Flag.PV)


def test_cp():
    result, f = alu8(AluOp.CP, 0x00, 0x10, 0)
    assert result == 0
    assert has(f, Flag.S)
    assert has(f, Flag.C)
    assert not has(f, Flag.PV)
    assert has(f, Flag.N)
    assert not has(f, Flag.Z)


def test_add_immediate():
    assert alu8(AluOp.ADD, 0x10, 0x20, 0)[0] == 0x30


def test_add_overflow():
    result, f = alu8(AluOp.ADD, 0x7F, 0x01, 0)
    assert result == 0x80
    assert has(f, Flag.PV)
    assert has(f, Flag.H)
    assert has(f, Flag.S)


def test_daa_after_add():
    a, f = alu8(AluOp.ADD, 0x15, 0x27, 0)
    result, _ = daa(a, f)
    assert result == 0x42


@pytest.mark.parametrize(
    "op, value, carry_in, expected, carry_out",
    [
        (RotOp.RLC, 0x80, False, 0x01, True),
        (RotOp.RRC, 0x01, False, 0x80, True),
        (RotOp.RL, 0x80, True, 0x01, True),
        (RotOp.RR, 0x01, False, 0x00, True),
        (RotOp.SLA, 0x80, False, 0x00, True),
        (RotOp.SRA, 0x01, False, 0x00, True),
        (RotOp.SLL, 0x01, False, 0x03, False),
        (RotOp.SRL, 0x01, False, 0x00, True),
    ],
)
def test_rotate(op, value, carry_in, expected, carry_out):
    result, f = rotate(op, value, Flag.C if carry_in else 0)
    assert result == expected
    assert has(f, Flag.C) is carry_out


def test_sra_keeps_sign():
    result, f = rotate(RotOp.SRA, 0x81, 0)
    assert result == 0xC0
    assert has(f, Flag.C)
    assert has(f, Flag.S)


def test_inc8():
    result, f = inc8(0xFF, 0)
    assert result == 0
    assert has(f, Flag.Z)
    assert not has(f, Flag.C)
    result, f = inc8(0x7F, Flag.C)
    assert result == 0x80
    assert has(f, Flag.PV)
    assert has(f, Flag.C)


def test_dec8():
    result, f = dec8(1, 0)
    assert result == 0
    assert has(f, Flag.Z)
    assert has(f, Flag.N)
    assert not has(f, Flag.C)
    result, f = dec8(0x80, 0)
    assert result == 0x7F
    assert has(f, Flag.PV)


def test_add16():
    result, f = add16(0x1000, 0x0234, 0)
    assert result == 0x1234
    assert not has(f, Flag.Z)
    assert not has(f, Flag.C)
    assert not has(f, Flag.H)
    result, f = add16(0xF000, 0x1000, 0)
    assert result == 0
    assert not has(f, Flag.Z)
    assert has(f, Flag.C)


def test_add16_preserves_zero():
    result, f = add16(1, 1, Flag.Z)
    assert result == 2
    assert (f & Flag.Z) == Flag.Z
    assert (f & Flag.C) == 0


def test_adc16():
    result, f = adc16(0xFF00, 0x1000, 0)
    assert result == 0x0F00
    assert not has(f, Flag.Z)
    assert not has(f, Flag.H)
    assert not has(f, Flag.PV)
    assert has(f, Flag.C)
    result, f = adc16(0x4000, 0x0100, 0)
    assert result == 0x4100
    assert not has(f, Flag.C)
    result, f = adc16(0xF000, 0x2000, Flag.C)
    assert result == 0x1001
    assert has(f, Flag.C)
    assert not has(f, Flag.Z)


def test_sbc16():
    result, f = sbc16(0x4000, 0x0100, 0)
    assert result == 0x3F00
    assert not has(f, Flag.Z)
    assert not has(f, Flag.C)
    result, f = sbc16(0x1000, 0x2000, Flag.C)
    assert result == 0xEFFF
    assert has(f, Flag.C)
    assert has(f, Flag.N)


def test_invalid_op_rejected():
    with pytest.raises(ValueError):
        alu8(9, 1, 1, 0)