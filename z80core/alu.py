"""Flag-exact Z80 arithmetic, logic and shift operations."""

from __future__ import annotations

import enum

from .registers import Flag, parity

_C = int(Flag.C)
_N = int(Flag.N)
_PV = int(Flag.PV)
_H = int(Flag.H)
_Z = int(Flag.Z)
_S = int(Flag.S)
_UNDEF = int(Flag.F3 | Flag.F5)


class AluOp(enum.IntEnum):
    """The eight accumulator operations, in opcode order."""

    ADD = 0
    ADC = 1
    SUB = 2
    SBC = 3
    AND = 4
    XOR = 5
    OR = 6
    CP = 7


class RotOp(enum.IntEnum):
    """The eight CB-prefixed rotate and shift operations, in opcode order."""

    RLC = 0
    RRC = 1
    RL = 2
    RR = 3
    SLA = 4
    SRA = 5
    SLL = 6
    SRL = 7


def _sign8(v: int) -> int:
    return _S if v & 0x80 else 0


def _sign16(v: int) -> int:
    return _S if v & 0x8000 else 0


def _zero(v: int) -> int:
    return _Z if v == 0 else 0


def _undef8(v: int) -> int:
    return v & _UNDEF


def _undef16(v: int) -> int:
    return (v >> 8) & _UNDEF


def _parity(v: int) -> int:
    return 0 if parity(v) else _PV


def _carry8(v: int) -> int:
    return _C if v & 0x100 else 0


def _carry16(v: int) -> int:
    return _C if v & 0x10000 else 0


def _half8_add(a: int, b: int, carry: int) -> int:
    return _H if ((a & 0xF) + (b & 0xF) + carry) & 0x10 else 0


def _half8_sub(a: int, b: int, carry: int) -> int:
    return _H if ((a & 0xF) - (b & 0xF) - carry) & 0x10 else 0


def _half16_add(a: int, b: int, carry: int) -> int:
    return _H if ((a & 0xFFF) + (b & 0xFFF) + carry) & 0x1000 else 0


def _half16_sub(a: int, b: int, carry: int) -> int:
    return _H if ((a & 0xFFF) - (b & 0xFFF) - carry) & 0x1000 else 0


def _overflow_add(a: int, b: int, result: int, sign: int) -> int:
    return _PV if (a & sign) == (b & sign) and (a & sign) != (result & sign) else 0


def _overflow_sub(a: int, b: int, result: int, sign: int) -> int:
    return _PV if (a & sign) != (b & sign) and (a & sign) != (result & sign) else 0


def _carry_in(flags: int) -> int:
    return 1 if flags & _C else 0


def alu8(op: AluOp, a: int, value: int, flags: int) -> tuple[int, int]:
    """Apply an accumulator operation; return the new A and F."""
    op = AluOp(op)
    a &= 0xFF
    value &= 0xFF
    carry = _carry_in(flags)

    if op is AluOp.ADD or op is AluOp.ADC:
        c = carry if op is AluOp.ADC else 0
        result = (a + value + c) & 0xFF
        f = (_sign8(result) | _zero(result) | _undef8(result)
             | _overflow_add(a, value, result, 0x80)
             | _carry8(a + value + c) | _half8_add(a, value, c))
        return result, f
    if op is AluOp.SUB or op is AluOp.SBC:
        c = carry if op is AluOp.SBC else 0
        result = (a - value - c) & 0xFF
        f = (_sign8(result) | _zero(result) | _undef8(result)
             | _overflow_sub(a, value, result, 0x80) | _N
             | _carry8(a - value - c) | _half8_sub(a, value, c))
        return result, f
    if op is AluOp.CP:
        diff = (a - value) & 0xFF
        f = (_sign8(diff) | _zero(diff) | _undef8(value) | _N
             | _carry8(a - value) | _overflow_sub(a, value, diff, 0x80)
             | _half8_sub(a, value, 0))
        return a, f

    if op is AluOp.AND:
        result = a & value
        extra = _H
    elif op is AluOp.XOR:
        result = a ^ value
        extra = 0
    else:
        result = a | value
        extra = 0
    f = _sign8(result) | _zero(result) | _undef8(result) | _parity(result) | extra
    return result, f


def daa(a: int, flags: int) -> tuple[int, int]:
    """Decimal-adjust the accumulator; return the new A and F."""
    a &= 0xFF
    adjust = 0
    if (a & 0xF) > 9 or flags & _H:
        adjust += 0x06
    if ((a + adjust) >> 4) > 9 or _carry8(a + adjust) or flags & _C:
        adjust += 0x60
    subtract = bool(flags & _N)
    if subtract:
        result = (a - adjust) & 0xFF
        half = _half8_sub(a, adjust, 0)
    else:
        result = (a + adjust) & 0xFF
        half = _half8_add(a, adjust, 0)
    f = (_sign8(result) | _zero(result) | _undef8(result) | _parity(result)
         | (_N if subtract else 0) | (_C if adjust >= 0x60 else 0) | half)
    return result, f


_ROTATIONS = {
    RotOp.RLC: (lambda v, b7, b0, c: (v << 1) | b7, True),
    RotOp.RRC: (lambda v, b7, b0, c: (v >> 1) | (b0 << 7), False),
    RotOp.RL: (lambda v, b7, b0, c: (v << 1) | c, True),
    RotOp.RR: (lambda v, b7, b0, c: (v >> 1) | (c << 7), False),
    RotOp.SLA: (lambda v, b7, b0, c: v << 1, True),
    RotOp.SRA: (lambda v, b7, b0, c: (v >> 1) | (b7 << 7), False),
    RotOp.SLL: (lambda v, b7, b0, c: (v << 1) | 1, True),
    RotOp.SRL: (lambda v, b7, b0, c: v >> 1, False),
}


def rotate(op: RotOp, value: int, flags: int) -> tuple[int, int]:
    """Apply a rotate or shift; return the new value and F."""
    value &= 0xFF
    bit7 = (value >> 7) & 1
    bit0 = value & 1
    compute, carry_from_top = _ROTATIONS[RotOp(op)]
    result = compute(value, bit7, bit0, _carry_in(flags)) & 0xFF
    carry_out = bit7 if carry_from_top else bit0
    f = ((_C if carry_out else 0) | _sign8(result) | _parity(result)
         | _undef8(result) | _zero(result))
    return result, f


def inc8(value: int, flags: int) -> tuple[int, int]:
    """Increment a byte; carry is preserved. Return the new value and F."""
    value &= 0xFF
    result = (value + 1) & 0xFF
    f = ((flags & _C) | _sign8(result) | _zero(result)
         | _half8_add(value, 0, 1) | (_PV if value == 0x7F else 0)
         | _undef8(result))
    return result, f


def dec8(value: int, flags: int) -> tuple[int, int]:
    """Decrement a byte; carry is preserved. Return the new value and F."""
    value &= 0xFF
    result = (value - 1) & 0xFF
    f = ((flags & _C) | _sign8(result) | _zero(result)
         | _half8_sub(value, 0, 1) | (_PV if value == 0x80 else 0)
         | _N | _undef8(result))
    return result, f


def add16(left: int, right: int, flags: int) -> tuple[int, int]:
    """16-bit ADD; S, Z and P/V are preserved. Return the sum and F."""
    left &= 0xFFFF
    right &= 0xFFFF
    result = (left + right) & 0xFFFF
    f = ((flags & (_S | _Z | _PV)) | _undef16(result)
         | _carry16(left + right) | _half16_add(left, right, 0))
    return result, f


def adc16(left: int, right: int, flags: int) -> tuple[int, int]:
    """16-bit add with carry; return the sum and F."""
    left &= 0xFFFF
    right &= 0xFFFF
    carry = _carry_in(flags)
    result = (left + right + carry) & 0xFFFF
    f = (_sign16(result) | _zero(result) | _undef16(result)
         | _overflow_add(left, right, result, 0x8000)
         | _carry16(left + right + carry) | _half16_add(left, right, carry))
    return result, f


def sbc16(left: int, right: int, flags: int) -> tuple[int, int]:
    """16-bit subtract with carry; return the difference and F."""
    left &= 0xFFFF
    right &= 0xFFFF
    carry = _carry_in(flags)
    result = (left - right - carry) & 0xFFFF
    f = (_sign16(result) | _zero(result) | _undef16(result)
         | _overflow_sub(left, right, result, 0x8000) | _N
         | _carry16(left - right - carry) | _half16_sub(left, right, carry))
    return result, f