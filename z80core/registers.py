"""The Z80 register file, flag bits and a printable state dump."""

from __future__ import annotations

import enum


class Flag(enum.IntFlag):
    """Bits of the F register."""

    C = 0x01
    N = 0x02
    PV = 0x04
    F3 = 0x08
    H = 0x10
    F5 = 0x20
    Z = 0x40
    S = 0x80


class _Register:
    """A register stored as an integer masked to its width."""

    def __init__(self, mask: int) -> None:
        self.mask = mask
        self.slot = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.slot = "_" + name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return obj.__dict__.get(self.slot, 0)

    def __set__(self, obj, value: int) -> None:
        obj.__dict__[self.slot] = int(value) & self.mask


class _Half:
    """One byte of a 16-bit register pair."""

    def __init__(self, pair: str, high: bool) -> None:
        self.pair = pair
        self.high = high

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        word = getattr(obj, self.pair)
        return word >> 8 if self.high else word & 0xFF

    def __set__(self, obj, value: int) -> None:
        word = getattr(obj, self.pair)
        value = int(value) & 0xFF
        if self.high:
            word = (word & 0x00FF) | (value << 8)
        else:
            word = (word & 0xFF00) | value
        setattr(obj, self.pair, word)


_WORD = 0xFFFF
_BYTE = 0xFF


class Registers:
    """The complete register set of a Z80, including the shadow bank."""

    af = _Register(_WORD)
    bc = _Register(_WORD)
    de = _Register(_WORD)
    hl = _Register(_WORD)
    af_alt = _Register(_WORD)
    bc_alt = _Register(_WORD)
    de_alt = _Register(_WORD)
    hl_alt = _Register(_WORD)
    ix = _Register(_WORD)
    iy = _Register(_WORD)
    sp = _Register(_WORD)
    pc = _Register(_WORD)
    wz = _Register(_WORD)
    i = _Register(_BYTE)
    r = _Register(_BYTE)

    a = _Half("af", True)
    f = _Half("af", False)
    b = _Half("bc", True)
    c = _Half("bc", False)
    d = _Half("de", True)
    e = _Half("de", False)
    h = _Half("hl", True)
    l = _Half("hl", False)  # noqa: E741
    ixh = _Half("ix", True)
    ixl = _Half("ix", False)
    iyh = _Half("iy", True)
    iyl = _Half("iy", False)

    _STORED = (
        "af", "bc", "de", "hl", "af_alt", "bc_alt", "de_alt", "hl_alt",
        "ix", "iy", "sp", "pc", "wz", "i", "r",
    )
    _NAMES = _STORED + (
        "a", "f", "b", "c", "d", "e", "h", "l", "ixh", "ixl", "iyh", "iyl",
    )

    def __init__(self, **values: int) -> None:
        for name in self._STORED:
            setattr(self, name, 0)
        for name, value in values.items():
            if name not in self._NAMES:
                raise TypeError(f"unknown register {name!r}")
            setattr(self, name, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Registers):
            return NotImplemented
        return all(getattr(self, n) == getattr(other, n) for n in self._STORED)

    def __repr__(self) -> str:
        fields = ", ".join(f"{n}=0x{getattr(self, n):X}" for n in self._STORED)
        return f"Registers({fields})"

    def ex_af(self) -> None:
        """Swap AF with its shadow AF'."""
        self.af, self.af_alt = self.af_alt, self.af

    def ex_de_hl(self) -> None:
        """Swap DE and HL."""
        self.de, self.hl = self.hl, self.de

    def exx(self) -> None:
        """Swap BC, DE and HL with their shadows."""
        self.bc, self.bc_alt = self.bc_alt, self.bc
        self.de, self.de_alt = self.de_alt, self.de
        self.hl, self.hl_alt = self.hl_alt, self.hl

    def test(self, flag: Flag) -> bool:
        """Return whether the given flag bit is set in F."""
        return bool(self.f & flag)

    def assign(self, flag: Flag, value: bool) -> None:
        """Set or clear the given flag bit in F."""
        if value:
            self.f = self.f | flag
        else:
            self.f = self.f & ~int(flag)


def parity(value: int) -> int:
    """Return 1 if ``value`` has an odd number of set bits in its low byte, else 0."""
    value &= 0xFF
    value ^= value >> 4
    value ^= value >> 2
    value ^= value >> 1
    return value & 1


_FLAG_LABELS = (
    (Flag.S, "S"),
    (Flag.Z, "Z"),
    (Flag.H, "H"),
    (Flag.F3, "5"),
    (Flag.PV, "P/V"),
    (Flag.F5, "3"),
    (Flag.N, "N"),
    (Flag.C, "C"),
)


def format_state(registers: Registers) -> str:
    """Render the register file as a four-line human-readable dump."""
    r = registers
    flags = "".join(f"{label} " for flag, label in _FLAG_LABELS if r.test(flag))
    if r.f == 0:
        flags += "None set"
    lines = [
        f"   AF: 0x{r.af:04X}   BC: 0x{r.bc:04X}   DE: 0x{r.de:04X}  HL: 0x{r.hl:04X}",
        f"  'AF: 0x{r.af_alt:04X}  'BC: 0x{r.bc_alt:04X}  'DE: 0x{r.de_alt:04X} 'HL: 0x{r.hl_alt:04X}",
        f"   PC: 0x{r.pc:04X}   SP: 0x{r.sp:04X}   IX: 0x{r.ix:04X}  IY: 0x{r.iy:04X}",
        f"Flags: {flags}",
    ]
    return "\n".join(lines) + "\n"