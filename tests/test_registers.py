import pytest

from z80core.registers import Flag, Registers, format_state, parity


def test_exx_swaps_pairs():
    regs = Registers(
        bc=0x1111, bc_alt=0x2222, de=0x3333, de_alt=0x4444, hl=0x5555, hl_alt=0x6666
    )
    regs.exx()
    assert regs.bc == 0x2222
    assert regs.bc_alt == 0x1111
    assert regs.de == 0x4444
    assert regs.de_alt == 0x3333
    assert regs.hl == 0x6666
    assert regs.hl_alt == 0x5555


def test_ex_de_hl():
    regs = Registers(hl=0xDEAD, de=0xBEEF)
    regs.ex_de_hl()
    assert regs.hl == 0xBEEF
    assert regs.de == 0xDEAD


def test_ex_af_twice_restores():
    regs = Registers(af=0x1234, af_alt=0xABCD)
    regs.ex_af()
    assert (regs.af, regs.af_alt) == (0xABCD, 0x1234)
    regs.ex_af()
    assert (regs.af, regs.af_alt) == (0x1234, 0xABCD)


def test_halves_share_pair():
    regs = Registers()
    regs.h = 0x12
    regs.l = 0x34
    assert regs.hl == 0x1234
    regs.ix = 0xBEEF
    assert regs.ixh == 0xBE
    assert regs.ixl == 0xEF
    regs.iyh = 0x20
    assert regs.iy == 0x2000


def test_values_are_masked():
    regs = Registers()
    regs.a = 0x1FF
    assert regs.a == 0xFF
    regs.pc = 0x10000
    assert regs.pc == 0
    regs.sp = -2
    assert regs.sp == 0xFFFE
    regs.r = 0x180
    assert regs.r == 0x80


def test_unknown_register_rejected():
    with pytest.raises(TypeError):
        Registers(q=1)


def test_flag_test_and_assign():
    regs = Registers()
    regs.assign(Flag.C, True)
    regs.assign(Flag.Z, True)
    assert regs.f == 0x41
    assert regs.test(Flag.C) is True
    regs.assign(Flag.C, False)
    assert regs.test(Flag.C) is False
    assert regs.f == 0x40


def test_equality():
    assert Registers(bc=5) == Registers(b=0, c=5)
    assert not Registers(bc=5) == Registers(bc=6)


@pytest.mark.parametrize(
    "value, expected",
    [(0, 0), (1, 1), (3, 0), (0x80, 1), (0xFF, 0), (0x07, 1)],
)
def test_parity(value, expected):
    assert parity(value) == expected


def test_format_state_empty():
    assert format_state(Registers()) == (
        "   AF: 0x0000   BC: 0x0000   DE: 0x0000  HL: 0x0000\n"
        "  'AF: 0x0000  'BC: 0x0000  'DE: 0x0000 'HL: 0x0000\n"
        "   PC: 0x0000   SP: 0x0000   IX: 0x0000  IY: 0x0000\n"
        "Flags: None set\n"
    )


def test_format_state_values_and_flags():
    regs = Registers(af=0x12C1, bc=0xABCD, pc=0x4000, sp=0xFFFE, hl_alt=0x0042)
    text = format_state(regs)
    lines = text.splitlines()
    assert lines[0] == "   AF: 0x12C1   BC: 0xABCD   DE: 0x0000  HL: 0x0000"
    assert lines[1] == "  'AF: 0x0000  'BC: 0x0000  'DE: 0x0000 'HL: 0x0042"
    assert lines[2] == "   PC: 0x4000   SP: 0xFFFE   IX: 0x0000  IY: 0x0000"
    assert lines[3] == "Flags: S Z C "


def test_format_state_undocumented_flag_labels():
    assert format_state(Registers(f=0x08)).splitlines()[3] == "Flags: 5 "
    assert format_state(Registers(f=0x20)).splitlines()[3] == "Flags: 3 "