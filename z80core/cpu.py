"""A cycle-counting Z80 interpreter."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .alu import AluOp, RotOp, add16, adc16, alu8, daa, dec8, inc8, rotate, sbc16
from .registers import Flag, Registers

_LOG = logging.getLogger(__name__)

_C = int(Flag.C)
_N = int(Flag.N)
_PV = int(Flag.PV)
_F3 = int(Flag.F3)
_H = int(Flag.H)
_F5 = int(Flag.F5)
_Z = int(Flag.Z)
_S = int(Flag.S)


class Memory(Protocol):
    def read_byte(self, address: int) -> int: ...

    def write_byte(self, address: int, value: int) -> None: ...


@dataclass
class IODevice:
    """A port handler: ``read_in()`` returns a byte, ``write_out(value)`` takes one."""

    read_in: Optional[Callable[[], int]] = None
    write_out: Optional[Callable[[int], None]] = None


class FlatMemory:
    """A plain 64 KiB address space."""

    def __init__(self, data: bytes = b"", fill: int = 0) -> None:
        self.data = bytearray([fill & 0xFF]) * 0x10000
        self.data[: len(data)] = data

    def read_byte(self, address: int) -> int:
        return self.data[address & 0xFFFF]

    def write_byte(self, address: int, value: int) -> None:
        self.data[address & 0xFFFF] = value & 0xFF


def _undef_block(value: int) -> int:
    return (value & _F3) | ((value & 0x02) << 4)


def _sign_zero(value: int) -> int:
    return (_S if value & 0x80 else 0) | (_Z if value == 0 else 0)


def _parity_flag(value: int) -> int:
    return 0 if bin(value & 0xFF).count("1") & 1 else _PV


def _half_sub(a: int, b: int) -> bool:
    return bool(((a & 0xF) - (b & 0xF)) & 0x10)


class CPU:
    """The processor: registers, interrupt state, ports and an execution loop."""

    def __init__(self, memory: Optional[Memory] = None,
                 log: Optional[logging.Logger] = None) -> None:
        self.memory: Memory = memory if memory is not None else FlatMemory()
        self.log = log or _LOG
        self.registers = Registers()
        self.devices: list[IODevice] = [IODevice() for _ in range(0x100)]
        self.prefix = 0
        self.halted = False
        self.interrupt = False
        self.iff1 = False
        self.iff2 = False
        self.iff_wait = False
        self.int_mode = 0
        self.bus = 0
        self._cycles = 0

    # memory and ports

    def read_byte(self, address: int) -> int:
        return self.memory.read_byte(address & 0xFFFF) & 0xFF

    def write_byte(self, address: int, value: int) -> None:
        self.memory.write_byte(address & 0xFFFF, value & 0xFF)

    def read_word(self, address: int) -> int:
        return self.read_byte(address) | (self.read_byte(address + 1) << 8)

    def write_word(self, address: int, value: int) -> None:
        self.write_byte(address, value & 0xFF)
        self.write_byte(address + 1, (value >> 8) & 0xFF)

    def port_in(self, port: int) -> int:
        device = self.devices[port & 0xFF]
        if device.read_in is None:
            return 0
        return device.read_in() & 0xFF

    def port_out(self, port: int, value: int) -> None:
        device = self.devices[port & 0xFF]
        if device.write_out is not None:
            device.write_out(value & 0xFF)

    def push(self, value: int) -> None:
        r = self.registers
        self.write_word(r.sp - 2, value)
        r.sp -= 2

    def pop(self) -> int:
        r = self.registers
        value = self.read_word(r.sp)
        r.sp += 2
        return value

    # operand helpers

    def _n(self) -> int:
        r = self.registers
        value = self.read_byte(r.pc)
        r.pc += 1
        return value

    def _nn(self) -> int:
        r = self.registers
        value = self.read_word(r.pc)
        r.pc += 2
        return value

    def _d(self) -> int:
        value = self._n()
        return value - 0x100 if value & 0x80 else value

    def _index(self) -> Optional[str]:
        return {0xDD: "ix", 0xFD: "iy"}.get(self.prefix >> 8)

    def _hl_name(self) -> str:
        return self._index() or "hl"

    def _read_r(self, i: int) -> int:
        r = self.registers
        if i == 6:
            self._cycles += 3
            index = self._index()
            if index:
                self._cycles += 8
                r.wz = getattr(r, index) + self._d()
                return self.read_byte(r.wz)
            return self.read_byte(r.hl)
        if i in (4, 5):
            index = self._index()
            name = (index + ("h" if i == 4 else "l")) if index else ("h" if i == 4 else "l")
            return getattr(r, name)
        return getattr(r, "bcde" [i] if i < 4 else "a")

    def _write_r(self, i: int, value: int) -> int:
        r = self.registers
        value &= 0xFF
        if i == 6:
            self._cycles += 3
            index = self._index()
            if index:
                self._cycles += 4
                r.wz = getattr(r, index) + self._d()
                self.write_byte(r.wz, value)
            else:
                self.write_byte(r.hl, value)
            return value
        if i in (4, 5):
            index = self._index()
            name = (index + ("h" if i == 4 else "l")) if index else ("h" if i == 4 else "l")
            setattr(r, name, value)
            return value
        setattr(r, "bcde"[i] if i < 4 else "a", value)
        return value

    def _read_write_r(self, read: int, write: int) -> int:
        if write == 6 or read == 6:
            old_prefix = self.prefix
            if write == 6:
                self.prefix &= 0xFF
            value = self._read_r(read)
            self.prefix = old_prefix
            if read == 6:
                self.prefix &= 0xFF
            return self._write_r(write, value)
        return self._write_r(write, self._read_r(read))

    def _rp_name(self, i: int, second: bool = False) -> str:
        return ("bc", "de", self._hl_name(), "af" if second else "sp")[i]

    def _read_rp(self, i: int, second: bool = False) -> int:
        return getattr(self.registers, self._rp_name(i, second))

    def _write_rp(self, i: int, value: int, second: bool = False) -> None:
        setattr(self.registers, self._rp_name(i, second), value)

    def _cc(self, i: int) -> bool:
        flag = (Flag.Z, Flag.C, Flag.PV, Flag.S)[i >> 1]
        state = self.registers.test(flag)
        return state if i & 1 else not state

    # execution

    def _handle_interrupt(self) -> None:
        r = self.registers
        if self.int_mode == 0:
            self.log.warning("Warning: interrupt mode 0 is not supported.")
            return
        self._cycles += 13 if self.int_mode == 1 else 19
        self.push(r.pc)
        r.pc = 0x38 if self.int_mode == 1 else r.i * 256 + self.bus
        self.iff1 = self.iff2 = False

    def execute(self, cycles: int) -> int:
        """Run for at least ``cycles`` T-states; return the remaining (possibly negative) budget."""
        while cycles > 0 or self.prefix != 0:
            self._cycles = 0
            opcode = 0
            done = False
            if self.iff2 and not self.prefix:
                if self.iff_wait:
                    self.iff_wait = False
                elif self.interrupt:
                    self.halted = False
                    self._handle_interrupt()
                    done = True
            if not done and self.halted:
                self._cycles += 4
                done = True
            if not done:
                opcode = self._step()
            cycles -= self._cycles
            if self._cycles == 0:
                self.log.error("Error: Unrecognized instruction 0x%02X.", opcode)
                cycles -= 1
        return cycles

    def _step(self) -> int:
        r = self.registers
        opcode = self.read_byte(r.pc)
        r.pc += 1
        r.r = ((r.r + 1) & 0x7F) | (r.r & 0x80)
        reset_prefix = True
        if (self.prefix & 0xFF) == 0xCB:
            switch = self.prefix >> 8
            if switch:
                opcode = self.read_byte(r.pc)
                r.pc -= 1
            self._execute_cb(opcode, switch)
            if switch:
                r.pc += 1
        elif self.prefix >> 8 == 0xED:
            self._execute_ed(opcode)
        else:
            reset_prefix = self._execute_main(opcode)
        if reset_prefix:
            self.prefix = 0
        return opcode

    def _execute_cb(self, opcode: int, switch: int) -> None:
        r = self.registers
        x, y, z = opcode >> 6, (opcode >> 3) & 7, opcode & 7
        self._cycles += 4
        value = self._read_r(z)
        if x == 0:
            if z == 6 and switch:
                r.pc -= 1
            result, flags = rotate(RotOp(y), value, r.f)
            self._write_r(z, result)
            r.f = flags
        elif x == 1:
            bit = value & (1 << y)
            undef = ((r.wz >> 8) if z == 6 else value) & (_F3 | _F5)
            r.f = (_sign_zero(bit) | undef | _parity_flag(bit)
                   | (r.f & _C) | _H)
        else:
            value = value & ~(1 << y) if x == 2 else value | (1 << y)
            if z == 6 and switch:
                r.pc -= 1
            self._write_r(z, value)

    def _block(self, y: int, z: int) -> None:
        r = self.registers
        step = 1 if y % 2 == 0 else -1
        repeat = y >= 6
        self._cycles += 12
        again = False
        if z == 0:
            value = self.read_byte(r.hl)
            self.write_byte(r.de, value)
            r.hl += step
            r.de += step
            r.bc -= 1
            r.f = ((r.f & (_S | _Z | _C)) | (_PV if r.bc else 0)
                   | _undef_block((r.a + value) & 0xFF))
            again = bool(r.bc)
        elif z == 1:
            value = self.read_byte(r.hl)
            r.hl += step
            diff = (r.a - value) & 0xFF
            half = 1 if _half_sub(r.a, value) else 0
            r.bc -= 1
            r.f = (_sign_zero(diff) | (_H if half else 0) | (_PV if r.bc else 0)
                   | _N | (r.f & _C) | _undef_block((diff - half) & 0xFF))
            again = bool(r.bc) and not r.test(Flag.Z)
        else:
            if z == 2:
                self.write_byte(r.hl, self.port_in(r.c))
            else:
                self.port_out(r.c, self.read_byte(r.hl))
            r.hl += step
            r.b -= 1
            r.assign(Flag.Z, r.b == 0)
            r.assign(Flag.N, True)
            again = r.b != 0
        if repeat and again:
            self._cycles += 5
            r.pc -= 2

    def _execute_ed(self, opcode: int) -> None:
        r = self.registers
        x, y, z = opcode >> 6, (opcode >> 3) & 7, opcode & 7
        p, q = y >> 1, y & 1
        if x == 2:
            if y >= 4 and z < 4:
                self._block(y, z)
            else:
                self._cycles += 4
                self.iff_wait = True
            return
        if x != 1:
            self._cycles += 4
            self.iff_wait = True
            return
        if z == 0:
            self._cycles += 8
            value = self.port_in(r.c)
            if y != 6:
                self._write_r(y, value)
            r.f = (_sign_zero(value) | (value & (_F3 | _F5)) | (r.f & _C)
                   | _parity_flag(value))
        elif z == 1:
            self._cycles += 8
            self.port_out(r.c, 0xFF if y == 6 else self._read_r(y))
        elif z == 2:
            self._cycles += 11
            operation = adc16 if q else sbc16
            r.hl, r.f = operation(r.hl, self._read_rp(p), r.f)
            r.wz = r.hl
        elif z == 3:
            self._cycles += 16
            r.wz = self._nn()
            if q == 0:
                self.write_word(r.wz, self._read_rp(p))
            else:
                self._write_rp(p, self.read_word(r.wz))
        elif z == 4:
            self._cycles += 4
            r.a, r.f = alu8(AluOp.SUB, 0, r.a, 0)
        elif z == 5:
            self._cycles += 14
            r.pc = self.pop()
        elif z == 6:
            self._cycles += 4
            self.int_mode = (0, 0, 1, 2)[y & 3]
        else:
            self._ed_misc(y)

    def _ed_misc(self, y: int) -> None:
        r = self.registers
        if y in (0, 1, 2, 3):
            self._cycles += 5
            if y == 0:
                r.i = r.a
            elif y == 1:
                r.r = r.a
            else:
                r.a = r.i if y == 2 else r.r
                r.f = (_sign_zero(r.a) | (r.a & (_F3 | _F5))
                       | (_PV if self.iff2 else 0) | (r.f & _C))
        elif y in (4, 5):
            self._cycles += 14
            old = r.a
            value = self.read_byte(r.hl)
            if y == 4:
                r.a = (r.a & 0xF0) | (value & 0x0F)
                value = (value >> 4) | ((old << 4) & 0xFF)
            else:
                r.a = (r.a & 0xF0) | (value >> 4)
                value = ((value << 4) & 0xFF) | (old & 0x0F)
            self.write_byte(r.hl, value)
            r.f = ((r.f & _C) | _sign_zero(r.a) | _parity_flag(r.a)
                   | (r.a & (_F3 | _F5)))
        else:
            self._cycles += 4

    def _accumulator_rotate(self, y: int) -> None:
        r = self.registers
        a = r.a
        carry = 1 if r.test(Flag.C) else 0
        if y == 0:
            out = a >> 7
            a = (a << 1) | out
        elif y == 1:
            out = a & 1
            a = (a >> 1) | (out << 7)
        elif y == 2:
            out = a >> 7
            a = (a << 1) | carry
        else:
            out = a & 1
            a = (a >> 1) | (carry << 7)
        r.a = a
        r.assign(Flag.C, bool(out))
        r.assign(Flag.N, False)
        r.assign(Flag.H, False)
        self._copy_undef()

    def _copy_undef(self) -> None:
        r = self.registers
        r.f = (r.f & ~(_F3 | _F5)) | (r.a & (_F3 | _F5))

    def _execute_x0(self, y: int, z: int, p: int, q: int) -> None:
        r = self.registers
        if z == 0:
            if y == 0:
                self._cycles += 4
            elif y == 1:
                self._cycles += 4
                r.ex_af()
            elif y == 2:
                self._cycles += 8
                d = self._d()
                r.b -= 1
                if r.b:
                    self._cycles += 5
                    r.pc += d
                    r.wz = r.pc
            elif y == 3:
                self._cycles += 12
                d = self._d()
                r.pc += d
                r.wz = r.pc
            else:
                self._cycles += 7
                d = self._d()
                if self._cc(y - 4):
                    self._cycles += 5
                    r.pc += d
                    r.wz = r.pc
        elif z == 1:
            if q == 0:
                self._cycles += 10
                self._write_rp(p, self._nn())
            else:
                self._cycles += 11
                name = self._hl_name()
                result, r.f = add16(getattr(r, name), self._read_rp(p), r.f)
                setattr(r, name, result)
                r.wz = result
        elif z == 2:
            if p < 2:
                self._cycles += 7
                address = r.bc if p == 0 else r.de
                if q == 0:
                    self.write_byte(address, r.a)
                else:
                    r.a = self.read_byte(address)
            elif p == 2:
                self._cycles += 16
                r.wz = self._nn()
                name = self._hl_name()
                if q == 0:
                    self.write_word(r.wz, getattr(r, name))
                else:
                    setattr(r, name, self.read_word(r.wz))
            else:
                self._cycles += 13
                r.wz = self._nn()
                if q == 0:
                    self.write_byte(r.wz, r.a)
                else:
                    r.a = self.read_byte(r.wz)
        elif z == 3:
            self._cycles += 6
            self._write_rp(p, self._read_rp(p) + (1 if q == 0 else -1))
        elif z in (4, 5):
            self._cycles += 4
            old = self._read_r(y)
            if y == 6 and self.prefix >> 8:
                r.pc -= 1
            result, flags = (inc8 if z == 4 else dec8)(old, r.f)
            self._write_r(y, result)
            r.f = flags
        elif z == 6:
            self._cycles += 7
            indexed = y == 6 and self.prefix >> 8
            if indexed:
                r.pc += 1
            value = self._n()
            if indexed:
                r.pc -= 2
            self._write_r(y, value)
            if indexed:
                r.pc += 1
        else:
            self._cycles += 4
            if y < 4:
                self._accumulator_rotate(y)
            elif y == 4:
                r.a, r.f = daa(r.a, r.f)
            elif y == 5:
                r.a = ~r.a
                r.assign(Flag.N, True)
                r.assign(Flag.H, True)
                self._copy_undef()
            elif y == 6:
                r.assign(Flag.C, True)
                r.assign(Flag.N, False)
                r.assign(Flag.H, False)
                self._copy_undef()
            else:
                carry = r.test(Flag.C)
                r.assign(Flag.H, carry)
                r.assign(Flag.C, not carry)
                r.assign(Flag.N, False)
                self._copy_undef()

    def _execute_main(self, opcode: int) -> bool:
        r = self.registers
        x, y, z = opcode >> 6, (opcode >> 3) & 7, opcode & 7
        p, q = y >> 1, y & 1
        if x == 0:
            self._execute_x0(y, z, p, q)
        elif x == 1:
            self._cycles += 4
            if z == 6 and y == 6:
                self.halted = True
            else:
                self._read_write_r(z, y)
        elif x == 2:
            self._cycles += 4
            r.a, r.f = alu8(AluOp(y), r.a, self._read_r(z), r.f)
        elif z == 0:
            self._cycles += 5
            if self._cc(y):
                r.pc = self.pop()
                self._cycles += 6
        elif z == 1:
            if q == 0:
                self._cycles += 10
                self._write_rp(p, self.pop(), second=True)
            elif p == 0:
                self._cycles += 10
                r.pc = self.pop()
            elif p == 1:
                self._cycles += 4
                r.exx()
            elif p == 2:
                self._cycles += 4
                r.pc = getattr(r, self._hl_name())
            else:
                self._cycles += 6
                r.sp = getattr(r, self._hl_name())
        elif z == 2:
            self._cycles += 10
            target = self._nn()
            if self._cc(y):
                r.pc = target
        elif z == 3:
            return self._execute_x3z3(y)
        elif z == 4:
            self._cycles += 10
            target = self._nn()
            if self._cc(y):
                self._cycles += 7
                self.push(r.pc)
                r.pc = target
        elif z == 5:
            if q == 0:
                self._cycles += 11
                self.push(self._read_rp(p, second=True))
            elif p == 0:
                self._cycles += 17
                target = self._nn()
                self.push(r.pc)
                r.pc = target
            else:
                self._cycles += 4
                self.prefix = (self.prefix & 0xFF) | ({1: 0xDD, 2: 0xED, 3: 0xFD}[p] << 8)
                return False
        elif z == 6:
            self._cycles += 4
            r.a, r.f = alu8(AluOp(y), r.a, self._n(), r.f)
        else:
            self._cycles += 11
            self.push(r.pc)
            r.pc = y * 8
        return True

    def _execute_x3z3(self, y: int) -> bool:
        r = self.registers
        if y == 0:
            self._cycles += 10
            r.pc = self._nn()
        elif y == 1:
            self._cycles += 4
            self.prefix = (self.prefix & 0xFF00) | 0xCB
            return False
        elif y == 2:
            self._cycles += 11
            self.port_out(self._n(), r.a)
        elif y == 3:
            self._cycles += 11
            r.a = self.port_in(self._n())
        elif y == 4:
            self._cycles += 19
            name = self._hl_name()
            r.wz = self.read_word(r.sp)
            self.write_word(r.sp, getattr(r, name))
            setattr(r, name, r.wz)
        elif y == 5:
            self._cycles += 4
            r.ex_de_hl()
        elif y == 6:
            self._cycles += 4
            self.iff1 = self.iff2 = False
        else:
            self._cycles += 4
            self.iff1 = self.iff2 = True
            self.iff_wait = True
        return True