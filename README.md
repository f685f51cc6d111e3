# z80core

A Z80 CPU core in pure Python. It decodes the main instruction set and the
CB, DD, ED and FD prefixes, including the IXH/IXL/IYH/IYL register forms and
the indexed `(IX+d)`/`(IY+d)` forms. It counts T-states, handles interrupt
modes 1 and 2, and models the undocumented flag bits 3 and 5.

## Installing

```
pip install .
```

## Using the CPU

```python
from z80core.cpu import CPU, FlatMemory

memory = FlatMemory(bytes([0x3E, 0x2A]))   # LD A, 0x2A
cpu = CPU(memory)
left = cpu.execute(7)                       # run for 7 T-states
print(hex(cpu.registers.a), left)           # 0x2a 0
```

`CPU.execute(cycles)` runs whole instructions until the cycle budget is spent
and no prefix is pending. It returns the budget that remains, which is zero or
negative.

Memory is any object with `read_byte(address)` and `write_byte(address, value)`.
`FlatMemory(data=b"", fill=0)` is a plain 64 KiB space backed by a `bytearray`
in its `data` attribute. The CPU also offers `read_byte`, `write_byte`,
`read_word`, `write_word`, `push` and `pop`, which go through its memory.

I/O ports are the 256 `IODevice` entries in `cpu.devices`, indexed by port
number. Each has an optional `read_in()` callable that returns a byte and an
optional `write_out(value)` callable. A port without `read_in` reads as 0, and
a write to a port without `write_out` is ignored. `cpu.port_in(port)` and
`cpu.port_out(port, value)` call them directly.

Interrupts are raised by setting `cpu.interrupt = True`. In mode 2 the vector
low byte is taken from `cpu.bus`. Interrupt state lives in `iff1`, `iff2` and
`int_mode`, and a `HALT` sets `cpu.halted`.

`cpu.registers` is a `z80core.registers.Registers`. Register pairs are `af`,
`bc`, `de`, `hl`, `ix`, `iy`, `sp`, `pc` and `wz`, and the shadow bank is
`af_alt`, `bc_alt`, `de_alt` and `hl_alt`. The byte registers are `a`, `f`,
`b`, `c`, `d`, `e`, `h`, `l`, `ixh`, `ixl`, `iyh`, `iyl`, `i` and `r`. All of
them wrap to their width when assigned. `test(flag)` and `assign(flag, value)`
read and set the bits of F, which are named by the `Flag` enum.
`format_state(registers)` returns a printable register dump.

`z80core.alu` holds the pure flag-computing operations that the core uses:
`alu8`, `daa`, `rotate`, `inc8`, `dec8`, `add16`, `adc16` and `sbc16`. Each
takes the operands and the current F and returns the result and the new F.

An opcode that takes no cycles is reported on the `z80core.cpu` logger and
costs one cycle.

## Running an instruction exerciser

The package can run a CP/M-style Z80 exerciser binary, such as `zexdoc.com`.
The binary is loaded at 0x0100, and BDOS functions 2 and 9 are printed to
standard output. The run ends with `Jumped to 0x00!` when the program jumps
to address 0:

```
z80core-zex zexdoc.com
```

From Python, `z80core.zex.run_zex(program, output)` does the same with a bytes
object and a text stream. `ZexMachine(program, output)` gives step-by-step
control: `run(cycles)` executes a slice and returns whether the program has
ended.

## What it does not do

This is a bare CPU core. It has no interrupt mode 0, and it has no
non-maskable interrupts. `RETI` and `RETN` only return. It does not emulate
any memory mapping, display, keyboard or other machine hardware, and it has no
debugger or disassembler.