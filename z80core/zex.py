"""Run a CP/M-style Z80 instruction exerciser on a bare 64 KiB machine.

The program is loaded at 0x100 and may print through the two BDOS calls
the exercisers use: function 2 (print the character in E) and function 9
(print the ``$``-terminated string at DE).  A jump to address 0 ends the run.
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence, TextIO

from .cpu import CPU, FlatMemory, IODevice

LOAD_ADDRESS = 0x100
CHUNK_CYCLES = 10000
EXIT_MESSAGE = "Jumped to 0x00!\n"
USAGE = "zex `file` - run the Z80 instruction exerciser"

_BOOTSTRAP = {
    0x00: 0xD3,  # OUT (n), A
    0x01: 0x00,
    0x05: 0xDB,  # IN A, (n)
    0x06: 0x00,
    0x07: 0xC9,  # RET
}


class _ProgramExit(Exception):
    """Raised from the port handler when the program jumps to address 0."""


class ZexMachine:
    """A Z80 with flat RAM whose ports emulate the BDOS console calls."""

    def __init__(self, program: bytes, output: TextIO) -> None:
        if len(program) > 0x10000 - LOAD_ADDRESS:
            raise ValueError(
                f"program of {len(program)} bytes does not fit above 0x{LOAD_ADDRESS:04X}"
            )
        self.output = output
        self.stopped = False
        self.memory = FlatMemory()
        self.memory.data[LOAD_ADDRESS:LOAD_ADDRESS + len(program)] = program
        for address, value in _BOOTSTRAP.items():
            self.memory.data[address] = value
        self.cpu = CPU(self.memory)
        self.cpu.devices = [
            IODevice(read_in=self._bdos, write_out=self._reset)
            for _ in range(0x100)
        ]
        self.cpu.registers.pc = LOAD_ADDRESS

    def _reset(self, value: int) -> None:
        self.output.write(EXIT_MESSAGE)
        self._flush()
        raise _ProgramExit()

    def _bdos(self) -> int:
        r = self.cpu.registers
        if r.c == 2:
            self.output.write(chr(r.e))
        elif r.c == 9:
            address = r.de
            for _ in range(0x10000):
                char = self.memory.read_byte(address)
                if char == ord("$"):
                    break
                self.output.write(chr(char))
                if char == 0:
                    break
                address = (address + 1) & 0xFFFF
        self._flush()
        return 0

    def _flush(self) -> None:
        flush = getattr(self.output, "flush", None)
        if flush is not None:
            flush()

    def run(self, cycles: int) -> bool:
        """Execute about ``cycles`` T-states; return whether the program has ended."""
        if self.stopped:
            return True
        try:
            self.cpu.execute(cycles)
        except _ProgramExit:
            self.stopped = True
        return self.stopped


def run_zex(program: bytes, output: TextIO) -> None:
    """Run ``program`` until it jumps to address 0, writing its console output."""
    machine = ZexMachine(program, output)
    while not machine.run(CHUNK_CYCLES):
        pass


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command entry point: ``zex FILE``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print(USAGE)
        return 1
    try:
        with open(args[0], "rb") as handle:
            program = handle.read()
    except OSError as exc:
        print(exc.strerror)
        return 1
    run_zex(program, sys.stdout)
    return 0