# python/hackemu/cpu.py
from __future__ import annotations

from typing import List, Sequence

from .assembler import WORD_MASK

RAM_SIZE = 0x8000
DEFAULT_MAX_STEPS = 2_000_000


class HackRuntimeError(Exception):
    pass


class ExecutionLimitExceeded(HackRuntimeError):
    pass


def to_signed(word: int) -> int:
    word &= WORD_MASK
    return word - 0x10000 if word & 0x8000 else word


def alu(x: int, y: int, control: int) -> int:
    """Hack ALU; `control` holds zx nx zy ny f no, zx most significant."""
    zx, nx, zy, ny, f, no = ((control >> shift) & 1 for shift in range(5, -1, -1))
    if zx:
        x = 0
    if nx:
        x = ~x & WORD_MASK
    if zy:
        y = 0
    if ny:
        y = ~y & WORD_MASK
    out = (x + y) & WORD_MASK if f else x & y
    if no:
        out = ~out & WORD_MASK
    return out


class HackCPU:
    def __init__(self, rom: Sequence[int]):
        self.rom: List[int] = list(rom)
        self.ram: List[int] = [0] * RAM_SIZE
        self.a = 0
        self.d = 0
        self.pc = 0
        self.steps = 0
        self.halted = False

    def _address(self, addr: int) -> int:
        if not 0 <= addr < RAM_SIZE:
            raise HackRuntimeError(f"RAM access out of range: {addr} at pc={self.pc}")
        return addr

    def step(self) -> None:
        if self.pc >= len(self.rom):
            self.halted = True
            return

        ins = self.rom[self.pc]
        self.steps += 1

        if not ins & 0x8000:
            self.a = ins
            self.pc += 1
            return

        addr = self.a
        y = self.ram[self._address(addr)] if ins & 0x1000 else addr
        out = alu(self.d, y, (ins >> 6) & 0x3F)

        dest = (ins >> 3) & 0b111
        if dest & 0b001:
            self.ram[self._address(addr)] = out
        if dest & 0b100:
            self.a = out
        if dest & 0b010:
            self.d = out

        jump = ins & 0b111
        value = to_signed(out)
        taken = (
            (jump & 0b100 and value < 0)
            or (jump & 0b010 and value == 0)
            or (jump & 0b001 and value > 0)
        )
        if not taken:
            self.pc += 1
            return

        # `(L) @L 0;JMP` spins forever: treat as halt
        if jump == 0b111 and addr == self.pc - 1 and self.rom[addr] == addr:
            self.halted = True
            return
        self.pc = addr

    def run(self, max_steps: int = DEFAULT_MAX_STEPS) -> int:
        while not self.halted:
            if self.steps >= max_steps:
                raise ExecutionLimitExceeded(f"no halt after {max_steps} steps (pc={self.pc})")
            self.step()
        return self.steps

    def signed(self, addr: int) -> int:
        return to_signed(self.ram[addr])
