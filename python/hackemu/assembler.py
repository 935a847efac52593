# python/hackemu/assembler.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

WORD_MASK = 0xFFFF
MAX_CONSTANT = 0x7FFF
VARIABLE_BASE = 16

PREDEFINED: Dict[str, int] = {
    "SP": 0,
    "LCL": 1,
    "ARG": 2,
    "THIS": 3,
    "THAT": 4,
    "SCREEN": 0x4000,
    "KBD": 0x6000,
    **{f"R{i}": i for i in range(16)},
}

# a-bit + zx nx zy ny f no
COMP: Dict[str, int] = {
    "0": 0b0101010,
    "1": 0b0111111,
    "-1": 0b0111010,
    "D": 0b0001100,
    "A": 0b0110000,
    "!D": 0b0001101,
    "!A": 0b0110001,
    "-D": 0b0001111,
    "-A": 0b0110011,
    "D+1": 0b0011111,
    "A+1": 0b0110111,
    "D-1": 0b0001110,
    "A-1": 0b0110010,
    "D+A": 0b0000010,
    "D-A": 0b0010011,
    "A-D": 0b0000111,
    "D&A": 0b0000000,
    "D|A": 0b0010101,
    "M": 0b1110000,
    "!M": 0b1110001,
    "-M": 0b1110011,
    "M+1": 0b1110111,
    "M-1": 0b1110010,
    "D+M": 0b1000010,
    "D-M": 0b1010011,
    "M-D": 0b1000111,
    "D&M": 0b1000000,
    "D|M": 0b1010101,
}

# commutative spellings
COMP_ALIASES: Dict[str, str] = {
    "1+D": "D+1",
    "1+A": "A+1",
    "1+M": "M+1",
    "A+D": "D+A",
    "M+D": "D+M",
    "A&D": "D&A",
    "M&D": "D&M",
    "A|D": "D|A",
    "M|D": "D|M",
}

JUMP: Dict[str, int] = {
    "": 0,
    "JGT": 1,
    "JEQ": 2,
    "JGE": 3,
    "JLT": 4,
    "JNE": 5,
    "JLE": 6,
    "JMP": 7,
}

DEST_BITS = {"A": 4, "D": 2, "M": 1}

_SYMBOL_RE = re.compile(r"^[A-Za-z_.$:][A-Za-z0-9_.$:]*$")
_WS_RE = re.compile(r"\s+")


class AsmError(Exception):
    def __init__(self, message: str, line: int):
        super().__init__(f"line {line}: {message}")
        self.line = line


@dataclass
class HackImage:
    words: List[int] = field(default_factory=list)
    labels: Dict[str, int] = field(default_factory=dict)
    variables: Dict[str, int] = field(default_factory=dict)
    # source line of each word
    lines: List[int] = field(default_factory=list)

    def address_of(self, symbol: str) -> int:
        if symbol in PREDEFINED:
            return PREDEFINED[symbol]
        if symbol in self.labels:
            return self.labels[symbol]
        return self.variables[symbol]

    def to_hack(self) -> str:
        return "".join(f"{w:016b}\n" for w in self.words)


def clean_line(raw: str) -> str:
    pos = raw.find("//")
    if pos >= 0:
        raw = raw[:pos]
    return _WS_RE.sub("", raw)


def _split_source(text: str) -> List[Tuple[int, str]]:
    out: List[Tuple[int, str]] = []
    for line_no, raw in enumerate(text.splitlines(), start=1):
        s = clean_line(raw)
        if s:
            out.append((line_no, s))
    return out


def encode_c(s: str, line: int) -> int:
    dest, comp, jump = "", s, ""
    if "=" in s:
        dest, comp = s.split("=", 1)
    if ";" in comp:
        comp, jump = comp.split(";", 1)

    comp = COMP_ALIASES.get(comp, comp)
    if comp not in COMP:
        raise AsmError(f"bad comp field: {comp!r}", line)
    if jump not in JUMP:
        raise AsmError(f"bad jump field: {jump!r}", line)

    dest_bits = 0
    for ch in dest:
        bit = DEST_BITS.get(ch)
        if bit is None or dest_bits & bit:
            raise AsmError(f"bad dest field: {dest!r}", line)
        dest_bits |= bit

    return (0b111 << 13) | (COMP[comp] << 6) | (dest_bits << 3) | JUMP[jump]


def assemble(text: str) -> HackImage:
    src = _split_source(text)
    image = HackImage()

    # pass 1: labels
    address = 0
    for line_no, s in src:
        if s.startswith("("):
            if not s.endswith(")"):
                raise AsmError(f"bad label: {s!r}", line_no)
            name = s[1:-1]
            if not _SYMBOL_RE.match(name):
                raise AsmError(f"bad label name: {name!r}", line_no)
            if name in image.labels or name in PREDEFINED:
                raise AsmError(f"label defined twice: {name}", line_no)
            image.labels[name] = address
        else:
            address += 1

    # pass 2: code
    next_var = VARIABLE_BASE
    for line_no, s in src:
        if s.startswith("("):
            continue
        if s.startswith("@"):
            operand = s[1:]
            if operand.isdigit():
                value = int(operand)
                if value > MAX_CONSTANT:
                    raise AsmError(f"constant out of range: {value}", line_no)
            elif _SYMBOL_RE.match(operand):
                if operand in PREDEFINED:
                    value = PREDEFINED[operand]
                elif operand in image.labels:
                    value = image.labels[operand]
                else:
                    if operand not in image.variables:
                        image.variables[operand] = next_var
                        next_var += 1
                    value = image.variables[operand]
            else:
                raise AsmError(f"bad A-instruction: {s!r}", line_no)
            image.words.append(value)
        else:
            image.words.append(encode_c(s, line_no))
        image.lines.append(line_no)

    return image
