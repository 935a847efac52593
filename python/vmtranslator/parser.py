from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional
from lark import Lark, Transformer, exceptions

from .commands import *


@dataclass
class ParseResult:
    commands: List[Command]
    errors: List[ParseError]


class CommandBuilder(Transformer):
    def __init__(self, line: int):
        super().__init__()
        self.line = line

    def start(self, items):
        return items[0]

    def push_cmd(self, items):
        return Push(line=self.line, segment=str(items[0]), index=int(items[1]))

    def pop_cmd(self, items):
        return Pop(line=self.line, segment=str(items[0]), index=int(items[1]))

    def arith_cmd(self, items):
        return Arithmetic(line=self.line, op=str(items[0]).lower())

    def label_cmd(self, items):
        return Label(line=self.line, name=str(items[0]))

    def goto_cmd(self, items):
        return Goto(line=self.line, name=str(items[0]))

    def if_cmd(self, items):
        return IfGoto(line=self.line, name=str(items[0]))

    def function_cmd(self, items):
        return Function(line=self.line, name=str(items[0]), n_locals=int(items[1]))

    def call_cmd(self, items):
        return Call(line=self.line, name=str(items[0]), n_args=int(items[1]))

    def return_cmd(self, items):
        return Return(line=self.line)


def make_parser() -> Lark:
    with open(__file__.replace("parser.py", "vm.lark"), "r", encoding="utf-8") as f:
        grammar = f.read()
    return Lark(grammar, start="start", parser="lalr", propagate_positions=True)


_PARSER: Optional[Lark] = None


def strip_comment(raw: str) -> str:
    pos = raw.find("//")
    if pos >= 0:
        raw = raw[:pos]
    return raw.rstrip()


def parse_line(text: str, line: int = 1) -> Command:
    """
    Classify one source line (comment already stripped or not).

    A first word that is not a VM mnemonic yields an Unknown command.
    A known mnemonic with bad operands raises lark's UnexpectedInput.
    """
    global _PARSER
    if _PARSER is None:
        _PARSER = make_parser()
    try:
        tree = _PARSER.parse(text)
    except exceptions.UnexpectedInput:
        words = text.split()
        if words and words[0].lower() not in MNEMONICS:
            return Unknown(line=line, text=text.strip())
        raise
    return CommandBuilder(line).transform(tree)


class CommandReader:
    """
    Lazy command sequence over one module's text.

    Every iteration starts again from the first line. Malformed lines are
    skipped and recorded in `errors`.
    """

    def __init__(self, text: str, name: str = "<string>"):
        self.text = text
        self.name = name
        self.errors: List[ParseError] = []

    @classmethod
    def from_path(cls, path: str | Path) -> "CommandReader":
        p = Path(path)
        return cls(p.read_text(encoding="utf-8-sig"), name=p.name)

    def __iter__(self) -> Iterator[Command]:
        self.errors = []
        for line_no, raw in enumerate(self.text.splitlines(), start=1):
            line = strip_comment(raw)
            if not line.strip():
                continue
            try:
                cmd = parse_line(line, line_no)
            except exceptions.UnexpectedInput as e:
                column = e.column if isinstance(e.column, int) and e.column > 0 else 1
                self.errors.append(ParseError(message=_short_message(e), line=line_no, column=column))
                continue
            yield cmd


def _short_message(e: exceptions.UnexpectedInput) -> str:
    # lark messages span several lines (context + expected set)
    first = str(e).strip().splitlines()
    return first[0] if first else type(e).__name__


def parse_text(text: str) -> ParseResult:
    reader = CommandReader(text)
    commands = list(reader)
    return ParseResult(commands=commands, errors=reader.errors)
