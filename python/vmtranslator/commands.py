from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CommandKind(Enum):
    PUSH = "push"
    POP = "pop"
    ARITHMETIC = "arithmetic"
    LABEL = "label"
    GOTO = "goto"
    IF_GOTO = "if-goto"
    FUNCTION = "function"
    CALL = "call"
    RETURN = "return"
    UNKNOWN = "unknown"


SEGMENTS = ("constant", "pointer", "temp", "local", "argument", "this", "that", "static")

# segments reached through a base register (LCL, ARG, THIS, THAT)
INDIRECT_SEGMENTS = {
    "local": "LCL",
    "argument": "ARG",
    "this": "THIS",
    "that": "THAT",
}

BINARY_OPS = ("add", "sub", "and", "or")
UNARY_OPS = ("neg", "not")
RELATIONAL_OPS = ("eq", "lt", "gt")
ARITHMETIC_OPS = ("add", "sub", "neg", "eq", "lt", "gt", "and", "or", "not")

MNEMONICS = {
    "push", "pop", "label", "goto", "if-goto", "function", "call", "return",
    *ARITHMETIC_OPS,
}


@dataclass(frozen=True)
class ParseError:
    message: str
    line: int
    column: int


# ---- Commands ----
@dataclass(frozen=True)
class Command:
    line: int

    kind = CommandKind.UNKNOWN

    @property
    def arg1(self) -> Optional[str]:
        return None

    @property
    def arg2(self) -> Optional[int]:
        return None


@dataclass(frozen=True)
class Push(Command):
    segment: str
    index: int

    kind = CommandKind.PUSH

    @property
    def arg1(self) -> str:
        return self.segment

    @property
    def arg2(self) -> int:
        return self.index


@dataclass(frozen=True)
class Pop(Command):
    segment: str
    index: int

    kind = CommandKind.POP

    @property
    def arg1(self) -> str:
        return self.segment

    @property
    def arg2(self) -> int:
        return self.index


@dataclass(frozen=True)
class Arithmetic(Command):
    op: str

    kind = CommandKind.ARITHMETIC

    @property
    def arg1(self) -> str:
        return self.op


@dataclass(frozen=True)
class Label(Command):
    name: str

    kind = CommandKind.LABEL

    @property
    def arg1(self) -> str:
        return self.name


@dataclass(frozen=True)
class Goto(Command):
    name: str

    kind = CommandKind.GOTO

    @property
    def arg1(self) -> str:
        return self.name


@dataclass(frozen=True)
class IfGoto(Command):
    name: str

    kind = CommandKind.IF_GOTO

    @property
    def arg1(self) -> str:
        return self.name


@dataclass(frozen=True)
class Function(Command):
    name: str
    n_locals: int

    kind = CommandKind.FUNCTION

    @property
    def arg1(self) -> str:
        return self.name

    @property
    def arg2(self) -> int:
        return self.n_locals


@dataclass(frozen=True)
class Call(Command):
    name: str
    n_args: int

    kind = CommandKind.CALL

    @property
    def arg1(self) -> str:
        return self.name

    @property
    def arg2(self) -> int:
        return self.n_args


@dataclass(frozen=True)
class Return(Command):
    kind = CommandKind.RETURN


@dataclass(frozen=True)
class Unknown(Command):
    text: str

    kind = CommandKind.UNKNOWN

    @property
    def arg1(self) -> str:
        return self.text
