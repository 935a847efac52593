from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .codegen import ENTRY_FUNCTION, CodeWriter
from .commands import Unknown
from .emit_asm import AsmProgram
from .lowering import LoweringPolicy
from .parser import CommandReader


@dataclass
class Problem:
    module: str
    line: int
    column: int
    message: str
    kind: str = "parse error"

    def format(self) -> str:
        return f"[{self.kind}] {self.module} line={self.line} col={self.column}: {self.message}"


def translate_module(writer: CodeWriter, reader: CommandReader) -> List[Problem]:
    """Announce the module and drain its commands into `writer`."""
    problems: List[Problem] = []
    writer.begin_module(reader.name)

    for cmd in reader:
        if isinstance(cmd, Unknown):
            problems.append(Problem(reader.name, cmd.line, 1, f"unknown command ignored: {cmd.text}", kind="warn"))
        writer.write(cmd)

    for e in reader.errors:
        problems.append(Problem(reader.name, e.line, e.column, e.message))
    problems.sort(key=lambda pr: pr.line)
    return problems


def translate_sources(
    sources: Sequence[Tuple[str, str]],
    policy: Optional[LoweringPolicy] = None,
    annotate: bool = False,
    entry: str = ENTRY_FUNCTION,
) -> Tuple[AsmProgram, List[Problem]]:
    """
    In-memory translation of (module file name, VM text) pairs.
    """
    writer = CodeWriter(policy, annotate=annotate)
    writer.begin_program(entry)

    problems: List[Problem] = []
    for name, text in sources:
        problems.extend(translate_module(writer, CommandReader(text, name=name)))

    return writer.end_program(), problems
