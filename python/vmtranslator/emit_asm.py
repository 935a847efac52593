# python/vmtranslator/emit_asm.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List
import contextlib
import os
import tempfile

LINE_WIDTH = 60
ROM_COLUMN = LINE_WIDTH - 15
COMMAND_WIDTH = 40
SNIPPET_WIDTH = 30


@dataclass
class AsmProgram:
    """
    Growing Hack assembly listing.

    Only real instructions advance `rom_address`; labels and comments do not.
    With `annotate` off, comments are dropped and instructions are bare.
    """

    lines: List[str] = field(default_factory=list)
    annotate: bool = True
    rom_address: int = 0

    def add(self, s: str) -> None:
        if self.annotate:
            s = f"{s.ljust(ROM_COLUMN)}// ROM[{self.rom_address:05d}]"
        self.lines.append(s)
        self.rom_address += 1

    def label(self, name: str) -> None:
        self.lines.append(f"({name})")

    def comment(self, text: str = "") -> None:
        if self.annotate:
            self.lines.append(f"// {text}".rstrip())

    def blank(self) -> None:
        if self.annotate:
            self.lines.append("")

    def rule(self, fill: str, width: int) -> None:
        self.comment(fill * (width - 3))

    def header(self, text: str, fill: str = "*") -> None:
        self.blank()
        self.rule(fill, LINE_WIDTH)
        self.comment(text)
        self.rule(fill, LINE_WIDTH)
        self.blank()

    def command(self, text: str) -> None:
        self.blank()
        self.rule("-", COMMAND_WIDTH)
        self.comment(text)
        self.rule("-", COMMAND_WIDTH)

    def snippet(self, text: str = "") -> None:
        self.rule("-", SNIPPET_WIDTH)
        if text:
            self.comment(text.strip())

    def instructions(self) -> List[str]:
        # bare instructions and labels, annotation removed
        out: List[str] = []
        for ln in self.lines:
            code = ln.split("//", 1)[0].strip()
            if code:
                out.append(code)
        return out

    def text(self) -> str:
        return "\n".join(self.lines) + "\n"

    def save(self, path: str | Path) -> None:
        # write next to the target, then swap in: never a truncated .asm
        dst = Path(path)
        fd, tmp = tempfile.mkstemp(prefix=f".{dst.name}.", suffix=".tmp", dir=dst.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self.text())
            os.replace(tmp, dst)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp)
            raise
