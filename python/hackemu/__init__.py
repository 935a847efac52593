from __future__ import annotations

from typing import Tuple

from .assembler import AsmError, HackImage, assemble
from .cpu import ExecutionLimitExceeded, HackCPU, HackRuntimeError


def load(text: str) -> Tuple[HackCPU, HackImage]:
    image = assemble(text)
    return HackCPU(image.words), image
