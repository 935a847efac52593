from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple

from .commands import INDIRECT_SEGMENTS


class Strategy(enum.Enum):
    INLINE = "inline"
    SUBROUTINE = "subroutine"


# kinds that have a shared-subroutine body
PUSH_POP_ROUTINES: Tuple[str, ...] = tuple(
    f"{verb}_{seg}" for verb in ("push", "pop") for seg in INDIRECT_SEGMENTS
)
ARITHMETIC_ROUTINES: Tuple[str, ...] = ("add", "sub", "eq", "lt", "gt", "and", "or")
FRAME_ROUTINES: Tuple[str, ...] = ("call", "return")

ELIGIBLE: Tuple[str, ...] = PUSH_POP_ROUTINES + ARITHMETIC_ROUTINES + FRAME_ROUTINES

PRESETS = ("inline", "mixed", "subroutine")


@dataclass(frozen=True)
class LoweringPolicy:
    """
    Static lowering choice for one translation run.

    `table` maps a routine name ("push_local", "add", "call", ...) to its
    Strategy. Names outside ELIGIBLE always lower inline. `optimized`
    selects the combined SP update/dereference push and pop primitives.
    """

    table: Dict[str, Strategy] = field(default_factory=dict)
    optimized: bool = True

    def strategy(self, routine: str) -> Strategy:
        if routine not in ELIGIBLE:
            return Strategy.INLINE
        return self.table.get(routine, Strategy.INLINE)

    def uses_subroutine(self, routine: str) -> bool:
        return self.strategy(routine) is Strategy.SUBROUTINE

    def shared_routines(self) -> Tuple[str, ...]:
        return tuple(r for r in ELIGIBLE if self.uses_subroutine(r))

    @classmethod
    def with_subroutines(cls, routines: Iterable[str], optimized: bool = True) -> "LoweringPolicy":
        table = {r: Strategy.SUBROUTINE for r in routines}
        unknown = sorted(set(table) - set(ELIGIBLE))
        if unknown:
            raise ValueError(f"no shared subroutine for: {', '.join(unknown)}")
        return cls(table=table, optimized=optimized)

    @classmethod
    def inline(cls, optimized: bool = True) -> "LoweringPolicy":
        return cls(optimized=optimized)

    @classmethod
    def subroutine(cls, optimized: bool = True) -> "LoweringPolicy":
        return cls.with_subroutines(ELIGIBLE, optimized=optimized)

    @classmethod
    def mixed(cls, optimized: bool = True) -> "LoweringPolicy":
        return cls.with_subroutines(PUSH_POP_ROUTINES + FRAME_ROUTINES, optimized=optimized)

    @classmethod
    def preset(cls, name: str, optimized: bool = True) -> "LoweringPolicy":
        if name not in PRESETS:
            raise ValueError(f"unknown lowering preset: {name}")
        return getattr(cls, name)(optimized=optimized)
