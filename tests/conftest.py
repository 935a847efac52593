from __future__ import annotations

from typing import Dict, Sequence, Tuple

import pytest

from hackemu import HackCPU, HackImage, load
from vmtranslator import LoweringPolicy, translate_sources

POLICIES: Dict[str, LoweringPolicy] = {
    "inline": LoweringPolicy.inline(),
    "inline-unoptimized": LoweringPolicy.inline(optimized=False),
    "mixed": LoweringPolicy.mixed(),
    "subroutine": LoweringPolicy.subroutine(),
    "subroutine-unoptimized": LoweringPolicy.subroutine(optimized=False),
}

HALT = "label HALT\ngoto HALT\n"

# bootstrap leaves Sys.init with ARG=256 and LCL=SP=261
SYS_ARG = 256
SYS_LCL = 261


def run_vm(
    sources: Sequence[Tuple[str, str]],
    policy: LoweringPolicy,
    max_steps: int = 500_000,
) -> Tuple[HackCPU, HackImage]:
    program, problems = translate_sources(sources, policy)
    assert problems == []
    cpu, image = load(program.text())
    cpu.run(max_steps)
    return cpu, image


def machine_state(cpu: HackCPU) -> dict:
    # the bootstrap frame holds a code address that moves with the lowering,
    # so the stack is compared from Sys.init's frame upward
    sp = cpu.ram[0]
    return {
        "SP": sp,
        "LCL": cpu.ram[1],
        "ARG": cpu.ram[2],
        "THIS": cpu.ram[3],
        "THAT": cpu.ram[4],
        "temp": cpu.ram[5:13],
        "stack": cpu.ram[SYS_LCL:sp],
    }


def push_value(v: int) -> str:
    if v >= 0:
        return f"push constant {v}\n"
    return f"push constant 0\npush constant {-v}\nsub\n"


@pytest.fixture(params=sorted(POLICIES))
def policy(request) -> LoweringPolicy:
    return POLICIES[request.param]
