# python/hackemu/cli.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Tuple

from .assembler import AsmError, HackImage, assemble
from .cpu import DEFAULT_MAX_STEPS, ExecutionLimitExceeded, HackCPU, HackRuntimeError


def parse_ram_spec(spec: str, image: HackImage) -> Tuple[str, int, int]:
    """
    "256" -> one cell, "256:260" -> cells 256..259, "Main.0" -> symbol.
    """
    if ":" in spec and spec.replace(":", "").isdigit():
        lo, hi = spec.split(":", 1)
        return spec, int(lo), int(hi)
    if spec.isdigit():
        return spec, int(spec), int(spec) + 1
    addr = image.address_of(spec)
    return spec, addr, addr + 1


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="hackemu", description="Assemble and run a Hack .asm program")
    ap.add_argument("input", help="Input .asm file")
    ap.add_argument("--hack", help="Also write the binary .hack listing here")
    ap.add_argument("--steps", type=int, default=DEFAULT_MAX_STEPS, help="Step limit")
    ap.add_argument("--ram", action="append", default=[], help="Cell, range A:B or symbol to print")
    ap.add_argument("--no-run", action="store_true", help="Assemble only")
    args = ap.parse_args(argv)

    inp = Path(args.input)
    if not inp.exists():
        print(f"[hackemu] ERROR: input file not found: {inp}", file=sys.stderr)
        return 2

    try:
        image = assemble(inp.read_text(encoding="utf-8"))
    except AsmError as e:
        print(f"[hackemu] ERROR: {inp.name}: {e}", file=sys.stderr)
        return 3

    if args.hack:
        Path(args.hack).write_text(image.to_hack(), encoding="utf-8")
        print(f"OK. hack_written={Path(args.hack).resolve()}")

    if args.no_run:
        return 0

    cpu = HackCPU(image.words)
    try:
        steps = cpu.run(args.steps)
    except ExecutionLimitExceeded as e:
        print(f"[hackemu] ERROR: {e}", file=sys.stderr)
        return 4
    except HackRuntimeError as e:
        print(f"[hackemu] ERROR: {e}", file=sys.stderr)
        return 5

    print(f"[hackemu] halted after {steps} steps (pc={cpu.pc})")
    for spec in args.ram:
        try:
            name, lo, hi = parse_ram_spec(spec, image)
        except KeyError:
            print(f"[hackemu] WARNING: unknown symbol: {spec}", file=sys.stderr)
            continue
        for addr in range(lo, hi):
            print(f"RAM[{addr}] = {cpu.signed(addr)}" + (f"  ({name})" if not name[0].isdigit() else ""))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
