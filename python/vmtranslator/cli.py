# python/vmtranslator/cli.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .codegen import ENTRY_FUNCTION, CodeWriter
from .lowering import PRESETS, LoweringPolicy
from .parser import CommandReader
from .translate import Problem, translate_module

VM_SUFFIX = ".vm"
ASM_SUFFIX = ".asm"


def find_modules(path: Optional[str], cwd: Path) -> List[Path]:
    """
    No path -> every .vm in cwd; X.vm -> just X.vm; directory -> every .vm in it.
    """
    if path is None:
        folder = cwd
    elif path.endswith(VM_SUFFIX):
        return [Path(path)]
    else:
        folder = Path(path)

    if not folder.is_dir():
        raise FileNotFoundError(f"not a directory: {folder}")
    return sorted(p for p in folder.iterdir() if p.suffix == VM_SUFFIX and p.is_file())


def output_path_for(path: Optional[str], cwd: Path) -> Path:
    if path is None:
        return cwd / f"{cwd.resolve().name}{ASM_SUFFIX}"
    p = Path(path)
    if path.endswith(VM_SUFFIX):
        return p.with_suffix(ASM_SUFFIX)
    return p / f"{p.resolve().name}{ASM_SUFFIX}"


def _error(msg: str) -> None:
    print(f"[vmtranslator] ERROR: {msg}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="vmtranslator",
        description="Translate VM modules into a single Hack assembly file",
    )
    ap.add_argument("path", nargs="?", help="A .vm file or a directory of .vm files (default: cwd)")
    ap.add_argument("-o", "--output", help="Output .asm path (default: derived from path)")
    ap.add_argument("--lowering", choices=PRESETS, default="subroutine",
                    help="Inline code or shared subroutines (default: subroutine)")
    ap.add_argument("--unoptimized", action="store_true", help="Use the separate-step push/pop primitives")
    ap.add_argument("--no-annotate", action="store_true", help="Omit ROM address and VM command comments")
    ap.add_argument("--entry", default=ENTRY_FUNCTION, help="Function called by the bootstrap code")
    ap.add_argument("--strict", action="store_true", help="Fail on malformed or unknown lines")
    args = ap.parse_args(argv)

    cwd = Path.cwd()
    try:
        modules = find_modules(args.path, cwd)
    except OSError as e:
        _error(str(e))
        return 2
    if not modules:
        _error(f"no {VM_SUFFIX} files found")
        return 2

    out_path = Path(args.output) if args.output else output_path_for(args.path, cwd)

    print("SOURCE FILES:")
    for m in modules:
        print(f"      {m}")
    print(f"TARGET FILE: {out_path}")

    policy = LoweringPolicy.preset(args.lowering, optimized=not args.unoptimized)
    writer = CodeWriter(policy, annotate=not args.no_annotate)
    writer.begin_program(args.entry)

    problems: List[Problem] = []
    for m in modules:
        print(f"TRANSLATING: {m}")
        try:
            reader = CommandReader.from_path(m)
        except (OSError, UnicodeDecodeError) as e:
            _error(f"cannot read {m}: {e}")
            return 2
        found = translate_module(writer, reader)
        for pr in found:
            print(pr.format(), file=sys.stderr)
        problems.extend(found)

    if args.strict and problems:
        _error(f"{len(problems)} problem(s) in input, nothing written (--strict)")
        return 3

    try:
        writer.end_program(out_path)
    except OSError as e:
        _error(f"cannot write {out_path}: {e}")
        return 4

    print(f"OK. asm_written={out_path.resolve()}")
    print(f"OK. lowering={args.lowering} optimized={policy.optimized} instructions={writer.program.rom_address}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
