# python/vmtranslator/codegen.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .commands import (
    ARITHMETIC_OPS, BINARY_OPS, INDIRECT_SEGMENTS, RELATIONAL_OPS, UNARY_OPS,
    Command, CommandKind,
    Push, Pop, Arithmetic, Label, Goto, IfGoto, Function, Call, Return, Unknown,
)
from .emit_asm import AsmProgram
from .lowering import ARITHMETIC_ROUTINES, FRAME_ROUTINES, PUSH_POP_ROUTINES, LoweringPolicy

ENTRY_FUNCTION = "Sys.init"
BOOT_CONTEXT = "..BOOT.."
LIBRARY_CONTEXT = "..LIB.."

STACK_BASE = 256
POINTER_BASE = 3
TEMP_BASE = 5
FRAME_SIZE = 5  # return address + LCL, ARG, THIS, THAT

# scratch cells
R_ADDR = "R13"  # segment address / call argument count / return address
R_VALUE = "R14"  # parked operand / saved frame
R_LINK = "R15"  # shared subroutine return address

_BINARY_COMP = {
    "add": "D+M",
    "sub": "D-M",
    "and": "D&M",
    "or": "D|M",
}

_RELATIONAL_JUMP = {
    "eq": "JEQ",
    "lt": "JLT",
    "gt": "JGT",
}

_UNARY_COMP = {
    "neg": "-",
    "not": "!",
}

# saved frame slots restored by return, as offsets below FRAME
_RESTORE_ORDER = (
    (1, "THAT"),
    (2, "THIS"),
    (3, "ARG"),
    (4, "LCL"),
)


# -------------------------
# Primitive emitters
# -------------------------
def subroutine_label(routine: str) -> str:
    return f":{routine}"


def emit_load_constant(p: AsmProgram, value: int) -> None:
    p.add(f"@{value}")
    p.add("D=A")


def emit_jump(p: AsmProgram, target: str) -> None:
    p.add(f"@{target}")
    p.add("0;JMP")


def emit_push_d(p: AsmProgram, optimized: bool) -> None:
    # only A changes
    p.snippet("push D")
    if optimized:
        p.add("@SP")
        p.add("AM=M+1")
        p.add("A=A-1")
        p.add("M=D")
    else:
        p.add("@SP")
        p.add("A=M")
        p.add("M=D")
        p.add("@SP")
        p.add("M=M+1")


def emit_pop_d(p: AsmProgram, optimized: bool) -> None:
    p.snippet("pop D")
    if optimized:
        p.add("@SP")
        p.add("AM=M-1")
        p.add("D=M")
    else:
        p.add("@SP")
        p.add("A=M")
        p.add("A=A-1")
        p.add("D=M")
        p.add("@SP")
        p.add("M=M-1")


def emit_store_d(p: AsmProgram, target: str) -> None:
    p.add(f"@{target}")
    p.add("M=D")


def emit_segment_address(p: AsmProgram, base: str) -> None:
    p.snippet(f"{R_ADDR} = {base} + {R_ADDR}")
    p.add(f"@{R_ADDR}")
    p.add("D=M")
    p.add(f"@{base}")
    p.add("A=M")
    p.add("D=D+A")
    p.add(f"@{R_ADDR}")
    p.add("M=D")


def emit_frame_load(p: AsmProgram, offset: int) -> None:
    # D = *(FRAME - offset)
    p.add(f"@{offset}")
    p.add("D=A")
    p.add(f"@{R_VALUE}")
    p.add("A=M")
    p.add("A=A-D")
    p.add("D=M")


# -------------------------
# Generator
# -------------------------
@dataclass
class GeneratorState:
    module: str = ""
    function: str = ""
    label_index: int = 0


class CodeWriter:
    """
    Translates VM commands into one Hack assembly listing.

    Call order: begin_program() once, then for each module begin_module()
    followed by its commands, then end_program() once.
    """

    def __init__(self, policy: Optional[LoweringPolicy] = None, annotate: bool = True):
        self.policy = policy if policy is not None else LoweringPolicy.subroutine()
        self.program = AsmProgram(annotate=annotate)
        self.state = GeneratorState()
        self._started = False
        self._finished = False

    @property
    def optimized(self) -> bool:
        return self.policy.optimized

    # ---- naming ----
    def next_local_label(self) -> str:
        lab = f"{self.state.function}:{self.state.label_index}"
        self.state.label_index += 1
        return lab

    def static_symbol(self, index: int) -> str:
        return f"{self.state.module}.{index}"

    def vm_label(self, name: str) -> str:
        return f"{self.state.function}${name}"

    # ---- program / module control ----
    def begin_program(self, entry: str = ENTRY_FUNCTION) -> None:
        if self._started:
            raise RuntimeError("begin_program() already called")
        self._started = True

        self.program.header("BOOTSTRAP CODE:")
        self.state.function = BOOT_CONTEXT
        self.state.label_index = 0

        p = self.program
        emit_load_constant(p, STACK_BASE)
        emit_store_d(p, "SP")
        self.write_call(entry, 0)

    def begin_module(self, name: str) -> None:
        self._check_open()
        self.program.header(f"Translation of: {name}")
        bare = os.path.splitext(os.path.basename(name))[0]
        self.state.module = bare
        # commands ahead of the first `function` are scoped by module
        self.state.function = bare
        self.state.label_index = 0

    def end_program(self, output: Optional[str | Path] = None) -> AsmProgram:
        self._check_open()
        self._finished = True

        self.state.function = LIBRARY_CONTEXT
        self.state.label_index = 0
        self._write_library()

        if output is not None:
            self.program.save(output)
        return self.program

    def _check_open(self) -> None:
        if not self._started:
            raise RuntimeError("begin_program() must run first")
        if self._finished:
            raise RuntimeError("end_program() already called")

    # ---- dispatch ----
    def write(self, cmd: Command) -> None:
        self._check_open()
        if isinstance(cmd, (Push, Pop)):
            self.write_push_pop(cmd.kind, cmd.segment, cmd.index)
        elif isinstance(cmd, Arithmetic):
            self.write_arithmetic(cmd.op)
        elif isinstance(cmd, Label):
            self.write_label(cmd.name)
        elif isinstance(cmd, Goto):
            self.write_goto(cmd.name)
        elif isinstance(cmd, IfGoto):
            self.write_if(cmd.name)
        elif isinstance(cmd, Function):
            self.write_function(cmd.name, cmd.n_locals)
        elif isinstance(cmd, Call):
            self.write_call(cmd.name, cmd.n_args)
        elif isinstance(cmd, Return):
            self.write_return()
        elif isinstance(cmd, Unknown):
            pass
        else:
            raise TypeError(f"not a VM command: {cmd!r}")

    # ---- push / pop ----
    def write_push_pop(self, kind: CommandKind, segment: str, index: int) -> None:
        self._check_open()
        if kind is CommandKind.PUSH:
            verb = "push"
        elif kind is CommandKind.POP:
            verb = "pop"
        else:
            raise ValueError(f"push/pop expected, got {kind}")

        self.program.command(f"{verb.upper()}: <{segment}, {index}>")

        routine = f"{verb}_{segment}"
        if segment in INDIRECT_SEGMENTS and self.policy.uses_subroutine(routine):
            self._set_scratch(R_ADDR, index)
            self._call_subroutine(routine)
        elif verb == "push":
            self._inline_push(segment, index)
        else:
            self._inline_pop(segment, index)

    def _inline_push(self, segment: str, index: int) -> None:
        p = self.program
        if segment == "constant":
            emit_load_constant(p, index)
        elif segment == "pointer":
            p.add(f"@{POINTER_BASE + index}")
            p.add("D=M")
        elif segment == "temp":
            p.add(f"@{TEMP_BASE + index}")
            p.add("D=M")
        elif segment in INDIRECT_SEGMENTS:
            self._set_scratch(R_ADDR, index)
            self._push_indirect(INDIRECT_SEGMENTS[segment])
            return
        elif segment == "static":
            p.snippet("D = static[index]")
            p.add(f"@{self.static_symbol(index)}")
            p.add("D=M")
        else:
            raise ValueError(f"unknown segment: {segment}")
        emit_push_d(p, self.optimized)

    def _inline_pop(self, segment: str, index: int) -> None:
        p = self.program
        if segment == "constant":
            # pop and discard
            emit_pop_d(p, self.optimized)
        elif segment == "pointer":
            emit_pop_d(p, self.optimized)
            emit_store_d(p, str(POINTER_BASE + index))
        elif segment == "temp":
            emit_pop_d(p, self.optimized)
            emit_store_d(p, str(TEMP_BASE + index))
        elif segment in INDIRECT_SEGMENTS:
            self._set_scratch(R_ADDR, index)
            self._pop_indirect(INDIRECT_SEGMENTS[segment])
        elif segment == "static":
            emit_pop_d(p, self.optimized)
            p.snippet("static[index] = D")
            emit_store_d(p, self.static_symbol(index))
        else:
            raise ValueError(f"unknown segment: {segment}")

    def _push_indirect(self, base: str) -> None:
        # expects the segment index in R13
        p = self.program
        emit_segment_address(p, base)
        p.snippet(f"D = *{R_ADDR}")
        p.add(f"@{R_ADDR}")
        p.add("A=M")
        p.add("D=M")
        emit_push_d(p, self.optimized)

    def _pop_indirect(self, base: str) -> None:
        # expects the segment index in R13
        p = self.program
        emit_pop_d(p, self.optimized)
        p.snippet(f"{R_VALUE} = D")
        emit_store_d(p, R_VALUE)
        emit_segment_address(p, base)
        p.snippet(f"*{R_ADDR} = {R_VALUE}")
        p.add(f"@{R_VALUE}")
        p.add("D=M")
        p.add(f"@{R_ADDR}")
        p.add("A=M")
        p.add("M=D")

    def _set_scratch(self, cell: str, value: int) -> None:
        self.program.snippet(f"{cell} = {value}")
        emit_load_constant(self.program, value)
        emit_store_d(self.program, cell)

    # ---- arithmetic ----
    def write_arithmetic(self, op: str) -> None:
        self._check_open()
        if op not in ARITHMETIC_OPS:
            raise ValueError(f"unknown arithmetic op: {op}")

        self.program.command(f"ARITHMETIC: {op}")
        if self.policy.uses_subroutine(op):
            self._call_subroutine(op)
        else:
            self._inline_arithmetic(op)

    def _inline_arithmetic(self, op: str) -> None:
        p = self.program
        if op in UNARY_OPS:
            sign = _UNARY_COMP[op]
            if self.optimized:
                p.add("@SP")
                p.add("A=M-1")
                p.add(f"M={sign}M")
            else:
                emit_pop_d(p, self.optimized)
                p.add(f"D={sign}D")
                emit_push_d(p, self.optimized)
            return

        self._pop_operands()
        if op in BINARY_OPS:
            p.snippet(f"D = D {op} {R_VALUE}")
            p.add(f"@{R_VALUE}")
            p.add(f"D={_BINARY_COMP[op]}")
        elif op in RELATIONAL_OPS:
            label_true = self.next_local_label()
            label_end = self.next_local_label()

            p.snippet(f"D = D - {R_VALUE}")
            p.add(f"@{R_VALUE}")
            p.add("D=D-M")
            p.snippet(f"D = (D {op} 0) ? -1 : 0")
            p.add(f"@{label_true}")
            p.add(f"D;{_RELATIONAL_JUMP[op]}")
            p.add("D=0")
            emit_jump(p, label_end)
            p.label(label_true)
            p.add("D=-1")
            p.label(label_end)
        emit_push_d(p, self.optimized)

    def _pop_operands(self) -> None:
        # right operand parked in R14, left operand left in D
        p = self.program
        emit_pop_d(p, self.optimized)
        p.snippet(f"{R_VALUE} = D")
        emit_store_d(p, R_VALUE)
        emit_pop_d(p, self.optimized)

    # ---- program flow ----
    def write_label(self, name: str) -> None:
        self._check_open()
        self.program.command(f"LABEL: {name}")
        self.program.label(self.vm_label(name))

    def write_goto(self, name: str) -> None:
        self._check_open()
        self.program.command(f"GOTO: {name}")
        emit_jump(self.program, self.vm_label(name))

    def write_if(self, name: str) -> None:
        self._check_open()
        p = self.program
        p.command(f"IF-GOTO: {name}")
        emit_pop_d(p, self.optimized)
        p.add(f"@{self.vm_label(name)}")
        p.add("D;JNE")

    # ---- function calling ----
    def write_function(self, name: str, n_locals: int) -> None:
        self._check_open()
        p = self.program
        self.state.function = name
        self.state.label_index = 0

        p.header(f"FUNCTION: {name}({n_locals} locals)", "=")
        p.label(name)
        if n_locals > 0:
            p.snippet("clear local segment")
            p.add("D=0")
            for _ in range(n_locals):
                emit_push_d(p, self.optimized)

    def write_call(self, name: str, n_args: int) -> None:
        self._check_open()
        p = self.program
        p.command(f"CALL: {name}({n_args} args)")
        return_label = self.next_local_label()

        if self.policy.uses_subroutine("call"):
            self._set_scratch(R_ADDR, n_args)
            self._push_return_address(return_label)
            self._call_subroutine("call")
        else:
            self._push_return_address(return_label)
            self._save_frame()
            p.snippet(f"push constant {n_args}")
            emit_load_constant(p, n_args)
            emit_push_d(p, self.optimized)
            self._enter_frame()

        p.snippet(f"goto {name}")
        emit_jump(p, name)
        p.label(return_label)

    def _push_return_address(self, return_label: str) -> None:
        p = self.program
        p.snippet("push RA")
        p.add(f"@{return_label}")
        p.add("D=A")
        emit_push_d(p, self.optimized)

    def _save_frame(self) -> None:
        p = self.program
        for reg in ("LCL", "ARG", "THIS", "THAT", "SP"):
            p.snippet(f"push {reg}")
            p.add(f"@{reg}")
            p.add("D=M")
            emit_push_d(p, self.optimized)

    def _enter_frame(self) -> None:
        # stack holds ..., SP, nArgs  ->  ARG = SP - nArgs - 5, LCL = SP
        p = self.program
        self._inline_arithmetic("sub")
        p.snippet(f"push constant {FRAME_SIZE}")
        emit_load_constant(p, FRAME_SIZE)
        emit_push_d(p, self.optimized)
        self._inline_arithmetic("sub")

        p.snippet("pop ARG")
        emit_pop_d(p, self.optimized)
        emit_store_d(p, "ARG")

        p.snippet("LCL = SP")
        p.add("@SP")
        p.add("D=M")
        emit_store_d(p, "LCL")

    def write_return(self) -> None:
        self._check_open()
        self.program.command("RETURN")
        if self.policy.uses_subroutine("return"):
            # :return leaves through the caller's return address, never back here
            self.program.snippet("goto :return")
            emit_jump(self.program, subroutine_label("return"))
        else:
            self._inline_return()

    def _inline_return(self) -> None:
        p = self.program
        p.snippet(f"FRAME = LCL ({R_VALUE})")
        p.add("@LCL")
        p.add("D=M")
        emit_store_d(p, R_VALUE)

        p.snippet(f"RA = *(FRAME-{FRAME_SIZE}) ({R_ADDR})")
        emit_frame_load(p, FRAME_SIZE)
        emit_store_d(p, R_ADDR)

        p.snippet("*ARG = pop()")
        emit_pop_d(p, self.optimized)
        p.add("@ARG")
        p.add("A=M")
        p.add("M=D")

        p.snippet("SP = ARG+1")
        p.add("@ARG")
        p.add("D=M+1")
        emit_store_d(p, "SP")

        for offset, reg in _RESTORE_ORDER:
            p.snippet(f"{reg} = *(FRAME-{offset})")
            emit_frame_load(p, offset)
            emit_store_d(p, reg)

        p.snippet("goto RA")
        p.add(f"@{R_ADDR}")
        p.add("A=M")
        p.add("0;JMP")

    # ---- shared subroutines ----
    def _call_subroutine(self, routine: str) -> None:
        p = self.program
        back = self.next_local_label()
        p.snippet(f"call {subroutine_label(routine)}")
        p.add(f"@{back}")
        p.add("D=A")
        emit_store_d(p, R_LINK)
        emit_jump(p, subroutine_label(routine))
        p.label(back)

    def _subroutine_entry(self, routine: str) -> None:
        self.program.header(f"SUBROUTINE: {routine}", "=")
        self.program.label(subroutine_label(routine))

    def _subroutine_exit(self) -> None:
        p = self.program
        p.snippet("return")
        p.add(f"@{R_LINK}")
        p.add("A=M")
        p.add("0;JMP")

    def _write_library(self) -> None:
        shared = set(self.policy.shared_routines())
        if not shared:
            return

        if shared & set(PUSH_POP_ROUTINES):
            self.program.header("SUBROUTINES: PUSH/POP", "=")
        for routine in PUSH_POP_ROUTINES:
            if routine not in shared:
                continue
            verb, segment = routine.split("_", 1)
            self._subroutine_entry(routine)
            if verb == "push":
                self._push_indirect(INDIRECT_SEGMENTS[segment])
            else:
                self._pop_indirect(INDIRECT_SEGMENTS[segment])
            self._subroutine_exit()

        if shared & set(ARITHMETIC_ROUTINES):
            self.program.header("SUBROUTINES: ARITHMETIC", "=")
        for routine in ARITHMETIC_ROUTINES:
            if routine not in shared:
                continue
            self._subroutine_entry(routine)
            self._inline_arithmetic(routine)
            self._subroutine_exit()

        if shared & set(FRAME_ROUTINES):
            self.program.header("SUBROUTINES: FUNCTION CALLING", "=")
        if "call" in shared:
            # expects RA already pushed and nArgs in R13
            p = self.program
            self._subroutine_entry("call")
            self._save_frame()
            p.snippet(f"push {R_ADDR} (nArgs)")
            p.add(f"@{R_ADDR}")
            p.add("D=M")
            emit_push_d(p, self.optimized)
            self._enter_frame()
            self._subroutine_exit()
        if "return" in shared:
            self._subroutine_entry("return")
            self._inline_return()
