from __future__ import annotations

import pytest

from vmtranslator.emit_asm import AsmProgram


def test_rom_address_counts_instructions_only():
    p = AsmProgram(annotate=True)
    p.header("HEADER")
    p.add("@1")
    p.label("X")
    p.comment("note")
    p.add("D=A")
    assert p.rom_address == 2
    assert p.instructions() == ["@1", "(X)", "D=A"]


def test_annotation_marks_rom_addresses():
    p = AsmProgram(annotate=True)
    p.add("@7")
    p.add("D=A")
    assert p.lines[0].startswith("@7 ")
    assert p.lines[0].endswith("// ROM[00000]")
    assert p.lines[1].endswith("// ROM[00001]")


def test_without_annotation_only_code_is_kept():
    p = AsmProgram(annotate=False)
    p.header("HEADER")
    p.command("PUSH: <constant, 1>")
    p.snippet("push D")
    p.add("@SP")
    p.label("L")
    assert p.lines == ["@SP", "(L)"]
    assert p.text() == "@SP\n(L)\n"


def test_save_writes_file(tmp_path):
    p = AsmProgram(annotate=False)
    p.add("@0")
    out = tmp_path / "Out.asm"
    p.save(out)
    assert out.read_text(encoding="utf-8") == "@0\n"
    assert [x.name for x in tmp_path.iterdir()] == ["Out.asm"]


def test_failed_save_keeps_previous_output(tmp_path, monkeypatch):
    out = tmp_path / "Out.asm"
    out.write_text("previous\n", encoding="utf-8")

    p = AsmProgram(annotate=False)
    p.add("@0")

    def boom(self):
        raise RuntimeError("disk full")

    monkeypatch.setattr(AsmProgram, "text", boom)
    with pytest.raises(RuntimeError):
        p.save(out)

    assert out.read_text(encoding="utf-8") == "previous\n"
    assert [x.name for x in tmp_path.iterdir()] == ["Out.asm"]


def test_save_into_missing_directory_fails(tmp_path):
    p = AsmProgram(annotate=False)
    with pytest.raises(OSError):
        p.save(tmp_path / "missing" / "Out.asm")
