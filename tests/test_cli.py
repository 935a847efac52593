from __future__ import annotations

from pathlib import Path

from hackemu import load
from vmtranslator.cli import find_modules, main, output_path_for

from conftest import HALT, SYS_LCL

SYS_VM = "function Sys.init 0\npush constant 40\ncall Lib.inc 1\n" + HALT
LIB_VM = "function Lib.inc 0\npush argument 0\npush constant 2\nadd\nreturn\n"


def run_asm(path: Path):
    cpu, _ = load(path.read_text(encoding="utf-8"))
    cpu.run()
    return cpu


def make_project(root: Path, name: str = "Proj") -> Path:
    d = root / name
    d.mkdir()
    (d / "Sys.vm").write_text(SYS_VM, encoding="utf-8")
    (d / "Lib.vm").write_text(LIB_VM, encoding="utf-8")
    (d / "notes.txt").write_text("not a module\n", encoding="utf-8")
    return d


def test_find_modules_and_output_names(tmp_path):
    d = make_project(tmp_path)
    assert [p.name for p in find_modules(str(d), tmp_path)] == ["Lib.vm", "Sys.vm"]
    assert find_modules(str(d / "Sys.vm"), tmp_path) == [d / "Sys.vm"]
    assert [p.name for p in find_modules(None, d)] == ["Lib.vm", "Sys.vm"]

    assert output_path_for(str(d / "Sys.vm"), tmp_path) == d / "Sys.asm"
    assert output_path_for(str(d), tmp_path) == d / "Proj.asm"
    assert output_path_for(None, d) == d / "Proj.asm"


def test_translate_directory(tmp_path, capsys):
    d = make_project(tmp_path)
    assert main([str(d)]) == 0
    out = d / "Proj.asm"
    assert out.exists()
    assert "OK. asm_written=" in capsys.readouterr().out

    cpu = run_asm(out)
    assert cpu.ram[SYS_LCL] == 42
    assert cpu.ram[0] == SYS_LCL + 1


def test_translate_working_directory(tmp_path, monkeypatch):
    d = make_project(tmp_path, "Work")
    monkeypatch.chdir(d)
    assert main([]) == 0
    assert (d / "Work.asm").exists()


def test_translate_single_file_with_options(tmp_path):
    d = make_project(tmp_path)
    src = d / "Sys.vm"
    out = tmp_path / "custom.asm"
    assert main([str(src), "-o", str(out), "--lowering", "inline", "--no-annotate", "--unoptimized"]) == 0
    text = out.read_text(encoding="utf-8")
    assert "//" not in text
    assert "(:" not in text
    assert "@Lib.inc" in text


def test_custom_entry_point(tmp_path):
    d = tmp_path / "Entry"
    d.mkdir()
    (d / "Main.vm").write_text("function Main.start 0\npush constant 9\npop temp 0\n" + HALT, encoding="utf-8")
    assert main([str(d), "--entry", "Main.start"]) == 0
    cpu = run_asm(d / "Entry.asm")
    assert cpu.ram[5] == 9


def test_missing_input_is_fatal(tmp_path, capsys):
    assert main([str(tmp_path / "Nope")]) == 2
    assert "[vmtranslator] ERROR:" in capsys.readouterr().err

    empty = tmp_path / "Empty"
    empty.mkdir()
    assert main([str(empty)]) == 2
    assert not (empty / "Empty.asm").exists()


def test_unreadable_module_writes_nothing(tmp_path):
    assert main([str(tmp_path / "Ghost.vm")]) == 2
    assert not (tmp_path / "Ghost.asm").exists()


def test_malformed_lines_are_reported_and_skipped(tmp_path, capsys):
    d = make_project(tmp_path)
    (d / "Sys.vm").write_text(SYS_VM.replace("push constant 40", "push constant 40\npush local x\nwibble"), encoding="utf-8")

    assert main([str(d)]) == 0
    err = capsys.readouterr().err
    assert "[parse error] Sys.vm line=3" in err
    assert "[warn] Sys.vm line=4" in err

    cpu = run_asm(d / "Proj.asm")
    assert cpu.ram[SYS_LCL] == 42


def test_strict_mode_refuses_to_write(tmp_path):
    d = make_project(tmp_path)
    (d / "Lib.vm").write_text(LIB_VM + "pop local\n", encoding="utf-8")
    assert main([str(d), "--strict"]) == 3
    assert not (d / "Proj.asm").exists()


def test_unwritable_output_is_fatal(tmp_path, capsys):
    d = make_project(tmp_path)
    assert main([str(d), "-o", str(tmp_path / "no" / "such" / "dir.asm")]) == 4
    assert "cannot write" in capsys.readouterr().err
