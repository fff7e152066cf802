"""Tests for the command line runner."""

import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "src"))

import pytest
from main import main


class TestMain:
    """Run main() with explicit argv."""

    def test_program_file(self, capsys):
        code = main(["--program", str(ROOT / "programs" / "print_ten.asm")])
        out = capsys.readouterr().out
        assert code == 0
        assert "OUT 10" in out
        assert "State: HALTED" in out

    def test_inline_quiet(self, capsys):
        code = main(["--inline", "prn 3; prn 4; halt", "--quiet"])
        assert code == 0
        assert capsys.readouterr().out.split() == ["3", "4"]

    def test_disassemble(self, capsys):
        main(["--inline", "prn 3; halt", "--disassemble"])
        out = capsys.readouterr().out
        assert "00: prn 3" in out
        assert "02: halt" in out

    def test_trace(self, capsys):
        main(["--inline", "bell halt", "--trace"])
        out = capsys.readouterr().out
        assert "EXECUTION TRACE" in out
        assert "bell" in out

    def test_assembly_error(self, capsys):
        code = main(["--inline", "beep"])
        assert code == 1
        assert "Assembly error" in capsys.readouterr().out

    def test_program_too_long(self, capsys):
        code = main(["--inline", " ".join(["bell"] * 17)])
        assert code == 1
        assert "Load error" in capsys.readouterr().out

    def test_endless_loop_exit_code(self, capsys):
        code = main(["--inline", "jmp 0", "--max-cycles", "20", "--quiet"])
        assert code == 1

    def test_missing_file(self, capsys):
        assert main(["--program", "does/not/exist.asm"]) == 1

    def test_requires_source(self):
        with pytest.raises(SystemExit):
            main([])
