"""Tests for the command line interface."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
import main as cli


class TestParsing:
    """Test argument helpers."""

    def test_parse_hex_program(self):
        assert cli.parse_hex_program("6005 00E0,1200") == bytes(
            [0x60, 0x05, 0x00, 0xE0, 0x12, 0x00]
        )

    def test_parse_keys(self):
        assert cli.parse_keys("5,a F") == [0x5, 0xA, 0xF]


class TestMain:
    """Test end-to-end CLI runs."""

    def test_inline_program(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", [
            "main.py", "--hex", "A000 6000 6100 D015 1208", "--frames", "1",
        ])
        assert cli.main() == 0
        out = capsys.readouterr().out
        assert "Running inline program" in out
        assert "State: running" in out
        assert "█" in out

    def test_rom_file(self, monkeypatch, capsys, tmp_path):
        rom = tmp_path / "spin.ch8"
        rom.write_bytes(bytes([0x12, 0x00]))
        monkeypatch.setattr(sys, "argv", [
            "main.py", "--rom", str(rom), "--frames", "2", "--quiet",
        ])
        assert cli.main() == 0
        out = capsys.readouterr().out
        assert "Cycles" not in out

    def test_missing_rom(self, monkeypatch, capsys, tmp_path):
        monkeypatch.setattr(sys, "argv", [
            "main.py", "--rom", str(tmp_path / "nope.ch8"),
        ])
        assert cli.main() == 1
        assert "ROM file not found" in capsys.readouterr().out

    def test_fault_exit_code(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["main.py", "--hex", "00EE", "--frames", "1"])
        assert cli.main() == 1
        out = capsys.readouterr().out
        assert "Execution error" in out
        assert "State: halted" in out

    def test_requires_program(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["main.py"])
        with pytest.raises(SystemExit):
            cli.main()
