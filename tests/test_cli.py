"""Tests for the tunescore command line (click CliRunner, no subprocess)."""

from pathlib import Path

from click.testing import CliRunner

from tunescore import __version__
from tunescore.cli import main

SCALE = "X:1\nT:Scale\nM:4/4\nL:1/8\nQ:1/4=120\nK:C\nC E A|\n"


def _write(tmp_path: Path, name: str, content: str) -> str:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_version() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_info_summarises_abc(tmp_path: Path) -> None:
    score_file = _write(tmp_path, "scale.abc", SCALE)
    result = CliRunner().invoke(main, ["info", score_file])
    assert result.exit_code == 0
    assert "Dialect   : abc" in result.output
    assert "Title     : Scale" in result.output
    assert "Tempo     : 120 BPM" in result.output
    assert "Notes     : 3" in result.output
    assert "Length    : 6 steps" in result.output


def test_info_summarises_legacy(tmp_path: Path) -> None:
    score_file = _write(tmp_path, "song.txt", "#@bpm: 60\n[lead]\nC 4 4\n")
    result = CliRunner().invoke(main, ["info", score_file])
    assert result.exit_code == 0
    assert "Dialect   : legacy" in result.output
    assert "Voices    : default, lead" in result.output


def test_schedule_lists_notes_in_time_order(tmp_path: Path) -> None:
    score_file = _write(tmp_path, "scale.abc", SCALE)
    result = CliRunner().invoke(main, ["schedule", score_file])
    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert len(lines) == 3
    assert "C4" in lines[0] and "261.63 Hz" in lines[0]
    assert "250.0 ms" in lines[1]
    assert "A4" in lines[2] and "440.00 Hz" in lines[2]


def test_schedule_limit(tmp_path: Path) -> None:
    score_file = _write(tmp_path, "scale.abc", SCALE)
    result = CliRunner().invoke(main, ["schedule", score_file, "--limit", "1"])
    assert result.exit_code == 0
    assert len(result.output.strip().splitlines()) == 1


def test_schedule_warns_on_empty_score(tmp_path: Path) -> None:
    score_file = _write(tmp_path, "empty.txt", "# nothing here\n")
    result = CliRunner().invoke(main, ["schedule", score_file])
    assert result.exit_code == 0
    assert "No notes" in result.output


def test_midi_writes_default_output(tmp_path: Path) -> None:
    score_file = _write(tmp_path, "scale.abc", SCALE)
    result = CliRunner().invoke(main, ["midi", score_file, "--velocity", "96"])
    assert result.exit_code == 0
    out = tmp_path / "scale.mid"
    assert out.read_bytes().startswith(b"MThd")


def test_midi_explicit_output(tmp_path: Path) -> None:
    score_file = _write(tmp_path, "scale.abc", SCALE)
    out = tmp_path / "custom.mid"
    result = CliRunner().invoke(main, ["midi", score_file, "-o", str(out)])
    assert result.exit_code == 0
    assert out.exists()


def test_midi_refuses_empty_score(tmp_path: Path) -> None:
    score_file = _write(tmp_path, "empty.txt", "")
    result = CliRunner().invoke(main, ["midi", score_file])
    assert result.exit_code == 1
    assert "No notes" in result.output
    assert not (tmp_path / "empty.mid").exists()


def test_midi_reports_unwritable_output(tmp_path: Path) -> None:
    score_file = _write(tmp_path, "scale.abc", SCALE)
    out = tmp_path / "missing" / "x.mid"
    result = CliRunner().invoke(main, ["midi", score_file, "-o", str(out)])
    assert result.exit_code == 1
    assert "Could not write MIDI file" in result.output


def test_undecodable_file_is_reported(tmp_path: Path) -> None:
    path = tmp_path / "binary.abc"
    path.write_bytes(b"\xff\xfe\x00bad")
    result = CliRunner().invoke(main, ["info", str(path)])
    assert result.exit_code == 1
    assert "Could not read" in result.output


def test_missing_file_is_a_usage_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, ["info", str(tmp_path / "nope.abc")])
    assert result.exit_code == 2
