"""tunescore CLI entry point."""

import sys
from pathlib import Path

import click

from tunescore import __version__
from tunescore.dialect import detect_dialect
from tunescore.logger_config import configure_logging
from tunescore.midi_exporter import MidiExporter
from tunescore.pitch import note_label
from tunescore.schedule import parse_score
from tunescore.score_models import ParsedScore


def _read_score(score_file: str) -> str:
    """Read a score file as UTF-8, exiting with status 1 on failure."""
    try:
        return Path(score_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        click.echo(f"  ERROR: Could not read '{score_file}' — {exc}", err=True)
        sys.exit(1)


def _warn_if_empty(score: ParsedScore) -> bool:
    if score.notes:
        return False
    click.echo("  WARNING: No notes found in the score.", err=True)
    return True


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="tunescore")
@click.option("--verbose", "-v", is_flag=True, help="Log skipped input at DEBUG level.")
def main(verbose: bool) -> None:
    """tunescore — ABC and legacy score parser with playback scheduling."""
    configure_logging(verbose)


# ── info subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("score_file", type=click.Path(exists=True, dir_okay=False, readable=True))
def info(score_file: str) -> None:
    """
    Summarise a score file.

    SCORE_FILE is an ABC tune or a legacy NOTE OCTAVE DURATION file.
    """
    content = _read_score(score_file)
    score = parse_score(content)
    meta = score.metadata

    click.echo(f"tunescore v{__version__}")
    click.echo(f"  File      : {score_file}")
    click.echo(f"  Dialect   : {detect_dialect(content).value}")
    click.echo(f"  Title     : {meta.title or '-'}")
    click.echo(f"  Key       : {meta.key or '-'}  |  Time: {meta.time_signature or '-'}")
    click.echo(f"  Tempo     : {meta.bpm} BPM")
    click.echo(f"  Voices    : {', '.join(meta.voices) or '-'}")
    click.echo(f"  Notes     : {len(score.notes)}")
    click.echo(f"  Length    : {score.total_steps} steps ({score.duration_seconds:.1f} s)")
    _warn_if_empty(score)


# ── schedule subcommand ────────────────────────────────────────────────────────

@main.command()
@click.argument("score_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=None,
    metavar="N",
    help="Print only the first N scheduled notes.",
)
def schedule(score_file: str, limit: int | None) -> None:
    """
    Print the playback schedule of a score file.

    Each line shows the offset from playback start in milliseconds, the
    note, its frequency, its length in steps and its voice.

    \b
    Examples:
      tunescore schedule tune.abc
      tunescore schedule song.txt --limit 20
    """
    score = parse_score(_read_score(score_file))
    if _warn_if_empty(score):
        return

    entries = score.playback_schedule
    if limit is not None:
        entries = entries[:limit]

    for entry in entries:
        label = note_label(entry.pitch, entry.octave)
        click.echo(
            f"{score.offset_ms(entry.start_time):9.1f} ms  {label:<4} "
            f"{entry.frequency:8.2f} Hz  {entry.duration:3d} steps  {entry.voice or '-'}"
        )


# ── midi subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("score_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file path. Defaults to the score path with a .mid suffix.",
)
@click.option(
    "--velocity",
    type=click.IntRange(1, 127),
    default=MidiExporter.DEFAULT_VELOCITY,
    show_default=True,
    help="MIDI note-on velocity.",
)
def midi(score_file: str, output: str | None, velocity: int) -> None:
    """
    Export a score file as a multi-track MIDI file.

    \b
    Examples:
      tunescore midi tune.abc
      tunescore midi tune.abc -o tune.mid --velocity 96
    """
    score = parse_score(_read_score(score_file))
    resolved_output = output if output is not None else str(Path(score_file).with_suffix(".mid"))

    click.echo(f"tunescore v{__version__}")
    click.echo(f"  Score  : {score_file}")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    if _warn_if_empty(score):
        sys.exit(1)

    click.echo(f"[1/2] Parsed {len(score.notes)} note(s) in {len(score.notes_by_voice)} voice(s).")
    click.echo(f"[2/2] Writing MIDI file → '{resolved_output}'...")
    exporter = MidiExporter(velocity=velocity)
    try:
        exporter.export(score, resolved_output)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write MIDI file — {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"Done!  Open '{resolved_output}' in any MIDI player.")
