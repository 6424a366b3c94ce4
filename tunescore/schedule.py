"""Schedule building and the parse_score entry point."""

import logging

from tunescore.abc_parser import AbcParser
from tunescore.dialect import Dialect, detect_dialect
from tunescore.legacy_parser import LegacyParser
from tunescore.pitch import get_frequency
from tunescore.score_models import (
    DEFAULT_VOICE,
    Note,
    ParsedScore,
    ScheduledNote,
    ScoreMetadata,
)

logger = logging.getLogger(__name__)


def schedule_note(note: Note) -> ScheduledNote:
    return ScheduledNote(
        frequency=get_frequency(note.pitch, note.octave),
        start_time=note.start_time,
        duration=note.duration,
        pitch=note.pitch,
        octave=note.octave,
        voice=note.voice,
    )


def build_schedule(notes: list[Note], metadata: ScoreMetadata | None = None) -> ParsedScore:
    """
    Build the playback view of a note list.

    Notes are annotated with their frequency and sorted by start time;
    ``sorted`` is stable, so notes sharing a start keep their parse order.

    Args:
        notes:    Notes in parse order.
        metadata: Score metadata; defaults to an empty ScoreMetadata.

    Returns:
        A ParsedScore holding the notes, schedule, step and voice indexes and
        the total length in steps (0 for no notes).
    """
    schedule = sorted((schedule_note(note) for note in notes), key=lambda n: n.start_time)

    notes_by_step: dict[int, list[ScheduledNote]] = {}
    for scheduled in schedule:
        notes_by_step.setdefault(scheduled.start_time, []).append(scheduled)

    notes_by_voice: dict[str, list[Note]] = {}
    for note in notes:
        notes_by_voice.setdefault(note.voice or DEFAULT_VOICE, []).append(note)

    total_steps = max((note.start_time + note.duration for note in notes), default=0)

    return ParsedScore(
        notes=list(notes),
        metadata=metadata if metadata is not None else ScoreMetadata(),
        playback_schedule=schedule,
        notes_by_step=notes_by_step,
        notes_by_voice=notes_by_voice,
        total_steps=total_steps,
    )


def parse_score(content: str) -> ParsedScore:
    """
    Parse score text of either dialect into a ParsedScore.

    Never raises for any string input; unusable text gives an empty score.
    """
    dialect = detect_dialect(content)
    if dialect is Dialect.ABC:
        notes, metadata = AbcParser().parse(content)
    else:
        notes, metadata = LegacyParser().parse(content)
    logger.debug("Parsed %d note(s) as %s", len(notes), dialect.value)
    return build_schedule(notes, metadata)
