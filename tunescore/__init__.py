"""tunescore: ABC and legacy score parsing into timed playback schedules."""

from tunescore.dialect import Dialect, detect_dialect, is_abc_notation
from tunescore.pitch import get_frequency
from tunescore.schedule import build_schedule, parse_score
from tunescore.score_models import (
    DEFAULT_BPM,
    Note,
    ParsedScore,
    ScheduledNote,
    ScoreMetadata,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_BPM",
    "Dialect",
    "Note",
    "ParsedScore",
    "ScheduledNote",
    "ScoreMetadata",
    "build_schedule",
    "detect_dialect",
    "get_frequency",
    "is_abc_notation",
    "parse_score",
]
