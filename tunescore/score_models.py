"""Data models for parsed scores and their playback schedule."""

from dataclasses import dataclass, field

DEFAULT_BPM = 120
DEFAULT_VOICE = "V1"
STEPS_PER_BEAT = 4


def step_duration_ms(bpm: int) -> float:
    """Milliseconds per step (one sixteenth note) at the given tempo."""
    return 60000 / bpm / STEPS_PER_BEAT


@dataclass(frozen=True)
class Note:
    """
    A placed sound event on the step grid.

    Attributes:
        pitch:      Pitch class relative to C (0=C, 1=C#, ..., 11=B).
        octave:     Scientific octave number (4 = Middle C octave).
        start_time: Step offset from the beginning of the piece.
        duration:   Length in steps, always at least 1.
        voice:      Voice/track identifier, or None for the canonical voice.
    """

    pitch: int
    octave: int
    start_time: int
    duration: int
    voice: str | None = None


@dataclass(frozen=True)
class ScoreMetadata:
    """Piece-level facts collected while parsing."""

    bpm: int = DEFAULT_BPM
    title: str | None = None
    time_signature: str | None = None
    key: str | None = None
    default_note_length: str | None = None
    voices: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScheduledNote:
    """A note annotated with its equal-tempered playback frequency in Hz."""

    frequency: float
    start_time: int
    duration: int
    pitch: int
    octave: int
    voice: str | None = None

    @property
    def midi_number(self) -> int:
        """MIDI note number, e.g. 69 for A4."""
        return (self.octave + 1) * 12 + self.pitch


@dataclass(frozen=True)
class ParsedScore:
    """
    The complete result of parsing a score.

    ``playback_schedule`` is sorted by start time (stable), ``notes_by_step``
    maps a step to the scheduled notes starting exactly there, and
    ``notes_by_voice`` groups the raw notes per voice in parse order.
    """

    notes: list[Note]
    metadata: ScoreMetadata
    playback_schedule: list[ScheduledNote]
    notes_by_step: dict[int, list[ScheduledNote]] = field(default_factory=dict)
    notes_by_voice: dict[str, list[Note]] = field(default_factory=dict)
    total_steps: int = 0

    @property
    def step_ms(self) -> float:
        """Wall-clock length of one step at the score tempo."""
        return step_duration_ms(self.metadata.bpm)

    def offset_ms(self, step: int) -> float:
        """Real-time offset of ``step`` from the start of playback."""
        return step * self.step_ms

    @property
    def duration_seconds(self) -> float:
        return self.offset_ms(self.total_steps) / 1000
