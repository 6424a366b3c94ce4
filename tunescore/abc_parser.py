"""AbcParser: walks ABC notation text and emits timed notes per voice."""

import logging
import re
from dataclasses import dataclass, field
from fractions import Fraction

from tunescore.duration import (
    DEFAULT_BASE_STEPS,
    base_steps_for_length,
    resolve_duration,
    round_half_up,
)
from tunescore.pitch import parse_key_signature, resolve_pitch
from tunescore.score_models import DEFAULT_BPM, DEFAULT_VOICE, Note, ScoreMetadata

logger = logging.getLogger(__name__)

DEFAULT_NOTE_LENGTH = "1/8"

_HEADER_FIELD_RE = re.compile(r"^([A-Za-z]):(.*)$")
# Inside the body a note or rest letter followed by ":" is music (``A:|``).
_BODY_FIELD_RE = re.compile(r"^([H-WYh-wy]):(.*)$")
_INLINE_FIELD_RE = re.compile(r"\[([A-Za-z]):([^\]]*)\]")

_NOTE_RE = re.compile(r"([\^_=]*)([A-Ga-g])([',]*)([0-9/<>]*\.*)(-?)")
_CHORD_NOTE_RE = re.compile(r"([\^_=]*)([A-Ga-g])([',]*)([0-9/]*\.*)(-?)")
_REST_RE = re.compile(r"([zxXZ])([0-9/]*\.*)")
_CHORD_DURATION_RE = re.compile(r"([0-9/<>]*\.*)(-?)")
_TUPLET_RE = re.compile(r"\([0-9]+(?::[0-9]*)*")
_ACCIDENTALS_RE = re.compile(r"[\^_=]+")

_TEMPO_RATIO_RE = re.compile(r"([0-9]+)/([0-9]+)\s*=\s*([0-9]+)")
_TEMPO_SIMPLE_RE = re.compile(r"([0-9]+)")

DIGITS = "0123456789"
DECORATIONS = "~.HLMOPSTuv"
BAR_FOLLOWERS = "|]:123456789"


@dataclass
class _Event:
    """A note as first parsed, before tied notes are merged."""

    note: Note
    tied: bool = False


@dataclass
class _AbcContext:
    """Mutable state of a single parse call; never shared between calls."""

    base_steps: int = DEFAULT_BASE_STEPS
    in_body: bool = False
    key_signature: dict[str, int] = field(default_factory=dict)
    bar_accidentals: dict[str, int] = field(default_factory=dict)
    current_voice: str = DEFAULT_VOICE
    voice_positions: dict[str, int] = field(default_factory=lambda: {DEFAULT_VOICE: 0})
    events: list[_Event] = field(default_factory=list)

    bpm: int = DEFAULT_BPM
    title: str | None = None
    time_signature: str | None = None
    key: str | None = None
    default_note_length: str = DEFAULT_NOTE_LENGTH

    @property
    def now(self) -> int:
        return self.voice_positions[self.current_voice]

    def advance(self, steps: int) -> None:
        self.voice_positions[self.current_voice] += steps

    def switch_voice(self, value: str) -> None:
        parts = value.split()
        voice = parts[0] if parts else DEFAULT_VOICE
        self.current_voice = voice
        self.voice_positions.setdefault(voice, 0)

    def emit(self, pitch: int, octave: int, duration: int, tied: bool) -> None:
        note = Note(
            pitch=pitch,
            octave=octave,
            start_time=self.now,
            duration=duration,
            voice=self.current_voice,
        )
        self.events.append(_Event(note=note, tied=tied))

    def metadata(self) -> ScoreMetadata:
        return ScoreMetadata(
            bpm=self.bpm,
            title=self.title,
            time_signature=self.time_signature,
            key=self.key,
            default_note_length=self.default_note_length,
            voices=tuple(self.voice_positions),
        )


def _join_continuations(content: str) -> list[str]:
    """Join lines ending in a backslash with the line that follows."""
    lines: list[str] = []
    pending = ""
    for raw_line in content.split("\n"):
        line = raw_line.rstrip()
        if line.endswith("\\"):
            pending += line[:-1]
        else:
            lines.append(pending + line)
            pending = ""
    if pending:
        lines.append(pending)
    return lines


def parse_tempo(value: str) -> int:
    """
    BPM of a ``Q:`` value in quarter-note beats.

    ``1/4=120`` gives 120, ``1/8=120`` gives 60, a bare ``90`` gives 90.
    Values without digits, or computing to zero, give the default tempo.
    """
    ratio = _TEMPO_RATIO_RE.search(value)
    if ratio:
        denominator = int(ratio.group(2))
        if denominator == 0:
            return DEFAULT_BPM
        beat_fraction = Fraction(int(ratio.group(1)), denominator)
        bpm = round_half_up(int(ratio.group(3)) * beat_fraction * 4)
        return bpm or DEFAULT_BPM
    simple = _TEMPO_SIMPLE_RE.search(value)
    if simple:
        return int(simple.group(1)) or DEFAULT_BPM
    return DEFAULT_BPM


class AbcParser:
    """
    Parses a pragmatic subset of ABC v2.1 into notes on a step grid.

    Walk overview
    -------------
    Lines ending in ``\\`` are joined first. Header fields (``T M L Q K V``)
    are read until the first ``K:`` field, which switches to the body for
    the rest of the parse. Each body line is scanned left to right:

    1. **Bars** (``|``, ``:``, ``[|``) clear the per-bar accidental memory.
    2. **Annotations** (decorations, ``!...!``, ``+...+``, quoted chord names,
       grace groups, tuplet counts, slurs) are skipped.
    3. **Chords** ``[...]`` place every inner note at the voice cursor with
       one shared duration and advance the cursor once.
    4. **Rests** ``z x X`` advance the cursor; ``Z`` is a full-measure rest of
       four base lengths.
    5. **Notes** resolve pitch through the key signature and bar memory and
       advance the cursor by their duration.

    Every voice keeps its own cursor. Tied notes are merged after the walk.
    The parser never raises; malformed input is skipped.
    """

    MIN_OCTAVE = 3
    MAX_OCTAVE = 5
    MEASURE_REST_UNITS = 4

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _apply_field(self, ctx: _AbcContext, name: str, value: str) -> None:
        """Apply a header, body or inline field to the parse state."""
        name = name.upper()
        value = value.strip()

        if name == "T":
            if not ctx.in_body and ctx.title is None:
                ctx.title = value
        elif name == "M":
            if not ctx.in_body:
                ctx.time_signature = value
        elif name == "L":
            if not ctx.in_body:
                ctx.default_note_length = value
            ctx.base_steps = base_steps_for_length(value, ctx.base_steps)
        elif name == "Q":
            if not ctx.in_body:
                ctx.bpm = parse_tempo(value)
        elif name == "K":
            key_signature = parse_key_signature(value)
            if key_signature is not None:
                ctx.key_signature = key_signature
            else:
                logger.debug("Unrecognised key '%s'; keeping current key signature", value)
            if not ctx.in_body:
                ctx.key = value
                ctx.in_body = True
        elif name == "V":
            ctx.switch_voice(value)

    def _skip_bar(self, ctx: _AbcContext, text: str, i: int) -> int:
        ctx.bar_accidentals.clear()
        i += 1
        while i < len(text):
            char = text[i]
            if char in BAR_FOLLOWERS:
                i += 1
            elif char == "[" and i + 1 < len(text) and text[i + 1] in DIGITS:
                i += 1
            else:
                break
        return i

    def _skip_delimited(self, text: str, i: int, closer: str) -> int:
        """Skip from an opening delimiter at ``i`` past its ``closer``."""
        close = text.find(closer, i + 1)
        return len(text) if close == -1 else close + 1

    def _parse_chord(self, ctx: _AbcContext, text: str, i: int, close: int) -> int:
        """Parse ``[...]`` starting at ``i`` whose ``]`` is at ``close``."""
        content = text[i + 1 : close]
        parsed: list[tuple[int, int, bool]] = []
        max_duration = ctx.base_steps

        j = 0
        while j < len(content):
            if content[j].isspace():
                j += 1
                continue
            match = _CHORD_NOTE_RE.match(content, j)
            if not match:
                j += 1
                continue
            accidentals, letter, marks, length, tie = match.groups()
            resolved = resolve_pitch(
                letter,
                marks,
                accidentals,
                ctx.key_signature,
                ctx.bar_accidentals,
                self.MIN_OCTAVE,
                self.MAX_OCTAVE,
            )
            if resolved is not None:
                max_duration = max(max_duration, resolve_duration(length, ctx.base_steps))
                parsed.append((resolved[0], resolved[1], bool(tie)))
            j = match.end()

        suffix = _CHORD_DURATION_RE.match(text, close + 1)
        token, chord_tie = suffix.group(1), suffix.group(2)
        duration = resolve_duration(token, ctx.base_steps) if token else max_duration

        for pitch, octave, tied in parsed:
            ctx.emit(pitch, octave, duration, tied or bool(chord_tie))
        ctx.advance(duration)
        return suffix.end()

    def _parse_bracket(self, ctx: _AbcContext, text: str, i: int) -> int:
        inline = _INLINE_FIELD_RE.match(text, i)
        if inline:
            self._apply_field(ctx, inline.group(1), inline.group(2))
            return inline.end()
        if i + 1 < len(text) and text[i + 1] in DIGITS:
            # Ending marker such as [1 or [2.
            return i + 2
        close = text.find("]", i)
        if close > i:
            return self._parse_chord(ctx, text, i, close)
        return i + 1

    def _parse_rest(self, ctx: _AbcContext, text: str, i: int) -> int:
        match = _REST_RE.match(text, i)
        kind, token = match.groups()
        if kind == "Z":
            ctx.advance(ctx.base_steps * self.MEASURE_REST_UNITS)
        else:
            ctx.advance(resolve_duration(token, ctx.base_steps))
        return match.end()

    def _parse_note(self, ctx: _AbcContext, text: str, i: int) -> int:
        match = _NOTE_RE.match(text, i)
        if not match:
            # Accidentals with no note letter after them.
            run = _ACCIDENTALS_RE.match(text, i)
            return run.end() if run else i + 1

        accidentals, letter, marks, length, tie = match.groups()
        resolved = resolve_pitch(
            letter,
            marks,
            accidentals,
            ctx.key_signature,
            ctx.bar_accidentals,
            self.MIN_OCTAVE,
            self.MAX_OCTAVE,
        )
        if resolved is not None:
            duration = resolve_duration(length, ctx.base_steps)
            ctx.emit(resolved[0], resolved[1], duration, bool(tie))
            ctx.advance(duration)
        return match.end()

    def _parse_body_line(self, ctx: _AbcContext, text: str) -> None:
        i = 0
        n = len(text)
        while i < n:
            char = text[i]

            if char.isspace():
                i += 1
            elif char in "|:" or text.startswith("[|", i):
                i = self._skip_bar(ctx, text, i)
            elif char in DECORATIONS:
                i += 1
            elif char in "!+":
                i = self._skip_delimited(text, i, char)
            elif char == "(" and i + 1 < n and text[i + 1] in DIGITS:
                i = _TUPLET_RE.match(text, i).end()
            elif char == '"':
                i = self._skip_delimited(text, i, '"')
            elif char == "{":
                close = text.find("}", i)
                i = close + 1 if close != -1 else i + 1
            elif char == "[":
                i = self._parse_bracket(ctx, text, i)
            elif char in "zxXZ":
                i = self._parse_rest(ctx, text, i)
            elif char in "^_=" or char in "ABCDEFGabcdefg":
                i = self._parse_note(ctx, text, i)
            else:
                i += 1

    def _merge_ties(self, events: list[_Event]) -> list[Note]:
        """
        Merge each tied note with its continuation.

        The continuation is the next note in the same voice with the same
        pitch and octave that starts exactly where the tied note ends.
        """
        merged: list[Note] = []
        open_ties: dict[tuple[str | None, int, int, int], int] = {}

        for event in events:
            note = event.note
            key = (note.voice, note.pitch, note.octave, note.start_time)
            index = open_ties.pop(key, None)
            if index is not None:
                head = merged[index]
                note = Note(
                    pitch=head.pitch,
                    octave=head.octave,
                    start_time=head.start_time,
                    duration=head.duration + note.duration,
                    voice=head.voice,
                )
                merged[index] = note
            else:
                index = len(merged)
                merged.append(note)

            if event.tied:
                end = note.start_time + note.duration
                open_ties[(note.voice, note.pitch, note.octave, end)] = index

        return merged

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, content: str) -> tuple[list[Note], ScoreMetadata]:
        """
        Parse ABC text into notes and score metadata.

        Args:
            content: Full ABC tune text.

        Returns:
            A 2-tuple:
              - notes (list[Note]): in parse order, tied notes merged.
              - metadata (ScoreMetadata): header facts and the voices seen.
        """
        ctx = _AbcContext()

        for line in _join_continuations(content):
            stripped = line.strip()
            if not stripped or stripped.startswith("%"):
                continue

            field_re = _BODY_FIELD_RE if ctx.in_body else _HEADER_FIELD_RE
            field_match = field_re.match(stripped)
            if field_match:
                self._apply_field(ctx, field_match.group(1), field_match.group(2))
                continue

            if not ctx.in_body:
                logger.debug("Skipping non-field header line: %r", stripped)
                continue

            music = stripped.split("%", 1)[0]
            self._parse_body_line(ctx, music)

        return self._merge_ties(ctx.events), ctx.metadata()
