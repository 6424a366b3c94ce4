"""LegacyParser: reads the line-oriented ``NOTE OCTAVE DURATION`` score format."""

import logging
import re
from dataclasses import dataclass, field

from tunescore.pitch import LEGACY_NOTE_TO_PITCH
from tunescore.score_models import DEFAULT_BPM, Note, ScoreMetadata

logger = logging.getLogger(__name__)

DEFAULT_LEGACY_TRACK = "default"

_META_RE = re.compile(r"^#@\s*(\w+)\s*:\s*(.+)$")
_TRACK_RE = re.compile(r"^\[(\w+)(?::([0-9]+))?\]$")
_SYNC_RE = re.compile(r"^@([0-9]+)$")
_LEADING_INT_RE = re.compile(r"^\s*([0-9]+)")
_INT_RE = re.compile(r"^[0-9]+$")
_OCTAVE_RE = re.compile(r"^-?[0-9]+$")


@dataclass
class _LegacyContext:
    """Per-call track cursors and metadata."""

    current_track: str = DEFAULT_LEGACY_TRACK
    track_positions: dict[str, int] = field(
        default_factory=lambda: {DEFAULT_LEGACY_TRACK: 0}
    )
    notes: list[Note] = field(default_factory=list)
    bpm: int = DEFAULT_BPM
    title: str | None = None
    time_signature: str | None = None
    key: str | None = None

    @property
    def now(self) -> int:
        return self.track_positions[self.current_track]

    def seek(self, position: int) -> None:
        self.track_positions[self.current_track] = position

    def metadata(self) -> ScoreMetadata:
        return ScoreMetadata(
            bpm=self.bpm,
            title=self.title,
            time_signature=self.time_signature,
            key=self.key,
            voices=tuple(self.track_positions),
        )


class LegacyParser:
    """
    Parses the legacy one-event-per-line score format.

    Line kinds
    ----------
    ``#@key: value``      metadata (bpm/tempo, title, time/timesignature, key)
    ``# text``            comment
    ``[Track]``           switch track; ``[Track:16]`` also moves its cursor
    ``@32``               move the current track's cursor
    ``C 4 + E 4 + G 4 4`` chord; the last part with a duration sets it (default 4)
    ``C# 4 2``            single note: name, octave, duration in steps

    Octaves are clamped to 0-8. Lines that fit none of these are skipped
    without moving any cursor.
    """

    DEFAULT_CHORD_DURATION = 4
    MIN_OCTAVE = 0
    MAX_OCTAVE = 8

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _clamp_octave(self, text: str) -> int:
        return max(self.MIN_OCTAVE, min(self.MAX_OCTAVE, int(text)))

    def _apply_meta(self, ctx: _LegacyContext, line: str) -> None:
        match = _META_RE.match(line)
        if not match:
            logger.debug("Malformed metadata directive: %r", line)
            return
        key, value = match.group(1).lower(), match.group(2).strip()
        if key in ("bpm", "tempo"):
            number = _LEADING_INT_RE.match(value)
            ctx.bpm = (int(number.group(1)) if number else 0) or DEFAULT_BPM
        elif key == "title":
            ctx.title = value
        elif key in ("time", "timesignature"):
            ctx.time_signature = value
        elif key == "key":
            ctx.key = value

    def _switch_track(self, ctx: _LegacyContext, name: str, position: str | None) -> None:
        ctx.current_track = name
        if name not in ctx.track_positions:
            ctx.track_positions[name] = int(position) if position else 0
        elif position:
            ctx.seek(int(position))

    def _parse_chord(self, ctx: _LegacyContext, line: str) -> None:
        pitches: list[tuple[int, int]] = []
        duration = self.DEFAULT_CHORD_DURATION

        for part in line.split("+"):
            tokens = part.split()
            if len(tokens) < 2:
                continue
            pitch = LEGACY_NOTE_TO_PITCH.get(tokens[0].upper())
            if pitch is None or not _OCTAVE_RE.match(tokens[1]):
                continue
            pitches.append((pitch, self._clamp_octave(tokens[1])))
            if len(tokens) >= 3:
                explicit = int(tokens[2]) if _INT_RE.match(tokens[2]) else 0
                duration = explicit or self.DEFAULT_CHORD_DURATION

        if not pitches:
            logger.debug("Skipping chord line with no valid notes: %r", line)
            return

        start = ctx.now
        for pitch, octave in pitches:
            ctx.notes.append(
                Note(
                    pitch=pitch,
                    octave=octave,
                    start_time=start,
                    duration=duration,
                    voice=ctx.current_track,
                )
            )
        ctx.seek(start + duration)

    def _parse_note(self, ctx: _LegacyContext, line: str) -> None:
        tokens = line.split()
        if len(tokens) != 3:
            logger.debug("Skipping line that is not NOTE OCTAVE DURATION: %r", line)
            return
        name, octave, duration = tokens
        pitch = LEGACY_NOTE_TO_PITCH.get(name.upper())
        if pitch is None or not _OCTAVE_RE.match(octave) or not _INT_RE.match(duration):
            logger.debug("Skipping unparseable note line: %r", line)
            return
        if int(duration) < 1:
            logger.debug("Skipping zero-length note: %r", line)
            return

        start = ctx.now
        ctx.notes.append(
            Note(
                pitch=pitch,
                octave=self._clamp_octave(octave),
                start_time=start,
                duration=int(duration),
                voice=ctx.current_track,
            )
        )
        ctx.seek(start + int(duration))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, content: str) -> tuple[list[Note], ScoreMetadata]:
        """
        Parse legacy score text into notes and score metadata.

        Args:
            content: Full score text.

        Returns:
            A 2-tuple of the notes in line order and the collected metadata.
        """
        ctx = _LegacyContext()

        for raw_line in content.split("\n"):
            line = raw_line.strip()
            if not line:
                continue

            if line.startswith("#@"):
                self._apply_meta(ctx, line)
                continue
            if line.startswith("#"):
                continue

            track = _TRACK_RE.match(line)
            if track:
                self._switch_track(ctx, track.group(1), track.group(2))
                continue

            sync = _SYNC_RE.match(line)
            if sync:
                ctx.seek(int(sync.group(1)))
                continue

            if "+" in line:
                self._parse_chord(ctx, line)
            else:
                self._parse_note(ctx, line)

        return ctx.notes, ctx.metadata()
