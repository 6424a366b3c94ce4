"""MidiExporter: writes a ParsedScore to a multi-track MIDI file."""

import logging
import re

from midiutil import MIDIFile

from tunescore.pitch import pitch_to_midi
from tunescore.score_models import STEPS_PER_BEAT, ParsedScore

logger = logging.getLogger(__name__)

# In midiutil Format 1 MIDI, track 0 is the conductor/tempo track.
# Note data written to track 0 is ignored by most players and notation apps.
TRACK_CONDUCTOR = 0  # Tempo and meter only, never receives notes
FIRST_VOICE_TRACK = 1

MAX_CHANNELS = 16
MIDI_NOTE_RANGE = range(128)
PERCUSSION_CHANNEL = 9  # General MIDI drums; skipped for pitched voices
CLOCKS_PER_TICK = 24  # MIDI clocks per metronome click (one quarter note)

_TIME_SIGNATURE_RE = re.compile(r"^\s*(\d+)\s*/\s*(\d+)\s*$")
_NAMED_METERS = {"C": (4, 4), "C|": (2, 2)}


class MidiExporter:
    """
    Writes one MIDI track per voice of a ParsedScore.

    Track layout (Format 1)
    -----------------------
    Track 0: conductor track (tempo and time signature, no notes)

    Track 1..n: one track per voice, in the order the voices were first
    seen, named after the voice. Each track gets its own channel so the
    voices can be muted or re-voiced independently in a MIDI player.

    Timing
    ------
    Steps are sixteenth notes, so ``beats = steps / 4`` and the tempo is
    the score's BPM.
    """

    DEFAULT_VELOCITY = 80  # MIDI velocity (0-127)

    def __init__(self, velocity: int = DEFAULT_VELOCITY) -> None:
        """
        Args:
            velocity: MIDI note-on velocity for every note.
        """
        self.velocity = velocity

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _steps_to_beats(self, steps: int) -> float:
        return steps / STEPS_PER_BEAT

    def _voice_order(self, score: ParsedScore) -> list[str]:
        voices = [voice for voice in score.metadata.voices if voice in score.notes_by_voice]
        voices.extend(voice for voice in score.notes_by_voice if voice not in voices)
        return voices

    def _parse_meter(self, value: str | None) -> tuple[int, int] | None:
        """
        Numerator and power-of-two exponent of a time signature.

        ``"3/4"`` gives ``(3, 2)``; ``"C"`` is 4/4 and ``"C|"`` is 2/2. Meters
        whose denominator is not a power of two give None.
        """
        if not value:
            return None
        meter = _NAMED_METERS.get(value.strip())
        if meter is None:
            match = _TIME_SIGNATURE_RE.match(value)
            if not match:
                return None
            meter = (int(match.group(1)), int(match.group(2)))
        numerator, denominator = meter
        if not 1 <= numerator <= 255 or denominator < 1 or denominator & (denominator - 1):
            return None
        return numerator, denominator.bit_length() - 1

    def _channel_for(self, index: int) -> int:
        channels = [c for c in range(MAX_CHANNELS) if c != PERCUSSION_CHANNEL]
        return channels[index % len(channels)]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, score: ParsedScore) -> MIDIFile:
        """Build the in-memory MIDIFile for ``score``."""
        voices = self._voice_order(score)
        midi = MIDIFile(
            numTracks=FIRST_VOICE_TRACK + len(voices),
            removeDuplicates=False,
            deinterleave=False,
        )

        midi.addTempo(TRACK_CONDUCTOR, 0, score.metadata.bpm)
        meter = self._parse_meter(score.metadata.time_signature)
        if meter is not None:
            midi.addTimeSignature(TRACK_CONDUCTOR, 0, meter[0], meter[1], CLOCKS_PER_TICK)

        for index, voice in enumerate(voices):
            track = FIRST_VOICE_TRACK + index
            channel = self._channel_for(index)
            midi.addTrackName(track, 0, voice)

            for note in score.notes_by_voice[voice]:
                midi_note = pitch_to_midi(note.pitch, note.octave)
                if midi_note not in MIDI_NOTE_RANGE:
                    logger.debug("Dropping note outside the MIDI range: %s", note)
                    continue
                midi.addNote(
                    track=track,
                    channel=channel,
                    pitch=midi_note,
                    time=self._steps_to_beats(note.start_time),
                    duration=self._steps_to_beats(note.duration),
                    volume=self.velocity,
                )

        return midi

    def export(self, score: ParsedScore, output_path: str) -> None:
        """
        Render a parsed score to a Standard MIDI File.

        Args:
            score:       The parsed score to write.
            output_path: Destination file path (e.g. "tune.mid").

        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        midi = self.build(score)
        with open(output_path, "wb") as f:
            midi.writeFile(f)

