"""Pitch tables, key signatures and accidental resolution."""

import re
from collections.abc import Mapping, MutableMapping

# ── Pitch constants ─────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
A4_MIDI = 69
A4_FREQUENCY = 440.0

#: Chromatic pitch class names (index 0 = C)
NOTE_NAMES: list[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

#: Natural semitone of each ABC note letter.
ABC_NOTE_TO_SEMITONE: dict[str, int] = {
    "C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11,
}

#: Note names accepted by the line-oriented format, including flat spellings.
LEGACY_NOTE_TO_PITCH: dict[str, int] = {
    "C": 0, "C#": 1, "DB": 1, "D": 2, "D#": 3, "EB": 3, "E": 4, "F": 5,
    "F#": 6, "GB": 6, "G": 7, "G#": 8, "AB": 8, "A": 9, "A#": 10, "BB": 10, "B": 11,
}

# ── Key signatures ──────────────────────────────────────────────────────────

_SHARP_ORDER = "FCGDAEB"
_FLAT_ORDER = "BEADGCF"

_SHARP_MAJORS = ["G", "D", "A", "E", "B", "F#", "C#"]
_FLAT_MAJORS = ["F", "Bb", "Eb", "Ab", "Db", "Gb", "Cb"]
_SHARP_MINORS = ["Em", "Bm", "F#m", "C#m", "G#m", "D#m", "A#m"]
_FLAT_MINORS = ["Dm", "Gm", "Cm", "Fm", "Bbm", "Ebm", "Abm"]


def _build_key_signatures() -> dict[str, dict[str, int]]:
    table: dict[str, dict[str, int]] = {"C": {}, "Am": {}}
    for count in range(1, 8):
        sharps = {letter: 1 for letter in _SHARP_ORDER[:count]}
        flats = {letter: -1 for letter in _FLAT_ORDER[:count]}
        table[_SHARP_MAJORS[count - 1]] = sharps
        table[_SHARP_MINORS[count - 1]] = dict(sharps)
        table[_FLAT_MAJORS[count - 1]] = flats
        table[_FLAT_MINORS[count - 1]] = dict(flats)
    return table


#: Key name -> {note letter: semitone offset}. "G" -> {"F": 1}, "Bbm" -> five flats.
KEY_SIGNATURES: Mapping[str, Mapping[str, int]] = _build_key_signatures()

_KEY_RE = re.compile(
    r"^([A-G][b#]?)\s*(minor|major|min|maj|mix|dor|phr|lyd|loc|m)?", re.IGNORECASE
)
_MINOR_MODES = {"m", "min", "minor"}


def parse_key_signature(value: str) -> dict[str, int] | None:
    """
    Resolve a ``K:`` field value to its standing accidentals.

    ``"G"`` and ``"Gmaj"`` give ``{"F": 1}``, ``"Dm"`` and ``"D minor"`` give
    ``{"B": -1}``. Unlisted modes (``Dmix``) use the major table for the root.

    Returns:
        The accidental mapping (empty for C, Am and roots missing from the
        table such as ``Cbm``), or None when the value has no root letter.
    """
    match = _KEY_RE.match(value.strip())
    if not match:
        return None
    root = match.group(1)
    root = root[0].upper() + root[1:]
    mode = (match.group(2) or "").lower()
    if mode in _MINOR_MODES:
        root += "m"
    return dict(KEY_SIGNATURES.get(root, {}))


# ── Frequencies ─────────────────────────────────────────────────────────────

def pitch_to_midi(pitch: int, octave: int) -> int:
    """
    Convert a pitch class (0-11) and an octave number to an absolute MIDI note.

    MIDI octave numbering: C-1 = 0, C0 = 12, C1 = 24, ... C4 (Middle C) = 60.
    """
    return (octave + 1) * SEMITONES_PER_OCTAVE + pitch


def get_frequency(pitch: int, octave: int) -> float:
    """Equal-tempered frequency in Hz, referenced to A4 = 440 Hz."""
    midi = pitch_to_midi(pitch, octave)
    return A4_FREQUENCY * 2 ** ((midi - A4_MIDI) / SEMITONES_PER_OCTAVE)


def note_label(pitch: int, octave: int) -> str:
    """Human-readable name, e.g. ``"F#4"``."""
    return f"{NOTE_NAMES[pitch % SEMITONES_PER_OCTAVE]}{octave}"


# ── Accidental resolution ───────────────────────────────────────────────────

def accidental_offset(markers: str) -> int:
    """
    Semitone offset of an ABC accidental run.

    ``^`` adds one, ``_`` subtracts one, ``=`` resets to zero; markers apply
    left to right, so ``^^`` is +2 and ``^=`` is 0.
    """
    offset = 0
    for marker in markers:
        if marker == "^":
            offset += 1
        elif marker == "_":
            offset -= 1
        elif marker == "=":
            offset = 0
    return offset


def octave_for(letter: str, octave_marks: str) -> int:
    """Octave of an ABC letter: uppercase is 4, lowercase 5, then ``'``/``,`` shifts."""
    octave = 4 if letter.isupper() else 5
    for mark in octave_marks:
        if mark == "'":
            octave += 1
        elif mark == ",":
            octave -= 1
    return octave


def resolve_pitch(
    letter: str,
    octave_marks: str,
    accidentals: str,
    key_signature: Mapping[str, int],
    bar_accidentals: MutableMapping[str, int],
    min_octave: int = 3,
    max_octave: int = 5,
) -> tuple[int, int] | None:
    """
    Resolve an ABC note occurrence to ``(pitch_class, octave)``.

    Precedence is explicit accidental, then an accidental written earlier in
    the same bar for this letter and octave, then the key signature. An
    explicit accidental is remembered in ``bar_accidentals`` under
    ``letter + octave`` (octave before clamping).

    Args:
        letter:          Note letter, ``A``-``G`` or ``a``-``g``.
        octave_marks:    Run of ``'`` and ``,`` following the letter.
        accidentals:     Run of ``^``, ``_`` and ``=`` preceding the letter;
                         empty when the note carries no accidental.
        key_signature:   Standing accidentals of the active key.
        bar_accidentals: Accidentals written so far in the current bar.
        min_octave:      Lowest octave returned.
        max_octave:      Highest octave returned.

    Returns:
        The pitch class and clamped octave, or None for a letter outside A-G.
    """
    base_letter = letter.upper()
    semitone = ABC_NOTE_TO_SEMITONE.get(base_letter)
    if semitone is None or len(letter) != 1:
        return None

    octave = octave_for(letter, octave_marks)
    memory_key = f"{base_letter}{octave}"

    if accidentals:
        offset = accidental_offset(accidentals)
        bar_accidentals[memory_key] = offset
    elif memory_key in bar_accidentals:
        offset = bar_accidentals[memory_key]
    else:
        offset = key_signature.get(base_letter, 0)

    pitch = (semitone + offset + SEMITONES_PER_OCTAVE) % SEMITONES_PER_OCTAVE
    octave = max(min_octave, min(max_octave, octave))
    return pitch, octave
