"""Unit tests for the ABC notation parser."""

from tunescore.abc_parser import AbcParser, parse_tempo
from tunescore.score_models import Note


def _parse(body: str, header: str = "X:1\nK:C") -> list[Note]:
    notes, _metadata = AbcParser().parse(f"{header}\n{body}")
    return notes


def _pitches(notes: list[Note]) -> list[int]:
    return [note.pitch for note in notes]


def _starts(notes: list[Note]) -> list[int]:
    return [note.start_time for note in notes]


# ---------------------------------------------------------------------------
# Notes and durations
# ---------------------------------------------------------------------------

def test_simple_notes_advance_the_cursor() -> None:
    notes = _parse("C D E")
    assert notes == [
        Note(pitch=0, octave=4, start_time=0, duration=2, voice="V1"),
        Note(pitch=2, octave=4, start_time=2, duration=2, voice="V1"),
        Note(pitch=4, octave=4, start_time=4, duration=2, voice="V1"),
    ]


def test_case_and_octave_marks_select_octave() -> None:
    notes = _parse("C c C, c'")
    assert [note.octave for note in notes] == [4, 5, 3, 5]


def test_duration_suffixes() -> None:
    notes = _parse("C2 D/ E3/2 F")
    assert [note.duration for note in notes] == [4, 1, 3, 2]
    assert _starts(notes) == [0, 4, 5, 8]


def test_default_length_field_sets_base_steps() -> None:
    assert [n.duration for n in _parse("C D", header="X:1\nL:1/4\nK:C")] == [4, 4]
    assert [n.duration for n in _parse("C D", header="X:1\nL:1/16\nK:C")] == [1, 1]


def test_broken_rhythm_is_not_applied() -> None:
    notes = _parse("C>D")
    assert [note.duration for note in notes] == [2, 2]
    assert _starts(notes) == [0, 2]


# ---------------------------------------------------------------------------
# Key signatures and accidentals
# ---------------------------------------------------------------------------

def test_key_signature_is_inherited() -> None:
    assert _pitches(_parse("F G F", header="X:1\nK:G")) == [6, 7, 6]


def test_explicit_accidentals_override_key_for_rest_of_bar() -> None:
    assert _pitches(_parse("^F G =F F", header="X:1\nK:G")) == [6, 7, 5, 5]


def test_bar_line_clears_accidental_memory() -> None:
    assert _pitches(_parse("^F | F")) == [6, 5]
    assert _pitches(_parse("=F | F", header="X:1\nK:G")) == [5, 6]


def test_accidental_memory_is_per_octave() -> None:
    assert _pitches(_parse("^F f")) == [6, 5]


def test_flat_key() -> None:
    assert _pitches(_parse("B E A", header="X:1\nK:Bb")) == [10, 3, 9]


def test_inline_key_change_applies_from_its_position() -> None:
    assert _pitches(_parse("F [K:G] F")) == [5, 6]


def test_body_key_field_line() -> None:
    assert _pitches(_parse("F\nK:D\nF C")) == [5, 6, 1]


# ---------------------------------------------------------------------------
# Chords and rests
# ---------------------------------------------------------------------------

def test_chord_shares_start_and_duration() -> None:
    notes = _parse("[CEG]2 D")
    chord, following = notes[:3], notes[3]
    assert _pitches(chord) == [0, 4, 7]
    assert all(note.octave == 4 for note in chord)
    assert all(note.start_time == 0 and note.duration == 4 for note in chord)
    assert following.start_time == 4


def test_chord_without_suffix_uses_longest_inner_note() -> None:
    notes = _parse("[C2E] D")
    assert [note.duration for note in notes[:2]] == [4, 4]
    assert notes[2].start_time == 4


def test_chord_accidentals_are_remembered_in_the_bar() -> None:
    assert _pitches(_parse("[^FA] F")) == [6, 9, 6]


def test_chord_after_bar_line() -> None:
    notes = _parse("C |[CE] D")
    assert _starts(notes) == [0, 2, 2, 4]


def test_rests_advance_without_notes() -> None:
    assert _starts(_parse("C z D")) == [0, 4]
    assert _starts(_parse("C x2 D")) == [0, 6]
    assert _starts(_parse("X D")) == [2]


def test_full_measure_rest_is_four_base_lengths() -> None:
    assert _starts(_parse("Z D")) == [8]
    assert _starts(_parse("Z3 D")) == [8]


# ---------------------------------------------------------------------------
# Annotations and bar symbols
# ---------------------------------------------------------------------------

def test_decorations_and_annotations_are_skipped() -> None:
    notes = _parse('~C .D !trill!E +fermata+F "Am"A "G7"G')
    assert _pitches(notes) == [0, 2, 4, 5, 9, 7]
    assert _starts(notes) == [0, 2, 4, 6, 8, 10]


def test_tuplet_counts_do_not_change_timing() -> None:
    notes = _parse("(3CDE (3:2:2FG")
    assert _pitches(notes) == [0, 2, 4, 5, 7]
    assert _starts(notes) == [0, 2, 4, 6, 8]


def test_grace_groups_are_skipped() -> None:
    notes = _parse("{g}C {ab}D")
    assert _pitches(notes) == [0, 2]
    assert _starts(notes) == [0, 2]


def test_repeat_and_ending_markers() -> None:
    notes = _parse("|: C |1 D :|[2 E |]")
    assert _pitches(notes) == [0, 2, 4]
    assert _starts(notes) == [0, 2, 4]


def test_thick_bar_is_not_a_chord() -> None:
    notes = _parse("[| C D |]")
    assert _starts(notes) == [0, 2]


def test_note_followed_by_repeat_is_music_not_a_field() -> None:
    assert _pitches(_parse("A:|")) == [9]


def test_trailing_comment_is_ignored() -> None:
    assert _pitches(_parse("C D % E F")) == [0, 2]


def test_unknown_characters_are_skipped() -> None:
    assert _pitches(_parse("C & D ?")) == [0, 2]


# ---------------------------------------------------------------------------
# Ties
# ---------------------------------------------------------------------------

def test_tied_notes_merge() -> None:
    notes = _parse("C2-C2 D")
    assert notes[0] == Note(pitch=0, octave=4, start_time=0, duration=8, voice="V1")
    assert notes[1].start_time == 8
    assert len(notes) == 2


def test_tie_chain_merges_into_one_note() -> None:
    notes = _parse("C-C-C")
    assert [(n.start_time, n.duration) for n in notes] == [(0, 6)]


def test_tie_without_continuation_is_kept() -> None:
    notes = _parse("C-D")
    assert [(n.pitch, n.duration) for n in notes] == [(0, 2), (2, 2)]


def test_tied_chord() -> None:
    notes = _parse("[CE]-[CE]")
    assert [(n.pitch, n.duration) for n in notes] == [(0, 4), (4, 4)]


# ---------------------------------------------------------------------------
# Voices and lines
# ---------------------------------------------------------------------------

def test_voices_keep_independent_cursors() -> None:
    notes, metadata = AbcParser().parse("X:1\nK:C\nV:1\nC D\nV:2\nE F\nV:1\nG")
    assert [(n.pitch, n.start_time, n.voice) for n in notes] == [
        (0, 0, "1"),
        (2, 2, "1"),
        (4, 0, "2"),
        (5, 2, "2"),
        (7, 4, "1"),
    ]
    assert metadata.voices == ("V1", "1", "2")


def test_voice_name_ignores_properties() -> None:
    notes, metadata = AbcParser().parse("X:1\nV:T1 clef=treble\nK:C\nC")
    assert notes[0].voice == "T1"
    assert "T1" in metadata.voices


def test_inline_voice_switch() -> None:
    notes = _parse("C D [V:2] E")
    assert [(n.start_time, n.voice) for n in notes] == [(0, "V1"), (2, "V1"), (0, "2")]


def test_line_continuation() -> None:
    assert _starts(_parse("C D \\\nE F")) == [0, 2, 4, 6]


def test_lyrics_lines_are_ignored() -> None:
    notes = _parse("C D\nw: la la\nE")
    assert _pitches(notes) == [0, 2, 4]
    assert notes[2].start_time == 4


def test_length_change_in_body() -> None:
    notes = _parse("C\nL:1/4\nD E")
    assert [(n.start_time, n.duration) for n in notes] == [(0, 2), (2, 4), (6, 4)]


def test_dotted_notes() -> None:
    notes = _parse("A. B A.. B2.")
    assert [(n.start_time, n.duration) for n in notes] == [(0, 3), (3, 2), (5, 4), (9, 6)]


def test_dotted_rests_and_chords() -> None:
    notes = _parse("A/. z. [CE]. G")
    assert [(n.pitch, n.start_time, n.duration) for n in notes] == [
        (9, 0, 2),
        (0, 5, 3),
        (4, 5, 3),
        (7, 8, 2),
    ]


def test_leading_dot_is_staccato() -> None:
    notes = _parse("C .D .E")
    assert [(n.start_time, n.duration) for n in notes] == [(0, 2), (2, 2), (4, 2)]


def test_inline_tempo_and_meter_in_body_leave_metadata() -> None:
    notes, metadata = AbcParser().parse(
        "X:1\nM:4/4\nQ:1/4=100\nK:C\nC [Q:1/4=60][M:3/4] D [L:1/4] E"
    )
    assert metadata.bpm == 100
    assert metadata.time_signature == "4/4"
    assert [(n.start_time, n.duration) for n in notes] == [(0, 2), (2, 2), (4, 4)]


def test_no_notes_before_key_field() -> None:
    notes, metadata = AbcParser().parse("X:1\nT:No key\nC D E")
    assert notes == []
    assert metadata.title == "No key"


# ---------------------------------------------------------------------------
# Metadata and robustness
# ---------------------------------------------------------------------------

def test_header_metadata() -> None:
    _notes, metadata = AbcParser().parse(
        "X:1\nT:Speed the Plough\nT:Alternate\nM:4/4\nL:1/8\nQ:1/4=100\nK:Gmaj\nGABc"
    )
    assert metadata.title == "Speed the Plough"
    assert metadata.time_signature == "4/4"
    assert metadata.default_note_length == "1/8"
    assert metadata.key == "Gmaj"
    assert metadata.bpm == 100


def test_default_metadata() -> None:
    _notes, metadata = AbcParser().parse("X:1\nK:C\nC")
    assert metadata.bpm == 120
    assert metadata.default_note_length == "1/8"
    assert metadata.voices == ("V1",)


def test_parse_tempo() -> None:
    assert parse_tempo("1/4=120") == 120
    assert parse_tempo("1/8=120") == 60
    assert parse_tempo("3/8=80") == 120
    assert parse_tempo("90") == 90
    assert parse_tempo("fast") == 120
    assert parse_tempo("0") == 120


def test_parse_tempo_with_long_digit_run() -> None:
    huge = "9" * 400
    assert parse_tempo(f"{huge}/1=120") == int(huge) * 480


def test_malformed_body_does_not_raise() -> None:
    notes = _parse('[[[ ]]] ^^^ ((( "unterminated !also')
    assert isinstance(notes, list)


def test_non_ascii_digits_are_not_counts() -> None:
    assert _pitches(_parse("(²A B")) == [9, 11]
    assert _pitches(_parse("|[²C [³D]")) == [0, 2]


def test_parse_state_is_fresh_per_call() -> None:
    parser = AbcParser()
    first, _ = parser.parse("X:1\nK:G\n^^F F")
    second, _ = parser.parse("X:1\nK:C\nF")
    assert _pitches(first) == [7, 7]
    assert second == [Note(pitch=5, octave=4, start_time=0, duration=2, voice="V1")]
