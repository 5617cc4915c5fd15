"""
Tests for the Fretboard Search

Run with: pytest tests/test_fretboard.py -v
"""

import itertools

import pytest

from chord_voicer.data.instruments import get_capability
from chord_voicer.data.schema import Barre, Constraints, Difficulty, Instrument, VoicingType
from chord_voicer.rules.chords import resolve_chord
from chord_voicer.rules.fretboard import (
    FretboardSearch,
    PartialVoicing,
    assign_fingers,
    classify_difficulty,
    matches_voicing_type,
    ordinal,
    position_label,
    search_fretted,
    sounded_pitch_classes,
)
from chord_voicer.rules.ranking import rank_shapes


def lowest_sounding_pc(shape, instrument="guitar"):
    open_notes = get_capability(instrument).tuning_notes()
    return min(open_notes[i] + f for i, f in enumerate(shape.frets) if f is not None) % 12


# =============================================================================
# TEST: Fingering
# =============================================================================

class TestAssignFingers:
    """Test finger assignment and barre detection."""

    def test_open_c(self):
        fingers, barres = assign_fingers((None, 3, 2, 0, 1, 0))
        assert fingers == (None, 3, 2, None, 1, None)
        assert barres == ()

    def test_fingers_follow_fret_order(self):
        """Lower frets take lower fingers whatever string they sit on."""
        fingers, _ = assign_fingers((None, None, 0, 2, 3, 2))
        assert fingers == (None, None, None, 1, 3, 2)
        fingers, _ = assign_fingers((3, 2, 0, 0, 0, 3))
        assert fingers == (2, 1, None, None, None, 3)

    def test_f_barre(self):
        fingers, barres = assign_fingers((1, 3, 3, 2, 1, 1))
        assert fingers == (1, 3, 4, 2, 1, 1)
        assert barres == (Barre(fret=1, from_string=0, to_string=5),)

    def test_five_positions_without_barre_fret(self):
        assert assign_fingers((1, 2, 3, 4, 5, None)) is None

    def test_barre_over_muted_string(self):
        assert assign_fingers((3, 5, None, 4, 3, 3)) is None

    def test_too_many_notes_above_barre(self):
        assert assign_fingers((1, 2, 3, 4, 5, 1)) is None


# =============================================================================
# TEST: Classification
# =============================================================================

class TestClassification:
    """Test difficulty, voicing type and position labels."""

    def test_open_chord_is_beginner(self):
        assert classify_difficulty((None, 3, 2, 0, 1, 0), ()) == Difficulty.BEGINNER

    def test_barre_is_never_beginner(self):
        barres = (Barre(fret=1, from_string=0, to_string=5),)
        assert classify_difficulty((1, 3, 3, 2, 1, 1), barres) == Difficulty.INTERMEDIATE

    def test_wide_stretch_is_advanced(self):
        assert classify_difficulty((None, 3, 5, None, 8, None), ()) == Difficulty.ADVANCED

    def test_voicing_types(self):
        c_open = (None, 3, 2, 0, 1, 0)
        pcs = [None, 0, 4, 7, 0, 4]
        assert matches_voicing_type(c_open, (), pcs, VoicingType.OPEN)
        assert not matches_voicing_type(c_open, (), pcs, VoicingType.BARRE)
        assert matches_voicing_type(c_open, (), pcs, VoicingType.ANY)
        assert matches_voicing_type(c_open, (), pcs, None)

    def test_drop_voicing_type(self):
        frets = (None, 3, 5, 4, 5, None)
        pcs = [None, 0, 7, 11, 4, None]
        assert matches_voicing_type(frets, (), pcs, VoicingType.DROP_VOICING)
        assert not matches_voicing_type(frets, (), pcs, VoicingType.OPEN)

    def test_position_label(self):
        assert position_label((None, 3, 2, 0, 1, 0)) == "Open position"
        assert position_label((None, 3, 5, 5, 5, 3)) == "3rd position"

    @pytest.mark.parametrize("n,text", [
        (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"),
        (11, "11th"), (12, "12th"), (13, "13th"), (21, "21st"), (22, "22nd"),
    ])
    def test_ordinal(self, n, text):
        assert ordinal(n) == text


# =============================================================================
# TEST: Search
# =============================================================================

class TestSearch:
    """Test search results against the chord and the constraints."""

    def test_every_shape_sounds_the_chord(self):
        chord = resolve_chord("Cmaj7")
        result = search_fretted(chord, Constraints())
        assert result.shapes
        assert result.generated >= len(result.shapes)
        for shape in result.shapes:
            sounded = set(sounded_pitch_classes(shape))
            assert set(chord.required_pitch_classes) <= sounded
            assert sounded <= set(chord.pitch_classes)
            assert all(f is None or 0 <= f <= 24 for f in shape.frets)
            assert shape.fretted_span <= 5

    def test_open_c_is_found(self):
        result = search_fretted(resolve_chord("C"), Constraints())
        assert (-1, 3, 2, 0, 1, 0) in {s.pattern for s in result.shapes}

    def test_fret_window(self):
        result = search_fretted(resolve_chord("Cmaj7"), Constraints(min_fret=5, max_fret=9))
        assert result.shapes
        for shape in result.shapes:
            assert all(f is None or 5 <= f <= 9 for f in shape.frets)

    def test_no_muted_strings(self):
        result = search_fretted(resolve_chord("G"), Constraints(allow_muted=False))
        assert result.shapes
        assert all(None not in s.frets for s in result.shapes)

    def test_difficulty_filter(self):
        result = search_fretted(resolve_chord("Am"), Constraints(difficulty="beginner"))
        assert result.shapes
        assert all(s.difficulty == Difficulty.BEGINNER for s in result.shapes)

    def test_barre_filter(self):
        result = search_fretted(resolve_chord("F"), Constraints(voicing_type="barre"))
        patterns = {s.pattern for s in result.shapes}
        assert (1, 3, 3, 2, 1, 1) in patterns
        for shape in result.shapes:
            assert shape.barres
            assert 0 not in shape.frets

    def test_drop_voicing_filter(self):
        result = search_fretted(resolve_chord("Cmaj7"), Constraints(voicing_type="drop_voicing"))
        assert result.shapes
        for shape in result.shapes:
            sounded = [i for i, f in enumerate(shape.frets) if f is not None]
            assert len(sounded) == 4
            assert sounded[-1] - sounded[0] == 3
            assert len(set(sounded_pitch_classes(shape))) == 4

    def test_string_subset(self):
        result = search_fretted(resolve_chord("D"), Constraints(string_subset=[2, 3, 4, 5]))
        assert result.shapes
        assert all(s.frets[0] is None and s.frets[1] is None for s in result.shapes)

    def test_avoid_open_strings(self):
        result = search_fretted(resolve_chord("E"), Constraints(open_preference="avoid"))
        assert result.shapes
        assert all(0 not in s.frets for s in result.shapes)

    def test_slash_bass_is_lowest(self):
        result = search_fretted(resolve_chord("D/F#"), Constraints())
        assert result.shapes
        assert all(lowest_sounding_pc(s) == 6 for s in result.shapes)

    def test_fingers_are_consistent(self):
        result = search_fretted(resolve_chord("Bm7"), Constraints(max_fret=7))
        for shape in result.shapes:
            for fret, finger in zip(shape.frets, shape.fingers):
                assert (finger is None) == (not fret)

    def test_bass(self):
        result = search_fretted(resolve_chord("A"), Constraints(max_fret=7), Instrument.BASS)
        assert result.shapes
        for shape in result.shapes:
            assert len(shape.frets) == 4
            assert shape.tuning == ("E", "A", "D", "G")
            assert sum(1 for f in shape.frets if f is not None) >= 2

    def test_alternate_tuning(self):
        result = search_fretted(resolve_chord("D"), Constraints(tuning="drop_d", max_fret=5))
        assert result.shapes
        assert all(s.tuning[0] == "D" for s in result.shapes)

    def test_impossible_constraints(self):
        c = Constraints(max_span=0, allow_muted=False)
        assert search_fretted(resolve_chord("C#7"), c).shapes == []

    def test_keyboard_rejected(self):
        with pytest.raises(ValueError):
            search_fretted(resolve_chord("C"), Constraints(), Instrument.KEYBOARD)

    def test_verbose_logging(self, capsys):
        search_fretted(resolve_chord("C"), Constraints(max_fret=3), verbose=True)
        assert "[Search]" in capsys.readouterr().out


# =============================================================================
# TEST: Scoring
# =============================================================================

class TestScoring:
    """Test that the familiar open shapes rank first."""

    @pytest.mark.parametrize("symbol,best", [
        ("Cmaj7", "x32000"),
        ("Am", "x02210"),
        ("Em", "022000"),
        ("D", "xx0232"),
    ])
    def test_best_unconstrained_shape(self, symbol, best):
        """The usual open-position fingering scores best."""
        ranked = rank_shapes(search_fretted(resolve_chord(symbol), Constraints()).shapes)
        assert ranked[0].diagram() == best

    def test_root_in_bass_beats_full_strum(self):
        """Damping the low E to keep C in the bass beats a six-string Cmaj7 on E."""
        shapes = {s.diagram(): s for s in search_fretted(resolve_chord("Cmaj7"), Constraints()).shapes}
        assert shapes["x32000"].score == 4.5
        assert shapes["022010"].score == 5.0

    def test_gap_costs_more_than_damped_bass(self):
        """A muted string inside the shape costs more than one below the bass note."""
        shapes = {s.diagram(): s for s in search_fretted(resolve_chord("C"), Constraints()).shapes}
        assert shapes["x32010"].score < shapes["x3x010"].score

    def test_allowed_muting_stays_cheapest(self):
        """With muting explicitly allowed a damped bass string costs the lower weight."""
        result = search_fretted(resolve_chord("Cmaj7"), Constraints(allow_muted=True))
        shapes = {s.diagram(): s for s in result.shapes}
        assert shapes["x32000"].score == 4.25


# =============================================================================
# TEST: Required Open Strings
# =============================================================================

class TestRequiredOpenStrings:
    """Test that required open strings ring in every shape."""

    def test_open_e_and_b(self):
        """Every Em7 shape lets an E string and the B string ring open."""
        result = search_fretted(resolve_chord("Em7"), Constraints(require_open_strings=["E", "B"]))
        assert result.shapes
        for shape in result.shapes:
            assert shape.frets[4] == 0
            assert shape.frets[0] == 0 or shape.frets[5] == 0

    def test_open_string_in_other_tuning(self):
        """In open G tuning the G strings can be required open."""
        c = Constraints(tuning="open_g", require_open_strings=["G"], max_fret=5)
        result = search_fretted(resolve_chord("G"), c)
        assert result.shapes
        for shape in result.shapes:
            assert any(f == 0 and note == "G" for f, note in zip(shape.frets, shape.tuning))

    def test_no_shape_without_open_position(self):
        """Nothing rings open once the window leaves the nut."""
        c = Constraints(require_open_strings=["E"], min_fret=5, max_fret=9)
        assert search_fretted(resolve_chord("Em"), c).shapes == []


# =============================================================================
# TEST: Search Completeness
# =============================================================================

class TestSearchCompleteness:
    """Test that pruning never loses a playable shape."""

    def test_matches_exhaustive_enumeration(self):
        """Inside frets 0-3 the search finds exactly the shapes brute force finds."""
        chord = resolve_chord("Cmaj7")
        open_pcs = [n % 12 for n in get_capability("guitar").tuning_notes()]
        expected = set()
        for frets in itertools.product([None, 0, 1, 2, 3], repeat=6):
            sounded = {(open_pcs[i] + f) % 12 for i, f in enumerate(frets) if f is not None}
            if sum(1 for f in frets if f is not None) < 3:
                continue
            if not sounded <= set(chord.pitch_classes):
                continue
            if not set(chord.required_pitch_classes) <= sounded:
                continue
            if assign_fingers(frets) is None:
                continue
            expected.add(tuple(-1 if f is None else f for f in frets))

        result = search_fretted(chord, Constraints(max_fret=3))
        assert {s.pattern for s in result.shapes} == expected

    def test_frets_out_of_reach_are_not_tried(self):
        """After C at the 8th fret, the next string only tries frets 3-13."""
        search = FretboardSearch(resolve_chord("C13"), Constraints(), get_capability("guitar"))
        state = PartialVoicing((8,), (8,), 8, 8, frozenset({0}), 1)
        fretted = [f for f in search._options_in_reach(state) if f]
        assert fretted
        assert all(3 <= f <= 13 for f in fretted)
        assert None in search._options_in_reach(state)

    def test_thirteenth_chord_unconstrained(self):
        """A six-tone chord searched over the whole neck stays within the stretch limit."""
        result = search_fretted(resolve_chord("Cmaj13"), Constraints())
        assert result.shapes
        assert all(s.fretted_span <= 5 for s in result.shapes)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
