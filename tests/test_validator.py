"""
Tests for the Constraint Validator

Run with: pytest tests/test_validator.py -v
"""

import pytest

from chord_voicer.data.schema import Constraints, ValidationResult
from chord_voicer.rules.chords import resolve_chord
from chord_voicer.rules.validator import min_span_for_tones, validate_constraints


class TestValidConstraints:
    """Test constraint sets that should pass."""

    def test_empty_constraints(self):
        for instrument in ["guitar", "bass", "keyboard"]:
            result = validate_constraints(Constraints(), instrument)
            assert result.valid
            assert result.conflicts == []
            assert result.suggestions == []

    def test_barre_without_open_window(self):
        c = Constraints(voicing_type="barre", min_fret=1, max_fret=8)
        assert validate_constraints(c, "guitar").valid

    def test_bass_five_string(self):
        c = Constraints(tuning="five_string", string_subset=[0, 1, 2, 3, 4])
        assert validate_constraints(c, "bass", resolve_chord("A")).valid

    def test_keyboard_register(self):
        assert validate_constraints(Constraints(register="low"), "piano").valid


class TestConflicts:
    """Test each conflict check."""

    def test_beginner_barre(self):
        c = Constraints(difficulty="beginner", voicing_type="barre")
        result = validate_constraints(c, "guitar", resolve_chord("Gdim7"))
        assert not result.valid
        assert any("beginner" in conflict for conflict in result.conflicts)

    def test_fret_keys_on_keyboard(self):
        result = validate_constraints(Constraints(min_fret=3, max_fret=7), "keyboard")
        assert len(result.conflicts) == 1
        assert "do not apply to keyboard" in result.conflicts[0]

    def test_fret_outside_neck(self):
        result = validate_constraints(Constraints(min_fret=30), "guitar")
        assert not result.valid
        assert "minFret 30" in result.conflicts[0]

    def test_reversed_window(self):
        result = validate_constraints(Constraints(min_fret=8, max_fret=3), "guitar")
        assert "higher than" in result.conflicts[0]

    def test_barre_at_open_position(self):
        result = validate_constraints(Constraints(voicing_type="barre", min_fret=0), "guitar")
        assert "open position" in result.conflicts[0]

    def test_span_too_narrow_for_chord(self):
        chord = resolve_chord("C7#9")
        assert len(chord.required_pitch_classes) == 4
        assert not validate_constraints(Constraints(max_span=1), "guitar", chord).valid
        assert validate_constraints(Constraints(max_span=2), "guitar", chord).valid

    def test_span_outside_neck(self):
        assert not validate_constraints(Constraints(max_span=30), "guitar").valid

    def test_string_subset_outside(self):
        result = validate_constraints(Constraints(string_subset=[0, 7]), "guitar")
        assert "outside" in result.conflicts[0]

    def test_string_subset_too_small(self):
        result = validate_constraints(Constraints(string_subset=[4, 5]), "guitar", resolve_chord("Cmaj7"))
        assert "needs at least 3" in result.conflicts[0]

    def test_register_on_guitar(self):
        result = validate_constraints(Constraints(register="high"), "guitar")
        assert result.conflicts == ["register does not apply to guitar"]

    def test_span_on_keyboard(self):
        result = validate_constraints(Constraints(max_span=3), "keyboard")
        assert result.conflicts == ["maxSpan does not apply to keyboard"]

    def test_unknown_tuning(self):
        result = validate_constraints(Constraints(tuning="open_g"), "bass")
        assert "open_g" in result.conflicts[0]

    def test_no_muting_with_subset(self):
        result = validate_constraints(Constraints(allow_muted=False, string_subset=[0, 1, 2]), "guitar")
        assert not result.valid
        assert "allowMuted" in result.conflicts[0]


class TestOpenStringsAndChordType:
    """Test the required-open-string and chordType checks."""

    def test_open_strings_in_chord(self):
        """Open E and B both belong to Em7 in standard tuning."""
        c = Constraints(require_open_strings=["e", "B"])
        assert validate_constraints(c, "guitar", resolve_chord("Em7")).valid

    def test_no_such_open_string(self):
        """Standard tuning has no open C string."""
        result = validate_constraints(Constraints(require_open_strings=["C"]), "guitar", resolve_chord("C"))
        assert not result.valid
        assert "no open C string" in result.conflicts[0]
        assert "E, A, D, G, B" in result.suggestions[0]

    def test_open_string_follows_tuning(self):
        """Open G tuning rings open G and D strings."""
        c = Constraints(tuning="open_g", require_open_strings=["G", "D"])
        assert validate_constraints(c, "guitar", resolve_chord("G")).valid

    def test_open_string_outside_subset(self):
        """The low E string is left out of the subset."""
        c = Constraints(string_subset=[2, 3, 4], require_open_strings=["E"])
        result = validate_constraints(c, "guitar", resolve_chord("Em"))
        assert not result.valid
        assert "inside stringSubset" in result.conflicts[0]

    def test_open_string_not_a_chord_tone(self):
        """Open E cannot sound in a D major chord."""
        result = validate_constraints(Constraints(require_open_strings=["E"]), "guitar", resolve_chord("D"))
        assert not result.valid
        assert "not a tone of D" in result.conflicts[0]

    def test_open_string_slash_bass_allowed(self):
        """The slash bass counts as a note that may ring open."""
        c = Constraints(require_open_strings=["E"])
        assert validate_constraints(c, "guitar", resolve_chord("C/E")).valid

    @pytest.mark.parametrize("extra,fragment", [
        ({"min_fret": 3}, "minFret is 3"),
        ({"open_preference": "avoid"}, "openPreference avoid"),
        ({"voicing_type": "barre"}, "barre voicings use no open strings"),
    ])
    def test_open_string_conflicting_keys(self, extra, fragment):
        """Keys that rule out open strings conflict with requiring one."""
        c = Constraints(require_open_strings=["E"], **extra)
        result = validate_constraints(c, "guitar", resolve_chord("Em"))
        assert any(fragment in conflict for conflict in result.conflicts)

    def test_open_strings_on_keyboard(self):
        """The keyboard has no strings to leave open."""
        result = validate_constraints(Constraints(require_open_strings=["E"]), "keyboard")
        assert result.conflicts == ["requireOpenStrings does not apply to keyboard"]

    def test_seventh_on_a_triad(self):
        """A plain triad has no seventh to voice."""
        result = validate_constraints(Constraints(chord_type="seventh"), "guitar", resolve_chord("C"))
        assert not result.valid
        assert "C has no sixth or seventh" in result.conflicts[0]
        assert "C7" in result.suggestions[0]

    def test_extended_on_a_seventh(self):
        """A seventh chord has no extensions to voice."""
        result = validate_constraints(Constraints(chord_type="extended"), "keyboard", resolve_chord("G7"))
        assert not result.valid
        assert "9th, 11th or 13th" in result.conflicts[0]

    @pytest.mark.parametrize("symbol,chord_type", [
        ("Cmaj7", "triad"), ("C6", "seventh"), ("G13", "seventh"), ("Dm9", "extended"), ("C", "any"),
    ])
    def test_chord_type_available(self, symbol, chord_type):
        """chordType passes whenever the chord has the tones it asks for."""
        c = Constraints(chord_type=chord_type)
        assert validate_constraints(c, "guitar", resolve_chord(symbol)).valid

    def test_triad_relaxes_tone_count_checks(self):
        """Voicing C7#9 as a triad needs three strings instead of four."""
        chord = resolve_chord("C7#9")
        assert not validate_constraints(Constraints(string_subset=[3, 4, 5]), "guitar", chord).valid
        c = Constraints(chord_type="triad", string_subset=[3, 4, 5])
        assert validate_constraints(c, "guitar", chord).valid


class TestReporting:
    """Test that every conflict is reported, paired and in order."""

    def test_all_conflicts_in_check_order(self):
        c = Constraints(difficulty="beginner", voicing_type="barre", min_fret=0)
        result = validate_constraints(c, "guitar")
        assert len(result.conflicts) == 2
        assert "open position" in result.conflicts[0]
        assert "beginner" in result.conflicts[1]

    def test_one_suggestion_per_conflict(self):
        c = Constraints(min_fret=40, max_span=30, register="low", tuning="nope")
        result = validate_constraints(c, "guitar")
        assert len(result.conflicts) == 4
        assert len(result.suggestions) == len(result.conflicts)

    def test_stricter_constraints_keep_conflicts(self):
        chord = resolve_chord("Gdim7")
        base = Constraints(difficulty="beginner", voicing_type="barre")
        stricter = base.model_copy(update={"min_fret": 0, "max_fret": 2})
        before = validate_constraints(base, "guitar", chord).conflicts
        after = validate_constraints(stricter, "guitar", chord).conflicts
        assert set(before) <= set(after)

    def test_result_consistency(self):
        with pytest.raises(ValueError):
            ValidationResult(valid=True, conflicts=["x"])
        with pytest.raises(ValueError):
            ValidationResult(valid=False)


class TestMinSpan:
    """Test the span needed for a number of required tones."""

    @pytest.mark.parametrize("tones,span", [(2, 0), (3, 0), (4, 2), (5, 3), (6, 4)])
    def test_min_span(self, tones, span):
        assert min_span_for_tones(tones) == span


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
