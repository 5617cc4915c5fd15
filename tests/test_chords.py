"""
Tests for the Chord Resolver

Run with: pytest tests/test_chords.py -v
"""

import pytest

from chord_voicer.data.errors import UnrecognizedChordError
from chord_voicer.data.schema import ChordInput, ChordType
from chord_voicer.rules.chords import (
    FALLBACK_SUGGESTIONS,
    QUALITY_DEGREES,
    chord_tone_names,
    has_chord_type_tones,
    is_known_quality,
    resolve_chord,
    voiced_chord,
)


# =============================================================================
# TEST: Basic Triads and Sevenths
# =============================================================================

class TestBasicChords:
    """Test common chord symbols."""

    def test_major_triad(self):
        chord = resolve_chord("C")
        assert chord.root == 0
        assert chord.quality == "maj"
        assert chord.pitch_classes == [0, 4, 7]
        assert chord.optional_pitch_classes == []

    def test_minor_triad(self):
        chord = resolve_chord("Am")
        assert chord.root == 9
        assert chord.pitch_classes == [9, 0, 4]

    def test_major_seventh(self):
        """The fifth of a four-note chord can be left out."""
        chord = resolve_chord("Cmaj7")
        assert chord.pitch_classes == [0, 4, 7, 11]
        assert chord.required_pitch_classes == [0, 4, 11]
        assert chord.optional_pitch_classes == [7]

    def test_half_diminished(self):
        chord = resolve_chord("F#m7b5")
        assert chord.root == 6
        assert chord.root_name == "F#"
        assert chord.pitch_classes == [6, 9, 0, 4]
        assert chord.required_pitch_classes == [6, 9, 4]

    def test_diminished_seventh(self):
        chord = resolve_chord("Gdim7")
        assert chord.pitch_classes == [7, 10, 1, 4]
        assert chord.required_pitch_classes == [7, 10, 4]

    def test_power_chord(self):
        chord = resolve_chord("E5")
        assert chord.pitch_classes == [4, 11]
        assert chord.required_pitch_classes == [4, 11]

    def test_suspended_triad_keeps_fifth(self):
        chord = resolve_chord("Csus4")
        assert chord.required_pitch_classes == [0, 5, 7]


# =============================================================================
# TEST: Extensions and Alterations
# =============================================================================

class TestExtensions:
    """Test extended and altered chords."""

    def test_altered_ninth_is_required(self):
        chord = resolve_chord("Bb7(#9)")
        assert chord.root == 10
        assert chord.quality == "7#9"
        assert chord.pitch_classes == [10, 2, 5, 8, 1]
        assert chord.required_pitch_classes == [10, 2, 8, 1]

    def test_ninth_implies_seventh(self):
        """In a 9 chord the b7 is implied, so it may be omitted."""
        chord = resolve_chord("G9")
        assert chord.pitch_classes == [7, 11, 2, 5, 9]
        assert chord.required_pitch_classes == [7, 11, 9]
        assert sorted(chord.optional_pitch_classes) == [2, 5]

    def test_thirteenth(self):
        chord = resolve_chord("G13")
        assert chord.required_pitch_classes == [7, 11, 4]
        assert 0 not in chord.pitch_classes

    def test_stacked_alterations(self):
        chord = resolve_chord("C7b9#11")
        assert chord.quality == "7b9#11"
        assert {1, 6} <= set(chord.required_pitch_classes)

    def test_every_quality_has_required_root(self):
        for quality in QUALITY_DEGREES:
            symbol = "C" + ("" if quality == "maj" else quality)
            chord = resolve_chord(symbol)
            assert chord.tones[0].interval == 0
            assert chord.tones[0].required
            assert len(chord.required_pitch_classes) >= 2

    def test_fifth_optional_in_larger_chords(self):
        for quality in ["7", "m7", "maj7", "9", "13", "m11"]:
            chord = resolve_chord("D" + quality)
            fifth = (chord.root + 7) % 12
            assert fifth in chord.optional_pitch_classes


# =============================================================================
# TEST: Spelling Variants
# =============================================================================

class TestSpelling:
    """Test aliases, case handling and slash chords."""

    @pytest.mark.parametrize("symbol,quality", [
        ("Cmin7", "m7"),
        ("C-7", "m7"),
        ("CMaj7", "maj7"),
        ("CΔ7", "maj7"),
        ("Cø", "m7b5"),
        ("C°7", "dim7"),
        ("Csus", "sus4"),
        ("C6/9", "69"),
    ])
    def test_quality_aliases(self, symbol, quality):
        assert resolve_chord(symbol).quality == quality

    def test_lowercase_root(self):
        chord = resolve_chord("am7")
        assert chord.root == 9
        assert chord.root_name == "A"

    def test_slash_chord(self):
        chord = resolve_chord("D/F#")
        assert chord.root == 2
        assert chord.bass == 6
        assert chord.bass_name == "F#"

    def test_slash_bass_outside_chord(self):
        chord = resolve_chord("C/Bb")
        assert chord.bass == 10
        assert chord.sounding_requirements == [0, 4, 7, 10]

    def test_structured_input(self):
        chord_input = ChordInput(root="C", quality="maj7", bass="G")
        assert chord_input.symbol == "Cmaj7/G"
        chord = resolve_chord(chord_input)
        assert chord.bass == 7
        assert chord.required_pitch_classes == [0, 4, 11]

    def test_tone_names_use_flats_for_flat_roots(self):
        assert chord_tone_names(resolve_chord("Bb7")) == ["Bb", "D", "F", "Ab"]
        assert chord_tone_names(resolve_chord("E")) == ["E", "G#", "B"]

    def test_is_known_quality(self):
        assert is_known_quality("m7b5")
        assert is_known_quality("7(#9)")
        assert not is_known_quality("xyz")


# =============================================================================
# TEST: Unrecognized Symbols
# =============================================================================

class TestUnrecognized:
    """Test error reporting for unknown symbols."""

    def test_unknown_quality_suggests_near_matches(self):
        with pytest.raises(UnrecognizedChordError) as exc_info:
            resolve_chord("Cmaj7x")
        error = exc_info.value
        assert error.code == "CHORD_PARSE_FAILED"
        assert "Cmaj7" in error.suggestions
        assert all(s.startswith("C") for s in error.suggestions)

    def test_no_note_name(self):
        with pytest.raises(UnrecognizedChordError) as exc_info:
            resolve_chord("H7")
        assert exc_info.value.suggestions == FALLBACK_SUGGESTIONS

    def test_empty_symbol(self):
        with pytest.raises(UnrecognizedChordError):
            resolve_chord("")

    def test_error_serializes(self):
        with pytest.raises(UnrecognizedChordError) as exc_info:
            resolve_chord("Cxyz")
        payload = exc_info.value.to_dict()
        assert payload["code"] == "CHORD_PARSE_FAILED"
        assert "Cxyz" in payload["message"]
        assert payload["suggestions"]


# =============================================================================
# TEST: Chord Types
# =============================================================================

class TestChordType:
    """Test reducing a chord to the tones a chordType asks for."""

    def test_triad_from_seventh(self):
        """Cmaj7 as a triad drops the 7th and needs its fifth again."""
        chord = voiced_chord(resolve_chord("Cmaj7"), ChordType.TRIAD)
        assert chord.pitch_classes == [0, 4, 7]
        assert chord.required_pitch_classes == [0, 4, 7]
        assert chord.symbol == "Cmaj7"

    def test_seventh_from_ninth(self):
        """G9 as a seventh chord keeps its b7 and requires it."""
        chord = voiced_chord(resolve_chord("G9"), ChordType.SEVENTH)
        assert chord.pitch_classes == [7, 11, 2, 5]
        assert chord.required_pitch_classes == [7, 11, 5]

    def test_extended_requires_tensions(self):
        """C13 voiced as extended must sound its 9th and 13th."""
        chord = voiced_chord(resolve_chord("C13"), ChordType.EXTENDED)
        assert {2, 9} <= set(chord.required_pitch_classes)
        assert 10 in chord.optional_pitch_classes

    def test_suspended_triad_unchanged(self):
        """A sus2 triad is already a triad."""
        chord = voiced_chord(resolve_chord("Csus2"), ChordType.TRIAD)
        assert chord.required_pitch_classes == [0, 2, 7]

    def test_any_leaves_chord_alone(self):
        """'any' and no chordType return the chord as it is."""
        chord = resolve_chord("Am7")
        assert voiced_chord(chord, ChordType.ANY) is chord
        assert voiced_chord(chord, None) is chord

    def test_has_chord_type_tones(self):
        """Sevenths need a 6th or 7th; extended needs a 9th, 11th or 13th."""
        assert has_chord_type_tones(resolve_chord("C6"), ChordType.SEVENTH)
        assert not has_chord_type_tones(resolve_chord("C"), ChordType.SEVENTH)
        assert has_chord_type_tones(resolve_chord("Cadd9"), ChordType.EXTENDED)
        assert not has_chord_type_tones(resolve_chord("Cm7"), ChordType.EXTENDED)
        assert has_chord_type_tones(resolve_chord("C"), ChordType.TRIAD)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
