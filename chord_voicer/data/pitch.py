"""
Pitch Module - Note Names, Pitch Classes and MIDI Numbers

Small lookup tables and conversions shared by the chord resolver,
the instrument capability table and the voicing search:
    - Note names ("C", "F#", "Bb") ↔ pitch classes (0-11, C = 0)
    - Pitched note names ("E2", "Bb3") ↔ MIDI note numbers (C4 = 60)
"""

import re


# =============================================================================
# CONSTANTS
# =============================================================================

CHROMATIC_SCALE = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

CHROMATIC_SCALE_FLATS = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

NOTE_TO_PC = {
    "C": 0, "B#": 0,
    "C#": 1, "Db": 1,
    "D": 2,
    "D#": 3, "Eb": 3,
    "E": 4, "Fb": 4,
    "F": 5, "E#": 5,
    "F#": 6, "Gb": 6,
    "G": 7,
    "G#": 8, "Ab": 8,
    "A": 9,
    "A#": 10, "Bb": 10,
    "B": 11, "Cb": 11,
}

PITCHED_NOTE_REGEX = re.compile(r'^([A-Ga-g][#b]?)(-?\d)$')


# =============================================================================
# CONVERSIONS
# =============================================================================

def normalize_note(note: str) -> str:
    """Capitalize a note name: 'bb' → 'Bb', 'f#' → 'F#'."""
    note = note.strip()
    if not note or len(note) > 2:
        raise ValueError(f"Invalid note format: '{note}'")
    normalized = note[0].upper() + note[1:].lower()
    if normalized not in NOTE_TO_PC:
        raise ValueError(f"Unknown note: '{note}'. Valid notes are: {sorted(NOTE_TO_PC)}")
    return normalized


def note_to_pc(note: str) -> int:
    """Get the pitch class (0-11) of a note name."""
    return NOTE_TO_PC[normalize_note(note)]


def pc_to_name(pc: int, prefer_flats: bool = False) -> str:
    """Spell a pitch class as a note name."""
    scale = CHROMATIC_SCALE_FLATS if prefer_flats else CHROMATIC_SCALE
    return scale[pc % 12]


def prefers_flats(note: str) -> bool:
    """Flat roots (and F) are spelled with flats, everything else with sharps."""
    return note.endswith("b") or note == "F"


def parse_pitched_note(note: str) -> int:
    """
    Convert a pitched note name to a MIDI number.

    Examples:
        parse_pitched_note("C4")  → 60
        parse_pitched_note("E2")  → 40
        parse_pitched_note("Bb0") → 22
    """
    match = PITCHED_NOTE_REGEX.match(note.strip())
    if not match:
        raise ValueError(f"Invalid pitched note: '{note}' (expected e.g. 'E2', 'Bb3')")
    pc = note_to_pc(match.group(1))
    octave = int(match.group(2))
    return (octave + 1) * 12 + pc


def midi_to_name(midi: int, prefer_flats: bool = False) -> str:
    """Convert a MIDI number to a pitched note name (60 → 'C4')."""
    return f"{pc_to_name(midi % 12, prefer_flats)}{midi // 12 - 1}"


def strip_octave(note: str) -> str:
    """'Eb2' → 'Eb'."""
    return note.rstrip("-0123456789")

