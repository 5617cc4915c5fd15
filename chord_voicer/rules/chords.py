"""
Chord Resolver - Chord Symbols to Pitch-Class Sets

Parses chord symbols like "Cmaj7", "F#m7b5", "Bb7(#9)" or "C/G" into a
ResolvedChord: a root pitch class plus the chord's interval classes, each
tagged required or omittable, and an optional slash-bass override.

Grammar:
    ROOT [#|b] QUALITY [ALTERATIONS] [/BASS]

    ROOT         A-G (a lowercase letter is accepted)
    QUALITY      a token from QUALITY_ALIASES ("", "m", "maj7", "ø", "7sus4", ...)
    ALTERATIONS  any of b5 #5 b9 #9 #11 b13 add9 add11 add13, optionally in (...)
    BASS         a note name

Tone rules:
    - The root is always required
    - 9, 11 and 13 chords imply the lower extensions; implied tones are omittable
    - A fifth (5, b5, #5) is omittable once the chord has four or more tones
    - Everything else, alterations included, is required
"""

import difflib
import re
from typing import Dict, List, Optional, Tuple, Union

from chord_voicer.data.errors import UnrecognizedChordError
from chord_voicer.data.pitch import NOTE_TO_PC, normalize_note, pc_to_name, prefers_flats
from chord_voicer.data.schema import ChordInput, ChordTone, ChordType, ResolvedChord


# =============================================================================
# CONSTANTS
# =============================================================================

# Semitones above the root for every degree label we produce
DEGREE_SEMITONES = {
    "1": 0,
    "b2": 1, "2": 2,
    "b3": 3, "3": 4,
    "4": 5,
    "b5": 6, "5": 7, "#5": 8,
    "6": 9,
    "bb7": 9, "b7": 10, "7": 11,
    "b9": 1, "9": 2, "#9": 3,
    "11": 5, "#11": 6,
    "b13": 8, "13": 9,
}

FIFTH_DEGREES = {"5", "b5", "#5"}

# Highest degree number each chordType voices, and the degrees it insists on
CHORD_TYPE_LIMITS = {
    ChordType.TRIAD: 5,
    ChordType.SEVENTH: 7,
    ChordType.EXTENDED: 13,
}
CHORD_TYPE_FEATURED = {
    ChordType.SEVENTH: range(6, 8),
    ChordType.EXTENDED: range(9, 14),
}

# Canonical quality token → degrees, in degree order
QUALITY_DEGREES = {
    "maj":    ["1", "3", "5"],
    "m":      ["1", "b3", "5"],
    "dim":    ["1", "b3", "b5"],
    "aug":    ["1", "3", "#5"],
    "sus2":   ["1", "2", "5"],
    "sus4":   ["1", "4", "5"],
    "5":      ["1", "5"],
    "6":      ["1", "3", "5", "6"],
    "m6":     ["1", "b3", "5", "6"],
    "69":     ["1", "3", "5", "6", "9"],
    "7":      ["1", "3", "5", "b7"],
    "maj7":   ["1", "3", "5", "7"],
    "m7":     ["1", "b3", "5", "b7"],
    "m7b5":   ["1", "b3", "b5", "b7"],
    "dim7":   ["1", "b3", "b5", "bb7"],
    "mmaj7":  ["1", "b3", "5", "7"],
    "aug7":   ["1", "3", "#5", "b7"],
    "7sus4":  ["1", "4", "5", "b7"],
    "7sus2":  ["1", "2", "5", "b7"],
    "9":      ["1", "3", "5", "b7", "9"],
    "maj9":   ["1", "3", "5", "7", "9"],
    "m9":     ["1", "b3", "5", "b7", "9"],
    "add9":   ["1", "3", "5", "9"],
    "madd9":  ["1", "b3", "5", "9"],
    "11":     ["1", "3", "5", "b7", "9", "11"],
    "m11":    ["1", "b3", "5", "b7", "9", "11"],
    "13":     ["1", "3", "5", "b7", "9", "13"],
    "maj13":  ["1", "3", "5", "7", "9", "13"],
    "m13":    ["1", "b3", "5", "b7", "9", "13"],
}

# Lower extensions a chord carries only because a higher one implies them
IMPLIED_DEGREES = {
    "9":     {"b7"},
    "maj9":  {"7"},
    "m9":    {"b7"},
    "11":    {"b7", "9"},
    "m11":   {"b7", "9"},
    "13":    {"b7", "9"},
    "maj13": {"7", "9"},
    "m13":   {"b7", "9"},
}

# Spelling as written → canonical quality token
QUALITY_ALIASES = {
    "": "maj", "M": "maj", "maj": "maj", "major": "maj",
    "m": "m", "min": "m", "minor": "m", "-": "m",
    "dim": "dim", "°": "dim", "o": "dim",
    "aug": "aug", "+": "aug",
    "sus2": "sus2", "sus4": "sus4", "sus": "sus4",
    "5": "5",
    "6": "6", "m6": "m6", "min6": "m6",
    "69": "69", "6/9": "69",
    "7": "7", "dom7": "7",
    "maj7": "maj7", "M7": "maj7", "ma7": "maj7", "Δ": "maj7", "Δ7": "maj7",
    "m7": "m7", "min7": "m7", "-7": "m7",
    "m7b5": "m7b5", "min7b5": "m7b5", "-7b5": "m7b5", "ø": "m7b5", "ø7": "m7b5",
    "dim7": "dim7", "°7": "dim7", "o7": "dim7",
    "mmaj7": "mmaj7", "mM7": "mmaj7", "minmaj7": "mmaj7", "m/maj7": "mmaj7",
    "aug7": "aug7", "+7": "aug7",
    "7sus4": "7sus4", "7sus": "7sus4", "7sus2": "7sus2",
    "9": "9", "maj9": "maj9", "M9": "maj9", "m9": "m9", "min9": "m9",
    "add9": "add9", "add2": "add9", "madd9": "madd9",
    "11": "11", "m11": "m11", "min11": "m11",
    "13": "13", "maj13": "maj13", "M13": "maj13", "m13": "m13", "min13": "m13",
}

# Word-like prefixes that are also accepted in any letter case ("Cmin7", "CMaj7")
CASE_INSENSITIVE_PREFIXES = ("maj", "min", "dim", "aug", "sus", "add")

# Alteration token → (degree it adds, natural degrees it replaces)
ALTERATIONS = {
    "b5":    ("b5", {"5", "#5"}),
    "#5":    ("#5", {"5", "b5"}),
    "b9":    ("b9", {"9", "#9"}),
    "#9":    ("#9", {"9", "b9"}),
    "#11":   ("#11", {"11"}),
    "b13":   ("b13", {"13"}),
    "add9":  ("9", set()),
    "add11": ("11", set()),
    "add13": ("13", set()),
}

SYMBOL_REGEX = re.compile(r'^([A-Ga-g])([#b]?)(.*?)(?:/([A-Ga-g][#b]?))?$')
ALTERATION_REGEX = re.compile(r'add(?:9|11|13)|[#b](?:5|9|11|13)')

# Shown when the symbol does not even start with a note name
FALLBACK_SUGGESTIONS = ["C", "Am", "G7", "Fmaj7"]


# =============================================================================
# PARSING HELPERS
# =============================================================================

def _degree_number(degree: str) -> int:
    return int(degree.lstrip("b#"))


def _parse_alterations(text: str) -> Optional[List[str]]:
    """Split 'b9#11' into ['b9', '#11']; None if anything is left over."""
    alterations = []
    pos = 0
    while pos < len(text):
        match = ALTERATION_REGEX.match(text, pos)
        if not match:
            return None
        alterations.append(match.group(0))
        pos = match.end()
    return alterations


def _split_quality(rest: str) -> Optional[Tuple[str, List[str]]]:
    """
    Find the longest quality alias that leaves only alterations behind.

    Returns (canonical_quality, alterations) or None.
    """
    candidates = [rest]
    lowered = rest.lower()
    if lowered != rest and lowered.startswith(CASE_INSENSITIVE_PREFIXES):
        candidates.append(lowered)

    for text in candidates:
        for alias in sorted(QUALITY_ALIASES, key=len, reverse=True):
            if not text.startswith(alias):
                continue
            alterations = _parse_alterations(text[len(alias):])
            if alterations is not None:
                return QUALITY_ALIASES[alias], alterations
    return None


def _build_tones(quality: str, alterations: List[str]) -> List[ChordTone]:
    """Apply alterations to the quality's degrees and tag each tone."""
    degrees = list(QUALITY_DEGREES[quality])
    implied = set(IMPLIED_DEGREES.get(quality, ()))
    altered = set()

    for token in alterations:
        added, replaces = ALTERATIONS[token]
        degrees = [d for d in degrees if d not in replaces]
        implied -= replaces
        if added not in degrees:
            degrees.append(added)
        altered.add(added)

    degrees.sort(key=_degree_number)

    # Reduce mod 12, first spelling of each interval class wins
    unique: Dict[int, str] = {}
    for degree in degrees:
        unique.setdefault(DEGREE_SEMITONES[degree] % 12, degree)

    omit_fifth = len(unique) >= 4
    tones = []
    for interval, degree in unique.items():
        if interval == 0:
            required = True
        elif degree in FIFTH_DEGREES:
            required = not omit_fifth
        else:
            required = degree in altered or degree not in implied
        tones.append(ChordTone(interval=interval, degree=degree, required=required))
    return tones


def _suggest(root_name: str, rest: str) -> List[str]:
    """Nearest known qualities, rendered as full chord symbols on the parsed root."""
    canonical = list(QUALITY_DEGREES)
    matches = difflib.get_close_matches(rest, canonical, n=3, cutoff=0.5)
    if rest:
        matches += [q for q in canonical if q.startswith(rest) or rest.startswith(q)]

    suggestions = []
    for quality in matches:
        symbol = root_name + ("" if quality == "maj" else quality)
        if symbol not in suggestions:
            suggestions.append(symbol)
    return suggestions[:5] or [root_name, root_name + "m", root_name + "7"]


# =============================================================================
# RESOLVER
# =============================================================================

def resolve_chord(chord: Union[str, ChordInput]) -> ResolvedChord:
    """
    Parse a chord symbol into a ResolvedChord.

    Args:
        chord: A chord symbol ("Cmaj7", "Bb7(#9)", "D/F#") or a ChordInput

    Returns:
        ResolvedChord with root, tagged tones and optional slash bass

    Raises:
        UnrecognizedChordError: If the symbol cannot be parsed

    Example:
        >>> chord = resolve_chord("Cmaj7")
        >>> chord.required_pitch_classes
        [0, 4, 11]
    """
    symbol = chord.symbol if isinstance(chord, ChordInput) else chord
    symbol = (symbol or "").strip()

    match = SYMBOL_REGEX.match(symbol)
    if not match:
        raise UnrecognizedChordError(symbol, FALLBACK_SUGGESTIONS)

    letter, accidental, rest, bass_text = match.groups()
    root_name = normalize_note(letter + accidental)
    rest = re.sub(r'[\s(),]', '', rest)

    parsed = _split_quality(rest)
    if parsed is None:
        raise UnrecognizedChordError(symbol, _suggest(root_name, rest))
    quality, alterations = parsed

    bass = bass_name = None
    if bass_text:
        bass_name = normalize_note(bass_text)
        bass = NOTE_TO_PC[bass_name]

    return ResolvedChord(
        symbol=symbol,
        root=NOTE_TO_PC[root_name],
        root_name=root_name,
        quality=quality + "".join(alterations),
        tones=tuple(_build_tones(quality, alterations)),
        bass=bass,
        bass_name=bass_name,
    )


def chord_tone_names(chord: ResolvedChord) -> List[str]:
    """Spell the chord's tones, flats for flat roots and sharps otherwise."""
    flats = prefers_flats(chord.root_name)
    return [pc_to_name(pc, flats) for pc in chord.pitch_classes]


def has_chord_type_tones(chord: ResolvedChord, chord_type: ChordType) -> bool:
    """Whether the chord has anything for chord_type to feature (a 6th or 7th, or an extension)."""
    featured = CHORD_TYPE_FEATURED.get(chord_type)
    if featured is None:
        return True
    return any(_degree_number(t.degree) in featured for t in chord.tones)


def voiced_chord(chord: ResolvedChord, chord_type: Optional[ChordType]) -> ResolvedChord:
    """
    The chord reduced to the tones a chordType asks for.

    triad keeps the degrees up to the fifth, seventh keeps them up to the
    seventh and requires the 6th/7th, extended keeps everything and
    requires the 9th, 11th and 13th. The fifth is tagged again for the
    tones that remain.

    Example:
        >>> voiced_chord(resolve_chord("Cmaj7"), ChordType.TRIAD).required_pitch_classes
        [0, 4, 7]
    """
    if chord_type is None or chord_type == ChordType.ANY:
        return chord
    limit = CHORD_TYPE_LIMITS[chord_type]
    featured = CHORD_TYPE_FEATURED.get(chord_type, ())
    kept = [t for t in chord.tones if _degree_number(t.degree) <= limit]

    omit_fifth = len(kept) >= 4
    tones = []
    for tone in kept:
        if tone.degree in FIFTH_DEGREES:
            required = not omit_fifth
        else:
            required = tone.required or _degree_number(tone.degree) in featured
        tones.append(tone.model_copy(update={"required": required}))
    return chord.model_copy(update={"tones": tuple(tones)})


def is_known_quality(quality: str) -> bool:
    """Whether a quality spelling (with optional alterations) is recognised."""
    return _split_quality(re.sub(r'[\s(),]', '', quality)) is not None


# =============================================================================
# TESTING
# =============================================================================

if __name__ == "__main__":
    print("=" * 60)
    print("Testing chords.py")
    print("=" * 60)

    for sym in ["C", "Am", "Cmaj7", "F#m7b5", "Bb7(#9)", "G13", "D/F#", "E5", "Csus4"]:
        resolved = resolve_chord(sym)
        print(f"  {resolved}")
        print(f"    tones: {chord_tone_names(resolved)}")

    try:
        resolve_chord("Cmjaor7")
    except UnrecognizedChordError as e:
        print(f"\n  {e} → suggestions: {e.suggestions}")
