"""
Constraint Validator - Reject Impossible Requests Before Searching

Checks merged constraints against the physics of the target instrument.
Every check runs and every violation is reported, each paired with one
suggestion in the same order:

    1. Fret window inside the neck (no fret keys at all on keyboard)
    2. Barre voicings cannot sit at the open position (minFret 0)
    3. maxSpan inside the neck and wide enough for the chord
    4. Beginner difficulty never allows barre voicings
    5. stringSubset inside the instrument and wide enough for the chord
    6. Keys that mean nothing on this instrument (register on guitar, ...)
    7. Tuning presets the instrument does not have
    8. allowMuted = false with strings left out of stringSubset
    9. chordType asking for tones the chord does not have
   10. requireOpenStrings the tuning, the chord or the other keys rule out
"""

from typing import List, Optional, Tuple, Union

from chord_voicer.data.instruments import InstrumentCapability, get_capability
from chord_voicer.data.pitch import note_to_pc
from chord_voicer.data.schema import (
    ChordType,
    Constraints,
    Difficulty,
    Instrument,
    OpenPreference,
    ResolvedChord,
    ValidationResult,
    VoicingType,
)
from chord_voicer.rules.chords import chord_tone_names, has_chord_type_tones, voiced_chord


Conflict = Tuple[str, str]

FRET_WINDOW_KEYS = ("min_fret", "max_fret")


def min_span_for_tones(required_tones: int) -> int:
    """
    Narrowest fretted span that can hold this many required tones.

    Up to three tones fit a single fret across adjacent strings (or open
    strings); every further tone needs more room.
    """
    if required_tones <= 3:
        return 0
    if required_tones == 4:
        return 2
    if required_tones == 5:
        return 3
    return 4


# =============================================================================
# INDIVIDUAL CHECKS
# =============================================================================

def _check_fret_window(c: Constraints, cap: InstrumentCapability) -> List[Conflict]:
    if not cap.is_fretted:
        present = [c.display_key(k) for k in FRET_WINDOW_KEYS if getattr(c, k) is not None]
        if present:
            return [(
                f"Fret constraints ({', '.join(present)}) do not apply to {cap.instrument.value}",
                "Remove the fret window and use register (low, mid or high) instead",
            )]
        return []

    conflicts = []
    for key in FRET_WINDOW_KEYS:
        value = getattr(c, key)
        if value is not None and not 0 <= value <= cap.max_fret:
            conflicts.append((
                f"{c.display_key(key)} {value} is outside the {cap.instrument.value} neck (0-{cap.max_fret})",
                f"Set {c.display_key(key)} between 0 and {cap.max_fret}",
            ))
    if c.min_fret is not None and c.max_fret is not None and c.min_fret > c.max_fret:
        conflicts.append((
            f"minFret {c.min_fret} is higher than maxFret {c.max_fret}",
            f"Swap the bounds (minFret {c.max_fret}, maxFret {c.min_fret}) or widen the window",
        ))
    return conflicts


def _check_barre_position(c: Constraints, cap: InstrumentCapability) -> List[Conflict]:
    if cap.is_fretted and c.voicing_type == VoicingType.BARRE and c.min_fret == 0:
        return [(
            "Barre voicings cannot start at the open position (minFret 0)",
            "Raise minFret to 1 or higher",
        )]
    return []


def _check_span(c: Constraints, cap: InstrumentCapability, chord: Optional[ResolvedChord]) -> List[Conflict]:
    if not cap.is_fretted or c.max_span is None:
        return []
    if not 0 <= c.max_span <= cap.max_fret:
        return [(
            f"maxSpan {c.max_span} is outside 0-{cap.max_fret}",
            f"Set maxSpan between 0 and {cap.max_fret}",
        )]
    if chord is not None:
        tones = len(chord.required_pitch_classes)
        needed = min_span_for_tones(tones)
        if c.max_span < needed:
            return [(
                f"maxSpan {c.max_span} is too narrow for the {tones} required tones of {chord.symbol}",
                f"Raise maxSpan to at least {needed} or allow muted strings",
            )]
    return []


def _check_beginner_barre(c: Constraints, cap: InstrumentCapability) -> List[Conflict]:
    if c.difficulty == Difficulty.BEGINNER and c.voicing_type == VoicingType.BARRE:
        return [(
            "Barre voicings are never classified as beginner",
            "Drop the difficulty filter or ask for open voicings instead of barre",
        )]
    return []


def _string_count(c: Constraints, cap: InstrumentCapability) -> int:
    if c.tuning in cap.tunings:
        return len(cap.tunings[c.tuning])
    return cap.string_count


def _check_string_subset(c: Constraints, cap: InstrumentCapability, chord: Optional[ResolvedChord]) -> List[Conflict]:
    if not cap.is_fretted or c.string_subset is None:
        return []
    count = _string_count(c, cap)
    conflicts = []
    outside = [i for i in c.string_subset if not 0 <= i < count]
    if outside:
        conflicts.append((
            f"stringSubset {list(outside)} is outside the {count} strings of the {cap.instrument.value}",
            f"Use string indices 0-{count - 1}",
        ))
    if chord is not None:
        needed = len(chord.sounding_requirements)
        usable = len(c.string_subset) - len(outside)
        if usable < needed:
            conflicts.append((
                f"stringSubset has {usable} strings but {chord.symbol} needs at least {needed}",
                f"Include at least {needed} strings in stringSubset",
            ))
    return conflicts


def _check_meaningful_keys(c: Constraints, cap: InstrumentCapability) -> List[Conflict]:
    conflicts = []
    for key in c.active_keys():
        if key in cap.constraint_keys:
            continue
        if not cap.is_fretted and key in FRET_WINDOW_KEYS:
            continue
        name = c.display_key(key)
        conflicts.append((
            f"{name} does not apply to {cap.instrument.value}",
            f"Remove {name} from the constraints",
        ))
    return conflicts


def _check_tuning(c: Constraints, cap: InstrumentCapability) -> List[Conflict]:
    if not cap.is_fretted or c.tuning is None or c.tuning in cap.tunings:
        return []
    return [(
        f"Tuning '{c.tuning}' is not available on {cap.instrument.value}",
        f"Choose one of: {', '.join(sorted(cap.tunings))}",
    )]


def _check_muting_subset(c: Constraints, cap: InstrumentCapability) -> List[Conflict]:
    if not cap.is_fretted or c.allow_muted is not False or c.string_subset is None:
        return []
    count = _string_count(c, cap)
    if len(set(c.string_subset) & set(range(count))) < count:
        return [(
            "allowMuted is false but stringSubset leaves strings out, and those strings must be muted",
            "Allow muted strings or drop the string subset",
        )]
    return []


def _check_chord_type(c: Constraints, chord: Optional[ResolvedChord]) -> List[Conflict]:
    if chord is None or c.chord_type is None or has_chord_type_tones(chord, c.chord_type):
        return []
    if c.chord_type == ChordType.SEVENTH:
        missing, example = "sixth or seventh", f"{chord.root_name}7"
    else:
        missing, example = "9th, 11th or 13th", f"{chord.root_name}9"
    return [(
        f"{chord.symbol} has no {missing} for chordType {c.chord_type.value}",
        f"Drop chordType or use a chord such as {example}",
    )]


def _check_open_strings(c: Constraints, cap: InstrumentCapability, chord: Optional[ResolvedChord]) -> List[Conflict]:
    if not cap.is_fretted or not c.require_open_strings:
        return []
    tuning = c.tuning if c.tuning in cap.tunings else cap.default_tuning
    labels = cap.tuning_labels(tuning)
    count = len(labels)
    in_scope = set(c.string_subset) & set(range(count)) if c.string_subset is not None else set(range(count))
    open_pcs = {note_to_pc(labels[i]) for i in in_scope}
    allowed = None
    if chord is not None:
        allowed = set(chord.pitch_classes) | ({chord.bass} if chord.bass is not None else set())

    conflicts = []
    for note in c.require_open_strings:
        pc = note_to_pc(note)
        if pc not in open_pcs:
            where = "inside stringSubset" if c.string_subset is not None else f"in {tuning} tuning"
            available = sorted({labels[i] for i in in_scope}, key=labels.index)
            conflicts.append((
                f"There is no open {note} string {where}",
                f"Require one of the open strings {', '.join(available)}",
            ))
        elif allowed is not None and pc not in allowed:
            conflicts.append((
                f"Open {note} is not a tone of {chord.symbol}",
                f"Require open strings among {', '.join(chord_tone_names(chord))}",
            ))

    if c.min_fret is not None and c.min_fret > 0:
        conflicts.append((
            f"requireOpenStrings needs the open position but minFret is {c.min_fret}",
            "Set minFret to 0 or drop requireOpenStrings",
        ))
    if c.open_preference == OpenPreference.AVOID:
        conflicts.append((
            "requireOpenStrings contradicts openPreference avoid",
            "Drop openPreference avoid or the required open strings",
        ))
    if c.voicing_type in (VoicingType.BARRE, VoicingType.DROP_VOICING):
        conflicts.append((
            f"{c.voicing_type.value} voicings use no open strings, so requireOpenStrings cannot be met",
            "Drop voicingType or the required open strings",
        ))
    return conflicts


# =============================================================================
# VALIDATOR
# =============================================================================

def validate_constraints(
    constraints: Constraints,
    instrument: Union[str, Instrument],
    chord: Optional[ResolvedChord] = None,
) -> ValidationResult:
    """
    Validate constraints against an instrument, reporting every conflict.

    Args:
        constraints: Merged constraints for the request
        instrument: Target instrument
        chord: The resolved chord, enabling the tone-count and chord-tone checks

    Returns:
        ValidationResult where suggestions[i] addresses conflicts[i]

    Example:
        >>> c = Constraints(difficulty="beginner", voicingType="barre")
        >>> validate_constraints(c, "guitar").valid
        False
    """
    cap = get_capability(instrument)
    voiced = voiced_chord(chord, constraints.chord_type) if chord is not None else None

    found: List[Conflict] = []
    found += _check_fret_window(constraints, cap)
    found += _check_barre_position(constraints, cap)
    found += _check_span(constraints, cap, voiced)
    found += _check_beginner_barre(constraints, cap)
    found += _check_string_subset(constraints, cap, voiced)
    found += _check_meaningful_keys(constraints, cap)
    found += _check_tuning(constraints, cap)
    found += _check_muting_subset(constraints, cap)
    found += _check_chord_type(constraints, chord)
    found += _check_open_strings(constraints, cap, voiced)

    return ValidationResult(
        valid=not found,
        conflicts=[conflict for conflict, _ in found],
        suggestions=[suggestion for _, suggestion in found],
    )
