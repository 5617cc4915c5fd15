"""
Voicing Generator - Main Entry Point

Turns one request into a short, ranked, diverse list of playable voicings:

    request ─┬─ chord symbol ──→ resolve_chord ──────────┐
             └─ free text ─────→ extract_constraints ──→ merge
                                                           │
                        validate_constraints (gate) ←──────┘
                                  │
                        search_voicings (fretboard / keyboard)
                                  │
                        deduplicate → rank → select_diverse → lesson tips

Failures are typed: UnrecognizedChordError, ConstraintConflictError and
NoVoicingsFoundError. The same request always produces the same response.
"""

from typing import Any, Dict, List, Union

from chord_voicer.data.errors import ConstraintConflictError, NoVoicingsFoundError
from chord_voicer.data.schema import (
    ChordType,
    Constraints,
    Difficulty,
    Instrument,
    OpenPreference,
    ResolvedChord,
    ResponseMetadata,
    VoicingRequest,
    VoicingResponse,
    VoicingShape,
    VoicingType,
)
from chord_voicer.rules.chords import chord_tone_names, resolve_chord, voiced_chord
from chord_voicer.rules.constraint_parser import extract_constraints, merge_constraints
from chord_voicer.rules.fretboard import search_fretted
from chord_voicer.rules.keyboard import search_keyboard
from chord_voicer.rules.lessons import lesson_tip
from chord_voicer.rules.ranking import MIN_RESULTS, SearchResult, deduplicate, rank_shapes, select_diverse
from chord_voicer.rules.validator import validate_constraints


GENERIC_RELAXATION = "Remove some constraints or try a simpler chord"


# =============================================================================
# SEARCH DISPATCH
# =============================================================================

def search_voicings(chord: ResolvedChord, constraints: Constraints,
                    instrument: Instrument, verbose: bool = False) -> SearchResult:
    """Run the search engine that fits the instrument."""
    if instrument == Instrument.KEYBOARD:
        return search_keyboard(chord, constraints, verbose=verbose)
    return search_fretted(chord, constraints, instrument, verbose=verbose)


def relaxation_suggestions(constraints: Constraints, instrument: Instrument) -> List[str]:
    """Ways to loosen the constraints actually present, plus a generic one."""
    c = constraints
    suggestions = []
    if c.max_span is not None:
        suggestions.append(f"Raise maxSpan above {c.max_span}")
    if c.min_fret is not None or c.max_fret is not None:
        low = c.min_fret if c.min_fret is not None else 0
        window = f"{low} and up" if c.max_fret is None else f"{low}-{c.max_fret}"
        suggestions.append(f"Widen the fret window (currently {window})")
    if c.allow_muted is False:
        suggestions.append("Allow muted strings")
    if c.difficulty not in (None, Difficulty.ANY):
        suggestions.append(f"Drop the difficulty filter ({c.difficulty.value})")
    if c.voicing_type not in (None, VoicingType.ANY):
        suggestions.append(f"Drop the voicingType filter ({c.voicing_type.value})")
    if c.string_subset is not None:
        suggestions.append("Use more strings than the current stringSubset")
    if c.open_preference == OpenPreference.AVOID:
        suggestions.append("Allow open strings")
    if c.keyboard_register is not None and instrument == Instrument.KEYBOARD:
        suggestions.append(f"Try a register other than {c.keyboard_register.value}")
    if c.require_open_strings:
        suggestions.append(f"Stop requiring open {', '.join(c.require_open_strings)}")
    if c.chord_type not in (None, ChordType.ANY):
        suggestions.append(f"Drop the chordType filter ({c.chord_type.value})")
    suggestions.append(GENERIC_RELAXATION)
    return suggestions


# =============================================================================
# MAIN GENERATOR FUNCTION
# =============================================================================

def generate_voicings(
    request: Union[VoicingRequest, Dict[str, Any]],
    verbose: bool = False,
) -> VoicingResponse:
    """
    Generate ranked voicings for one request.

    Args:
        request: VoicingRequest, or a dict using its field names or camelCase keys
        verbose: Print every pipeline step if True

    Returns:
        VoicingResponse with 3 to count voicings (the count constraint, else request.count)

    Raises:
        UnrecognizedChordError: The chord symbol could not be parsed
        ConstraintConflictError: The merged constraints are impossible
        NoVoicingsFoundError: Nothing playable matches the constraints

    Example:
        >>> response = generate_voicings({"instrument": "guitar", "chordInput": "Cmaj7"})
        >>> [v.diagram() for v in response.voicings]
        ['x32000', ...]
    """
    if not isinstance(request, VoicingRequest):
        request = VoicingRequest.model_validate(request)
    instrument = request.instrument

    if verbose:
        print(f"\n{'='*60}")
        print("VOICING GENERATOR")
        print(f"{'='*60}")
        print(f"\nInstrument: {instrument.value}, chord: \"{request.chord_symbol}\", count: {request.count}")
        print("\n--- Step 1: Resolving chord ---")

    chord = resolve_chord(request.chord_input)

    if verbose:
        print(f"  {chord}")
        print(f"  Tones: {chord_tone_names(chord)}")
        print("\n--- Step 2: Merging constraints ---")

    explicit = request.constraints or Constraints()
    extracted = extract_constraints(request.natural_language, explicit, instrument, verbose=verbose)
    constraints = merge_constraints(explicit, extracted)

    if verbose:
        print(f"  Explicit:  {explicit}")
        print(f"  Extracted: {extracted}")
        print(f"  Merged:    {constraints}")
        print("\n--- Step 3: Validating constraints ---")

    validation = validate_constraints(constraints, instrument, chord)

    if verbose:
        print(f"  {validation}")

    if not validation.valid:
        raise ConstraintConflictError(validation.conflicts, validation.suggestions)

    if verbose:
        print("\n--- Step 4: Searching voicings ---")

    voiced = voiced_chord(chord, constraints.chord_type)
    if verbose and voiced is not chord:
        print(f"  Voicing as {constraints.chord_type.value}: {voiced}")

    result = search_voicings(voiced, constraints, instrument, verbose=verbose)
    if not result.shapes:
        raise NoVoicingsFoundError(
            f"No playable {chord.symbol} voicings on {instrument.value} match the constraints",
            relaxation_suggestions(constraints, instrument),
        )

    if verbose:
        print("\n--- Step 5: Ranking and selecting ---")

    ranked = rank_shapes(deduplicate(result.shapes))
    count = constraints.count if constraints.count is not None else request.count
    selected, relaxed = select_diverse(ranked, count)

    warnings = []
    if relaxed:
        warnings.append("Not enough voicings in distinct positions; some are close together")
    if len(selected) < MIN_RESULTS:
        warnings.append(f"Only {len(selected)} voicing(s) match the constraints")

    voicings = []
    for index, shape in enumerate(selected, start=1):
        updates = {"id": f"{chord.symbol}-{instrument.value}-{index}"}
        if request.lesson_mode:
            updates["lesson_tip"] = lesson_tip(shape)
        voicings.append(shape.model_copy(update=updates))

    if verbose:
        print(f"  {len(ranked)} distinct shapes, selected {len(voicings)}")
        for v in voicings:
            print(f"    {v.id}: {v.diagram()}  [{v.difficulty.value}, {v.position}, score {v.score}]")
        print(f"\n{'='*60}")

    return VoicingResponse(
        voicings=voicings,
        chord=chord,
        instrument=instrument,
        constraints=constraints,
        metadata=ResponseMetadata(
            candidates_generated=result.generated,
            candidates_filtered=len(result.shapes),
            warnings=warnings,
        ),
    )


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def _describe(shape: VoicingShape) -> List[str]:
    if shape.is_fretted:
        fingers = "".join("-" if f is None else str(f) for f in shape.fingers or ())
        lines = [
            f"Frets:   {shape.diagram()}   (strings {' '.join(shape.tuning or ())})",
            f"Fingers: {fingers}",
        ]
        for barre in shape.barres:
            lines.append(f"Barre:   fret {barre.fret}, strings {barre.from_string}-{barre.to_string}")
    else:
        lines = [
            f"Keys:    {shape.diagram()}",
            f"Fingers: {'-'.join(str(f) for f in shape.fingers or ())} ({shape.hand} hand)",
        ]
    lines.append(f"Level:   {shape.difficulty.value} | {shape.position} | score {shape.score}")
    if shape.lesson_tip:
        lines.append(f"Tip:     {shape.lesson_tip}")
    return lines


def format_as_chord_sheet(response: VoicingResponse) -> str:
    """Format a VoicingResponse as a human-readable sheet."""
    width = 70
    lines = []
    lines.append("╔" + "═" * width + "╗")
    lines.append("║" + f" {response.chord.symbol} VOICINGS ({response.instrument.value}) ".center(width) + "║")
    lines.append("╠" + "═" * width + "╣")
    lines.append(f"║ Tones: {' '.join(chord_tone_names(response.chord))}".ljust(width + 1) + "║")
    lines.append(f"║ Constraints: {response.constraints}".ljust(width + 1) + "║")

    for shape in response.voicings:
        lines.append("╠" + "─" * width + "╣")
        lines.append(f"║ #{shape.id}".ljust(width + 1) + "║")
        for line in _describe(shape):
            lines.append(f"║   {line}".ljust(width + 1) + "║")

    for warning in response.metadata.warnings:
        lines.append("╠" + "─" * width + "╣")
        lines.append(f"║ ⚠ {warning}".ljust(width + 1) + "║")

    lines.append("╚" + "═" * width + "╝")
    return "\n".join(lines)


def format_as_json(response: VoicingResponse, indent: int = 2) -> str:
    """Format a VoicingResponse as JSON."""
    return response.model_dump_json(indent=indent, exclude_none=True)


# =============================================================================
# DEMO
# =============================================================================

if __name__ == "__main__":
    demo_requests = [
        {"instrument": "guitar", "chordInput": "Cmaj7", "lessonMode": True},
        {"instrument": "guitar", "chordInput": "G", "naturalLanguage": "easy open chords"},
        {"instrument": "bass", "chordInput": "A7"},
        {"instrument": "piano", "chordInput": "Dm7", "constraints": {"register": "low"}},
    ]
    for demo in demo_requests:
        print(format_as_chord_sheet(generate_voicings(demo)))
        print()
