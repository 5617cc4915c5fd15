"""
Rules Subpackage - Rule-based voicing engine

    - chords.py: Chord symbols → root + required/omittable tones
    - constraint_parser.py: Free text → constraints (keyword/regex scan)
    - validator.py: Constraints vs instrument physics
    - fretboard.py / keyboard.py: Voicing search per instrument family
    - ranking.py: Deduplication, ranking, diverse selection
    - lessons.py: Practice tips for lesson mode
    - generate_voicings.py: The pipeline combining all of the above

Usage:
    from chord_voicer.rules import generate_voicings

    response = generate_voicings({"instrument": "guitar", "chordInput": "Am7"})
    print(format_as_chord_sheet(response))
"""

from chord_voicer.rules.generate_voicings import generate_voicings, format_as_chord_sheet, format_as_json
from chord_voicer.rules.chords import resolve_chord
from chord_voicer.rules.constraint_parser import ConstraintParser, extract_constraints, merge_constraints
from chord_voicer.rules.validator import validate_constraints
