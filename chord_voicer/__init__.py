"""
Chord Voicer - Package Root

Generates small, diverse, ranked lists of playable chord voicings for
guitar, bass and keyboard from a chord symbol plus playability constraints
(explicit, or described in free text).

Subpackages:
    - chord_voicer.data: Schemas, errors, pitch tables, instrument capabilities
    - chord_voicer.rules: Chord resolver, constraint parser/validator, voicing search
    - chord_voicer.app: Command-line interface

Example usage:
    from chord_voicer.rules.generate_voicings import generate_voicings

    response = generate_voicings({"instrument": "guitar", "chordInput": "Cmaj7"})
    for shape in response.voicings:
        print(shape.diagram())      # 'x32000', ...
"""

__version__ = "0.1.0"
