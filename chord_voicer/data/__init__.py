"""
Data Subpackage

Everything the voicing pipeline passes around:
    - schema.py: Pydantic models and enums (requests, constraints, chords, voicings)
    - errors.py: Typed domain failures with codes and suggestions
    - pitch.py: Note names, pitch classes and MIDI numbers
    - instruments.py: Instrument capability table (loaded from instruments.yaml)
"""

from chord_voicer.data.schema import Constraints, Instrument, ResolvedChord, VoicingRequest, VoicingShape
from chord_voicer.data.errors import VoicingGenerationError
