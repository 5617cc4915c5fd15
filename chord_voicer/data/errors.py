"""
Typed failures of the voicing pipeline.

Every domain failure carries a machine-readable code, a human-readable
message and a list of suggestions the caller can act on:

    CHORD_PARSE_FAILED   - the chord symbol could not be resolved
    CONSTRAINT_CONFLICT  - the constraints cannot be satisfied on the instrument
    NO_VOICINGS_FOUND    - the constraints are consistent but nothing fits them
"""

from typing import Any, Dict, List, Optional


class VoicingGenerationError(Exception):
    """Base class for every failure reported back to the caller."""

    code = "VOICING_GENERATION_FAILED"

    def __init__(self, message: str, suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "suggestions": list(self.suggestions),
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class UnrecognizedChordError(VoicingGenerationError):
    """The chord symbol matched no known root/quality combination."""

    code = "CHORD_PARSE_FAILED"

    def __init__(self, symbol: str, suggestions: Optional[List[str]] = None):
        super().__init__(f"Could not parse chord symbol '{symbol}'", suggestions)
        self.symbol = symbol


class ConstraintConflictError(VoicingGenerationError):
    """
    The merged constraints contradict each other or the instrument.

    The message joins every conflict; suggestions[i] addresses conflicts[i].
    """

    code = "CONSTRAINT_CONFLICT"

    def __init__(self, conflicts: List[str], suggestions: Optional[List[str]] = None):
        super().__init__("; ".join(conflicts), suggestions)
        self.conflicts = list(conflicts)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["conflicts"] = list(self.conflicts)
        return payload


class NoVoicingsFoundError(VoicingGenerationError):
    """The search finished without a single playable candidate."""

    code = "NO_VOICINGS_FOUND"
