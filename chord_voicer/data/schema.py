"""
Schema definitions for the Chord Voicing Generator.

This module defines the enumerations and Pydantic models that flow through
the voicing pipeline:

    VoicingRequest → ResolvedChord + Constraints → ValidationResult
                   → VoicingShape (×3-4) → VoicingResponse

Every model is frozen: once built, a chord, a constraint set or a voicing
never changes. Wire-facing models accept camelCase keys ("voicingType",
"minFret", "chordInput") as well as the Python field names.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from chord_voicer.data.pitch import normalize_note


# =============================================================================
# ENUMERATIONS (closed sets the validator matches on)
# =============================================================================

class Instrument(str, Enum):
    """Supported target instruments."""
    GUITAR = "guitar"
    BASS = "bass"
    KEYBOARD = "keyboard"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            lowered = INSTRUMENT_ALIASES.get(lowered, lowered)
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class Difficulty(str, Enum):
    """Playing difficulty of a voicing (ANY only appears in constraints)."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ANY = "any"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class VoicingType(str, Enum):
    """Shape family requested for fretted instruments."""
    OPEN = "open"
    BARRE = "barre"
    DROP_VOICING = "drop_voicing"
    ANY = "any"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower().replace("-", "_")
            lowered = VOICING_TYPE_ALIASES.get(lowered, lowered)
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class OpenPreference(str, Enum):
    """Whether open strings should be favoured or excluded."""
    PREFER = "prefer"
    AVOID = "avoid"


class Register(str, Enum):
    """Keyboard register windows (see instruments.yaml)."""
    LOW = "low"
    MID = "mid"
    HIGH = "high"


class ChordType(str, Enum):
    """Which part of the chord a voicing sounds: up to the fifth, the seventh, or the extensions."""
    TRIAD = "triad"
    SEVENTH = "seventh"
    EXTENDED = "extended"
    ANY = "any"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


INSTRUMENT_ALIASES = {
    "piano": "keyboard",
    "keys": "keyboard",
    "electric guitar": "guitar",
    "acoustic guitar": "guitar",
    "bass guitar": "bass",
}

VOICING_TYPE_ALIASES = {
    "dropvoicing": "drop_voicing",
    "drop": "drop_voicing",
    "drop2": "drop_voicing",
    "drop_2": "drop_voicing",
}

DIFFICULTY_ORDER = [Difficulty.BEGINNER, Difficulty.INTERMEDIATE, Difficulty.ADVANCED]

# Number of voicings a response may hold
MIN_COUNT = 3
MAX_COUNT = 4


def clamp_count(value: Any) -> int:
    """Requested voicing count forced into [MIN_COUNT, MAX_COUNT]."""
    return max(MIN_COUNT, min(MAX_COUNT, int(value)))


# =============================================================================
# CONSTRAINTS
# =============================================================================

class Constraints(BaseModel):
    """
    Playability constraints for one request.

    Every field is optional and None means "unconstrained". Only the keys
    that are present take part in validation and search, which is what
    makes merging free-text constraints over explicit ones well defined.

    Attributes:
        difficulty: Hard filter on the classified difficulty
        voicing_type: open / barre / drop_voicing / any
        min_fret, max_fret: Fret window (open strings count as fret 0)
        allow_muted: False forces every in-scope string to sound
        max_span: Largest allowed distance between fretted notes
        string_subset: String indices in scope (0 = lowest-pitched string)
        tuning: Tuning preset name from the instrument table
        open_preference: prefer / avoid open strings
        keyboard_register: low / mid / high (keyboard only, key "register")
        require_open_strings: Note names that must ring as open strings
        chord_type: triad / seventh / extended / any (which chord tones to voice)
        count: How many voicings to return, clamped into [3, 4]

    Example:
        >>> c = Constraints(voicingType="barre", minFret=3)
        >>> c.active_keys()
        ['voicing_type', 'min_fret']
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    difficulty: Optional[Difficulty] = None
    voicing_type: Optional[VoicingType] = None
    min_fret: Optional[int] = None
    max_fret: Optional[int] = None
    allow_muted: Optional[bool] = None
    max_span: Optional[int] = None
    string_subset: Optional[Tuple[int, ...]] = None
    tuning: Optional[str] = None
    open_preference: Optional[OpenPreference] = None
    keyboard_register: Optional[Register] = Field(default=None, alias="register")
    require_open_strings: Optional[Tuple[str, ...]] = None
    chord_type: Optional[ChordType] = None
    count: Optional[int] = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def parse_difficulty(cls, v: Any) -> Any:
        return Difficulty(v) if isinstance(v, str) else v

    @field_validator("voicing_type", mode="before")
    @classmethod
    def parse_voicing_type(cls, v: Any) -> Any:
        return VoicingType(v) if isinstance(v, str) else v

    @field_validator("chord_type", mode="before")
    @classmethod
    def parse_chord_type(cls, v: Any) -> Any:
        return ChordType(v) if isinstance(v, str) else v

    @field_validator("open_preference", "keyboard_register", mode="before")
    @classmethod
    def lowercase_choice(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("string_subset", mode="before")
    @classmethod
    def normalize_string_subset(cls, v: Any) -> Any:
        """Store string indices sorted and without repeats."""
        if v is None:
            return v
        return tuple(sorted(set(int(i) for i in v)))

    @field_validator("require_open_strings", mode="before")
    @classmethod
    def normalize_open_strings(cls, v: Any) -> Any:
        """'e' → ('E',); ['b', 'E', 'e'] → ('B', 'E')."""
        if v is None:
            return v
        if isinstance(v, str):
            v = [v]
        notes: List[str] = []
        for note in v:
            name = normalize_note(str(note))
            if name not in notes:
                notes.append(name)
        return tuple(notes)

    @field_validator("count", mode="before")
    @classmethod
    def clamp_constraint_count(cls, v: Any) -> Any:
        return None if v is None else clamp_count(v)

    @field_validator("tuning", mode="before")
    @classmethod
    def normalize_tuning(cls, v: Any) -> Any:
        """'Drop D' / 'drop-d' / 'dropD' → 'drop_d'."""
        if not isinstance(v, str):
            return v
        name = re.sub(r"(?<=[a-z])([A-Z])", r"_\1", v.strip())
        return re.sub(r"[\s\-_]+", "_", name).lower()

    def active_keys(self) -> List[str]:
        """Field names of the constraints that are present."""
        return [name for name in type(self).model_fields if getattr(self, name) is not None]

    def display_key(self, name: str) -> str:
        """Wire name of a field ('min_fret' → 'minFret')."""
        return type(self).model_fields[name].alias or name

    @property
    def fret_window(self) -> Tuple[Optional[int], Optional[int]]:
        return (self.min_fret, self.max_fret)

    def to_dict(self) -> Dict[str, Any]:
        """Present keys only, camelCase, JSON-friendly."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def __str__(self) -> str:
        parts = [f"{k}={v}" for k, v in self.to_dict().items()]
        return ", ".join(parts) if parts else "(unconstrained)"


# =============================================================================
# CHORDS
# =============================================================================

class ChordTone(BaseModel):
    """One interval class of a chord, tagged required or omittable."""

    model_config = ConfigDict(frozen=True)

    interval: int = Field(..., ge=0, le=11, description="Semitones above the root")
    degree: str = Field(..., description="Degree label, e.g. '3', 'b7', '#11'")
    required: bool = True


class ChordInput(BaseModel):
    """
    Structured chord input, the alternative to a literal symbol.

    Example:
        >>> ChordInput(root="C", quality="maj7", bass="G").symbol
        'Cmaj7/G'
    """

    model_config = ConfigDict(frozen=True)

    root: str = Field(..., min_length=1)
    quality: str = ""
    bass: Optional[str] = None

    @property
    def symbol(self) -> str:
        symbol = f"{self.root}{self.quality}"
        if self.bass:
            symbol += f"/{self.bass}"
        return symbol


class ResolvedChord(BaseModel):
    """
    A parsed chord symbol.

    Attributes:
        symbol: The chord symbol as given
        root: Root pitch class (0-11)
        root_name: Root spelled as written ('Bb', 'F#')
        quality: Canonical quality token ('maj', 'm7', '9', ...)
        tones: Interval classes in degree order, root first
        bass: Slash-bass pitch class overriding the lowest note, if any
        bass_name: Slash-bass as written
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    root: int = Field(..., ge=0, le=11)
    root_name: str
    quality: str
    tones: Tuple[ChordTone, ...]
    bass: Optional[int] = Field(default=None, ge=0, le=11)
    bass_name: Optional[str] = None

    @model_validator(mode="after")
    def check_tones(self) -> "ResolvedChord":
        """The root is always present and always required."""
        roots = [t for t in self.tones if t.interval == 0]
        if not roots or not roots[0].required:
            raise ValueError(f"Chord '{self.symbol}' must contain a required root")
        required = [t for t in self.tones if t.required]
        if len(required) < 2:
            raise ValueError(f"Chord '{self.symbol}' needs a required tone besides the root")
        return self

    @computed_field
    @property
    def pitch_classes(self) -> List[int]:
        """All chord tones as pitch classes, in degree order."""
        return [(self.root + t.interval) % 12 for t in self.tones]

    @computed_field
    @property
    def required_pitch_classes(self) -> List[int]:
        return [(self.root + t.interval) % 12 for t in self.tones if t.required]

    @computed_field
    @property
    def optional_pitch_classes(self) -> List[int]:
        return [(self.root + t.interval) % 12 for t in self.tones if not t.required]

    @property
    def required_intervals(self) -> List[int]:
        return [t.interval for t in self.tones if t.required]

    @property
    def sounding_requirements(self) -> List[int]:
        """Required pitch classes plus a slash bass that is not already required."""
        needed = list(self.required_pitch_classes)
        if self.bass is not None and self.bass not in needed:
            needed.append(self.bass)
        return needed

    def __str__(self) -> str:
        degrees = " ".join(t.degree if t.required else f"({t.degree})" for t in self.tones)
        bass = f" / bass {self.bass_name}" if self.bass_name else ""
        return f"{self.symbol}: root {self.root_name}, {degrees}{bass}"


# =============================================================================
# VALIDATION RESULT
# =============================================================================

class ValidationResult(BaseModel):
    """
    Outcome of checking constraints against an instrument.

    suggestions[i] is the fix for conflicts[i].
    """

    model_config = ConfigDict(frozen=True)

    valid: bool
    conflicts: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_consistency(self) -> "ValidationResult":
        if self.valid and self.conflicts:
            raise ValueError("A valid result cannot carry conflicts")
        if not self.valid and not self.conflicts:
            raise ValueError("An invalid result needs at least one conflict")
        return self

    def __str__(self) -> str:
        if self.valid:
            return "✅ VALID"
        lines = ["❌ INVALID"]
        for conflict, suggestion in zip(self.conflicts, self.suggestions):
            lines.append(f"  - {conflict} → {suggestion}")
        return "\n".join(lines)


# =============================================================================
# VOICINGS
# =============================================================================

class Barre(BaseModel):
    """One finger pressing strings from_string..to_string at the same fret."""

    model_config = ConfigDict(frozen=True)

    fret: int = Field(..., ge=1)
    from_string: int = Field(..., ge=0)
    to_string: int = Field(..., ge=0)


class VoicingShape(BaseModel):
    """
    One playable voicing.

    Fretted instruments fill frets/fingers/barres/tuning, with strings
    indexed from the lowest-pitched string (index 0). A fret of None means
    the string is muted, 0 means open. The keyboard fills keys (MIDI
    numbers, ascending), key_names, fingers (one per key) and hand.

    Example:
        >>> shape.frets      # C major, open position
        (None, 3, 2, 0, 1, 0)
        >>> shape.fingers
        (None, 3, 2, None, 1, None)
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    instrument: Instrument
    chord_name: str
    root: int = Field(..., ge=0, le=11)
    root_name: str

    frets: Optional[Tuple[Optional[int], ...]] = None
    fingers: Optional[Tuple[Optional[int], ...]] = None
    barres: Tuple[Barre, ...] = ()
    tuning: Optional[Tuple[str, ...]] = None

    keys: Optional[Tuple[int, ...]] = None
    key_names: Optional[Tuple[str, ...]] = None
    hand: Optional[str] = None

    difficulty: Difficulty
    position: str
    score: float
    lesson_tip: Optional[str] = None

    @model_validator(mode="after")
    def check_fingering(self) -> "VoicingShape":
        """One finger never holds two different frets; open and muted strings take no finger."""
        if self.frets is None or self.fingers is None:
            return self
        if len(self.frets) != len(self.fingers):
            raise ValueError("frets and fingers must have one entry per string")
        finger_frets: Dict[int, int] = {}
        for fret, finger in zip(self.frets, self.fingers):
            if finger is None:
                continue
            if not fret:
                raise ValueError(f"Finger {finger} placed on an open or muted string")
            if finger_frets.setdefault(finger, fret) != fret:
                raise ValueError(f"Finger {finger} cannot press frets {finger_frets[finger]} and {fret}")
        return self

    @property
    def is_fretted(self) -> bool:
        return self.frets is not None

    @property
    def pattern(self) -> Tuple[int, ...]:
        """Hashable identity of the shape (muted strings as -1)."""
        if self.frets is not None:
            return tuple(-1 if f is None else f for f in self.frets)
        return tuple(self.keys or ())

    @property
    def anchor(self) -> int:
        """Lowest fretted fret (0 when nothing is fretted), or lowest key."""
        if self.frets is not None:
            return min((f for f in self.frets if f), default=0)
        return min(self.keys or (0,))

    @property
    def fretted_span(self) -> int:
        fretted = [f for f in (self.frets or ()) if f]
        return max(fretted) - min(fretted) if fretted else 0

    def diagram(self) -> str:
        """Compact text form: 'x32010' style for frets, key names for keyboard."""
        if self.frets is not None:
            wide = any(f is not None and f > 9 for f in self.frets)
            cells = ["x" if f is None else str(f) for f in self.frets]
            return " ".join(cells) if wide else "".join(cells)
        return " ".join(self.key_names or ())


# =============================================================================
# REQUEST / RESPONSE
# =============================================================================

class VoicingRequest(BaseModel):
    """
    One voicing request.

    count is clamped into [3, 4] whatever value is supplied.

    Example:
        >>> VoicingRequest(instrument="guitar", chordInput="Cmaj7", count=10).count
        4
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    instrument: Instrument
    chord_input: Union[str, ChordInput]
    constraints: Optional[Constraints] = None
    natural_language: Optional[str] = None
    count: int = MAX_COUNT
    lesson_mode: bool = False

    @field_validator("instrument", mode="before")
    @classmethod
    def parse_instrument(cls, v: Any) -> Any:
        return Instrument(v) if isinstance(v, str) else v

    @field_validator("count", mode="before")
    @classmethod
    def clamp_request_count(cls, v: Any) -> int:
        if v is None:
            return MAX_COUNT
        return clamp_count(v)

    @field_validator("lesson_mode", mode="before")
    @classmethod
    def default_lesson_mode(cls, v: Any) -> Any:
        return False if v is None else v

    @property
    def chord_symbol(self) -> str:
        if isinstance(self.chord_input, ChordInput):
            return self.chord_input.symbol
        return self.chord_input


class ResponseMetadata(BaseModel):
    """Search bookkeeping echoed with every response."""

    model_config = ConfigDict(frozen=True)

    candidates_generated: int = 0
    candidates_filtered: int = 0
    warnings: List[str] = Field(default_factory=list)


class VoicingResponse(BaseModel):
    """Ranked voicings plus the resolved chord and the constraints actually used."""

    model_config = ConfigDict(frozen=True)

    voicings: List[VoicingShape]
    chord: ResolvedChord
    instrument: Instrument
    constraints: Constraints
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)
