"""
Instrument Capability Model

Static physical limits of every supported instrument, loaded once from
the bundled instruments.yaml:

    - Fretted instruments (guitar, bass): tunings, fret count, finger
      count, physical stretch limit, minimum number of sounding strings
    - Keyboard: maximum hand width and the register windows

The validator and the search engines only ever read these objects.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import yaml

from chord_voicer.data.pitch import parse_pitched_note, strip_octave
from chord_voicer.data.schema import Instrument, Register


CAPABILITY_FILE = Path(__file__).with_name("instruments.yaml")

FRETTED_FIELDS = ["max_fret", "max_fingers", "max_span", "min_sounded_strings", "default_tuning", "tunings"]
KEYBOARD_FIELDS = ["max_width", "max_fingers", "default_register", "registers"]


@dataclass(frozen=True)
class InstrumentCapability:
    """
    Physical limits of one instrument.

    Fretted fields are None on the keyboard and keyboard fields are None on
    fretted instruments.
    """
    instrument: Instrument
    kind: str
    constraint_keys: Tuple[str, ...]
    max_fingers: int
    # fretted
    max_fret: Optional[int] = None
    max_span: Optional[int] = None
    min_sounded_strings: Optional[int] = None
    default_tuning: Optional[str] = None
    tunings: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    # keyboard
    max_width: Optional[int] = None
    default_register: Optional[str] = None
    registers: Dict[str, Tuple[int, int]] = field(default_factory=dict)

    @property
    def is_fretted(self) -> bool:
        return self.kind == "fretted"

    @property
    def string_count(self) -> int:
        """Strings in the default tuning (0 for the keyboard)."""
        if not self.is_fretted:
            return 0
        return len(self.tunings[self.default_tuning])

    def tuning_names(self, name: Optional[str] = None) -> Tuple[str, ...]:
        """Pitched open-string notes of a tuning, lowest string first."""
        name = name or self.default_tuning
        if name not in self.tunings:
            raise ValueError(
                f"Unknown tuning '{name}' for {self.instrument.value}. "
                f"Available: {sorted(self.tunings)}"
            )
        return self.tunings[name]

    def tuning_notes(self, name: Optional[str] = None) -> List[int]:
        """Open-string MIDI numbers of a tuning, lowest string first."""
        return [parse_pitched_note(n) for n in self.tuning_names(name)]

    def tuning_labels(self, name: Optional[str] = None) -> Tuple[str, ...]:
        """Open-string note names without octave ('E', 'A', ...)."""
        return tuple(strip_octave(n) for n in self.tuning_names(name))

    def register_range(self, name: Optional[Union[str, Register]] = None) -> Tuple[int, int]:
        """Inclusive MIDI window of a keyboard register."""
        if isinstance(name, Register):
            name = name.value
        name = name or self.default_register
        if name not in self.registers:
            raise ValueError(f"Unknown register '{name}'. Available: {sorted(self.registers)}")
        return self.registers[name]


# =============================================================================
# LOADING
# =============================================================================

def _require(entry: dict, fields: List[str], instrument: str) -> None:
    missing = [f for f in fields if f not in entry]
    if missing:
        raise ValueError(f"Capability entry '{instrument}' is missing fields: {missing}")


def _build_capability(name: str, entry: dict) -> InstrumentCapability:
    if not isinstance(entry, dict):
        raise ValueError(f"Capability entry '{name}' must be a mapping, got {type(entry).__name__}")

    instrument = Instrument(name)
    kind = entry.get("kind")
    keys = tuple(entry.get("constraint_keys") or ())

    if kind == "fretted":
        _require(entry, FRETTED_FIELDS, name)
        tunings = {}
        for tuning, notes in entry["tunings"].items():
            if not notes:
                raise ValueError(f"Tuning '{tuning}' of '{name}' has no strings")
            # Fail on unparseable notes now rather than mid-search.
            for note in notes:
                parse_pitched_note(str(note))
            tunings[tuning] = tuple(str(n) for n in notes)
        if entry["default_tuning"] not in tunings:
            raise ValueError(f"Default tuning '{entry['default_tuning']}' of '{name}' is not defined")
        return InstrumentCapability(
            instrument=instrument,
            kind=kind,
            constraint_keys=keys,
            max_fingers=int(entry["max_fingers"]),
            max_fret=int(entry["max_fret"]),
            max_span=int(entry["max_span"]),
            min_sounded_strings=int(entry["min_sounded_strings"]),
            default_tuning=entry["default_tuning"],
            tunings=tunings,
        )

    if kind == "keyboard":
        _require(entry, KEYBOARD_FIELDS, name)
        registers = {}
        for register, window in entry["registers"].items():
            if len(window) != 2 or int(window[0]) > int(window[1]):
                raise ValueError(f"Register '{register}' of '{name}' must be [low, high], got {window}")
            registers[register] = (int(window[0]), int(window[1]))
        if entry["default_register"] not in registers:
            raise ValueError(f"Default register '{entry['default_register']}' of '{name}' is not defined")
        return InstrumentCapability(
            instrument=instrument,
            kind=kind,
            constraint_keys=keys,
            max_fingers=int(entry["max_fingers"]),
            max_width=int(entry["max_width"]),
            default_register=entry["default_register"],
            registers=registers,
        )

    raise ValueError(f"Capability entry '{name}' has unknown kind: {kind!r}")


def load_capabilities(path: Union[str, Path] = CAPABILITY_FILE) -> Dict[Instrument, InstrumentCapability]:
    """
    Load and check the capability table.

    Raises:
        ValueError: If an entry is missing a field or holds unusable values
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict) or not raw:
        raise ValueError(f"Capability file {path} must contain a mapping of instruments")

    capabilities = {}
    for name, entry in raw.items():
        capability = _build_capability(str(name), entry)
        capabilities[capability.instrument] = capability

    missing = [i.value for i in Instrument if i not in capabilities]
    if missing:
        raise ValueError(f"Capability file {path} has no entry for: {missing}")
    return capabilities


CAPABILITIES = load_capabilities()


def get_capability(instrument: Union[str, Instrument]) -> InstrumentCapability:
    """Capability entry of an instrument ('piano' is accepted for the keyboard)."""
    return CAPABILITIES[Instrument(instrument)]
