"""
Keyboard Search - Voicings for Piano / Keyboard

There are no strings, frets, mutes or barres on a keyboard. A candidate
is a set of keys:

    tone set (full chord, or required tones only)
      × ordering (every inversion; the slash bass first for slash chords)
      × spread (close position, plus drop-2 for four or more notes)
      × bass key (every matching key inside the register window)

Difficulty comes from hand width and how common the inversion is; the
score prefers voicings near the middle of the register, narrow hands,
root position and complete chords.
"""

from typing import List, Optional, Tuple

from chord_voicer.data.instruments import InstrumentCapability, get_capability
from chord_voicer.data.pitch import midi_to_name, prefers_flats
from chord_voicer.data.schema import (
    Constraints,
    Difficulty,
    Instrument,
    ResolvedChord,
    VoicingShape,
)
from chord_voicer.rules.fretboard import ordinal
from chord_voicer.rules.ranking import SearchResult


OCTAVE = 12
ONE_HAND_WIDTH = 12

WEIGHT_CENTER = 0.1
WEIGHT_WIDTH = 0.2
WEIGHT_INVERSION = 0.75
WEIGHT_MISSING_OPTIONAL = 0.75

# Right-hand fingerings by note count; the left hand mirrors them
HAND_FINGERINGS = {
    1: (1,),
    2: (1, 5),
    3: (1, 3, 5),
    4: (1, 2, 3, 5),
    5: (1, 2, 3, 4, 5),
}


def inversion_name(rank: int) -> str:
    return "Root position" if rank == 0 else f"{ordinal(rank)} inversion"


def close_voicing(bass_key: int, pcs: List[int]) -> List[int]:
    """Stack each pitch class just above the previous key, starting on bass_key."""
    keys = [bass_key]
    for pc in pcs[1:]:
        step = (pc - keys[-1]) % OCTAVE or OCTAVE
        keys.append(keys[-1] + step)
    return keys


def drop_two(keys: List[int]) -> List[int]:
    """Move the second-highest note of a close voicing down an octave."""
    dropped = list(keys)
    dropped[-2] -= OCTAVE
    return sorted(dropped)


def keyboard_fingers(keys: Tuple[int, ...]) -> Tuple[Tuple[int, ...], str]:
    """
    Fingering and hand for a key set.

    One hand covers an octave; wider voicings split the lower keys to the
    left hand (fifth finger on the lowest key).
    """
    if keys[-1] - keys[0] <= ONE_HAND_WIDTH and len(keys) <= 5:
        return HAND_FINGERINGS[len(keys)], "right"
    split = max(1, len(keys) // 2)
    while keys[split - 1] - keys[0] > ONE_HAND_WIDTH and split > 1:
        split -= 1
    split = max(split, len(keys) - 5)
    left = tuple(reversed(HAND_FINGERINGS[min(split, 5)]))
    right = HAND_FINGERINGS[min(len(keys) - split, 5)]
    return left + right, "both"


def classify_difficulty(width: int, rank: int) -> Difficulty:
    if rank == 0 and width <= ONE_HAND_WIDTH:
        return Difficulty.BEGINNER
    if width <= 14 and rank <= 2:
        return Difficulty.INTERMEDIATE
    return Difficulty.ADVANCED


class KeyboardSearch:
    """
    Voicing search for one chord on the keyboard.

    Attributes:
        chord: The resolved chord
        constraints: Validated constraints (difficulty and register are used)
        capability: Keyboard limits
        verbose: If True, print search progress
    """

    def __init__(self, chord: ResolvedChord, constraints: Constraints,
                 capability: InstrumentCapability, verbose: bool = False):
        self.chord = chord
        self.constraints = constraints
        self.capability = capability
        self.verbose = verbose

        self.register = (constraints.keyboard_register.value if constraints.keyboard_register
                         else capability.default_register)
        self.low, self.high = capability.register_range(self.register)
        self.center = (self.low + self.high) / 2
        self.flats = prefers_flats(chord.root_name)

    def _log(self, message: str) -> None:
        """Print debug message if verbose mode is on."""
        if self.verbose:
            print(f"  [Keyboard] {message}")

    def tone_sets(self) -> List[List[int]]:
        """Full chord and required-only chord, pitch classes in degree order."""
        sets = [self.chord.pitch_classes]
        required = self.chord.required_pitch_classes
        if required != sets[0]:
            sets.append(required)
        return sets

    def orderings(self, pcs: List[int]) -> List[List[int]]:
        """Pitch classes lowest first, once per usable bass note."""
        bass = self.chord.bass
        if bass is not None:
            return [[bass] + [pc for pc in pcs if pc != bass]]
        return [pcs[i:] + pcs[:i] for i in range(len(pcs))]

    def candidates(self) -> List[Tuple[Tuple[int, ...], int, bool]]:
        """(keys, inversion rank, is drop-2) for every placement inside the register."""
        found = {}
        for pcs in self.tone_sets():
            for ordered in self.orderings(pcs):
                for bass_key in range(self.low, self.high + 1):
                    if bass_key % OCTAVE != ordered[0]:
                        continue
                    close = close_voicing(bass_key, ordered)
                    spreads = [(close, False)]
                    if len(close) >= 4:
                        spreads.append((drop_two(close), True))
                    for keys, is_drop in spreads:
                        key = tuple(keys)
                        if key in found:
                            continue
                        if keys[0] < self.low or keys[-1] > self.high:
                            continue
                        if keys[-1] - keys[0] > self.capability.max_width:
                            continue
                        if self.chord.bass is not None and keys[0] % OCTAVE != self.chord.bass:
                            continue
                        found[key] = (self._rank_of(keys[0]), is_drop)
        return [(keys, rank, is_drop) for keys, (rank, is_drop) in found.items()]

    def _rank_of(self, lowest_key: int) -> int:
        """Inversion rank: degree index of the bass note (a foreign slash bass counts as 1)."""
        pc = lowest_key % OCTAVE
        pcs = self.chord.pitch_classes
        return pcs.index(pc) if pc in pcs else 1

    def build_shape(self, keys: Tuple[int, ...], rank: int, is_drop: bool) -> Optional[VoicingShape]:
        width = keys[-1] - keys[0]
        difficulty = classify_difficulty(width, rank)
        wanted = self.constraints.difficulty
        if wanted not in (None, Difficulty.ANY) and difficulty != wanted:
            return None

        sounding = {k % OCTAVE for k in keys}
        missing = len(set(self.chord.optional_pitch_classes) - sounding)
        score = (
            WEIGHT_CENTER * abs(sum(keys) / len(keys) - self.center)
            + WEIGHT_WIDTH * width
            + WEIGHT_INVERSION * rank
            + WEIGHT_MISSING_OPTIONAL * missing
        )

        fingers, hand = keyboard_fingers(keys)
        label = inversion_name(rank)
        if is_drop:
            label += " (drop 2)"

        return VoicingShape(
            instrument=Instrument.KEYBOARD,
            chord_name=self.chord.symbol,
            root=self.chord.root,
            root_name=self.chord.root_name,
            keys=keys,
            key_names=tuple(midi_to_name(k, self.flats) for k in keys),
            fingers=fingers,
            hand=hand,
            difficulty=difficulty,
            position=f"{label}, {self.register} register",
            score=round(score, 3),
        )

    def run(self) -> SearchResult:
        self._log(f"{self.chord.symbol} in the {self.register} register (MIDI {self.low}-{self.high})")
        candidates = self.candidates()
        shapes = [s for s in (self.build_shape(*c) for c in candidates) if s is not None]
        self._log(f"{len(candidates)} key sets, {len(shapes)} passed the filters")
        return SearchResult(shapes=shapes, generated=len(candidates))


def search_keyboard(chord: ResolvedChord, constraints: Constraints, verbose: bool = False) -> SearchResult:
    """Search keyboard voicings for a chord."""
    capability = get_capability(Instrument.KEYBOARD)
    return KeyboardSearch(chord, constraints, capability, verbose=verbose).run()
