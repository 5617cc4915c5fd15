"""
Fretboard Search - Voicings for Guitar and Bass

Branch-and-bound search over string states, lowest string first:

    every string in scope: muted | open | fretted at f (f inside the window)

Partial assignments live on an explicit stack. A branch is cut as soon as:
    - the fretted span exceeds maxSpan (or the physical stretch limit)
    - more distinct frets are held than there are fingers
    - more notes sit above the lowest fret than fingers are left for them
    - too few strings remain to sound the missing required tones

Frets out of reach of the notes already placed (further than the span
limit) are never tried.

Complete assignments then pass through:
    feasibility (required tones and open strings, slash bass lowest, enough strings)
      → finger assignment (barre on the lowest fret when > 4 notes)
      → voicing-type filter → difficulty filter → scoring
"""

from bisect import bisect_left, bisect_right
from typing import FrozenSet, List, NamedTuple, Optional, Tuple

from chord_voicer.data.instruments import InstrumentCapability, get_capability
from chord_voicer.data.pitch import note_to_pc
from chord_voicer.data.schema import (
    Barre,
    Constraints,
    Difficulty,
    Instrument,
    OpenPreference,
    ResolvedChord,
    VoicingShape,
    VoicingType,
)
from chord_voicer.rules.ranking import SearchResult


Frets = Tuple[Optional[int], ...]

# Highest fret an "open" voicing may use
OPEN_SHAPE_MAX_FRET = 4

# Tightest span each difficulty allows (used to prune early)
DIFFICULTY_SPAN = {
    Difficulty.BEGINNER: 2,
    Difficulty.INTERMEDIATE: 4,
}
BEGINNER_MAX_FRETTED = 3

# Scoring weights (lower total is better)
WEIGHT_POSITION = 1.0
WEIGHT_SPAN = 1.5
WEIGHT_MUTED = 2.0
WEIGHT_MUTED_ALLOWED = 0.25
WEIGHT_BASS_MUTE = 0.5
WEIGHT_INTERIOR_MUTE = 1.0
WEIGHT_DOUBLING = 0.5
WEIGHT_MISSING_OPTIONAL = 0.75
WEIGHT_ROOT_NOT_BASS = 1.5
WEIGHT_BARRE = 0.5
WEIGHT_OPEN_PREFERRED = -0.5


def ordinal(n: int) -> str:
    """1 → '1st', 2 → '2nd', 11 → '11th'."""
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


# =============================================================================
# FINGERING & CLASSIFICATION
# =============================================================================

def assign_fingers(frets: Frets, max_fingers: int = 4) -> Optional[Tuple[Frets, Tuple[Barre, ...]]]:
    """
    Assign fingers to the fretted positions of a shape.

    Fingers go to positions in ascending fret order (ties by string). With
    more positions than fingers, finger 1 bars the lowest fret across the
    strings from its first to its last occurrence, and the other fingers
    take what is left.

    Returns:
        (fingers per string, barres), or None if the shape cannot be held

    Example:
        >>> assign_fingers((1, 3, 3, 2, 1, 1))
        ((1, 3, 4, 2, 1, 1), (Barre(fret=1, from_string=0, to_string=5),))
    """
    positions = sorted((fret, string) for string, fret in enumerate(frets) if fret)
    fingers: List[Optional[int]] = [None] * len(frets)

    if len(positions) <= max_fingers:
        for finger, (fret, string) in enumerate(positions, start=1):
            fingers[string] = finger
        return tuple(fingers), ()

    low = positions[0][0]
    barred = [string for fret, string in positions if fret == low]
    first, last = barred[0], barred[-1]
    if first == last:
        return None
    # Every string under the barre has to be pressed at or above it
    if any(not frets[s] for s in range(first, last + 1)):
        return None

    others = [(fret, string) for fret, string in positions if fret != low]
    if len(others) > max_fingers - 1:
        return None

    for string in barred:
        fingers[string] = 1
    for finger, (fret, string) in enumerate(others, start=2):
        fingers[string] = finger
    return tuple(fingers), (Barre(fret=low, from_string=first, to_string=last),)


def fretted_span(frets: Frets) -> int:
    fretted = [f for f in frets if f]
    return max(fretted) - min(fretted) if fretted else 0


def classify_difficulty(frets: Frets, barres: Tuple[Barre, ...]) -> Difficulty:
    """beginner: no barre, span ≤ 2, ≤ 3 fretted; intermediate: span ≤ 4; else advanced."""
    span = fretted_span(frets)
    fretted = sum(1 for f in frets if f)
    if not barres and span <= 2 and fretted <= BEGINNER_MAX_FRETTED:
        return Difficulty.BEGINNER
    if span <= 4:
        return Difficulty.INTERMEDIATE
    return Difficulty.ADVANCED


def matches_voicing_type(frets: Frets, barres: Tuple[Barre, ...], pcs: List[Optional[int]],
                         voicing_type: Optional[VoicingType]) -> bool:
    if voicing_type is None or voicing_type == VoicingType.ANY:
        return True
    has_open = 0 in frets
    if voicing_type == VoicingType.OPEN:
        highest = max((f for f in frets if f), default=0)
        return has_open and not barres and highest <= OPEN_SHAPE_MAX_FRET
    if voicing_type == VoicingType.BARRE:
        return bool(barres) and not has_open
    # drop voicing: four adjacent sounding strings, four different notes
    sounded = [i for i, f in enumerate(frets) if f is not None]
    return (
        len(sounded) == 4
        and sounded[-1] - sounded[0] == 3
        and not has_open
        and len({pcs[i] for i in sounded}) == 4
    )


def position_label(frets: Frets) -> str:
    fretted = [f for f in frets if f]
    if not fretted or (0 in frets and max(fretted) <= OPEN_SHAPE_MAX_FRET):
        return "Open position"
    return f"{ordinal(min(fretted))} position"


# =============================================================================
# SEARCH
# =============================================================================

class PartialVoicing(NamedTuple):
    """One node of the search: frets chosen for the first len(frets) strings."""
    frets: Frets
    fretted: Tuple[int, ...]
    low: Optional[int]
    high: Optional[int]
    covered: FrozenSet[int]
    sounded: int


class FretboardSearch:
    """
    Voicing search for one chord on one fretted instrument.

    Attributes:
        chord: The resolved chord
        constraints: Validated constraints
        capability: Instrument limits
        verbose: If True, print search progress
    """

    def __init__(self, chord: ResolvedChord, constraints: Constraints,
                 capability: InstrumentCapability, verbose: bool = False):
        self.chord = chord
        self.constraints = constraints
        self.capability = capability
        self.verbose = verbose

        c = constraints
        self.tuning = c.tuning or capability.default_tuning
        self.open_notes = capability.tuning_notes(self.tuning)
        self.open_pcs = [n % 12 for n in self.open_notes]
        self.string_count = len(self.open_notes)
        self.in_scope = set(c.string_subset) if c.string_subset is not None else set(range(self.string_count))

        self.window_low = c.min_fret if c.min_fret is not None else 0
        self.window_high = c.max_fret if c.max_fret is not None else capability.max_fret
        if c.voicing_type == VoicingType.OPEN:
            self.window_high = min(self.window_high, OPEN_SHAPE_MAX_FRET)

        self.span_limit = c.max_span if c.max_span is not None else capability.max_span
        if c.difficulty in DIFFICULTY_SPAN:
            self.span_limit = min(self.span_limit, DIFFICULTY_SPAN[c.difficulty])
        self.max_fretted = BEGINNER_MAX_FRETTED if c.difficulty == Difficulty.BEGINNER else None

        self.allow_muted = c.allow_muted is not False
        self.allowed_pcs = set(chord.pitch_classes)
        if chord.bass is not None:
            self.allowed_pcs.add(chord.bass)
        self.required = frozenset(chord.sounding_requirements)
        self.required_open = {note_to_pc(note) for note in c.require_open_strings or ()}

        # Per string: the unfretted states (muted, open) and the fretted frets, ascending
        self.unfretted: List[List[Optional[int]]] = []
        self.fretted: List[List[int]] = []
        for i in range(self.string_count):
            options = self._string_options(i)
            self.unfretted.append([f for f in options if not f])
            self.fretted.append([f for f in options if f])
        # soundable[i]: strings from i upward that can sound at all
        self.soundable = [0] * (self.string_count + 1)
        for i in reversed(range(self.string_count)):
            can_sound = bool(self.fretted[i]) or 0 in self.unfretted[i]
            self.soundable[i] = self.soundable[i + 1] + int(can_sound)

    def _log(self, message: str) -> None:
        """Print debug message if verbose mode is on."""
        if self.verbose:
            print(f"  [Search] {message}")

    def _string_options(self, string: int) -> List[Optional[int]]:
        """States a single string may take: muted, open, or a fret in the window."""
        if string not in self.in_scope:
            return [None]
        c = self.constraints
        options: List[Optional[int]] = []
        if self.allow_muted:
            options.append(None)
        open_ok = (
            self.window_low == 0
            and c.open_preference != OpenPreference.AVOID
            and c.voicing_type not in (VoicingType.BARRE, VoicingType.DROP_VOICING)
        )
        if open_ok and self.open_pcs[string] in self.allowed_pcs:
            options.append(0)
        for fret in range(max(self.window_low, 1), self.window_high + 1):
            if (self.open_pcs[string] + fret) % 12 in self.allowed_pcs:
                options.append(fret)
        return options

    def _options_in_reach(self, state: PartialVoicing) -> List[Optional[int]]:
        """States for the next string that keep the fretted span within the limit."""
        string = len(state.frets)
        frets = self.fretted[string]
        if state.low is not None:
            start = bisect_left(frets, state.high - self.span_limit)
            stop = bisect_right(frets, state.low + self.span_limit)
            frets = frets[start:stop]
        return self.unfretted[string] + frets

    def _extend(self, state: PartialVoicing, fret: Optional[int]) -> Optional[PartialVoicing]:
        """Add one string's state, or return None when the branch is cut."""
        string = len(state.frets)
        low, high, fretted = state.low, state.high, state.fretted

        if fret:
            low = fret if low is None else min(low, fret)
            high = fret if high is None else max(high, fret)
            if high - low > self.span_limit:
                return None
            fretted = fretted + (fret,)
            if len(set(fretted)) > self.capability.max_fingers:
                return None
            if sum(1 for f in fretted if f > low) > self.capability.max_fingers - 1:
                return None
            if self.max_fretted is not None and len(fretted) > self.max_fretted:
                return None

        covered, sounded = state.covered, state.sounded
        if fret is not None:
            covered = covered | {(self.open_pcs[string] + fret) % 12}
            sounded += 1

        remaining = self.soundable[string + 1]
        if len(self.required - covered) > remaining:
            return None
        if sounded + remaining < self.capability.min_sounded_strings:
            return None
        return PartialVoicing(state.frets + (fret,), fretted, low, high, covered, sounded)

    def _rings_required_open(self, frets: Frets) -> bool:
        ringing = {self.open_pcs[i] for i, f in enumerate(frets) if f == 0}
        return self.required_open <= ringing

    def candidates(self) -> List[Frets]:
        """Every complete assignment that survives pruning and covers the required tones."""
        complete: List[Frets] = []
        stack = [PartialVoicing((), (), None, None, frozenset(), 0)]
        while stack:
            state = stack.pop()
            if len(state.frets) == self.string_count:
                if self.required <= state.covered and self._rings_required_open(state.frets):
                    complete.append(state.frets)
                continue
            for fret in self._options_in_reach(state):
                child = self._extend(state, fret)
                if child is not None:
                    stack.append(child)
        return complete

    def _lowest_pc(self, frets: Frets) -> Optional[int]:
        sounding = [self.open_notes[i] + f for i, f in enumerate(frets) if f is not None]
        return min(sounding) % 12 if sounding else None

    def _score(self, frets: Frets, barres: Tuple[Barre, ...], pcs: List[Optional[int]]) -> float:
        c = self.constraints
        fretted = [f for f in frets if f]
        sounded = [i for i, f in enumerate(frets) if f is not None]
        muted = [i for i in self.in_scope if frets[i] is None]
        distinct = {pcs[i] for i in sounded}

        score = WEIGHT_POSITION * max(0, (min(fretted) if fretted else 0) - self.window_low)
        score += WEIGHT_SPAN * fretted_span(frets)
        # Strings damped below the bass note cost less than gaps inside the shape
        mute_weight = WEIGHT_MUTED_ALLOWED if c.allow_muted is True else WEIGHT_MUTED
        bass_mutes = sum(1 for i in muted if i < sounded[0])
        score += min(mute_weight, WEIGHT_BASS_MUTE) * bass_mutes
        score += mute_weight * (len(muted) - bass_mutes)
        score += WEIGHT_INTERIOR_MUTE * sum(1 for i in muted if sounded[0] < i < sounded[-1])
        score += WEIGHT_DOUBLING * (len(sounded) - len(distinct))
        score += WEIGHT_MISSING_OPTIONAL * len(set(self.chord.optional_pitch_classes) - distinct)
        if self.chord.bass is None and self._lowest_pc(frets) != self.chord.root:
            score += WEIGHT_ROOT_NOT_BASS
        if barres:
            score += WEIGHT_BARRE
        if c.open_preference == OpenPreference.PREFER:
            score += WEIGHT_OPEN_PREFERRED * frets.count(0)
        return round(score, 3)

    def build_shape(self, frets: Frets) -> Optional[VoicingShape]:
        """Run one complete candidate through the filters; None if it is rejected."""
        c = self.constraints
        if sum(1 for f in frets if f is not None) < self.capability.min_sounded_strings:
            return None
        if self.chord.bass is not None and self._lowest_pc(frets) != self.chord.bass:
            return None

        fingering = assign_fingers(frets, self.capability.max_fingers)
        if fingering is None:
            return None
        fingers, barres = fingering

        pcs = [None if f is None else (self.open_pcs[i] + f) % 12 for i, f in enumerate(frets)]
        if not matches_voicing_type(frets, barres, pcs, c.voicing_type):
            return None

        difficulty = classify_difficulty(frets, barres)
        if c.difficulty not in (None, Difficulty.ANY) and difficulty != c.difficulty:
            return None

        return VoicingShape(
            instrument=self.capability.instrument,
            chord_name=self.chord.symbol,
            root=self.chord.root,
            root_name=self.chord.root_name,
            frets=frets,
            fingers=fingers,
            barres=barres,
            tuning=self.capability.tuning_labels(self.tuning),
            difficulty=difficulty,
            position=position_label(frets),
            score=self._score(frets, barres, pcs),
        )

    def run(self) -> SearchResult:
        self._log(
            f"{self.chord.symbol} on {self.capability.instrument.value} ({self.tuning}), "
            f"frets {self.window_low}-{self.window_high}, span ≤ {self.span_limit}"
        )
        complete = self.candidates()
        shapes = [s for s in (self.build_shape(f) for f in complete) if s is not None]
        self._log(f"{len(complete)} complete candidates, {len(shapes)} passed the filters")
        return SearchResult(shapes=shapes, generated=len(complete))


def search_fretted(chord: ResolvedChord, constraints: Constraints,
                   instrument: Instrument = Instrument.GUITAR, verbose: bool = False) -> SearchResult:
    """Search voicings for a chord on guitar or bass."""
    capability = get_capability(instrument)
    if not capability.is_fretted:
        raise ValueError(f"{capability.instrument.value} is not a fretted instrument")
    return FretboardSearch(chord, constraints, capability, verbose=verbose).run()


def sounded_pitch_classes(shape: VoicingShape) -> List[int]:
    """Re-derive the sounding pitch classes of a fretted shape from its tuning."""
    return [
        (note_to_pc(open_note) + fret) % 12
        for open_note, fret in zip(shape.tuning or (), shape.frets or ())
        if fret is not None
    ]
