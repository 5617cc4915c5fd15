"""
Constraint Parser - Free Text to Playability Constraints

Extracts voicing constraints from requests like
"something easy, no barre chords, around the first 3 frets".

Architecture:
    Text → [Phrase scan: every pattern, every match]
         → [Drop matches contained in a longer match]
         → [Apply in reading order, last match wins per key]
         → Constraints (detected keys only)

The scan is a fixed table of regular expressions, so the same text always
yields the same constraints. Relative phrases ("easier", "higher up the
neck", "narrower") are resolved against the constraints already in force:
the caller's current constraints plus anything extracted earlier in the
same text.

Usage:
    from chord_voicer.rules.constraint_parser import ConstraintParser

    parser = ConstraintParser()
    extracted = parser.parse("easy open chords, no muted strings")
    print(extracted)      # difficulty=beginner, voicingType=open, allowMuted=False
"""

import re
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Union

from chord_voicer.data.instruments import get_capability
from chord_voicer.data.pitch import normalize_note
from chord_voicer.data.schema import (
    DIFFICULTY_ORDER,
    ChordType,
    Constraints,
    Difficulty,
    Instrument,
    OpenPreference,
    Register,
    VoicingType,
    clamp_count,
)


# =============================================================================
# PHRASE HANDLERS
# =============================================================================
# Each handler takes the regex match and the constraints in force so far
# (field name → value) and returns the keys it sets.

Updates = Dict[str, Any]

NECK_SHIFT = 5
UP_THE_NECK_FRET = 7


def _window_around(match, state) -> Updates:
    fret = int(match.group(1))
    return {"min_fret": max(0, fret - 2), "max_fret": fret + 2}


def _window_between(match, state) -> Updates:
    low, high = int(match.group(1)), int(match.group(2))
    if low > high:
        return {}
    return {"min_fret": low, "max_fret": high}


def _window_first(match, state) -> Updates:
    return {"min_fret": 0, "max_fret": int(match.group(1))}


def _below_fret(match, state) -> Updates:
    return {"max_fret": max(0, int(match.group(1)) - 1)}


def _up_to_fret(match, state) -> Updates:
    return {"max_fret": int(match.group(1))}


def _above_fret(match, state) -> Updates:
    return {"min_fret": int(match.group(1)) + 1}


def _shift_window(direction: int) -> Callable:
    def handler(match, state) -> Updates:
        low, high = state.get("min_fret"), state.get("max_fret")
        if low is None and high is None:
            return {"min_fret": NECK_SHIFT} if direction > 0 else {"max_fret": NECK_SHIFT}
        updates = {}
        if low is not None:
            updates["min_fret"] = max(0, low + direction * NECK_SHIFT)
        if high is not None:
            updates["max_fret"] = max(0, high + direction * NECK_SHIFT)
        return updates
    return handler


def _shift_difficulty(step: int) -> Callable:
    def handler(match, state) -> Updates:
        current = state.get("difficulty")
        if current is None or current == Difficulty.ANY:
            return {"difficulty": DIFFICULTY_ORDER[0] if step < 0 else DIFFICULTY_ORDER[-1]}
        index = DIFFICULTY_ORDER.index(current) + step
        index = max(0, min(len(DIFFICULTY_ORDER) - 1, index))
        return {"difficulty": DIFFICULTY_ORDER[index]}
    return handler


def _max_span(match, state) -> Updates:
    return {"max_span": max(2, min(6, int(match.group(1))))}


def _narrower(match, state) -> Updates:
    current = state.get("max_span")
    return {"max_span": 3 if current is None else max(1, current - 1)}


def _open_tuning(match, state) -> Updates:
    note = match.group(1) or match.group(2)
    return {"tuning": f"open_{note}"}


def _count(match, state) -> Updates:
    return {"count": clamp_count(match.group(1))}


def _fixed(**updates) -> Callable:
    def handler(match, state) -> Updates:
        return dict(updates)
    return handler


# =============================================================================
# PHRASE TABLE
# =============================================================================

class PhraseRule(NamedTuple):
    name: str
    pattern: str
    handler: Callable


PHRASE_RULES: List[PhraseRule] = [
    # --- difficulty ---
    PhraseRule("beginner", r"\b(?:easy|easiest|simple|beginner|basic)\b",
               _fixed(difficulty=Difficulty.BEGINNER)),
    PhraseRule("intermediate", r"\b(?:intermediate|medium difficulty)\b",
               _fixed(difficulty=Difficulty.INTERMEDIATE)),
    PhraseRule("advanced", r"\b(?:hard|advanced|challenging|difficult)\b",
               _fixed(difficulty=Difficulty.ADVANCED)),
    PhraseRule("any difficulty", r"\bany difficulty\b",
               _fixed(difficulty=Difficulty.ANY)),
    PhraseRule("easier", r"\b(?:easier|simpler)\b", _shift_difficulty(-1)),
    PhraseRule("harder", r"\b(?:harder|more challenging|more difficult)\b", _shift_difficulty(+1)),

    # --- voicing type ---
    PhraseRule("barre", r"\bbarr(?:e|es|ed)\b",
               _fixed(voicing_type=VoicingType.BARRE)),
    PhraseRule("no barre",
               r"\b(?:no|without|avoid(?:ing)?|not|don'?t want)(?: a| any)? barr(?:e|es|ed)(?: chords?| shapes?)?\b",
               _fixed(voicing_type=VoicingType.OPEN)),
    PhraseRule("open chords",
               r"\bopen (?:[a-g][#b]?[\w#]* )?(?:chords?|position|shapes?|voicings?)\b|\bcowboy chords?\b",
               _fixed(voicing_type=VoicingType.OPEN)),
    PhraseRule("drop voicing", r"\bdrop[\s-]?[23](?: voicings?| shapes?| chords?)?\b|\bdrop voicings?\b",
               _fixed(voicing_type=VoicingType.DROP_VOICING)),
    PhraseRule("any voicing", r"\bany voicing\b",
               _fixed(voicing_type=VoicingType.ANY)),

    # --- chord tones ---
    PhraseRule("triads",
               r"\b(?:only |just )?triads?(?: only)?\b"
               r"|\bno (?:7ths?|sevenths?)(?: chords?)?\b(?! (?:frets?|position))",
               _fixed(chord_type=ChordType.TRIAD)),
    PhraseRule("sevenths",
               r"\b(?:seventh|7th) chords?\b"
               r"|\bwith (?:the |a )?(?:7th|seventh)\b(?! (?:frets?|position))",
               _fixed(chord_type=ChordType.SEVENTH)),
    PhraseRule("extended", r"\bextended(?: chords?| voicings?| harmony)?\b|\b(?:add|with) (?:some )?tensions?\b",
               _fixed(chord_type=ChordType.EXTENDED)),

    # --- how many ---
    PhraseRule("count", r"\b(?:only |just )?(\d+) (?:shapes?|options?|voicings?|versions?)\b", _count),

    # --- fret window ---
    PhraseRule("around fret", r"\b(?:around|near) (?:the )?fret (\d+)\b", _window_around),
    PhraseRule("around nth fret", r"\b(?:around|near) (?:the )?(\d+)(?:st|nd|rd|th) (?:fret|position)\b",
               _window_around),
    PhraseRule("fret range", r"\bfrets? (\d+) ?(?:to|-|through) ?(\d+)\b", _window_between),
    PhraseRule("between frets", r"\bbetween frets? (\d+) and (\d+)\b", _window_between),
    PhraseRule("nth to nth fret", r"\b(\d+)(?:st|nd|rd|th)? ?(?:to|-) ?(?:the )?(\d+)(?:st|nd|rd|th) frets?\b",
               _window_between),
    PhraseRule("first n frets", r"\b(?:(?:first|lowest|bottom) )?(\d+) frets\b", _window_first),
    PhraseRule("below fret", r"\b(?:below|under) (?:the )?fret (\d+)\b", _below_fret),
    PhraseRule("below nth fret", r"\b(?:below|under) (?:the )?(\d+)(?:st|nd|rd|th) fret\b", _below_fret),
    PhraseRule("up to fret", r"\bup to (?:the )?fret (\d+)\b", _up_to_fret),
    PhraseRule("above fret", r"\babove (?:the )?fret (\d+)\b", _above_fret),
    PhraseRule("up the neck", r"\bup the neck\b", _fixed(min_fret=UP_THE_NECK_FRET)),
    PhraseRule("higher up", r"\b(?:higher|further) up the neck\b", _shift_window(+1)),
    PhraseRule("lower down", r"\blower (?:down |on )?the neck\b|\bcloser to the nut\b", _shift_window(-1)),

    # --- muting ---
    PhraseRule("no muting",
               r"\bno muted strings?\b|\bno muting\b|\bdon'?t mute\b|\blet (?:the )?strings ring\b"
               r"|\ball (?:the )?strings\b",
               _fixed(allow_muted=False)),
    PhraseRule("muting ok",
               r"\bmuted strings? (?:are |is )?(?:ok|okay|fine|allowed)\b|\bmuting (?:is )?(?:ok|okay|fine|allowed)\b",
               _fixed(allow_muted=True)),

    # --- span ---
    PhraseRule("narrow", r"\bnarrow stretch(?:es)?\b|\bcompact(?: shapes?)?\b|\bsmall hands?\b",
               _fixed(max_span=2)),
    PhraseRule("no stretch", r"\bno (?:big |wide |large )?stretch(?:es)?\b", _fixed(max_span=3)),
    PhraseRule("max span", r"\bmax(?:imum)?(?: span| stretch)?(?: of)? (\d+) frets?(?: span| stretch)?\b", _max_span),
    PhraseRule("span of", r"\b(?:span|stretch) of (\d+) frets?\b", _max_span),
    PhraseRule("wide ok", r"\bwide stretch(?:es)? (?:are |is )?(?:ok|okay|fine)\b", _fixed(max_span=5)),
    PhraseRule("narrower", r"\bnarrower\b", _narrower),

    # --- tuning ---
    PhraseRule("drop d", r"\bdrop[\s-]?d\b", _fixed(tuning="drop_d")),
    PhraseRule("half step down", r"\bhalf[\s-]step down\b|\be(?:b| flat) tuning\b", _fixed(tuning="half_step_down")),
    PhraseRule("open tuning", r"\bopen[\s-]?([a-g]) tuning\b|\btuned? to open[\s-]?([a-g])\b", _open_tuning),
    PhraseRule("five string", r"\b(?:five|5)[\s-]string\b", _fixed(tuning="five_string")),

    # --- open strings ---
    PhraseRule("avoid open", r"\b(?:avoid(?:ing)?|no|without) open strings?\b",
               _fixed(open_preference=OpenPreference.AVOID)),
    PhraseRule("prefer open", r"\b(?:prefer|use|with|ringing) open strings?\b",
               _fixed(open_preference=OpenPreference.PREFER)),

    # --- keyboard register ---
    PhraseRule("low register", r"\b(?:low|lower|bass) register\b", _fixed(keyboard_register=Register.LOW)),
    PhraseRule("mid register", r"\bmid(?:dle)? register\b", _fixed(keyboard_register=Register.MID)),
    PhraseRule("high register", r"\b(?:high|upper|treble) register\b", _fixed(keyboard_register=Register.HIGH)),
]

# Phrases whose meaning depends on the instrument, handled by the parser itself
STRING_SUBSET_PATTERN = r"\b(top|bottom|highest|lowest) (\d+) strings?\b"
OPEN_NOTE_PATTERN = (
    r"\b(?:(?:use|using|with|include|including|keep|ring|ringing) (?:an? |the )?)?"
    r"open ([a-g][#b]?)(?![\w#])(?: strings?)?"
)
REGISTER_WORD_PATTERN = r"\b(lower|upper)\b"
SUBSET_RULE = "string subset"


class PhraseMatch(NamedTuple):
    start: int
    end: int
    rule: str
    match: Any
    handler: Callable

    @property
    def length(self) -> int:
        return self.end - self.start

    def inside(self, other: "PhraseMatch") -> bool:
        """Wholly contained in a strictly longer match."""
        return other.start <= self.start and self.end <= other.end and other.length > self.length


# =============================================================================
# PARSER CLASS
# =============================================================================

class ConstraintParser:
    """
    Rule-based extractor of playability constraints from free text.

    Attributes:
        instrument: Instrument the text is about (string numbering, open strings, register words)
        capability: Its capability entry
        verbose: If True, print debug information during parsing

    Example:
        >>> parser = ConstraintParser()
        >>> parser.parse("no barre chords, frets 3 to 7").to_dict()
        {'voicingType': 'open', 'minFret': 3, 'maxFret': 7}
    """

    def __init__(self, instrument: Union[str, Instrument] = Instrument.GUITAR, verbose: bool = False):
        self.instrument = Instrument(instrument)
        self.capability = get_capability(self.instrument)
        self.verbose = verbose
        self._rules: List[tuple] = [
            (rule.name, re.compile(rule.pattern), rule.handler) for rule in PHRASE_RULES
        ]
        self._rules += [
            (SUBSET_RULE, re.compile(STRING_SUBSET_PATTERN), self._string_subset),
            ("open note", re.compile(OPEN_NOTE_PATTERN), self._open_note),
            ("register word", re.compile(REGISTER_WORD_PATTERN), self._register_word),
        ]

    def _log(self, message: str) -> None:
        """Print debug message if verbose mode is on."""
        if self.verbose:
            print(f"  [Parser] {message}")

    # =========================================================================
    # MAIN PARSING METHOD
    # =========================================================================

    def parse(self, text: Optional[str], current: Optional[Constraints] = None) -> Constraints:
        """
        Extract the constraints stated in text.

        Args:
            text: Free-text request, e.g. "easy, no barre chords"
            current: Constraints already in force (used by relative phrases)

        Returns:
            Constraints holding only the keys found in the text
        """
        if not text or not text.strip():
            return Constraints()

        self._log(f"Parsing: \"{text}\"")
        lowered = " ".join(text.lower().split())

        matches = self._scan(lowered)
        kept = [m for m in matches if not any(m.inside(o) for o in matches)]
        for dropped in (m for m in matches if m not in kept):
            self._log(f"Ignoring '{lowered[dropped.start:dropped.end]}' inside a longer phrase")
        kept.sort(key=lambda m: (m.start, m.end))

        # String numbering depends on the tuning, which may be named later in the text
        subsets = [m for m in kept if m.rule == SUBSET_RULE]
        kept = [m for m in kept if m.rule != SUBSET_RULE] + subsets[-1:]

        state: Dict[str, Any] = current.model_dump(exclude_none=True) if current else {}
        extracted: Dict[str, Any] = {}
        for phrase in kept:
            updates = self._within_neck(phrase.handler(phrase.match, state))
            if not updates:
                self._log(f"'{phrase.match.group(0)}' ({phrase.rule}) sets nothing")
                continue
            self._log(f"'{phrase.match.group(0)}' ({phrase.rule}) → {updates}")
            state.update(updates)
            extracted.update(updates)

        result = Constraints(**extracted)
        self._log(f"Result: {result}")
        return result

    def _scan(self, text: str) -> List[PhraseMatch]:
        matches = []
        for name, pattern, handler in self._rules:
            for m in pattern.finditer(text):
                matches.append(PhraseMatch(m.start(), m.end(), name, m, handler))
        return matches

    def _within_neck(self, updates: Updates) -> Updates:
        """Hold fret bounds to the frets the instrument actually has."""
        if not self.capability.is_fretted:
            return updates
        held = dict(updates)
        for key in ("min_fret", "max_fret"):
            if key in held:
                held[key] = max(0, min(self.capability.max_fret, held[key]))
        if held != updates:
            self._log(f"Fret bounds held to 0-{self.capability.max_fret}")
        return held

    # =========================================================================
    # INSTRUMENT-DEPENDENT PHRASES
    # =========================================================================

    def _string_subset(self, match, state) -> Updates:
        """'top 3 strings' → the three highest-pitched string indices."""
        if not self.capability.is_fretted:
            return {}
        tuning = state.get("tuning")
        if tuning in self.capability.tunings:
            count = len(self.capability.tunings[tuning])
        else:
            count = self.capability.string_count
        n = max(1, min(count, int(match.group(2))))
        if match.group(1) in ("top", "highest"):
            return {"string_subset": tuple(range(count - n, count))}
        return {"string_subset": tuple(range(n))}

    def _open_note(self, match, state) -> Updates:
        """'with open e' → the E string must ring open; each mention adds a note."""
        if not self.capability.is_fretted:
            return {}
        notes = tuple(state.get("require_open_strings") or ())
        return {"require_open_strings": notes + (normalize_note(match.group(1)),)}

    def _register_word(self, match, state) -> Updates:
        # Only the keyboard reads a bare "lower" / "upper" as a register
        if self.capability.is_fretted:
            return {}
        return {"keyboard_register": Register.LOW if match.group(1) == "lower" else Register.HIGH}


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def extract_constraints(
    text: Optional[str],
    current: Optional[Constraints] = None,
    instrument: Union[str, Instrument] = Instrument.GUITAR,
    verbose: bool = False,
) -> Constraints:
    """
    Extract constraints from free text without creating a parser instance.

    Example:
        >>> extract_constraints("something easy, no barre chords, around the first 3 frets").to_dict()
        {'difficulty': 'beginner', 'voicingType': 'open', 'minFret': 0, 'maxFret': 3}
    """
    parser = ConstraintParser(instrument=instrument, verbose=verbose)
    return parser.parse(text, current)


def merge_constraints(explicit: Optional[Constraints], extracted: Optional[Constraints]) -> Constraints:
    """
    Combine explicit constraints with ones extracted from free text.

    Free text is the user's most recent intent, so an extracted key
    replaces the explicit value of the same key. Keys present on only one
    side are kept as they are.
    """
    merged: Dict[str, Any] = {}
    if explicit is not None:
        merged.update(explicit.model_dump(exclude_none=True))
    if extracted is not None:
        merged.update(extracted.model_dump(exclude_none=True))
    return Constraints(**merged)


# =============================================================================
# TESTING
# =============================================================================

if __name__ == "__main__":
    print("=" * 70)
    print("Testing Constraint Parser")
    print("=" * 70)

    parser = ConstraintParser(verbose=True)

    test_texts = [
        "something easy, no barre chords, around the first 3 frets",
        "barre chords around fret 5, no muted strings",
        "drop 2 voicings on the top 4 strings",
        "frets 7 to 10, small hands",
        "make it harder and higher up the neck",
        "an open g chord, keep the open b string, only 3 voicings",
        "triads only, around fret 23",
    ]

    for text in test_texts:
        print(f"\n📝 {text}")
        print(f"   → {parser.parse(text)}")
