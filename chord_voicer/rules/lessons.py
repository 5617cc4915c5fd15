"""
Lesson Tips - Short Practice Notes for a Voicing

Builds a deterministic tip (at most 120 characters) from the shape alone:
where the root sits, barre usage, open and muted strings, the stretch.
Guitar-style string numbers are used in the text (1 = highest string).
"""

from typing import List

from chord_voicer.data.pitch import note_to_pc, pc_to_name, prefers_flats
from chord_voicer.data.schema import VoicingShape


MAX_TIP_LENGTH = 120
WIDE_STRETCH = 4

DEFAULT_TIP = "Practice slowly and focus on clean finger placement."


def _truncate(text: str) -> str:
    if len(text) <= MAX_TIP_LENGTH:
        return text
    return text[:MAX_TIP_LENGTH - 3] + "..."


def _string_list(numbers: List[int]) -> str:
    if len(numbers) == 1:
        return f"string {numbers[0]}"
    return "strings " + ", ".join(str(n) for n in numbers[:-1]) + f" and {numbers[-1]}"


def fretted_tip(shape: VoicingShape) -> str:
    frets = shape.frets or ()
    count = len(frets)
    parts = []

    open_pcs = [note_to_pc(n) for n in shape.tuning or ()]
    for index, fret in enumerate(frets):
        if fret is not None and (open_pcs[index] + fret) % 12 == shape.root:
            where = "open" if fret == 0 else f"fret {fret}"
            parts.append(f"Root {shape.root_name} on string {count - index}, {where}.")
            break

    for barre in shape.barres:
        parts.append(
            f"Barre fret {barre.fret} with your index finger across strings "
            f"{count - barre.from_string}-{count - barre.to_string}."
        )

    opens = [count - i for i, f in enumerate(frets) if f == 0]
    if opens:
        parts.append(f"Let open {_string_list(opens)} ring.")

    muted = [count - i for i, f in enumerate(frets) if f is None]
    if muted:
        parts.append(f"Mute {_string_list(muted)}.")

    fretted = [f for f in frets if f]
    if fretted and max(fretted) - min(fretted) >= WIDE_STRETCH:
        parts.append(f"Wide {max(fretted) - min(fretted)}-fret stretch: build it up slowly.")

    return " ".join(parts)


def keyboard_tip(shape: VoicingShape) -> str:
    keys = shape.keys or ()
    names = shape.key_names or ()
    if not keys:
        return ""
    bass = pc_to_name(keys[0] % 12, prefers_flats(shape.root_name))
    hand = "right hand" if shape.hand == "right" else "both hands"
    fingers = "-".join(str(f) for f in shape.fingers or ())
    tip = f"{shape.position}: {bass} in the bass, play {' '.join(names)} with {hand}"
    if fingers:
        tip += f" ({fingers})"
    return tip + "."


def lesson_tip(shape: VoicingShape) -> str:
    """
    Short practice tip for a voicing, reproducible from the shape alone.

    Example:
        >>> lesson_tip(c_major_open)
        'Root C on string 5, fret 3. Let open strings 3 and 1 ring. Mute string 6.'
    """
    tip = fretted_tip(shape) if shape.is_fretted else keyboard_tip(shape)
    return _truncate(tip or DEFAULT_TIP)
