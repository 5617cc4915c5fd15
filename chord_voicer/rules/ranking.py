"""
Ranking - Deduplicate, Order and Pick a Diverse Few

Shared by the fretted and keyboard searches:
    - deduplicate(): one shape per fret/key pattern, best score wins
    - rank_shapes(): ascending score, ties broken by pattern
    - select_diverse(): greedy pick that skips shapes sitting within one
      fret (or key) of an already picked shape, relaxed only when fewer
      than three results would come back
"""

from typing import Dict, List, NamedTuple, Tuple

from chord_voicer.data.schema import VoicingShape


MIN_RESULTS = 3
DIVERSITY_DISTANCE = 1


class SearchResult(NamedTuple):
    """Shapes that survived every filter, plus how many complete candidates were built."""
    shapes: List[VoicingShape]
    generated: int


def rank_key(shape: VoicingShape) -> Tuple[float, Tuple[int, ...]]:
    return (shape.score, shape.pattern)


def deduplicate(shapes: List[VoicingShape]) -> List[VoicingShape]:
    """Keep the best-scoring shape for every distinct pattern."""
    best: Dict[Tuple[int, ...], VoicingShape] = {}
    for shape in shapes:
        kept = best.get(shape.pattern)
        if kept is None or rank_key(shape) < rank_key(kept):
            best[shape.pattern] = shape
    return list(best.values())


def rank_shapes(shapes: List[VoicingShape]) -> List[VoicingShape]:
    """Sort by score, lower first."""
    return sorted(shapes, key=rank_key)


def select_diverse(
    ranked: List[VoicingShape],
    count: int,
    min_results: int = MIN_RESULTS,
) -> Tuple[List[VoicingShape], bool]:
    """
    Greedily select up to count shapes spread across the neck (or keyboard).

    Args:
        ranked: Shapes in rank order
        count: Maximum number to return
        min_results: Below this many, the diversity rule is relaxed

    Returns:
        (selected shapes in rank order, whether diversity had to be relaxed)
    """
    selected: List[VoicingShape] = []
    for shape in ranked:
        if len(selected) == count:
            break
        if any(abs(shape.anchor - s.anchor) <= DIVERSITY_DISTANCE for s in selected):
            continue
        selected.append(shape)

    target = min(min_results, count)
    relaxed = False
    if len(selected) < target:
        chosen = {s.pattern for s in selected}
        for shape in ranked:
            if len(selected) >= target:
                break
            if shape.pattern not in chosen:
                selected.append(shape)
                chosen.add(shape.pattern)
                relaxed = True
        selected.sort(key=rank_key)

    return selected, relaxed
