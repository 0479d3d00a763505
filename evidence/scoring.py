"""Resolution of a final score vector into one archetype."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from .models import Archetype, Result, ScoreVector

INTENSITY_THRESHOLD = 25
INTENSITY_SHIFT = 2

# (chaos beats order, emotion beats logic) -> archetype position
QUADRANTS = {
    (True, True): 0,
    (True, False): 1,
    (False, True): 2,
    (False, False): 3,
}


def axis_balance(scores: ScoreVector) -> Tuple[int, int]:
    return scores.chaos - scores.order, scores.emotion - scores.logic


def quadrant_index(scores: ScoreVector) -> int:
    """Ties on either axis fall to the non-positive side."""
    chaos_vs_order, emotion_vs_logic = axis_balance(scores)
    return QUADRANTS[(chaos_vs_order > 0, emotion_vs_logic > 0)]


def resolve_index(
    scores: ScoreVector,
    archetype_count: int,
    *,
    threshold: int = INTENSITY_THRESHOLD,
    shift: int = INTENSITY_SHIFT,
) -> int:
    if archetype_count <= 0:
        raise ValueError("Cannot resolve an archetype from an empty list.")
    last = archetype_count - 1
    index = quadrant_index(scores)
    if scores.total > threshold:
        index = min(index + shift, last)
    return min(index, last)


def resolve_archetype(scores: ScoreVector, archetypes: Sequence[Archetype]) -> Archetype:
    return archetypes[resolve_index(scores, len(archetypes))]


def build_result(
    scores: ScoreVector,
    archetypes: Sequence[Archetype],
    *,
    completed_at: Optional[str] = None,
) -> Result:
    return Result(
        archetype=resolve_archetype(scores, archetypes),
        scores=scores,
        completed_at=completed_at,
    )
