# services/ordering.py — Position allocation for ordered siblings
"""
Pure helpers that compute positions for cards within a column and columns
within a board.

Positions are kept dense: after every write the siblings of a container hold
exactly 0..n-1. Inserting at index i shifts every sibling at or after i by
one; removing an entity closes the gap. The helpers only compute; persisting
the result is the repository's job.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

Assignment = Tuple[Any, int]


@dataclass
class Allocation:
    """Where the moving entity lands and which siblings must be rewritten"""
    value: int
    affected: List[Assignment] = field(default_factory=list)


def clamp_index(desired_index: Optional[int], length: int) -> int:
    if desired_index is None:
        return length
    return max(0, min(desired_index, length))


def allocate(
    siblings: Sequence[Any],
    desired_index: Optional[int] = None,
    attr: str = "position",
) -> Allocation:
    """Compute the insertion position for an entity entering `siblings`.

    `siblings` must be ordered by `attr` and must not contain the moving
    entity. Returns the clamped index and the (sibling, new value) pairs for
    every sibling whose stored value differs from its dense position once the
    entity is inserted.
    """
    value = clamp_index(desired_index, len(siblings))
    affected: List[Assignment] = []
    for index, sibling in enumerate(siblings):
        target = index if index < value else index + 1
        if getattr(sibling, attr) != target:
            affected.append((sibling, target))
    return Allocation(value=value, affected=affected)


def resequence(siblings: Sequence[Any], attr: str = "position") -> List[Assignment]:
    """Pairs needed to make `siblings` dense again (e.g. after a removal)."""
    return [
        (sibling, index)
        for index, sibling in enumerate(siblings)
        if getattr(sibling, attr) != index
    ]


def is_dense(values: Sequence[int]) -> bool:
    return sorted(values) == list(range(len(values)))
