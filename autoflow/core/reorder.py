# autoflow/core/reorder.py
from __future__ import annotations

"""Step reordering
------------------
`reorder` is the pure move operation; `DragSession` feeds it from a live
drag, re-applying the move on every pointer-over so each intermediate order
is a real, renderable sequence.
"""

from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


def reorder(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """
    Return a new list with the item at `from_index` removed and reinserted
    at `to_index`. Both indices must lie in [0, len(items)).

    >>> reorder(["A", "B", "C", "D"], 0, 2)
    ['B', 'C', 'A', 'D']
    """
    n = len(items)
    if not (0 <= from_index < n) or not (0 <= to_index < n):
        raise IndexError(f"reorder indices out of range: from={from_index} to={to_index} len={n}")
    out = list(items)
    if from_index == to_index:
        return out
    moved = out.pop(from_index)
    out.insert(to_index, moved)
    return out


class DragSession:
    """Tracks the index of the item being dragged."""

    def __init__(self) -> None:
        self.dragged_index: Optional[int] = None

    @property
    def active(self) -> bool:
        return self.dragged_index is not None

    def start(self, index: int) -> None:
        self.dragged_index = index

    def over(self, items: Sequence[T], index: int) -> list[T]:
        """
        Move the dragged item under the pointer at `index`.
        The tracked index follows the item, so repeating the same event is a no-op.
        """
        if self.dragged_index is None or self.dragged_index == index:
            return list(items)
        moved = reorder(items, self.dragged_index, index)
        self.dragged_index = index
        return moved

    def end(self) -> None:
        self.dragged_index = None
