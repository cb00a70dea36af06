"""
Worklist for re-indexing headers whose ancestors arrive late.

Headers may be stored before their parent (parallel sync). Once a header is
indexed, every already-indexed descendant has to be indexed again so that
derived fields such as total difficulty follow the newly linked parent.
The traversal is breadth-first over "children of children", driven by an
explicit queue and a visited set rather than recursion, so its depth is
bounded only by the data and a parent-hash cycle is reported instead of
looping forever.
"""

from collections import deque
from dataclasses import dataclass
from typing import Iterable, Union


@dataclass(frozen=True)
class Continue:
    """Children to index next (never seen before in this sweep)."""
    next_batch: tuple[str, ...]


@dataclass(frozen=True)
class CycleDetected:
    """A child hash that was already visited in this sweep."""
    header_hash: str


ReindexStep = Union[Continue, CycleDetected]


class ReindexWorklist:
    """Breadth-first worklist of header hashes for one indexing sweep"""

    def __init__(self, root_hash: str):
        self._visited: set[str] = {root_hash}
        self._pending: deque[str] = deque([root_hash])

    def __bool__(self) -> bool:
        return bool(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def visited(self) -> frozenset[str]:
        return frozenset(self._visited)

    def pop(self) -> str:
        """Next header hash to index."""
        return self._pending.popleft()

    def expand(self, children: Iterable[str]) -> ReindexStep:
        """
        Queue the children of the header just indexed.

        Children not visited before are queued even when a sibling closes a
        cycle; only the revisited branch is dropped.

        Returns:
            CycleDetected for the first revisited hash, Continue otherwise
        """
        batch = []
        revisited = None
        for child in dict.fromkeys(children):
            if child in self._visited:
                if revisited is None:
                    revisited = child
                continue
            self._visited.add(child)
            batch.append(child)

        self._pending.extend(batch)
        if revisited is not None:
            return CycleDetected(revisited)
        return Continue(tuple(batch))
