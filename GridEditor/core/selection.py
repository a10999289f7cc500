"""Column selection used for batch deletion."""
from typing import Iterable, Iterator, List, Set


class SelectionSet:
    """Set of column indices marked for deletion."""

    def __init__(self, indices: Iterable[int] = ()) -> None:
        self._indices: Set[int] = set()
        for idx in indices:
            self.add(idx)

    def __contains__(self, col: int) -> bool:
        return col in self._indices

    def __len__(self) -> int:
        return len(self._indices)

    def __bool__(self) -> bool:
        return bool(self._indices)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._indices))

    def __repr__(self) -> str:
        return f'<SelectionSet {sorted(self._indices)}>'

    def add(self, col: int) -> None:
        if col < 0:
            raise ValueError(f'Column index must be >= 0, got {col}')
        self._indices.add(col)

    def discard(self, col: int) -> None:
        self._indices.discard(col)

    def toggle(self, col: int) -> bool:
        """Flip the selection state of a column.

        Returns:
            bool: True if the column is selected afterwards.
        """
        if col in self._indices:
            self._indices.discard(col)
            return False
        self.add(col)
        return True

    def clear(self) -> None:
        self._indices.clear()

    def descending(self) -> List[int]:
        """Selected indices, highest first: the order columns must be deleted in."""
        return sorted(self._indices, reverse=True)
