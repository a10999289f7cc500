"""Edit operations and the bounded undo stack."""
import collections
import logging
from dataclasses import dataclass, replace
from typing import ClassVar, Deque, Iterable, List, Optional, Tuple, Union

DEFAULT_UNDO_DEPTH: int = 100


@dataclass(frozen=True)
class UpdateCell:
    """A single cell value change. The only reversible operation."""
    undoable: ClassVar[bool] = True

    row: int
    col: int
    old_value: str
    new_value: str


@dataclass(frozen=True)
class AddRow:
    """A blank row appended at the bottom of the grid."""
    undoable: ClassVar[bool] = False


@dataclass(frozen=True)
class AddColumn:
    """A blank column appended at the right of the grid."""
    undoable: ClassVar[bool] = False


@dataclass(frozen=True)
class DeleteColumns:
    """Columns removed from the grid, in descending order."""
    undoable: ClassVar[bool] = False

    indices: Tuple[int, ...]


EditOperation = Union[UpdateCell, AddRow, AddColumn, DeleteColumns]


class UndoStack:
    """LIFO of reversible edit operations.

    The stack holds at most ``depth`` entries; pushing onto a full stack drops the
    oldest entry.
    """

    def __init__(self, depth: int = DEFAULT_UNDO_DEPTH) -> None:
        if depth < 1:
            raise ValueError(f'Undo depth must be >= 1, got {depth}')
        self._ops: Deque[UpdateCell] = collections.deque(maxlen=depth)

    def __len__(self) -> int:
        return len(self._ops)

    def __bool__(self) -> bool:
        return bool(self._ops)

    @property
    def depth(self) -> int:
        return self._ops.maxlen

    def push(self, op: EditOperation) -> None:
        """Record an operation.

        Raises:
            ValueError: If the operation cannot be undone.
        """
        if not op.undoable:
            raise ValueError(f'{type(op).__name__} operations cannot be undone.')
        if len(self._ops) == self._ops.maxlen:
            logging.debug(f'Undo stack full ({self._ops.maxlen}); dropping the oldest entry.')
        self._ops.append(op)

    def pop(self) -> Optional[UpdateCell]:
        if not self._ops:
            return None
        return self._ops.pop()

    def peek(self) -> Optional[UpdateCell]:
        if not self._ops:
            return None
        return self._ops[-1]

    def clear(self) -> None:
        self._ops.clear()

    def operations(self) -> List[UpdateCell]:
        """Return the entries, oldest first."""
        return list(self._ops)

    def remap_columns(self, removed: Iterable[int]) -> int:
        """Rewrite entries after columns were removed from the document.

        Entries addressing a removed column are discarded. Entries to the right of a
        removed column are shifted left so they keep addressing the same cell.

        Args:
            removed: Removed column indices.

        Returns:
            int: Number of discarded entries.
        """
        removed = sorted(set(removed))
        if not removed:
            return 0

        kept: List[UpdateCell] = []
        dropped = 0
        for op in self._ops:
            if op.col in removed:
                dropped += 1
                continue
            shift = sum(1 for idx in removed if idx < op.col)
            kept.append(replace(op, col=op.col - shift) if shift else op)

        self._ops = collections.deque(kept, maxlen=self._ops.maxlen)
        if dropped:
            logging.debug(f'Discarded {dropped} undo entries of deleted columns.')
        return dropped
