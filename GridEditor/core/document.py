"""In-memory tabular model of string cells.

The document stores rows as lists of strings. Rows may be ragged physically, but every
read is padded to :attr:`GridDocument.max_cols`, so the logical width of every row is the
width of the longest row.
"""
import logging
from typing import Any, Iterable, List, Optional

import pandas as pd


def column_letter(idx: int) -> str:
    """Convert zero-based column index to spreadsheet letter(s).

    Args:
        idx: The zero-based column index.

    Returns:
        The spreadsheet column letter(s) (e.g., A, B, AA).
    """
    if idx < 0:
        raise ValueError(f'Column index must be >= 0, got {idx}')
    letters = ''
    while idx >= 0:
        letters = chr((idx % 26) + ord('A')) + letters
        idx = idx // 26 - 1
    return letters


def to_cell(value: Any) -> str:
    """Normalise a raw value to a cell string. ``None`` becomes a blank cell."""
    if value is None:
        return ''
    return value if isinstance(value, str) else str(value)


def _check_index(name: str, value: int) -> None:
    if value < 0:
        raise ValueError(f'{name} index must be >= 0, got {value}')


class GridDocument:
    """Rows of string cells with structural mutators.

    Reads never raise: anything outside the physical grid reads as a blank cell.
    Writes grow the grid as needed.
    """

    def __init__(self, rows: Optional[Iterable[Iterable[Any]]] = None) -> None:
        self._rows: List[List[str]] = []
        self._max_cols: int = 0
        if rows is not None:
            self.load(rows)

    def __repr__(self) -> str:
        return f'<GridDocument {self.row_count}x{self.max_cols}>'

    @property
    def row_count(self) -> int:
        return len(self._rows)

    @property
    def max_cols(self) -> int:
        return self._max_cols

    def is_empty(self) -> bool:
        return not self._rows

    def _recompute_max_cols(self) -> None:
        self._max_cols = max((len(r) for r in self._rows), default=0)

    def load(self, rows: Iterable[Iterable[Any]]) -> None:
        """Replace the contents of the document.

        Args:
            rows: Rows of raw values. Values are copied and normalised to strings.
        """
        self._rows = [[to_cell(v) for v in row] for row in rows]
        self._recompute_max_cols()
        logging.debug(f'Loaded grid document: {self.row_count} rows x {self.max_cols} columns.')

    def get_cell(self, row: int, col: int) -> str:
        if row < 0 or col < 0 or row >= len(self._rows):
            return ''
        cells = self._rows[row]
        if col >= len(cells):
            return ''
        return cells[col]

    def set_cell(self, row: int, col: int, value: Any) -> bool:
        """Write a cell, growing the document when the address is outside of it.

        Missing rows are appended as empty rows, and the target row is extended
        with blank cells up to ``col``.

        Args:
            row: Zero-based row index.
            col: Zero-based column index.
            value: New cell value.

        Returns:
            bool: True if the shape of the document changed.

        Raises:
            ValueError: If either index is negative.
        """
        _check_index('Row', row)
        _check_index('Column', col)

        grew = False
        while len(self._rows) <= row:
            self._rows.append([])
            grew = True

        cells = self._rows[row]
        if len(cells) <= col:
            cells.extend([''] * (col + 1 - len(cells)))
            grew = True
        cells[col] = to_cell(value)

        if col + 1 > self._max_cols:
            self._max_cols = col + 1
        return grew

    def add_row(self) -> int:
        """Append a row of blank cells as wide as the document.

        Returns:
            int: Index of the new row.
        """
        width = self._max_cols or 1
        self._rows.append([''] * width)
        self._max_cols = width
        return len(self._rows) - 1

    def add_column(self) -> int:
        """Append a blank cell to every row.

        Returns:
            int: Index of the new column.
        """
        if not self._rows:
            self._rows.append([''])
            self._max_cols = 1
            return 0

        # Pad ragged rows first so the new cell lands in the same column everywhere
        new_col = self._max_cols
        for cells in self._rows:
            if len(cells) < new_col:
                cells.extend([''] * (new_col - len(cells)))
            cells.append('')
        self._max_cols = new_col + 1
        return new_col

    def remove_columns(self, indices: Iterable[int]) -> List[int]:
        """Remove columns from every row.

        Indices are removed highest first, so earlier removals never shift the
        positions of the columns still to be removed.

        Args:
            indices: Zero-based column indices. Duplicates are ignored.

        Returns:
            List[int]: The indices that were removed, in descending order.
        """
        ordered = sorted({int(i) for i in indices}, reverse=True)
        for idx in ordered:
            _check_index('Column', idx)

        removed = [idx for idx in ordered if idx < self._max_cols]
        for cells in self._rows:
            for idx in removed:
                if idx < len(cells):
                    del cells[idx]
        self._recompute_max_cols()
        logging.debug(f'Removed columns {removed}; document is now {self.row_count}x{self.max_cols}.')
        return removed

    def row(self, row: int) -> List[str]:
        """Return a padded copy of one row."""
        if row < 0 or row >= len(self._rows):
            return [''] * self._max_cols
        cells = self._rows[row]
        return cells + [''] * (self._max_cols - len(cells))

    def rows(self) -> List[List[str]]:
        """Return a padded copy of all rows."""
        return [self.row(i) for i in range(len(self._rows))]

    def has_header_row(self) -> bool:
        """True if row 0 holds at least one non-blank value."""
        return bool(self._rows) and any(cell != '' for cell in self._rows[0])

    def column_label(self, col: int) -> str:
        """Header label of a column: its row-0 value, or its spreadsheet letter if blank."""
        return self.get_cell(0, col) or column_letter(col)

    def to_dataframe(self) -> pd.DataFrame:
        """Return the document as a DataFrame.

        When row 0 is a header row it provides the column labels and is not part
        of the data; otherwise the columns are labelled with spreadsheet letters.
        """
        if self.has_header_row():
            columns = [self.column_label(c) for c in range(self._max_cols)]
            data = self.rows()[1:]
        else:
            columns = [column_letter(c) for c in range(self._max_cols)]
            data = self.rows()
        return pd.DataFrame(data, columns=columns, dtype=object)
