import logging
from typing import Any, Optional

from PySide6 import QtCore

from ...core import classifier
from ...core.session import CellState, EditSession


class Roles:
    """Custom model roles for specialized data."""
    CellState = QtCore.Qt.UserRole + 1
    Intent = QtCore.Qt.UserRole + 2


CellStateRole = Roles.CellState
IntentRole = Roles.Intent


class GridTableModel(QtCore.QAbstractTableModel):
    """
    GridTableModel presents the document of an EditSession as a table.

    When row 0 of the document holds any value it is used for the horizontal header
    labels and is not shown as a data row. Model rows are therefore offset by one from
    document rows while a header row exists.
    """

    def __init__(self, session: EditSession, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent=parent)
        self._session = session
        self._connect_signals()

    def _connect_signals(self) -> None:
        self._session.structureAboutToChange.connect(self.beginResetModel)
        self._session.structureChanged.connect(self.endResetModel)
        self._session.cellChanged.connect(self.on_cell_changed)
        self._session.cellSynced.connect(self.on_cell_synced)
        self._session.selectionChanged.connect(self.on_selection_changed)

    @property
    def session(self) -> EditSession:
        return self._session

    def row_offset(self) -> int:
        return 1 if self._session.document.has_header_row() else 0

    def to_document(self, index: QtCore.QModelIndex) -> tuple:
        """Map a model index to a (row, col) document address."""
        return index.row() + self.row_offset(), index.column()

    def from_document(self, row: int, col: int) -> QtCore.QModelIndex:
        """Map a document address to a model index; invalid for the header row."""
        model_row = row - self.row_offset()
        if model_row < 0:
            return QtCore.QModelIndex()
        return self.index(model_row, col)

    def rowCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return max(0, self._session.document.row_count - self.row_offset())

    def columnCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return self._session.document.max_cols

    def data(self, index: QtCore.QModelIndex, role: int = QtCore.Qt.DisplayRole) -> Any:
        """Returns data for the specified index and role.

        Args:
            index (QtCore.QModelIndex): The model index.
            role (int): The data role.

        Returns:
            Any: Data appropriate for the role, or None.
        """
        if not index.isValid():
            return None
        row, col = self.to_document(index)
        value = self._session.document.get_cell(row, col)

        if role in (QtCore.Qt.DisplayRole, QtCore.Qt.EditRole):
            return value
        if role == CellStateRole:
            return self._session.cell_state(row, col)
        if role == IntentRole:
            return self._session.classify_cell(row, col)
        if role in (QtCore.Qt.StatusTipRole, QtCore.Qt.ToolTipRole):
            intent = self._session.classify_cell(row, col)
            if isinstance(intent, classifier.Actionable):
                return f'Call {intent.action.number}'
            if self._session.cell_state(row, col) == CellState.SyncPending:
                return 'Saving...'
            return value
        return None

    def headerData(self, section: int, orientation: QtCore.Qt.Orientation,
                   role: int = QtCore.Qt.DisplayRole) -> Any:
        if orientation == QtCore.Qt.Horizontal:
            if not 0 <= section < self.columnCount():
                return None
            if role == QtCore.Qt.DisplayRole:
                return self._session.document.column_label(section)
            if role == QtCore.Qt.CheckStateRole:
                if section in self._session.selection:
                    return QtCore.Qt.Checked
                return QtCore.Qt.Unchecked
        elif orientation == QtCore.Qt.Vertical:
            if role == QtCore.Qt.DisplayRole:
                return f'{section + self.row_offset() + 1}'
        return None

    def flags(self, index: QtCore.QModelIndex) -> QtCore.Qt.ItemFlag:
        if not index.isValid():
            return QtCore.Qt.NoItemFlags
        return super().flags(index) | QtCore.Qt.ItemIsEditable

    def setData(self, index: QtCore.QModelIndex, value: Any, role: int = QtCore.Qt.EditRole) -> bool:
        """
        Save an edited value through the session.

        The document is updated optimistically, so the new value is shown at once.
        """
        if role != QtCore.Qt.EditRole or not index.isValid():
            return False
        row, col = self.to_document(index)
        if self._session.editing_cell == (row, col):
            self._session.commit_edit(value)
        else:
            self._session.update_cell(row, col, value)
        return True

    def activate(self, index: QtCore.QModelIndex) -> Optional[classifier.CellIntent]:
        """
        Forward a press on a cell to the session.

        Returns:
            The resolved intent, or None for an invalid index.
        """
        if not index.isValid():
            return None
        row, col = self.to_document(index)
        return self._session.activate_cell(row, col)

    @QtCore.Slot(int, int, str)
    def on_cell_changed(self, row: int, col: int, value: str) -> None:
        if row == 0:
            # The header row may have appeared or disappeared
            self.beginResetModel()
            self.endResetModel()
            self.headerDataChanged.emit(QtCore.Qt.Horizontal, 0, max(0, self.columnCount() - 1))
            return

        index = self.from_document(row, col)
        if not index.isValid():
            return
        self.dataChanged.emit(index, index, [QtCore.Qt.DisplayRole, QtCore.Qt.EditRole, IntentRole])

    @QtCore.Slot(int, int, object)
    def on_cell_synced(self, row: int, col: int, outcome: Any) -> None:
        index = self.from_document(row, col)
        if not index.isValid():
            return
        logging.debug(f'Cell ({row}, {col}) sync outcome: {outcome.status}')
        self.dataChanged.emit(index, index, [CellStateRole, QtCore.Qt.ToolTipRole])

    @QtCore.Slot(list)
    def on_selection_changed(self, selection: list) -> None:
        if not self.columnCount():
            return
        self.headerDataChanged.emit(QtCore.Qt.Horizontal, 0, self.columnCount() - 1)
