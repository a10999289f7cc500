# tests/test_model.py
"""
Tests for GridEditor.data.model.grid.GridTableModel
(header row handling, roles, edits routed through the session and model signals).

Run:
    python -m unittest tests.test_model
"""
from typing import Any, List

from PySide6 import QtCore

from GridEditor.core import classifier
from GridEditor.core.session import CellState
from GridEditor.data.model.grid import CellStateRole, GridTableModel, IntentRole
from tests.base import BaseSessionTestCase, mute_ui_signals


class GridTableModelTests(BaseSessionTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.model = GridTableModel(self.session)

    def test_header_row_is_hidden(self):
        self.assertEqual(self.model.rowCount(), 2)
        self.assertEqual(self.model.columnCount(), 3)
        self.assertEqual(self.model.index(0, 0).data(), 'Alice')
        self.assertEqual(self.model.headerData(1, QtCore.Qt.Horizontal), 'Phone')
        # Row labels follow the document's row numbers, so the first data row is 2
        self.assertEqual(self.model.headerData(0, QtCore.Qt.Vertical), '2')
        self.assertEqual(self.model.headerData(1, QtCore.Qt.Vertical), '3')
        self.assertIsNone(self.model.headerData(5, QtCore.Qt.Horizontal))

    def test_set_data_updates_document(self):
        index = self.model.index(1, 2)
        self.assertTrue(self.model.flags(index) & QtCore.Qt.ItemIsEditable)
        self.assertTrue(self.model.setData(index, 'Goa'))

        self.assertEqual(self.session.document.get_cell(2, 2), 'Goa')
        self.assertEqual(index.data(), 'Goa')
        self.assertEqual(index.data(CellStateRole), CellState.SyncPending)
        self.wait_idle()
        self.assertEqual(index.data(CellStateRole), CellState.Viewing)
        self.assertEqual(self.store.calls[-1], ('update_cell', ('doc-1', 2, 2, 'Goa')))

    def test_data_changed_emitted(self):
        changed: List[Any] = []
        self.model.dataChanged.connect(lambda tl, br, roles: changed.append((tl.row(), tl.column())))
        self.model.setData(self.model.index(0, 0), 'Carol')
        self.assertIn((0, 0), changed)

    def test_intent_role(self):
        self.assertEqual(self.model.index(0, 1).data(IntentRole),
                         classifier.Actionable(classifier.PhoneCall('+919876543210')))
        self.assertEqual(self.model.index(0, 0).data(IntentRole), classifier.Editable())
        self.assertEqual(self.model.index(0, 1).data(QtCore.Qt.ToolTipRole), 'Call +919876543210')

    def test_activate(self):
        with mute_ui_signals():
            intent = self.model.activate(self.model.index(0, 1))
        self.assertIsInstance(intent, classifier.Actionable)

        self.model.activate(self.model.index(1, 0))
        self.assertEqual(self.session.editing_cell, (2, 0))
        self.assertIsNone(self.model.activate(QtCore.QModelIndex()))

    def test_set_data_on_editing_cell_finishes_edit(self):
        index = self.model.index(1, 0)
        self.model.activate(index)
        self.assertEqual(index.data(CellStateRole), CellState.Editing)

        self.model.setData(index, 'Robert')
        self.assertIsNone(self.session.editing_cell)
        self.assertEqual(index.data(CellStateRole), CellState.SyncPending)
        self.wait_idle()
        self.assertEqual(self.store.calls[-1], ('update_cell', ('doc-1', 2, 0, 'Robert')))

    def test_structure_change_resets_model(self):
        resets: List[bool] = []
        self.model.modelReset.connect(lambda: resets.append(True))
        self.session.add_row()
        self.assertTrue(resets)
        self.assertEqual(self.model.rowCount(), 3)

        self.session.add_column()
        self.assertEqual(self.model.columnCount(), 4)
        self.assertEqual(self.model.headerData(3, QtCore.Qt.Horizontal), 'D')

    def test_selection_in_header(self):
        self.session.toggle_column(1)
        self.assertEqual(self.model.headerData(1, QtCore.Qt.Horizontal, QtCore.Qt.CheckStateRole),
                         QtCore.Qt.Checked)
        self.assertEqual(self.model.headerData(0, QtCore.Qt.Horizontal, QtCore.Qt.CheckStateRole),
                         QtCore.Qt.Unchecked)


class HeaderlessModelTests(BaseSessionTestCase):
    ROWS = [['', ''], ['a', 'b']]

    def test_blank_first_row_is_data(self):
        model = GridTableModel(self.session)
        self.assertEqual(model.rowCount(), 2)
        self.assertEqual(model.headerData(0, QtCore.Qt.Horizontal), 'A')
        self.assertEqual(model.headerData(0, QtCore.Qt.Vertical), '1')

        # Typing into row 0 turns it into the header row
        model.setData(model.index(0, 0), 'Name')
        self.assertEqual(model.rowCount(), 1)
        self.assertEqual(model.headerData(0, QtCore.Qt.Horizontal), 'Name')
        self.assertEqual(model.headerData(0, QtCore.Qt.Vertical), '2')
        self.wait_idle()
