# tests/test_session.py
"""
Tests for GridEditor.core.session.EditSession
(optimistic updates, reconciliation, undo, structural edits and column deletion).

The remote store is replaced by tests.base.FakeRemoteStore, whose calls can be held
open and scripted to fail, so completion order is under the test's control.

Run:
    python -m unittest tests.test_session
"""
from typing import Any, Dict, List

from GridEditor.core import classifier
from GridEditor.core.session import CellState, EditSession, SyncStatus, cell_name, describe_error
from GridEditor.core.undo import UpdateCell
from GridEditor.settings import lib
from GridEditor.status import status
from tests.base import BaseSessionTestCase, BaseTestCase, FakeRemoteStore, mute_ui_signals


class HelperTests(BaseTestCase):
    def test_cell_name(self):
        self.assertEqual(cell_name(0, 0), 'A1')
        self.assertEqual(cell_name(2, 27), 'AB3')

    def test_describe_error(self):
        self.assertEqual(describe_error(status.NetworkException('Server down')), 'Server down')
        self.assertEqual(describe_error(status.NetworkException()),
                         status.get_message(status.Status.NetworkUnavailable))
        self.assertEqual(describe_error(RuntimeError('boom')), 'boom')
        self.assertEqual(describe_error(KeyError()), 'KeyError')


class LoadTests(BaseSessionTestCase):
    def test_snapshot_loaded(self):
        self.assertEqual(self.session.document.rows(), self.ROWS)
        self.assertTrue(self.session.document.has_header_row())
        self.assertEqual(self.store.calls[0], ('fetch_snapshot', ('doc-1',)))
        self.assertEqual(self.session.error, '')

    def test_load_failure_sets_error(self):
        self.store.script('fetch_snapshot', status.NetworkException('Server down'))
        self.session.refresh()
        self.assertTrue(self.session.is_loading)
        self.wait_for(lambda: not self.session.is_loading)

        self.assertIn('Failed to load preview', self.session.error)
        self.assertIn('Server down', self.session.error)
        # The previous document is kept
        self.assertEqual(self.session.document.rows(), self.ROWS)

    def test_refresh_refused_while_updates_pending(self):
        self.store.hold('update_cell')
        self.session.update_cell(1, 0, 'Carol')
        with self.assertRaises(status.ConflictException):
            self.session.refresh()

    def test_forced_refresh_discards_pending_updates(self):
        gate = self.store.hold('update_cell')
        self.store.script('update_cell', status.NetworkException('late failure'))
        self.session.update_cell(1, 0, 'Carol')
        self.wait_for(lambda: self.store.count('update_cell') == 1)

        self.store.rows[1][0] = 'Carol'
        self.session.refresh(force=True)
        self.wait_for(lambda: not self.session.is_loading)
        self.assertEqual(self.session.pending_count, 0)
        self.assertEqual(self.session.undo_count, 0)

        gate.set()
        self.wait_for(lambda: len(self.outcomes) == 1)
        self.assertEqual(self.outcomes[0][2].status, SyncStatus.Superseded)
        self.assertEqual(self.session.document.get_cell(1, 0), 'Carol')
        self.assertEqual(self.session.error, '')

    def test_edits_refused_while_loading(self):
        self.store.hold('fetch_snapshot')
        self.session.refresh()
        with self.assertRaises(status.ConflictException):
            self.session.update_cell(1, 0, 'Carol')
        with self.assertRaises(status.ConflictException):
            self.session.add_row()


class UpdateCellTests(BaseSessionTestCase):
    def test_optimistic_read(self):
        seq = self.session.update_cell(1, 0, 'Carol')

        # Visible before any event was processed
        self.assertEqual(seq, 1)
        self.assertEqual(self.session.document.get_cell(1, 0), 'Carol')
        self.assertEqual(self.session.cell_state(1, 0), CellState.SyncPending)
        self.assertEqual(self.session.pending_count, 1)

        self.wait_idle()
        self.assertEqual(self.session.document.get_cell(1, 0), 'Carol')
        self.assertEqual(self.session.cell_state(1, 0), CellState.Viewing)
        self.assertEqual(self.store.calls[-1], ('update_cell', ('doc-1', 1, 0, 'Carol')))
        self.assertEqual([(r, c, o.status) for r, c, o in self.outcomes], [(1, 0, SyncStatus.Committed)])

    def test_revert_on_failure(self):
        self.store.script('update_cell', status.NetworkException('Server down'))
        self.session.update_cell(1, 0, 'Carol')
        self.wait_idle()

        self.assertEqual(self.session.document.get_cell(1, 0), 'Alice')
        self.assertIn('Server down', self.session.error)
        row, col, outcome = self.outcomes[-1]
        self.assertEqual((row, col), (1, 0))
        self.assertEqual(outcome.status, SyncStatus.Reverted)
        self.assertEqual(outcome.reason, 'Server down')
        self.assertFalse(outcome.ok)
        # The undo entry is kept
        self.assertEqual(self.session.undo_count, 1)

    def test_error_is_dismissible_and_cleared_by_success(self):
        self.store.script('update_cell', status.NetworkException('Server down'))
        self.session.update_cell(1, 0, 'Carol')
        self.wait_idle()
        self.assertTrue(self.session.error)

        self.session.clear_error()
        self.assertEqual(self.session.error, '')

        self.store.script('update_cell', status.NetworkException('Server down'))
        self.session.update_cell(1, 0, 'Dave')
        self.wait_idle()
        self.assertTrue(self.session.error)

        self.session.update_cell(1, 0, 'Erin')
        self.wait_idle()
        self.assertEqual(self.session.error, '')

    def test_noop_makes_no_remote_call(self):
        self.assertIsNone(self.session.update_cell(1, 0, 'Alice'))
        self.pump()
        self.assertEqual(self.store.count('update_cell'), 0)
        self.assertEqual(self.session.undo_count, 0)
        self.assertEqual(self.session.pending_count, 0)

    def test_update_outside_grid_grows_document(self):
        self.session.update_cell(5, 4, 'x')
        self.assertEqual(self.session.document.row_count, 6)
        self.assertEqual(self.session.document.max_cols, 5)
        self.assertEqual(self.session.document.get_cell(5, 4), 'x')
        self.wait_idle()

    def test_negative_address_rejected(self):
        with self.assertRaises(status.ValidationException):
            self.session.update_cell(-1, 0, 'x')
        self.assertEqual(self.store.count('update_cell'), 0)

    def test_value_normalised_to_text(self):
        self.session.update_cell(2, 1, 42)
        self.assertEqual(self.session.document.get_cell(2, 1), '42')
        self.wait_idle()
        self.assertEqual(self.store.calls[-1], ('update_cell', ('doc-1', 2, 1, '42')))

    def test_sequence_numbers_are_per_cell(self):
        self.assertEqual(self.session.update_cell(1, 0, 'a'), 1)
        self.assertEqual(self.session.update_cell(1, 0, 'b'), 2)
        self.assertEqual(self.session.update_cell(2, 0, 'c'), 1)
        self.wait_idle()

    def test_same_cell_stale_failure_does_not_revert_newer_edit(self):
        gate = self.store.hold('update_cell')
        self.store.script('update_cell', status.NetworkException('late failure'), None)

        self.session.update_cell(1, 2, 'Mumbai')
        self.wait_for(lambda: self.store.count('update_cell') == 1)
        self.session.update_cell(1, 2, 'Chennai')
        self.wait_for(lambda: len(self.outcomes) == 1)
        self.assertEqual(self.outcomes[0][2].status, SyncStatus.Committed)

        gate.set()
        self.wait_for(lambda: len(self.outcomes) == 2)
        self.assertEqual(self.outcomes[1][2].status, SyncStatus.Superseded)
        self.assertEqual(self.session.document.get_cell(1, 2), 'Chennai')
        self.assertEqual(self.session.error, '')

    def test_stale_success_becomes_revert_target(self):
        first = self.store.hold('update_cell')
        second = self.store.hold('update_cell')
        self.store.script('update_cell', None, status.NetworkException('Server down'))

        self.session.update_cell(1, 2, 'Mumbai')
        self.wait_for(lambda: self.store.count('update_cell') == 1)
        self.session.update_cell(1, 2, 'Chennai')
        self.wait_for(lambda: self.store.count('update_cell') == 2)

        first.set()
        self.wait_for(lambda: len(self.outcomes) == 1)
        self.assertEqual(self.outcomes[0][2].status, SyncStatus.Superseded)
        self.assertEqual(self.session.pending_count, 1)

        second.set()
        self.wait_idle()
        self.assertEqual(self.outcomes[1][2].status, SyncStatus.Reverted)
        # The server acknowledged "Mumbai", so that is what the cell falls back to
        self.assertEqual(self.session.document.get_cell(1, 2), 'Mumbai')

    def test_different_cells_are_independent(self):
        self.store.script('update_cell', status.NetworkException('Server down'))
        self.session.update_cell(1, 0, 'Carol')
        self.wait_for(lambda: self.store.count('update_cell') == 1)
        self.session.update_cell(2, 0, 'Dave')
        self.wait_idle()

        self.assertEqual(self.session.document.get_cell(1, 0), 'Alice')
        self.assertEqual(self.session.document.get_cell(2, 0), 'Dave')

    def test_session_timeout_reverts_and_ignores_late_result(self):
        session = EditSession(self.store, 'doc-1', timeout=0.2, max_attempts=1)
        session.load()
        self.wait_for(lambda: not session.is_loading)
        outcomes: List[Any] = []
        session.cellSynced.connect(lambda r, c, o: outcomes.append(o))

        gate = self.store.hold('update_cell')
        session.update_cell(1, 0, 'Carol')
        self.wait_for(lambda: outcomes, timeout=3)

        self.assertEqual(outcomes[0].status, SyncStatus.Reverted)
        self.assertEqual(session.document.get_cell(1, 0), 'Alice')
        self.assertIn('No response', session.error)

        gate.set()
        self.pump(0.2)
        self.assertEqual(len(outcomes), 1)
        session.close(wait_ms=5000)
        self.pump()

    def test_close_ignores_late_results(self):
        gate = self.store.hold('update_cell')
        self.store.script('update_cell', status.NetworkException('Server down'))
        self.session.update_cell(1, 0, 'Carol')
        self.wait_for(lambda: self.store.count('update_cell') == 1)

        self.session.close()
        self.assertTrue(self.session.is_closed)
        gate.set()
        self.pump(0.2)

        self.assertEqual(self.outcomes, [])
        self.assertEqual(self.session.document.get_cell(1, 0), 'Carol')
        with self.assertRaises(status.ValidationException):
            self.session.update_cell(1, 0, 'Dave')


class EditModeTests(BaseSessionTestCase):
    def test_activate_text_cell_enters_editing(self):
        intent = self.session.activate_cell(2, 0)
        self.assertEqual(intent, classifier.Editable())
        self.assertEqual(self.session.editing_cell, (2, 0))
        self.assertEqual(self.session.cell_state(2, 0), CellState.Editing)

    def test_activate_phone_cell_requests_call(self):
        actions: List[Any] = []
        self.session.actionRequested.connect(actions.append)

        with mute_ui_signals():
            intent = self.session.activate_cell(1, 1)

        self.assertEqual(intent, classifier.Actionable(classifier.PhoneCall('+919876543210')))
        self.assertEqual(actions, [classifier.PhoneCall('+919876543210')])
        self.assertIsNone(self.session.editing_cell)
        self.assertEqual(self.session.cell_state(1, 1), CellState.Viewing)

    def test_commit_unchanged_makes_no_call(self):
        self.session.activate_cell(2, 0)
        self.assertIsNone(self.session.commit_edit('Bob'))
        self.assertIsNone(self.session.editing_cell)
        self.pump()
        self.assertEqual(self.store.count('update_cell'), 0)

    def test_commit_changed_saves(self):
        self.session.activate_cell(2, 0)
        self.assertEqual(self.session.commit_edit('Robert'), 1)
        self.assertEqual(self.session.cell_state(2, 0), CellState.SyncPending)
        self.wait_idle()
        self.assertEqual(self.store.calls[-1], ('update_cell', ('doc-1', 2, 0, 'Robert')))

    def test_cancel_edit(self):
        self.session.activate_cell(2, 0)
        self.session.cancel_edit()
        self.assertIsNone(self.session.editing_cell)
        self.assertEqual(self.session.document.get_cell(2, 0), 'Bob')

    def test_activating_another_cell_commits_draft(self):
        self.session.activate_cell(2, 0)
        self.session.set_draft('Robert')
        self.session.activate_cell(2, 2)

        self.assertEqual(self.session.editing_cell, (2, 2))
        self.assertEqual(self.session.document.get_cell(2, 0), 'Robert')
        self.assertEqual(self.session.cell_state(2, 0), CellState.SyncPending)
        self.wait_idle()
        self.assertEqual(self.store.calls[-1], ('update_cell', ('doc-1', 2, 0, 'Robert')))

    def test_activating_another_cell_without_draft_leaves_edit(self):
        self.session.activate_cell(2, 0)
        self.session.activate_cell(2, 2)

        self.assertEqual(self.session.editing_cell, (2, 2))
        self.assertEqual(self.session.cell_state(2, 0), CellState.Viewing)
        self.pump()
        self.assertEqual(self.store.count('update_cell'), 0)

    def test_pressing_phone_cell_commits_draft(self):
        self.session.activate_cell(2, 0)
        self.session.set_draft('Robert')
        with mute_ui_signals():
            self.session.activate_cell(1, 1)

        self.assertIsNone(self.session.editing_cell)
        self.assertEqual(self.session.document.get_cell(2, 0), 'Robert')
        self.wait_idle()

    def test_reactivating_editing_cell_stays_editing(self):
        self.session.activate_cell(2, 0)
        self.session.set_draft('Rob')
        self.session.activate_cell(2, 0)
        self.assertEqual(self.session.editing_cell, (2, 0))
        self.assertEqual(self.session.commit_edit('Robert'), 1)
        self.wait_idle()

    def test_draft_without_active_cell(self):
        with self.assertRaises(status.ValidationException):
            self.session.set_draft('x')

    def test_commit_without_active_cell(self):
        with self.assertRaises(status.ValidationException):
            self.session.commit_edit('x')


class UndoTests(BaseSessionTestCase):
    def test_undo_is_local_only(self):
        self.session.update_cell(1, 0, 'Carol')
        self.wait_idle()
        calls = len(self.store.calls)

        op = self.session.undo()
        self.assertEqual(op, UpdateCell(1, 0, 'Alice', 'Carol'))
        self.assertEqual(self.session.document.get_cell(1, 0), 'Alice')
        self.pump()
        self.assertEqual(len(self.store.calls), calls)
        self.assertFalse(self.session.can_undo)

    def test_undo_empty_stack(self):
        self.assertIsNone(self.session.undo())

    def test_undo_order(self):
        self.session.update_cell(1, 0, 'a')
        self.session.update_cell(1, 0, 'b')
        self.session.update_cell(2, 2, 'c')
        self.wait_idle()

        self.session.undo()
        self.assertEqual(self.session.document.get_cell(2, 2), 'Delhi')
        self.session.undo()
        self.assertEqual(self.session.document.get_cell(1, 0), 'a')
        self.session.undo()
        self.assertEqual(self.session.document.get_cell(1, 0), 'Alice')

    def test_undo_supersedes_in_flight_update(self):
        gate = self.store.hold('update_cell')
        self.store.script('update_cell', status.NetworkException('Server down'))
        self.session.update_cell(1, 0, 'Carol')
        self.wait_for(lambda: self.store.count('update_cell') == 1)

        self.session.undo()
        self.assertEqual(self.session.pending_count, 0)
        gate.set()
        self.wait_for(lambda: len(self.outcomes) == 1)

        self.assertEqual(self.outcomes[0][2].status, SyncStatus.Superseded)
        self.assertEqual(self.session.document.get_cell(1, 0), 'Alice')
        self.assertEqual(self.session.error, '')

    def test_undo_depth_is_bounded(self):
        session = EditSession(self.store, 'doc-1', max_attempts=1, undo_depth=2)
        session.load()
        self.wait_for(lambda: not session.is_loading)
        for value in ('a', 'b', 'c'):
            session.update_cell(1, 0, value)
        self.assertEqual(session.undo_count, 2)
        self.wait_for(lambda: session.pending_count == 0)
        session.close(wait_ms=5000)
        self.pump()


class StructureTests(BaseSessionTestCase):
    def test_add_row_is_local(self):
        idx = self.session.add_row()
        self.assertEqual(idx, 3)
        self.assertEqual(self.session.document.row(3), ['', '', ''])
        self.assertTrue(self.session.message)
        self.pump()
        self.assertEqual(self.store.count('add_row'), 0)

    def test_add_column_is_local(self):
        idx = self.session.add_column()
        self.assertEqual(idx, 3)
        self.assertEqual(self.session.document.max_cols, 4)
        self.assertEqual(self.session.document.column_label(3), 'D')
        self.pump()
        self.assertEqual(self.store.count('add_column'), 0)

    def test_structural_edits_are_not_undoable(self):
        self.session.add_row()
        self.session.add_column()
        self.assertEqual(self.session.undo_count, 0)

    def test_message_auto_clears(self):
        editor: Dict[str, Any] = lib.settings.get_section('editor')
        editor['message_timeout'] = 50
        lib.settings.set_section('editor', editor)

        session = EditSession(self.store, 'doc-1')
        session.add_row()
        self.assertEqual(session.message, 'New row added successfully')
        self.wait_for(lambda: session.message == '', timeout=2)
        session.close()


class PersistedStructureTests(BaseSessionTestCase):
    def session_options(self) -> Dict[str, Any]:
        return {'max_attempts': 1, 'timeout': 5, 'persist_structure': True}

    def test_add_row_and_column_call_backend(self):
        self.session.add_row()
        self.session.add_column()
        self.wait_for(lambda: self.store.count('add_row') == 1 and self.store.count('add_column') == 1)

    def test_failure_is_reported_without_rollback(self):
        self.store.script('add_column', status.NetworkException('Server down'))
        self.session.add_column()
        self.wait_for(lambda: bool(self.session.error))
        self.assertIn('not saved', self.session.error)
        self.assertEqual(self.session.document.max_cols, 4)


class ColumnDeletionTests(BaseSessionTestCase):
    def test_empty_selection_rejected(self):
        with self.assertRaises(status.ValidationException):
            self.session.request_delete_selected_columns()

    def test_confirmation_required(self):
        self.session.toggle_column(0)
        with self.assertRaises(status.ValidationException):
            self.session.delete_selected_columns()

        self.session.request_delete_selected_columns()
        self.session.cancel_delete_selected_columns()
        with self.assertRaises(status.ValidationException):
            self.session.delete_selected_columns()
        self.assertEqual(self.store.count('delete_column'), 0)

    def test_toggle_disarms(self):
        self.session.toggle_column(0)
        self.session.request_delete_selected_columns()
        self.session.toggle_column(2)
        self.assertIsNone(self.session.armed_deletion)

    def test_toggle_unknown_column(self):
        with self.assertRaises(status.ValidationException):
            self.session.toggle_column(3)

    def test_delete_selected_columns(self):
        requested: List[Any] = []
        deleted: List[Any] = []
        self.session.deleteConfirmationRequested.connect(requested.append)
        self.session.columnsDeleted.connect(deleted.append)

        self.assertTrue(self.session.toggle_column(0))
        self.assertTrue(self.session.toggle_column(2))
        self.assertEqual(self.session.request_delete_selected_columns(), [2, 0])
        self.assertEqual(requested, [[2, 0]])

        self.session.delete_selected_columns()
        self.assertTrue(self.session.is_deleting)
        self.wait_idle()

        self.assertEqual(self.session.document.rows(), [['Phone'], ['+91 98765 43210'], ['n/a']])
        self.assertEqual(self.session.selection, [])
        self.assertEqual(deleted, [[2, 0]])
        self.assertEqual(
            [args for name, args in self.store.calls if name == 'delete_column'],
            [('doc-1', 2), ('doc-1', 0)],
        )
        self.assertIn('2 column(s) deleted', self.session.message)

    def test_partial_failure_keeps_remaining_selected(self):
        self.store.script('delete_column', None, status.NetworkException('Server down'))
        self.session.toggle_column(0)
        self.session.toggle_column(2)
        self.session.request_delete_selected_columns()
        self.session.delete_selected_columns()
        self.wait_idle()

        self.assertEqual(self.session.document.row(0), ['Name', 'Phone'])
        self.assertEqual(self.session.selection, [0])
        self.assertIn('Deleted 1 of 2', self.session.error)
        self.assertIn('Server down', self.session.error)

        # Retrying deletes what is left
        self.session.request_delete_selected_columns()
        self.session.delete_selected_columns()
        self.wait_idle()
        self.assertEqual(self.session.document.row(0), ['Phone'])
        self.assertEqual(self.session.selection, [])

    def test_deletion_is_not_retried(self):
        session = EditSession(self.store, 'doc-1', max_attempts=3)
        session.load()
        self.wait_for(lambda: not session.is_loading)
        self.store.script('delete_column', status.NetworkException('Server down'))
        session.toggle_column(1)
        session.request_delete_selected_columns()
        session.delete_selected_columns()
        self.wait_for(lambda: not session.is_deleting)
        self.assertEqual(self.store.count('delete_column'), 1)
        self.assertEqual(session.selection, [1])
        session.close(wait_ms=5000)

    def test_refused_while_updates_pending(self):
        self.store.hold('update_cell')
        self.session.update_cell(1, 0, 'Carol')
        self.session.toggle_column(0)
        with self.assertRaises(status.ConflictException):
            self.session.request_delete_selected_columns()

    def test_edits_refused_while_deleting(self):
        self.store.hold('delete_column')
        self.session.toggle_column(0)
        self.session.request_delete_selected_columns()
        self.session.delete_selected_columns()

        with self.assertRaises(status.ConflictException):
            self.session.update_cell(1, 1, 'x')
        with self.assertRaises(status.ConflictException):
            self.session.add_column()
        with self.assertRaises(status.ConflictException):
            self.session.undo()
        with self.assertRaises(status.ConflictException):
            self.session.request_delete_selected_columns()

        self.store.release_all()
        self.wait_idle()
        self.assertEqual(self.session.document.max_cols, 2)

    def test_undo_remapped_after_deletion(self):
        self.session.update_cell(1, 2, 'Mumbai')
        self.session.update_cell(1, 0, 'Zed')
        self.wait_idle()

        self.session.toggle_column(0)
        self.session.request_delete_selected_columns()
        self.session.delete_selected_columns()
        self.wait_idle()

        self.assertEqual(self.session.undo_count, 1)
        op = self.session.undo()
        self.assertEqual(op, UpdateCell(1, 1, 'Pune', 'Mumbai'))
        self.assertEqual(self.session.document.get_cell(1, 1), 'Pune')


class EmptyDocumentTests(BaseSessionTestCase):
    ROWS = []

    def test_add_column_on_empty_document(self):
        self.assertTrue(self.session.document.is_empty())
        self.assertEqual(self.session.add_column(), 0)
        self.assertEqual(self.session.document.rows(), [['']])

    def test_add_row_on_empty_document(self):
        self.assertEqual(self.session.add_row(), 0)
        self.assertEqual(self.session.document.rows(), [['']])


class SessionSettingsTests(BaseSessionTestCase):
    def test_defaults_read_from_settings(self):
        editor: Dict[str, Any] = lib.settings.get_section('editor')
        editor['undo_depth'] = 3
        editor['phone_min_digits'] = 3
        lib.settings.set_section('editor', editor)

        session = EditSession(FakeRemoteStore([['12345']]), 'doc-2')
        session.load()
        self.wait_for(lambda: not session.is_loading)
        self.assertIsInstance(session.classify_cell(0, 0), classifier.Actionable)
        for value in 'abcd':
            session.update_cell(1, 0, value)
        self.assertEqual(session.undo_count, 3)
        self.wait_for(lambda: session.pending_count == 0)
        session.close(wait_ms=5000)
