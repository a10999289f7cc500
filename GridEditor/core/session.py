"""Edit session: optimistic cell edits with background reconciliation.

The session owns the document, the undo stack, the column selection and the map of
in-flight cell updates. Every mutation is applied to the local document first, so the
grid reflects it immediately, and the matching remote call runs on an
:class:`~GridEditor.core.service.AsyncWorker`. Worker results are delivered back to the
session's thread through queued signals and reconciled there:

- a successful update leaves the cell as is,
- a failed update reverts the cell to the last value the server is known to hold,
- a result whose per-cell sequence number is no longer the latest issued for that cell
  is ignored, so a slow failure can never revert a newer edit.

Structural edits (add row, add column) are local to the session unless the
``remote.persist_structure`` setting is on. Column deletion is confirmed in two steps and
removes exactly the columns the server acknowledged, which keeps a failed batch
retryable. Undo only ever changes the local document.
"""
import enum
import functools
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from PySide6 import QtCore

from . import classifier
from .document import GridDocument, column_letter, to_cell
from .selection import SelectionSet
from .service import AsyncWorker, RemoteGridStore, MAX_RETRIES, TOTAL_TIMEOUT
from .undo import AddColumn, AddRow, DeleteColumns, UndoStack, UpdateCell, DEFAULT_UNDO_DEPTH
from ..status import status

RETRY_WAIT_SECONDS: float = 0.5

CellKey = Tuple[int, int]


class CellState(enum.Enum):
    """Interaction state of a single cell."""
    Viewing = enum.auto()
    Editing = enum.auto()
    SyncPending = enum.auto()


class SyncStatus(enum.StrEnum):
    """Result of reconciling one optimistic cell edit."""
    Committed = enum.auto()
    Reverted = enum.auto()
    Superseded = enum.auto()


@dataclass(frozen=True)
class SyncOutcome:
    status: SyncStatus
    reason: str = ''

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.Committed


@dataclass
class PendingSync:
    """The latest update issued for a cell and not yet reconciled."""
    seq: int
    value: str
    confirmed: str  # value the server is known to hold
    task_id: int


@dataclass
class Task:
    kind: str
    payload: Any = None
    timer: Optional[QtCore.QTimer] = None


@dataclass(frozen=True)
class DeleteBatchResult:
    """Outcome of a column deletion batch.

    Attributes:
        deleted: Columns the server acknowledged, in the order they were deleted.
        failed: The column whose deletion failed, if any.
        error: The failure, if any.
    """
    deleted: List[int] = field(default_factory=list)
    failed: Optional[int] = None
    error: Optional[BaseException] = None


def cell_name(row: int, col: int) -> str:
    """Spreadsheet-style name of a cell, e.g. ``B3`` for (2, 1)."""
    return f'{column_letter(col)}{row + 1}'


def delete_columns(store: RemoteGridStore, document_id: str, indices: List[int]) -> DeleteBatchResult:
    """Delete columns one by one, stopping at the first failure.

    Runs on a worker thread. Deletions are not retried: repeating a delete that reached
    the server would remove a second column.

    Args:
        store: The remote store.
        document_id: Document to edit.
        indices: Column indices, highest first.

    Returns:
        DeleteBatchResult: The acknowledged columns and the failure, if any.
    """
    deleted: List[int] = []
    for idx in indices:
        try:
            store.delete_column(document_id, idx)
        except Exception as ex:
            logging.error(f'Deleting column {column_letter(idx)} failed after {len(deleted)} deletion(s): {ex}')
            return DeleteBatchResult(deleted, idx, ex)
        deleted.append(idx)
    return DeleteBatchResult(deleted)


def describe_error(error: Any) -> str:
    """Short user-facing text for a failure reported by a worker."""
    if isinstance(error, status.BaseStatusException):
        return error.detail or error.status_message
    if error is None:
        return 'Unknown error'
    return str(error) or type(error).__name__


class EditSession(QtCore.QObject):
    """Editor state for one open document.

    Args:
        store: Remote store used for snapshot fetches and persistence.
        document_id: Id of the document being edited.
        parent: Optional Qt parent.
        timeout: Seconds allowed per remote attempt. Defaults to ``remote.timeout``.
        max_attempts: Attempts per cell update or fetch. Defaults to ``remote.max_attempts``.
        undo_depth: Undo stack size. Defaults to ``editor.undo_depth``.
        persist_structure: Send added rows and columns to the server.
            Defaults to ``remote.persist_structure``.
    """
    cellChanged = QtCore.Signal(int, int, str)  # row, col, value
    structureAboutToChange = QtCore.Signal()
    structureChanged = QtCore.Signal()
    cellSynced = QtCore.Signal(int, int, object)  # row, col, SyncOutcome
    pendingCountChanged = QtCore.Signal(int)
    operationApplied = QtCore.Signal(object)  # EditOperation
    undoAvailabilityChanged = QtCore.Signal(bool)
    selectionChanged = QtCore.Signal(list)
    deleteConfirmationRequested = QtCore.Signal(list)
    columnsDeleted = QtCore.Signal(list)
    actionRequested = QtCore.Signal(object)  # PhoneCall
    loadingChanged = QtCore.Signal(bool)
    loaded = QtCore.Signal()
    errorChanged = QtCore.Signal(str)
    messageChanged = QtCore.Signal(str)

    def __init__(self, store: RemoteGridStore, document_id: str, parent: Optional[QtCore.QObject] = None,
                 timeout: Optional[float] = None, max_attempts: Optional[int] = None,
                 undo_depth: Optional[int] = None, persist_structure: Optional[bool] = None) -> None:
        super().__init__(parent)
        from ..settings import lib

        remote: Dict[str, Any] = lib.settings.get_section('remote')
        editor: Dict[str, Any] = lib.settings.get_section('editor')

        self._store = store
        self._document_id: str = document_id

        self._timeout: float = timeout if timeout is not None else remote.get('timeout', TOTAL_TIMEOUT)
        self._max_attempts: int = max_attempts if max_attempts is not None else remote.get(
            'max_attempts', MAX_RETRIES)
        self._persist_structure: bool = (
            persist_structure if persist_structure is not None else remote.get('persist_structure', False)
        )
        self._phone_digits: Tuple[int, int] = (
            editor.get('phone_min_digits', classifier.PHONE_MIN_DIGITS),
            editor.get('phone_max_digits', classifier.PHONE_MAX_DIGITS),
        )

        self._document = GridDocument()
        self._undo = UndoStack(undo_depth or editor.get('undo_depth', DEFAULT_UNDO_DEPTH))
        self._selection = SelectionSet()

        self._pending: Dict[CellKey, PendingSync] = {}
        self._sequence: Dict[CellKey, int] = {}
        self._tasks: Dict[int, Task] = {}
        self._workers: Dict[int, AsyncWorker] = {}
        self._task_ids = itertools.count(1)

        self._editing: Optional[CellKey] = None
        self._draft: Optional[str] = None
        self._armed: Optional[List[int]] = None
        self._loading: bool = False
        self._deleting: bool = False
        self._closed: bool = False

        self._error: str = ''
        self._message: str = ''
        self._message_timer = QtCore.QTimer(self)
        self._message_timer.setSingleShot(True)
        self._message_timer.setInterval(editor.get('message_timeout', 3000))
        self._message_timer.timeout.connect(self.clear_message)

    def __repr__(self) -> str:
        return f'<EditSession document={self._document_id!r} pending={len(self._pending)}>'

    @property
    def document(self) -> GridDocument:
        return self._document

    @property
    def document_id(self) -> str:
        return self._document_id

    @property
    def error(self) -> str:
        return self._error

    @property
    def message(self) -> str:
        return self._message

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def undo_count(self) -> int:
        return len(self._undo)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def selection(self) -> List[int]:
        return list(self._selection)

    @property
    def editing_cell(self) -> Optional[CellKey]:
        return self._editing

    @property
    def armed_deletion(self) -> Optional[List[int]]:
        return list(self._armed) if self._armed is not None else None

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_deleting(self) -> bool:
        return self._deleting

    @property
    def is_closed(self) -> bool:
        return self._closed

    def cell_state(self, row: int, col: int) -> CellState:
        if self._editing == (row, col):
            return CellState.Editing
        if (row, col) in self._pending:
            return CellState.SyncPending
        return CellState.Viewing

    def _set_error(self, message: str) -> None:
        self._error = message
        self.errorChanged.emit(message)

    @QtCore.Slot()
    def clear_error(self) -> None:
        """Dismiss the transient error."""
        if not self._error:
            return
        self._error = ''
        self.errorChanged.emit('')

    def _show_message(self, message: str) -> None:
        self._message = message
        self.messageChanged.emit(message)
        if self._message_timer.interval() > 0:
            self._message_timer.start()

    @QtCore.Slot()
    def clear_message(self) -> None:
        if not self._message:
            return
        self._message = ''
        self.messageChanged.emit('')

    def _check_ready(self, action: str) -> None:
        if self._closed:
            raise status.ValidationException(f'Cannot {action}: the editor session is closed.')
        if self._loading:
            raise status.ConflictException(f'Cannot {action} while the grid is loading.')
        if self._deleting:
            raise status.ConflictException(f'Cannot {action} while columns are being deleted.')

    def _check_deletable(self) -> None:
        self._check_ready('delete columns')
        if self._pending:
            raise status.ConflictException(
                f'{len(self._pending)} cell update(s) are still being saved. Try again when they finish.'
            )

    def _deadline_ms(self) -> int:
        seconds = self._timeout * self._max_attempts + RETRY_WAIT_SECONDS * (self._max_attempts - 1)
        return int(seconds * 1000)

    def _start_task(self, kind: str, func: Callable[..., Any], *args: Any, payload: Any = None,
                    max_attempts: Optional[int] = None, deadline: bool = True) -> int:
        """Run func on a worker thread and route its result to ``_finish_<kind>``.

        Args:
            kind: Task kind, selects the finishing handler.
            func: Blocking callable.
            *args: Arguments for func.
            payload: Context handed to the finishing handler.
            max_attempts: Overrides the session's attempt count.
            deadline: Fail the task if it has not finished within the session deadline.

        Returns:
            int: The task id.
        """
        task_id: int = next(self._task_ids)
        worker = AsyncWorker(
            task_id, func, *args,
            max_attempts=max_attempts or self._max_attempts,
            wait_seconds=RETRY_WAIT_SECONDS,
        )
        worker.resultReady.connect(self._on_task_result)
        worker.errorOccurred.connect(self._on_task_error)

        task = Task(kind, payload)
        if deadline:
            task.timer = QtCore.QTimer(self)
            task.timer.setSingleShot(True)
            task.timer.setInterval(self._deadline_ms())
            task.timer.timeout.connect(functools.partial(self._on_task_timeout, task_id))

        self._tasks[task_id] = task
        self._workers[task_id] = worker
        logging.debug(f'Starting task {task_id} ({kind}).')
        worker.start()
        if task.timer:
            task.timer.start()
        return task_id

    def _take_task(self, task_id: int) -> Optional[Task]:
        task = self._tasks.pop(task_id, None)
        if task and task.timer:
            task.timer.stop()
            task.timer.deleteLater()
        return task

    def _release_worker(self, task_id: int) -> None:
        worker = self._workers.pop(task_id, None)
        if worker is None:
            return
        worker.wait()
        worker.deleteLater()

    def _finish(self, task: Task, result: Any, error: Any) -> None:
        handler = getattr(self, f'_finish_{task.kind}')
        handler(task, result, error)

    @QtCore.Slot(int, object)
    def _on_task_result(self, task_id: int, result: Any) -> None:
        self._release_worker(task_id)
        task = self._take_task(task_id)
        if task is None:
            logging.debug(f'Ignoring late result of task {task_id}.')
            return
        self._finish(task, result, None)

    @QtCore.Slot(int, object)
    def _on_task_error(self, task_id: int, error: Any) -> None:
        self._release_worker(task_id)
        task = self._take_task(task_id)
        if task is None:
            logging.debug(f'Ignoring late failure of task {task_id}: {error}')
            return
        if not isinstance(error, status.BaseStatusException):
            logging.error(f'Task {task_id} ({task.kind}) failed: {error}')
        self._finish(task, None, error)

    def _on_task_timeout(self, task_id: int) -> None:
        task = self._take_task(task_id)
        if task is None:
            return
        seconds = self._deadline_ms() / 1000
        error = status.NetworkException(f'No response from the server within {seconds:g}s.')
        self._finish(task, None, error)

    def load(self) -> int:
        """Fetch the document snapshot in the background.

        The document, undo stack, selection and in-flight map are replaced when the
        snapshot arrives.

        Returns:
            int: The task id.

        Raises:
            ConflictException: If a fetch or a column deletion is already running.
        """
        self._check_ready('load the grid')
        self._loading = True
        self.loadingChanged.emit(True)
        logging.info(f'Loading grid for document "{self._document_id}".')
        return self._start_task('fetch', self._store.fetch_snapshot, self._document_id)

    def refresh(self, force: bool = False) -> int:
        """Reload the snapshot from the server.

        Args:
            force: Reload even if cell updates are still in flight. Their results will be ignored.

        Raises:
            ConflictException: If updates are in flight and force is False.
        """
        if self._pending and not force:
            raise status.ConflictException(
                f'{len(self._pending)} cell update(s) are still being saved. Reloading would discard them.'
            )
        return self.load()

    def _finish_fetch(self, task: Task, result: Any, error: Any) -> None:
        self._loading = False
        self.loadingChanged.emit(False)
        if error is not None:
            self._set_error(f'Failed to load preview: {describe_error(error)}')
            return

        self.structureAboutToChange.emit()
        self._document.load(result)
        self._undo.clear()
        self._selection.clear()
        self._pending.clear()
        self._leave_editing()
        self._armed = None
        self.structureChanged.emit()

        self.undoAvailabilityChanged.emit(False)
        self.selectionChanged.emit([])
        self.pendingCountChanged.emit(0)
        self.clear_error()
        logging.info(f'Loaded {self._document.row_count} rows for document "{self._document_id}".')
        self.loaded.emit()

    def _write_cell(self, row: int, col: int, value: str) -> None:
        reshapes = row >= self._document.row_count or col >= self._document.max_cols
        if reshapes:
            self.structureAboutToChange.emit()
        self._document.set_cell(row, col, value)
        if reshapes:
            self.structureChanged.emit()
        self.cellChanged.emit(row, col, value)

    def classify_cell(self, row: int, col: int) -> classifier.CellIntent:
        """Classify a cell using the configured phone number bounds."""
        return classifier.classify(self._document.get_cell(row, col), *self._phone_digits)

    def activate_cell(self, row: int, col: int) -> classifier.CellIntent:
        """Handle a press on a cell.

        Phone numbers are handed to the dialer and leave the cell untouched; anything
        else puts the cell in edit mode.

        Pressing another cell while one is being edited finishes that edit first: a
        draft set with :meth:`set_draft` is committed, otherwise the edit is left with
        the cell unchanged.

        Returns:
            CellIntent: What the press resolved to.
        """
        if self._editing == (row, col):
            return classifier.Editable()
        if self._editing is not None:
            if self._draft is None:
                self.cancel_edit()
            else:
                self.commit_edit(self._draft)

        intent = self.classify_cell(row, col)
        if isinstance(intent, classifier.Actionable):
            logging.info(f'Cell {cell_name(row, col)} holds a phone number; requesting a call.')
            self.actionRequested.emit(intent.action)

            from ..ui.actions import signals
            signals.callRequested.emit(intent.action.number)
            return intent

        self._editing = (row, col)
        return intent

    def commit_edit(self, value: str) -> Optional[int]:
        """Finish editing the active cell and save the value.

        Returns:
            Optional[int]: The sequence number of the update, or None if the value did not change.

        Raises:
            ValidationException: If no cell is being edited.
        """
        if self._editing is None:
            raise status.ValidationException('No cell is being edited.')
        row, col = self._editing
        self._leave_editing()
        return self.update_cell(row, col, value)

    def cancel_edit(self) -> None:
        self._leave_editing()

    def set_draft(self, value: Any) -> None:
        """Record the text typed so far into the cell being edited.

        Raises:
            ValidationException: If no cell is being edited.
        """
        if self._editing is None:
            raise status.ValidationException('No cell is being edited.')
        self._draft = '' if value is None else str(value)

    def _leave_editing(self) -> None:
        self._editing = None
        self._draft = None

    def update_cell(self, row: int, col: int, value: Any) -> Optional[int]:
        """Optimistically set a cell and save it in the background.

        The new value is visible in the document as soon as this returns. Setting a
        cell to its current value does nothing and makes no remote call.

        Args:
            row: Zero-based row index. Rows are added if needed.
            col: Zero-based column index. Columns are added if needed.
            value: New cell value.

        Returns:
            Optional[int]: The per-cell sequence number issued, or None for a no-op.

        Raises:
            ValidationException: If the address is negative.
            ConflictException: While the grid is loading or columns are being deleted.
        """
        self._check_ready('edit cells')
        if row < 0 or col < 0:
            raise status.ValidationException(f'Invalid cell address ({row}, {col}).')

        value = to_cell(value)
        old_value = self._document.get_cell(row, col)
        if old_value == value:
            logging.debug(f'Cell {cell_name(row, col)} unchanged; nothing to save.')
            return None

        op = UpdateCell(row, col, old_value, value)
        self._undo.push(op)
        self.undoAvailabilityChanged.emit(True)
        self._write_cell(row, col, value)
        self.operationApplied.emit(op)

        key: CellKey = (row, col)
        seq = self._sequence.get(key, 0) + 1
        self._sequence[key] = seq

        previous = self._pending.get(key)
        confirmed = previous.confirmed if previous else old_value

        task_id = self._start_task(
            'update', self._store.update_cell, self._document_id, row, col, value,
            payload=(key, seq, value),
        )
        self._pending[key] = PendingSync(seq, value, confirmed, task_id)
        self.pendingCountChanged.emit(len(self._pending))
        logging.debug(f'Cell {cell_name(row, col)} set to "{value}" (seq {seq}).')
        return seq

    def _finish_update(self, task: Task, result: Any, error: Any) -> SyncOutcome:
        key, seq, value = task.payload
        row, col = key

        pending = self._pending.get(key)
        if pending is None or pending.seq != seq:
            if error is None and pending is not None:
                pending.confirmed = value
            logging.debug(f'Result of update {seq} for {cell_name(row, col)} superseded by a newer edit.')
            outcome = SyncOutcome(SyncStatus.Superseded)
            self.cellSynced.emit(row, col, outcome)
            return outcome

        del self._pending[key]
        self.pendingCountChanged.emit(len(self._pending))

        if error is None:
            self.clear_error()
            self._show_message('Cell updated successfully')
            outcome = SyncOutcome(SyncStatus.Committed)
            self.cellSynced.emit(row, col, outcome)
            return outcome

        reason = describe_error(error)
        logging.warning(f'Reverting {cell_name(row, col)} to "{pending.confirmed}": {reason}')
        self._write_cell(row, col, pending.confirmed)
        self._set_error(f'Failed to update cell {cell_name(row, col)}: {reason}')
        outcome = SyncOutcome(SyncStatus.Reverted, reason)
        self.cellSynced.emit(row, col, outcome)
        return outcome

    def undo(self) -> Optional[UpdateCell]:
        """Revert the last cell update in the local document.

        The server is not contacted. An update of the same cell that is still in flight
        is superseded, so its result can no longer touch the cell.

        Returns:
            Optional[UpdateCell]: The undone operation, or None if there was nothing to undo.
        """
        self._check_ready('undo')
        op = self._undo.pop()
        if op is None:
            return None
        self.undoAvailabilityChanged.emit(bool(self._undo))

        if self._pending.pop((op.row, op.col), None) is not None:
            logging.debug(f'Pending update of {cell_name(op.row, op.col)} superseded by undo.')
            self.pendingCountChanged.emit(len(self._pending))

        self._write_cell(op.row, op.col, op.old_value)
        self._show_message('Change undone')
        return op

    def add_row(self) -> int:
        """Append a blank row.

        Returns:
            int: Index of the new row.
        """
        self._check_ready('add rows')
        self.structureAboutToChange.emit()
        idx = self._document.add_row()
        self.structureChanged.emit()
        self.operationApplied.emit(AddRow())

        if self._persist_structure:
            self._start_task('add_row', self._store.add_row, self._document_id, payload=idx)
        self._show_message('New row added successfully')
        return idx

    def add_column(self) -> int:
        """Append a blank column.

        Returns:
            int: Index of the new column.
        """
        self._check_ready('add columns')
        self.structureAboutToChange.emit()
        idx = self._document.add_column()
        self.structureChanged.emit()
        self.operationApplied.emit(AddColumn())

        if self._persist_structure:
            self._start_task('add_column', self._store.add_column, self._document_id, payload=idx)
        self._show_message('New column added successfully')
        return idx

    def _finish_add_row(self, task: Task, result: Any, error: Any) -> None:
        if error is not None:
            self._set_error(f'Row {task.payload + 1} was added here but not saved: {describe_error(error)}')

    def _finish_add_column(self, task: Task, result: Any, error: Any) -> None:
        if error is not None:
            self._set_error(
                f'Column {column_letter(task.payload)} was added here but not saved: {describe_error(error)}'
            )

    def toggle_column(self, col: int) -> bool:
        """Select or deselect a column for deletion.

        Any armed deletion is cancelled.

        Returns:
            bool: True if the column is selected afterwards.
        """
        self._check_ready('change the selection')
        if col < 0 or col >= self._document.max_cols:
            raise status.ValidationException(f'Column {col} does not exist.')
        selected = self._selection.toggle(col)
        self._armed = None
        self.selectionChanged.emit(list(self._selection))
        return selected

    def clear_selection(self) -> None:
        self._check_ready('change the selection')
        self._selection.clear()
        self._armed = None
        self.selectionChanged.emit([])

    def request_delete_selected_columns(self) -> List[int]:
        """Ask for confirmation before deleting the selected columns.

        Emits ``deleteConfirmationRequested`` with the columns, highest first. The deletion
        runs when :meth:`delete_selected_columns` is called.

        Returns:
            List[int]: The columns to delete, highest first.

        Raises:
            ValidationException: If no column is selected.
            ConflictException: If cell updates or another deletion are still running.
        """
        if not self._selection:
            raise status.ValidationException('Please select columns to delete.')
        self._check_deletable()
        self._armed = self._selection.descending()
        self.deleteConfirmationRequested.emit(list(self._armed))
        return list(self._armed)

    def cancel_delete_selected_columns(self) -> None:
        self._armed = None

    def delete_selected_columns(self) -> List[int]:
        """Delete the confirmed columns on the server, then locally.

        Columns are deleted highest first, one request each. The first failure stops the
        batch. Every acknowledged column is removed from the document and the selection,
        so the columns left selected are exactly the ones still to delete.

        Returns:
            List[int]: The columns being deleted, highest first.

        Raises:
            ValidationException: If the deletion was not confirmed.
            ConflictException: If cell updates or another deletion are still running.
        """
        if self._armed is None:
            raise status.ValidationException('Column deletion has not been confirmed.')
        self._check_deletable()

        indices, self._armed = self._armed, None
        self._deleting = True
        self._leave_editing()
        logging.info(f'Deleting columns {[column_letter(i) for i in indices]}.')
        # Socket timeouts bound every request; abandoning the batch would lose track of what was deleted
        self._start_task('delete', delete_columns, self._store, self._document_id, indices,
                         payload=indices, max_attempts=1, deadline=False)
        return indices

    def _finish_delete(self, task: Task, result: Any, error: Any) -> None:
        self._deleting = False
        indices: List[int] = task.payload
        if error is not None:
            result = DeleteBatchResult([], indices[0], error)

        deleted = result.deleted
        if deleted:
            self.structureAboutToChange.emit()
            self._document.remove_columns(deleted)
            self.structureChanged.emit()
            self._undo.remap_columns(deleted)
            self.undoAvailabilityChanged.emit(bool(self._undo))
            for idx in deleted:
                self._selection.discard(idx)
            self.operationApplied.emit(DeleteColumns(tuple(deleted)))
            self.columnsDeleted.emit(list(deleted))

        if result.error is None:
            self._selection.clear()
            self.selectionChanged.emit([])
            self.clear_error()
            self._show_message(f'{len(deleted)} column(s) deleted successfully')
            return

        self.selectionChanged.emit(list(self._selection))
        self._set_error(
            f'Deleted {len(deleted)} of {len(indices)} column(s); column {column_letter(result.failed)} '
            f'failed: {describe_error(result.error)}. The remaining columns are still selected.'
        )

    def close(self, wait_ms: int = 0) -> None:
        """End the session.

        Results of work still running are ignored from now on.

        Args:
            wait_ms: Wait up to this long for each running worker to finish.
        """
        if self._closed:
            return
        self._closed = True
        for task_id in list(self._tasks):
            self._take_task(task_id)
        self._pending.clear()
        self._leave_editing()
        self._armed = None
        self._message_timer.stop()

        if wait_ms:
            for worker in list(self._workers.values()):
                worker.wait(wait_ms)
        logging.info(f'Closed editor session for document "{self._document_id}".')
