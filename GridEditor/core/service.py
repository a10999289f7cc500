"""Remote grid store REST client and background worker.

Provides the blocking client for the task-file endpoints of the backend, and the
:class:`AsyncWorker` thread used by the edit session to run those calls off the
event loop.
"""

import json
import logging
import socket
import ssl
import time
import urllib.parse
from typing import Any, Callable, Dict, List, Optional

import httplib2
import pandas as pd
from PySide6 import QtCore

from ..status import status

TOTAL_TIMEOUT: int = 30
MAX_RETRIES: int = 2
MAX_CELLS: int = 250_000

API_ROOT: str = '/api/task-files'

# Request timeout and rate limiting are worth another attempt
TRANSIENT_CLIENT_ERRORS = (408, 429)


class AsyncWorker(QtCore.QThread):
    """
    Generic worker thread with retry logic for blocking functions.

    Only network failures are retried; rejected requests and every other error are
    reported at once.

    Signals:
        resultReady (int, object): Emitted with the task id and the function's result on success.
        errorOccurred (int, object): Emitted with the task id and the exception on failure.
    """
    resultReady = QtCore.Signal(int, object)
    errorOccurred = QtCore.Signal(int, object)

    def __init__(self, task_id: int, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.task_id = task_id
        self.func = func
        self.args = args

        self.max_attempts = max(1, kwargs.pop('max_attempts', MAX_RETRIES))
        self.wait_seconds = kwargs.pop('wait_seconds', 1.0)
        self.kwargs = kwargs

    def run(self) -> None:
        attempts = 0
        last_exception = None
        while attempts < self.max_attempts:
            attempts += 1
            try:
                result = self.func(*self.args, **self.kwargs)
                self.resultReady.emit(self.task_id, result)
                return
            except status.RequestRejectedException as ex:
                self.errorOccurred.emit(self.task_id, ex)
                return
            except status.NetworkException as ex:
                last_exception = ex
                if attempts < self.max_attempts:
                    logging.debug(f'Task {self.task_id}: attempt {attempts} failed, retrying in {self.wait_seconds}s.')
                    time.sleep(self.wait_seconds)
            except Exception as ex:
                self.errorOccurred.emit(self.task_id, ex)
                return
        # All retries exhausted
        self.errorOccurred.emit(self.task_id, last_exception)


def _to_text(value: Any) -> str:
    """
    Converts a snapshot value to cell text.
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float):
        if pd.isna(value):
            return ''
        if value.is_integer():
            return str(int(value))
    return value if isinstance(value, str) else str(value)


def normalize_snapshot(payload: Any, max_cells: int = MAX_CELLS) -> List[List[str]]:
    """
    Validates a snapshot payload and converts it into rows of strings.

    Args:
        payload: Decoded JSON body of the preview endpoint. Either a list of rows or an
            object wrapping it in a "data" field.
        max_cells (int): Largest accepted number of cells.

    Returns:
        Rows of cell strings, padded to the widest row.

    Raises:
        FormatException: If the payload is not a list of rows.
        SizeException: If the payload holds more than max_cells cells.
    """
    if isinstance(payload, dict) and 'data' in payload:
        payload = payload['data']
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise status.FormatException(f'Expected a list of rows, got {type(payload).__name__}.')

    bad_rows: List[int] = [i for i, row in enumerate(payload) if not isinstance(row, list)]
    if bad_rows:
        raise status.FormatException(f'Rows must be lists; rows {bad_rows[:5]} are not.')

    n_cells: int = sum(len(row) for row in payload)
    if n_cells > max_cells:
        raise status.SizeException(f'The snapshot has {n_cells} cells, the limit is {max_cells}.')
    if not payload:
        return []

    df: pd.DataFrame = pd.DataFrame(payload, dtype=object)
    df = df.map(_to_text)
    logging.debug(f'Normalized snapshot: {df.shape[0]} rows x {df.shape[1]} columns.')
    return df.values.tolist()


class RemoteGridStore:
    """
    Blocking client for the backend's task-file grid endpoints.

    Every call opens its own HTTP connection, so instances can be shared between worker threads.

    Args:
        base_url (str): Server root, e.g. "https://api.example.com".
        company_id (str): Tenant id sent with every request.
        token (str): Optional bearer token.
        timeout (int): Socket timeout in seconds.
        max_cells (int): Largest accepted snapshot.
    """

    def __init__(self, base_url: str, company_id: str = '', token: str = '',
                 timeout: int = TOTAL_TIMEOUT, max_cells: int = MAX_CELLS) -> None:
        if not base_url:
            raise status.RemoteNotConfiguredException
        self.base_url: str = base_url.rstrip('/')
        self.company_id: str = company_id
        self.token: str = token
        self.timeout: int = timeout
        self.max_cells: int = max_cells

    @classmethod
    def from_settings(cls) -> 'RemoteGridStore':
        """
        Creates a store from the "remote" settings section.
        """
        from ..settings import lib

        config: Dict[str, Any] = lib.settings.get_section('remote')
        return cls(
            config.get('base_url', ''),
            company_id=config.get('company_id', ''),
            token=config.get('token', ''),
            timeout=config.get('timeout', TOTAL_TIMEOUT),
            max_cells=config.get('max_cells', MAX_CELLS),
        )

    def url(self, document_id: str, action: str, **params: Any) -> str:
        """
        Builds the endpoint url for a document action, adding companyId to the query.
        """
        doc: str = urllib.parse.quote(str(document_id), safe='')
        query: Dict[str, Any] = {'companyId': self.company_id}
        query.update(params)
        return f'{self.base_url}{API_ROOT}/{doc}/{action}?{urllib.parse.urlencode(query)}'

    def _request(self, method: str, url: str) -> Any:
        """
        Performs one request and decodes the JSON response.

        Returns:
            The decoded JSON body, the raw text for non-JSON bodies, or None when empty.

        Raises:
            RequestRejectedException: On 4xx responses other than 408 and 429.
            NetworkException: On connection errors, timeouts and other non-2xx responses.
        """
        headers: Dict[str, str] = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'

        logging.debug(f'{method} {url}')
        http = httplib2.Http(timeout=self.timeout)
        try:
            response, content = http.request(url, method=method, headers=headers)
        except (socket.timeout, TimeoutError) as ex:
            raise status.NetworkException(f'Timeout after {self.timeout}s: {method} {url}') from ex
        except ssl.SSLError as ex:
            raise status.NetworkException(f'SSL error: {ex}') from ex
        except (httplib2.HttpLib2Error, OSError) as ex:
            raise status.NetworkException(f'Connection error: {ex}') from ex

        text: str = content.decode('utf-8', errors='replace') if content else ''
        body: Any = None
        if text:
            try:
                body = json.loads(text)
            except ValueError:
                body = text

        if response.status >= 400:
            message: Optional[str] = body.get('message') if isinstance(body, dict) else None
            message = message or f'HTTP {response.status} for {method} {url}'
            if response.status < 500 and response.status not in TRANSIENT_CLIENT_ERRORS:
                raise status.RequestRejectedException(message)
            raise status.NetworkException(message)
        return body

    def fetch_snapshot(self, document_id: str) -> List[List[str]]:
        """
        Fetches the current grid of a document.

        Returns:
            Rows of cell strings.
        """
        body = self._request('GET', self.url(document_id, 'preview'))
        if isinstance(body, str):
            raise status.FormatException('The preview response is not JSON.')
        return normalize_snapshot(body, max_cells=self.max_cells)

    def update_cell(self, document_id: str, row: int, col: int, value: str) -> Any:
        """
        Persists one cell value.
        """
        return self._request('PATCH', self.url(document_id, 'update-cell', row=row, col=col, newValue=value))

    def delete_column(self, document_id: str, col: int) -> Any:
        """
        Deletes one column on the server.
        """
        return self._request('DELETE', self.url(document_id, 'delete-column', colIndex=col))

    def add_row(self, document_id: str) -> Any:
        """
        Appends a blank row on the server.
        """
        return self._request('POST', self.url(document_id, 'add-row'))

    def add_column(self, document_id: str) -> Any:
        """
        Appends a blank column on the server.
        """
        return self._request('POST', self.url(document_id, 'add-column'))
