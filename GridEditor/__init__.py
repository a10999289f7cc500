"""
GridEditor: spreadsheet grid editor for uploaded task files.

This package provides:

- :mod:`GridEditor.core` – The grid document, undo stack, column selection, cell classifier,
  the REST client of the backend and the :class:`GridEditor.core.session.EditSession`.
- :mod:`GridEditor.data` – The Qt table model presenting an edit session to item views.
- :mod:`GridEditor.settings` – Settings management with schema validation.
- :mod:`GridEditor.status` – Status codes and the exceptions raised by the editor.
- :mod:`GridEditor.log` – In-app logging.

Use :func:`GridEditor.open_session` to start editing a document.
"""

import sys

# Fail on Python < 3.11
if not (sys.version_info.major == 3 and sys.version_info.minor >= 11):
    raise RuntimeError('GridEditor requires Python 3.11 or higher.')

__version__ = '0.1.0'
__author__ = 'Gergely Wootsch'
__license__ = 'GPL-3.0'
__copyright__ = 'Copyright (C) 2025 Gergely Wootsch'
__description__ = 'GridEditor: spreadsheet grid editor with optimistic updates and background sync.'
__url__ = 'https://github.com/wgergely/GridEditor'
__email__ = 'hello+GridEditor@gergely-wootsch.com'

from .log import log

log.setup_logging()


def open_session(document_id: str, parent=None):
    """Create an edit session for a document using the configured server and start loading it.

    Args:
        document_id (str): Id of the task file to edit.
        parent (QtCore.QObject, optional): Qt parent of the session.

    Returns:
        EditSession: The session. Its document is filled when the ``loaded`` signal fires.

    Raises:
        RemoteNotConfiguredException: If no server address is configured.
    """
    from .core.service import RemoteGridStore
    from .core.session import EditSession

    session = EditSession(RemoteGridStore.from_settings(), document_id, parent=parent)
    session.load()
    return session
