"""Application-wide Qt signals and utility slots for GridEditor.

This module provides:
    - place_call slot: hands a phone number found in a cell to the platform dialer.
    - Signals: custom Qt signals for configuration changes, errors, log display,
      and external cell actions.
"""
import logging

from PySide6 import QtCore


@QtCore.Slot(str)
def place_call(number: str) -> None:
    """
    Opens the platform dialer for the given phone number.
    """
    from PySide6 import QtGui

    url: str = f'tel:{number}'
    logging.debug(f'Opening dialer: {url}')
    if not QtGui.QDesktopServices.openUrl(QtCore.QUrl(url)):
        logging.warning(f'No handler accepted "{url}".')


class Signals(QtCore.QObject):
    """Centralized Qt signals for config, errors, and external cell actions."""
    configSectionChanged = QtCore.Signal(str)

    callRequested = QtCore.Signal(str)

    showLogs = QtCore.Signal()

    error = QtCore.Signal(str)

    def __init__(self):
        super().__init__()
        self._connect_signals()

    def _connect_signals(self):
        self.callRequested.connect(place_call)


signals = Signals()
