"""Status definitions and exceptions for GridEditor.

This module provides:
    - Status: enumeration of possible editor states
    - STATUS_MESSAGE: user-facing messages for each status
    - get_message: retrieve the message for a status
    - BaseStatusException: base exception carrying a Status
    - Specific exceptions (e.g., NetworkException) for error handling in the session and services
"""
import enum
import logging
from typing import Dict


class Status(enum.StrEnum):
    """Enumeration of editor status codes."""
    UnknownStatus = enum.auto()
    Okay = enum.auto()

    # Config status
    ConfigNotFound = enum.auto()
    ConfigInvalid = enum.auto()
    RemoteNotConfigured = enum.auto()

    # Editing status
    ValidationFailed = enum.auto()
    EditConflict = enum.auto()

    # Remote status
    NetworkUnavailable = enum.auto()
    RequestRejected = enum.auto()

    # Snapshot ingestion status
    SnapshotTooLarge = enum.auto()
    SnapshotInvalid = enum.auto()


STATUS_MESSAGE: Dict[Status, str] = {
    Status.UnknownStatus: 'Unknown status. Please check the settings.',
    Status.Okay: 'Everything is okay.',

    Status.ConfigNotFound: 'Could not find the editor config.',
    Status.ConfigInvalid: 'The editor config seems to be incomplete, or contains invalid values.',
    Status.RemoteNotConfigured: 'The server address is not configured. Have you set a base url in the settings?',

    Status.ValidationFailed: 'The requested edit is not valid.',
    Status.EditConflict: 'The edit conflicts with work that is still in progress.',

    Status.NetworkUnavailable: 'Could not reach the server. Please check your connection.',
    Status.RequestRejected: 'The server rejected the request.',

    Status.SnapshotTooLarge: 'The file is too large to edit here.',
    Status.SnapshotInvalid: 'The server returned data that could not be read as a grid.',
}


def get_message(status: Status) -> str:
    """
    Get the message for a given status.

    Args:
        status (Status): The status enum.

    Returns:
        str: The message associated with the status.
    """
    return STATUS_MESSAGE.get(status, 'Unknown status')


class BaseStatusException(Exception):
    """Base exception for status-based errors in GridEditor.

    Attributes:
        status (Status): Status code associated with this error.
        status_message (str): User-facing message for the status.
        detail (str): The additional context passed in, if any.

    Args:
        message (str): Optional additional context for the error.
    """
    status = Status.UnknownStatus

    def __init__(self, message: str = None):
        self.status_message = get_message(self.status)
        self.detail = message or ''
        exception_message = f'{self.status_message} {message}' if message else self.status_message
        super().__init__(exception_message)

        logging.error(exception_message)

        from ..ui.actions import signals
        signals.error.emit(message or self.status_message)


class UnknownException(BaseStatusException):
    """Exception for an unknown error during status processing."""
    pass


class ConfigNotFoundException(BaseStatusException):
    """Exception raised when the editor configuration file cannot be found."""
    status = Status.ConfigNotFound


class ConfigInvalidException(BaseStatusException):
    """Exception raised when the editor configuration is invalid or malformed."""
    status = Status.ConfigInvalid


class RemoteNotConfiguredException(BaseStatusException):
    """Exception raised when the remote base url is missing from the settings."""
    status = Status.RemoteNotConfigured


class ValidationException(BaseStatusException):
    """Exception raised when an edit request is invalid, e.g. deleting with an empty selection."""
    status = Status.ValidationFailed


class ConflictException(BaseStatusException):
    """Exception raised when an edit would race against an unfinished remote operation."""
    status = Status.EditConflict


class NetworkException(BaseStatusException):
    """Exception raised when a remote call fails or times out."""
    status = Status.NetworkUnavailable


class RequestRejectedException(NetworkException):
    """Exception raised when the server refuses a request with a 4xx response. Never retried."""
    status = Status.RequestRejected


class SizeException(BaseStatusException):
    """Exception raised when a snapshot exceeds the configured cell limit."""
    status = Status.SnapshotTooLarge


class FormatException(BaseStatusException):
    """Exception raised when a snapshot payload is not a list of rows."""
    status = Status.SnapshotInvalid
