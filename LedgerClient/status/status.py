"""Status definitions and exceptions for LedgerClient.

This module provides:
    - Status: enumeration of possible application states
    - STATUS_MESSAGE: user-facing messages for each status
    - get_message: retrieve the message for a status
    - BaseStatusException: base exception carrying a Status
    - Specific exceptions (e.g., RequestFailedException) raised by the api client and loaders
"""
import enum
import logging
from typing import Dict, Optional


class Status(enum.StrEnum):
    """Enumeration of application status codes."""
    UnknownStatus = enum.auto()
    Okay = enum.auto()

    # Config status
    ClientConfigNotFound = enum.auto()
    ClientConfigInvalid = enum.auto()

    # Authentication status
    NotAuthenticated = enum.auto()
    LoginFailed = enum.auto()

    # Remote service status
    RequestFailed = enum.auto()
    ApplicationError = enum.auto()
    ServiceUnavailable = enum.auto()

    # Local input status
    ValidationFailed = enum.auto()


STATUS_MESSAGE: Dict[Status, str] = {
    Status.UnknownStatus: 'Unknown status. Please check the settings.',
    Status.Okay: 'Everything is okay.',

    Status.ClientConfigNotFound: 'Could not find the client config.',
    Status.ClientConfigInvalid: 'The client config seems to be incomplete, or contains invalid values.',

    Status.NotAuthenticated: 'You are not signed in. Please sign in again.',
    Status.LoginFailed: 'Login failed.',

    Status.RequestFailed: 'Request failed.',
    Status.ApplicationError: 'The server rejected the request.',
    Status.ServiceUnavailable: 'The ledger service is unavailable. Please check your connection and the server address.',

    Status.ValidationFailed: 'Please check the entered values.',
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
    """Base exception for status-based errors in LedgerClient.

    Attributes:
        status (Status): Status code associated with this error.
        status_message (str): User-facing message for the status.
        message (str): The additional context passed in, if any.

    Args:
        message (str): Optional additional context for the error.
    """
    status = Status.UnknownStatus

    def __init__(self, message: str = None):
        self.status_message = get_message(self.status)
        self.message = message
        exception_message = f'{self.status_message} {message}' if message else self.status_message
        super().__init__(exception_message)

        logging.error(exception_message)

        from ..ui.actions import signals
        signals.error.emit(message or self.status_message)


class UnknownException(BaseStatusException):
    """Exception for an unknown error during status processing."""
    pass


class ClientConfigNotFoundException(BaseStatusException):
    """Exception raised when the client configuration file cannot be found."""
    status = Status.ClientConfigNotFound


class ClientConfigInvalidException(BaseStatusException):
    """Exception raised when the client configuration is invalid or malformed."""
    status = Status.ClientConfigInvalid


class NotAuthenticatedException(BaseStatusException):
    """Exception raised when an operation requires a session but none is stored."""
    status = Status.NotAuthenticated


class LoginFailedException(BaseStatusException):
    """Exception raised when the server does not hand out an access token."""
    status = Status.LoginFailed


class RequestFailedException(BaseStatusException):
    """Exception raised for a non-success HTTP status or an unreadable response body.

    Attributes:
        status_code (int): The HTTP status of the response.
        body (str): Best-effort response text, empty when unavailable.
    """
    status = Status.RequestFailed

    def __init__(self, status_code: int, body: str = '', context: Optional[str] = None):
        self.status_code = status_code
        self.body = body or ''

        message = f'HTTP {status_code}'
        if context:
            message = f'{context} failed: {message}'
        if self.body:
            message = f'{message} {self.body}'
        super().__init__(message)


class ApplicationErrorException(BaseStatusException):
    """Exception raised when the response envelope reports ``success: false``.

    The server message is kept verbatim in :attr:`server_message`.
    """
    status = Status.ApplicationError

    def __init__(self, server_message: Optional[str] = None):
        self.server_message = server_message or 'Request failed'
        super().__init__(self.server_message)


class ServiceUnavailableException(BaseStatusException):
    """Exception raised when the ledger service cannot be reached at all."""
    status = Status.ServiceUnavailable


class ValidationException(BaseStatusException):
    """Exception raised for invalid local input, before any request is sent."""
    status = Status.ValidationFailed
