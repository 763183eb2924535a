from __future__ import annotations


# PUBLIC_INTERFACE
class APIError(Exception):
    """
    Base class for request-scoped errors.

    Each subclass carries the HTTP status and the message the exception
    handlers in main.py put into the {"error": ...} envelope.
    """

    status_code: int = 500
    message: str = "the server encountered a problem and could not process your request"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


class InvalidIdentifier(APIError):
    """Raised when the id path parameter is not a positive 64-bit integer."""

    status_code = 404
    message = "the requested resource could not be found"


class MovieNotFound(APIError):
    status_code = 404
    message = "the requested resource could not be found"


class EditConflict(APIError):
    """Raised when an update races with another one on the same movie."""

    status_code = 409
    message = "unable to update the record due to an edit conflict, please try again"


class SerializationFailure(APIError):
    """Raised by write_json when the payload cannot be encoded as JSON."""


# PUBLIC_INTERFACE
class MalformedDuration(ValueError):
    """Raised when a runtime value is not of the form '<integer> mins'."""


# PUBLIC_INTERFACE
class StartupError(Exception):
    """
    Base class for errors that abort process startup.

    These never reach an HTTP client; __main__ logs them and exits non-zero.
    """


class ConnectionStringInvalid(StartupError):
    pass


class InvalidIdleDuration(StartupError):
    pass


class InvalidPoolLimits(StartupError):
    pass


class DatabaseUnreachable(StartupError):
    pass
