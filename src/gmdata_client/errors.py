# GM Data Client
# File: errors.py
# Version: v2

"""Exception types raised by the GM Data client.

Every failure surfaces as a GmDataError subclass so callers can catch one
type regardless of which operation failed.
"""

from __future__ import annotations

from typing import Optional


class GmDataError(RuntimeError):
    """Base class for all GM Data client failures."""


class GmDataTransportError(GmDataError):
    """Raised when a request could not be completed at the transport level."""

    def __init__(self, uri: str, message: str) -> None:
        super().__init__(f"Error calling GM Data at '{uri}': {message}")
        self.uri = uri


class GmDataResponseError(GmDataError):
    """Raised for any non-2xx response; carries URI, status and raw body."""

    def __init__(self, uri: str, status_code: int, body: str) -> None:
        super().__init__(
            f"There was an error response from {uri} "
            f"with response code {status_code}: {body}"
        )
        self.uri = uri
        self.status_code = status_code
        self.body = body


class GmDataDecodeError(GmDataError):
    """Raised when a 2xx body does not match the expected shape."""

    def __init__(self, body: str, cause: object) -> None:
        super().__init__(f"There was a problem decoding {body}: {cause}")
        self.body = body
        self.cause = cause


class InvalidUrlError(GmDataError, ValueError):
    """Raised when a URL cannot be composed; no request is sent."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url} is an invalid URL: {reason}")
        self.url = url
        self.reason = reason


class MissingFieldError(GmDataError):
    """Raised when /self does not carry the requested field."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"/self did not return a value for {field_name}")
        self.field_name = field_name


class RecoverableError(GmDataError):
    """A failure converted into an ordinary return value, with context."""

    def __init__(self, context: str, cause: Optional[BaseException] = None) -> None:
        message = context if cause is None else f"{context}: {cause}"
        super().__init__(message)
        self.context = context
        self.cause = cause
