"""Exception hierarchy for srcomapi.

All exceptions inherit from :class:`SrcomError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`srcomapi.exit_codes`.
The fetch pipeline only ever retries :class:`TransientError`; everything
else is surfaced to the caller on the first occurrence.

Subclass hierarchy::

    SrcomError (exit 1)
    +-- ConfigError               (exit 2)
    +-- ClientError               (exit 7)
    |   +-- AuthError             (exit 3)
    |   +-- NotFoundError         (exit 4)
    |   +-- MalformedResponseError
    +-- TransientError            (exit 5)
    |   +-- ServerError           (exit 5)
    |   +-- ConnectionError_      (exit 6)
    +-- ProtocolError             (exit 8)
    |   +-- PaginationError
    |   +-- CacheFileError
    +-- UnverifiedRunError        (exit 1)
    +-- MissingLinkError          (exit 8)
"""

from __future__ import annotations

from srcomapi.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CLIENT_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PROTOCOL_ERROR,
    EXIT_SERVER_ERROR,
)


class SrcomError(Exception):
    """Base exception for all srcomapi errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(SrcomError):
    """Raised for invalid configuration, detected before any request is sent.

    Covers out-of-range page sizes, header values that cannot be sent
    (API key or user agent), a retry budget below one and invalid cache
    timeout ranges.
    """

    exit_code = EXIT_INVALID_USAGE


class ClientError(SrcomError):
    """Raised when the API rejects a request (HTTP 4xx). Never retried."""

    exit_code = EXIT_CLIENT_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(ClientError):
    """Raised on HTTP 401/403, or when an endpoint needs an API key the handle lacks."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(ClientError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class MalformedResponseError(ClientError):
    """Raised when a response body is not JSON or does not have the expected shape."""


class TransientError(SrcomError):
    """Base class for failures worth another attempt (5xx and transport errors)."""

    exit_code = EXIT_SERVER_ERROR


class ServerError(TransientError):
    """Raised when the API returns an HTTP 5xx server error."""

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConnectionError_(TransientError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ProtocolError(SrcomError):
    """Raised when upstream data breaks an integrity contract. Never retried."""

    exit_code = EXIT_PROTOCOL_ERROR


class PaginationError(ProtocolError):
    """Raised when a page's ``pagination.size`` disagrees with the items it carries."""


class CacheFileError(ProtocolError):
    """Raised when a disk cache file cannot be read as a cache."""


class UnverifiedRunError(SrcomError):
    """Raised when asking for the examiner of a run that is neither verified nor rejected."""


class MissingLinkError(SrcomError):
    """Raised when a resource lacks a link it is expected to carry (e.g. ``game``)."""

    exit_code = EXIT_PROTOCOL_ERROR
