"""Numeric process exit codes used by the ``srcomapi`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~srcomapi.exceptions.SrcomError` subclass.  Shell
scripts wrapping the CLI can inspect the exit code to determine the failure
class without parsing stderr.

Example::

    $ srcomapi game does-not-exist
    $ echo $?
    4   # EXIT_NOT_FOUND -- the API returned HTTP 404
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command or client was configured with invalid values."""

EXIT_AUTH_FAILURE = 3
"""The API key was missing or rejected."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The API returned an HTTP 5xx server error after all attempts."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CLIENT_ERROR = 7
"""The API rejected the request (other 4xx) or returned an unusable body."""

EXIT_PROTOCOL_ERROR = 8
"""The API or the on-disk cache broke a data-integrity contract."""
