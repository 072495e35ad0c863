"""
Exception hierarchy for the restock alerts service.

Every failure the subscription layer can observe maps to one of these:
- ValidationError: required user input is missing, no network call was made
- TransportError: an outbound call never produced a response
- RemoteRejection: the upstream answered with a non-success status
- FetchError: a catalog view could not be fetched or parsed
- StorageError / StorageCorruption: durable state could not be written or read

Errors are raised where they are detected and turned into user-visible
notices (or HTTP responses) by the controller and the API routes.
"""

from typing import Optional


class RestockError(Exception):
    """Base exception for all restock alerts errors."""


class ValidationError(RestockError):
    """Required user input is missing or empty."""


class TransportError(RestockError):
    """The outbound call did not complete (connection failure or timeout)."""

    def __init__(self, message: str, *, endpoint: str = ""):
        self.endpoint = endpoint
        super().__init__(message)


class RemoteRejection(RestockError):
    """
    The upstream service responded with a non-success status.

    The upstream response body is kept verbatim in ``detail`` so it can be
    shown to the user or relayed by the gateway unchanged.
    """

    def __init__(self, detail: str, *, status_code: int, endpoint: str = ""):
        self.detail = detail
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(detail)


class FetchError(RestockError):
    """A catalog view could not be fetched or its body was not a product mapping."""

    def __init__(self, message: str, *, endpoint: str = ""):
        self.endpoint = endpoint
        super().__init__(message)


class StorageError(RestockError):
    """Durable storage could not be written."""


class StorageCorruption(StorageError):
    """Durable storage held data that could not be decoded."""

    def __init__(self, message: str, *, key: Optional[str] = None):
        self.key = key
        super().__init__(message)
