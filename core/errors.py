# core/errors.py
"""Classified error types shared by every layer of the storyteller core."""

from __future__ import annotations

from enum import Enum

import httpx

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"


class ErrorKind(str, Enum):
    """Failure classes a story request can end in."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    INVALID_RESPONSE = "invalid_response"
    CONFIGURATION = "configuration"
    INVALID_INPUT = "invalid_input"
    UNKNOWN = "unknown"


def _default_retryable(kind: ErrorKind, status_code: int | None) -> bool:
    if kind is ErrorKind.TIMEOUT:
        return True
    if kind is ErrorKind.NETWORK:
        return status_code is None or status_code >= 500 or status_code == 429
    return False


class StoryError(Exception):
    """An error carrying its classification.

    ``kind`` says what went wrong, ``retryable`` whether repeating the same
    request could plausibly succeed. ``status_code`` is set for HTTP
    failures and ``code`` holds a short machine-readable tag such as
    ``"offline"`` or ``"busy"``.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        retryable: bool | None = None,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.code = code
        self.retryable = (
            _default_retryable(kind, status_code) if retryable is None else retryable
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, "
            f"retryable={self.retryable}, status_code={self.status_code}, code={self.code!r})"
        )


class ParseError(StoryError):
    """Raised when the model output does not have the expected shape."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.INVALID_RESPONSE, message, retryable=False)


def classify_error(exc: BaseException) -> StoryError:
    """Convert any exception into a :class:`StoryError`."""
    if isinstance(exc, StoryError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return StoryError(ErrorKind.TIMEOUT, "Request timed out")
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return StoryError(
            ErrorKind.NETWORK, f"HTTP error! status: {status}", status_code=status
        )
    if isinstance(exc, httpx.RequestError):
        return StoryError(ErrorKind.NETWORK, str(exc) or "Network request failed")
    message = str(exc) if isinstance(exc, Exception) else ""
    return StoryError(ErrorKind.UNKNOWN, message or UNKNOWN_ERROR_MESSAGE)
