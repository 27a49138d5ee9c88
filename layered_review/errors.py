from __future__ import annotations

from typing import Optional

_RETRYABLE_CODES = {"RATE_LIMIT", "TIMEOUT", "NETWORK"}


class ReviewError(RuntimeError):
    """Base class for expected, operational failures."""

    default_code = "UNKNOWN"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.status_code = status_code
        self.cause = cause

    @property
    def retryable(self) -> bool:
        if self.code in _RETRYABLE_CODES:
            return True
        return self.status_code is not None and self.status_code >= 500


class ConfigurationError(ReviewError):
    """Raised when a required collaborator or setting is missing."""

    default_code = "CONFIGURATION"

    @property
    def retryable(self) -> bool:
        return False


class DiffFetchError(ReviewError):
    """Raised when the diff for a change cannot be retrieved."""


class NotifierError(ReviewError):
    """Raised when review comments cannot be posted back."""


def code_for_status(status_code: int) -> str:
    if status_code in (401, 403):
        return "UNAUTHORIZED"
    if status_code == 404:
        return "NOT_FOUND"
    if status_code == 429:
        return "RATE_LIMIT"
    return "HTTP"
