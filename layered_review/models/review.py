from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    """Severity level for review comments."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        """Higher is more severe."""
        return _RANKS[self]

    @classmethod
    def parse(cls, value: object) -> "Severity":
        """Map arbitrary input to a severity, falling back to INFO."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.INFO


_RANKS = {Severity.INFO: 0, Severity.WARNING: 1, Severity.ERROR: 2}


@dataclass(frozen=True, slots=True)
class ReviewComment:
    """A finding located at one line of the new revision of a file."""

    filename: str
    line: int
    body: str
    severity: Severity = Severity.INFO
    source: str = ""

    @property
    def location(self) -> tuple[str, int]:
        return (self.filename, self.line)


@dataclass(frozen=True, slots=True)
class ChangeContext:
    """Identifies a pull request (or a revision range of one) on a hosting platform."""

    owner: str
    repo: str
    number: int
    head_sha: str
    previous_sha: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    base_ref: Optional[str] = None
    head_ref: Optional[str] = None

    @property
    def is_incremental(self) -> bool:
        return bool(self.previous_sha)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"
