from __future__ import annotations

from layered_review.models.diff import (
    DiffLine,
    FileDiff,
    FileStatus,
    Hunk,
    LineType,
    ParsedDiff,
)
from layered_review.models.review import ChangeContext, ReviewComment, Severity

__all__ = [
    "ChangeContext",
    "DiffLine",
    "FileDiff",
    "FileStatus",
    "Hunk",
    "LineType",
    "ParsedDiff",
    "ReviewComment",
    "Severity",
]
