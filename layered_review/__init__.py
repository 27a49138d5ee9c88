from __future__ import annotations

from layered_review.models import ParsedDiff, ReviewComment, Severity
from layered_review.parsing import DiffParser, parse_diff
from layered_review.pipeline import ReviewPipeline
from layered_review.services import ReviewService

__version__ = "1.0.0"

__all__ = [
    "DiffParser",
    "ParsedDiff",
    "ReviewComment",
    "ReviewPipeline",
    "ReviewService",
    "Severity",
    "parse_diff",
]
