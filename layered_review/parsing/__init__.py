from __future__ import annotations

from layered_review.parsing.diff_parser import DiffParser, parse_diff

__all__ = ["DiffParser", "parse_diff"]
