from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import List, Optional

from layered_review.layers.base import ReviewLayer
from layered_review.models import FileDiff, Hunk, ParsedDiff, ReviewComment, Severity

logger = logging.getLogger(__name__)

# function declarations (optionally exported/async) and arrow functions bound to a name
FUNCTION_START_RE = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?"
    r"(?:function\b|(?:const|let|var)\s+\w+\s*=\s*(?:async\s+)?(?:\([^)]*\)|\w+)\s*=>)"
)
LEADING_WHITESPACE_RE = re.compile(r"^[ \t]*")


@dataclass(frozen=True, slots=True)
class HeuristicThresholds:
    max_function_lines: int = 50
    max_file_churn: int = 300
    max_nesting_depth: int = 4
    max_total_additions: int = 500


def indentation_depth(content: str) -> int:
    """Tabs count one level each; every two leading spaces count one level."""
    leading = LEADING_WHITESPACE_RE.match(content).group(0)  # type: ignore[union-attr]
    tabs = leading.count("\t")
    return tabs + (len(leading) - tabs) // 2


class HeuristicLayer(ReviewLayer):
    """Structural checks on the size and shape of a change rather than its text."""

    name = "heuristic"

    def __init__(self, thresholds: Optional[HeuristicThresholds] = None, **overrides: int) -> None:
        base = thresholds or HeuristicThresholds()
        self.thresholds = replace(base, **overrides) if overrides else base

    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        try:
            return self.check(diff)
        except Exception as exc:
            logger.warning(f"Heuristic layer failed: {exc}", exc_info=exc)
            return []

    def check(self, diff: ParsedDiff) -> List[ReviewComment]:
        comments: List[ReviewComment] = []
        for file_diff in diff.files:
            comments.extend(self._check_file_churn(file_diff))
            comments.extend(self._check_long_functions(file_diff))
            comments.extend(self._check_deep_nesting(file_diff))
        comments.extend(self._check_large_change(diff))
        return comments

    def _comment(self, filename: str, line: int, body: str, severity: Severity) -> ReviewComment:
        return ReviewComment(filename=filename, line=line, body=body, severity=severity, source=self.name)

    def _check_file_churn(self, file_diff: FileDiff) -> List[ReviewComment]:
        churn = file_diff.churn
        if churn <= self.thresholds.max_file_churn:
            return []
        return [
            self._comment(
                file_diff.filename,
                1,
                f"High file churn ({churn} changed lines); consider splitting this into smaller changes.",
                Severity.WARNING,
            )
        ]

    def _check_long_functions(self, file_diff: FileDiff) -> List[ReviewComment]:
        comments = []
        for hunk in file_diff.hunks:
            comments.extend(self._long_functions_in_hunk(file_diff.filename, hunk))
        return comments

    def _long_functions_in_hunk(self, filename: str, hunk: Hunk) -> List[ReviewComment]:
        comments = []
        limit = self.thresholds.max_function_lines
        in_function = False
        start_line = 0
        line_count = 0
        depth = 0

        for line in hunk.lines:
            if not line.is_added:
                continue

            if not in_function and FUNCTION_START_RE.match(line.content):
                in_function = True
                start_line = line.new_line_number or 0
                line_count = 0
                depth = 0

            if not in_function:
                continue

            line_count += 1
            depth += line.content.count("{") - line.content.count("}")
            if depth <= 0 and line_count > 1:
                if line_count > limit:
                    comments.append(
                        self._comment(
                            filename,
                            start_line,
                            f"Function is {line_count} lines long (limit: {limit}); consider extracting smaller functions.",
                            Severity.WARNING,
                        )
                    )
                in_function = False

        return comments

    def _check_deep_nesting(self, file_diff: FileDiff) -> List[ReviewComment]:
        comments = []
        limit = self.thresholds.max_nesting_depth
        for _, line in file_diff.added_lines():
            if not line.content.strip():
                continue
            depth = indentation_depth(line.content)
            if depth > limit:
                comments.append(
                    self._comment(
                        file_diff.filename,
                        line.new_line_number or 0,
                        f"Deeply nested code (depth {depth}); consider early returns or extracting helpers.",
                        Severity.INFO,
                    )
                )
        return comments

    def _check_large_change(self, diff: ParsedDiff) -> List[ReviewComment]:
        total = diff.total_additions
        if total <= self.thresholds.max_total_additions:
            return []
        first_file = diff.files[0].filename if diff.files else "unknown"
        return [
            self._comment(
                first_file,
                1,
                f"Large change: {total} additions across {len(diff.files)} file(s); "
                "consider breaking it into smaller pull requests.",
                Severity.WARNING,
            )
        ]
