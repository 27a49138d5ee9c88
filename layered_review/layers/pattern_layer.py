from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from layered_review.layers.base import ReviewLayer
from layered_review.models import FileDiff, ParsedDiff, ReviewComment, Severity

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PatternRule:
    """A regex checked against every added line."""

    id: str
    pattern: re.Pattern
    message: str
    severity: Severity = Severity.WARNING

    @classmethod
    def compile(cls, id: str, pattern: str, message: str, severity: Severity, flags: int = 0) -> "PatternRule":
        return cls(id=id, pattern=re.compile(pattern, flags), message=message, severity=severity)


DEFAULT_RULES: Tuple[PatternRule, ...] = (
    PatternRule.compile(
        "no-console-log",
        r"\bconsole\.(log|debug|info)\s*\(",
        "`console.log/debug/info` detected; remove before merging.",
        Severity.WARNING,
    ),
    PatternRule.compile(
        "no-todo-fixme",
        r"\b(TODO|FIXME|HACK|XXX)\b",
        "Unresolved TODO/FIXME/HACK/XXX comment detected.",
        Severity.INFO,
    ),
    PatternRule.compile(
        "no-hardcoded-secrets",
        r"(?:password|passwd|api_key|apikey|secret|token|auth)\s*[:=]\s*['\"][^'\"]{4,}",
        "Possible hardcoded secret; use environment variables or a secret manager instead.",
        Severity.ERROR,
        re.IGNORECASE,
    ),
    PatternRule.compile(
        "no-debugger",
        r"\bdebugger\b",
        "`debugger` statement detected; remove before merging.",
        Severity.ERROR,
    ),
    PatternRule.compile(
        "no-alert",
        r"\balert\s*\(",
        "`alert()` detected; remove it or replace it with proper UI feedback.",
        Severity.WARNING,
    ),
)


class PatternLayer(ReviewLayer):
    """Matches every added line against an ordered list of regex rules."""

    name = "pattern"

    def __init__(self, rules: Optional[Sequence[PatternRule]] = None) -> None:
        self._rules: Tuple[PatternRule, ...] = tuple(rules) if rules is not None else DEFAULT_RULES

    @property
    def rules(self) -> Tuple[PatternRule, ...]:
        return self._rules

    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        try:
            return self.scan(diff)
        except Exception as exc:
            logger.warning(f"Pattern layer failed: {exc}", exc_info=exc)
            return []

    def scan(self, diff: ParsedDiff) -> List[ReviewComment]:
        comments: List[ReviewComment] = []
        for file_diff in diff.files:
            comments.extend(self._scan_file(file_diff))
        logger.debug(f"Pattern layer produced {len(comments)} comment(s) with {len(self._rules)} rule(s)")
        return comments

    def _scan_file(self, file_diff: FileDiff) -> List[ReviewComment]:
        comments = []
        for _, line in file_diff.added_lines():
            for rule in self._rules:
                if rule.pattern.search(line.content):
                    comments.append(
                        ReviewComment(
                            filename=file_diff.filename,
                            line=line.new_line_number or 0,
                            body=f"[{rule.id}] {rule.message}",
                            severity=rule.severity,
                            source=self.name,
                        )
                    )
        return comments
