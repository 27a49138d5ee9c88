"""Bounded textual rendering of a parsed diff for the AI review prompt.

Files that rarely benefit from review (tests, lockfiles, generated output) are
left out, the remaining files are ordered so that the riskiest ones come first,
and every added line is shown with a small window of surrounding lines.
"""

from __future__ import annotations

import re
from typing import List, Sequence, Set

from layered_review.models import FileDiff, FileStatus, Hunk, LineType, ParsedDiff

DEFAULT_CONTEXT_LINES = 3
DEFAULT_MAX_LINES = 400

EXCLUDED_PATH_PATTERNS: Sequence[re.Pattern] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        # tests
        r"(^|/)(__tests__|tests?|spec)/",
        r"\.(test|spec)\.[^/]+$",
        r"(^|/)test_[^/]+\.py$",
        r"_test\.(py|go)$",
        # lockfiles
        r"(^|/)(package-lock\.json|npm-shrinkwrap\.json|yarn\.lock|pnpm-lock\.yaml|bun\.lockb?|"
        r"poetry\.lock|Pipfile\.lock|uv\.lock|Cargo\.lock|Gemfile\.lock|composer\.lock|go\.sum)$",
        r"\.lock$",
        # minified, bundled and generated output
        r"\.min\.(js|css)$",
        r"\.bundle\.js$",
        r"\.map$",
        r"(^|/)[^/]*\.generated\.[^/]+$",
        r"_pb2(_grpc)?\.py$",
        r"\.pb\.go$",
        # build directories
        r"(^|/)(dist|build|out|target|coverage|node_modules|vendor|\.next|\.nuxt)/",
        # type declarations
        r"\.d\.ts$",
        # snapshots
        r"(^|/)__snapshots__/",
        r"\.snap$",
    )
)

# Ordered from highest to lowest review priority; the first matching tier wins.
PRIORITY_TIERS: Sequence[re.Pattern] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"(auth|security|secur|payment|billing|checkout|crypto|password|token|session|permission|oauth|jwt)",
        r"(api|service|controller|route|handler|endpoint|middleware|resolver)",
        r"(model|schema|entity|migration|repository|dto)",
        r"(util|helper|config|setting|constant|lib/)",
    )
)
TEST_LIKE_RE = re.compile(r"(^|[/_.-])(tests?|specs?|mocks?|fixtures?|stubs?|fakes?)([/_.-]|$)", re.IGNORECASE)
GENERIC_TIER = len(PRIORITY_TIERS)
TEST_LIKE_TIER = GENERIC_TIER + 1

_PREFIXES = {LineType.ADDED: "+", LineType.REMOVED: "-", LineType.CONTEXT: " "}


def is_excluded(path: str) -> bool:
    return any(pattern.search(path) for pattern in EXCLUDED_PATH_PATTERNS)


def file_priority(path: str) -> int:
    """Lower values are reviewed first."""
    if TEST_LIKE_RE.search(path):
        return TEST_LIKE_TIER
    for tier, pattern in enumerate(PRIORITY_TIERS):
        if pattern.search(path):
            return tier
    return GENERIC_TIER


def reviewable_files(diff: ParsedDiff) -> List[FileDiff]:
    candidates = [
        f for f in diff.files
        if f.status != FileStatus.DELETED and f.additions > 0 and not is_excluded(f.filename)
    ]
    return sorted(candidates, key=lambda f: file_priority(f.filename))


def _render_hunk(hunk: Hunk, context_lines: int) -> List[str]:
    added = [i for i, line in enumerate(hunk.lines) if line.is_added]
    if not added:
        return []

    selected: Set[int] = set()
    for i in added:
        selected.update(range(max(0, i - context_lines), min(len(hunk.lines), i + context_lines + 1)))

    rendered: List[str] = []
    previous = None
    for i in sorted(selected):
        if previous is not None and i != previous + 1:
            rendered.append("...")
        line = hunk.lines[i]
        number = line.new_line_number if line.new_line_number is not None else ""
        rendered.append(f"{_PREFIXES[line.type]}{number:>5} | {line.content}")
        previous = i
    return rendered


def build_diff_summary(
    diff: ParsedDiff,
    *,
    context_lines: int = DEFAULT_CONTEXT_LINES,
    max_lines: int = DEFAULT_MAX_LINES,
) -> str:
    """
    Render the reviewable part of ``diff`` as prompt text.

    Args:
        diff: Parsed diff to summarise.
        context_lines: Number of hunk lines shown before and after each added line.
        max_lines: Maximum number of summary lines before truncation.

    Returns:
        The summary, or an empty string when nothing is worth reviewing.
    """
    lines: List[str] = []
    omitted = 0

    for file_diff in reviewable_files(diff):
        section = [f"--- File: {file_diff.filename} ({file_diff.status.value}) ---"]
        for hunk in file_diff.hunks:
            body = _render_hunk(hunk, context_lines)
            if body:
                section.append(hunk.header)
                section.extend(body)

        if omitted or len(lines) >= max_lines:
            omitted += len(section)
            continue

        room = max_lines - len(lines)
        lines.extend(section[:room])
        omitted += max(0, len(section) - room)
        lines.append("")

    while lines and not lines[-1]:
        lines.pop()

    if omitted:
        lines.append(f"[diff truncated: {omitted} more line(s) omitted to stay within {max_lines} lines]")

    return "\n".join(lines)
