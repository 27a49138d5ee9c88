from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterator, Optional, Tuple


class LineType(str, Enum):
    """Classification of a line inside a hunk."""
    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


class FileStatus(str, Enum):
    """How a file changed between the two revisions."""
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


_PREFIXES = {LineType.ADDED: "+", LineType.REMOVED: "-", LineType.CONTEXT: " "}


@dataclass(frozen=True, slots=True)
class DiffLine:
    """A single added, removed or context line, without its leading sigil."""

    type: LineType
    content: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None

    @property
    def is_added(self) -> bool:
        return self.type == LineType.ADDED

    def render(self) -> str:
        return _PREFIXES[self.type] + self.content


@dataclass(frozen=True, slots=True)
class Hunk:
    """Contiguous block of a diff covering one old/new line range."""

    header: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: Tuple[DiffLine, ...] = ()

    def render(self) -> str:
        return "\n".join([self.header, *(line.render() for line in self.lines)])


@dataclass(frozen=True, slots=True)
class FileDiff:
    """All hunks touching one file, plus its reconstructed patch text."""

    filename: str
    status: FileStatus = FileStatus.MODIFIED
    old_filename: Optional[str] = None
    hunks: Tuple[Hunk, ...] = ()
    patch: str = ""

    @property
    def additions(self) -> int:
        return sum(1 for hunk in self.hunks for line in hunk.lines if line.type == LineType.ADDED)

    @property
    def deletions(self) -> int:
        return sum(1 for hunk in self.hunks for line in hunk.lines if line.type == LineType.REMOVED)

    @property
    def churn(self) -> int:
        return self.additions + self.deletions

    def added_lines(self) -> Iterator[Tuple[Hunk, DiffLine]]:
        for hunk in self.hunks:
            for line in hunk.lines:
                if line.is_added:
                    yield hunk, line


@dataclass(frozen=True, slots=True)
class ParsedDiff:
    """Structured form of a unified diff. Never mutated after parsing."""

    files: Tuple[FileDiff, ...] = ()

    @property
    def total_additions(self) -> int:
        return sum(f.additions for f in self.files)

    @property
    def total_deletions(self) -> int:
        return sum(f.deletions for f in self.files)

    @property
    def has_additions(self) -> bool:
        return self.total_additions > 0

    @property
    def filenames(self) -> FrozenSet[str]:
        return frozenset(f.filename for f in self.files)
