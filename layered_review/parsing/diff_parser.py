from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from layered_review.models import DiffLine, FileDiff, FileStatus, Hunk, LineType, ParsedDiff

logger = logging.getLogger(__name__)

NULL_DEVICE = "/dev/null"


@dataclass(slots=True)
class _OpenHunk:
    header: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: List[DiffLine] = field(default_factory=list)

    def freeze(self) -> Hunk:
        return Hunk(
            header=self.header,
            old_start=self.old_start,
            old_lines=self.old_lines,
            new_start=self.new_start,
            new_lines=self.new_lines,
            lines=tuple(self.lines),
        )


@dataclass(slots=True)
class _OpenFile:
    old_path: str
    new_path: str
    status: FileStatus
    hunks: List[_OpenHunk] = field(default_factory=list)

    def freeze(self) -> FileDiff:
        hunks = tuple(h.freeze() for h in self.hunks)
        return FileDiff(
            filename=self.new_path,
            status=self.status,
            old_filename=self.old_path if self.old_path != self.new_path else None,
            hunks=hunks,
            patch="\n".join(h.render() for h in hunks),
        )


class DiffParser:
    """
    Parses unified diff text (the output of ``git diff``) into a ParsedDiff.

    Parsing is best-effort: lines that are not recognised are skipped and the
    parser never raises on malformed input.
    """

    FILE_HEADER_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$")
    OLD_FILE_RE = re.compile(r"^--- (?:a/)?(.+?)\s*$")
    NEW_FILE_RE = re.compile(r"^\+\+\+ (?:b/)?(.+?)\s*$")
    HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")

    def parse(self, raw_diff: str) -> ParsedDiff:
        files: List[_OpenFile] = []
        current_file: Optional[_OpenFile] = None
        current_hunk: Optional[_OpenHunk] = None
        old_line_num = 0
        new_line_num = 0
        skipped = 0

        for line in raw_diff.replace("\r\n", "\n").split("\n"):
            file_match = self.FILE_HEADER_RE.match(line)
            if file_match:
                old_path, new_path = file_match.group(1), file_match.group(2)
                status = FileStatus.RENAMED if old_path != new_path else FileStatus.MODIFIED
                current_file = _OpenFile(old_path=old_path, new_path=new_path, status=status)
                files.append(current_file)
                current_hunk = None
                continue

            if current_file is None:
                skipped += 1
                continue

            # File markers only appear between the file header and its first hunk.
            if current_hunk is None:
                old_match = self.OLD_FILE_RE.match(line)
                if old_match:
                    if old_match.group(1) == NULL_DEVICE:
                        current_file.status = FileStatus.ADDED
                    continue
                new_match = self.NEW_FILE_RE.match(line)
                if new_match:
                    if new_match.group(1) == NULL_DEVICE:
                        current_file.status = FileStatus.DELETED
                    continue

            hunk_match = self.HUNK_HEADER_RE.match(line)
            if hunk_match:
                old_line_num = int(hunk_match.group(1))
                new_line_num = int(hunk_match.group(3))
                current_hunk = _OpenHunk(
                    header=line,
                    old_start=old_line_num,
                    old_lines=int(hunk_match.group(2) or 1),
                    new_start=new_line_num,
                    new_lines=int(hunk_match.group(4) or 1),
                )
                current_file.hunks.append(current_hunk)
                continue

            if current_hunk is None:
                # index lines, mode changes, similarity headers, binary notices
                continue

            if line.startswith("+"):
                current_hunk.lines.append(
                    DiffLine(LineType.ADDED, line[1:], old_line_number=None, new_line_number=new_line_num)
                )
                new_line_num += 1
            elif line.startswith("-"):
                current_hunk.lines.append(
                    DiffLine(LineType.REMOVED, line[1:], old_line_number=old_line_num, new_line_number=None)
                )
                old_line_num += 1
            elif line.startswith(" "):
                current_hunk.lines.append(
                    DiffLine(LineType.CONTEXT, line[1:], old_line_number=old_line_num, new_line_number=new_line_num)
                )
                old_line_num += 1
                new_line_num += 1
            else:
                # "\ No newline at end of file" and other noise
                skipped += 1

        if skipped:
            logger.debug(f"Diff parser skipped {skipped} unrecognised line(s)")

        return ParsedDiff(files=tuple(f.freeze() for f in files))


def parse_diff(raw_diff: str) -> ParsedDiff:
    """Convenience wrapper around ``DiffParser().parse``."""
    return DiffParser().parse(raw_diff)
