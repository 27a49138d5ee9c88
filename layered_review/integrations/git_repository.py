from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from git import GitCommandError, Repo  # type: ignore[import]

from layered_review.errors import ConfigurationError, DiffFetchError
from layered_review.integrations.base import DiffFetcher
from layered_review.models import ChangeContext

logger = logging.getLogger(__name__)


class GitDiffFetcher(DiffFetcher):
    """Thin wrapper around GitPython that produces diffs from a local clone."""

    def __init__(self, repo_path: str | Path, *, default_base_ref: str = "HEAD~1") -> None:
        self.repo_path = Path(repo_path)
        if not self.repo_path.exists():
            raise ConfigurationError(f"Repository path does not exist: {self.repo_path}")

        try:
            self._repo = Repo(self.repo_path)
        except Exception as exc:  # pragma: no cover - GitPython error types vary
            raise ConfigurationError(f"Failed to open repository: {exc}", cause=exc) from exc

        if self._repo.bare:
            raise ConfigurationError("Bare repositories are not supported")

        self.default_base_ref = default_base_ref

    def build_rev_range(self, change: ChangeContext) -> str:
        """
        Incremental updates diff the previous head against the new one; other
        changes diff the head against its merge base with the base ref.
        """
        if change.previous_sha:
            return f"{change.previous_sha}..{change.head_sha}"
        return f"{change.base_ref or self.default_base_ref}...{change.head_sha}"

    def diff(self, rev_range: str) -> str:
        try:
            return self._repo.git.diff(rev_range, no_color=True, no_ext_diff=True)
        except GitCommandError as exc:
            raise DiffFetchError(f"git diff {rev_range} failed: {exc.stderr or exc}", "GIT", cause=exc) from exc

    async def fetch_diff(self, change: ChangeContext) -> str:
        rev_range = self.build_rev_range(change)
        logger.info(f"Computing local diff {rev_range} in {self.repo_path}")
        return await asyncio.to_thread(self.diff, rev_range)
