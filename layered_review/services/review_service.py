from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from rich.console import Console  # type: ignore[import]
from rich.markup import escape  # type: ignore[import]
from rich.table import Table  # type: ignore[import]

from layered_review.errors import ConfigurationError
from layered_review.integrations import DiffFetcher, ReviewNotifier
from layered_review.layers import ReviewLayer
from layered_review.models import ChangeContext, ReviewComment, Severity
from layered_review.parsing import DiffParser
from layered_review.pipeline import ReviewPipeline

logger = logging.getLogger(__name__)

_SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


class ReviewService:
    """Coordinates parsing a diff, running it through the review layers and posting the results."""

    def __init__(
        self,
        layers: Sequence[ReviewLayer],
        *,
        parser: Optional[DiffParser] = None,
        fetcher: Optional[DiffFetcher] = None,
        notifier: Optional[ReviewNotifier] = None,
        layer_timeout: Optional[float] = 60.0,
    ) -> None:
        self._parser = parser or DiffParser()
        self._pipeline = ReviewPipeline(layers, layer_timeout=layer_timeout)
        self._fetcher = fetcher
        self._notifier = notifier

    @property
    def pipeline(self) -> ReviewPipeline:
        return self._pipeline

    async def analyze(self, raw_diff: str) -> List[ReviewComment]:
        """
        Review a raw unified diff.

        Args:
            raw_diff: Output of ``git diff`` or an equivalent.

        Returns:
            De-duplicated review comments. Empty, without running any layer,
            when the diff adds no lines.
        """
        parsed = self._parser.parse(raw_diff)
        if not parsed.has_additions:
            logger.info("No additions found, skipping analysis")
            return []
        return await self._pipeline.run(parsed)

    async def handle_change(self, change: ChangeContext) -> List[ReviewComment]:
        """
        Fetch the diff for ``change``, review it and post the comments back.

        Raises:
            ConfigurationError: If no fetcher or notifier is configured.
            DiffFetchError: If the diff cannot be fetched.
            NotifierError: If the review cannot be posted.
        """
        if self._notifier is None:
            raise ConfigurationError("No review notifier configured")
        if self._fetcher is None:
            raise ConfigurationError("No diff fetcher configured")

        raw_diff = await self._fetcher.fetch_diff(change)
        comments = await self.analyze(raw_diff)
        logger.info(f"Found {len(comments)} issue(s) in {change.slug}")

        if comments:
            await self._notifier.post_review(change, comments)
        return comments

    @staticmethod
    def render_console_summary(comments: Iterable[ReviewComment], *, console: Optional[Console] = None) -> None:
        console = console or Console()
        comments = list(comments)
        console.rule(f"[bold cyan]Code review[/bold cyan]: {len(comments)} comment(s)")

        if not comments:
            console.print("[green]No actionable suggestions.[/green]")
            return

        table = Table("Severity", "Location", "Source", "Message", show_header=True, header_style="bold magenta")
        for comment in comments:
            style = _SEVERITY_STYLES.get(comment.severity, "")
            table.add_row(
                f"[{style}]{comment.severity.value}[/{style}]",
                escape(f"{comment.filename}:{comment.line}"),
                escape(comment.source),
                escape(comment.body),
            )
        console.print(table)
