from __future__ import annotations

from io import StringIO
from typing import List, Sequence, Tuple

import pytest  # type: ignore[import]
from rich.console import Console  # type: ignore[import]

from helpers import make_diff
from layered_review.errors import ConfigurationError, DiffFetchError
from layered_review.integrations import DiffFetcher, ReviewNotifier
from layered_review.layers import HeuristicLayer, PatternLayer, ReviewLayer
from layered_review.models import ChangeContext, ParsedDiff, ReviewComment, Severity
from layered_review.services import ReviewService


class SpyLayer(ReviewLayer):
    name = "spy"

    def __init__(self) -> None:
        self.calls = 0

    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        self.calls += 1
        return []


class DummyFetcher(DiffFetcher):
    def __init__(self, raw_diff: str) -> None:
        self._raw_diff = raw_diff
        self.requested: List[ChangeContext] = []

    async def fetch_diff(self, change: ChangeContext) -> str:
        self.requested.append(change)
        return self._raw_diff


class FailingFetcher(DiffFetcher):
    async def fetch_diff(self, change: ChangeContext) -> str:
        raise DiffFetchError("Not Found", "NOT_FOUND", status_code=404)


class DummyNotifier(ReviewNotifier):
    def __init__(self) -> None:
        self.posted: List[Tuple[ChangeContext, Sequence[ReviewComment]]] = []

    async def post_review(self, change: ChangeContext, comments: Sequence[ReviewComment]) -> None:
        self.posted.append((change, list(comments)))


@pytest.fixture()
def change() -> ChangeContext:
    return ChangeContext(owner="acme", repo="widgets", number=7, head_sha="abc123")


SECRET_DIFF = make_diff("src/x.ts", ["const ok = 1;", 'const apiKey = "abcd1234";'], start=12)


@pytest.mark.asyncio
async def test_secret_is_reported_end_to_end() -> None:
    service = ReviewService([PatternLayer(), HeuristicLayer()])

    comments = await service.analyze(SECRET_DIFF)

    assert len(comments) == 1
    (comment,) = comments
    assert (comment.filename, comment.line) == ("src/x.ts", 13)
    assert comment.severity == Severity.ERROR
    assert comment.source == "pattern"
    assert "secret" in comment.body.lower()


@pytest.mark.asyncio
async def test_deletions_only_diff_skips_layers() -> None:
    spy = SpyLayer()
    raw = "diff --git a/a.ts b/a.ts\n--- a/a.ts\n+++ b/a.ts\n@@ -1,2 +1 @@\n keep\n-debugger;\n"

    comments = await ReviewService([spy]).analyze(raw)

    assert comments == []
    assert spy.calls == 0


@pytest.mark.asyncio
async def test_empty_diff_skips_layers() -> None:
    spy = SpyLayer()

    assert await ReviewService([spy]).analyze("") == []
    assert spy.calls == 0


@pytest.mark.asyncio
async def test_handle_change_requires_notifier(change: ChangeContext) -> None:
    service = ReviewService([PatternLayer()], fetcher=DummyFetcher(SECRET_DIFF))

    with pytest.raises(ConfigurationError) as excinfo:
        await service.handle_change(change)

    assert excinfo.value.code == "CONFIGURATION"
    assert not excinfo.value.retryable


@pytest.mark.asyncio
async def test_handle_change_requires_fetcher(change: ChangeContext) -> None:
    service = ReviewService([PatternLayer()], notifier=DummyNotifier())

    with pytest.raises(ConfigurationError):
        await service.handle_change(change)


@pytest.mark.asyncio
async def test_handle_change_posts_comments(change: ChangeContext) -> None:
    fetcher = DummyFetcher(SECRET_DIFF)
    notifier = DummyNotifier()
    service = ReviewService([PatternLayer()], fetcher=fetcher, notifier=notifier)

    comments = await service.handle_change(change)

    assert fetcher.requested == [change]
    assert notifier.posted == [(change, comments)]
    assert len(comments) == 1


@pytest.mark.asyncio
async def test_handle_change_without_findings_posts_nothing(change: ChangeContext) -> None:
    notifier = DummyNotifier()
    service = ReviewService(
        [PatternLayer()], fetcher=DummyFetcher(make_diff("a.ts", ["const ok = 1;"])), notifier=notifier
    )

    assert await service.handle_change(change) == []
    assert notifier.posted == []


@pytest.mark.asyncio
async def test_fetch_errors_propagate(change: ChangeContext) -> None:
    notifier = DummyNotifier()
    service = ReviewService([PatternLayer()], fetcher=FailingFetcher(), notifier=notifier)

    with pytest.raises(DiffFetchError) as excinfo:
        await service.handle_change(change)

    assert excinfo.value.code == "NOT_FOUND"
    assert notifier.posted == []


def test_render_console_summary_lists_comments() -> None:
    output = StringIO()
    console = Console(file=output, width=200, force_terminal=False)
    comment = ReviewComment("src/x.ts", 3, "[no-debugger] Remove debugger statement.", Severity.ERROR, "pattern")

    ReviewService.render_console_summary([comment], console=console)

    text = output.getvalue()
    assert "1 comment(s)" in text
    assert "src/x.ts:3" in text
    assert "[no-debugger]" in text
    assert "error" in text


def test_render_console_summary_without_comments() -> None:
    output = StringIO()

    ReviewService.render_console_summary([], console=Console(file=output, width=120, force_terminal=False))

    assert "No actionable suggestions." in output.getvalue()
