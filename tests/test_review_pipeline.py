from __future__ import annotations

import asyncio
from typing import List

import pytest  # type: ignore[import]

from helpers import make_diff, parse
from layered_review.layers import ReviewLayer
from layered_review.models import ParsedDiff, ReviewComment, Severity
from layered_review.pipeline import ReviewPipeline


class StaticLayer(ReviewLayer):
    def __init__(self, name: str, comments: List[ReviewComment]) -> None:
        self.name = name
        self._comments = comments

    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        return list(self._comments)


class FailingLayer(ReviewLayer):
    name = "failing"

    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        raise RuntimeError("boom")


class SlowLayer(ReviewLayer):
    name = "slow"

    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        await asyncio.sleep(5)
        return [ReviewComment("a.ts", 1, "never delivered", Severity.ERROR, self.name)]


class WaitingLayer(ReviewLayer):
    name = "waiting"

    def __init__(self, event: asyncio.Event) -> None:
        self._event = event

    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        await self._event.wait()
        return [ReviewComment("a.ts", 1, "waited for signal", Severity.INFO, self.name)]


class SignallingLayer(ReviewLayer):
    name = "signalling"

    def __init__(self, event: asyncio.Event) -> None:
        self._event = event

    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        self._event.set()
        return [ReviewComment("a.ts", 2, "sent the signal", Severity.INFO, self.name)]


@pytest.fixture()
def diff() -> ParsedDiff:
    return parse(make_diff("a.ts", ["x", "y"]))


def _comment(line: int, body: str, source: str) -> ReviewComment:
    return ReviewComment(filename="a.ts", line=line, body=body, severity=Severity.WARNING, source=source)


@pytest.mark.asyncio
async def test_failing_layer_is_isolated(diff: ParsedDiff) -> None:
    ok = _comment(1, "Keep this comment", "ok")
    pipeline = ReviewPipeline([FailingLayer(), StaticLayer("ok", [ok])])

    assert await pipeline.run(diff) == [ok]


@pytest.mark.asyncio
async def test_slow_layer_is_isolated(diff: ParsedDiff) -> None:
    ok = _comment(2, "Keep this comment", "ok")
    pipeline = ReviewPipeline([SlowLayer(), StaticLayer("ok", [ok])], layer_timeout=0.05)

    assert await pipeline.run(diff) == [ok]


@pytest.mark.asyncio
async def test_results_follow_layer_order(diff: ParsedDiff) -> None:
    first = _comment(2, "Reported by the first layer", "first")
    second = _comment(1, "Reported by the second layer", "second")
    pipeline = ReviewPipeline([StaticLayer("first", [first]), StaticLayer("second", [second])])

    assert await pipeline.run(diff) == [first, second]


@pytest.mark.asyncio
async def test_layers_run_concurrently(diff: ParsedDiff) -> None:
    event = asyncio.Event()
    pipeline = ReviewPipeline([WaitingLayer(event), SignallingLayer(event)], layer_timeout=1.0)

    comments = await pipeline.run(diff)

    assert [c.source for c in comments] == ["waiting", "signalling"]


@pytest.mark.asyncio
async def test_duplicates_across_layers_are_merged(diff: ParsedDiff) -> None:
    low = ReviewComment("a.ts", 1, "Possible hardcoded secret detected", Severity.INFO, "ai")
    high = ReviewComment("a.ts", 1, "Possible hardcoded secret detected", Severity.ERROR, "pattern")
    pipeline = ReviewPipeline([StaticLayer("ai", [low]), StaticLayer("pattern", [high])])

    assert await pipeline.run(diff) == [high]


@pytest.mark.asyncio
async def test_no_layers(diff: ParsedDiff) -> None:
    assert await ReviewPipeline([]).run(diff) == []
