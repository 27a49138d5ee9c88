from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from layered_review.models import ChangeContext, ReviewComment


class DiffFetcher(ABC):
    """Supplies the raw unified diff for a change."""

    @abstractmethod
    async def fetch_diff(self, change: ChangeContext) -> str:
        raise NotImplementedError


class ReviewNotifier(ABC):
    """Posts review comments back to the platform hosting a change."""

    @abstractmethod
    async def post_review(self, change: ChangeContext, comments: Sequence[ReviewComment]) -> None:
        raise NotImplementedError
