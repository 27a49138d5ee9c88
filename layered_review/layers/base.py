from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from layered_review.models import ParsedDiff, ReviewComment


class ReviewLayer(ABC):
    """
    Interface for review layers.

    A layer inspects a parsed diff and proposes review comments. Layers must
    not mutate the diff and must not raise: internal failures are logged and
    reported as an empty result.
    """

    name: str = "layer"

    @abstractmethod
    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
