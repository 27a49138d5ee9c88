from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from layered_review.layers import ReviewLayer
from layered_review.models import ParsedDiff, ReviewComment
from layered_review.pipeline.aggregation import SIMILARITY_THRESHOLD, aggregate_comments

logger = logging.getLogger(__name__)


class ReviewPipeline:
    """Runs every configured layer against a diff and merges their comments."""

    def __init__(
        self,
        layers: Sequence[ReviewLayer],
        *,
        layer_timeout: Optional[float] = 60.0,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
    ) -> None:
        self._layers = tuple(layers)
        self._layer_timeout = layer_timeout
        self._similarity_threshold = similarity_threshold

    @property
    def layers(self) -> tuple[ReviewLayer, ...]:
        return self._layers

    async def run(self, diff: ParsedDiff) -> List[ReviewComment]:
        """
        Run all layers concurrently and aggregate their output.

        A layer that raises or exceeds the per-layer timeout contributes no
        comments; the remaining layers are unaffected.
        """
        results = await asyncio.gather(*(self._run_layer(layer, diff) for layer in self._layers))
        merged = [comment for layer_comments in results for comment in layer_comments]
        comments = aggregate_comments(merged, self._similarity_threshold)
        logger.info(
            f"Review pipeline ran {len(self._layers)} layer(s): "
            f"{len(merged)} comment(s) collected, {len(comments)} after de-duplication"
        )
        return comments

    async def _run_layer(self, layer: ReviewLayer, diff: ParsedDiff) -> List[ReviewComment]:
        try:
            comments = await asyncio.wait_for(layer.analyze(diff), timeout=self._layer_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Layer '{layer.name}' timed out after {self._layer_timeout}s")
            return []
        except Exception as exc:
            logger.warning(f"Layer '{layer.name}' raised: {exc}", exc_info=exc)
            return []
        logger.debug(f"Layer '{layer.name}' produced {len(comments)} comment(s)")
        return list(comments)
