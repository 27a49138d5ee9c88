from __future__ import annotations

from layered_review.pipeline.aggregation import (
    aggregate_comments,
    cluster_similar,
    jaccard_similarity,
    significant_words,
)
from layered_review.pipeline.review_pipeline import ReviewPipeline

__all__ = [
    "ReviewPipeline",
    "aggregate_comments",
    "cluster_similar",
    "jaccard_similarity",
    "significant_words",
]
