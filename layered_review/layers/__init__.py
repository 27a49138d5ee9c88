from __future__ import annotations

from layered_review.layers.ai_layer import AIReviewLayer
from layered_review.layers.base import ReviewLayer
from layered_review.layers.diff_summary import build_diff_summary
from layered_review.layers.heuristic_layer import HeuristicLayer, HeuristicThresholds
from layered_review.layers.pattern_layer import DEFAULT_RULES, PatternLayer, PatternRule

__all__ = [
    "AIReviewLayer",
    "DEFAULT_RULES",
    "HeuristicLayer",
    "HeuristicThresholds",
    "PatternLayer",
    "PatternRule",
    "ReviewLayer",
    "build_diff_summary",
]
