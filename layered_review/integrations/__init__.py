from __future__ import annotations

from layered_review.integrations.base import DiffFetcher, ReviewNotifier
from layered_review.integrations.git_repository import GitDiffFetcher
from layered_review.integrations.github import GitHubDiffFetcher, GitHubReviewNotifier, format_comment

__all__ = [
    "DiffFetcher",
    "GitDiffFetcher",
    "GitHubDiffFetcher",
    "GitHubReviewNotifier",
    "ReviewNotifier",
    "format_comment",
]
