from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx  # type: ignore[import]

from layered_review.errors import DiffFetchError, NotifierError, ReviewError, code_for_status
from layered_review.integrations.base import DiffFetcher, ReviewNotifier
from layered_review.models import ChangeContext, ReviewComment, Severity

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
MAX_REVIEW_COMMENTS = 30

SEVERITY_MARKERS = {
    Severity.ERROR: "❌",
    Severity.WARNING: "⚠️",
    Severity.INFO: "ℹ️",
}


class _GitHubClient:
    """Shared request plumbing for the GitHub adapters."""

    error_class: type[ReviewError] = ReviewError

    def __init__(
        self,
        token: str,
        *,
        api_url: str = GITHUB_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token = token
        self.api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _headers(self, accept: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": accept,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def _request(self, method: str, path: str, *, accept: str, json: Any = None) -> httpx.Response:
        url = f"{self.api_url}/{path.lstrip('/')}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=self._headers(accept), json=json)
        except httpx.TimeoutException as exc:
            raise self.error_class(f"GitHub request timed out: {method} {url}", "TIMEOUT", cause=exc) from exc
        except httpx.HTTPError as exc:
            raise self.error_class(f"GitHub request failed: {method} {url}: {exc}", "NETWORK", cause=exc) from exc

        if not response.is_success:
            logger.error(f"GitHub API error: {response.status_code} {response.text[:500]}")
            raise self.error_class(
                f"GitHub returned HTTP {response.status_code} for {method} {url}",
                code_for_status(response.status_code),
                status_code=response.status_code,
            )
        return response


class GitHubDiffFetcher(_GitHubClient, DiffFetcher):
    """
    Fetches pull request diffs from the GitHub REST API as plain text.

    Newly opened pull requests get the full diff. When the change carries a
    previous head SHA (a ``synchronize`` event), only the diff between the
    previous and the current head is fetched so unchanged code is not
    reviewed again.
    """

    error_class = DiffFetchError

    def diff_path(self, change: ChangeContext) -> str:
        if change.previous_sha:
            return f"repos/{change.owner}/{change.repo}/compare/{change.previous_sha}...{change.head_sha}"
        return f"repos/{change.owner}/{change.repo}/pulls/{change.number}"

    async def fetch_diff(self, change: ChangeContext) -> str:
        if change.previous_sha:
            logger.info(
                f"Fetching incremental diff {change.previous_sha[:7]}...{change.head_sha[:7]} for {change.slug}"
            )
        else:
            logger.info(f"Fetching full diff for {change.slug}")

        response = await self._request("GET", self.diff_path(change), accept="application/vnd.github.v3.diff")
        return response.text


class GitHubReviewNotifier(_GitHubClient, ReviewNotifier):
    """Posts comments as a single pull request review with inline comments."""

    error_class = NotifierError

    def __init__(self, token: str, *, max_comments: int = MAX_REVIEW_COMMENTS, **kwargs: Any) -> None:
        super().__init__(token, **kwargs)
        self.max_comments = max_comments

    async def post_review(self, change: ChangeContext, comments: Sequence[ReviewComment]) -> None:
        if not comments:
            return

        payload = self.build_review_payload(change, comments)
        await self._request(
            "POST",
            f"repos/{change.owner}/{change.repo}/pulls/{change.number}/reviews",
            accept="application/vnd.github+json",
            json=payload,
        )

        posted = len(payload["comments"])
        suffix = f" ({len(comments)} total)" if posted < len(comments) else ""
        logger.info(f"Posted {posted} review comment(s) to {change.slug}{suffix}")

    def build_review_payload(self, change: ChangeContext, comments: Sequence[ReviewComment]) -> Dict[str, Any]:
        # sorted() is stable, so equal severities keep their pipeline order
        ranked = sorted(comments, key=lambda c: -c.severity.rank)
        selected = ranked[: self.max_comments]
        total = len(comments)

        summary = f"Automated code review found {total} issue(s)."
        if total > len(selected):
            summary = (
                f"Results truncated: showing the top {len(selected)} of {total} comments by severity. "
                + summary
            )

        review_comments: List[Dict[str, Any]] = [
            {"path": c.filename, "line": c.line, "side": "RIGHT", "body": format_comment(c)}
            for c in selected
        ]
        return {
            "commit_id": change.head_sha,
            "body": summary,
            "event": "COMMENT",
            "comments": review_comments,
        }


def format_comment(comment: ReviewComment) -> str:
    marker = SEVERITY_MARKERS.get(comment.severity, SEVERITY_MARKERS[Severity.INFO])
    return f"{marker} **{comment.severity.value.upper()}** ({comment.source})\n\n{comment.body}"
