from __future__ import annotations

import hashlib
import hmac
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from io import StringIO
from typing import Any, AsyncIterator, List, Literal, Optional
from urllib.parse import parse_qs

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request  # type: ignore[import]
from fastapi.responses import JSONResponse  # type: ignore[import]
from langchain_openai import AzureChatOpenAI, ChatOpenAI  # type: ignore[import]
from pydantic import BaseModel, Field, ValidationError  # type: ignore[import]
from rich.console import Console  # type: ignore[import]

from layered_review.config import Settings, settings
from layered_review.errors import ConfigurationError, ReviewError
from layered_review.integrations import (
    DiffFetcher,
    GitDiffFetcher,
    GitHubDiffFetcher,
    GitHubReviewNotifier,
    ReviewNotifier,
)
from layered_review.layers import AIReviewLayer, HeuristicLayer, HeuristicThresholds, PatternLayer, ReviewLayer
from layered_review.models import ChangeContext, ReviewComment
from layered_review.services import ReviewService

logger = logging.getLogger(__name__)

REVIEWED_ACTIONS = {"opened", "synchronize"}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(cfg: Settings) -> None:
    logging.basicConfig(level=cfg.log_level.upper(), format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings)
    yield


app = FastAPI(
    title="Layered Code Review API",
    description="Review unified diffs with pattern, heuristic and LLM-backed layers",
    version="1.0.0",
    lifespan=lifespan,
)


class ReviewRequest(BaseModel):
    diff: str = Field(..., min_length=1, description="Unified diff text, e.g. the output of git diff")
    format: Literal["json", "text"] = Field("json", description="Output format: 'json' or 'text'")

    class Config:
        json_schema_extra = {
            "example": {
                "diff": "diff --git a/src/x.ts b/src/x.ts\n--- a/src/x.ts\n+++ b/src/x.ts\n@@ -1,0 +1,1 @@\n+debugger;",
                "format": "json",
            }
        }


class ReviewCommentModel(BaseModel):
    filename: str
    line: int
    body: str
    severity: str
    source: str

    @classmethod
    def from_comment(cls, comment: ReviewComment) -> "ReviewCommentModel":
        return cls(
            filename=comment.filename,
            line=comment.line,
            body=comment.body,
            severity=comment.severity.value,
            source=comment.source,
        )


class ReviewResponse(BaseModel):
    success: bool
    total_comments: int
    comments: List[ReviewCommentModel]
    analyzed_at: datetime


class TextReviewResponse(BaseModel):
    success: bool
    total_comments: int
    output: str


class _Owner(BaseModel):
    login: str


class _Repository(BaseModel):
    name: str
    owner: _Owner


class _BranchRef(BaseModel):
    sha: Optional[str] = None
    ref: str


class _PullRequest(BaseModel):
    title: str = ""
    body: Optional[str] = None
    head: _BranchRef
    base: _BranchRef


class GitHubWebhookPayload(BaseModel):
    """Relevant fields of a GitHub ``pull_request`` event."""

    action: str
    number: Optional[int] = None
    before: Optional[str] = None
    pull_request: Optional[_PullRequest] = None
    repository: Optional[_Repository] = None

    def to_change(self) -> Optional[ChangeContext]:
        if self.number is None or self.pull_request is None or self.repository is None:
            return None
        if not self.pull_request.head.sha:
            return None
        return ChangeContext(
            owner=self.repository.owner.login,
            repo=self.repository.name,
            number=self.number,
            head_sha=self.pull_request.head.sha,
            previous_sha=self.before if self.action == "synchronize" else None,
            title=self.pull_request.title,
            description=self.pull_request.body,
            base_ref=self.pull_request.base.ref,
            head_ref=self.pull_request.head.ref,
        )


def _build_llm(cfg: Settings) -> ChatOpenAI:
    if cfg.llm_provider == "azure-openai":
        required = {
            "AZURE_OPENAI_API_KEY": cfg.azure_openai_api_key,
            "AZURE_OPENAI_ENDPOINT": cfg.azure_openai_endpoint,
            "AZURE_OPENAI_DEPLOYMENT": cfg.azure_openai_deployment,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            missing_env = ", ".join(missing)
            raise ValueError(
                "Missing Azure OpenAI configuration. Please set: " + missing_env
            )

        azure_kwargs: dict[str, Any] = {}
        if cfg.max_output_tokens:
            azure_kwargs["max_tokens"] = cfg.max_output_tokens

        return AzureChatOpenAI(
            azure_deployment=cfg.azure_openai_deployment,
            azure_endpoint=cfg.azure_openai_endpoint,
            api_version=cfg.azure_openai_api_version,
            api_key=cfg.azure_openai_api_key,
            temperature=cfg.openai_temperature,
            **azure_kwargs,
        )

    openai_kwargs: dict[str, Any] = {}
    if cfg.max_output_tokens:
        openai_kwargs["max_tokens"] = cfg.max_output_tokens
    if cfg.openai_api_key:
        openai_kwargs["api_key"] = cfg.openai_api_key
    if cfg.openai_base_url:
        openai_kwargs["base_url"] = cfg.openai_base_url

    return ChatOpenAI(
        model=cfg.openai_model,
        temperature=cfg.openai_temperature,
        **openai_kwargs,
    )


def _build_layers(cfg: Settings) -> List[ReviewLayer]:
    layers: List[ReviewLayer] = []
    if cfg.enable_pattern_layer:
        layers.append(PatternLayer())
    if cfg.enable_heuristic_layer:
        layers.append(
            HeuristicLayer(
                HeuristicThresholds(
                    max_function_lines=cfg.max_function_lines,
                    max_file_churn=cfg.max_file_churn,
                    max_nesting_depth=cfg.max_nesting_depth,
                    max_total_additions=cfg.max_total_additions,
                )
            )
        )
    if cfg.enable_ai_layer:
        if cfg.has_llm_credentials:
            layers.append(
                AIReviewLayer(
                    llm=_build_llm(cfg),
                    timeout=cfg.ai_timeout_seconds,
                    context_lines=cfg.ai_context_lines,
                    max_summary_lines=cfg.ai_max_summary_lines,
                )
            )
        else:
            logger.warning("AI layer enabled but no LLM credentials configured; skipping it")
    return layers


def _build_fetcher(cfg: Settings) -> Optional[DiffFetcher]:
    if cfg.github_token:
        return GitHubDiffFetcher(cfg.github_token, api_url=cfg.github_api_url, timeout=cfg.github_timeout_seconds)
    if cfg.repo_path:
        try:
            return GitDiffFetcher(cfg.repo_path)
        except ConfigurationError as exc:
            logger.error(f"Local diff fetcher disabled: {exc}")
    return None


def _build_notifier(cfg: Settings) -> Optional[ReviewNotifier]:
    if not cfg.github_token:
        return None
    return GitHubReviewNotifier(
        cfg.github_token,
        api_url=cfg.github_api_url,
        timeout=cfg.github_timeout_seconds,
        max_comments=cfg.max_review_comments,
    )


def _build_service(cfg: Settings) -> ReviewService:
    return ReviewService(
        _build_layers(cfg),
        fetcher=_build_fetcher(cfg),
        notifier=_build_notifier(cfg),
        layer_timeout=cfg.layer_timeout_seconds,
    )


def get_settings() -> Settings:
    return settings


@lru_cache(maxsize=1)
def get_service() -> ReviewService:
    return _build_service(settings)


def verify_signature(secret: str, body: bytes, signature_header: Optional[str]) -> bool:
    """Check a GitHub ``X-Hub-Signature-256`` header against the raw request body."""
    if not signature_header:
        return False
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected.encode("utf-8"), signature_header.encode("utf-8"))


def _decode_webhook_body(request: Request, body: bytes) -> Any:
    # GitHub can deliver webhooks form-encoded, with the JSON in a "payload" field
    if request.headers.get("content-type", "").startswith("application/x-www-form-urlencoded"):
        form = parse_qs(body.decode("utf-8"))
        return json.loads(form.get("payload", ["{}"])[0])
    return json.loads(body)


async def _review_change(service: ReviewService, change: ChangeContext) -> None:
    try:
        comments = await service.handle_change(change)
        logger.info(f"Review of {change.slug} completed with {len(comments)} comment(s)")
    except ReviewError as exc:
        logger.error(f"Review of {change.slug} failed [{exc.code}, retryable={exc.retryable}]: {exc}")
    except Exception:
        logger.exception(f"Review of {change.slug} failed unexpectedly")


@app.get("/")
async def root():
    return {
        "message": "Layered Code Review API",
        "version": "1.0.0",
        "endpoints": {
            "POST /review": "Submit a unified diff for review",
            "POST /review/webhook": "GitHub pull_request webhook",
            "GET /health": "Check API health",
        },
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.post("/review")
async def review_diff(request: ReviewRequest, service: ReviewService = Depends(get_service)):
    """
    Review a raw unified diff.

    Returns structured JSON by default or formatted text output if format='text'.
    """
    try:
        comments = await service.analyze(request.diff)
    except ReviewError:
        raise
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail=f"Review failed: {str(exc)}"
        )

    if request.format == "text":
        output = StringIO()
        console = Console(file=output, width=settings.console_width, force_terminal=False)
        service.render_console_summary(comments, console=console)
        return TextReviewResponse(success=True, total_comments=len(comments), output=output.getvalue())

    return ReviewResponse(
        success=True,
        total_comments=len(comments),
        comments=[ReviewCommentModel.from_comment(c) for c in comments],
        analyzed_at=datetime.now(timezone.utc),
    )


@app.post("/review/webhook")
async def review_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    cfg: Settings = Depends(get_settings),
    service: ReviewService = Depends(get_service),
):
    """
    GitHub ``pull_request`` webhook.

    The event is acknowledged immediately and reviewed in the background, since
    GitHub gives up on deliveries that take longer than ten seconds.
    """
    body = await request.body()

    if not cfg.github_webhook_secret:
        raise HTTPException(status_code=500, detail="Webhook secret is not configured")
    if not verify_signature(cfg.github_webhook_secret, body, request.headers.get("x-hub-signature-256")):
        raise HTTPException(status_code=401, detail="Invalid or missing webhook signature")

    try:
        payload = GitHubWebhookPayload.model_validate(_decode_webhook_body(request, body))
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid webhook payload: {str(exc)}")

    logger.info(f"Received pull_request '{payload.action}' event")
    if payload.action not in REVIEWED_ACTIONS:
        return {"received": True, "skipped": True}

    change = payload.to_change()
    if change is None:
        logger.error("Webhook payload is missing pull request data")
        return {"received": True, "skipped": True, "reason": "missing PR data"}

    background_tasks.add_task(_review_change, service, change)
    return {"received": True}


@app.exception_handler(ConfigurationError)
async def _configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=400, content={"detail": f"Configuration error: {str(exc)}", "code": exc.code})


@app.exception_handler(ReviewError)
async def _upstream_error_handler(request: Request, exc: ReviewError):
    logger.error(f"Upstream failure [{exc.code}, retryable={exc.retryable}]: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": f"Upstream failure: {str(exc)}", "code": exc.code, "retryable": exc.retryable},
    )


if __name__ == "__main__":
    import uvicorn

    configure_logging(settings)
    uvicorn.run(app, host="0.0.0.0", port=8004)
