from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, List, Optional

from langchain_core.output_parsers import StrOutputParser  # type: ignore[import]
from langchain_core.prompts import ChatPromptTemplate  # type: ignore[import]
from langchain_openai import ChatOpenAI  # type: ignore[import]
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator  # type: ignore[import]

from layered_review.layers.base import ReviewLayer
from layered_review.layers.diff_summary import DEFAULT_CONTEXT_LINES, DEFAULT_MAX_LINES, build_diff_summary
from layered_review.models import ParsedDiff, ReviewComment, Severity

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert code reviewer focused on finding FUNCTIONAL problems, not style issues.

Analyze the code diff and return a JSON object with a "comments" array.

Each comment must have:
- "filename": string (file path exactly as shown after "File:")
- "line": number (the new-file line number shown before the "|")
- "body": string (concise, actionable feedback)
- "severity": "info" | "warning" | "error"

FOCUS ON:
- Bugs and logic errors (off-by-one, null handling, race conditions)
- Security vulnerabilities (injection, XSS, insecure crypto)
- Performance issues (N+1 queries, unnecessary loops, memory leaks)
- Correctness issues (wrong algorithm, broken edge cases)

IGNORE:
- console.log statements
- Hardcoded strings and secrets
- TODO/FIXME comments
- Naming conventions, code style and missing comments

Only comment on lines marked with "+".
Return {"comments": []} if you find no functional issues.
Respond ONLY with valid JSON, no markdown."""

_CODE_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class _AICommentModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    filename: str = Field(..., min_length=1)
    line: int = Field(..., ge=1)
    body: str = Field(..., min_length=1)
    severity: Severity = Severity.INFO

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> Severity:
        return Severity.parse(value)


class AIReviewLayer(ReviewLayer):
    """LangChain-based layer that asks an OpenAI-compatible chat model to review the diff."""

    name = "ai"

    def __init__(
        self,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        max_output_tokens: int = 2048,
        llm: Optional[Any] = None,
        enable_json_mode: bool = True,
        timeout: float = 30.0,
        context_lines: int = DEFAULT_CONTEXT_LINES,
        max_summary_lines: int = DEFAULT_MAX_LINES,
    ) -> None:
        self._timeout = timeout
        self._context_lines = context_lines
        self._max_summary_lines = max_summary_lines

        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{system_prompt}"),
                ("user", "Review the following code diff and provide feedback:\n\n{diff_summary}"),
            ]
        )

        if llm is None:
            llm_kwargs: dict[str, Any] = {"model": model, "temperature": temperature}
            if max_output_tokens:
                llm_kwargs["max_tokens"] = max_output_tokens
            llm = ChatOpenAI(**llm_kwargs)

        if enable_json_mode:
            llm = llm.bind(response_format={"type": "json_object"})
            logger.debug("JSON mode enabled for AI review layer.")

        self._chain = self._prompt | llm | StrOutputParser()

    async def analyze(self, diff: ParsedDiff) -> List[ReviewComment]:
        try:
            return await self.review(diff)
        except asyncio.TimeoutError:
            logger.warning(f"AI review call timed out after {self._timeout}s")
            return []
        except Exception as exc:
            logger.warning(f"AI review layer failed: {exc}", exc_info=exc)
            return []

    async def review(self, diff: ParsedDiff) -> List[ReviewComment]:
        """Summarise ``diff``, ask the model for comments and validate its reply. May raise."""
        summary = build_diff_summary(
            diff,
            context_lines=self._context_lines,
            max_lines=self._max_summary_lines,
        )
        if not summary.strip():
            logger.debug("Nothing reviewable in diff, skipping AI call")
            return []

        payload = {"system_prompt": SYSTEM_PROMPT, "diff_summary": summary}
        content = await asyncio.wait_for(self._chain.ainvoke(payload), timeout=self._timeout)
        return self.parse_response(content, diff)

    def parse_response(self, content: Optional[str], diff: ParsedDiff) -> List[ReviewComment]:
        """Validate the model's JSON reply against the files in ``diff``."""
        if not content or not content.strip():
            return []

        fenced = _CODE_FENCE_RE.match(content)
        if fenced:
            content = fenced.group(1)

        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            logger.warning("Failed to parse AI review response as JSON")
            return []

        raw_comments = data.get("comments") if isinstance(data, dict) else None
        if not isinstance(raw_comments, list):
            logger.warning("AI review response has no 'comments' array")
            return []

        known_files = diff.filenames
        comments: List[ReviewComment] = []
        for raw in raw_comments:
            if not isinstance(raw, dict):
                continue
            try:
                item = _AICommentModel.model_validate(raw)
            except ValidationError:
                continue
            if item.filename not in known_files:
                continue
            comments.append(
                ReviewComment(
                    filename=item.filename,
                    line=item.line,
                    body=item.body,
                    severity=item.severity,
                    source=self.name,
                )
            )

        discarded = len(raw_comments) - len(comments)
        if discarded:
            logger.debug(f"Discarded {discarded} invalid AI comment(s)")
        return comments
