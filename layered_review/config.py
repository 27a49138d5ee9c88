from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field  # type: ignore[import]
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore[import]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True)

    llm_provider: Literal["openai", "azure-openai"] = Field(default="openai", alias="LLM_PROVIDER")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_base_url: Optional[str] = Field(
        default=None, alias="OPENAI_BASE_URL", description="OpenAI-compatible endpoint, e.g. Groq"
    )
    openai_temperature: float = Field(default=0.2)
    max_output_tokens: int = Field(default=2048, alias="MAX_OUTPUT_TOKENS")

    azure_openai_api_key: Optional[str] = Field(default=None, alias="AZURE_OPENAI_API_KEY")
    azure_openai_endpoint: Optional[str] = Field(default=None, alias="AZURE_OPENAI_ENDPOINT")
    azure_openai_deployment: Optional[str] = Field(default=None, alias="AZURE_OPENAI_DEPLOYMENT")
    azure_openai_api_version: str = Field(default="2024-06-01", alias="AZURE_OPENAI_API_VERSION")

    github_token: Optional[str] = Field(default=None, alias="GITHUB_TOKEN")
    github_webhook_secret: Optional[str] = Field(default=None, alias="GITHUB_WEBHOOK_SECRET")
    github_api_url: str = Field(default="https://api.github.com", alias="GITHUB_API_URL")
    github_timeout_seconds: float = Field(default=10.0)
    max_review_comments: int = Field(default=30, ge=1, description="Platform limit on inline comments per review")

    repo_path: Optional[Path] = Field(default=None, description="Local clone used to compute diffs when no GitHub token is set")

    enable_pattern_layer: bool = Field(default=True)
    enable_heuristic_layer: bool = Field(default=True)
    enable_ai_layer: bool = Field(default=True)
    layer_timeout_seconds: float = Field(default=60.0, gt=0)

    max_function_lines: int = Field(default=50, ge=1)
    max_file_churn: int = Field(default=300, ge=1)
    max_nesting_depth: int = Field(default=4, ge=0)
    max_total_additions: int = Field(default=500, ge=1)

    ai_context_lines: int = Field(default=3, ge=0)
    ai_max_summary_lines: int = Field(default=400, ge=1)
    ai_timeout_seconds: float = Field(default=30.0, gt=0)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    console_width: Optional[int] = Field(default=None, description="Override console width for Rich output")

    @property
    def has_llm_credentials(self) -> bool:
        if self.llm_provider == "azure-openai":
            return bool(self.azure_openai_api_key and self.azure_openai_endpoint and self.azure_openai_deployment)
        return bool(self.openai_api_key)


settings = Settings()
