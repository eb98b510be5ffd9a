"""Configuration management for Shehab."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shehab.errors import ConfigurationError, InvalidModelFormatError, ModelNotConfiguredError

DEFAULT_SYSTEM_PROMPT = """\
You are Shehab, the project manager bot for {project_name}.
You are talking to: {speaker}.
Use the tools directly. If you cannot, print the function call text like: get_file_tree()
"""


class ContextScope(StrEnum):
    """How inbound messages are partitioned into conversation histories."""

    # thread ts when replying in a thread, otherwise the whole channel
    THREAD = "thread"
    CHANNEL = "channel"
    # thread ts when replying in a thread, otherwise the message's own ts
    MESSAGE = "message"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SHEHAB_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model
    model: str | None = Field(default=None, description="provider:model, e.g. 'openai:gpt-4o-mini'")
    api_key: str | None = Field(default=None, description="API key for the LLM provider")
    api_base: str | None = Field(default=None, description="Optional API base URL")
    max_tokens: int = Field(default=1024, description="Maximum tokens for responses")
    model_timeout_seconds: float | None = Field(default=60, description="Timeout for one model call")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, description="System prompt template")

    # Agent
    history_limit: int = Field(default=20, ge=1, description="Turns kept per conversation context")
    context_scope: ContextScope = Field(default=ContextScope.THREAD)
    serialize_contexts: bool = Field(default=True, description="Run one respond() at a time per context")
    allowed_tools: list[str] | None = Field(default=None, description="Tools advertised to the model")

    # Integrations
    memory_path: Path = Field(default=Path("memory.json"))
    slack_bot_token: str | None = None
    slack_app_token: str | None = None
    github_token: str | None = None
    github_owner: str | None = None
    github_repo: str | None = None
    jira_host: str | None = None
    jira_email: str | None = None
    jira_api_token: str | None = None
    jira_project_key: str | None = None
    web_search_api_base: str = "https://ollama.com/api"
    web_search_api_key: str | None = None

    # Reports
    report_hour: int = Field(default=10, ge=0, le=23)
    report_minute: int = Field(default=0, ge=0, le=59)

    log_level: str = "INFO"

    def require_model(self) -> str:
        if not self.model:
            raise ModelNotConfiguredError("Model not configured. Set SHEHAB_MODEL (e.g., 'openai:gpt-4o-mini').")
        provider, separator, name = self.model.partition(":")
        if not separator or not provider or not name:
            raise InvalidModelFormatError(f"Model must be in provider:model format, got {self.model!r}")
        return self.model

    def require_slack_tokens(self) -> tuple[str, str]:
        if not self.slack_bot_token or not self.slack_app_token:
            raise ConfigurationError("Slack is not configured. Set SHEHAB_SLACK_BOT_TOKEN and SHEHAB_SLACK_APP_TOKEN.")
        return self.slack_bot_token, self.slack_app_token


def load_settings(**overrides: object) -> Settings:
    """Load settings from the environment and .env, applying explicit overrides."""
    settings = Settings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings
