"""Environment-driven settings for the lifecycle controller.

The Lambda function, the registration agent and the CLI all read the same
variables. Field names map one-to-one onto environment variables
(``scalelite_api_base_url`` ← ``SCALELITE_API_BASE_URL``); a ``.env`` file in
the working directory is honoured for local runs.

Examples:
    >>> from node_lifecycle.core.settings import load_settings
    >>> settings = load_settings()          # raises ConfigurationError if incomplete
    >>> settings.request_timeout_seconds
    15.0

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from node_lifecycle.core.errors import ConfigurationError


class LifecycleSettings(BaseSettings):
    """Settings shared by the Lambda handler, agent and CLI.

    Fields
    ──────
    scalelite_api_base_url : Registry API root, e.g. ``https://lb.example.com/scalelite/api``
    shared_secret_arn      : Secrets Manager id holding ``{"secret": "..."}``
    aws_region             : Region for all boto3 clients
    shared_secret_key      : JSON key inside the secret document
    request_timeout_seconds: Bound on every single network call
    hook_timeout_seconds   : Lifecycle hook heartbeat window
    deadline_safety_margin_seconds : Reserved for the report call
    node_api_scheme / node_api_path : Canonical registration URL parts
    max_workers            : Records handled concurrently per event
    log_level / log_json   : Logging configuration
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Required ─────────────────────────────────────────────────
    scalelite_api_base_url: str
    shared_secret_arn: str
    aws_region: str

    # ── Secret store ─────────────────────────────────────────────
    shared_secret_key: str = "secret"

    # ── Timing ───────────────────────────────────────────────────
    request_timeout_seconds: float = Field(default=15.0, gt=0)
    hook_timeout_seconds: float = Field(default=300.0, gt=0)
    deadline_safety_margin_seconds: float = Field(default=10.0, ge=0)

    # ── Registration address ─────────────────────────────────────
    node_api_scheme: str = "http"
    node_api_path: str = "/bigbluebutton/api"

    # ── Concurrency ──────────────────────────────────────────────
    max_workers: int = Field(default=1, ge=1)

    # ── Observability ────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_json: bool | None = None

    @field_validator("scalelite_api_base_url", "shared_secret_arn", "aws_region")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("scalelite_api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("node_api_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"

    @property
    def reconcile_budget_seconds(self) -> float:
        """Time the reconciler may spend before the report must go out."""
        return max(self.hook_timeout_seconds - self.deadline_safety_margin_seconds, 0.0)


def load_settings(**overrides: object) -> LifecycleSettings:
    """Load settings from the environment.

    Raises:
        ConfigurationError: If a required variable is missing or a value is invalid
    """
    try:
        return LifecycleSettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        fields = [".".join(str(p) for p in err["loc"]) or "?" for err in exc.errors()]
        missing = [f.upper() for f in fields]
        raise ConfigurationError(
            f"Invalid or missing configuration: {', '.join(missing)}",
            missing=missing,
            cause=exc,
        ) from exc
