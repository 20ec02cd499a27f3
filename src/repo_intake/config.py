"""Layered settings for the GitHub client, governor, analytics and logging.

Built on pydantic-settings; see :class:`Settings` for the layer order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from repo_intake.models import (
    DEFAULT_API_BASE_URL,
    AttentionConfig,
    FetchOptions,
    IntakeConfig,
    TriageConfig,
)

# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class GitHubSettings(BaseModel):
    """Remote API and default fetch configuration."""

    api_base_url: str = DEFAULT_API_BASE_URL
    access_token: SecretStr | None = None
    state: Literal["open", "closed", "all"] = "all"
    per_page: int = Field(default=100, ge=1, le=100)
    max_results: int | None = Field(default=None, ge=1)
    branch: str = "main"
    timeout: float = Field(
        default=30.0, gt=0.0, description="Per-request timeout in seconds."
    )


class GovernorSettings(BaseModel):
    """Concurrency cap and retry budget for remote calls."""

    max_concurrency: int = Field(default=2, ge=1, le=32)
    max_retries: int = Field(default=2, ge=0, le=10)
    backoff_initial_seconds: float = Field(default=1.0, ge=0.0)
    backoff_max_seconds: float = Field(default=10.0, ge=0.0)


class AnalyticsSettings(BaseModel):
    """Default thresholds and label keywords for the analytics suite."""

    recency_window_days: int = Field(default=14, ge=0)
    stale_after_days: int = Field(default=7, ge=0)
    top_contributor_count: int = Field(default=3, ge=0)
    blocker_labels: list[str] = Field(
        default_factory=lambda: ["blocker", "critical", "p0", "urgent"]
    )
    onboarding_labels: list[str] = Field(
        default_factory=lambda: ["good first issue", "starter", "help wanted"]
    )
    security_labels: list[str] = Field(
        default_factory=lambda: ["security", "vulnerability", "cve"]
    )

    def intake_config(self) -> IntakeConfig:
        return IntakeConfig(recency_window_days=self.recency_window_days)

    def attention_config(self) -> AttentionConfig:
        return AttentionConfig(
            stale_after_days=self.stale_after_days,
            top_contributor_count=self.top_contributor_count,
        )

    def triage_config(self) -> TriageConfig:
        return TriageConfig(
            blocker_labels=self.blocker_labels,
            onboarding_labels=self.onboarding_labels,
            security_labels=self.security_labels,
        )


class LoggingSettings(BaseModel):
    """Logging / observability configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: Literal["console", "json"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Application settings for repo-intake.

    Later layers override earlier ones:

    1. field defaults above
    2. ``repo-intake.yaml`` in the working directory, or the ``--config`` file
    3. ``.env`` then real ``REPO_INTAKE_*`` environment variables
       (``REPO_INTAKE_GOVERNOR__MAX_RETRIES=5`` sets a nested field)
    4. keyword overrides passed to :meth:`load`, which the CLI uses
    """

    model_config = SettingsConfigDict(
        env_prefix="REPO_INTAKE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file="repo-intake.yaml",
        yaml_file_encoding="utf-8",
        extra="ignore",
    )

    _config_path_override: ClassVar[Path | None] = None

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    governor: GovernorSettings = Field(default_factory=GovernorSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Put the YAML file below env and dotenv; secret files are not read."""
        yaml_file = cls._config_path_override or settings_cls.model_config.get(
            "yaml_file", "repo-intake.yaml"
        )
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
        )

    @classmethod
    def load(cls, config_path: Path | None = None, **overrides: Any) -> Settings:
        """Resolve all layers, reading YAML from ``config_path`` when given.

        A missing YAML file is not an error; its layer is simply empty.

        Raises:
            ValidationError: If any resolved value is invalid.
        """
        cls._config_path_override = config_path
        try:
            return cls(**overrides)
        finally:
            cls._config_path_override = None

    def fetch_options(self, **overrides: Any) -> FetchOptions:
        """Build per-call ``FetchOptions`` from the GitHub settings.

        ``None`` values in ``overrides`` are ignored so unset CLI options
        fall through to the configured defaults.
        """
        values: dict[str, Any] = {
            "access_token": self.github.access_token,
            "state": self.github.state,
            "per_page": self.github.per_page,
            "max_results": self.github.max_results,
            "api_base_url": self.github.api_base_url,
            "branch": self.github.branch,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return FetchOptions(**values)


_SECRET_FIELDS = {"access_token"}


def format_validation_error(exc: ValidationError) -> str:
    """Render each validation error as ``  <dotted.path>: <message> (got <input>)``.

    Inputs of secret fields are never echoed back.
    """
    lines = ["Configuration error:"]
    for error in exc.errors():
        path = " -> ".join(str(part) for part in error["loc"])
        detail = f"  {path}: {error['msg']}"
        value = error.get("input")
        if value is not None and not _SECRET_FIELDS.intersection(map(str, error["loc"])):
            detail += f" (got {value!r})"
        lines.append(detail)
    return "\n".join(lines)
