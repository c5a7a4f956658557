"""Configuration loading and validation."""

from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

#: Pull-request volume that earns the celebratory timeline milestone.
PR_MILESTONE_THRESHOLD = 100


class SourceConfig(BaseModel):
    """Upstream platform the activity is fetched from."""

    kind: str = Field(pattern=r"^(azure_devops|github)$")
    organization: str | None = None
    project: str | None = None
    owner: str | None = None
    repo: str | None = None
    token_env: str | None = Field(
        default=None,
        description="Environment variable holding the access token",
    )
    max_repositories: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def validate_target(self) -> "SourceConfig":
        """Require the identifying fields for the selected platform."""
        errors = source_config_errors(self)
        if errors:
            raise ValueError(", ".join(errors))
        return self

    @property
    def project_name(self) -> str:
        """Display name used for the summary document."""
        if self.kind == "github":
            return f"{self.owner}/{self.repo}"
        return str(self.project)

    @property
    def default_token_env(self) -> str:
        """Environment variable consulted when ``token_env`` is not set."""
        if self.token_env:
            return self.token_env
        return "GITHUB_TOKEN" if self.kind == "github" else "AZURE_DEVOPS_PAT"


class WindowConfig(BaseModel):
    """Reporting period. Missing bounds are filled in by the orchestrator."""

    date_from: date | None = None
    date_to: date | None = None

    @model_validator(mode="after")
    def validate_order(self) -> "WindowConfig":
        """Validate that date_from is not after date_to."""
        if self.date_from and self.date_to and self.date_from > self.date_to:
            msg = f"date_from ({self.date_from}) must not be after date_to ({self.date_to})"
            raise ValueError(msg)
        return self


class HTTPConfig(BaseModel):
    """HTTP client behaviour for the source adapters."""

    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0, le=10)
    max_concurrency: int = Field(default=4, ge=1, le=16)


class SummarySettings(BaseModel):
    """Knobs for the summary pipeline."""

    version: str = "1.0"
    contributor_limit: int = Field(default=10, ge=1)
    module_limit: int = Field(default=6, ge=1)
    ranking_size: int = Field(default=5, ge=1)
    highlight_limit: int = Field(default=8, ge=0)
    fun_fact_limit: int = Field(default=6, ge=0)
    pr_milestone_threshold: int = Field(default=PR_MILESTONE_THRESHOLD, ge=1)


class StorageConfig(BaseModel):
    """Storage configuration section."""

    root: Path = Field(default=Path("./data"))


class Config(BaseModel):
    """Root configuration model."""

    source: SourceConfig
    window: WindowConfig = Field(default_factory=WindowConfig)
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    summary: SummarySettings = Field(default_factory=SummarySettings)
    storage: StorageConfig = Field(default_factory=StorageConfig)


def source_config_errors(source: SourceConfig) -> list[str]:
    """List the missing identifying fields for a source.

    Args:
        source: Source configuration to check.

    Returns:
        Human-readable error messages, empty when the source is complete.
    """
    errors: list[str] = []
    if source.kind == "azure_devops":
        if not (source.organization or "").strip():
            errors.append("Organization is required")
        if not (source.project or "").strip():
            errors.append("Project name is required")
    elif source.kind == "github":
        if not (source.owner or "").strip():
            errors.append("Repository owner is required")
        if not (source.repo or "").strip():
            errors.append("Repository name is required")
    return errors


def load_config(path: Path) -> Config:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValidationError: If the config is invalid.
    """
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open() as f:
        raw_config: dict[str, Any] = yaml.safe_load(f) or {}

    return Config.model_validate(raw_config)
