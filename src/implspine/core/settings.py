"""Settings for implspine.

Values come from, in order of precedence: explicit keyword arguments, a YAML
file passed to ``ImplspineSettings.from_yaml``, ``IMPLSPINE_*`` environment
variables, a ``.env`` file, then the defaults below.

Examples:
    >>> from implspine.core.settings import ImplspineSettings
    >>> settings = ImplspineSettings(docs_root="target/doc", root_path="../")
    >>> settings.docs_root
    PosixPath('target/doc')

Tags:
    settings, configuration, pydantic, environment, implspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from implspine.core.errors import ConfigError

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ImplspineSettings(BaseSettings):
    """Runtime configuration for loading and rendering implementor fragments.

    Fields
    ──────
    docs_root     : Generated documentation root holding ``implementors/``
    output_dir    : Where rendered implementor lists are written
    template_dir  : Optional directory overriding the bundled templates
    root_path     : Prefix applied to relative links in descriptor markup
    current_crate : Crate whose implementors are already on the page
    log_level     : structlog log level
    json_logs     : JSON log output (None means auto-detect from the TTY)
    service_name  : Service name stamped on every log line
    """

    model_config = SettingsConfigDict(
        env_prefix="IMPLSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Input / output ───────────────────────────────────────────
    docs_root: Path = Field(default_factory=lambda: Path("target/doc"))
    output_dir: Path = Field(default_factory=lambda: Path("docs/implementors"))
    template_dir: Path | None = None

    # ── Rendering ────────────────────────────────────────────────
    root_path: str = ""
    current_crate: str | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    service_name: str = "implspine"

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return level

    @classmethod
    def from_yaml(cls, yaml_path: Path | str, **overrides: Any) -> ImplspineSettings:
        """Load settings from a YAML file.

        Args:
            yaml_path: Path to YAML configuration file
            **overrides: Values taking precedence over the file

        Returns:
            ImplspineSettings instance

        Raises:
            ConfigError: If the file is unreadable, not a mapping, or invalid
        """
        path = Path(yaml_path)
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}", cause=e).with_context(source=str(path))

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping").with_context(source=str(path))

        data.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config file {path}: {e}", cause=e).with_context(source=str(path))

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a plain dictionary."""
        return self.model_dump(mode="json")


__all__ = ["ImplspineSettings"]
