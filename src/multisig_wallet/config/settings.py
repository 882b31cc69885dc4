"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``MULTISIG_``, nested via ``__``)
2. YAML config file (``MULTISIG_CONFIG_PATH`` env var or :meth:`AppConfig.from_yaml`)
3. Defaults defined here
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class ReproposalPolicy(enum.StrEnum):
    """What ``propose`` does when the transaction id is already in flight."""

    REJECT = "reject"
    OVERWRITE = "overwrite"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class WalletConfig(BaseSettings):
    """Default wallet policy used by the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="MULTISIG_WALLET__",
        case_sensitive=False,
    )

    default_threshold: int = Field(default=2, ge=1)
    default_signers: int = Field(default=3, ge=1)
    reproposal_policy: ReproposalPolicy = Field(
        default=ReproposalPolicy.REJECT,
        description="Re-proposal of an in-flight id: reject or overwrite",
    )

    @model_validator(mode="after")
    def _check_policy(self) -> Self:
        if self.default_threshold > self.default_signers:
            msg = (
                f"default_threshold ({self.default_threshold}) exceeds "
                f"default_signers ({self.default_signers})"
            )
            raise ValueError(msg)
        return self


class LoggingConfig(BaseSettings):
    """Log output settings (applied by the CLI only)."""

    model_config = SettingsConfigDict(
        env_prefix="MULTISIG_LOG__",
        case_sensitive=False,
    )

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            msg = f"unknown log level: {value}"
            raise ValueError(msg)
        return level


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="MULTISIG_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``MULTISIG_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="MULTISIG_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    version: str = "0.1.0"
    config_path: str = ""

    wallet: WalletConfig = Field(default_factory=WalletConfig)
    log: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))


def configure_logging(config: LoggingConfig) -> None:
    """Install a root handler at the configured level."""
    logging.basicConfig(level=config.level, format=config.format, force=True)
