"""Settings read from the environment (and a .env file, loaded by the CLI)."""

import os
from collections.abc import Mapping
from datetime import timezone, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pydantic
from pydantic import BaseModel, Field

from vitality.analyzers.longevity import EpochPolicy
from vitality.exceptions import ConfigError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Environment variable -> Settings field
ENV_VARS = {
    "VITALITY_RANGES_FILE": "ranges_file",
    "VITALITY_DAYS": "days",
    "VITALITY_TIMEZONE": "timezone",
    "VITALITY_WORKERS": "workers",
    "VITALITY_EPOCH_POLICY": "epoch_policy",
    "VITALITY_GIT_TIMEOUT": "git_timeout",
    "VITALITY_LOG_LEVEL": "log_level",
    "VITALITY_METRICS_FILE": "metrics_file",
}


class Settings(BaseModel):
    """Defaults for a vitality computation."""

    ranges_file: Path | None = None  # None: packaged ranges
    days: int = Field(default=60, gt=0)
    timezone: str = "UTC"
    workers: int = Field(default=1, ge=1)
    epoch_policy: EpochPolicy = EpochPolicy.WARN
    git_timeout: int = Field(default=300, gt=0)
    log_level: str = "WARNING"
    metrics_file: Path | None = None

    @pydantic.field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            resolve_timezone(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown time zone {value!r}") from e
        return value

    @pydantic.field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @pydantic.field_validator("epoch_policy", mode="before")
    @classmethod
    def _lower_policy(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value

    @property
    def tzinfo(self) -> tzinfo:
        return resolve_timezone(self.timezone)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``VITALITY_*`` environment variables.

        Raises:
            ConfigError: If a variable holds an invalid value.
        """
        environ = os.environ if environ is None else environ
        values = {
            field: environ[var]
            for var, field in ENV_VARS.items()
            if environ.get(var, "").strip()
        }
        try:
            return cls(**values)
        except pydantic.ValidationError as e:
            problems = "; ".join(
                f"{_env_name(err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"Invalid environment settings: {problems}") from e

    def with_overrides(self, **overrides: object) -> "Settings":
        """Return a validated copy with every non-None override applied.

        Raises:
            ConfigError: If an override holds an invalid value.
        """
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return type(self)(**values)
        except pydantic.ValidationError as e:
            problems = "; ".join(
                f"{err['loc'][0] if err['loc'] else 'settings'}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"Invalid settings: {problems}") from e


def resolve_timezone(name: str) -> tzinfo:
    """Time zone for an IANA name; UTC resolves without the tz database."""
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    return ZoneInfo(name)


def _env_name(loc: tuple) -> str:
    field = loc[0] if loc else ""
    for var, name in ENV_VARS.items():
        if name == field:
            return var
    return str(field)
