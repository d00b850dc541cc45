from __future__ import annotations

from datetime import timezone
from pathlib import Path
from zoneinfo import ZoneInfoNotFoundError

import pytest

from vitality.analyzers.longevity import EpochPolicy
from vitality.config import Settings, resolve_timezone
from vitality.exceptions import ConfigError


def test_defaults() -> None:
    settings = Settings.from_env({})

    assert settings.days == 60
    assert settings.timezone == "UTC"
    assert settings.tzinfo is timezone.utc
    assert settings.workers == 1
    assert settings.epoch_policy is EpochPolicy.WARN
    assert settings.ranges_file is None
    assert settings.log_level == "WARNING"


def test_values_from_environment() -> None:
    settings = Settings.from_env(
        {
            "VITALITY_DAYS": "90",
            "VITALITY_WORKERS": "4",
            "VITALITY_EPOCH_POLICY": "ABORT",
            "VITALITY_RANGES_FILE": "/etc/vitality/ranges.yml",
            "VITALITY_LOG_LEVEL": "debug",
            "VITALITY_TIMEZONE": "  ",
        }
    )

    assert settings.days == 90
    assert settings.workers == 4
    assert settings.epoch_policy is EpochPolicy.ABORT
    assert settings.ranges_file == Path("/etc/vitality/ranges.yml")
    assert settings.log_level == "DEBUG"
    assert settings.timezone == "UTC"


@pytest.mark.parametrize(
    "var, value",
    [
        ("VITALITY_DAYS", "0"),
        ("VITALITY_DAYS", "many"),
        ("VITALITY_WORKERS", "0"),
        ("VITALITY_EPOCH_POLICY", "ignore"),
        ("VITALITY_TIMEZONE", "Mars/Olympus_Mons"),
        ("VITALITY_LOG_LEVEL", "LOUD"),
    ],
)
def test_invalid_environment_names_the_variable(var: str, value: str) -> None:
    with pytest.raises(ConfigError, match=var):
        Settings.from_env({var: value})


def test_overrides_are_validated() -> None:
    settings = Settings.from_env({}).with_overrides(days=7, workers=None)
    assert settings.days == 7
    assert settings.workers == 1

    with pytest.raises(ConfigError, match="days"):
        settings.with_overrides(days=-1)


def test_resolve_timezone() -> None:
    assert resolve_timezone("utc") is timezone.utc
    with pytest.raises(ZoneInfoNotFoundError):
        resolve_timezone("Mars/Olympus_Mons")
