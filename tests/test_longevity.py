from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from vitality.analyzers.longevity import DOMAIN_EPOCH, LongevityValidator
from vitality.exceptions import ValidationError

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def test_pre_epoch_history_is_rejected() -> None:
    validator = LongevityValidator()
    with pytest.raises(ValidationError, match="predates domain epoch") as exc:
        validator.validate(datetime(2003, 5, 1, tzinfo=timezone.utc), NOW)
    assert exc.value.stage == "longevity"


def test_epoch_itself_is_accepted() -> None:
    age = LongevityValidator().validate(DOMAIN_EPOCH, NOW)
    assert age == (NOW - DOMAIN_EPOCH).days


def test_age_in_whole_days() -> None:
    assert LongevityValidator().validate(NOW - timedelta(days=400, hours=3), NOW) == 400


def test_empty_history_has_zero_age() -> None:
    assert LongevityValidator().validate(None, NOW) == 0


def test_custom_epoch() -> None:
    validator = LongevityValidator(epoch=datetime(2020, 1, 1, tzinfo=timezone.utc))
    with pytest.raises(ValidationError):
        validator.validate(datetime(2019, 12, 31, tzinfo=timezone.utc), NOW)
