"""Pydantic models for repository history and vitality scores."""

from datetime import date
from enum import Enum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator


class TableName(str, Enum):
    """Scoring tables, one per sub-metric."""

    USER_COMMUNITY = "userCommunity"
    CODE_ACTIVITY = "codeActivity"
    RELEASE_HISTORY = "releaseHistory"
    LONGEVITY = "longevity"


# --- History records ---


class CommitRecord(BaseModel):
    """A single commit as extracted from version control."""

    model_config = ConfigDict(frozen=True)

    author: str  # Author identity (email)
    timestamp: AwareDatetime  # Author time
    parent_count: int = Field(default=1, ge=0)
    sha: str | None = None

    @property
    def is_merge(self) -> bool:
        return self.parent_count > 1


class TagRecord(BaseModel):
    """A tag, reduced to the author time of the commit it resolves to."""

    model_config = ConfigDict(frozen=True)

    timestamp: AwareDatetime
    name: str | None = None


class RepoHistory(BaseModel):
    """Commit and tag records of one repository, immutable for a computation."""

    model_config = ConfigDict(frozen=True)

    commits: tuple[CommitRecord, ...] = ()
    tags: tuple[TagRecord, ...] = ()
    source: str | None = None


# --- Scoring ranges ---


class Range(BaseModel):
    """Half-open interval [min, max) mapped to a point value."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float
    points: float

    @model_validator(mode="after")
    def _check_bounds(self) -> "Range":
        if self.min > self.max:
            raise ValueError(f"range min {self.min} is greater than max {self.max}")
        return self

    def contains(self, value: float) -> bool:
        return self.min <= value < self.max


class ScoringTable(BaseModel):
    """Ordered ranges for one sub-metric."""

    model_config = ConfigDict(frozen=True)

    name: TableName
    ranges: tuple[Range, ...] = ()


# --- Results ---


class DailyScore(BaseModel):
    """Score breakdown for one day offset."""

    model_config = ConfigDict(frozen=True)

    offset: int = Field(ge=0)
    day: date
    contributors: int = 0
    activity: int = 0
    releases: int = 0
    longevity_days: int | None = None
    user_community_points: float = 0.0
    code_activity_points: float = 0.0
    release_history_points: float = 0.0
    longevity_points: float = 0.0
    score: float = 0.0


class VitalitySeries(BaseModel):
    """Dense, offset-ordered vitality scores (offset 0 is today)."""

    model_config = ConfigDict(frozen=True)

    daily: tuple[DailyScore, ...]

    @model_validator(mode="after")
    def _check_dense(self) -> "VitalitySeries":
        if not self.daily:
            raise ValueError("a vitality series needs at least one day")
        for expected, day in enumerate(self.daily):
            if day.offset != expected:
                raise ValueError(f"series offsets must be 0..{len(self.daily) - 1} in order")
        return self

    def __len__(self) -> int:
        return len(self.daily)

    def __getitem__(self, offset: int) -> float:
        if offset < 0:
            raise KeyError(offset)
        try:
            return self.daily[offset].score
        except IndexError:
            raise KeyError(offset) from None

    def items(self) -> list[tuple[int, float]]:
        """Ordered (offset, score) pairs."""
        return [(d.offset, d.score) for d in self.daily]

    @property
    def scores(self) -> dict[int, float]:
        return dict(self.items())

    @property
    def current(self) -> float:
        return self.daily[0].score


class VitalityReport(BaseModel):
    """Result of one vitality computation."""

    model_config = ConfigDict(frozen=True)

    repository: str | None = None
    days: int = Field(gt=0)
    reference_time: AwareDatetime
    timezone: str = "UTC"
    longevity_days: int | None = None
    series: VitalitySeries
    warnings: tuple[str, ...] = ()

    @property
    def current_score(self) -> float:
        return self.series.current


class RankedRepository(BaseModel):
    """One entry of a multi-repository ranking."""

    repository: str
    report: VitalityReport | None = None
    error: str | None = None
    stage: str | None = None

    @property
    def current_score(self) -> float | None:
        return self.report.current_score if self.report else None
