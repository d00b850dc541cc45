"""Vitality score calculator."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone, tzinfo

from vitality.analyzers.bucketizer import HistoryBuckets
from vitality.analyzers.longevity import EpochPolicy, LongevityValidator
from vitality.analyzers.ranges import RangeTable
from vitality.analyzers.reducers import code_activity, release_cadence
from vitality.exceptions import InputError, ValidationError
from vitality.models.schemas import (
    DailyScore,
    RepoHistory,
    TableName,
    VitalityReport,
    VitalitySeries,
)
from vitality.monitoring import MetricsCollector, StageTimer

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Calculates a daily vitality series from an in-memory history.

    Each day offset scores four sub-metrics, summed in this order:
    - userCommunity: distinct authors of all commits before the day's threshold
    - codeActivity: commits plus merges authored on the day
    - releaseHistory: tags resolving to commits authored on the day
    - longevity: repository age in days (constant over the series)

    The contributor window is cumulative while the activity and release
    windows cover a single calendar day.
    """

    def __init__(
        self,
        ranges: RangeTable,
        tz: tzinfo = timezone.utc,
        epoch_policy: EpochPolicy = EpochPolicy.WARN,
        workers: int = 1,
        metrics: MetricsCollector | None = None,
        validator: LongevityValidator | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            ranges: Scoring tables, loaded once and shared by every lookup.
            tz: Time zone that defines calendar days.
            epoch_policy: Reaction to a history older than the domain epoch.
            workers: Threads used to score days; 1 scores sequentially.
            metrics: Optional collector for lookup counters and stage timings.
            validator: Longevity validator (defaults to the 2005 epoch).
        """
        if workers < 1:
            raise InputError(f"workers must be at least 1, got {workers}")
        self.ranges = ranges
        self.tz = tz
        self.epoch_policy = epoch_policy
        self.workers = workers
        self.metrics = metrics
        self.validator = validator or LongevityValidator()

    def compute_series(
        self,
        history: RepoHistory,
        days: int,
        now: datetime | None = None,
    ) -> VitalityReport:
        """Score ``days`` day offsets, offset 0 being ``now``.

        Args:
            history: Commit and tag records of the repository.
            days: Number of offsets to score; must be positive.
            now: Reference instant. Captured once from the clock when omitted.

        Returns:
            VitalityReport whose series covers offsets 0..days-1.

        Raises:
            InputError: If days is not a positive int or reaches before year 1,
                history is missing, or now is naive.
            ValidationError: If the history predates the epoch and the policy
                is ABORT.
        """
        if history is None:
            raise InputError("A repository history is required")
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise InputError(f"days must be a positive integer, got {days!r}")
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None or now.utcoffset() is None:
            raise InputError("The reference time needs a time zone")
        try:
            now.astimezone(self.tz) - timedelta(days=days - 1)
        except OverflowError as e:
            raise InputError(f"days={days} reaches past the earliest representable date") from e

        with StageTimer(self.metrics, "bucketize"):
            buckets = HistoryBuckets(history.commits, history.tags, tz=self.tz)

        warnings: list[str] = []
        age = self._validate_longevity(buckets, now, warnings)
        longevity_points = 0.0
        if age is not None:
            longevity_points = self.ranges.lookup(TableName.LONGEVITY, age, self.metrics)

        local_now = now.astimezone(self.tz)
        thresholds = [local_now - timedelta(days=offset) for offset in range(days)]

        # The cumulative author window is one sequential frontier walk; everything after it is per-day
        with StageTimer(self.metrics, "contributors"):
            contributors = buckets.contributor_counts(thresholds)

        def score_day(offset: int) -> DailyScore:
            return self._score_day(
                buckets,
                offset,
                thresholds[offset],
                contributors[offset],
                age,
                longevity_points,
            )

        with StageTimer(self.metrics, "score_days"):
            if self.workers > 1 and days > 1:
                with ThreadPoolExecutor(max_workers=self.workers) as ex:
                    daily = list(ex.map(score_day, range(days)))
            else:
                daily = [score_day(offset) for offset in range(days)]

        report = VitalityReport(
            repository=history.source,
            days=days,
            reference_time=now,
            timezone=str(self.tz),
            longevity_days=age,
            series=VitalitySeries(daily=tuple(daily)),
            warnings=tuple(warnings),
        )
        if self.metrics is not None:
            self.metrics.record_scored(days)
        logger.info(
            f"Scored {days} days for {history.source or 'history'}: "
            f"current score {report.current_score:g}"
        )
        return report

    def _validate_longevity(
        self,
        buckets: HistoryBuckets,
        now: datetime,
        warnings: list[str],
    ) -> int | None:
        """Repository age in days, or None when the epoch check failed under WARN."""
        try:
            return self.validator.validate(buckets.oldest, now)
        except ValidationError as e:
            if self.epoch_policy is EpochPolicy.ABORT:
                raise
            logger.warning(f"{e.message}; scoring longevity as 0 points")
            warnings.append(e.message)
            if self.metrics is not None:
                self.metrics.record_warning(e.message)
            return None

    def _score_day(
        self,
        buckets: HistoryBuckets,
        offset: int,
        threshold: datetime,
        contributors: int,
        age: int | None,
        longevity_points: float,
    ) -> DailyScore:
        day = buckets.calendar_date(threshold)
        activity = code_activity(buckets.commits_on(day))
        releases = release_cadence(buckets.tags_on(day))

        user_community = self.ranges.lookup(TableName.USER_COMMUNITY, contributors, self.metrics)
        code = self.ranges.lookup(TableName.CODE_ACTIVITY, activity, self.metrics)
        release = self.ranges.lookup(TableName.RELEASE_HISTORY, releases, self.metrics)

        return DailyScore(
            offset=offset,
            day=day,
            contributors=contributors,
            activity=activity,
            releases=releases,
            longevity_days=age,
            user_community_points=user_community,
            code_activity_points=code,
            release_history_points=release,
            longevity_points=longevity_points,
            score=user_community + code + release + longevity_points,
        )
