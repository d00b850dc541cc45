"""End-to-end vitality pipeline for repositories."""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone, tzinfo
from pathlib import Path

from vitality.adapters.base import BaseHistorySource
from vitality.adapters.git import GitHistorySource
from vitality.analyzers.longevity import EpochPolicy
from vitality.analyzers.ranges import RangeTable, load_default_ranges, load_ranges
from vitality.analyzers.scorer import ScoringEngine
from vitality.exceptions import InputError, VCSError, VitalityError
from vitality.models.schemas import RankedRepository, RepoHistory, VitalityReport, VitalitySeries
from vitality.monitoring import MetricsCollector, StageTimer

logger = logging.getLogger(__name__)

SourceFactory = Callable[[str], BaseHistorySource]


class ActivityPipeline:
    """Orchestrates one vitality computation per repository.

    Pipeline stages:
    1. Validate arguments
    2. Load the scoring ranges (once per invocation)
    3. Extract commits and tags from the history source
    4. Score the series

    A failure in any stage aborts the invocation with the stage named on
    the raised VitalityError; nothing is retried and no stage falls back to
    an empty history.
    """

    def __init__(
        self,
        ranges_file: Path | None = None,
        tz: tzinfo = timezone.utc,
        epoch_policy: EpochPolicy = EpochPolicy.WARN,
        workers: int = 1,
        git_timeout: int = 300,
        metrics: MetricsCollector | None = None,
        source_factory: SourceFactory | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            ranges_file: YAML ranges file. Defaults to the packaged ranges.
            tz: Time zone that defines calendar days.
            epoch_policy: Reaction to a history older than the domain epoch.
            workers: Threads used to score days.
            git_timeout: Seconds allowed for each git command.
            metrics: Optional metrics collector.
            source_factory: Builds the history source for a repository path.
                Defaults to GitHistorySource.
        """
        self.ranges_file = ranges_file
        self.tz = tz
        self.epoch_policy = epoch_policy
        self.workers = workers
        self.git_timeout = git_timeout
        self.metrics = metrics
        self.source_factory = source_factory or self._git_source

    def _git_source(self, path: str) -> BaseHistorySource:
        return GitHistorySource(path, timeout_s=self.git_timeout)

    def load_ranges(self) -> RangeTable:
        """Load the scoring ranges for one invocation."""
        with StageTimer(self.metrics, "config"):
            if self.ranges_file is None:
                return load_default_ranges()
            return load_ranges(self.ranges_file)

    def analyze_repository(
        self,
        repository_path: str | Path,
        days: int,
        now: datetime | None = None,
        ranges: RangeTable | None = None,
    ) -> VitalityReport:
        """Compute the vitality series of one repository.

        Args:
            repository_path: Path of the local clone.
            days: Number of day offsets to score.
            now: Reference instant; captured from the clock when omitted.
            ranges: Already-loaded ranges (loaded from ranges_file when omitted).

        Returns:
            The VitalityReport for the repository.

        Raises:
            InputError: Empty path or non-positive days.
            ConfigError: Ranges file missing or malformed.
            VCSError: Repository missing, unreadable or empty.
            ValidationError: Pre-epoch history under EpochPolicy.ABORT.
        """
        path = str(repository_path).strip() if repository_path is not None else ""
        try:
            if not path:
                raise InputError("A repository path is required")
            if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
                raise InputError(f"days must be a positive integer, got {days!r}")

            if ranges is None:
                ranges = self.load_ranges()

            logger.debug(f"Extracting history from {path}")
            with StageTimer(self.metrics, "vcs"):
                history = self._extract(path)
            logger.info(f"Extracted {len(history.commits)} commits and {len(history.tags)} tags from {path}")

            engine = ScoringEngine(
                ranges,
                tz=self.tz,
                epoch_policy=self.epoch_policy,
                workers=self.workers,
                metrics=self.metrics,
            )
            with StageTimer(self.metrics, "scoring"):
                return engine.compute_series(history, days, now=now)
        except VitalityError as e:
            if self.metrics is not None:
                self.metrics.record_error(path, e.stage, type(e).__name__, e.message)
            raise

    def _extract(self, path: str) -> RepoHistory:
        source = self.source_factory(path)
        try:
            return source.load_history()
        except VitalityError:
            raise
        except OSError as e:
            raise VCSError(f"cannot read history: {e}", path=path) from e

    def rank_repositories(
        self,
        repository_paths: Iterable[str | Path],
        days: int,
        now: datetime | None = None,
        progress_callback: Callable[[int, int, str], None] | None = None,
    ) -> list[RankedRepository]:
        """Score several repositories and rank them by current score.

        Ranges and the reference instant are shared by every repository so the
        scores are comparable. A repository that fails is kept in the result
        with its error and stage, after every scored repository.

        Args:
            repository_paths: Local clones to score.
            days: Number of day offsets per repository.
            now: Reference instant shared by all repositories.
            progress_callback: Optional callback(current, total, path).

        Raises:
            InputError: If days is not positive.
            ConfigError: If the ranges cannot be loaded.
        """
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise InputError(f"days must be a positive integer, got {days!r}")
        ranges = self.load_ranges()
        if now is None:
            now = datetime.now(timezone.utc)

        paths = [str(p) for p in repository_paths]
        results: list[RankedRepository] = []
        for i, path in enumerate(paths):
            if progress_callback:
                progress_callback(i + 1, len(paths), path)
            try:
                report = self.analyze_repository(path, days, now=now, ranges=ranges)
                results.append(RankedRepository(repository=path, report=report))
            except VitalityError as e:
                # Fatal for this repository only
                logger.error(f"Could not score {path}: {e}")
                results.append(RankedRepository(repository=path, error=e.message, stage=e.stage))

        scored = sorted(
            (r for r in results if r.report is not None),
            key=lambda r: r.current_score,
            reverse=True,
        )
        failed = [r for r in results if r.report is None]
        return scored + failed


def compute_series(
    repository_path: str | Path,
    days: int,
    now: datetime | None = None,
    **options,
) -> tuple[float, VitalitySeries]:
    """Score a repository and return ``(current_score, series)``.

    ``options`` are passed to ActivityPipeline. Errors are raised as
    VitalityError subclasses naming the failing stage.
    """
    report = ActivityPipeline(**options).analyze_repository(repository_path, days, now=now)
    return report.current_score, report.series
