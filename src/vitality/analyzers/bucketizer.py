"""Indexed commit and tag history for windowed queries.

The history is sorted and bucketed once so that each per-day query costs
O(1) amortized instead of a scan over every commit:

- calendar-day queries read a dict built in one pass over the records;
- the "authors before threshold" query keeps a frontier into the sorted
  commits plus a per-author commit counter. Moving the threshold only
  touches the commits it crosses, so walking the offsets from today into the
  past costs O(n) in total on top of the initial sort.

The qualifying commits for a threshold are always a prefix of the sorted
list. Moving the threshold back shrinks the prefix, and an author leaves the
set exactly when the last of their commits leaves it, so an author absent at
one threshold stays absent for every earlier threshold.
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone, tzinfo
from typing import NamedTuple

from vitality.exceptions import InputError
from vitality.models.schemas import CommitRecord, TagRecord

logger = logging.getLogger(__name__)


class ActivityCount(NamedTuple):
    """Commits and merges on one calendar day."""

    commits: int
    merges: int

    @property
    def total(self) -> int:
        return self.commits + self.merges


class HistoryBuckets:
    """Read-mostly index over one repository history.

    Calendar-day lookups are read-only and safe to call from several threads.
    ``authors_before`` moves the shared frontier and must be called from one
    thread; ``contributor_counts`` runs the whole sequential pass up front.
    """

    def __init__(
        self,
        commits: Iterable[CommitRecord],
        tags: Iterable[TagRecord] = (),
        tz: tzinfo = timezone.utc,
    ) -> None:
        self.tz = tz

        ordered = sorted(commits, key=lambda c: c.timestamp)
        self._timestamps: list[datetime] = [c.timestamp for c in ordered]
        self._authors: list[str] = [c.author for c in ordered]

        self._commits_by_date: dict[date, list[CommitRecord]] = defaultdict(list)
        for commit in ordered:
            self._commits_by_date[self.calendar_date(commit.timestamp)].append(commit)

        self._tags_by_date: dict[date, list[TagRecord]] = defaultdict(list)
        tag_count = 0
        for tag in tags:
            self._tags_by_date[self.calendar_date(tag.timestamp)].append(tag)
            tag_count += 1

        # Frontier state for authors_before: commits[:_frontier] are counted
        self._frontier = 0
        self._author_counts: Counter[str] = Counter()

        self.commit_count = len(ordered)
        self.tag_count = tag_count
        logger.debug(
            f"Bucketed {self.commit_count} commits over {len(self._commits_by_date)} days "
            f"and {tag_count} tags over {len(self._tags_by_date)} days"
        )

    @property
    def oldest(self) -> datetime | None:
        """Author time of the oldest commit, or None for an empty history."""
        return self._timestamps[0] if self._timestamps else None

    @property
    def newest(self) -> datetime | None:
        return self._timestamps[-1] if self._timestamps else None

    def calendar_date(self, instant: datetime) -> date:
        """Calendar date of ``instant`` in the reference time zone."""
        _require_aware(instant)
        return instant.astimezone(self.tz).date()

    # --- Cumulative window ---

    def authors_before(self, threshold: datetime) -> frozenset[str]:
        """Distinct authors of the commits strictly before ``threshold``."""
        self._advance(threshold)
        return frozenset(self._author_counts)

    def contributors_before(self, threshold: datetime) -> int:
        """Number of distinct authors strictly before ``threshold``."""
        self._advance(threshold)
        return len(self._author_counts)

    def contributor_counts(self, thresholds: Sequence[datetime]) -> list[int]:
        """Distinct-author counts for each threshold, in order.

        Cheapest when the thresholds are monotonic, as the offsets of a
        vitality series are.
        """
        return [self.contributors_before(t) for t in thresholds]

    def _advance(self, threshold: datetime) -> None:
        _require_aware(threshold)
        target = bisect_left(self._timestamps, threshold)

        while self._frontier > target:
            self._frontier -= 1
            author = self._authors[self._frontier]
            self._author_counts[author] -= 1
            if self._author_counts[author] == 0:
                del self._author_counts[author]

        while self._frontier < target:
            self._author_counts[self._authors[self._frontier]] += 1
            self._frontier += 1

    # --- Calendar-day windows ---

    def commits_on(self, day: date) -> tuple[CommitRecord, ...]:
        return tuple(self._commits_by_date.get(day, ()))

    def tags_on(self, day: date) -> tuple[TagRecord, ...]:
        return tuple(self._tags_by_date.get(day, ()))

    def count_on_date(self, day: date) -> ActivityCount:
        """Commits and merges whose author date is ``day``."""
        commits = self._commits_by_date.get(day, ())
        return ActivityCount(
            commits=len(commits),
            merges=sum(1 for c in commits if c.is_merge),
        )

    def count_tags_on_date(self, day: date) -> int:
        return len(self._tags_by_date.get(day, ()))


def _require_aware(instant: datetime) -> None:
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise InputError(f"Naive datetime {instant.isoformat()} needs a time zone")
