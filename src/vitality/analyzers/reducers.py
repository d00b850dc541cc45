"""Sub-metric reducers: pure functions from a window of records to a number."""

from collections.abc import Collection, Iterable
from datetime import datetime

from vitality.models.schemas import CommitRecord, TagRecord

SECONDS_PER_DAY = 86_400


def contributor_breadth(authors: Collection[str]) -> int:
    """Number of distinct author identities."""
    return len(set(authors))


def code_activity(commits: Iterable[CommitRecord]) -> int:
    """Commits plus merges: a merge counts once as a commit and once as a merge."""
    total = 0
    for commit in commits:
        total += 2 if commit.is_merge else 1
    return total


def release_cadence(tags: Iterable[TagRecord]) -> int:
    """Number of releases (tags)."""
    return sum(1 for _ in tags)


def longevity_days(oldest: datetime, now: datetime) -> int:
    """Whole days between the oldest commit and ``now`` (never negative)."""
    seconds = (now - oldest).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // SECONDS_PER_DAY)
