from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from vitality.analyzers.bucketizer import HistoryBuckets
from vitality.exceptions import InputError
from vitality.models import CommitRecord, TagRecord


def _commit(author: str, when: datetime, parents: int = 1) -> CommitRecord:
    return CommitRecord(author=author, timestamp=when, parent_count=parents)


T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_authors_before_is_strict_and_cumulative() -> None:
    buckets = HistoryBuckets(
        [
            _commit("a@x", T0),
            _commit("b@x", T0 + timedelta(days=2)),
            _commit("a@x", T0 + timedelta(days=4)),
        ]
    )

    assert buckets.authors_before(T0 + timedelta(days=5)) == {"a@x", "b@x"}
    assert buckets.authors_before(T0 + timedelta(days=4)) == {"a@x", "b@x"}
    assert buckets.authors_before(T0 + timedelta(days=2)) == {"a@x"}
    assert buckets.authors_before(T0) == frozenset()


def test_author_removed_going_back_never_reappears() -> None:
    commits = [
        _commit("old@x", T0),
        _commit("new@x", T0 + timedelta(days=10)),
        _commit("new@x", T0 + timedelta(days=12)),
        _commit("old@x", T0 + timedelta(days=3)),
    ]
    buckets = HistoryBuckets(commits)

    thresholds = [T0 + timedelta(days=20) - timedelta(days=o) for o in range(25)]
    seen_absent: set[str] = set()
    for threshold in thresholds:
        authors = buckets.authors_before(threshold)
        assert not (authors & seen_absent)
        seen_absent |= {"old@x", "new@x"} - authors


def test_frontier_moves_both_ways() -> None:
    buckets = HistoryBuckets([_commit("a@x", T0), _commit("b@x", T0 + timedelta(days=1))])

    assert buckets.contributors_before(T0) == 0
    assert buckets.contributors_before(T0 + timedelta(days=3)) == 2
    assert buckets.contributors_before(T0 + timedelta(hours=1)) == 1
    assert buckets.contributor_counts(
        [T0 + timedelta(days=3), T0 + timedelta(hours=1), T0]
    ) == [2, 1, 0]


def test_unsorted_input_is_sorted() -> None:
    late = _commit("late@x", T0 + timedelta(days=9))
    early = _commit("early@x", T0)
    buckets = HistoryBuckets([late, early])

    assert buckets.oldest == early.timestamp
    assert buckets.newest == late.timestamp
    assert buckets.commit_count == 2


def test_date_buckets_count_commits_merges_and_tags() -> None:
    day = date(2024, 3, 1)
    buckets = HistoryBuckets(
        [
            _commit("a@x", T0),
            _commit("b@x", T0 + timedelta(hours=5), parents=2),
            _commit("a@x", T0 + timedelta(days=1)),
        ],
        tags=[TagRecord(timestamp=T0 + timedelta(hours=1)), TagRecord(timestamp=T0 + timedelta(days=1))],
    )

    counts = buckets.count_on_date(day)
    assert counts.commits == 2
    assert counts.merges == 1
    assert counts.total == 3
    assert len(buckets.commits_on(day)) == 2
    assert buckets.count_tags_on_date(day) == 1
    assert len(buckets.tags_on(date(2024, 3, 2))) == 1
    assert buckets.count_on_date(date(2024, 2, 29)).total == 0
    assert buckets.tag_count == 2


def test_calendar_date_uses_reference_zone() -> None:
    late_evening_utc = datetime(2024, 3, 1, 23, 30, tzinfo=timezone.utc)
    utc = HistoryBuckets([_commit("a@x", late_evening_utc)])
    tokyo = HistoryBuckets([_commit("a@x", late_evening_utc)], tz=timezone(timedelta(hours=9)))

    assert utc.count_on_date(date(2024, 3, 1)).commits == 1
    assert tokyo.count_on_date(date(2024, 3, 1)).commits == 0
    assert tokyo.count_on_date(date(2024, 3, 2)).commits == 1


def test_empty_history() -> None:
    buckets = HistoryBuckets([])

    assert buckets.oldest is None
    assert buckets.newest is None
    assert buckets.authors_before(T0) == frozenset()
    assert buckets.count_on_date(T0.date()).total == 0


def test_naive_threshold_is_rejected() -> None:
    buckets = HistoryBuckets([_commit("a@x", T0)])
    with pytest.raises(InputError):
        buckets.authors_before(datetime(2024, 3, 1))
