"""History source backed by records already in memory or in a JSON export."""

import json
import logging
from collections.abc import Iterable
from pathlib import Path

import pydantic

from vitality.adapters.base import BaseHistorySource
from vitality.exceptions import VCSError
from vitality.models.schemas import CommitRecord, RepoHistory, TagRecord

logger = logging.getLogger(__name__)


class StaticHistorySource(BaseHistorySource):
    """Serves a fixed set of commit and tag records.

    Useful for histories exported from another system and for tests. The
    JSON form is the ``RepoHistory`` schema:
    ``{"source": ..., "commits": [{author, timestamp, parent_count}], "tags": [{timestamp}]}``.
    """

    def __init__(
        self,
        commits: Iterable[CommitRecord] = (),
        tags: Iterable[TagRecord] = (),
        label: str = "<memory>",
    ) -> None:
        self._commits = tuple(commits)
        self._tags = tuple(tags)
        self._label = label

    @property
    def label(self) -> str:
        return self._label

    def list_commits(self) -> list[CommitRecord]:
        return list(self._commits)

    def list_tags(self) -> list[TagRecord]:
        return list(self._tags)

    @classmethod
    def from_history(cls, history: RepoHistory) -> "StaticHistorySource":
        return cls(history.commits, history.tags, label=history.source or "<memory>")

    @classmethod
    def from_json(cls, path: Path) -> "StaticHistorySource":
        """Load a history export.

        Raises:
            VCSError: If the file is missing or does not match the schema.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise VCSError(f"cannot read history export: {e}", path=str(path)) from e
        except ValueError as e:
            raise VCSError(f"history export is not valid JSON: {e}", path=str(path)) from e

        try:
            history = RepoHistory.model_validate(data)
        except pydantic.ValidationError as e:
            raise VCSError(f"history export does not match the schema: {e.error_count()} errors", path=str(path)) from e

        logger.debug(f"Loaded {len(history.commits)} commits and {len(history.tags)} tags from {path}")
        return cls(history.commits, history.tags, label=history.source or str(path))
