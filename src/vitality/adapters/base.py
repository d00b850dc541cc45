"""Abstract base class for repository history sources."""

from abc import ABC, abstractmethod

from vitality.models.schemas import CommitRecord, RepoHistory, TagRecord


class BaseHistorySource(ABC):
    """Base class for history sources.

    Each source normalizes the commits and tags of one repository into
    CommitRecord and TagRecord. Sources fail loudly with VCSError rather than
    returning an empty history when the repository cannot be read.
    """

    @property
    @abstractmethod
    def label(self) -> str:
        """Human-readable name of the repository (usually its path)."""
        ...

    @abstractmethod
    def list_commits(self) -> list[CommitRecord]:
        """Return every commit reachable from the repository head, in any order.

        Raises:
            VCSError: If the history cannot be traversed.
        """
        ...

    @abstractmethod
    def list_tags(self) -> list[TagRecord]:
        """Return one record per tag whose target resolves to a commit.

        Raises:
            VCSError: If the tags cannot be listed.
        """
        ...

    def load_history(self) -> RepoHistory:
        """Extract commits and tags into one immutable history."""
        return RepoHistory(
            commits=tuple(self.list_commits()),
            tags=tuple(self.list_tags()),
            source=self.label,
        )
