"""Repository age validation against the start of the git era."""

import logging
from datetime import datetime, timezone
from enum import Enum

from vitality.analyzers.reducers import longevity_days
from vitality.exceptions import ValidationError

logger = logging.getLogger(__name__)

# git was first released in 2005; older first commits come from imported or
# rewritten history and would inflate the longevity score.
DOMAIN_EPOCH = datetime(2005, 1, 1, tzinfo=timezone.utc)


class EpochPolicy(str, Enum):
    """What to do when a repository predates the domain epoch."""

    WARN = "warn"  # Report a warning, score longevity as 0 points
    ABORT = "abort"  # Raise ValidationError and produce no series


class LongevityValidator:
    """Computes repository age once per invocation, rejecting pre-epoch histories."""

    def __init__(self, epoch: datetime = DOMAIN_EPOCH) -> None:
        self.epoch = epoch

    def validate(self, oldest: datetime | None, now: datetime) -> int:
        """Return the repository age in whole days.

        Args:
            oldest: Author time of the oldest commit, None for an empty history.
            now: The reference instant of the computation.

        Returns:
            Age in days; 0 when there are no commits.

        Raises:
            ValidationError: If the oldest commit is older than the epoch, i.e.
                its age exceeds the age the epoch has at ``now``.
        """
        if oldest is None:
            logger.debug("No commits; longevity is 0 days")
            return 0

        age = longevity_days(oldest, now)
        if oldest < self.epoch:
            raise ValidationError(
                f"repository predates domain epoch: first commit {oldest.isoformat()} "
                f"is before {self.epoch.date().isoformat()} ({age} days old)"
            )
        return age
