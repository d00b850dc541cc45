"""Repository history sources."""

from vitality.adapters.base import BaseHistorySource
from vitality.adapters.git import GitHistorySource
from vitality.adapters.static import StaticHistorySource

__all__ = ["BaseHistorySource", "GitHistorySource", "StaticHistorySource"]
