"""Abstract interface and implementations for ESP tag adapters.

Every email service provider represents a taxonomy (category, value) pair
as a tag in its own naming convention, and limits how many tags a contact
may carry.  ``PlatformAdapter`` is the common capability interface: tag
formatting plus ``apply_tags``/``remove_tags``/``get_tags``.  Concrete
adapters are chosen through a :class:`~sharpsend.platforms.registry.PlatformRegistry`
rather than by branching on the platform name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Mapping


class PlatformAdapter(ABC):
    """Abstract base class for ESP tag adapters.

    Implementations must define ``name``, ``max_tags`` and
    :meth:`format_tag`, and provide the three tag operations.  The operations
    return ``True`` on success; they may raise on transport errors, which
    callers syncing several platforms are expected to catch.
    """

    name: str = ""
    max_tags: int = 100

    @abstractmethod
    def format_tag(self, category: str, value: str) -> str:
        """Render one (category, value) pair in this platform's convention."""
        raise NotImplementedError

    def format_tags(self, mapping: Mapping[str, str]) -> List[str]:
        """Render every pair of ``mapping`` in its iteration order."""
        return [self.format_tag(category, value) for category, value in mapping.items()]

    @abstractmethod
    def apply_tags(self, subscriber_id: str, tags: List[str]) -> bool:
        raise NotImplementedError

    @abstractmethod
    def remove_tags(self, subscriber_id: str, tags: List[str]) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_tags(self, subscriber_id: str) -> List[str]:
        raise NotImplementedError


def trim_tags(tags: List[str], max_tags: int) -> List[str]:
    """Keep the first ``max_tags`` tags so a platform limit is respected."""
    if max_tags < 0:
        return []
    return list(tags[:max_tags])


__all__ = ["PlatformAdapter", "trim_tags"]
