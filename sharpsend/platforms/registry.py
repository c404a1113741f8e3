"""Registry of platform adapters keyed by platform id."""

from __future__ import annotations

from typing import Dict, Iterator, List, Mapping, Optional

from sharpsend.platforms import PlatformAdapter
from sharpsend.platforms.adapters import (
    ConvertKitAdapter,
    DefaultAdapter,
    MailchimpAdapter,
    SendGridAdapter,
)


class PlatformRegistry:
    """Look up adapters by name, falling back to a default tag format.

    Unknown platform ids are not an error for formatting: tags are rendered
    with the fallback adapter's ``category_value`` convention.
    """

    def __init__(
        self,
        adapters: Optional[List[PlatformAdapter]] = None,
        fallback: Optional[PlatformAdapter] = None,
    ) -> None:
        self._adapters: Dict[str, PlatformAdapter] = {}
        self._fallback = fallback or DefaultAdapter()
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: PlatformAdapter) -> None:
        if not adapter.name:
            raise ValueError("Platform adapters must define a name")
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> Optional[PlatformAdapter]:
        return self._adapters.get(name)

    def names(self) -> List[str]:
        return list(self._adapters)

    def __contains__(self, name: object) -> bool:
        return name in self._adapters

    def __iter__(self) -> Iterator[PlatformAdapter]:
        return iter(list(self._adapters.values()))

    def __len__(self) -> int:
        return len(self._adapters)

    def format_tags(self, mapping: Mapping[str, str], platform: str) -> List[str]:
        adapter = self._adapters.get(platform, self._fallback)
        return adapter.format_tags(mapping)

    def platform_tags(self, mapping: Mapping[str, str]) -> Dict[str, List[str]]:
        """Render ``mapping`` for every registered platform."""
        return {name: adapter.format_tags(mapping) for name, adapter in self._adapters.items()}


def default_registry() -> PlatformRegistry:
    """Return a registry with the Mailchimp, ConvertKit and SendGrid adapters."""
    return PlatformRegistry([MailchimpAdapter(), ConvertKitAdapter(), SendGridAdapter()])


__all__ = ["PlatformRegistry", "default_registry"]
