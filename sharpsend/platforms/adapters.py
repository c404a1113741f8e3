"""In-memory tag adapters for the supported ESPs.

These adapters keep a per-subscriber tag book in process memory and log
every operation.  They define each platform's tag naming convention and tag
limit, which is all the segmentation engine needs; pushing the tags to the
provider's contact API is left to the publisher's integration layer.

Tag conventions:

* Mailchimp – ``sharpsend_<category>_<value>`` (max 50 tags)
* ConvertKit – ``<category>:<value>`` (max 100 tags)
* SendGrid – ``ss-<category>-<value>`` (max 100 tags)
* anything else – ``<category>_<value>``
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List

from sharpsend.platforms import PlatformAdapter

LOGGER = logging.getLogger(__name__)


class InMemoryTagAdapter(PlatformAdapter):
    """Adapter that stores tags in a dict keyed by subscriber id."""

    def __init__(self) -> None:
        self._tags: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def apply_tags(self, subscriber_id: str, tags: List[str]) -> bool:
        LOGGER.info("[%s] Applying tags to %s: %s", self.name, subscriber_id, tags)
        with self._lock:
            current = self._tags.setdefault(subscriber_id, [])
            for tag in tags:
                if tag not in current:
                    current.append(tag)
        return True

    def remove_tags(self, subscriber_id: str, tags: List[str]) -> bool:
        LOGGER.info("[%s] Removing tags from %s: %s", self.name, subscriber_id, tags)
        drop = set(tags)
        with self._lock:
            current = self._tags.get(subscriber_id)
            if current is not None:
                self._tags[subscriber_id] = [t for t in current if t not in drop]
        return True

    def get_tags(self, subscriber_id: str) -> List[str]:
        with self._lock:
            return list(self._tags.get(subscriber_id, []))


class MailchimpAdapter(InMemoryTagAdapter):
    name = "mailchimp"
    max_tags = 50

    def format_tag(self, category: str, value: str) -> str:
        return f"sharpsend_{category}_{value}"


class ConvertKitAdapter(InMemoryTagAdapter):
    name = "convertkit"
    max_tags = 100

    def format_tag(self, category: str, value: str) -> str:
        return f"{category}:{value}"


class SendGridAdapter(InMemoryTagAdapter):
    name = "sendgrid"
    max_tags = 100

    def format_tag(self, category: str, value: str) -> str:
        return f"ss-{category}-{value}"


class DefaultAdapter(InMemoryTagAdapter):
    """Fallback convention for platforms without a dedicated adapter."""

    name = "default"
    max_tags = 100

    def format_tag(self, category: str, value: str) -> str:
        return f"{category}_{value}"


__all__ = [
    "ConvertKitAdapter",
    "DefaultAdapter",
    "InMemoryTagAdapter",
    "MailchimpAdapter",
    "SendGridAdapter",
]
