"""Segmentation engine: classification, fingerprinting and platform sync.

The engine wires together the pieces of the segmentation pipeline::

    subscriber data --classifier--> raw segments --classifier--> taxonomy mapping
        --codec--> fingerprint --registry--> platform tags --store/cache

It is constructed explicitly with its taxonomy, platform registry, optional
store and classifier (see :func:`sharpsend.app.build_engine`); nothing here
is created at import time.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Mapping, Optional

from sharpsend.platforms import trim_tags
from sharpsend.platforms.registry import PlatformRegistry
from sharpsend.storage.segment_store import SegmentStore

from .cache import SegmentCache
from .classifier import RuleBasedClassifier, SegmentClassifier
from .fingerprint import decode_fingerprint, encode_fingerprint
from .segment import MappedSegment
from .taxonomy import Taxonomy

LOGGER = logging.getLogger(__name__)


class SegmentNotFoundError(LookupError):
    """Raised when a fingerprint is neither cached nor stored."""


class SegmentationEngine:
    """Map subscribers to taxonomy fingerprints and push tags to ESPs."""

    def __init__(
        self,
        taxonomy: Taxonomy,
        registry: PlatformRegistry,
        store: Optional[SegmentStore] = None,
        classifier: Optional[SegmentClassifier] = None,
        cache: Optional[SegmentCache[MappedSegment]] = None,
        sync_delay: float = 0.1,
    ) -> None:
        self.taxonomy = taxonomy
        self.registry = registry
        self.store = store
        self.classifier = classifier or RuleBasedClassifier()
        self.cache: SegmentCache[MappedSegment] = cache if cache is not None else SegmentCache()
        self.sync_delay = sync_delay

    # ---------------------- pure helpers ----------------------
    def calculate_fingerprint(self, taxonomy_mapping: Mapping[str, str]) -> int:
        return encode_fingerprint(taxonomy_mapping, self.taxonomy)

    def decode_fingerprint(self, fingerprint: int, complete: bool = False) -> Dict[str, str]:
        return decode_fingerprint(fingerprint, self.taxonomy, complete=complete)

    def generate_platform_tags(self, taxonomy_mapping: Mapping[str, str]) -> Dict[str, List[str]]:
        return self.registry.platform_tags(taxonomy_mapping)

    def fingerprint_to_platform_tags(self, fingerprint: int, platform: str) -> List[str]:
        """Decode ``fingerprint`` and render it in ``platform``'s tag format."""
        return self.registry.format_tags(self.decode_fingerprint(fingerprint), platform)

    # ---------------------- segment lifecycle ----------------------
    def create_segments(self, publisher_id: str, subscriber_data: Mapping[str, Any]) -> List[MappedSegment]:
        """Classify ``subscriber_data`` and return one mapped segment per raw segment.

        Segments already cached under the same fingerprint are reused as-is;
        new ones are cached.  Every segment is saved for ``publisher_id`` when
        a store is configured, since the cache is shared across publishers.
        """
        mapped_segments: List[MappedSegment] = []
        for raw in self.classifier.generate_segments(subscriber_data):
            mapping = self.classifier.map_to_taxonomy(raw)
            fingerprint = self.calculate_fingerprint(mapping)

            cached = self.cache.get(fingerprint)
            if cached is not None:
                if self.store is not None:
                    self.store.save(publisher_id, cached)
                mapped_segments.append(cached)
                continue

            mapped = MappedSegment(
                raw_segment=raw.name,
                taxonomy_tags=mapping,
                fingerprint=fingerprint,
                platform_tags=self.generate_platform_tags(mapping),
                confidence=raw.confidence,
            )
            if self.store is not None:
                self.store.save(publisher_id, mapped)
            self.cache.put(fingerprint, mapped)
            mapped_segments.append(mapped)

        LOGGER.info(
            "Created %d segments for publisher %s", len(mapped_segments), publisher_id
        )
        return mapped_segments

    def get_segment_by_fingerprint(self, fingerprint: int) -> Optional[MappedSegment]:
        cached = self.cache.get(fingerprint)
        if cached is not None:
            return cached
        if self.store is None:
            return None
        segment = self.store.get_by_fingerprint(fingerprint)
        if segment is not None:
            self.cache.put(fingerprint, segment)
        return segment

    def sync_across_platforms(self, subscriber_id: str, fingerprint: int) -> Dict[str, bool]:
        """Apply the segment's tags on every registered platform.

        Returns:
            Platform name -> whether the tags were applied.

        Raises:
            SegmentNotFoundError: if ``fingerprint`` is unknown.
        """
        segment = self.get_segment_by_fingerprint(fingerprint)
        if segment is None:
            raise SegmentNotFoundError(f"Segment with fingerprint {fingerprint} not found")

        results: Dict[str, bool] = {}
        for adapter in self.registry:
            tags = trim_tags(segment.platform_tags.get(adapter.name, []), adapter.max_tags)
            if self.sync_delay > 0:
                time.sleep(self.sync_delay)
            try:
                results[adapter.name] = bool(adapter.apply_tags(subscriber_id, tags))
            except Exception as exc:
                LOGGER.error("Error syncing %s to %s: %s", subscriber_id, adapter.name, exc)
                results[adapter.name] = False
        return results


__all__ = ["SegmentNotFoundError", "SegmentationEngine"]
