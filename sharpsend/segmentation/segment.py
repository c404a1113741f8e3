"""Value object produced by the segmentation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class MappedSegment:
    """A raw segment resolved to taxonomy tags, fingerprint and platform tags."""

    raw_segment: str
    taxonomy_tags: Dict[str, str]
    fingerprint: int
    platform_tags: Dict[str, List[str]] = field(default_factory=dict)
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_segment": self.raw_segment,
            "taxonomy_tags": dict(self.taxonomy_tags),
            "fingerprint": self.fingerprint,
            "platform_tags": {k: list(v) for k, v in self.platform_tags.items()},
            "confidence": self.confidence,
        }


__all__ = ["MappedSegment"]
