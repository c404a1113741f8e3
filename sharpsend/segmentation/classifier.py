"""Subscriber classification into raw segments and taxonomy mappings.

The segmentation engine never decides which taxonomy values a subscriber
gets; it asks an injected ``SegmentClassifier``.  ``RuleBasedClassifier``
implements a small set of deterministic rules on engagement score, revenue
and segment name keywords.  Model-backed classifiers can implement the same
interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class RawSegment:
    name: str
    confidence: float
    reasoning: str = ""


class SegmentClassifier(ABC):
    """Abstract base class for subscriber classifiers."""

    @abstractmethod
    def generate_segments(self, subscriber_data: Mapping[str, Any]) -> List[RawSegment]:
        """Derive named segments from raw subscriber attributes."""
        raise NotImplementedError

    @abstractmethod
    def map_to_taxonomy(self, segment: RawSegment) -> Dict[str, str]:
        """Map one raw segment to category -> value names."""
        raise NotImplementedError


def _number(data: Mapping[str, Any], *keys: str) -> Optional[float]:
    """Return the first numeric value found under ``keys``."""
    for key in keys:
        raw = data.get(key)
        if raw is None or isinstance(raw, bool):
            continue
        try:
            return float(raw)
        except (TypeError, ValueError):
            continue
    return None


# keyword in lower-cased segment name -> (category, value)
KEYWORD_RULES = [
    ("engage", ("engagement", "high")),
    ("value", ("valueSegment", "premium")),
    ("risk", ("riskProfile", "aggressive")),
    ("beginner", ("sophistication", "beginner")),
]


class RuleBasedClassifier(SegmentClassifier):
    """Threshold and keyword rules; used when no model is configured."""

    def __init__(self, engagement_threshold: float = 75.0, revenue_threshold: float = 1000.0) -> None:
        self.engagement_threshold = engagement_threshold
        self.revenue_threshold = revenue_threshold

    def generate_segments(self, subscriber_data: Mapping[str, Any]) -> List[RawSegment]:
        segments: List[RawSegment] = []

        engagement = _number(subscriber_data, "engagementScore", "engagement_score")
        if engagement is not None and engagement > self.engagement_threshold:
            segments.append(
                RawSegment(
                    "Highly Engaged Power Users",
                    0.9,
                    "High engagement score indicates active user",
                )
            )

        revenue = _number(subscriber_data, "revenue")
        if revenue is not None and revenue > self.revenue_threshold:
            segments.append(
                RawSegment(
                    "High Value Customers",
                    0.95,
                    "Revenue exceeds high-value threshold",
                )
            )

        return segments

    def map_to_taxonomy(self, segment: RawSegment) -> Dict[str, str]:
        name = segment.name.lower()
        mapping: Dict[str, str] = {}
        for keyword, (category, value) in KEYWORD_RULES:
            if keyword in name:
                mapping[category] = value
        return mapping


__all__ = ["KEYWORD_RULES", "RawSegment", "RuleBasedClassifier", "SegmentClassifier"]
