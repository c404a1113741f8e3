from pathlib import Path
from typing import List

import pytest

from sharpsend.platforms.adapters import MailchimpAdapter
from sharpsend.platforms.registry import PlatformRegistry, default_registry
from sharpsend.segmentation.cache import SegmentCache
from sharpsend.segmentation.classifier import RawSegment, RuleBasedClassifier
from sharpsend.segmentation.engine import SegmentationEngine, SegmentNotFoundError
from sharpsend.segmentation.segment import MappedSegment
from sharpsend.segmentation.taxonomy import master_taxonomy
from sharpsend.storage.segment_store import SegmentStore

SUBSCRIBER = {"engagementScore": 80, "revenue": 5000}


def _engine(tmp_path: Path, registry: PlatformRegistry | None = None) -> SegmentationEngine:
    return SegmentationEngine(
        taxonomy=master_taxonomy(),
        registry=registry or default_registry(),
        store=SegmentStore(db_path=tmp_path / "segments.db"),
        sync_delay=0,
    )


def test_rule_based_classifier_segments() -> None:
    classifier = RuleBasedClassifier()
    segments = classifier.generate_segments({"engagement_score": 90, "revenue": "1500"})
    assert [s.name for s in segments] == ["Highly Engaged Power Users", "High Value Customers"]
    assert [s.confidence for s in segments] == [0.9, 0.95]

    assert classifier.generate_segments({"engagementScore": 50, "revenue": 10}) == []
    assert classifier.generate_segments({"engagementScore": "n/a"}) == []


def test_rule_based_taxonomy_mapping() -> None:
    classifier = RuleBasedClassifier()
    mapping = classifier.map_to_taxonomy(RawSegment("Risk-taking beginner value seekers", 0.5))
    assert mapping == {
        "valueSegment": "premium",
        "riskProfile": "aggressive",
        "sophistication": "beginner",
    }
    assert classifier.map_to_taxonomy(RawSegment("Anything else", 0.5)) == {}


def test_create_segments(tmp_path: Path) -> None:
    engine = _engine(tmp_path)

    segments = engine.create_segments("pub-1", SUBSCRIBER)

    assert [s.fingerprint for s in segments] == [3, 2 << 13]
    engaged = segments[0]
    assert engaged.raw_segment == "Highly Engaged Power Users"
    assert engaged.taxonomy_tags == {"engagement": "high"}
    assert engaged.platform_tags["mailchimp"] == ["sharpsend_engagement_high"]
    assert engaged.confidence == 0.9

    assert engine.store is not None
    assert engine.store.get_by_fingerprint(3, publisher_id="pub-1") is not None


def test_create_segments_reuses_cached_segment(tmp_path: Path) -> None:
    engine = _engine(tmp_path)
    first = engine.create_segments("pub-1", SUBSCRIBER)
    second = engine.create_segments("pub-1", SUBSCRIBER)
    assert all(a is b for a, b in zip(first, second))


def test_create_segments_saves_cached_segment_for_each_publisher(tmp_path: Path) -> None:
    engine = _engine(tmp_path)
    engine.create_segments("pub-1", SUBSCRIBER)
    engine.create_segments("pub-2", SUBSCRIBER)

    assert engine.store is not None
    assert len(engine.store.list_for_publisher("pub-1")) == 2
    assert len(engine.store.list_for_publisher("pub-2")) == 2


def test_get_segment_reads_through_store(tmp_path: Path) -> None:
    _engine(tmp_path).create_segments("pub-1", SUBSCRIBER)

    fresh = _engine(tmp_path)
    assert len(fresh.cache) == 0
    segment = fresh.get_segment_by_fingerprint(2 << 13)

    assert segment is not None
    assert segment.taxonomy_tags == {"valueSegment": "premium"}
    assert (2 << 13) in fresh.cache
    assert fresh.get_segment_by_fingerprint(999) is None


def test_engine_without_store() -> None:
    engine = SegmentationEngine(master_taxonomy(), default_registry(), sync_delay=0)
    segments = engine.create_segments("pub-1", SUBSCRIBER)
    assert len(segments) == 2
    assert engine.get_segment_by_fingerprint(3) is segments[0]
    assert engine.get_segment_by_fingerprint(1) is None


def test_fingerprint_to_platform_tags(tmp_path: Path) -> None:
    engine = _engine(tmp_path)
    fp = engine.calculate_fingerprint({"engagement": "high", "interest": "crypto"})
    assert fp == 11
    assert engine.decode_fingerprint(fp) == {"engagement": "high", "interest": "crypto"}
    assert engine.fingerprint_to_platform_tags(fp, "sendgrid") == [
        "ss-engagement-high",
        "ss-interest-crypto",
    ]
    assert engine.fingerprint_to_platform_tags(fp, "customerio") == [
        "engagement_high",
        "interest_crypto",
    ]


def test_sync_across_platforms(tmp_path: Path) -> None:
    engine = _engine(tmp_path)
    engine.create_segments("pub-1", SUBSCRIBER)

    results = engine.sync_across_platforms("sub-1", 3)

    assert results == {"mailchimp": True, "convertkit": True, "sendgrid": True}
    mailchimp = engine.registry.get("mailchimp")
    assert mailchimp is not None
    assert mailchimp.get_tags("sub-1") == ["sharpsend_engagement_high"]


def test_sync_unknown_fingerprint_raises(tmp_path: Path) -> None:
    with pytest.raises(SegmentNotFoundError):
        _engine(tmp_path).sync_across_platforms("sub-1", 12345)


def test_sync_reports_failing_platform(tmp_path: Path) -> None:
    class BrokenAdapter(MailchimpAdapter):
        name = "broken"

        def apply_tags(self, subscriber_id: str, tags: List[str]) -> bool:
            raise RuntimeError("ESP unavailable")

    registry = PlatformRegistry([MailchimpAdapter(), BrokenAdapter()])
    engine = _engine(tmp_path, registry)
    engine.create_segments("pub-1", SUBSCRIBER)

    assert engine.sync_across_platforms("sub-1", 3) == {"mailchimp": True, "broken": False}


def test_sync_respects_platform_tag_limit(tmp_path: Path) -> None:
    class TinyAdapter(MailchimpAdapter):
        max_tags = 1

    registry = PlatformRegistry([TinyAdapter()])
    engine = _engine(tmp_path, registry)
    mapping = {"engagement": "high", "interest": "crypto"}
    engine.cache.put(
        11,
        MappedSegment("Crypto fans", mapping, 11, engine.generate_platform_tags(mapping), 0.8),
    )

    engine.sync_across_platforms("sub-9", 11)

    adapter = registry.get("mailchimp")
    assert adapter is not None
    assert adapter.get_tags("sub-9") == ["sharpsend_engagement_high"]


def test_segment_cache_evicts_least_recently_used() -> None:
    cache: SegmentCache[str] = SegmentCache(max_entries=2)
    cache.put(1, "a")
    cache.put(2, "b")
    assert cache.get(1) == "a"
    cache.put(3, "c")

    assert 2 not in cache
    assert 1 in cache and 3 in cache
    cache.clear()
    assert len(cache) == 0


def test_unbounded_cache() -> None:
    cache: SegmentCache[int] = SegmentCache(max_entries=0)
    for i in range(50):
        cache.put(i, i)
    assert len(cache) == 50
