from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from sharpsend.api.server import create_app
from sharpsend.platforms.registry import default_registry
from sharpsend.segmentation.engine import SegmentationEngine
from sharpsend.segmentation.taxonomy import master_taxonomy
from sharpsend.storage.segment_store import SegmentStore


@pytest.fixture
def client(tmp_path: Path) -> TestClient:
    engine = SegmentationEngine(
        taxonomy=master_taxonomy(),
        registry=default_registry(),
        store=SegmentStore(db_path=tmp_path / "segments.db"),
        sync_delay=0,
    )
    return TestClient(create_app(engine))


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["categories"] == 6
    assert body["platforms"] == ["mailchimp", "convertkit", "sendgrid"]


def test_taxonomy(client: TestClient) -> None:
    body = client.get("/taxonomy").json()
    assert body["interest"]["bitPosition"] == 2
    assert body["interest"]["values"]["crypto"]["bits"] == 2


def test_fingerprint(client: TestClient) -> None:
    resp = client.post(
        "/segments/fingerprint",
        json={"taxonomy_mapping": {"engagement": "high", "interest": "crypto", "mood": "sunny"}},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["fingerprint"] == 11
    assert set(body["platform_tags"]["mailchimp"]) == {
        "sharpsend_engagement_high",
        "sharpsend_interest_crypto",
    }
    assert body["platform_tags"]["convertkit"] == ["engagement:high", "interest:crypto"]


def test_fingerprint_tags_include_zero_bit_values(client: TestClient) -> None:
    body = client.post(
        "/segments/fingerprint",
        json={"taxonomy_mapping": {"engagement": "dormant", "interest": "crypto"}},
    ).json()
    assert body["fingerprint"] == 8
    assert body["platform_tags"]["sendgrid"] == ["ss-engagement-dormant", "ss-interest-crypto"]
    assert body["platform_tags"]["convertkit"] == ["engagement:dormant", "interest:crypto"]


def test_fingerprint_requires_mapping(client: TestClient) -> None:
    assert client.post("/segments/fingerprint", json={}).status_code == 422


def test_fingerprint_tags(client: TestClient) -> None:
    body = client.get("/segments/11/tags", params={"platform": "sendgrid"}).json()
    assert body["taxonomy_mapping"] == {"engagement": "high", "interest": "crypto"}
    assert body["tags"] == ["ss-engagement-high", "ss-interest-crypto"]

    fallback = client.get("/segments/11/tags").json()
    assert fallback["tags"] == ["engagement_high", "interest_crypto"]

    assert client.get("/segments/-1/tags").status_code == 400


def test_generate_and_sync(client: TestClient) -> None:
    resp = client.post(
        "/segments/generate",
        json={"publisher_id": "pub-1", "subscriber_data": {"engagementScore": 90, "revenue": 2000}},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_segments"] == 2
    assert body["segments"][0]["fingerprint"] == 3

    sync = client.post("/segments/sync", json={"subscriber_id": "sub-1", "fingerprint": 3})
    assert sync.status_code == 200
    assert sync.json()["platforms"] == {"mailchimp": True, "convertkit": True, "sendgrid": True}


def test_sync_unknown_fingerprint(client: TestClient) -> None:
    resp = client.post("/segments/sync", json={"subscriber_id": "sub-1", "fingerprint": 4242})
    assert resp.status_code == 404
