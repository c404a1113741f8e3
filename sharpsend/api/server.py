"""HTTP API for segment fingerprints and platform tag sync.

This module exposes a typed API using FastAPI.  The application is built
around an explicitly constructed :class:`SegmentationEngine`; run it with::

    python -m sharpsend.app

or mount the app returned by :func:`create_app` inside another ASGI host.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from sharpsend import __version__
from sharpsend.segmentation.engine import SegmentationEngine, SegmentNotFoundError

LOGGER = logging.getLogger(__name__)


class FingerprintRequest(BaseModel):
    taxonomy_mapping: Dict[str, str]


class FingerprintResponse(BaseModel):
    fingerprint: int
    taxonomy_mapping: Dict[str, str]
    platform_tags: Dict[str, List[str]]


class GenerateRequest(BaseModel):
    publisher_id: str = "demo-publisher"
    subscriber_data: Dict[str, Any] = Field(default_factory=dict)


class SyncRequest(BaseModel):
    subscriber_id: str
    fingerprint: int = Field(ge=0)


def create_app(engine: SegmentationEngine) -> FastAPI:
    """Return a FastAPI application serving ``engine``."""
    app = FastAPI(title="SharpSend Segmentation API", version=__version__)
    app.state.engine = engine

    @app.get("/health", summary="Service health")
    async def health() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "categories": len(engine.taxonomy),
            "platforms": engine.registry.names(),
            "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        }

    @app.get("/taxonomy", summary="Master taxonomy table")
    async def taxonomy() -> Dict[str, Any]:
        return engine.taxonomy.to_dict()

    @app.post(
        "/segments/fingerprint",
        response_model=FingerprintResponse,
        summary="Calculate a segment fingerprint",
    )
    async def fingerprint(req: FingerprintRequest) -> FingerprintResponse:
        """Tags cover every known pair of the request, zero-bit values included,
        so they match the tags :meth:`SegmentationEngine.create_segments` stores.
        """
        fp = engine.calculate_fingerprint(req.taxonomy_mapping)
        known = {
            category: value
            for category, value in req.taxonomy_mapping.items()
            if category in engine.taxonomy and value in engine.taxonomy[category].values
        }
        tags = engine.generate_platform_tags(known)
        return FingerprintResponse(
            fingerprint=fp, taxonomy_mapping=req.taxonomy_mapping, platform_tags=tags
        )

    @app.get("/segments/{fingerprint}/tags", summary="Platform tags for a fingerprint")
    async def fingerprint_tags(fingerprint: int, platform: str = "default") -> Dict[str, Any]:
        if fingerprint < 0:
            raise HTTPException(status_code=400, detail="fingerprint must be non-negative")
        return {
            "fingerprint": fingerprint,
            "platform": platform,
            "taxonomy_mapping": engine.decode_fingerprint(fingerprint),
            "tags": engine.fingerprint_to_platform_tags(fingerprint, platform),
        }

    @app.post("/segments/generate", summary="Classify subscriber data into segments")
    def generate(req: GenerateRequest) -> Dict[str, Any]:
        segments = engine.create_segments(req.publisher_id, req.subscriber_data)
        return {
            "segments": [s.to_dict() for s in segments],
            "total_segments": len(segments),
        }

    @app.post("/segments/sync", summary="Push a segment's tags to every platform")
    def sync(req: SyncRequest) -> Dict[str, Any]:
        try:
            results = engine.sync_across_platforms(req.subscriber_id, req.fingerprint)
        except SegmentNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        LOGGER.info("Synced %s for fingerprint %s: %s", req.subscriber_id, req.fingerprint, results)
        return {"subscriber_id": req.subscriber_id, "fingerprint": req.fingerprint, "platforms": results}

    return app


__all__ = ["create_app"]
