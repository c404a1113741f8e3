"""Entry point for the SharpSend segmentation API.

When executed with ``python -m sharpsend.app`` this module reads the
environment configuration (see :mod:`sharpsend.config`), builds the
segmentation engine and serves it with uvicorn.

All services are created here and passed down explicitly: the taxonomy,
the platform registry, the segment store and the engine itself.
"""

from __future__ import annotations

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from sharpsend.api.server import create_app
from sharpsend.config import Settings, load_settings
from sharpsend.platforms.registry import default_registry
from sharpsend.segmentation.cache import SegmentCache
from sharpsend.segmentation.engine import SegmentationEngine
from sharpsend.segmentation.taxonomy import load_taxonomy, master_taxonomy
from sharpsend.storage.segment_store import SegmentStore

LOGGER = logging.getLogger(__name__)


def build_engine(settings: Settings) -> SegmentationEngine:
    """Construct a fully wired engine from ``settings``."""
    if settings.taxonomy_path is not None:
        taxonomy = load_taxonomy(settings.taxonomy_path)
    else:
        taxonomy = master_taxonomy()
        taxonomy.validate()

    store: Optional[SegmentStore] = None
    if settings.persist:
        store = SegmentStore(db_path=settings.db_path, database_url=settings.database_url)

    return SegmentationEngine(
        taxonomy=taxonomy,
        registry=default_registry(),
        store=store,
        cache=SegmentCache(max_entries=settings.cache_size),
        sync_delay=settings.sync_delay,
    )


def build_app(settings: Optional[Settings] = None) -> FastAPI:
    return create_app(build_engine(settings or load_settings()))


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = build_app(settings)
    LOGGER.info("Starting SharpSend API on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
