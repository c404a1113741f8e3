"""One-off maintenance script to recompute stored platform tags.

Platform tags are derived from each stored taxonomy mapping, so they go stale
when an adapter's naming convention changes or a platform is added.  This
utility re-renders the tags of every stored segment with the current
registry and writes back the rows that changed.  Run it after deploying a
new adapter::

    python scripts/rebuild_platform_tags.py
"""

from __future__ import annotations

import logging

from sharpsend.app import build_engine
from sharpsend.config import load_settings

LOGGER = logging.getLogger(__name__)


def rebuild() -> int:
    """Return the number of rows whose platform tags were rewritten."""
    engine = build_engine(load_settings())
    if engine.store is None:
        LOGGER.warning("Persistence is disabled; nothing to rebuild")
        return 0

    frame = engine.store.load_frame()
    updated = 0
    for row in frame.itertuples(index=False):
        tags = engine.generate_platform_tags(row.taxonomy_mapping)
        if tags == row.platform_tags:
            continue
        if engine.store.update_platform_tags(row.publisher_id, int(row.fingerprint), tags):
            updated += 1
    LOGGER.info("Rebuilt platform tags for %d of %d segments", updated, len(frame))
    return updated


if __name__ == "__main__":  # pragma: no cover - manual invocation
    logging.basicConfig(level=load_settings().log_level)
    rebuild()
