"""Persistence of segment mappings."""

from __future__ import annotations

__all__ = ["segment_store"]
