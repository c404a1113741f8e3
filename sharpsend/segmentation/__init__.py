"""Segment taxonomy, fingerprint codec and the segmentation engine."""

from __future__ import annotations

from .fingerprint import decode_fingerprint, encode_fingerprint
from .taxonomy import (
    Taxonomy,
    TaxonomyCategory,
    TaxonomyError,
    TaxonomyValue,
    load_taxonomy,
    master_taxonomy,
)

__all__ = [
    "Taxonomy",
    "TaxonomyCategory",
    "TaxonomyError",
    "TaxonomyValue",
    "decode_fingerprint",
    "encode_fingerprint",
    "load_taxonomy",
    "master_taxonomy",
]
