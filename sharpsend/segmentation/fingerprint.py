"""Segment fingerprint encoding and decoding.

A fingerprint packs a taxonomy mapping (category -> value name) into one
non-negative integer by OR-ing each value's bit pattern shifted to its
category's offset.  Both directions are pure and never raise: unknown
categories are skipped and unknown values contribute no bits when encoding,
and segments matching no defined value are dropped when decoding.

Several values are encoded as an all-zero pattern (``dormant``,
``beginner``, ``conservative``, ``trial``, ``free``), which cannot be told
apart from "category not set".  :func:`decode_fingerprint` therefore treats
an all-zero segment as absent unless ``complete=True`` is passed.
"""

from __future__ import annotations

from typing import Dict, Mapping

from .taxonomy import Taxonomy


def encode_fingerprint(mapping: Mapping[str, str], taxonomy: Taxonomy) -> int:
    """Return the fingerprint of ``mapping`` under ``taxonomy``."""
    fingerprint = 0
    for category_key, value_name in mapping.items():
        category = taxonomy.get(category_key)
        if category is None:
            continue
        value = category.values.get(value_name)
        if value is None:
            continue
        fingerprint |= value.bits << category.offset
    return fingerprint


def decode_fingerprint(
    fingerprint: int, taxonomy: Taxonomy, complete: bool = False
) -> Dict[str, str]:
    """Recover the taxonomy mapping encoded in ``fingerprint``.

    Args:
        fingerprint: Integer produced by :func:`encode_fingerprint`.
        taxonomy: The table the fingerprint was encoded with.
        complete: Also report categories whose segment is all zeros, mapped
            to the value defined with a zero pattern.

    Returns:
        Category -> value name, in taxonomy order, for every category whose
        bit segment matches a defined value.
    """
    mapping: Dict[str, str] = {}
    if fingerprint < 0:
        return mapping
    for category in taxonomy:
        bits = (fingerprint & category.mask) >> category.offset
        if bits == 0 and not complete:
            continue
        value_name = category.value_for_bits(bits)
        if value_name is not None:
            mapping[category.key] = value_name
    return mapping


__all__ = ["decode_fingerprint", "encode_fingerprint"]
