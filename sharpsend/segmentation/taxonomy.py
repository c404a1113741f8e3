"""Master taxonomy used to classify newsletter subscribers.

A taxonomy is an ordered set of *categories* (engagement, interest, ...).
Every category owns a contiguous range of bits inside a segment fingerprint,
starting at ``offset`` and ``width`` bits wide, and every value inside a
category is a small bit pattern that is unique within that category.

The width of a category is derived from its largest value pattern, so the
ranges of the master table are::

    engagement      bits 0-1
    interest        bits 2-5
    sophistication  bits 6-7
    riskProfile     bits 8-9
    lifecycle       bits 10-12
    valueSegment    bits 13-14

Taxonomies can be loaded from JSON so a publisher can ship its own table; use
:meth:`Taxonomy.validate` before encoding with a table you did not write.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

LOGGER = logging.getLogger(__name__)


class TaxonomyError(ValueError):
    """Raised when a taxonomy table is malformed."""


@dataclass(frozen=True)
class TaxonomyValue:
    bits: int
    description: str = ""


@dataclass(frozen=True)
class TaxonomyCategory:
    """One classification axis and its bit range."""

    key: str
    name: str
    offset: int
    values: Mapping[str, TaxonomyValue] = field(default_factory=dict)

    @property
    def width(self) -> int:
        """Number of bits needed by the widest value pattern (at least 1)."""
        widest = max((v.bits for v in self.values.values()), default=0)
        return max(widest.bit_length(), 1)

    @property
    def mask(self) -> int:
        return ((1 << self.width) - 1) << self.offset

    def value_for_bits(self, bits: int) -> Optional[str]:
        """Return the value name whose pattern equals ``bits``, if any."""
        for value_name, value in self.values.items():
            if value.bits == bits:
                return value_name
        return None

    def overlaps(self, other: "TaxonomyCategory") -> bool:
        return bool(self.mask & other.mask)


class Taxonomy:
    """Ordered collection of :class:`TaxonomyCategory` objects."""

    def __init__(self, categories: List[TaxonomyCategory]) -> None:
        self._categories: Dict[str, TaxonomyCategory] = {}
        for category in categories:
            if category.key in self._categories:
                raise TaxonomyError(f"Duplicate category key: {category.key!r}")
            self._categories[category.key] = category

    def __contains__(self, key: object) -> bool:
        return key in self._categories

    def __iter__(self) -> Iterator[TaxonomyCategory]:
        return iter(self._categories.values())

    def __len__(self) -> int:
        return len(self._categories)

    def __getitem__(self, key: str) -> TaxonomyCategory:
        return self._categories[key]

    def get(self, key: str) -> Optional[TaxonomyCategory]:
        return self._categories.get(key)

    def categories(self) -> List[TaxonomyCategory]:
        return list(self._categories.values())

    @property
    def max_fingerprint(self) -> int:
        """Largest integer any valid mapping can encode to."""
        result = 0
        for category in self:
            result |= category.mask
        return result

    def overlaps(self) -> List[Tuple[str, str]]:
        """Return every pair of categories whose bit ranges intersect."""
        cats = self.categories()
        pairs: List[Tuple[str, str]] = []
        for i, first in enumerate(cats):
            for second in cats[i + 1:]:
                if first.overlaps(second):
                    pairs.append((first.key, second.key))
        return pairs

    def validate(self) -> None:
        """Check the table can round-trip fingerprints.

        Raises:
            TaxonomyError: on negative offsets or bit patterns, on duplicate
                patterns inside one category, or on overlapping ranges.
        """
        for category in self:
            if category.offset < 0:
                raise TaxonomyError(
                    f"Category {category.key!r} has negative offset {category.offset}"
                )
            seen: Dict[int, str] = {}
            for value_name, value in category.values.items():
                if value.bits < 0:
                    raise TaxonomyError(
                        f"Value {category.key}.{value_name} has negative bits"
                    )
                if value.bits in seen:
                    raise TaxonomyError(
                        f"Values {category.key}.{seen[value.bits]} and "
                        f"{category.key}.{value_name} share bits {value.bits:#b}"
                    )
                seen[value.bits] = value_name
        pairs = self.overlaps()
        if pairs:
            listed = ", ".join(f"{a}/{b}" for a, b in pairs)
            raise TaxonomyError(f"Overlapping category bit ranges: {listed}")

    # ---------------------- JSON (de)serialisation ----------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            category.key: {
                "name": category.name,
                "bitPosition": category.offset,
                "values": {
                    value_name: {"bits": value.bits, "description": value.description}
                    for value_name, value in category.values.items()
                },
            }
            for category in self
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Taxonomy":
        """Build a taxonomy from the JSON layout produced by :meth:`to_dict`.

        ``offset`` is accepted as an alias of ``bitPosition``.  A value may be
        given either as ``{"bits": 3, "description": "..."}`` or as a bare
        integer.
        """
        categories: List[TaxonomyCategory] = []
        for key, entry in raw.items():
            if not isinstance(entry, Mapping):
                raise TaxonomyError(f"Category {key!r} must be an object")
            offset = entry.get("bitPosition", entry.get("offset"))
            if not isinstance(offset, int):
                raise TaxonomyError(f"Category {key!r} is missing an integer bitPosition")
            values: Dict[str, TaxonomyValue] = {}
            for value_name, value_raw in (entry.get("values") or {}).items():
                if isinstance(value_raw, int):
                    values[value_name] = TaxonomyValue(value_raw)
                elif isinstance(value_raw, Mapping) and isinstance(value_raw.get("bits"), int):
                    values[value_name] = TaxonomyValue(
                        value_raw["bits"], str(value_raw.get("description", ""))
                    )
                else:
                    raise TaxonomyError(f"Value {key}.{value_name} has no integer bits")
            categories.append(
                TaxonomyCategory(key=key, name=str(entry.get("name", key)), offset=offset, values=values)
            )
        return cls(categories)


def load_taxonomy(path: Path) -> Taxonomy:
    """Read and validate a taxonomy JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"Taxonomy file not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)
    taxonomy = Taxonomy.from_dict(raw)
    taxonomy.validate()
    LOGGER.info("Loaded taxonomy with %d categories from %s", len(taxonomy), path)
    return taxonomy


def _values(*entries: Tuple[str, int, str]) -> Dict[str, TaxonomyValue]:
    return {name: TaxonomyValue(bits, description) for name, bits, description in entries}


def master_taxonomy() -> Taxonomy:
    """Return the built-in SharpSend taxonomy for financial newsletters."""
    return Taxonomy(
        [
            TaxonomyCategory(
                "engagement",
                "Engagement Level",
                0,
                _values(
                    ("high", 0b11, "Highly engaged users"),
                    ("medium", 0b10, "Moderately engaged users"),
                    ("low", 0b01, "Low engagement users"),
                    ("dormant", 0b00, "Dormant users"),
                ),
            ),
            TaxonomyCategory(
                "interest",
                "Investment Interest",
                2,
                _values(
                    ("stocks", 0b0001, "Stock market interested"),
                    ("crypto", 0b0010, "Cryptocurrency interested"),
                    ("forex", 0b0011, "Forex trading interested"),
                    ("bonds", 0b0100, "Bonds and fixed income"),
                    ("etfs", 0b0101, "ETF investing"),
                    ("options", 0b0110, "Options trading"),
                    ("commodities", 0b0111, "Commodities trading"),
                    ("realestate", 0b1000, "Real estate investing"),
                ),
            ),
            TaxonomyCategory(
                "sophistication",
                "Investor Sophistication",
                6,
                _values(
                    ("beginner", 0b00, "Beginner investors"),
                    ("intermediate", 0b01, "Intermediate investors"),
                    ("advanced", 0b10, "Advanced investors"),
                    ("professional", 0b11, "Professional traders"),
                ),
            ),
            TaxonomyCategory(
                "riskProfile",
                "Risk Profile",
                8,
                _values(
                    ("conservative", 0b00, "Conservative risk profile"),
                    ("moderate", 0b01, "Moderate risk tolerance"),
                    ("aggressive", 0b10, "Aggressive risk appetite"),
                    ("speculative", 0b11, "Speculative trader"),
                ),
            ),
            TaxonomyCategory(
                "lifecycle",
                "Subscriber Lifecycle",
                10,
                _values(
                    ("trial", 0b000, "Trial subscribers"),
                    ("new", 0b001, "New subscribers"),
                    ("active", 0b010, "Active subscribers"),
                    ("atrisk", 0b011, "At-risk of churning"),
                    ("lapsed", 0b100, "Lapsed subscribers"),
                    ("reactivated", 0b101, "Reactivated subscribers"),
                ),
            ),
            TaxonomyCategory(
                "valueSegment",
                "Value Segment",
                13,
                _values(
                    ("free", 0b00, "Free tier users"),
                    ("basic", 0b01, "Basic paid tier"),
                    ("premium", 0b10, "Premium subscribers"),
                    ("vip", 0b11, "VIP/Enterprise accounts"),
                ),
            ),
        ]
    )


__all__ = [
    "Taxonomy",
    "TaxonomyCategory",
    "TaxonomyError",
    "TaxonomyValue",
    "load_taxonomy",
    "master_taxonomy",
]
