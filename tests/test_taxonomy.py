import json
from pathlib import Path

import pytest

from sharpsend.segmentation.taxonomy import (
    Taxonomy,
    TaxonomyCategory,
    TaxonomyError,
    TaxonomyValue,
    load_taxonomy,
    master_taxonomy,
)


def test_master_taxonomy_has_no_overlapping_ranges() -> None:
    taxonomy = master_taxonomy()
    assert taxonomy.overlaps() == []
    taxonomy.validate()


def test_master_taxonomy_bit_ranges() -> None:
    taxonomy = master_taxonomy()
    ranges = {c.key: (c.offset, c.width) for c in taxonomy}
    assert ranges == {
        "engagement": (0, 2),
        "interest": (2, 4),
        "sophistication": (6, 2),
        "riskProfile": (8, 2),
        "lifecycle": (10, 3),
        "valueSegment": (13, 2),
    }
    assert taxonomy.max_fingerprint == 0b111_1111_1111_1111


def test_values_are_unique_within_each_category() -> None:
    for category in master_taxonomy():
        bits = [v.bits for v in category.values.values()]
        assert len(bits) == len(set(bits)), category.key


def test_overlapping_categories_are_reported() -> None:
    taxonomy = Taxonomy(
        [
            TaxonomyCategory("a", "A", 0, {"x": TaxonomyValue(0b11)}),
            TaxonomyCategory("b", "B", 1, {"y": TaxonomyValue(0b1)}),
        ]
    )
    assert taxonomy.overlaps() == [("a", "b")]
    with pytest.raises(TaxonomyError, match="Overlapping"):
        taxonomy.validate()


def test_duplicate_bits_in_category_rejected() -> None:
    taxonomy = Taxonomy(
        [TaxonomyCategory("a", "A", 0, {"x": TaxonomyValue(1), "y": TaxonomyValue(1)})]
    )
    with pytest.raises(TaxonomyError, match="share bits"):
        taxonomy.validate()


def test_duplicate_category_key_rejected() -> None:
    with pytest.raises(TaxonomyError):
        Taxonomy([TaxonomyCategory("a", "A", 0), TaxonomyCategory("a", "A2", 4)])


def test_from_dict_accepts_bare_ints_and_offset_alias() -> None:
    taxonomy = Taxonomy.from_dict(
        {"tier": {"offset": 3, "values": {"gold": 2, "silver": {"bits": 1, "description": "S"}}}}
    )
    tier = taxonomy["tier"]
    assert tier.offset == 3
    assert tier.name == "tier"
    assert tier.values["gold"].bits == 2
    assert tier.values["silver"].description == "S"


def test_from_dict_requires_bit_position() -> None:
    with pytest.raises(TaxonomyError):
        Taxonomy.from_dict({"tier": {"values": {"gold": 1}}})


def test_load_taxonomy_round_trips_json(tmp_path: Path) -> None:
    path = tmp_path / "taxonomy.json"
    path.write_text(json.dumps(master_taxonomy().to_dict()), encoding="utf-8")

    loaded = load_taxonomy(path)

    assert loaded.to_dict() == master_taxonomy().to_dict()


def test_load_taxonomy_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_taxonomy(tmp_path / "nope.json")
