"""Vectorised fingerprinting of subscriber frames.

Subscriber exports arrive as tables with one column per taxonomy category
(``engagement``, ``interest``, ...).  These helpers compute fingerprints for
a whole frame at once and summarise how subscribers spread over segments.
They follow the scalar codec exactly: unknown values and missing category
columns contribute no bits, and all-zero segments decode as absent unless
``complete`` is requested.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np
import pandas as pd
import polars as pl

from sharpsend.segmentation.fingerprint import decode_fingerprint
from sharpsend.segmentation.taxonomy import Taxonomy

from .frame_bridge import assert_columns, to_pd, to_pl

DISTRIBUTION_COLUMNS = ["fingerprint", "subscribers", "share", "label"]


def fingerprint_frame(df: pd.DataFrame, taxonomy: Taxonomy, column: str = "fingerprint") -> pd.DataFrame:
    """Return a copy of ``df`` with a ``fingerprint`` column added."""
    out = df.copy()
    fingerprints = np.zeros(len(out), dtype=np.int64)
    for category in taxonomy:
        if category.key not in out.columns:
            continue
        lookup = {name: value.bits for name, value in category.values.items()}
        bits = out[category.key].map(lookup).fillna(0).to_numpy(dtype=np.int64)
        fingerprints = np.bitwise_or(fingerprints, np.left_shift(bits, category.offset))
    out[column] = fingerprints
    return out


def decode_frame(fingerprints: pd.Series, taxonomy: Taxonomy, complete: bool = False) -> pd.DataFrame:
    """Decode a series of fingerprints into one column per category.

    Categories that are absent for a row hold ``None``.
    """
    values = fingerprints.fillna(-1).to_numpy(dtype=np.int64)
    valid = values >= 0
    columns: Dict[str, pd.Series] = {}
    for category in taxonomy:
        bits = np.right_shift(np.bitwise_and(values, category.mask), category.offset)
        lookup = {
            value.bits: name
            for name, value in category.values.items()
            if complete or value.bits != 0
        }
        columns[category.key] = pd.Series(
            [lookup.get(int(b)) if ok else None for b, ok in zip(bits, valid)],
            index=fingerprints.index,
            dtype=object,
        )
    return pd.DataFrame(columns, index=fingerprints.index)


def _label(fingerprint: int, taxonomy: Taxonomy) -> str:
    mapping = decode_fingerprint(int(fingerprint), taxonomy)
    return ", ".join(f"{k}={v}" for k, v in mapping.items())


def segment_distribution(
    df: pd.DataFrame, taxonomy: Optional[Taxonomy] = None, column: str = "fingerprint"
) -> pd.DataFrame:
    """Count subscribers per fingerprint, largest segments first.

    Ties are broken by fingerprint so the output is deterministic.  When a
    taxonomy is given, ``label`` holds the decoded ``category=value`` pairs.
    """
    if df.empty:
        return pd.DataFrame(columns=DISTRIBUTION_COLUMNS)
    assert_columns(df, [column])

    total = len(df)
    counts = (
        to_pl(df[[column]].rename(columns={column: "fingerprint"}))
        .group_by("fingerprint")
        .len()
        .rename({"len": "subscribers"})
        .with_columns((pl.col("subscribers") / total).alias("share"))
        .sort(["subscribers", "fingerprint"], descending=[True, False])
    )
    out = to_pd(counts)
    if taxonomy is not None:
        out["label"] = [_label(fp, taxonomy) for fp in out["fingerprint"]]
    else:
        out["label"] = ""
    return out[DISTRIBUTION_COLUMNS].reset_index(drop=True)


__all__ = ["decode_frame", "fingerprint_frame", "segment_distribution"]
