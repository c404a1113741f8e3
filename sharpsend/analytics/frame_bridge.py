"""Bridges between pandas and Polars for analytics internals.

Polars is used for aggregations over subscriber frames.  Public APIs still
accept and return pandas DataFrames.
"""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd
import polars as pl


def to_pl(df_pd: pd.DataFrame | None) -> pl.DataFrame:
    """Convert pandas to Polars with sensible defaults for None/empty values."""
    if df_pd is None:
        return pl.DataFrame()
    if isinstance(df_pd, pl.DataFrame):
        return df_pd
    return pl.from_pandas(df_pd, include_index=False)


def to_pd(df_pl: pl.DataFrame | pd.DataFrame | None) -> pd.DataFrame:
    """Convert Polars to pandas at integration boundaries."""
    if df_pl is None:
        return pd.DataFrame()
    if isinstance(df_pl, pd.DataFrame):
        return df_pl
    return df_pl.to_pandas()


def assert_columns(df: pl.DataFrame | pd.DataFrame, cols: Iterable[str]) -> None:
    """Raise ``ValueError`` if any of ``cols`` is missing from ``df``."""
    present = set(df.columns)
    missing = [c for c in cols if c not in present]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")
