"""
===========================================================
cleaning.py
Author: Veronica Scerra
Last Updated: 2025-11-04
===========================================================

Description:
    Cleanup of scraped case tables into tidy daily series:
    cell text -> numbers, tolerant date parsing, wide -> long,
    manual patches of known bad data points, and derivation of
    daily incidence from cumulative counts.

    Tidy schema (one row per region and day):
        date (datetime64[ns])
        region (str)
        cumulative_cases (int)   # non-decreasing
        new_cases (int)          # >= 0

Notes:
    - Scraped cells carry footnotes ("1,234[a]") and deltas
      ("1,234 (+56)"); only the leading count is kept.
    - Cumulative counts that go down (revisions) are raised to the
      running maximum, like the WHO preprocessing does.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
import re
from typing import Dict, Iterable, Mapping, Optional, Sequence
import numpy as np
import pandas as pd

from casedata.errors import DataValidationError

logger = logging.getLogger(__name__)

TIDY_COLUMNS = ["date", "region", "cumulative_cases", "new_cases"]

_FOOTNOTE = re.compile(r"\[[^\]]*\]")
_DELTA = re.compile(r"\(.*?\)")
_DASHES = {"", "-", "—", "–", "nan", "none", "n/a", "?"}


def parse_count(value) -> float:
    """
    Convert one scraped cell to a number.

    >>> parse_count("12,345[a]")
    12345.0
    >>> parse_count("—")
    nan
    """
    if value is None:
        return np.nan
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    text = _FOOTNOTE.sub("", str(value))
    text = _DELTA.sub("", text).strip()
    if text.lower() in _DASHES:
        return np.nan
    # thousands separators
    text = re.sub(r"[,\s']", "", text)
    match = re.match(r"^[+-]?\d+(?:\.\d+)?", text)
    if not match:
        return np.nan
    return float(match.group(0))


def parse_counts(values: Iterable) -> pd.Series:
    return pd.Series([parse_count(v) for v in values], dtype=float)


def parse_dates(values: Iterable, dayfirst: bool = False,
                fmt: Optional[str] = None) -> pd.Series:
    """Coercing date parse; rows that are not dates (totals, notes) become NaT."""
    cleaned = pd.Series([_FOOTNOTE.sub("", str(v)).strip() for v in values])
    if fmt:
        return pd.to_datetime(cleaned, format=fmt, errors="coerce")
    return pd.to_datetime(cleaned, dayfirst=dayfirst, errors="coerce", format="mixed")


def find_column(columns: Sequence, *candidates: str) -> str:
    """
    Tolerant column lookup: exact match first, then case/space-insensitive,
    for each candidate in turn.
    """
    names = [str(c) for c in columns]
    for expected in candidates:
        if expected in names:
            return expected
    for expected in candidates:
        exp = expected.strip().lower()
        for name in names:
            if name.strip().lower() == exp:
                return name
    raise KeyError(f"None of the columns {list(candidates)} found. Available: {names}")


def tidy_cumulative(df: pd.DataFrame, date_col: str, value_cols: Mapping[str, str] | Sequence[str],
                    dayfirst: bool = False, date_format: Optional[str] = None) -> pd.DataFrame:
    """
    Wide scraped table -> long `date, region, cumulative_cases`.

    `value_cols` is either a list of column labels (used as region names)
    or a mapping {column label: region name}.
    """
    if not isinstance(value_cols, Mapping):
        value_cols = {c: c for c in value_cols}

    date_name = find_column(df.columns, date_col)
    dates = parse_dates(df[date_name], dayfirst=dayfirst, fmt=date_format)

    frames = []
    for col, region in value_cols.items():
        name = find_column(df.columns, col)
        frames.append(pd.DataFrame({
            "date": dates.to_numpy(),
            "region": region,
            "cumulative_cases": parse_counts(df[name]).to_numpy(),
        }))
    out = pd.concat(frames, ignore_index=True)

    n_bad = int(out["date"].isna().sum())
    if n_bad:
        logger.debug("Dropping %d non-date rows", n_bad)
    return out.dropna(subset=["date"]).reset_index(drop=True)


def apply_corrections(df: pd.DataFrame,
                      corrections: Mapping[str, Mapping[str, float]]) -> pd.DataFrame:
    """
    Overwrite known bad cumulative counts.

    `corrections` maps region -> {"YYYY-MM-DD": cumulative value}.
    """
    if not corrections:
        return df
    df = df.copy()
    for region, patches in corrections.items():
        for day, value in patches.items():
            mask = (df["region"] == region) & (df["date"] == pd.Timestamp(day))
            if not mask.any():
                logger.warning("Correction for %s on %s matches no row", region, day)
                continue
            old = df.loc[mask, "cumulative_cases"].iloc[0]
            df.loc[mask, "cumulative_cases"] = float(value)
            logger.info("Patched %s on %s: %s -> %s", region, day, old, value)
    return df


def _daily_one(sub: pd.DataFrame, region: str, enforce_monotone: bool,
               clip_negative: bool) -> pd.DataFrame:
    sub = (
        sub.dropna(subset=["cumulative_cases"])
           .sort_values("date", kind="stable")
           .drop_duplicates(subset=["date"], keep="last")
           .set_index("date")
    )
    if sub.empty:
        raise DataValidationError(f"No usable rows for region {region!r}", region=region)

    calendar = pd.date_range(sub.index.min(), sub.index.max(), freq="D")
    cum = sub["cumulative_cases"].reindex(calendar).ffill()

    if enforce_monotone:
        raised = cum.cummax()
        n_raised = int((raised > cum).sum())
        if n_raised:
            logger.info("%s: raised %d decreasing cumulative value(s)", region, n_raised)
        cum = raised

    new = cum.diff()
    new.iloc[0] = cum.iloc[0]
    if clip_negative:
        new = new.clip(lower=0)

    out = pd.DataFrame({
        "date": calendar,
        "region": region,
        "cumulative_cases": cum.round().astype(int).to_numpy(),
        "new_cases": new.round().astype(int).to_numpy(),
    })
    return out


def to_daily(df: pd.DataFrame, enforce_monotone: bool = True,
             clip_negative: bool = True) -> pd.DataFrame:
    """
    Long cumulative table -> tidy daily series per region (see module doc).
    """
    frames = [
        _daily_one(sub, region, enforce_monotone, clip_negative)
        for region, sub in df.groupby("region", sort=False)
    ]
    if not frames:
        raise DataValidationError("Case table is empty after cleaning")
    out = pd.concat(frames, ignore_index=True)
    validate_series(out)
    return out[TIDY_COLUMNS]


def validate_series(df: pd.DataFrame) -> None:
    """Check the tidy invariants: increasing dates, non-negative counts."""
    missing = [c for c in TIDY_COLUMNS if c not in df.columns]
    if missing:
        raise DataValidationError(f"Missing columns: {missing}", fields=missing)

    for region, sub in df.groupby("region", sort=False):
        if not sub["date"].is_monotonic_increasing or sub["date"].duplicated().any():
            raise DataValidationError(f"{region}: dates are not strictly increasing", region=region)
        counts = sub[["cumulative_cases", "new_cases"]]
        if counts.isna().any().any():
            raise DataValidationError(f"{region}: missing case counts", region=region,
                                      fields=list(counts.columns[counts.isna().any()]))
        if (counts < 0).any().any():
            raise DataValidationError(f"{region}: negative case counts", region=region)


def region_series(df: pd.DataFrame, region: str) -> pd.DataFrame:
    """Rows of one region, re-indexed from 0."""
    sub = df.loc[df["region"] == region]
    if sub.empty:
        raise KeyError(f"Region {region!r} not found. Available: {sorted(df['region'].unique())}")
    return sub.reset_index(drop=True)


def combine(frames: Dict[str, pd.DataFrame]) -> pd.DataFrame:
    """Stack the tidy frames of all sources into one table."""
    return pd.concat(list(frames.values()), ignore_index=True)[TIDY_COLUMNS]
