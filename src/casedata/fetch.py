"""
===========================================================
fetch.py
Author: Veronica Scerra
Last Updated: 2025-11-02
===========================================================

Description:
    Retrieval of the raw case tables: HTML pages with case-count
    tables and the CSV time-series endpoint. Every source may be a
    URL or a local file (saved snapshot of the page), so the report
    can be rebuilt offline from the same inputs.

Notes:
    - URLs are fetched with a browser-like User-Agent; some wikis
      refuse the default python-requests agent.
    - Anything other than HTTP 200 with a non-trivial body halts
      the build with a SourceError.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import io
import logging
from pathlib import Path
from typing import List, Optional
import pandas as pd
import requests

from casedata.errors import SourceError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) covreport/0.3"


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_text(source: str | Path, timeout_s: int = 30) -> str:
    """
    Return the text behind `source` (URL or local path).

    Raises
    ------
    SourceError
        If the file is missing/empty, the request fails, the server
        answers with a non-200 status or the body is (nearly) empty.
    """
    src = str(source)

    if not _is_url(src):
        p = Path(src)
        if not p.exists():
            raise SourceError(f"Source file not found: {p}", source=src)
        text = p.read_text(encoding="utf-8")
        if not text.strip():
            raise SourceError(f"Source file is empty: {p}", source=src)
        logger.info("Read %s (%d bytes)", p, len(text))
        return text

    headers = {"User-Agent": USER_AGENT}
    try:
        resp = requests.get(src, headers=headers, timeout=timeout_s)
    except requests.RequestException as e:
        raise SourceError(f"Failed to fetch URL: {src}\n{e}", source=src) from e

    if resp.status_code != 200:
        raise SourceError(f"HTTP {resp.status_code} fetching {src}", source=src)

    content = resp.content or b""
    if len(content) < 10:
        raise SourceError(f"Downloaded 0/very few bytes from {src}", source=src)

    logger.info("Fetched %s (%d bytes)", src, len(content))
    return resp.text


def flatten_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Flatten MultiIndex headers produced by read_html and strip labels.

    For a column ('Confirmed cases', 'Total') the last level that is not
    an 'Unnamed: ...' placeholder wins; repeated levels collapse.
    """
    if isinstance(df.columns, pd.MultiIndex):
        flat = []
        for col in df.columns:
            levels = [str(c).strip() for c in col if not str(c).startswith("Unnamed:")]
            flat.append(levels[-1] if levels else str(col[-1]))
        df.columns = flat
    df.columns = pd.Index([str(c).strip() for c in df.columns])
    return df


def read_html_tables(source: str | Path, match: Optional[str] = None,
                     timeout_s: int = 30) -> List[pd.DataFrame]:
    """
    Scrape all HTML tables from `source` whose text matches `match`.

    Returns the tables in page order with flattened column labels.
    """
    text = fetch_text(source, timeout_s=timeout_s)
    try:
        tables = pd.read_html(io.StringIO(text), match=match or ".+", flavor="lxml")
    except ValueError as e:
        # read_html signals "no tables found" with ValueError
        raise SourceError(f"No table matching {match!r} in {source}", source=str(source)) from e
    logger.debug("Found %d table(s) matching %r in %s", len(tables), match, source)
    return [flatten_columns(t) for t in tables]


def read_csv_source(source: str | Path, timeout_s: int = 30) -> pd.DataFrame:
    """Load a CSV file or CSV download endpoint into a DataFrame."""
    text = fetch_text(source, timeout_s=timeout_s)
    try:
        df = pd.read_csv(io.StringIO(text))
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise SourceError(f"Response from {source} is not valid CSV.", source=str(source)) from e
    return flatten_columns(df)
