"""
===========================================================
sources.py
Author: Veronica Scerra
Last Updated: 2025-11-05
===========================================================

Description:
    Per-country loaders for the report. Each returns the tidy
    daily schema of casedata.cleaning:
        date, region, cumulative_cases, new_cases

    Sources:
        - Germany, confirmed cases by federal state (HTML table)
        - India, cumulative confirmed cases (HTML table)
        - United Kingdom, cumulative confirmed cases (HTML table)
        - Australia and US from the JHU CSSE global time series (CSV)

Notes:
    - Page layouts change; a missing table or column raises and the
      build stops. Fix the config (match text / column names), not
      the parser.
    - Known bad points are patched through `corrections`.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple
import pandas as pd

from casedata.cleaning import (
    apply_corrections,
    find_column,
    parse_dates,
    tidy_cumulative,
    to_daily,
)
from casedata.errors import SourceError
from casedata.fetch import read_csv_source, read_html_tables

logger = logging.getLogger(__name__)

GERMAN_STATES: Dict[str, str] = {
    "BW": "Baden-Württemberg",
    "BY": "Bavaria",
    "BE": "Berlin",
    "BB": "Brandenburg",
    "HB": "Bremen",
    "HH": "Hamburg",
    "HE": "Hesse",
    "MV": "Mecklenburg-Vorpommern",
    "NI": "Lower Saxony",
    "NW": "North Rhine-Westphalia",
    "RP": "Rhineland-Palatinate",
    "SL": "Saarland",
    "SN": "Saxony",
    "ST": "Saxony-Anhalt",
    "SH": "Schleswig-Holstein",
    "TH": "Thuringia",
}

WIKI = "https://en.wikipedia.org/wiki/"
JHU_CONFIRMED_CSV = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series/time_series_covid19_confirmed_global.csv"
)


@dataclass
class HtmlTableSource:
    """
    One scraped HTML table.

    `value_cols` maps column labels to region names. A column label may
    list alternatives separated by '|' ("Total|Confirmed"); the first
    present one is used.
    """
    source: str | Path
    match: Optional[str] = None         # text the wanted table contains
    table_index: int = 0                # among the matching tables
    date_col: str = "Date"
    value_cols: Dict[str, str] = field(default_factory=dict)
    dayfirst: bool = False
    date_format: Optional[str] = None
    default_year: Optional[int] = None  # for dates like "4 Mar"
    corrections: Dict[str, Dict[str, float]] = field(default_factory=dict)


@dataclass
class CsvSource:
    source: str | Path = JHU_CONFIRMED_CSV
    countries: Tuple[str, ...] = ("Australia", "US")
    region_names: Dict[str, str] = field(default_factory=lambda: {"US": "United States"})
    country_col: str = "Country/Region"
    date_format: str = "%m/%d/%y"
    corrections: Dict[str, Dict[str, float]] = field(default_factory=dict)


def germany_source() -> HtmlTableSource:
    return HtmlTableSource(
        source=WIKI + "Template:COVID-19_pandemic_data/Germany_medical_cases_by_state",
        match="NW",
        value_cols=dict(GERMAN_STATES),
    )


def india_source() -> HtmlTableSource:
    return HtmlTableSource(
        source=WIKI + "Template:COVID-19_pandemic_data/India_medical_cases",
        match="Confirmed",
        value_cols={"Confirmed|Total confirmed|Total cases": "India"},
    )


def uk_source() -> HtmlTableSource:
    return HtmlTableSource(
        source=WIKI + "Template:COVID-19_pandemic_data/United_Kingdom_medical_cases",
        match="Confirmed",
        value_cols={"Confirmed|Cumulative cases|Total cases": "United Kingdom"},
        dayfirst=True,
    )


def _resolve(columns, label: str) -> str:
    return find_column(columns, *[c.strip() for c in label.split("|")])


def _with_year(values: pd.Series, year: Optional[int]) -> pd.Series:
    if year is None:
        return values
    # "4 Mar" -> "4 Mar 2020"; full dates are left alone
    return values.astype(str).where(values.astype(str).str.contains(r"\d{4}"),
                                    values.astype(str) + f" {year}")


def scrape_table(cfg: HtmlTableSource, timeout_s: int = 30) -> pd.DataFrame:
    """Fetch the configured table and return it in long cumulative format."""
    tables = read_html_tables(cfg.source, match=cfg.match, timeout_s=timeout_s)
    if cfg.table_index >= len(tables):
        raise SourceError(
            f"Wanted table #{cfg.table_index} matching {cfg.match!r}, "
            f"page has {len(tables)}", source=str(cfg.source))
    raw = tables[cfg.table_index]

    date_name = _resolve(raw.columns, cfg.date_col)
    raw = raw.copy()
    raw[date_name] = _with_year(raw[date_name], cfg.default_year)

    value_cols = {_resolve(raw.columns, label): region for label, region in cfg.value_cols.items()}
    long = tidy_cumulative(raw, date_name, value_cols,
                           dayfirst=cfg.dayfirst, date_format=cfg.date_format)
    if long.empty:
        raise SourceError(f"No dated rows in table from {cfg.source}", source=str(cfg.source))
    return long


def load_html_source(cfg: HtmlTableSource, timeout_s: int = 30) -> pd.DataFrame:
    long = scrape_table(cfg, timeout_s=timeout_s)
    long = apply_corrections(long, cfg.corrections)
    daily = to_daily(long)
    logger.info("Loaded %d region(s) from %s, %s to %s",
                daily["region"].nunique(), cfg.source,
                daily["date"].min().date(), daily["date"].max().date())
    return daily


def load_germany_states(cfg: Optional[HtmlTableSource] = None, timeout_s: int = 30,
                        national_region: str = "Germany") -> pd.DataFrame:
    """
    Cumulative confirmed cases per federal state, plus a national series
    summed over the states.
    """
    cfg = cfg or germany_source()
    states = load_html_source(cfg, timeout_s=timeout_s)

    # states may start reporting on different days; sum over a shared calendar
    wide = states.pivot(index="date", columns="region", values="cumulative_cases")
    total = wide.ffill().fillna(0).sum(axis=1)
    national = to_daily(pd.DataFrame({
        "date": total.index,
        "region": national_region,
        "cumulative_cases": total.to_numpy(dtype=float),
    }))
    return pd.concat([states, national], ignore_index=True)


def load_india(cfg: Optional[HtmlTableSource] = None, timeout_s: int = 30) -> pd.DataFrame:
    return load_html_source(cfg or india_source(), timeout_s=timeout_s)


def load_uk(cfg: Optional[HtmlTableSource] = None, timeout_s: int = 30) -> pd.DataFrame:
    return load_html_source(cfg or uk_source(), timeout_s=timeout_s)


def load_jhu_countries(cfg: Optional[CsvSource] = None, timeout_s: int = 30) -> pd.DataFrame:
    """
    Country totals from the JHU CSSE wide time series.

    The CSV has one row per province/country and one column per date
    (m/d/yy). Provinces are summed per country.
    """
    cfg = cfg or CsvSource()
    df = read_csv_source(cfg.source, timeout_s=timeout_s)
    country_col = find_column(df.columns, cfg.country_col)

    date_cols = [c for c in df.columns
                 if pd.notna(pd.to_datetime(c, format=cfg.date_format, errors="coerce"))]
    if not date_cols:
        raise SourceError(f"No date columns in {cfg.source}", source=str(cfg.source))

    sub = df.loc[df[country_col].isin(cfg.countries)]
    missing = sorted(set(cfg.countries) - set(sub[country_col]))
    if missing:
        raise SourceError(f"Countries not in {cfg.source}: {missing}", source=str(cfg.source))

    per_country = sub.groupby(country_col)[date_cols].sum()
    long = (
        per_country.rename_axis("region").reset_index()
                   .melt(id_vars="region", var_name="date", value_name="cumulative_cases")
    )
    long["date"] = parse_dates(long["date"], fmt=cfg.date_format).to_numpy()
    long["region"] = long["region"].map(lambda c: cfg.region_names.get(c, c))
    long["cumulative_cases"] = long["cumulative_cases"].astype(float)

    long = apply_corrections(long, cfg.corrections)
    daily = to_daily(long)
    logger.info("Loaded %s from %s", ", ".join(daily["region"].unique()), cfg.source)
    return daily


@dataclass
class SourcesConfig:
    germany: HtmlTableSource = field(default_factory=germany_source)
    india: HtmlTableSource = field(default_factory=india_source)
    uk: HtmlTableSource = field(default_factory=uk_source)
    jhu: CsvSource = field(default_factory=CsvSource)

    def override(self, name: str, path: str | Path) -> None:
        """Read source `name` from a local snapshot instead of the web."""
        if name not in ("germany", "india", "uk", "jhu"):
            raise KeyError(f"Unknown source {name!r}")
        getattr(self, name).source = path


def load_all(cfg: Optional[SourcesConfig] = None, timeout_s: int = 30) -> Dict[str, pd.DataFrame]:
    """Run every loader; keys are the source names."""
    cfg = cfg or SourcesConfig()
    return {
        "germany": load_germany_states(cfg.germany, timeout_s=timeout_s),
        "india": load_india(cfg.india, timeout_s=timeout_s),
        "uk": load_uk(cfg.uk, timeout_s=timeout_s),
        "jhu": load_jhu_countries(cfg.jhu, timeout_s=timeout_s),
    }
