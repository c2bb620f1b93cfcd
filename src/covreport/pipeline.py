"""
===========================================================
pipeline.py
Author: Veronica Scerra
Last Updated: 2025-11-12
===========================================================

Description:
    The report, top to bottom:
        1) load and clean the case tables of every source
        2) fit the SIR model to the early NRW epidemic
        3) estimate R(t) per region over sliding windows
        4) draw the figures and summary tables
        5) write one static HTML page

Notes:
    - No recovery: any failure propagates and stops the build.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import pandas as pd

from casedata.cleaning import combine, region_series
from casedata.sources import GERMAN_STATES, load_all
from covreport.config import ReportConfig
from covreport.page import HtmlReport, figure_to_png
from epimodels.fitting import SIRFitResult, fit_sir, prepare_fit_window, projection_summary
from epimodels.rt import estimate_r_regions, latest_r, si_table
from epimodels.utils import plotting

logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    cases: pd.DataFrame
    fit: SIRFitResult
    projection: pd.DataFrame
    projection_summary: Dict[str, object]
    rt: pd.DataFrame
    html_path: Optional[Path] = None
    figures: Dict[str, bytes] = field(default_factory=dict)


def case_summary(cases: pd.DataFrame, regions=None) -> pd.DataFrame:
    """Latest cumulative count and the last week's new cases per region."""
    data = cases if regions is None else cases[cases["region"].isin(regions)]
    rows = []
    for region, sub in data.groupby("region", sort=False):
        sub = sub.sort_values("date")
        last_week = int(sub["new_cases"].tail(7).sum())
        prev_week = int(sub["new_cases"].iloc[-14:-7].sum()) if len(sub) > 7 else 0
        rows.append({
            "region": region,
            "last_date": sub["date"].iloc[-1].date(),
            "cumulative_cases": int(sub["cumulative_cases"].iloc[-1]),
            "new_last_7d": last_week,
            "weekly_change_pct": (100.0 * (last_week - prev_week) / prev_week) if prev_week else None,
        })
    return pd.DataFrame(rows)


def run_sir(cases: pd.DataFrame, cfg: ReportConfig):
    sc = cfg.sir
    series = region_series(cases, sc.region)
    window = prepare_fit_window(series, start_threshold=sc.start_threshold,
                                days=sc.window_days, start=sc.start)
    logger.info("Fitting SIR to %s, %s to %s (%d days)", sc.region,
                window["date"].iloc[0].date(), window["date"].iloc[-1].date(), len(window))
    fit = fit_sir(window, N=sc.population, beta_guess=sc.beta_guess, gamma_guess=sc.gamma_guess,
                  bounds=(sc.beta_bounds, sc.gamma_bounds))
    projection = fit.project(sc.projection_days)
    summary = projection_summary(projection, sc.population, severe_rate=sc.severe_rate,
                                 icu_rate=sc.icu_rate, cfr=sc.cfr)
    return series, fit, projection, summary


def run_rt(cases: pd.DataFrame, cfg: ReportConfig) -> pd.DataFrame:
    rc = cfg.rt
    logger.info("Estimating R(t) for %d regions (SI %.1f +/- %.1f d, %d-day windows)",
                len(rc.regions), rc.mean_si, rc.std_si, rc.window)
    return estimate_r_regions(cases, regions=rc.regions, mean_si=rc.mean_si, std_si=rc.std_si,
                              window=rc.window, mean_prior=rc.mean_prior, std_prior=rc.std_prior)


def _add_figure(report: HtmlReport, figures: Dict[str, bytes], name: str, fig, caption: str,
                dpi: int) -> None:
    png = figure_to_png(fig, dpi=dpi)
    plt.close(fig)
    figures[name] = png
    report.figure(png, caption)


def build_page(cfg: ReportConfig, cases: pd.DataFrame, series: pd.DataFrame, fit: SIRFitResult,
               projection: pd.DataFrame, summary: Dict[str, object],
               rt: pd.DataFrame):
    dpi = cfg.output.dpi
    sc = cfg.sir
    plotting.use_report_style()
    report = HtmlReport(title=cfg.title)
    figures: Dict[str, bytes] = {}

    states = list(GERMAN_STATES.values())
    countries = [c for c in cfg.countries if c in set(cases["region"])]

    report.heading("Case counts")
    report.table(case_summary(cases, countries), "Latest reported figures per country")
    _add_figure(report, figures, "countries_cumulative",
                plotting.plot_cumulative(cases, countries), "Confirmed cases by country", dpi)
    _add_figure(report, figures, "countries_aligned",
                plotting.plot_since_threshold(cases, cfg.compare_threshold, countries),
                f"Confirmed cases since the {cfg.compare_threshold}th case", dpi)

    report.heading("Germany by federal state")
    report.table(case_summary(cases, states), "Latest reported figures per federal state")
    _add_figure(report, figures, "germany_states",
                plotting.plot_cumulative(cases, states, title="Confirmed cases by federal state"),
                "Confirmed cases by federal state", dpi)
    _add_figure(report, figures, "daily_region", plotting.plot_daily(cases, sc.region),
                f"{sc.region}: daily new cases", dpi)

    report.heading(f"SIR model for {sc.region}")
    report.text(
        f"Fitted on {len(fit.fitted)} days from {fit.start.date()} "
        f"(population {sc.population:,.0f}): beta = {fit.beta:.4f}, gamma = {fit.gamma:.4f}, "
        f"R0 = beta/gamma = {fit.R0:.2f}."
        + ("" if fit.converged else f" The optimiser did not converge: {fit.message}.")
    )
    _add_figure(report, figures, "sir_fit", plotting.plot_sir_fit(fit.fitted, sc.region, fit.R0),
                "Observed cumulative cases and fitted I(t)", dpi)
    _add_figure(report, figures, "sir_projection",
                plotting.plot_projection(projection, sc.region, observed=series),
                f"Projection over {sc.projection_days} days", dpi)
    report.table(pd.DataFrame([summary]),
                 f"Projected peak; severe {sc.severe_rate:.0%}, intensive care "
                 f"{sc.icu_rate:.0%} and deaths {sc.cfr:.0%} of the infected at the peak")

    report.heading("Reproduction number R(t)")
    report.text(
        f"Cori et al. method, {cfg.rt.window}-day sliding windows, parametric serial "
        f"interval with mean {cfg.rt.mean_si} and sd {cfg.rt.std_si} days, "
        f"gamma prior with mean {cfg.rt.mean_prior} and sd {cfg.rt.std_prior}."
    )
    report.table(si_table(cfg.rt.mean_si, cfg.rt.std_si),
                 "Discretised serial interval: weight of an infection d days earlier")
    report.table(latest_r(rt), "Most recent window per region")
    _add_figure(report, figures, "rt_comparison", plotting.plot_rt_comparison(rt),
                "Mean R(t) by region", dpi)
    for region in cfg.rt.regions:
        _add_figure(report, figures, f"rt_{_slug(region)}", plotting.plot_rt(rt, region),
                    f"{region}: R(t) with 95% credible interval", dpi)

    s = cfg.sources
    report.sources = [str(s.germany.source), str(s.india.source), str(s.uk.source), str(s.jhu.source)]
    return report, figures


def _slug(name: str) -> str:
    return "".join(ch.lower() if ch.isalnum() else "_" for ch in name).strip("_")


def save_images(figures: Dict[str, bytes], image_dir: Path) -> None:
    image_dir = Path(image_dir)
    image_dir.mkdir(parents=True, exist_ok=True)
    for name, png in figures.items():
        (image_dir / f"{name}.png").write_bytes(png)
    logger.info("Wrote %d figure(s) to %s", len(figures), image_dir)


def build_report(cfg: Optional[ReportConfig] = None,
                 cases: Optional[pd.DataFrame] = None) -> ReportResult:
    """
    Run the whole report. `cases` (tidy daily table) skips the download
    step, e.g. when rendering from a prepared table.
    """
    cfg = cfg or ReportConfig()

    if cases is None:
        logger.info("Loading case tables")
        cases = combine(load_all(cfg.sources, timeout_s=cfg.timeout_s))
    logger.info("%d regions, %d rows", cases["region"].nunique(), len(cases))

    series, fit, projection, summary = run_sir(cases, cfg)
    rt = run_rt(cases, cfg)

    logger.info("Rendering report")
    report, figures = build_page(cfg, cases, series, fit, projection, summary, rt)
    html_path = report.write(cfg.output.html_path)
    logger.info("Wrote %s", html_path)
    if cfg.output.keep_images:
        save_images(figures, cfg.output.image_dir)

    return ReportResult(cases=cases, fit=fit, projection=projection,
                        projection_summary=summary, rt=rt, html_path=html_path,
                        figures=figures)
