"""
Figures for the regional report.

Every function returns a matplotlib Figure and never calls plt.show(),
so the report can render them to PNG without a display. The backend
is left to the caller.
"""
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.figure import Figure
from typing import Optional, Sequence


def use_report_style() -> None:
    sns.set_theme(style="whitegrid", context="notebook")


def plot_cumulative(cases: pd.DataFrame, regions: Optional[Sequence[str]] = None,
                    log: bool = True, title: str = "Confirmed cases") -> Figure:
    """Cumulative cases per region on a shared calendar."""
    data = cases if regions is None else cases[cases["region"].isin(regions)]
    fig, ax = plt.subplots(figsize=(10, 5.5))
    sns.lineplot(data=data, x="date", y="cumulative_cases", hue="region", lw=2, ax=ax)
    if log:
        ax.set_yscale("log")
    ax.set_title(title, fontsize=14)
    ax.set_xlabel("")
    ax.set_ylabel("Cumulative cases" + (" (log scale)" if log else ""))
    ax.legend(title=None, fontsize=9, ncol=2)
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig


def plot_since_threshold(cases: pd.DataFrame, threshold: int = 100,
                         regions: Optional[Sequence[str]] = None) -> Figure:
    """
    Cumulative cases aligned on the day each region passed `threshold`
    cases, the usual way to compare epidemics that started at different times.
    """
    data = cases if regions is None else cases[cases["region"].isin(regions)]
    data = data[data["cumulative_cases"] >= threshold].copy()
    data["days"] = data.groupby("region")["date"].transform(lambda d: (d - d.min()).dt.days)

    fig, ax = plt.subplots(figsize=(10, 5.5))
    sns.lineplot(data=data, x="days", y="cumulative_cases", hue="region", lw=2, ax=ax)
    ax.set_yscale("log")
    ax.set_title(f"Cases since the {threshold}th case", fontsize=14)
    ax.set_xlabel(f"Days since {threshold} cases")
    ax.set_ylabel("Cumulative cases (log scale)")
    ax.legend(title=None, fontsize=9, ncol=2)
    fig.tight_layout()
    return fig


def plot_daily(cases: pd.DataFrame, region: str, rolling: int = 7) -> Figure:
    """Daily new cases as bars with a centred rolling mean."""
    sub = cases[cases["region"] == region].sort_values("date")
    smooth = sub["new_cases"].rolling(rolling, center=True, min_periods=1).mean()

    fig, ax = plt.subplots(figsize=(10, 4.5))
    ax.bar(sub["date"], sub["new_cases"], color="lightsteelblue", label="New cases")
    ax.plot(sub["date"], smooth, color="navy", lw=2, label=f"{rolling}-day mean")
    ax.set_title(f"{region}: daily new cases", fontsize=14)
    ax.set_ylabel("Cases per day")
    ax.legend()
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig


def plot_sir_fit(fitted: pd.DataFrame, region: str, R0: Optional[float] = None) -> Figure:
    """Observed cumulative cases against the fitted I(t) over the fit window."""
    fig, ax = plt.subplots(figsize=(8, 4.5))
    ax.plot(fitted["date"], fitted["observed"], "o", color="black", label="Observed (cumulative)")
    ax.plot(fitted["date"], fitted["I"], lw=2, linestyle="--", color="tab:red", label="Model fit I(t)")
    title = f"{region}: SIR fit"
    if R0 is not None:
        title += f" ($R_0$ = {R0:.2f})"
    ax.set_title(title, fontsize=14)
    ax.set_ylabel("Cases")
    ax.legend()
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig


def plot_projection(projection: pd.DataFrame, region: str,
                    observed: Optional[pd.DataFrame] = None, log: bool = True) -> Figure:
    """Projected S, I, R of the fitted model, with observed cases if given."""
    fig, ax = plt.subplots(figsize=(10, 5.5))
    ax.plot(projection["date"], projection["S"], 'b-', lw=2, label='Susceptible')
    ax.plot(projection["date"], projection["I"], 'r-', lw=2, label='Infected')
    ax.plot(projection["date"], projection["R"], 'g-', lw=2, label='Recovered')
    if observed is not None:
        ax.plot(observed["date"], observed["cumulative_cases"], "ko", ms=3, label="Observed")
    if log:
        ax.set_yscale("log")
        ax.set_ylim(bottom=1)
    ax.set_title(f"{region}: SIR projection", fontsize=14)
    ax.set_ylabel("Persons" + (" (log scale)" if log else ""))
    ax.legend()
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig


def plot_rt(rt: pd.DataFrame, region: str, only_reliable: bool = True) -> Figure:
    """Mean R per window (plotted at the window end) with 95% credible band."""
    sub = rt[rt["region"] == region]
    if only_reliable and "reliable" in sub:
        sub = sub[sub["reliable"]]
    x = sub["date_end"] if "date_end" in sub else sub["t_end"]

    fig, ax = plt.subplots(figsize=(10, 4.5))
    ax.fill_between(x, sub["q_0.025"], sub["q_0.975"], color="tab:blue", alpha=0.25,
                    label="95% CrI")
    ax.plot(x, sub["mean_r"], color="tab:blue", lw=2, label="Mean R")
    ax.axhline(1.0, color="gray", linestyle="--", lw=1.5)
    ax.set_title(f"{region}: estimated R(t)", fontsize=14)
    ax.set_ylabel("R")
    if len(sub):
        ax.set_ylim(0, max(np.nanmax(sub["q_0.975"].to_numpy()) * 1.05, 2.0))
    ax.legend()
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig


def plot_rt_comparison(rt: pd.DataFrame, regions: Optional[Sequence[str]] = None) -> Figure:
    """Mean R(t) of several regions in one panel."""
    data = rt[rt["reliable"]] if "reliable" in rt else rt
    if regions is not None:
        data = data[data["region"].isin(regions)]
    fig, ax = plt.subplots(figsize=(10, 5.5))
    sns.lineplot(data=data, x="date_end", y="mean_r", hue="region", lw=2, ax=ax)
    ax.axhline(1.0, color="gray", linestyle="--", lw=1.5)
    ax.set_title("Estimated R(t) by region", fontsize=14)
    ax.set_xlabel("")
    ax.set_ylabel("Mean R")
    ax.legend(title=None, fontsize=9, ncol=2)
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig
