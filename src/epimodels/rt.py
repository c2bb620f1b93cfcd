"""
===========================================================
rt.py
Author: Veronica Scerra
Last Updated: 2025-11-08
===========================================================

Description:
    Instantaneous reproduction number R(t) from daily incidence
    with the Cori et al. (2013) method:

        Lambda_t = sum_{s>=1} I_{t-s} w_s          (total infectiousness)
        R | window ~ Gamma(a + sum I, 1 / (1/b + sum Lambda))

    where w is a discretised gamma serial interval and (a, b) the
    shape/scale of a gamma prior on R. Estimates are made over
    sliding windows of `window` days.

Example Usage:
    from epimodels.rt import estimate_r
    rt = estimate_r(df["new_cases"], dates=df["date"], mean_si=4.7, std_si=2.9)

Notes:
    - The first day is never the start of a window (no infectiousness
      from earlier cases is known).
    - Windows opened before 12 cumulative cases are flagged
      unreliable; the posterior is dominated by the prior there.

References:
    Cori A, Ferguson NM, Fraser C, Cauchemez S (2013). A new framework
    and software to estimate time-varying reproduction numbers during
    epidemics. Am J Epidemiol 178(9):1505-1512.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
import warnings
from typing import Optional, Sequence
import numpy as np
import pandas as pd
from scipy.stats import gamma as gamma_dist

logger = logging.getLogger(__name__)

DEFAULT_QUANTILES = (0.025, 0.05, 0.25, 0.5, 0.75, 0.95, 0.975)
MIN_CUMULATIVE_CASES = 12


def discrete_si(k, mean_si: float, std_si: float) -> np.ndarray:
    """
    Discretised serial interval distribution at days `k`.

    Gamma distribution of (SI - 1) with the given mean and sd, integrated
    against a triangular kernel so each day's weight is the probability
    mass around it. w(0) = 0.

    Parameters
    ----------
    k : int or array of int
        Days at which to evaluate.
    mean_si, std_si : float
        Mean (> 1) and standard deviation (> 0) of the serial interval.
    """
    if mean_si <= 1:
        raise ValueError("mean_si must be greater than 1")
    if std_si <= 0:
        raise ValueError("std_si must be positive")

    k = np.asarray(k, dtype=float)
    a = ((mean_si - 1) / std_si) ** 2
    b = std_si ** 2 / (mean_si - 1)

    def cdf(x, shape):
        return gamma_dist.cdf(x, a=shape, scale=b)

    res = k * cdf(k, a) + (k - 2) * cdf(k - 2, a) - 2 * (k - 1) * cdf(k - 1, a)
    res = res + a * b * (2 * cdf(k - 1, a + 1) - cdf(k - 2, a + 1) - cdf(k, a + 1))
    return np.maximum(res, 0.0)


def overall_infectivity(incidence: Sequence[float], si: Sequence[float]) -> np.ndarray:
    """
    Lambda_t = sum_{s=1}^{t} I_{t-s} * si[s]  for t = 0..T-1 (Lambda_0 = 0).

    `si` must cover lags 0..T-1 (si[0] is ignored).
    """
    incid = np.asarray(incidence, dtype=float)
    w = np.asarray(si, dtype=float)
    T = len(incid)
    if len(w) < T:
        raise ValueError(f"serial interval has {len(w)} values, need {T}")
    lam = np.zeros(T)
    for t in range(1, T):
        lam[t] = float(np.dot(incid[t - 1::-1], w[1:t + 1]))
    return lam


def _check_incidence(incidence) -> np.ndarray:
    incid = np.asarray(incidence, dtype=float)
    if incid.ndim != 1:
        raise ValueError("incidence must be one-dimensional")
    if np.isnan(incid).any():
        raise ValueError("incidence contains missing values")
    if (incid < 0).any():
        raise ValueError("incidence must be non-negative")
    if not np.allclose(incid, np.round(incid)):
        raise ValueError("incidence must be integer counts")
    return incid


def estimate_r(incidence, dates: Optional[Sequence] = None,
               mean_si: float = 4.7, std_si: float = 2.9, window: int = 7,
               mean_prior: float = 5.0, std_prior: float = 5.0,
               quantiles: Sequence[float] = DEFAULT_QUANTILES) -> pd.DataFrame:
    """
    Sliding-window posterior of R for a daily incidence series.

    Returns
    -------
    pd.DataFrame, one row per window:
        t_start, t_end (1-based day indices, inclusive)
        date_start, date_end (if `dates` given)
        mean_r, std_r, q_<p> for each quantile, median_r
        reliable (bool)
    """
    incid = _check_incidence(incidence)
    T = len(incid)
    if window < 1:
        raise ValueError("window must be at least 1 day")
    if T <= window:
        raise ValueError(f"Need more than {window} days of incidence, got {T}")
    if mean_prior <= 0 or std_prior <= 0:
        raise ValueError("prior mean and std must be positive")

    si = discrete_si(np.arange(T), mean_si, std_si)
    lam = overall_infectivity(incid, si)

    a_prior = (mean_prior / std_prior) ** 2
    b_prior = std_prior ** 2 / mean_prior

    # 0-based starts 1..T-window; the first day only seeds Lambda
    starts = np.arange(1, T - window + 1)
    ends = starts + window - 1

    csum_i = np.concatenate([[0.0], np.cumsum(incid)])
    csum_l = np.concatenate([[0.0], np.cumsum(lam)])
    sum_i = csum_i[ends + 1] - csum_i[starts]
    sum_l = csum_l[ends + 1] - csum_l[starts]

    shape = a_prior + sum_i
    scale = 1.0 / (1.0 / b_prior + sum_l)

    out = pd.DataFrame({"t_start": starts + 1, "t_end": ends + 1})
    if dates is not None:
        dates = pd.to_datetime(pd.Series(dates)).reset_index(drop=True)
        if len(dates) != T:
            raise ValueError("dates and incidence must have the same length")
        out["date_start"] = dates.iloc[starts].to_numpy()
        out["date_end"] = dates.iloc[ends].to_numpy()

    out["mean_r"] = shape * scale
    out["std_r"] = np.sqrt(shape) * scale
    for q in quantiles:
        out[f"q_{q}"] = gamma_dist.ppf(q, a=shape, scale=scale)
    out["median_r"] = gamma_dist.ppf(0.5, a=shape, scale=scale)

    out["reliable"] = csum_i[starts] >= MIN_CUMULATIVE_CASES
    n_unreliable = int((~out["reliable"]).sum())
    if n_unreliable:
        warnings.warn(f"{n_unreliable} R(t) window(s) start before {MIN_CUMULATIVE_CASES} "
                      "cumulative cases; estimates there are prior-dominated")
        logger.warning("%d of %d windows start before %d cumulative cases; "
                       "estimates there are prior-dominated",
                       n_unreliable, len(out), MIN_CUMULATIVE_CASES)
    return out


def estimate_r_regions(frames: pd.DataFrame, regions: Optional[Sequence[str]] = None,
                       **kwargs) -> pd.DataFrame:
    """
    Run estimate_r per region of a tidy daily table (date, region, new_cases).
    """
    if regions is None:
        regions = list(frames["region"].unique())
    results = []
    for region in regions:
        sub = frames.loc[frames["region"] == region].sort_values("date")
        if sub.empty:
            raise KeyError(f"Region {region!r} not in case table")
        rt = estimate_r(sub["new_cases"].to_numpy(), dates=sub["date"].to_numpy(), **kwargs)
        rt.insert(0, "region", region)
        results.append(rt)
        last = rt.iloc[-1]
        logger.info("%s: R = %.2f (95%% CrI %.2f-%.2f) for window ending %s",
                    region, last["mean_r"], last.get("q_0.025", np.nan),
                    last.get("q_0.975", np.nan), last.get("date_end", last["t_end"]))
    return pd.concat(results, ignore_index=True)


def latest_r(rt: pd.DataFrame) -> pd.DataFrame:
    """Most recent window of each region, for the summary table."""
    cols = [c for c in ("region", "date_start", "date_end", "mean_r", "std_r",
                        "q_0.025", "median_r", "q_0.975") if c in rt.columns]
    return rt.groupby("region", sort=False).tail(1)[cols].reset_index(drop=True)


def si_table(mean_si: float, std_si: float, max_day: int = 14) -> pd.DataFrame:
    """Serial-interval weights for days 1..max_day as a one-row table."""
    days = np.arange(max_day + 1)
    w = discrete_si(days, mean_si, std_si)
    return pd.DataFrame([w[1:]], columns=[f"day {d}" for d in days[1:]])
