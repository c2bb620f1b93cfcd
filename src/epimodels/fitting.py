"""
===========================================================
fitting.py
Author: Veronica Scerra
Last Updated: 2025-11-06
===========================================================

Description:
    Estimate SIR parameters (beta, gamma) for one region's early
    epidemic by least squares: the residual sum of squares between
    the observed cumulative case count and the model's I(t) is
    minimised with a bounded quasi-Newton method (L-BFGS-B).

Example Usage:
    from epimodels.fitting import fit_sir, prepare_fit_window
    window = prepare_fit_window(nrw, start_threshold=1, days=14)
    result = fit_sir(window, N=17_932_651)
    projection = result.project(150)

Notes:
    - Initial state: I0 = first observed cumulative count,
      S0 = N - I0, R0 = 0.
    - Comparing cumulative counts to I(t) is only sensible while
      hardly anyone has recovered; keep the window short.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
import warnings
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Dict, Optional, Tuple
from scipy.optimize import minimize

from .sir import SIRParams, simulate_sir, sir_frame

logger = logging.getLogger(__name__)

# finite-difference gradients need a much smoother objective than plotting does
FIT_RTOL = 1e-10

Bounds = Tuple[Tuple[float, float], Tuple[float, float]]


def prepare_fit_window(series: pd.DataFrame, start_threshold: int = 1,
                       days: Optional[int] = None, start: Optional[str] = None,
                       end: Optional[str] = None) -> pd.DataFrame:
    """
    Cut the fitting window out of a tidy daily series.

    Without explicit `start`, the window opens on the first day with at
    least `start_threshold` cumulative cases. `days` caps its length;
    `end` is inclusive.
    """
    sub = series.sort_values("date")
    if start is not None:
        sub = sub[sub["date"] >= pd.Timestamp(start)]
    else:
        sub = sub[sub["cumulative_cases"] >= start_threshold]
    if end is not None:
        sub = sub[sub["date"] <= pd.Timestamp(end)]
    if days is not None:
        sub = sub.iloc[:days]
    sub = sub.reset_index(drop=True)

    if len(sub) < 3:
        raise ValueError(f"Fit window has {len(sub)} day(s); need at least 3")
    return sub


@dataclass
class SIRFitResult:
    beta: float
    gamma: float
    N: float
    rss: float
    converged: bool
    message: str
    start: pd.Timestamp
    y0: Tuple[float, float, float]
    fitted: pd.DataFrame        # date, t, S, I, R, observed

    @property
    def R0(self) -> float:
        return self.beta / self.gamma if self.gamma > 0 else np.inf

    @property
    def params(self) -> SIRParams:
        return SIRParams(self.beta, self.gamma, self.N)

    def project(self, days: int) -> pd.DataFrame:
        """Run the fitted model `days` days from the window start."""
        t = np.arange(days, dtype=float)
        t_out, Y = simulate_sir(t, self.y0, self.params)
        return sir_frame(self.start, t_out, Y)


def fit_sir(series: pd.DataFrame, N: float,
            beta_guess: float = 0.5, gamma_guess: float = 0.5,
            bounds: Bounds = ((0.0, 1.0), (0.0, 1.0)),
            y_col: str = "cumulative_cases",
            maxiter: int = 1000) -> SIRFitResult:
    """
    Fit beta and gamma to the observed series (see module notes).

    Parameters
    ----------
    series : DataFrame
        Consecutive days with columns 'date' and `y_col`.
    N : float
        Population of the region.
    """
    y_obs = series[y_col].to_numpy(dtype=float)
    if len(y_obs) < 3:
        raise ValueError("Need at least 3 observations to fit")
    if N <= y_obs[0]:
        raise ValueError(f"Population {N} must exceed the initial case count {y_obs[0]}")

    start = pd.Timestamp(series["date"].iloc[0])
    t = (pd.to_datetime(series["date"]) - start).dt.days.to_numpy(dtype=float)

    I0 = float(y_obs[0])
    y0 = (float(N) - I0, I0, 0.0)

    def rss(theta: np.ndarray) -> float:
        beta, gamma = map(float, theta)
        _, Y = simulate_sir(t, y0, SIRParams(beta, gamma, float(N)), rtol=FIT_RTOL)
        return float(np.sum((y_obs - Y[1]) ** 2))

    x0 = np.array([beta_guess, gamma_guess], dtype=float)
    res = minimize(rss, x0, method="L-BFGS-B", bounds=bounds, options={"maxiter": maxiter})
    beta, gamma = map(float, res.x)

    if not res.success:
        warnings.warn(f"SIR fit did not converge: {res.message}")
        logger.warning("SIR fit did not converge: %s", res.message)
    logger.info("SIR fit: beta=%.4f gamma=%.4f R0=%.3f (rss=%.4g)",
                beta, gamma, beta / gamma if gamma > 0 else np.inf, res.fun)

    t_out, Y = simulate_sir(t, y0, SIRParams(beta, gamma, float(N)))
    fitted = sir_frame(start, t_out, Y)
    fitted["observed"] = y_obs

    return SIRFitResult(beta=beta, gamma=gamma, N=float(N), rss=float(res.fun),
                        converged=bool(res.success), message=str(res.message),
                        start=start, y0=y0, fitted=fitted)


def projection_summary(projection: pd.DataFrame, N: float,
                       severe_rate: float = 0.2, icu_rate: float = 0.06,
                       cfr: float = 0.02) -> Dict[str, object]:
    """
    Headline numbers of a projected epidemic: peak date and size, and
    the severe / intensive-care / fatal cases implied at the peak.
    """
    peak_idx = int(projection["I"].to_numpy().argmax())
    peak = projection.iloc[peak_idx]
    peak_infected = float(peak["I"])
    return {
        "peak_date": pd.Timestamp(peak["date"]).date(),
        "peak_infected": peak_infected,
        "severe_cases": peak_infected * severe_rate,
        "intensive_care": peak_infected * icu_rate,
        "deaths": peak_infected * cfr,
        "attack_rate": float(projection["R"].iloc[-1] + projection["I"].iloc[-1]) / float(N),
    }
