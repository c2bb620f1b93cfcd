"""
===========================================================
sir.py
Author: Veronica Scerra
Last Updated: 2025-11-06
===========================================================

Description:
    Deterministic SIR (Susceptible-Infectious-Recovered) model
    integrated with scipy's solve_ivp (LSODA by default, the same
    stiff/non-stiff switching integrator deSolve::ode uses).

    Defines:
        - SIRParams: beta, gamma, N
        - sir_rhs(): ODE right-hand side
        - simulate_sir(): integrate over a time grid
        - sir_frame(): attach calendar dates to a solution

Example Usage:
    from epimodels.sir import SIRParams, simulate_sir, sir_frame
    p = SIRParams(beta=0.6, gamma=0.4, N=17_932_651)
    t, Y = simulate_sir(np.arange(100), (17_932_641, 10, 0), p)
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Sequence, Tuple
from scipy.integrate import solve_ivp


@dataclass
class SIRParams:
    beta: float     # transmission rate
    gamma: float    # recovery/removal rate
    N: float        # population size

    @property
    def R0(self) -> float:
        return self.beta / self.gamma if self.gamma > 0 else np.inf


def sir_rhs(t, y, p: SIRParams):
    S, I, R = y
    inf = p.beta * S * I / p.N
    dS = -inf
    dI = inf - p.gamma * I
    dR = p.gamma * I
    return (dS, dI, dR)


def simulate_sir(t_eval: Sequence[float], y0: Tuple[float, float, float], p: SIRParams,
                 method: str = "LSODA", rtol: float = 1e-6,
                 atol: float = 1e-8) -> Tuple[np.ndarray, np.ndarray]:
    """Integrate SIR over `t_eval`; returns (times, state matrix [3 x len(t)])"""
    t_eval = np.asarray(t_eval, dtype=float)
    if len(t_eval) < 2:
        raise ValueError("t_eval needs at least two time points")
    sol = solve_ivp(lambda t, y: sir_rhs(t, y, p),
                    (t_eval[0], t_eval[-1]), y0, t_eval=t_eval,
                    method=method, rtol=rtol, atol=atol)
    if not sol.success:
        raise RuntimeError(f"SIR integration failed: {sol.message}")
    return sol.t, sol.y


def sir_frame(start: pd.Timestamp, t: np.ndarray, Y: np.ndarray) -> pd.DataFrame:
    """Solution -> DataFrame with columns date, t, S, I, R (t in days from start)"""
    dates = pd.Timestamp(start) + pd.to_timedelta(np.asarray(t, dtype=float), unit="D")
    return pd.DataFrame({"date": dates.normalize(), "t": t, "S": Y[0], "I": Y[1], "R": Y[2]})

