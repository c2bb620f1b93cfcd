import numpy as np
import pandas as pd
import pytest

from epimodels.fitting import SIRFitResult, fit_sir, prepare_fit_window, projection_summary
from epimodels.sir import SIRParams, simulate_sir


def _synthetic(beta=0.6, gamma=0.3, N=1e7, I0=10.0, days=16):
    t = np.arange(days, dtype=float)
    _, Y = simulate_sir(t, (N - I0, I0, 0.0), SIRParams(beta, gamma, N), rtol=1e-10)
    return pd.DataFrame({
        "date": pd.date_range("2020-03-01", periods=days, freq="D"),
        "region": "Test",
        "cumulative_cases": Y[1],
    })


def test_fit_recovers_growth_rate():
    series = _synthetic()
    result = fit_sir(series, N=1e7)
    # early on only beta - gamma is identifiable
    assert result.beta - result.gamma == pytest.approx(0.3, abs=0.03)
    assert 0.0 <= result.beta <= 1.0 and 0.0 <= result.gamma <= 1.0
    obs = series["cumulative_cases"].to_numpy()
    np.testing.assert_allclose(result.fitted["I"].to_numpy(), obs, rtol=0.1)
    assert list(result.fitted["observed"]) == list(obs)
    assert result.R0 == pytest.approx(result.beta / result.gamma)


def test_fit_rejects_tiny_population():
    with pytest.raises(ValueError, match="Population"):
        fit_sir(_synthetic(), N=5)


def test_prepare_fit_window_threshold_and_length():
    series = pd.DataFrame({
        "date": pd.date_range("2020-02-25", periods=10),
        "cumulative_cases": [0, 0, 1, 1, 3, 8, 15, 30, 52, 90],
    })
    window = prepare_fit_window(series, start_threshold=3, days=4)
    assert window["date"].iloc[0] == pd.Timestamp("2020-02-29")
    assert list(window["cumulative_cases"]) == [3, 8, 15, 30]

    window = prepare_fit_window(series, start="2020-03-01", end="2020-03-04")
    assert len(window) == 4

    with pytest.raises(ValueError, match="need at least 3"):
        prepare_fit_window(series, start_threshold=80)


def _result(beta=0.5, gamma=0.25, N=1e6):
    return SIRFitResult(beta=beta, gamma=gamma, N=N, rss=0.0, converged=True, message="",
                        start=pd.Timestamp("2020-03-01"), y0=(N - 10, 10.0, 0.0),
                        fitted=pd.DataFrame())


def test_project_and_summary():
    result = _result()
    projection = result.project(150)
    assert len(projection) == 150
    assert projection["date"].iloc[0] == pd.Timestamp("2020-03-01")
    assert projection["date"].iloc[-1] == pd.Timestamp("2020-07-28")

    summary = projection_summary(projection, N=1e6, severe_rate=0.2, icu_rate=0.06, cfr=0.02)
    peak = projection["I"].max()
    assert summary["peak_infected"] == pytest.approx(peak)
    assert summary["deaths"] == pytest.approx(0.02 * peak)
    assert summary["intensive_care"] == pytest.approx(0.06 * peak)
    assert summary["severe_cases"] == pytest.approx(0.2 * peak)
    # R0 = 2: final size ~ 0.797
    assert summary["attack_rate"] == pytest.approx(0.797, abs=0.01)
    assert pd.Timestamp("2020-03-01").date() < summary["peak_date"]
