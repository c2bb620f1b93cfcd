import importlib

import matplotlib
import matplotlib.pyplot as plt
import pytest
import seaborn as sns
from matplotlib.figure import Figure

from epimodels.fitting import fit_sir, prepare_fit_window
from epimodels.rt import estimate_r_regions
from epimodels.utils import plotting


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def test_case_figures(tidy_cases):
    regions = ["Germany", "United Kingdom"]
    for fig in (
        plotting.plot_cumulative(tidy_cases, regions),
        plotting.plot_cumulative(tidy_cases, log=False),
        plotting.plot_since_threshold(tidy_cases, 100, regions),
        plotting.plot_daily(tidy_cases, "Bavaria"),
    ):
        assert isinstance(fig, Figure)


def test_cumulative_log_scale(tidy_cases):
    fig = plotting.plot_cumulative(tidy_cases, ["Germany"])
    assert fig.axes[0].get_yscale() == "log"


def test_model_figures(tidy_cases):
    nrw = tidy_cases[tidy_cases["region"] == "North Rhine-Westphalia"]
    result = fit_sir(prepare_fit_window(nrw, start_threshold=10, days=10), N=17_932_651)
    assert isinstance(plotting.plot_sir_fit(result.fitted, "NRW", result.R0), Figure)
    assert isinstance(plotting.plot_projection(result.project(90), "NRW", observed=nrw), Figure)


def test_rt_figures(tidy_cases):
    rt = estimate_r_regions(tidy_cases, regions=["Germany", "Bavaria"])
    fig = plotting.plot_rt(rt, "Germany")
    assert isinstance(fig, Figure)
    # dashed reference line at R = 1
    assert any(list(line.get_ydata()) == [1.0, 1.0] for line in fig.axes[0].lines)
    assert isinstance(plotting.plot_rt_comparison(rt), Figure)


def test_import_leaves_backend_and_theme_alone(monkeypatch):
    calls = []
    monkeypatch.setattr(matplotlib, "use", lambda *a, **k: calls.append(("use", a)))
    monkeypatch.setattr(sns, "set_theme", lambda *a, **k: calls.append(("set_theme", a)))
    importlib.reload(plotting)
    assert calls == []
