import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


def logistic_cases(n_days: int, K: float, r: float, mid: float, start: str = "2020-03-01",
                   region: str = "Somewhere") -> pd.DataFrame:
    dates = pd.date_range(start, periods=n_days, freq="D")
    t = np.arange(n_days)
    cum = np.round(K / (1 + np.exp(-r * (t - mid)))).astype(int)
    cum = np.maximum.accumulate(cum)
    new = np.diff(cum, prepend=0)
    return pd.DataFrame({"date": dates, "region": region,
                         "cumulative_cases": cum, "new_cases": new})


@pytest.fixture
def tidy_cases():
    """Tidy daily table for a handful of regions (70 days each)."""
    frames = [
        logistic_cases(70, 40_000, 0.20, 30, region="North Rhine-Westphalia"),
        logistic_cases(70, 45_000, 0.22, 28, region="Bavaria"),
        logistic_cases(70, 150_000, 0.21, 29, region="Germany"),
        logistic_cases(70, 90_000, 0.15, 40, region="United Kingdom"),
    ]
    return pd.concat(frames, ignore_index=True)


GERMANY_HTML = """
<html><body>
<table><tr><th>Other</th></tr><tr><td>not this one</td></tr></table>
<table>
  <thead><tr><th>Date</th><th>BY</th><th>NW</th><th>Total</th></tr></thead>
  <tbody>
    <tr><td>2020-03-01</td><td>10</td><td>5</td><td>15</td></tr>
    <tr><td>2020-03-02</td><td>14[a]</td><td>12</td><td>26</td></tr>
    <tr><td>2020-03-04</td><td>30</td><td>1,080</td><td>1,110</td></tr>
    <tr><td>2020-03-05</td><td>28</td><td>1,200 (+120)</td><td>1,228</td></tr>
    <tr><td>Total</td><td>28</td><td>1,200</td><td>1,228</td></tr>
  </tbody>
</table>
</body></html>
"""

JHU_CSV = """Province/State,Country/Region,Lat,Long,1/22/20,1/23/20,1/24/20,1/25/20
New South Wales,Australia,-33.8,151.2,0,1,3,4
Victoria,Australia,-37.8,144.9,0,0,1,1
,US,40.0,-100.0,1,1,2,5
,Germany,51.0,9.0,0,0,0,1
"""


@pytest.fixture
def germany_html(tmp_path):
    path = tmp_path / "germany.html"
    path.write_text(GERMANY_HTML, encoding="utf-8")
    return path


@pytest.fixture
def jhu_csv(tmp_path):
    path = tmp_path / "confirmed.csv"
    path.write_text(JHU_CSV, encoding="utf-8")
    return path
