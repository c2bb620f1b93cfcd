import base64
from datetime import datetime

import pandas as pd
import pytest
import matplotlib.pyplot as plt

from covreport.page import Block, HtmlReport, figure_to_png


def test_figure_to_png():
    fig, ax = plt.subplots()
    ax.plot([0, 1], [0, 1])
    png = figure_to_png(fig, dpi=50)
    plt.close(fig)
    assert png.startswith(b"\x89PNG")


def test_render_page():
    report = HtmlReport(title="Cases <NRW>")
    report.heading("Summary")
    report.text("R & friends")
    report.table(pd.DataFrame({"region": ["Bavaria"], "mean_r": [1.2345]}), "latest")
    report.figure(b"\x89PNGfake", "a chart")
    report.sources = ["https://example.org/table"]

    page = report.render(generated=datetime(2020, 4, 1, 12, 30))
    assert page.startswith("<!DOCTYPE html>")
    assert "<title>Cases &lt;NRW&gt;</title>" in page
    assert "R &amp; friends" in page
    assert "1.23" in page and "Bavaria" in page
    assert base64.b64encode(b"\x89PNGfake").decode("ascii") in page
    assert "Generated 2020-04-01 12:30" in page
    assert "<li>https://example.org/table</li>" in page


def test_unknown_block_kind():
    report = HtmlReport(title="x")
    report.blocks.append(Block("video", "clip"))
    with pytest.raises(ValueError):
        report.render()


def test_write_creates_parent(tmp_path):
    path = HtmlReport(title="x").write(tmp_path / "docs" / "index.html")
    assert path.exists()
    assert "<h1>x</h1>" in path.read_text(encoding="utf-8")
