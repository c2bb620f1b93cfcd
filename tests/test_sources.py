import pandas as pd
import pytest

from casedata.errors import SourceError
from casedata.sources import (
    CsvSource,
    HtmlTableSource,
    SourcesConfig,
    load_germany_states,
    load_html_source,
    load_jhu_countries,
    scrape_table,
)


def _germany(path, **kwargs):
    return HtmlTableSource(source=path, match="NW",
                           value_cols={"BY": "Bavaria", "NW": "North Rhine-Westphalia"}, **kwargs)


def test_load_germany_states(germany_html):
    cases = load_germany_states(_germany(germany_html))
    assert set(cases["region"]) == {"Bavaria", "North Rhine-Westphalia", "Germany"}

    nrw = cases[cases["region"] == "North Rhine-Westphalia"]
    assert list(nrw["cumulative_cases"]) == [5, 12, 12, 1080, 1200]
    assert list(nrw["new_cases"]) == [5, 7, 0, 1068, 120]

    # 28 on the last day is a downward revision
    bavaria = cases[cases["region"] == "Bavaria"]
    assert list(bavaria["cumulative_cases"]) == [10, 14, 14, 30, 30]

    germany = cases[cases["region"] == "Germany"]
    assert list(germany["cumulative_cases"]) == [15, 26, 26, 1110, 1230]


def test_corrections_are_applied(germany_html):
    cfg = _germany(germany_html, corrections={"North Rhine-Westphalia": {"2020-03-04": 100}})
    nrw = load_html_source(cfg)
    nrw = nrw[nrw["region"] == "North Rhine-Westphalia"]
    assert list(nrw["cumulative_cases"]) == [5, 12, 12, 100, 1200]


def test_alternative_column_labels(germany_html):
    cfg = HtmlTableSource(source=germany_html, match="NW",
                          value_cols={"Confirmed|Total": "Germany"})
    long = scrape_table(cfg)
    assert set(long["region"]) == {"Germany"}
    assert long["cumulative_cases"].iloc[-1] == 1228


def test_missing_table_index(germany_html):
    cfg = _germany(germany_html, table_index=3)
    with pytest.raises(SourceError, match="table #3"):
        scrape_table(cfg)


def test_missing_column_halts(germany_html):
    cfg = HtmlTableSource(source=germany_html, match="NW", value_cols={"HB": "Bremen"})
    with pytest.raises(KeyError):
        scrape_table(cfg)


def test_default_year_for_short_dates(tmp_path):
    html = """<table><tr><th>Date</th><th>Confirmed</th></tr>
              <tr><td>4 Mar</td><td>3</td></tr><tr><td>5 Mar</td><td>6</td></tr></table>"""
    path = tmp_path / "uk.html"
    path.write_text(html, encoding="utf-8")
    cfg = HtmlTableSource(source=path, value_cols={"Confirmed": "United Kingdom"},
                          default_year=2020)
    daily = load_html_source(cfg)
    assert list(daily["date"]) == [pd.Timestamp("2020-03-04"), pd.Timestamp("2020-03-05")]
    assert list(daily["new_cases"]) == [3, 3]


def test_load_jhu_countries(jhu_csv):
    cases = load_jhu_countries(CsvSource(source=jhu_csv))
    assert set(cases["region"]) == {"Australia", "United States"}
    aus = cases[cases["region"] == "Australia"]
    assert list(aus["cumulative_cases"]) == [0, 1, 4, 5]
    assert list(aus["date"]) == list(pd.date_range("2020-01-22", "2020-01-25"))
    us = cases[cases["region"] == "United States"]
    assert list(us["new_cases"]) == [1, 0, 1, 3]


def test_load_jhu_unknown_country(jhu_csv):
    with pytest.raises(SourceError, match="Atlantis"):
        load_jhu_countries(CsvSource(source=jhu_csv, countries=("Atlantis",)))


def test_sources_override(tmp_path):
    cfg = SourcesConfig()
    cfg.override("uk", tmp_path / "uk.html")
    assert cfg.uk.source == tmp_path / "uk.html"
    with pytest.raises(KeyError):
        cfg.override("france", tmp_path / "fr.html")
