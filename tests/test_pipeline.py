import pytest

from covreport.config import ReportConfig
from covreport.pipeline import build_report, case_summary


@pytest.fixture
def config(tmp_path):
    cfg = ReportConfig()
    cfg.output.html_path = tmp_path / "docs" / "index.html"
    cfg.output.image_dir = tmp_path / "figures"
    cfg.output.dpi = 40
    cfg.sir.projection_days = 90
    cfg.rt.regions = ("Germany", "North Rhine-Westphalia", "United Kingdom")
    return cfg


def test_build_report_from_prepared_cases(config, tidy_cases):
    config.output.keep_images = True
    result = build_report(config, cases=tidy_cases)

    page = result.html_path.read_text(encoding="utf-8")
    assert result.html_path == config.output.html_path
    assert "SIR model for North Rhine-Westphalia" in page
    assert "Reproduction number R(t)" in page
    assert "Discretised serial interval" in page
    assert page.count("data:image/png;base64,") == len(result.figures)

    assert {"sir_fit", "sir_projection", "rt_comparison", "rt_north_rhine_westphalia"} <= set(result.figures)
    assert len(list(config.output.image_dir.glob("*.png"))) == len(result.figures)

    assert len(result.projection) == 90
    assert set(result.rt["region"]) == set(config.rt.regions)
    assert result.fit.beta >= 0 and result.fit.gamma >= 0
    assert "peak_date" in result.projection_summary


def test_images_not_kept_by_default(config, tidy_cases):
    build_report(config, cases=tidy_cases)
    assert not config.output.image_dir.exists()


def test_missing_fit_region_halts(config, tidy_cases):
    config.sir.region = "Saarland"
    with pytest.raises(KeyError, match="Saarland"):
        build_report(config, cases=tidy_cases)


def test_case_summary(tidy_cases):
    summary = case_summary(tidy_cases, ["Bavaria"])
    assert list(summary["region"]) == ["Bavaria"]
    bavaria = tidy_cases[tidy_cases["region"] == "Bavaria"]
    assert summary["cumulative_cases"].iloc[0] == bavaria["cumulative_cases"].iloc[-1]
    assert summary["new_last_7d"].iloc[0] == bavaria["new_cases"].tail(7).sum()
