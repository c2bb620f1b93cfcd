"""
===========================================================
config.py
Author: Veronica Scerra
Last Updated: 2025-11-10
===========================================================

Description:
    All knobs of the report in one dataclass tree. The defaults
    reproduce the published page; the CLI overrides a few fields
    (output path, local snapshots of the sources).

Notes:
    - Serial interval: mean 4.7 d, sd 2.9 d (Nishiura et al. 2020).
    - NRW population: 17,932,651 (IT.NRW, 31 Dec 2019).
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from casedata.sources import SourcesConfig


@dataclass
class SIRFitConfig:
    region: str = "North Rhine-Westphalia"
    population: float = 17_932_651
    start_threshold: int = 1
    start: Optional[str] = None
    window_days: Optional[int] = 14
    beta_guess: float = 0.5
    gamma_guess: float = 0.5
    beta_bounds: Tuple[float, float] = (0.0, 1.0)
    gamma_bounds: Tuple[float, float] = (0.0, 1.0)
    projection_days: int = 150
    # shares of the infected at the peak
    severe_rate: float = 0.2
    icu_rate: float = 0.06
    cfr: float = 0.02


@dataclass
class RtConfig:
    mean_si: float = 4.7
    std_si: float = 2.9
    window: int = 7
    mean_prior: float = 5.0
    std_prior: float = 5.0
    regions: Tuple[str, ...] = (
        "Germany",
        "North Rhine-Westphalia",
        "Bavaria",
        "Baden-Württemberg",
        "India",
        "United Kingdom",
        "Australia",
        "United States",
    )


@dataclass
class OutputConfig:
    html_path: Path = Path("docs/index.html")
    image_dir: Path = Path("figures")
    keep_images: bool = False
    dpi: int = 110


@dataclass
class ReportConfig:
    title: str = "COVID-19: North Rhine-Westphalia and beyond"
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    sir: SIRFitConfig = field(default_factory=SIRFitConfig)
    rt: RtConfig = field(default_factory=RtConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    # regions on the country comparison charts
    countries: Tuple[str, ...] = ("Germany", "India", "United Kingdom", "Australia", "United States")
    compare_threshold: int = 100
    timeout_s: int = 30
