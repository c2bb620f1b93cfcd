"""
Command line entry point.

    covreport build [-o docs/index.html] [--snapshot uk=saved/uk.html] [--keep-images]
    covreport clean
    covreport open
"""
from __future__ import annotations
import logging
import sys
import webbrowser
from argparse import ArgumentParser, ArgumentDefaultsHelpFormatter
from pathlib import Path
from typing import List, Optional

from casedata.errors import CaseDataError
from covreport.config import ReportConfig

logger = logging.getLogger("covreport")


def _parser() -> ArgumentParser:
    defaults = ReportConfig()
    arguments = ArgumentParser(prog="covreport", description="Build the COVID-19 regional report.",
                               formatter_class=ArgumentDefaultsHelpFormatter)
    arguments.add_argument("--log-level", default="INFO",
                           choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    arguments.add_argument("-v", "--verbose", action="store_true", help="same as --log-level DEBUG")
    sub = arguments.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="download the data and render the report",
                           formatter_class=ArgumentDefaultsHelpFormatter)
    build.add_argument("-o", "--output", type=Path, default=defaults.output.html_path)
    build.add_argument("--image-dir", type=Path, default=defaults.output.image_dir)
    build.add_argument("--keep-images", action="store_true", help="also write the PNG figures")
    build.add_argument("--snapshot", action="append", default=[], metavar="NAME=PATH",
                       help="read source NAME (germany, india, uk, jhu) from a local file")
    build.add_argument("--timeout", type=int, default=defaults.timeout_s, help="HTTP timeout (s)")

    clean = sub.add_parser("clean", help="remove the rendered report and figures",
                           formatter_class=ArgumentDefaultsHelpFormatter)
    clean.add_argument("-o", "--output", type=Path, default=defaults.output.html_path)
    clean.add_argument("--image-dir", type=Path, default=defaults.output.image_dir)

    view = sub.add_parser("open", help="open the rendered report in a web browser",
                          formatter_class=ArgumentDefaultsHelpFormatter)
    view.add_argument("-o", "--output", type=Path, default=defaults.output.html_path)
    return arguments


def config_from_args(args) -> ReportConfig:
    cfg = ReportConfig()
    cfg.output.html_path = args.output
    cfg.output.image_dir = args.image_dir
    cfg.output.keep_images = args.keep_images
    cfg.timeout_s = args.timeout
    for item in args.snapshot:
        name, sep, path = item.partition("=")
        if not sep or not path:
            raise ValueError(f"--snapshot expects NAME=PATH, got {item!r}")
        cfg.sources.override(name.strip(), Path(path))
    return cfg


def clean(html_path: Path, image_dir: Path) -> List[Path]:
    removed = []
    if html_path.exists():
        html_path.unlink()
        removed.append(html_path)
    if image_dir.is_dir():
        for png in image_dir.glob("*.png"):
            png.unlink()
            removed.append(png)
    for path in removed:
        logger.info("Removed %s", path)
    return removed


def open_report(html_path: Path) -> bool:
    if not html_path.exists():
        logger.error("No report at %s; run `covreport build` first", html_path)
        return False
    if not webbrowser.open(html_path.resolve().as_uri()):
        logger.error("No web browser available to open %s", html_path)
        return False
    return True


def main(argv: Optional[List[str]] = None) -> int:
    args = _parser().parse_args(argv)
    level = "DEBUG" if args.verbose else args.log_level
    logging.basicConfig(level=getattr(logging, level),
                        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    if args.command == "clean":
        clean(args.output, args.image_dir)
        return 0
    if args.command == "open":
        return 0 if open_report(args.output) else 1

    # headless rendering; imported late since it pulls in matplotlib/scipy
    import matplotlib
    matplotlib.use("Agg")
    from covreport.pipeline import build_report

    try:
        cfg = config_from_args(args)
        result = build_report(cfg)
    except (CaseDataError, KeyError, ValueError, RuntimeError, OSError) as e:
        logger.error("Report build failed: %s", e)
        logger.debug("Traceback", exc_info=True)
        return 1
    logger.info("Report written to %s", result.html_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
