from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .booster import BoosterParams
from .pipeline import EXIT_FAILURE, SmokeConfig, run_smoke_pipeline
from .report import write_report


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lgbm-smoke",
        description="Train a tiny LightGBM model through the C API and print build diagnostics.",
    )
    p.add_argument("--library", default=None, help="Path to lib_lightgbm (defaults to $LIGHTGBM_LIB or the lightgbm wheel).")
    p.add_argument("--iterations", type=int, default=10, help="Number of boosting rounds to request.")
    p.add_argument("--num-threads", type=int, default=0, help="LightGBM num_threads (0 uses all cores).")
    p.add_argument("--verbosity", type=int, default=1, help="LightGBM verbosity.")
    p.add_argument("--report-dir", default=None, help="Write summary.json, Markdown, CSV and chart here.")
    p.add_argument("--log-level", default="WARNING", help="Python logging level.")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = SmokeConfig(
        params=BoosterParams(num_threads=args.num_threads, verbosity=args.verbosity),
        num_iterations=args.iterations,
        library_path=args.library,
    )
    try:
        report = run_smoke_pipeline(config)
    except OSError as err:
        print(f"Could not load LightGBM: {err}", file=sys.stderr)
        return EXIT_FAILURE

    if args.report_dir:
        for kind, path in write_report(report, args.report_dir).items():
            print(f"Saved {kind} -> {path}")

    return report.exit_code


__all__ = ["build_parser", "main"]
