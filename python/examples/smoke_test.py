"""Runs the smoke test with the defaults and writes a report next to the working directory."""

from __future__ import annotations

import sys
from pathlib import Path

from lgbm_smoke_py import SmokeConfig, run_smoke_pipeline
from lgbm_smoke_py.report import write_report


def main() -> int:
    report = run_smoke_pipeline(SmokeConfig())
    artifacts_dir = Path("artifacts") / "smoke_test"
    for kind, path in write_report(report, artifacts_dir).items():
        print(f"Saved {kind} -> {path}")
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
