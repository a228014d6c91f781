"""Tests for the on-disk smoke test report."""

import json

import pandas as pd

from lgbm_smoke_py import SmokeConfig, run_smoke_pipeline
from lgbm_smoke_py.report import write_report


def _quiet(_line):
    pass


def test_write_report_success(fake_bridge, tmp_path):
    report = run_smoke_pipeline(SmokeConfig(), bridge=fake_bridge, out=_quiet, err_out=_quiet)

    written = write_report(report, tmp_path / "report")

    assert set(written) == {"summary", "markdown", "predictions", "importance_chart"}
    for path in written.values():
        assert path.exists()

    summary = json.loads(written["summary"].read_text(encoding="utf-8"))
    assert summary["exit_code"] == 0
    assert summary["training"]["iterations_completed"] == 10
    assert len(summary["predictions"]) == 5
    assert summary["feature_importance"] == [0.0, 1.0, 2.0]
    assert summary["build_info"]["library_path"] == fake_bridge.library_path

    frame = pd.read_csv(written["predictions"])
    assert list(frame.columns) == ["sample", "actual", "predicted"]
    assert len(frame) == 5

    markdown = written["markdown"].read_text(encoding="utf-8")
    assert markdown.startswith("# LightGBM smoke test (passed)")



def test_write_report_multiclass_columns(make_bridge, tmp_path):
    bridge = make_bridge(num_classes=3)
    report = run_smoke_pipeline(SmokeConfig(), bridge=bridge, out=_quiet, err_out=_quiet)

    written = write_report(report, tmp_path)

    frame = pd.read_csv(written["predictions"])
    assert list(frame.columns) == ["sample", "actual", "predicted_0", "predicted_1", "predicted_2"]
    assert len(frame) == 5
    summary = json.loads(written["summary"].read_text(encoding="utf-8"))
    assert summary["predictions"][0] == [0.3, 0.3, 0.3]

def test_write_report_after_hard_failure(make_bridge, tmp_path):
    bridge = make_bridge(fail={"booster_create": -1})
    report = run_smoke_pipeline(SmokeConfig(), bridge=bridge, out=_quiet, err_out=_quiet)

    written = write_report(report, tmp_path)

    assert set(written) == {"summary", "markdown"}
    summary = json.loads(written["summary"].read_text(encoding="utf-8"))
    assert summary["exit_code"] == 1
    assert summary["predictions"] is None
    assert summary["errors"] == ["Failed to create booster. Error code: -1"]
    assert "FAILED" in written["markdown"].read_text(encoding="utf-8")
