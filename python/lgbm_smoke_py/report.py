from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import numpy as np
import pandas as pd
from matplotlib import pyplot as plt

from .pipeline import SmokeReport


def _summary_payload(report: SmokeReport) -> Dict[str, Any]:
    return {
        "exit_code": report.exit_code,
        "build_info": report.build_info.to_dict(),
        "params": report.params,
        "training": {
            "requested_iterations": report.num_iterations,
            "iterations_completed": report.iterations_completed,
            "early_stop_iteration": report.early_stop_iteration,
            "failed_iteration": report.failed_iteration,
            "current_iteration": report.current_iteration,
        },
        "predictions": None if report.predictions is None else report.predictions.tolist(),
        "feature_importance": None if report.importance is None else report.importance.tolist(),
        "errors": list(report.errors),
    }


def _write_importance_chart(path: Path, importance: np.ndarray) -> None:
    fig, ax = plt.subplots(figsize=(6, 4))
    positions = np.arange(importance.shape[0])
    ax.bar(positions, importance)
    ax.set_xticks(positions)
    ax.set_xticklabels([f"f{i}" for i in positions])
    ax.set_xlabel("feature")
    ax.set_ylabel("split count")
    ax.set_title("LightGBM feature importance (splits)")
    ax.grid(True, axis="y", alpha=0.3)
    fig.tight_layout()
    fig.savefig(path, bbox_inches="tight")
    plt.close(fig)


def _markdown(report: SmokeReport) -> str:
    info = report.build_info
    status = "passed" if report.succeeded else "FAILED"
    lines = [
        f"# LightGBM smoke test ({status})",
        "",
        "## Environment",
        f"- hardware threads: {info.hardware_threads}",
        f"- OpenMP: {'enabled, ' + str(info.openmp_threads) + ' threads' if info.openmp_enabled else 'disabled'}",
        f"- architecture: {info.architecture}",
        f"- NEON SIMD: {'enabled' if info.neon_enabled else 'not detected'}",
        "",
        "## Training",
        f"- parameters: `{report.params}`",
        f"- iterations: {report.iterations_completed} of {report.num_iterations}",
    ]
    if report.early_stop_iteration is not None:
        lines.append(f"- early stop at iteration {report.early_stop_iteration}")
    if report.importance is not None:
        lines.extend(["", "## Feature importance (splits)"])
        lines.extend(f"- feature {i}: {value:g}" for i, value in enumerate(report.importance))
    if report.errors:
        lines.extend(["", "## Errors"])
        lines.extend(f"- {message}" for message in report.errors)
    return "\n".join(lines) + "\n"


def write_report(report: SmokeReport, directory: Path | str) -> Dict[str, Path]:
    """Dumps a smoke-test run to ``directory`` and returns the written paths by kind."""

    base_path = Path(directory)
    base_path.mkdir(parents=True, exist_ok=True)
    written: Dict[str, Path] = {}

    summary_path = base_path / "summary.json"
    summary_path.write_text(json.dumps(_summary_payload(report), indent=2), encoding="utf-8")
    written["summary"] = summary_path

    md_path = base_path / "smoke_test_results.md"
    md_path.write_text(_markdown(report), encoding="utf-8")
    written["markdown"] = md_path

    if report.predictions is not None:
        n = min(len(report.labels), len(report.predictions))
        columns = {
            "sample": np.arange(1, n + 1),
            "actual": report.labels[:n].astype(np.float64),
        }
        predictions = report.predictions[:n]
        if predictions.ndim == 2:
            for k in range(predictions.shape[1]):
                columns[f"predicted_{k}"] = predictions[:, k]
        else:
            columns["predicted"] = predictions
        frame = pd.DataFrame(columns)
        csv_path = base_path / "predictions.csv"
        frame.to_csv(csv_path, index=False)
        written["predictions"] = csv_path

    if report.importance is not None and report.importance.size > 0:
        chart_path = base_path / "feature_importance.pdf"
        _write_importance_chart(chart_path, report.importance)
        written["importance_chart"] = chart_path

    return written


__all__ = ["write_report"]
