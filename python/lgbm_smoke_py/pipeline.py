from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from .booster import Booster, BoosterParams
from .bridge import LightGBMBridge, LightGBMError
from .dataset import Dataset, default_training_data, ensure_matrix
from .diagnostics import BuildInfo, collect_build_info, format_build_info

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

Printer = Callable[[str], None]


def _print_stderr(message: str) -> None:
    print(message, file=sys.stderr)


@dataclass
class SmokeConfig:
    """Inputs of the smoke test. ``None`` features/labels select the 5 x 3 sample."""

    features: Optional[np.ndarray] = None
    labels: Optional[np.ndarray] = None
    params: BoosterParams = field(default_factory=BoosterParams)
    num_iterations: int = 10
    library_path: Optional[str] = None

    def resolve_data(self) -> tuple[np.ndarray, np.ndarray]:
        default_features, default_labels = default_training_data()
        features = default_features if self.features is None else ensure_matrix(self.features)
        if self.labels is None:
            labels = default_labels
        else:
            labels = np.ascontiguousarray(self.labels, dtype=np.float32)
        return features, labels


@dataclass
class SmokeReport:
    build_info: BuildInfo
    params: str
    labels: np.ndarray
    num_iterations: int
    exit_code: int = EXIT_SUCCESS
    iterations_completed: int = 0
    early_stop_iteration: Optional[int] = None
    failed_iteration: Optional[int] = None
    current_iteration: Optional[int] = None
    predictions: Optional[np.ndarray] = None
    importance: Optional[np.ndarray] = None
    errors: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == EXIT_SUCCESS


def _hard_failure(report: SmokeReport, what: str, err: LightGBMError, err_out: Printer) -> SmokeReport:
    message = f"Failed to {what}. Error code: {err.status}"
    err_out(message)
    if err.message:
        logger.debug("LightGBM: %s", err.message)
    report.errors.append(message)
    report.exit_code = EXIT_FAILURE
    return report


def _soft_failure(report: SmokeReport, message: str, err_out: Printer) -> None:
    err_out(message)
    report.errors.append(message)


def _train(booster: Booster, report: SmokeReport, out: Printer, err_out: Printer) -> None:
    for i in range(report.num_iterations):
        try:
            finished = booster.update()
        except LightGBMError as err:
            report.failed_iteration = i
            _soft_failure(report, f"Training failed at iteration {i}. Error code: {err.status}", err_out)
            break
        report.iterations_completed = i + 1
        if finished:
            report.early_stop_iteration = i
            out(f"Early stopping at iteration {i}")
            break

    try:
        report.current_iteration = booster.current_iteration()
    except LightGBMError as err:
        logger.warning("Could not read the current iteration: %s", err)

    if report.failed_iteration is None:
        out("Training completed successfully!")
    else:
        out(f"Training stopped after {report.iterations_completed} iteration(s).")


def _format_prediction(value: np.ndarray | float) -> str:
    if np.ndim(value) == 0:
        return f"{float(value):g}"
    return "[" + ", ".join(f"{float(v):g}" for v in value) + "]"


def _release(resource: Dataset | Booster, what: str, report: SmokeReport, err_out: Printer) -> None:
    try:
        resource.close()
    except LightGBMError as err:
        _soft_failure(report, f"Failed to free {what}. Error code: {err.status}", err_out)


def _predict(
    booster: Booster,
    features: np.ndarray,
    report: SmokeReport,
    out: Printer,
    err_out: Printer,
) -> None:
    try:
        predictions = booster.predict(features, start_iteration=0, num_iteration=-1)
    except LightGBMError as err:
        _soft_failure(report, f"Prediction failed. Error code: {err.status}", err_out)
        return
    report.predictions = predictions
    out("")
    out("Predictions:")
    for i, (actual, predicted) in enumerate(zip(report.labels, predictions)):
        out(f"  Sample {i + 1}: Actual = {float(actual):g}, Predicted = {_format_prediction(predicted)}")


def _importance(booster: Booster, report: SmokeReport, out: Printer, err_out: Printer) -> None:
    try:
        num_features = booster.num_feature()
    except LightGBMError as err:
        _soft_failure(report, f"Feature count query failed. Error code: {err.status}", err_out)
        return
    try:
        importance = booster.feature_importance("split", num_iteration=-1, num_features=num_features)
    except LightGBMError as err:
        _soft_failure(report, f"Feature importance failed. Error code: {err.status}", err_out)
        return
    report.importance = importance
    out("")
    out("Feature Importance (splits):")
    for i, value in enumerate(importance):
        out(f"  Feature {i}: {float(value):g}")


def run_smoke_pipeline(
    config: SmokeConfig | None = None,
    bridge: Optional[LightGBMBridge] = None,
    *,
    out: Printer = print,
    err_out: Printer = _print_stderr,
) -> SmokeReport:
    """Diagnostics, dataset, booster, training, prediction and importance in one pass.

    Failures while creating the dataset, attaching labels or creating the
    booster end the run with exit code 1. Failures in training, prediction or
    the importance query are reported and the remaining steps still run.
    Every handle that was created is released exactly once, booster first.
    """

    cfg = config or SmokeConfig()
    bridge = bridge or LightGBMBridge(cfg.library_path)
    features, labels = cfg.resolve_data()
    param_str = cfg.params.to_param_string()

    out("LightGBM Library Smoke Test")
    out("===========================")
    out("")

    build_info = collect_build_info(bridge.library_path)
    out(format_build_info(build_info))
    out("")

    report = SmokeReport(
        build_info=build_info,
        params=param_str,
        labels=labels,
        num_iterations=cfg.num_iterations,
    )

    out("Training Configuration:")
    out(f"- num_threads={cfg.params.num_threads} (use all available cores with OpenMP if enabled)")
    out(f"- verbosity={cfg.params.verbosity}")
    out("")

    try:
        dataset = Dataset.from_mat(features, param_str, bridge=bridge)
    except LightGBMError as err:
        return _hard_failure(report, "create dataset", err, err_out)

    try:
        try:
            dataset.set_label(labels)
        except LightGBMError as err:
            return _hard_failure(report, "set labels", err, err_out)

        try:
            booster = Booster.create(dataset, param_str)
        except LightGBMError as err:
            return _hard_failure(report, "create booster", err, err_out)

        try:
            _train(booster, report, out, err_out)
            _predict(booster, dataset.features, report, out, err_out)
            _importance(booster, report, out, err_out)
        finally:
            _release(booster, "booster", report, err_out)
    finally:
        _release(dataset, "dataset", report, err_out)

    out("")
    out("LightGBM library successfully integrated!")
    return report


__all__ = [
    "SmokeConfig",
    "SmokeReport",
    "run_smoke_pipeline",
    "EXIT_SUCCESS",
    "EXIT_FAILURE",
]
