from __future__ import annotations

import ctypes
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from .bridge import (
    C_API_FEATURE_IMPORTANCE_GAIN,
    C_API_FEATURE_IMPORTANCE_SPLIT,
    C_API_PREDICT_NORMAL,
    C_API_PREDICT_RAW_SCORE,
    LightGBMBridge,
)
from .dataset import Dataset, ensure_matrix

logger = logging.getLogger(__name__)

_IMPORTANCE_TYPE_MAP = {
    "split": C_API_FEATURE_IMPORTANCE_SPLIT,
    "gain": C_API_FEATURE_IMPORTANCE_GAIN,
}


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(slots=True)
class BoosterParams:
    objective: str = "regression"
    metric: str = "l2"
    num_leaves: int = 10
    learning_rate: float = 0.05
    feature_fraction: float = 1.0
    bagging_fraction: float = 1.0
    min_data_in_leaf: int = 1
    min_sum_hessian_in_leaf: float = 1.0
    num_threads: int = 0
    verbosity: int = 1
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_param_dict(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "objective": self.objective,
            "metric": self.metric,
            "num_leaves": int(self.num_leaves),
            "learning_rate": float(self.learning_rate),
            "feature_fraction": float(self.feature_fraction),
            "bagging_fraction": float(self.bagging_fraction),
            "min_data_in_leaf": int(self.min_data_in_leaf),
            "min_sum_hessian_in_leaf": float(self.min_sum_hessian_in_leaf),
            "num_threads": int(self.num_threads),
            "verbosity": int(self.verbosity),
        }
        params.update(self.extra)
        return params

    def to_param_string(self) -> str:
        """Renders the space separated ``key=value`` string LightGBM parses."""

        return " ".join(f"{key}={_format_value(value)}" for key, value in self.to_param_dict().items())


class Booster:
    """High-level API over a LightGBM booster handle."""

    def __init__(self, handle: ctypes.c_void_p, train_set: Dataset, bridge: LightGBMBridge) -> None:
        self._handle = handle
        self._bridge = bridge
        # keeps the training dataset alive at least as long as the booster
        self.train_set = train_set
        self._closed = False

    # ------------------------------------------------------------------
    # lifecycle helpers

    def close(self) -> None:
        if not self._closed and self._handle:
            self._closed = True
            self._bridge.booster_free(self._handle)
            logger.debug("Released booster handle")

    def __enter__(self) -> "Booster":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def handle(self) -> ctypes.c_void_p:
        if self._closed:
            raise RuntimeError("Booster handle already freed.")
        return self._handle

    # ------------------------------------------------------------------
    # construction

    @classmethod
    def create(
        cls,
        train_set: Dataset,
        params: BoosterParams | str | None = None,
        bridge: Optional[LightGBMBridge] = None,
    ) -> "Booster":
        bridge = bridge or train_set.bridge
        if params is None:
            params = BoosterParams()
        param_str = params if isinstance(params, str) else params.to_param_string()
        handle = bridge.booster_create(train_set.handle, param_str)
        logger.debug("Created booster handle")
        return cls(handle, train_set, bridge)

    # ------------------------------------------------------------------
    # training

    def update(self) -> bool:
        """Runs one boosting round. Returns True when LightGBM cannot improve further."""

        return self._bridge.booster_update_one_iter(self.handle)

    def current_iteration(self) -> int:
        return self._bridge.booster_get_current_iteration(self.handle)

    # ------------------------------------------------------------------
    # inference & introspection

    def predict(
        self,
        features: np.ndarray,
        start_iteration: int = 0,
        num_iteration: int = -1,
        raw_score: bool = False,
    ) -> np.ndarray:
        matrix = ensure_matrix(features)
        predict_type = C_API_PREDICT_RAW_SCORE if raw_score else C_API_PREDICT_NORMAL
        output = self._bridge.booster_predict_for_mat(
            self.handle,
            matrix,
            predict_type=predict_type,
            start_iteration=start_iteration,
            num_iteration=num_iteration,
        )
        # multiclass scores come back flat, one block of num_class values per row
        rows = matrix.shape[0]
        if rows and output.size != rows and output.size % rows == 0:
            output = output.reshape(rows, output.size // rows)
        return output

    def num_feature(self) -> int:
        return self._bridge.booster_get_num_feature(self.handle)

    def feature_importance(
        self,
        importance_type: str = "split",
        num_iteration: int = -1,
        num_features: Optional[int] = None,
    ) -> np.ndarray:
        try:
            type_code = _IMPORTANCE_TYPE_MAP[importance_type.lower()]
        except KeyError as err:
            raise ValueError(f"Unsupported importance_type '{importance_type}'.") from err
        if num_features is None:
            num_features = self.num_feature()
        return self._bridge.booster_feature_importance(
            self.handle,
            num_features,
            num_iteration=num_iteration,
            importance_type=type_code,
        )


__all__ = ["Booster", "BoosterParams"]
