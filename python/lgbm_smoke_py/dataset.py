from __future__ import annotations

import ctypes
import logging
from typing import Optional

import numpy as np

from .bridge import LightGBMBridge

logger = logging.getLogger(__name__)

DEFAULT_FEATURES = (
    (1.0, 0.5, 0.3),
    (2.0, 0.6, 0.4),
    (3.0, 0.7, 0.5),
    (4.0, 0.8, 0.6),
    (5.0, 0.9, 0.7),
)
DEFAULT_LABELS = (0.1, 0.2, 0.3, 0.4, 0.5)


def default_training_data() -> tuple[np.ndarray, np.ndarray]:
    """The 5 x 3 regression sample used by the smoke test."""

    features = np.array(DEFAULT_FEATURES, dtype=np.float64)
    labels = np.array(DEFAULT_LABELS, dtype=np.float32)
    return features, labels


def ensure_matrix(array: np.ndarray) -> np.ndarray:
    arr = np.asarray(array, dtype=np.float64)
    if arr.ndim != 2:
        raise ValueError(f"Expected 2D array, got shape {arr.shape}.")
    return np.ascontiguousarray(arr)


class Dataset:
    """Owns a LightGBM dataset handle built from a dense row-major matrix.

    The feature matrix is kept referenced for as long as the handle lives.
    Use as a context manager, or call :meth:`close` explicitly; closing twice
    is a no-op.
    """

    def __init__(
        self,
        handle: ctypes.c_void_p,
        features: np.ndarray,
        bridge: LightGBMBridge,
    ) -> None:
        self._handle = handle
        self._bridge = bridge
        self.features = features
        self._closed = False

    # ------------------------------------------------------------------
    # lifecycle helpers

    def close(self) -> None:
        if not self._closed and self._handle:
            self._closed = True
            self._bridge.dataset_free(self._handle)
            logger.debug("Released dataset handle")

    def __enter__(self) -> "Dataset":
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
    def bridge(self) -> LightGBMBridge:
        return self._bridge

    @property
    def handle(self) -> ctypes.c_void_p:
        if self._closed:
            raise RuntimeError("Dataset handle already freed.")
        return self._handle

    # ------------------------------------------------------------------
    # construction

    @classmethod
    def from_mat(
        cls,
        features: np.ndarray,
        params: str = "",
        bridge: Optional[LightGBMBridge] = None,
        reference: Optional["Dataset"] = None,
    ) -> "Dataset":
        bridge = bridge or LightGBMBridge()
        matrix = ensure_matrix(features)
        ref_handle = reference.handle if reference is not None else None
        handle = bridge.dataset_create_from_mat(matrix, params, ref_handle)
        logger.debug("Created dataset handle for %d x %d matrix", *matrix.shape)
        return cls(handle, matrix, bridge)

    # ------------------------------------------------------------------
    # fields

    def set_field(self, name: str, data: np.ndarray) -> None:
        self._bridge.dataset_set_field(self.handle, name, np.ascontiguousarray(data))

    def set_label(self, labels: np.ndarray) -> None:
        """Attaches labels as float32; the length is checked by LightGBM."""

        arr = np.asarray(labels, dtype=np.float32)
        if arr.ndim != 1:
            raise ValueError(f"Expected 1D array, got shape {arr.shape}.")
        self.set_field("label", arr)

    def num_data(self) -> int:
        return self._bridge.dataset_get_num_data(self.handle)

    def num_feature(self) -> int:
        return self._bridge.dataset_get_num_feature(self.handle)


__all__ = ["Dataset", "default_training_data", "ensure_matrix", "DEFAULT_FEATURES", "DEFAULT_LABELS"]
