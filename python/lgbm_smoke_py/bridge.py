from __future__ import annotations

import ctypes
import logging
import os
from typing import Optional

import numpy as np

from .lib import find_library

logger = logging.getLogger(__name__)

# Constants from LightGBM/c_api.h
C_API_DTYPE_FLOAT32 = 0
C_API_DTYPE_FLOAT64 = 1
C_API_DTYPE_INT32 = 2

C_API_PREDICT_NORMAL = 0
C_API_PREDICT_RAW_SCORE = 1

C_API_FEATURE_IMPORTANCE_SPLIT = 0
C_API_FEATURE_IMPORTANCE_GAIN = 1

_FIELD_DTYPES = {
    np.dtype(np.float32): C_API_DTYPE_FLOAT32,
    np.dtype(np.float64): C_API_DTYPE_FLOAT64,
    np.dtype(np.int32): C_API_DTYPE_INT32,
}


class LightGBMError(RuntimeError):
    """Non-zero status returned by a LightGBM C API call."""

    def __init__(self, status: int, action: str, message: str = "") -> None:
        self.status = int(status)
        self.action = action
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"LightGBM reported error code {self.status} during {action}{detail}")


class LightGBMBridge:
    """Thin ctypes wrapper over the LightGBM C API."""

    def __init__(self, library_path: Optional[os.PathLike[str] | str] = None) -> None:
        self.library_path = find_library(library_path)
        self._lib = ctypes.CDLL(str(self.library_path))
        self._configure_signatures()
        logger.debug("Loaded LightGBM from %s", self.library_path)

    def _configure_signatures(self) -> None:
        c_int_p = ctypes.POINTER(ctypes.c_int)
        c_int32_p = ctypes.POINTER(ctypes.c_int32)
        c_int64_p = ctypes.POINTER(ctypes.c_int64)
        c_double_p = ctypes.POINTER(ctypes.c_double)
        c_handle_p = ctypes.POINTER(ctypes.c_void_p)

        self._lib.LGBM_GetLastError.restype = ctypes.c_char_p
        self._lib.LGBM_GetLastError.argtypes = []

        self._lib.LGBM_DatasetCreateFromMat.restype = ctypes.c_int
        self._lib.LGBM_DatasetCreateFromMat.argtypes = [
            ctypes.c_void_p,
            ctypes.c_int,
            ctypes.c_int32,
            ctypes.c_int32,
            ctypes.c_int,
            ctypes.c_char_p,
            ctypes.c_void_p,
            c_handle_p,
        ]

        self._lib.LGBM_DatasetSetField.restype = ctypes.c_int
        self._lib.LGBM_DatasetSetField.argtypes = [
            ctypes.c_void_p,
            ctypes.c_char_p,
            ctypes.c_void_p,
            ctypes.c_int,
            ctypes.c_int,
        ]

        self._lib.LGBM_DatasetGetNumData.restype = ctypes.c_int
        self._lib.LGBM_DatasetGetNumData.argtypes = [ctypes.c_void_p, c_int32_p]

        self._lib.LGBM_DatasetGetNumFeature.restype = ctypes.c_int
        self._lib.LGBM_DatasetGetNumFeature.argtypes = [ctypes.c_void_p, c_int32_p]

        self._lib.LGBM_DatasetFree.restype = ctypes.c_int
        self._lib.LGBM_DatasetFree.argtypes = [ctypes.c_void_p]

        self._lib.LGBM_BoosterCreate.restype = ctypes.c_int
        self._lib.LGBM_BoosterCreate.argtypes = [ctypes.c_void_p, ctypes.c_char_p, c_handle_p]

        self._lib.LGBM_BoosterUpdateOneIter.restype = ctypes.c_int
        self._lib.LGBM_BoosterUpdateOneIter.argtypes = [ctypes.c_void_p, c_int_p]

        self._lib.LGBM_BoosterGetCurrentIteration.restype = ctypes.c_int
        self._lib.LGBM_BoosterGetCurrentIteration.argtypes = [ctypes.c_void_p, c_int_p]

        self._lib.LGBM_BoosterGetNumClasses.restype = ctypes.c_int
        self._lib.LGBM_BoosterGetNumClasses.argtypes = [ctypes.c_void_p, c_int_p]

        self._lib.LGBM_BoosterPredictForMat.restype = ctypes.c_int
        self._lib.LGBM_BoosterPredictForMat.argtypes = [
            ctypes.c_void_p,
            ctypes.c_void_p,
            ctypes.c_int,
            ctypes.c_int32,
            ctypes.c_int32,
            ctypes.c_int,
            ctypes.c_int,
            ctypes.c_int,
            ctypes.c_int,
            ctypes.c_char_p,
            c_int64_p,
            c_double_p,
        ]

        self._lib.LGBM_BoosterGetNumFeature.restype = ctypes.c_int
        self._lib.LGBM_BoosterGetNumFeature.argtypes = [ctypes.c_void_p, c_int_p]

        self._lib.LGBM_BoosterFeatureImportance.restype = ctypes.c_int
        self._lib.LGBM_BoosterFeatureImportance.argtypes = [
            ctypes.c_void_p,
            ctypes.c_int,
            ctypes.c_int,
            c_double_p,
        ]

        self._lib.LGBM_BoosterFree.restype = ctypes.c_int
        self._lib.LGBM_BoosterFree.argtypes = [ctypes.c_void_p]

    # ------------------------------------------------------------------
    # error handling helpers

    def last_error(self) -> str:
        err = self._lib.LGBM_GetLastError()
        if not err:
            return ""
        return err.decode("utf-8", errors="replace")

    def _check_status(self, status: int, action: str) -> None:
        if status != 0:
            raise LightGBMError(status, action, self.last_error())

    # ------------------------------------------------------------------
    # dataset

    def dataset_create_from_mat(
        self,
        data: np.ndarray,
        params: str,
        reference: Optional[ctypes.c_void_p] = None,
    ) -> ctypes.c_void_p:
        rows, cols = data.shape
        handle = ctypes.c_void_p()
        status = self._lib.LGBM_DatasetCreateFromMat(
            data.ctypes.data_as(ctypes.c_void_p),
            ctypes.c_int(C_API_DTYPE_FLOAT64),
            ctypes.c_int32(rows),
            ctypes.c_int32(cols),
            ctypes.c_int(1),
            params.encode("utf-8"),
            reference,
            ctypes.byref(handle),
        )
        self._check_status(status, "create dataset")
        return handle

    def dataset_set_field(self, handle: ctypes.c_void_p, field_name: str, data: np.ndarray) -> None:
        try:
            dtype_tag = _FIELD_DTYPES[data.dtype]
        except KeyError as err:
            raise ValueError(f"Unsupported field dtype '{data.dtype}'.") from err
        status = self._lib.LGBM_DatasetSetField(
            handle,
            field_name.encode("utf-8"),
            data.ctypes.data_as(ctypes.c_void_p),
            ctypes.c_int(data.shape[0]),
            ctypes.c_int(dtype_tag),
        )
        self._check_status(status, f"set field '{field_name}'")

    def dataset_get_num_data(self, handle: ctypes.c_void_p) -> int:
        out = ctypes.c_int32(0)
        status = self._lib.LGBM_DatasetGetNumData(handle, ctypes.byref(out))
        self._check_status(status, "get dataset size")
        return out.value

    def dataset_get_num_feature(self, handle: ctypes.c_void_p) -> int:
        out = ctypes.c_int32(0)
        status = self._lib.LGBM_DatasetGetNumFeature(handle, ctypes.byref(out))
        self._check_status(status, "get dataset feature count")
        return out.value

    def dataset_free(self, handle: ctypes.c_void_p) -> None:
        status = self._lib.LGBM_DatasetFree(handle)
        self._check_status(status, "free dataset")

    # ------------------------------------------------------------------
    # booster

    def booster_create(self, dataset_handle: ctypes.c_void_p, params: str) -> ctypes.c_void_p:
        handle = ctypes.c_void_p()
        status = self._lib.LGBM_BoosterCreate(dataset_handle, params.encode("utf-8"), ctypes.byref(handle))
        self._check_status(status, "create booster")
        return handle

    def booster_update_one_iter(self, handle: ctypes.c_void_p) -> bool:
        is_finished = ctypes.c_int(0)
        status = self._lib.LGBM_BoosterUpdateOneIter(handle, ctypes.byref(is_finished))
        self._check_status(status, "training iteration")
        return bool(is_finished.value)

    def booster_get_current_iteration(self, handle: ctypes.c_void_p) -> int:
        out = ctypes.c_int(0)
        status = self._lib.LGBM_BoosterGetCurrentIteration(handle, ctypes.byref(out))
        self._check_status(status, "get current iteration")
        return out.value

    def booster_get_num_classes(self, handle: ctypes.c_void_p) -> int:
        out = ctypes.c_int(0)
        status = self._lib.LGBM_BoosterGetNumClasses(handle, ctypes.byref(out))
        self._check_status(status, "get class count")
        return out.value

    def booster_predict_for_mat(
        self,
        handle: ctypes.c_void_p,
        data: np.ndarray,
        predict_type: int = C_API_PREDICT_NORMAL,
        start_iteration: int = 0,
        num_iteration: int = -1,
        parameter: str = "",
    ) -> np.ndarray:
        if predict_type not in (C_API_PREDICT_NORMAL, C_API_PREDICT_RAW_SCORE):
            raise ValueError(f"Unsupported predict_type {predict_type}.")
        rows, cols = data.shape
        num_classes = self.booster_get_num_classes(handle)
        output = np.zeros(rows * max(num_classes, 1), dtype=np.float64)
        out_len = ctypes.c_int64(0)
        status = self._lib.LGBM_BoosterPredictForMat(
            handle,
            data.ctypes.data_as(ctypes.c_void_p),
            ctypes.c_int(C_API_DTYPE_FLOAT64),
            ctypes.c_int32(rows),
            ctypes.c_int32(cols),
            ctypes.c_int(1),
            ctypes.c_int(predict_type),
            ctypes.c_int(start_iteration),
            ctypes.c_int(num_iteration),
            parameter.encode("utf-8"),
            ctypes.byref(out_len),
            output.ctypes.data_as(ctypes.POINTER(ctypes.c_double)),
        )
        self._check_status(status, "prediction")
        return output[: out_len.value]

    def booster_get_num_feature(self, handle: ctypes.c_void_p) -> int:
        out = ctypes.c_int(0)
        status = self._lib.LGBM_BoosterGetNumFeature(handle, ctypes.byref(out))
        self._check_status(status, "get feature count")
        return out.value

    def booster_feature_importance(
        self,
        handle: ctypes.c_void_p,
        num_features: int,
        num_iteration: int = -1,
        importance_type: int = C_API_FEATURE_IMPORTANCE_SPLIT,
    ) -> np.ndarray:
        output = np.zeros(num_features, dtype=np.float64)
        status = self._lib.LGBM_BoosterFeatureImportance(
            handle,
            ctypes.c_int(num_iteration),
            ctypes.c_int(importance_type),
            output.ctypes.data_as(ctypes.POINTER(ctypes.c_double)),
        )
        self._check_status(status, "feature importance")
        return output

    def booster_free(self, handle: ctypes.c_void_p) -> None:
        status = self._lib.LGBM_BoosterFree(handle)
        self._check_status(status, "free booster")


__all__ = [
    "LightGBMBridge",
    "LightGBMError",
    "C_API_DTYPE_FLOAT32",
    "C_API_DTYPE_FLOAT64",
    "C_API_DTYPE_INT32",
    "C_API_PREDICT_NORMAL",
    "C_API_PREDICT_RAW_SCORE",
    "C_API_FEATURE_IMPORTANCE_SPLIT",
    "C_API_FEATURE_IMPORTANCE_GAIN",
]
