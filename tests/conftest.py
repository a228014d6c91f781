"""Shared fixtures: a recording stand-in for the LightGBM bridge."""

import ctypes

import numpy as np
import pytest

from lgbm_smoke_py.bridge import LightGBMError


class FakeBridge:
    """Mimics ``LightGBMBridge`` and checks handle discipline.

    ``fail`` maps bridge method names to the status code they should return.
    Using or freeing a released handle fails the test immediately.
    """

    library_path = "/fake/lib_lightgbm.so"

    def __init__(self, fail=None, fail_at_iteration=None, finish_at_iteration=None, num_classes=1):
        self.fail = dict(fail or {})
        self.fail_at_iteration = fail_at_iteration
        self.finish_at_iteration = finish_at_iteration
        self.num_classes = num_classes
        self.calls = []
        self.freed = []
        self._next_handle = 1000
        self._live = {}
        self._iterations = {}

    # ------------------------------------------------------------------
    # helpers

    def _maybe_fail(self, name, action):
        if name in self.fail:
            raise LightGBMError(self.fail[name], action, f"injected failure in {name}")

    def _new_handle(self, kind, **info):
        self._next_handle += 1
        self._live[self._next_handle] = (kind, info)
        return ctypes.c_void_p(self._next_handle)

    def _use(self, handle, kind):
        key = handle.value
        assert key in self._live, f"use of released or unknown handle {key}"
        assert self._live[key][0] == kind
        return self._live[key][1]

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)

    @property
    def live_handles(self):
        return dict(self._live)

    # ------------------------------------------------------------------
    # dataset

    def dataset_create_from_mat(self, data, params, reference=None):
        self.calls.append(("dataset_create_from_mat", data.shape, params))
        self._maybe_fail("dataset_create_from_mat", "create dataset")
        return self._new_handle("dataset", rows=data.shape[0], cols=data.shape[1], fields={})

    def dataset_set_field(self, handle, field_name, data):
        info = self._use(handle, "dataset")
        self.calls.append(("dataset_set_field", field_name, data.dtype, data.shape[0]))
        self._maybe_fail("dataset_set_field", f"set field '{field_name}'")
        if data.shape[0] != info["rows"]:
            raise LightGBMError(-1, f"set field '{field_name}'", "Length of labels differs from the length of #data")
        info["fields"][field_name] = data.copy()

    def dataset_get_num_data(self, handle):
        return self._use(handle, "dataset")["rows"]

    def dataset_get_num_feature(self, handle):
        return self._use(handle, "dataset")["cols"]

    def dataset_free(self, handle):
        self.calls.append(("dataset_free", handle.value))
        assert self._live.pop(handle.value, None) is not None, "dataset released twice"
        self.freed.append(("dataset", handle.value))
        self._maybe_fail("dataset_free", "free dataset")

    # ------------------------------------------------------------------
    # booster

    def booster_create(self, dataset_handle, params):
        info = self._use(dataset_handle, "dataset")
        self.calls.append(("booster_create", params))
        self._maybe_fail("booster_create", "create booster")
        return self._new_handle("booster", dataset=dataset_handle.value, cols=info["cols"])

    def booster_update_one_iter(self, handle):
        self._use(handle, "booster")
        i = self._iterations.get(handle.value, 0)
        self.calls.append(("booster_update_one_iter", i))
        if self.fail_at_iteration is not None and i == self.fail_at_iteration:
            raise LightGBMError(-1, "training iteration", "injected")
        self._iterations[handle.value] = i + 1
        return self.finish_at_iteration is not None and i == self.finish_at_iteration

    def booster_get_current_iteration(self, handle):
        self._use(handle, "booster")
        return self._iterations.get(handle.value, 0)

    def booster_get_num_classes(self, handle):
        self._use(handle, "booster")
        return self.num_classes

    def booster_predict_for_mat(self, handle, data, predict_type=0, start_iteration=0, num_iteration=-1, parameter=""):
        self._use(handle, "booster")
        self.calls.append(("booster_predict_for_mat", data.shape, predict_type, start_iteration, num_iteration, parameter))
        self._maybe_fail("booster_predict_for_mat", "prediction")
        return np.full(data.shape[0] * self.num_classes, 0.3, dtype=np.float64)

    def booster_get_num_feature(self, handle):
        info = self._use(handle, "booster")
        self.calls.append(("booster_get_num_feature",))
        self._maybe_fail("booster_get_num_feature", "get feature count")
        return info["cols"]

    def booster_feature_importance(self, handle, num_features, num_iteration=-1, importance_type=0):
        self._use(handle, "booster")
        self.calls.append(("booster_feature_importance", num_features, num_iteration, importance_type))
        self._maybe_fail("booster_feature_importance", "feature importance")
        return np.arange(num_features, dtype=np.float64)

    def booster_free(self, handle):
        self.calls.append(("booster_free", handle.value))
        assert self._live.pop(handle.value, None) is not None, "booster released twice"
        self.freed.append(("booster", handle.value))
        self._maybe_fail("booster_free", "free booster")


@pytest.fixture
def fake_bridge():
    return FakeBridge()


@pytest.fixture
def make_bridge():
    return FakeBridge


@pytest.fixture
def sink():
    """Collects printed lines for both stdout and stderr style output."""

    class _Sink:
        def __init__(self):
            self.out = []
            self.err = []

        def write_out(self, line):
            self.out.append(line)

        def write_err(self, line):
            self.err.append(line)

        @property
        def text(self):
            return "\n".join(self.out)

    return _Sink()
