"""End-to-end tests against the real LightGBM shared library.

Skipped when no ``lib_lightgbm`` can be located (no lightgbm wheel and no
``$LIGHTGBM_LIB``).
"""

import importlib.util
from pathlib import Path

import numpy as np
import pytest

from lgbm_smoke_py import (
    Booster,
    BoosterParams,
    Dataset,
    LightGBMBridge,
    LightGBMError,
    SmokeConfig,
    default_training_data,
    find_library,
    run_smoke_pipeline,
)

try:
    LIBRARY_PATH = find_library()
except FileNotFoundError:
    LIBRARY_PATH = None

pytestmark = pytest.mark.skipif(LIBRARY_PATH is None, reason="lib_lightgbm not available")

EXAMPLES_DIR = Path(__file__).resolve().parents[1] / "python" / "examples"


@pytest.fixture(scope="module")
def bridge():
    try:
        return LightGBMBridge(LIBRARY_PATH)
    except OSError as err:
        pytest.skip(f"lib_lightgbm could not be loaded: {err}")


@pytest.fixture
def quiet_params():
    return BoosterParams(verbosity=-1)


def test_smoke_pipeline_end_to_end(bridge, capsys):
    report = run_smoke_pipeline(SmokeConfig(), bridge=bridge)

    assert report.exit_code == 0
    assert report.errors == []
    assert 1 <= report.iterations_completed <= 10
    if report.early_stop_iteration is not None:
        assert report.early_stop_iteration == report.iterations_completed - 1
    assert report.predictions.shape == (5,)
    assert np.all(np.isfinite(report.predictions))
    assert report.importance.shape == (3,)
    assert np.all(report.importance >= 0)

    out = capsys.readouterr().out
    assert "Predictions:" in out
    assert "Feature Importance (splits):" in out


def test_dataset_and_labels(bridge, quiet_params):
    features, labels = default_training_data()
    with Dataset.from_mat(features, quiet_params.to_param_string(), bridge=bridge) as dataset:
        dataset.set_label(labels)
        assert dataset.num_data() == 5
        assert dataset.num_feature() == 3
        with Booster.create(dataset, quiet_params) as booster:
            assert booster.num_feature() == 3


def test_label_length_mismatch_fails_and_dataset_stays_releasable(bridge, quiet_params):
    features, _ = default_training_data()
    dataset = Dataset.from_mat(features, quiet_params.to_param_string(), bridge=bridge)

    with pytest.raises(LightGBMError) as excinfo:
        dataset.set_label(np.array([0.1, 0.2, 0.3], dtype=np.float32))

    assert excinfo.value.status != 0
    assert excinfo.value.action == "set field 'label'"
    dataset.close()
    assert dataset.closed


def test_training_rounds_then_prediction(bridge, quiet_params):
    features, labels = default_training_data()
    with Dataset.from_mat(features, quiet_params.to_param_string(), bridge=bridge) as dataset:
        dataset.set_label(labels)
        with Booster.create(dataset, quiet_params) as booster:
            rounds = 0
            for _ in range(10):
                rounds += 1
                if booster.update():
                    break
            assert rounds <= 10
            assert 0 <= booster.current_iteration() <= rounds

            predictions = booster.predict(features)
            assert predictions.shape == (5,)
            assert booster.feature_importance("split").shape == (3,)
            assert booster.feature_importance("gain").shape == (3,)


def test_minimal_booster_example(bridge):
    spec = importlib.util.spec_from_file_location("minimal_booster", EXAMPLES_DIR / "minimal_booster.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    assert module.run() == 1
