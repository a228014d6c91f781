"""Smallest end-to-end use of the bindings: one categorical-ish feature, 128 rows."""

import numpy as np

from lgbm_smoke_py import Booster, BoosterParams, Dataset


def train_features() -> np.ndarray:
    return np.array([[x % 3] for x in range(128)], dtype=np.float64)


def train_labels() -> np.ndarray:
    return np.array([x % 3 for x in range(128)], dtype=np.float32)


def run() -> int:
    params = BoosterParams(verbosity=-1)
    with Dataset.from_mat(train_features(), params.to_param_string()) as train:
        train.set_label(train_labels())
        with Booster.create(train, params) as booster:
            booster.update()
            return booster.num_feature()


if __name__ == "__main__":
    print("features:", run())
