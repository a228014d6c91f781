from .booster import Booster, BoosterParams
from .bridge import LightGBMBridge, LightGBMError
from .dataset import Dataset, default_training_data
from .diagnostics import BuildInfo, collect_build_info, format_build_info
from .lib import build_shared, find_library
from .pipeline import (
    SmokeConfig,
    SmokeReport,
    run_smoke_pipeline,
)

__version__ = "0.1.0"

__all__ = [
    "Booster",
    "BoosterParams",
    "Dataset",
    "default_training_data",
    "LightGBMBridge",
    "LightGBMError",
    "BuildInfo",
    "collect_build_info",
    "format_build_info",
    "build_shared",
    "find_library",
    "SmokeConfig",
    "SmokeReport",
    "run_smoke_pipeline",
]
