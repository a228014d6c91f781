from __future__ import annotations

import importlib.util
import logging
import os
import platform
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

_PACKAGE_DIR = Path(__file__).resolve().parent

_PLATFORM_SUFFIX = {
    "Linux": ".so",
    "Darwin": ".dylib",
    "Windows": ".dll",
}

LIBRARY_ENV_VAR = "LIGHTGBM_LIB"

logger = logging.getLogger(__name__)


def _default_library_name() -> str:
    system = platform.system()
    suffix = _PLATFORM_SUFFIX.get(system, ".so")
    return f"lib_lightgbm{suffix}"


DEFAULT_LIBRARY_NAME = _default_library_name()

# Switches used for the reference static build, minus the static-only ones.
CMAKE_OPTIONS = (
    "-DCMAKE_BUILD_TYPE=Release",
    "-DUSE_GPU=OFF",
    "-DUSE_SWIG=OFF",
    "-DUSE_HDFS=OFF",
    "-DUSE_TIMETAG=OFF",
    "-DBUILD_CLI=OFF",
    "-DCMAKE_POSITION_INDEPENDENT_CODE=ON",
)


def _wheel_library_path() -> Optional[Path]:
    """Location of the library bundled with the ``lightgbm`` wheel, if installed."""

    spec = importlib.util.find_spec("lightgbm")
    if spec is None or not spec.submodule_search_locations:
        return None
    package_dir = Path(next(iter(spec.submodule_search_locations)))
    for candidate in (package_dir / "lib" / DEFAULT_LIBRARY_NAME, package_dir / DEFAULT_LIBRARY_NAME):
        if candidate.exists():
            return candidate
    return None


def candidate_paths() -> List[Path]:
    paths: List[Path] = []
    wheel_path = _wheel_library_path()
    if wheel_path is not None:
        paths.append(wheel_path)
    paths.append(_PACKAGE_DIR / DEFAULT_LIBRARY_NAME)
    return paths


def find_library(library_path: Optional[os.PathLike[str] | str] = None) -> Path:
    """Resolves the LightGBM shared library.

    Lookup order: explicit argument, ``$LIGHTGBM_LIB``, the copy shipped in
    the ``lightgbm`` wheel, then a library built into this package via
    :func:`build_shared`.
    """

    if library_path is not None:
        return Path(library_path)
    env_path = os.environ.get(LIBRARY_ENV_VAR)
    if env_path:
        return Path(env_path)
    candidates = candidate_paths()
    for path in candidates:
        if path.exists():
            return path
    looked = ", ".join(str(p) for p in candidates)
    raise FileNotFoundError(
        f"LightGBM shared library not found. Looked for {looked}. "
        f"Install the lightgbm wheel, set {LIBRARY_ENV_VAR}, "
        "or build it via lgbm_smoke_py.lib.build_shared()."
    )


def build_shared(
    source_dir: os.PathLike[str] | str,
    output_dir: Optional[Path] = None,
    *,
    use_openmp: bool = True,
    jobs: Optional[int] = None,
) -> Path:
    """Builds ``lib_lightgbm`` from a LightGBM source checkout.

    Parameters
    ----------
    source_dir:
        Root of a recursive clone of the LightGBM repository.
    output_dir:
        Destination directory for the compiled library. Defaults to the
        package directory so :func:`find_library` picks it up.
    use_openmp:
        Passed through as ``-DUSE_OPENMP``.
    jobs:
        Parallel build jobs, defaults to the CPU count.

    Returns
    -------
    pathlib.Path
        Path of the copied shared library.
    """

    source_dir = Path(source_dir)
    if not (source_dir / "CMakeLists.txt").exists():
        raise FileNotFoundError(f"{source_dir} does not look like a LightGBM checkout.")

    if output_dir is None:
        output_dir = _PACKAGE_DIR

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    build_dir = source_dir / "build"
    build_dir.mkdir(exist_ok=True)

    configure_cmd = [
        "cmake",
        "..",
        *CMAKE_OPTIONS,
        f"-DUSE_OPENMP={'ON' if use_openmp else 'OFF'}",
    ]
    build_cmd = [
        "cmake",
        "--build",
        ".",
        "--config",
        "Release",
        "-j",
        str(jobs or os.cpu_count() or 1),
    ]

    logger.info("Configuring LightGBM in %s", build_dir)
    subprocess.check_call(configure_cmd, cwd=build_dir)
    logger.info("Building LightGBM")
    subprocess.check_call(build_cmd, cwd=build_dir)

    # LightGBM's CMake drops the library at the repository root
    built = source_dir / DEFAULT_LIBRARY_NAME
    if not built.exists():
        raise FileNotFoundError(f"Build finished but {built} is missing.")

    target = output_dir / DEFAULT_LIBRARY_NAME
    shutil.copy2(built, target)
    return target


__all__ = [
    "build_shared",
    "candidate_paths",
    "find_library",
    "CMAKE_OPTIONS",
    "DEFAULT_LIBRARY_NAME",
    "LIBRARY_ENV_VAR",
]
