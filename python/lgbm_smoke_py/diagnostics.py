"""Build and environment diagnostics printed ahead of the smoke test."""

from __future__ import annotations

import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from threadpoolctl import threadpool_info

logger = logging.getLogger(__name__)

ARCH_AARCH64 = "aarch64 (ARM 64-bit)"
ARCH_X86_64 = "x86_64 (Intel/AMD 64-bit)"
ARCH_ARM32 = "ARM 32-bit"
ARCH_UNKNOWN = "unknown"

_CPUINFO_PATH = Path("/proc/cpuinfo")


@dataclass
class BuildInfo:
    hardware_threads: int
    openmp_enabled: bool
    openmp_threads: Optional[int]
    architecture: str
    neon_enabled: bool
    library_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hardware_threads": self.hardware_threads,
            "openmp_enabled": self.openmp_enabled,
            "openmp_threads": self.openmp_threads,
            "architecture": self.architecture,
            "neon_enabled": self.neon_enabled,
            "library_path": self.library_path,
        }


def detect_architecture(machine: Optional[str] = None) -> str:
    machine = (machine if machine is not None else platform.machine()).lower()
    if machine in ("aarch64", "arm64"):
        return ARCH_AARCH64
    if machine in ("x86_64", "amd64"):
        return ARCH_X86_64
    if machine.startswith("arm"):
        return ARCH_ARM32
    return ARCH_UNKNOWN


def detect_neon(architecture: str, cpuinfo_path: Path = _CPUINFO_PATH) -> bool:
    # Advanced SIMD is mandatory on ARMv8-A
    if architecture == ARCH_AARCH64:
        return True
    if architecture != ARCH_ARM32:
        return False
    try:
        text = cpuinfo_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False
    for line in text.splitlines():
        key, _, value = line.partition(":")
        if key.strip().lower() == "features" and "neon" in value.split():
            return True
    return False


def openmp_runtimes(info: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """OpenMP runtimes currently loaded into the process."""

    if info is None:
        try:
            info = threadpool_info()
        except Exception as err:
            logger.warning("Could not inspect thread pools: %s", err)
            return []
    return [item for item in info if item.get("user_api") == "openmp"]


def collect_build_info(
    library_path: Optional[os.PathLike[str] | str] = None,
    *,
    pools: Optional[List[Dict[str, Any]]] = None,
    machine: Optional[str] = None,
) -> BuildInfo:
    """Gathers the diagnostics.

    Call after the LightGBM library has been loaded: OpenMP is reported as
    enabled only when the library pulled an OpenMP runtime into the process.
    """

    runtimes = openmp_runtimes(pools)
    openmp_threads = None
    if runtimes:
        openmp_threads = max(int(item.get("num_threads") or 0) for item in runtimes)

    architecture = detect_architecture(machine)
    return BuildInfo(
        hardware_threads=os.cpu_count() or 0,
        openmp_enabled=bool(runtimes),
        openmp_threads=openmp_threads,
        architecture=architecture,
        neon_enabled=detect_neon(architecture),
        library_path=str(library_path) if library_path is not None else None,
    )


def format_build_info(info: BuildInfo) -> str:
    lines = [
        "LightGBM Build Information",
        "==========================",
        f"Hardware threads available: {info.hardware_threads}",
    ]
    if info.openmp_enabled:
        lines.append("OpenMP: ENABLED (library linked against an OpenMP runtime)")
        lines.append(f"OpenMP threads: {info.openmp_threads}")
    else:
        lines.append("OpenMP: DISABLED (no OpenMP runtime loaded with the library)")
    lines.append(f"Architecture: {info.architecture}")
    lines.append("NEON SIMD: ENABLED" if info.neon_enabled else "NEON SIMD: Not detected")
    if info.library_path:
        lines.append(f"Library: {info.library_path}")
    return "\n".join(lines)


__all__ = [
    "BuildInfo",
    "collect_build_info",
    "detect_architecture",
    "detect_neon",
    "format_build_info",
    "openmp_runtimes",
    "ARCH_AARCH64",
    "ARCH_X86_64",
    "ARCH_ARM32",
    "ARCH_UNKNOWN",
]
