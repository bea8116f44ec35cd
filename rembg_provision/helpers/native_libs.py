from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)

_PREFERRED_NAMES = {
    "windows": "onnxruntime.dll",
    "macos": "libonnxruntime.dylib",
    "linux": "libonnxruntime.so",
}


def is_runtime_lib_file(name: str) -> bool:
    lower = name.lower()
    return (
        lower.endswith(".dll")
        or lower.endswith(".so")
        or ".so." in lower
        or lower.endswith(".dylib")
    )


def _matches_main_lib(os_name: str, filename: str) -> bool:
    name = filename.lower()
    if os_name == "windows":
        return name == "onnxruntime.dll"
    if os_name == "macos":
        return name.startswith("libonnxruntime") and name.endswith(".dylib")
    return name.startswith("libonnxruntime.so")


def find_main_lib(os_name: str, lib_dir: Path) -> Optional[Path]:
    """
    Locate the primary runtime library in `lib_dir`.

    The platform's conventional filename wins when present. Otherwise the
    largest file matching the naming convention is taken; auxiliary provider
    libraries are always smaller than the runtime itself.
    """
    preferred = lib_dir / _PREFERRED_NAMES.get(os_name, _PREFERRED_NAMES["linux"])
    if preferred.is_file():
        return preferred
    if not lib_dir.is_dir():
        return None

    best: Optional[tuple[int, Path]] = None
    for entry in lib_dir.iterdir():
        if not entry.is_file() or not _matches_main_lib(os_name, entry.name):
            continue
        size = entry.stat().st_size
        if best is None or size > best[0]:
            best = (size, entry)

    if best is not None:
        logger.debug("Main library fallback in %s: %s", lib_dir, best[1].name)
        return best[1]
    return None
