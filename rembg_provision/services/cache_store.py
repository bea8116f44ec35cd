from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging

from rembg_provision.helpers.native_libs import find_main_lib
from rembg_provision.helpers.platform_info import PlatformInfo
from rembg_provision.helpers.versions import sort_versions_desc
from rembg_provision.helpers.wheel_extract import extract_native_libs
from rembg_provision.interfaces.runtime.install import CachedPackage

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CacheStore:
    """
    On-disk layout for installed runtimes and models.

        <root>/onnxruntime/<package-id>/<version>/<wheel>
        <root>/onnxruntime/<package-id>/<version>/lib/
        <root>/models/<model-name>.<ext>

    Lookups never touch the network.
    """
    root: Path
    platform: PlatformInfo

    def package_dir(self, package_id: str) -> Path:
        return self.root / "onnxruntime" / package_id

    def version_dir(self, package_id: str, version: str) -> Path:
        return self.package_dir(package_id) / version

    def lib_dir(self, package_id: str, version: str) -> Path:
        return self.version_dir(package_id, version) / "lib"

    def models_dir(self) -> Path:
        return self.root / "models"

    def model_path(self, name: str, extension: str = "onnx") -> Path:
        return self.models_dir() / f"{name}.{extension}"

    def list_versions(self, package_id: str) -> list[str]:
        pkg_dir = self.package_dir(package_id)
        if not pkg_dir.is_dir():
            return []
        return sort_versions_desc(p.name for p in pkg_dir.iterdir() if p.is_dir())

    def find_main_lib(self, lib_dir: Path) -> Optional[Path]:
        return find_main_lib(self.platform.os, lib_dir)

    def find_installed(self, package_id: str) -> Optional[CachedPackage]:
        """
        Return the newest version whose lib/ holds a usable main library.

        A version directory that still has its wheel but an empty or partial
        lib/ (an interrupted earlier run) is re-extracted in place before it
        is skipped.
        """
        for version in self.list_versions(package_id):
            lib_dir = self.lib_dir(package_id, version)
            if self.find_main_lib(lib_dir) is not None:
                logger.debug("Cache hit: %s %s", package_id, version)
                return CachedPackage(package_id=package_id, version=version, lib_dir=lib_dir)

            wheel = find_any_wheel(self.version_dir(package_id, version))
            if wheel is None:
                continue
            logger.warning("Recovering incomplete install of %s %s from %s", package_id, version, wheel.name)
            extract_native_libs(wheel, lib_dir)
            if self.find_main_lib(lib_dir) is not None:
                return CachedPackage(package_id=package_id, version=version, lib_dir=lib_dir)
        return None

    def find_installed_lib(self, package_id: str) -> Optional[Path]:
        cached = self.find_installed(package_id)
        if cached is None:
            return None
        return self.find_main_lib(cached.lib_dir)

    def has_any_cached(self, package_id: str) -> bool:
        # Presence only: no extraction side effects.
        for version in self.list_versions(package_id):
            if self.find_main_lib(self.lib_dir(package_id, version)) is not None:
                return True
        return False


def find_any_wheel(directory: Path) -> Optional[Path]:
    if not directory.is_dir():
        return None
    for p in sorted(directory.iterdir()):
        if p.is_file() and p.suffix.lower() == ".whl":
            return p
    return None
