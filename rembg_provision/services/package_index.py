from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
import logging

import requests

from rembg_provision.app.errors import ArtifactNotFoundError, TransportError
from rembg_provision.config.runtime_config import DEFAULT_INDEX_URL
from rembg_provision.helpers.platform_info import PlatformInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseFile:
    filename: str
    url: str
    packagetype: str
    sha256: str


@dataclass(frozen=True)
class ProjectMetadata:
    name: str
    version: str
    releases: dict[str, list[ReleaseFile]] = field(default_factory=dict)


def wheel_matches(filename: str, platform: PlatformInfo) -> bool:
    """
    Match a wheel filename against an OS/arch pair using its platform tag suffix.
    Python tags are irrelevant; only the embedded native library is used.
    """
    key = (platform.os, platform.arch)
    if key == ("windows", "x86_64"):
        return filename.endswith("win_amd64.whl")
    if key == ("windows", "aarch64"):
        return filename.endswith("win_arm64.whl")
    if key == ("linux", "x86_64"):
        return filename.endswith("x86_64.whl") and "manylinux" in filename
    if key == ("linux", "aarch64"):
        return filename.endswith("aarch64.whl") and "manylinux" in filename
    if key == ("macos", "aarch64"):
        return filename.endswith("arm64.whl") and "macosx" in filename
    if key == ("macos", "x86_64"):
        return filename.endswith("x86_64.whl") and "macosx" in filename
    return False


@dataclass
class PackageIndexClient:
    index_url: str = DEFAULT_INDEX_URL
    timeout_s: Optional[float] = None

    def project_url(self, name: str) -> str:
        return self.index_url.format(name=name)

    def fetch_project(self, name: str) -> ProjectMetadata:
        url = self.project_url(name)
        logger.info("Querying package index for %s", name)
        try:
            r = requests.get(url, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise TransportError(f"GET {url} failed: {exc}", url=url) from exc
        if r.status_code // 100 != 2:
            raise TransportError(f"package index request failed (HTTP {r.status_code}): {url}", url=url, status=r.status_code)
        try:
            data = r.json()
        except ValueError as exc:
            raise TransportError(f"parse package index json from {url}: {exc}", url=url) from exc
        return parse_project(name, data, url=url)

    def select_artifact(self, metadata: ProjectMetadata, platform: PlatformInfo) -> ReleaseFile:
        version = metadata.version
        files = metadata.releases.get(version)
        if files is None:
            raise ArtifactNotFoundError(f"missing releases entry for {metadata.name} version {version}")

        candidates = sorted(
            (f for f in files if f.packagetype == "bdist_wheel"),
            key=lambda f: f.filename,
        )
        for f in candidates:
            if wheel_matches(f.filename, platform):
                logger.debug("Selected %s for %s", f.filename, platform)
                return f
        raise ArtifactNotFoundError(f"no wheel found for {platform} in {metadata.name} {version}")


def parse_project(name: str, data: Any, *, url: str = "") -> ProjectMetadata:
    try:
        version = data["info"]["version"]
        releases: dict[str, list[ReleaseFile]] = {}
        for ver, files in (data.get("releases") or {}).items():
            releases[ver] = [
                ReleaseFile(
                    filename=f["filename"],
                    url=f["url"],
                    packagetype=f["packagetype"],
                    sha256=f["digests"]["sha256"],
                )
                for f in files
            ]
    except (KeyError, TypeError, AttributeError) as exc:
        raise TransportError(f"unexpected package index payload for {name}: missing {exc}", url=url) from exc
    return ProjectMetadata(name=name, version=version, releases=releases)
