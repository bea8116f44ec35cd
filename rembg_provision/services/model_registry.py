from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional
import logging

from rembg_provision.app.errors import DownloadRequiredError, UnsupportedModelError
from rembg_provision.config.model_catalog import MODEL_SPECS, ModelSpec
from rembg_provision.helpers.download import Digests, download_to_path
from rembg_provision.interfaces.download.progress import DownloadObserver
from rembg_provision.interfaces.runtime.install import ModelInstall
from rembg_provision.services.cache_store import CacheStore
from rembg_provision.utils.terminal_ui import print_download_progress

logger = logging.getLogger(__name__)


@dataclass
class ModelRegistry:
    """
    Maps supported model names to their download source and keeps a cached copy.

    The catalog is injectable so tests can point at fixture URLs.
    """
    cache: CacheStore
    catalog: Iterable[ModelSpec] = field(default_factory=lambda: list(MODEL_SPECS))
    chunk_size: int = 64 * 1024
    progress_interval_s: float = 0.25
    timeout_s: Optional[float] = None

    def __post_init__(self) -> None:
        self._specs: dict[str, ModelSpec] = {s.name.lower(): s for s in self.catalog}

    def supported_names(self) -> list[str]:
        return [s.name for s in self._specs.values()]

    def spec(self, name: str) -> ModelSpec:
        key = (name or "").strip().lower()
        found = self._specs.get(key)
        if found is None:
            raise UnsupportedModelError(
                f"unsupported model: {key or name!r} (supported: {', '.join(self.supported_names())})"
            )
        return found

    def path_for(self, spec: ModelSpec) -> Path:
        return self.cache.model_path(spec.name, spec.extension)

    def is_downloaded(self, name: str) -> bool:
        return self.path_for(self.spec(name)).is_file()

    def list_downloaded(self) -> list[ModelSpec]:
        return [s for s in self._specs.values() if self.path_for(s).is_file()]

    def list_available_for_download(self) -> list[ModelSpec]:
        return [s for s in self._specs.values() if not self.path_for(s).is_file()]

    def ensure_model_noninteractive(
        self,
        name: str,
        allow_download: bool,
        on_progress: Optional[DownloadObserver] = None,
    ) -> ModelInstall:
        spec = self.spec(name)
        path = self.path_for(spec)

        if not path.exists():
            if not allow_download:
                raise DownloadRequiredError(f"download required: model {spec.name} ({spec.url})")
            logger.info("Fetching model %s", spec.name)
            # Release assets publish no digests; verification only runs when the catalog carries one.
            download_to_path(
                spec.url,
                path,
                Digests(sha256_hex=spec.sha256),
                on_progress,
                chunk_size=self.chunk_size,
                progress_interval_s=self.progress_interval_s,
                timeout_s=self.timeout_s,
            )
        else:
            logger.debug("Model cache hit: %s", path)

        return ModelInstall(path=path, input_size=spec.input_size)

    def ensure_model(self, name: str) -> ModelInstall:
        """Interactive convenience: always allows the download and prints progress."""
        url = self.spec(name).url
        return self.ensure_model_noninteractive(
            name,
            True,
            lambda p: print_download_progress(url, p),
        )
