from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from rembg_provision.app.init_guard import BackendInitGuard, load_native_library
from rembg_provision.app.runtime_bootstrap import get_cache_root
from rembg_provision.config.model_catalog import MODEL_SPECS, ModelSpec
from rembg_provision.config.runtime_config import ProvisioningConfig
from rembg_provision.helpers.platform_info import PlatformInfo, current_platform
from rembg_provision.services.cache_store import CacheStore
from rembg_provision.services.model_registry import ModelRegistry
from rembg_provision.services.package_index import PackageIndexClient


@dataclass(frozen=True)
class ProvisioningContext:
    """
    Shared provisioning state handed to every caller.

    Owns the backend init guard, so one context per process means one
    committed runtime per process.
    """
    config: ProvisioningConfig
    platform: PlatformInfo
    cache: CacheStore
    index: PackageIndexClient
    models: ModelRegistry
    guard: BackendInitGuard


def build_context(
    cfg: ProvisioningConfig,
    *,
    platform: Optional[PlatformInfo] = None,
    catalog: Optional[Iterable[ModelSpec]] = None,
    loader: Callable[[Path], Any] = load_native_library,
) -> ProvisioningContext:
    """
    Dependency container builder
    Constructs the cache, index client, model registry and init guard once
    and wires them together.
    """
    platform = platform or current_platform()
    root = get_cache_root(cfg.app_name, cfg.app_author, cfg.cache_dir)

    cache = CacheStore(root=root, platform=platform)
    index = PackageIndexClient(index_url=cfg.index_url, timeout_s=cfg.request_timeout_s)
    models = ModelRegistry(
        cache=cache,
        catalog=list(catalog) if catalog is not None else list(MODEL_SPECS),
        chunk_size=cfg.chunk_size,
        progress_interval_s=cfg.progress_interval_s,
        timeout_s=cfg.request_timeout_s,
    )

    return ProvisioningContext(
        config=cfg,
        platform=platform,
        cache=cache,
        index=index,
        models=models,
        guard=BackendInitGuard(loader=loader),
    )
