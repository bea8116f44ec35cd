from __future__ import annotations

from typing import Mapping, Optional
import os

from rembg_provision.config.runtime_config import DEFAULT_INDEX_URL, ProvisioningConfig

_TRUTHY = {"1", "true", "yes"}


def _flag(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def build_settings(env: Optional[Mapping[str, str]] = None) -> ProvisioningConfig:
    env = os.environ if env is None else env

    return ProvisioningConfig.from_strings(
        app_name="rembg-provision",
        app_author="rembg",
        device=env.get("REMBG_DEVICE", "auto"),
        gpu_backend=env.get("REMBG_GPU_BACKEND", "auto"),
        model_name=env.get("REMBG_MODEL", "u2netp"),
        assume_yes=_flag(env, "REMBG_ASSUME_YES"),
        allow_download=_flag(env, "REMBG_ALLOW_DOWNLOAD"),
        cache_dir=env.get("REMBG_CACHE_DIR") or None,
        index_url=env.get("REMBG_INDEX_URL", DEFAULT_INDEX_URL),
    )
