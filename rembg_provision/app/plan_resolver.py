from __future__ import annotations

from typing import Optional
import logging

from rembg_provision.app.errors import UnsupportedPlatformError
from rembg_provision.app.prompts import prompt_yes_no
from rembg_provision.config.runtime_packages import (
    CPU_PACKAGE,
    CUDA_PACKAGE,
    DIRECTML_PACKAGE,
    GPU_OPT_IN_PROMPT,
    RUNTIME_PACKAGES,
)
from rembg_provision.helpers.platform_info import PlatformInfo
from rembg_provision.interfaces.prompt.confirm import Confirmer
from rembg_provision.interfaces.runtime.plan import (
    AcceleratorBackend,
    DevicePreference,
    ExecutionPlan,
    ExecutionProvider,
)
from rembg_provision.services.cache_store import CacheStore

logger = logging.getLogger(__name__)

# (os, arch) pairs with a published CUDA runtime.
CUDA_PLATFORMS = {
    ("windows", "x86_64"),
    ("linux", "x86_64"),
    ("linux", "aarch64"),
}


def _any_gpu_cached(cache: CacheStore) -> bool:
    return any(
        cache.has_any_cached(pkg.package_id)
        for pkg in RUNTIME_PACKAGES.values()
        if pkg.gpu_capable
    )


def _cpu_plan(
    gpu_backend: AcceleratorBackend,
    allow_download: bool,
    cache: CacheStore,
    platform: PlatformInfo,
) -> ExecutionPlan:
    # On Windows a CPU run still loads the DirectML runtime when it can, so a later
    # in-process switch to GPU does not need a different library.
    if platform.is_windows and gpu_backend is not AcceleratorBackend.CUDA:
        if allow_download or cache.has_any_cached(DIRECTML_PACKAGE):
            return ExecutionPlan(DIRECTML_PACKAGE, None, allow_download)
    return ExecutionPlan(CPU_PACKAGE, None, allow_download)


def resolve_accelerator(
    requested: AcceleratorBackend,
    cache: CacheStore,
    platform: PlatformInfo,
) -> AcceleratorBackend:
    if requested is not AcceleratorBackend.AUTO:
        return requested
    if platform.os == "windows":
        # Whatever is already cached wins to avoid a second download.
        if cache.has_any_cached(DIRECTML_PACKAGE):
            return AcceleratorBackend.DIRECTML
        if cache.has_any_cached(CUDA_PACKAGE):
            return AcceleratorBackend.CUDA
        return AcceleratorBackend.DIRECTML
    if platform.os == "linux":
        return AcceleratorBackend.CUDA
    raise UnsupportedPlatformError(f"GPU backend not supported on this platform ({platform})")


def _gpu_plan(
    gpu_backend: AcceleratorBackend,
    allow_download: bool,
    cache: CacheStore,
    platform: PlatformInfo,
) -> ExecutionPlan:
    backend = resolve_accelerator(gpu_backend, cache, platform)
    if backend is AcceleratorBackend.DIRECTML:
        if not platform.is_windows:
            raise UnsupportedPlatformError(f"DirectML backend is only supported on Windows ({platform})")
        return ExecutionPlan(DIRECTML_PACKAGE, ExecutionProvider.DIRECTML, allow_download)
    if (platform.os, platform.arch) not in CUDA_PLATFORMS:
        raise UnsupportedPlatformError(f"CUDA backend not supported on this platform ({platform})")
    return ExecutionPlan(CUDA_PACKAGE, ExecutionProvider.CUDA, allow_download)


def plan_noninteractive(
    device: DevicePreference,
    gpu_backend: AcceleratorBackend,
    allow_download: bool,
    *,
    cache: CacheStore,
    platform: PlatformInfo,
) -> ExecutionPlan:
    """
    Resolve a plan without ever prompting.

    AUTO enables GPU only on Windows when a GPU runtime is already cached;
    it never decides to download one on its own.
    """
    want_gpu = device is DevicePreference.GPU
    if device is DevicePreference.AUTO:
        want_gpu = platform.is_windows and _any_gpu_cached(cache)

    if want_gpu:
        plan = _gpu_plan(gpu_backend, allow_download, cache, platform)
    else:
        plan = _cpu_plan(gpu_backend, allow_download, cache, platform)
    logger.info("Resolved plan: %s (provider=%s)", plan.package_id, plan.provider)
    return plan


def resolve_plan(
    device: DevicePreference,
    gpu_backend: AcceleratorBackend,
    *,
    assume_yes: bool,
    cache: CacheStore,
    platform: PlatformInfo,
    confirm: Optional[Confirmer] = None,
    allow_download: bool = False,
) -> ExecutionPlan:
    """
    Interactive resolution. AUTO on Windows with nothing cached asks once
    whether to enable GPU; accepting also pre-approves the runtime download.
    Either `assume_yes` or `allow_download` pre-approves it up front.
    """
    confirm = confirm or prompt_yes_no
    allow_download = assume_yes or allow_download

    if device is DevicePreference.CPU:
        want_gpu = False
    elif device is DevicePreference.GPU:
        want_gpu = True
    elif not platform.is_windows:
        want_gpu = False
    elif _any_gpu_cached(cache):
        want_gpu = True
    else:
        want_gpu = confirm(GPU_OPT_IN_PROMPT, assume_yes)
        if want_gpu:
            allow_download = True

    if want_gpu:
        plan = _gpu_plan(gpu_backend, allow_download, cache, platform)
    else:
        plan = _cpu_plan(gpu_backend, allow_download, cache, platform)
    logger.info("Resolved plan: %s (provider=%s)", plan.package_id, plan.provider)
    return plan
