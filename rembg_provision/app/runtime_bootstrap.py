from __future__ import annotations
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional
import logging
import os

from platformdirs import user_cache_dir

from rembg_provision.app.errors import DownloadCancelledError, DownloadRequiredError, ExtractionError
from rembg_provision.app.plan_resolver import resolve_plan
from rembg_provision.app.prompts import prompt_yes_no
from rembg_provision.config.runtime_packages import download_prompt_for
from rembg_provision.helpers.download import Digests, download_to_path
from rembg_provision.helpers.wheel_extract import extract_native_libs
from rembg_provision.interfaces.download.progress import DownloadObserver, DownloadProgress
from rembg_provision.interfaces.prompt.confirm import Confirmer
from rembg_provision.interfaces.runtime.install import BackendInstall, ProvisionedRuntime
from rembg_provision.interfaces.runtime.plan import AcceleratorBackend, DevicePreference, ExecutionPlan
from rembg_provision.services.package_index import ReleaseFile
from rembg_provision.utils.terminal_ui import print_download_progress

if TYPE_CHECKING:
    from rembg_provision.app.context import ProvisioningContext

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes"}


# Determines where downloaded runtimes and models live.
# Explicit override first, then dev mode (inside the repo), then the OS-standard user cache dir.
def get_cache_root(app_name: str, app_author: str, override: Optional[Path] = None) -> Path:
    if override is not None:
        return Path(override).expanduser().resolve()

    env_override = os.getenv("REMBG_CACHE_DIR")
    if env_override:
        return Path(env_override).expanduser().resolve()

    if os.getenv("DEV_MODE", "").strip().lower() in _TRUTHY:
        project_root = Path(__file__).resolve().parents[2]
        return (project_root / ".appcache").resolve()

    return Path(user_cache_dir(app_name, app_author)).resolve()


# Shared by both entry points; `approve` raises when a download is not allowed.
def _ensure_backend(
    plan: ExecutionPlan,
    ctx: "ProvisioningContext",
    approve: Callable[[ReleaseFile], None],
    on_progress: Optional[Callable[[str], DownloadObserver]],
) -> BackendInstall:
    package = plan.package_id

    # Any installed version is good enough; a new upstream release never forces a prompt.
    main_lib = ctx.cache.find_installed_lib(package)
    if main_lib is not None:
        logger.info("Using cached %s: %s", package, main_lib)
        return BackendInstall(package_id=package, main_lib=main_lib)

    project = ctx.index.fetch_project(package)
    wheel = ctx.index.select_artifact(project, ctx.platform)

    base = ctx.cache.version_dir(package, project.version)
    wheel_path = base / wheel.filename
    lib_dir = base / "lib"

    if not wheel_path.exists():
        approve(wheel)
        download_to_path(
            wheel.url,
            wheel_path,
            Digests(sha256_hex=wheel.sha256),
            on_progress(wheel.url) if on_progress is not None else None,
            chunk_size=ctx.config.chunk_size,
            progress_interval_s=ctx.config.progress_interval_s,
            timeout_s=ctx.config.request_timeout_s,
        )

    extract_native_libs(wheel_path, lib_dir)

    main_lib = ctx.cache.find_main_lib(lib_dir)
    if main_lib is None:
        raise ExtractionError(f"unable to find ONNX Runtime library after extraction in {lib_dir}")
    return BackendInstall(package_id=package, main_lib=main_lib)


def ensure_backend_interactive(
    plan: ExecutionPlan,
    ctx: "ProvisioningContext",
    confirm: Optional[Confirmer] = None,
) -> BackendInstall:
    """Terminal flavour: asks before downloading unless the plan already carries consent."""
    confirm = confirm or prompt_yes_no

    def approve(wheel: ReleaseFile) -> None:
        if plan.allow_download:
            return
        if not confirm(download_prompt_for(plan.package_id), False):
            raise DownloadCancelledError(f"runtime download cancelled by user ({plan.package_id})")

    return _ensure_backend(
        plan,
        ctx,
        approve,
        lambda url: (lambda p: print_download_progress(url, p)),
    )


def ensure_backend_noninteractive(
    plan: ExecutionPlan,
    ctx: "ProvisioningContext",
    on_progress: Optional[Callable[[str, DownloadProgress], None]] = None,
) -> BackendInstall:
    """
    Never prompts. Fails fast with DownloadRequiredError when the plan does not
    permit a download. `on_progress(url, progress)` receives transfer updates.
    """
    def approve(wheel: ReleaseFile) -> None:
        if not plan.allow_download:
            raise DownloadRequiredError(f"download required: runtime package {plan.package_id} ({wheel.url})")

    def observer_for(url: str) -> DownloadObserver:
        return lambda p: on_progress(url, p)

    return _ensure_backend(plan, ctx, approve, observer_for if on_progress is not None else None)


# Fully prepares the runtime for a terminal session:
# plan -> backend on disk -> backend committed -> model on disk.
def bootstrap_runtime(ctx: "ProvisioningContext", confirm: Optional[Confirmer] = None) -> ProvisionedRuntime:
    cfg = ctx.config
    confirm = confirm or prompt_yes_no
    ctx.models.spec(cfg.model_name)

    plan = resolve_plan(
        DevicePreference(cfg.device),
        AcceleratorBackend(cfg.gpu_backend),
        assume_yes=cfg.assume_yes,
        cache=ctx.cache,
        platform=ctx.platform,
        confirm=confirm,
        allow_download=cfg.allow_download,
    )
    install = ensure_backend_interactive(plan, ctx, confirm)
    handle = ctx.guard.init(install.main_lib)
    model = ctx.models.ensure_model(cfg.model_name)

    return ProvisionedRuntime(plan=plan, backend=handle, model=model)
