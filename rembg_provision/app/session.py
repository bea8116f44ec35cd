from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
import logging

from rembg_provision.app.context import ProvisioningContext
from rembg_provision.app.plan_resolver import plan_noninteractive
from rembg_provision.app.runtime_bootstrap import ensure_backend_noninteractive
from rembg_provision.interfaces.download.progress import DownloadProgress, ProgressEvent, ProgressObserver
from rembg_provision.interfaces.inference.engine import InferenceEngine
from rembg_provision.interfaces.runtime.install import ProvisionedRuntime
from rembg_provision.interfaces.runtime.plan import (
    AcceleratorBackend,
    DevicePreference,
    ExecutionProvider,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisionRequest:
    model: str
    device: DevicePreference = DevicePreference.CPU
    gpu_backend: AcceleratorBackend = AcceleratorBackend.AUTO
    # If False, fail with DownloadRequiredError instead of downloading runtime/model.
    allow_download: bool = False


@dataclass(frozen=True)
class InferenceSession:
    session: Any
    provider: Optional[ExecutionProvider]
    fell_back_to_cpu: bool


def _noop(event: ProgressEvent) -> None:
    return None


def _download_event(stage: str, url: str, p: DownloadProgress) -> ProgressEvent:
    return ProgressEvent(
        stage=stage,
        url=url,
        downloaded=p.downloaded,
        total=p.total,
        done=p.done,
    )


def provision(
    request: ProvisionRequest,
    ctx: ProvisioningContext,
    on_event: Optional[ProgressObserver] = None,
) -> ProvisionedRuntime:
    """
    Non-interactive provisioning for GUI/worker callers.

    Blocks until the runtime is committed and the model is on disk. Progress
    arrives out-of-band through `on_event`; callers pick the thread.
    """
    emit = on_event or _noop
    # Unknown model names fail before anything is downloaded or committed.
    model_url = ctx.models.spec(request.model).url

    plan = plan_noninteractive(
        request.device,
        request.gpu_backend,
        request.allow_download,
        cache=ctx.cache,
        platform=ctx.platform,
    )

    emit(ProgressEvent(stage="runtime", message=f"Ensure ONNX Runtime ({plan.package_id})"))
    install = ensure_backend_noninteractive(
        plan,
        ctx,
        lambda url, p: emit(_download_event("runtime", url, p)),
    )
    handle = ctx.guard.init(install.main_lib)

    emit(ProgressEvent(stage="model", message=f"Ensure model ({request.model})"))
    model = ctx.models.ensure_model_noninteractive(
        request.model,
        request.allow_download,
        lambda p: emit(_download_event("model", model_url, p)),
    )

    return ProvisionedRuntime(plan=plan, backend=handle, model=model)


def open_inference_session(
    engine: InferenceEngine,
    runtime: ProvisionedRuntime,
    on_event: Optional[ProgressObserver] = None,
) -> InferenceSession:
    """
    Hand the committed runtime and model to the inference engine.

    If the preferred execution provider fails to initialize, retry once with
    the default CPU configuration instead of failing the request.
    """
    emit = on_event or _noop
    emit(ProgressEvent(stage="infer"))

    provider = runtime.plan.provider
    library = runtime.backend.library_path
    model_path = runtime.model.path

    if provider is None:
        return InferenceSession(engine.create_session(library, model_path, None), None, False)

    try:
        session = engine.create_session(library, model_path, provider)
    except Exception as exc:
        logger.warning("Execution provider %s unavailable, falling back to CPU: %s", provider.value, exc)
        emit(ProgressEvent(stage="infer", message=f"{provider.value} unavailable; using CPU"))
        return InferenceSession(engine.create_session(library, model_path, None), None, True)
    return InferenceSession(session, provider, False)
