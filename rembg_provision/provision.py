import logging
import os
import sys

from rembg_provision.app.context import build_context
from rembg_provision.app.errors import ProvisioningError
from rembg_provision.app.runtime_bootstrap import bootstrap_runtime
from rembg_provision.app.settings import build_settings
from rembg_provision.config.runtime_packages import RUNTIME_PACKAGES
from rembg_provision.utils.terminal_ui import Color, stage, type_print


def main() -> int:
    logging.basicConfig(
        level=os.getenv("REMBG_LOG_LEVEL", "WARNING").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Build config (device/backend/model/cache)
    cfg = build_settings()
    ctx = build_context(cfg)
    type_print(f"Cache root: {ctx.cache.root}", color=Color.BLUE)
    type_print(f"Platform: {ctx.platform}", color=Color.BLUE)

    # Resolve the plan, make sure backend + model are on disk, commit the backend
    try:
        with stage("Provisioning ONNX Runtime and model", color=Color.BLUE):
            runtime = bootstrap_runtime(ctx)
    except ProvisioningError as exc:
        type_print(str(exc), color=Color.RED, stream=sys.stderr)
        return 1

    type_print("Configuration complete:\n------------------")
    package = RUNTIME_PACKAGES.get(runtime.plan.package_id)
    label = package.display_name if package else runtime.plan.package_id
    type_print(f"Runtime package: {label} [{runtime.plan.package_id}]", color=Color.BLUE)
    provider = runtime.plan.provider.value if runtime.plan.provider else "CPU (default)"
    type_print(f"Execution provider: {provider}", color=Color.BLUE)
    type_print(f"Runtime library: {runtime.backend.library_path}", color=Color.BLUE)
    type_print(f"Model: {runtime.model.path} (input {runtime.model.input_size}px)", color=Color.BLUE)
    return 0


if __name__ == "__main__":
    sys.exit(main())
