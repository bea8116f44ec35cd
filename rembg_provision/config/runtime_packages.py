from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RuntimePackage:
    package_id: str
    display_name: str
    download_prompt: str
    gpu_capable: bool


CPU_PACKAGE = "onnxruntime"
DIRECTML_PACKAGE = "onnxruntime-directml"
CUDA_PACKAGE = "onnxruntime-gpu"

RUNTIME_PACKAGES: dict[str, RuntimePackage] = {
    CPU_PACKAGE: RuntimePackage(
        package_id=CPU_PACKAGE,
        display_name="ONNX Runtime (CPU)",
        download_prompt="Download ONNX Runtime CPU backend now?",
        gpu_capable=False,
    ),
    DIRECTML_PACKAGE: RuntimePackage(
        package_id=DIRECTML_PACKAGE,
        display_name="ONNX Runtime (DirectML)",
        download_prompt="Download ONNX Runtime DirectML (GPU) backend now?",
        gpu_capable=True,
    ),
    CUDA_PACKAGE: RuntimePackage(
        package_id=CUDA_PACKAGE,
        display_name="ONNX Runtime (CUDA)",
        download_prompt="Download ONNX Runtime CUDA (GPU) backend now?",
        gpu_capable=True,
    ),
}

GPU_OPT_IN_PROMPT = "Enable GPU acceleration? This will download a GPU-enabled ONNX Runtime backend."


def download_prompt_for(package_id: str) -> str:
    pkg = RUNTIME_PACKAGES.get(package_id)
    if pkg is None:
        return "Download ONNX Runtime backend now?"
    return pkg.download_prompt
