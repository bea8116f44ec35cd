from __future__ import annotations

from dataclasses import dataclass

_RELEASE_BASE = "https://github.com/danielgatis/rembg/releases/download/v0.0.0"


@dataclass(frozen=True)
class ModelSpec:
    name: str
    url: str
    input_size: int
    extension: str = "onnx"
    # No published digests for the release assets; None disables verification.
    sha256: str | None = None


MODEL_SPECS: list[ModelSpec] = [
    ModelSpec(
        name="u2netp",
        url=f"{_RELEASE_BASE}/u2netp.onnx",
        input_size=320,
    ),
    ModelSpec(
        name="u2net",
        url=f"{_RELEASE_BASE}/u2net.onnx",
        input_size=320,
    ),
    ModelSpec(
        name="u2net_human_seg",
        url=f"{_RELEASE_BASE}/u2net_human_seg.onnx",
        input_size=320,
    ),
    ModelSpec(
        name="u2net_cloth_seg",
        url=f"{_RELEASE_BASE}/u2net_cloth_seg.onnx",
        input_size=320,
    ),
    ModelSpec(
        name="silueta",
        url=f"{_RELEASE_BASE}/silueta.onnx",
        input_size=320,
    ),
    # ISNet models are trained for larger inputs; slower but keeps more detail.
    ModelSpec(
        name="isnet-general-use",
        url=f"{_RELEASE_BASE}/isnet-general-use.onnx",
        input_size=1024,
    ),
    ModelSpec(
        name="isnet-anime",
        url=f"{_RELEASE_BASE}/isnet-anime.onnx",
        input_size=1024,
    ),
]
