from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DevicePreference(str, Enum):
    CPU = "cpu"
    GPU = "gpu"
    AUTO = "auto"


class AcceleratorBackend(str, Enum):
    AUTO = "auto"
    DIRECTML = "directml"
    CUDA = "cuda"


class ExecutionProvider(str, Enum):
    DIRECTML = "DmlExecutionProvider"
    CUDA = "CUDAExecutionProvider"


@dataclass(frozen=True)
class ExecutionPlan:
    package_id: str
    provider: Optional[ExecutionProvider]
    # True once the user consented (or assume-yes was given); skips the per-download prompt.
    allow_download: bool
