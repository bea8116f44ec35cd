from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rembg_provision.interfaces.runtime.plan import ExecutionPlan


@dataclass(frozen=True)
class CachedPackage:
    package_id: str
    version: str
    lib_dir: Path


@dataclass(frozen=True)
class BackendInstall:
    package_id: str
    main_lib: Path


@dataclass(frozen=True)
class BackendHandle:
    library_path: Path


@dataclass(frozen=True)
class ModelInstall:
    path: Path
    input_size: int


@dataclass(frozen=True)
class ProvisionedRuntime:
    plan: ExecutionPlan
    backend: BackendHandle
    model: ModelInstall
