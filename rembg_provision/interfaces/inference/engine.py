from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Protocol

from rembg_provision.interfaces.runtime.plan import ExecutionProvider


class InferenceEngine(Protocol):
    def create_session(
        self,
        library_path: Path,
        model_path: Path,
        provider: Optional[ExecutionProvider],
    ) -> Any:
        ...
