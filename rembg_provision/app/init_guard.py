from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional
import ctypes
import logging
import threading

from rembg_provision.app.errors import BackendAlreadyInitializedError, BackendLoadError
from rembg_provision.interfaces.runtime.install import BackendHandle

logger = logging.getLogger(__name__)


def load_native_library(path: Path) -> Any:
    # RTLD_GLOBAL so the inference engine resolves the runtime's symbols from this copy.
    return ctypes.CDLL(str(path), mode=getattr(ctypes, "RTLD_GLOBAL", 0))


class BackendInitGuard:
    """
    Set-once cell for the native runtime loaded into this process.

    The first successful `init` wins. Re-initializing with the same library is a
    no-op; a different library raises, since a loaded runtime cannot be swapped
    without restarting. Must be called before any inference session is created.
    """

    def __init__(self, loader: Callable[[Path], Any] = load_native_library):
        self._loader = loader
        self._lock = threading.Lock()
        self._handle: Optional[BackendHandle] = None
        self._library: Any = None

    @property
    def committed(self) -> Optional[BackendHandle]:
        return self._handle

    def init(self, library_path: Path) -> BackendHandle:
        requested = Path(library_path).resolve()
        with self._lock:
            if self._handle is not None:
                if self._handle.library_path != requested:
                    raise BackendAlreadyInitializedError(self._handle.library_path, requested)
                return self._handle

            try:
                self._library = self._loader(requested)
            except OSError as exc:
                raise BackendLoadError(f"load onnxruntime from {requested}: {exc}") from exc
            self._handle = BackendHandle(library_path=requested)
            logger.info("Committed ONNX Runtime backend: %s", requested)
            return self._handle
