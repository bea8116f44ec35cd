from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class DownloadProgress:
    downloaded: int
    total: Optional[int]
    secs: float
    done: bool


@dataclass(frozen=True)
class ProgressEvent:
    stage: str  # "runtime" | "model" | "infer"
    url: Optional[str] = None
    downloaded: Optional[int] = None
    total: Optional[int] = None
    done: Optional[bool] = None
    message: Optional[str] = None


class DownloadObserver(Protocol):
    def __call__(self, progress: DownloadProgress) -> None:
        ...


class ProgressObserver(Protocol):
    def __call__(self, event: ProgressEvent) -> None:
        ...
