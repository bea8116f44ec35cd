from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional, TextIO
import sys
import time

from rembg_provision.interfaces.download.progress import DownloadProgress


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"


def _supports_color(stream: TextIO) -> bool:
    return hasattr(stream, "isatty") and stream.isatty()


def type_print(text: str, color: Optional[Color] = None, *, stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout
    if color is not None and _supports_color(out):
        out.write(f"{color.value}{text}{Color.RESET.value}\n")
    else:
        out.write(f"{text}\n")
    out.flush()


@contextmanager
def stage(label: str, color: Optional[Color] = None) -> Iterator[None]:
    """Print a label, run the block, then report how long it took."""
    type_print(f"{label}...", color=color, stream=sys.stderr)
    start = time.perf_counter()
    yield
    type_print(f"{label} done ({time.perf_counter() - start:.1f}s)", color=color, stream=sys.stderr)


def _mib(b: int) -> float:
    return b / (1024.0 * 1024.0)


def format_download_progress(url: str, progress: DownloadProgress) -> str:
    speed = _mib(progress.downloaded) / progress.secs if progress.secs > 0 else 0.0
    if progress.total:
        pct = progress.downloaded * 100.0 / progress.total
        return (
            f"Downloading {_mib(progress.downloaded):.1f}/{_mib(progress.total):.1f} MiB "
            f"({pct:.0f}%) {speed:.1f} MiB/s  {url}"
        )
    return f"Downloading {_mib(progress.downloaded):.1f} MiB {speed:.1f} MiB/s  {url}"


def print_download_progress(url: str, progress: DownloadProgress, *, stream: Optional[TextIO] = None) -> None:
    # In-place line on stderr; stdout stays clean for piping.
    out = stream or sys.stderr
    out.write("\r" + format_download_progress(url, progress))
    if progress.done:
        out.write("\n")
    out.flush()
