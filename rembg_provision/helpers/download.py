from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional
import hashlib
import logging
import threading
import time

import requests

from rembg_provision.app.errors import DownloadError, IntegrityError, TransportError
from rembg_provision.interfaces.download.progress import DownloadObserver, DownloadProgress

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_PROGRESS_INTERVAL_S = 0.25

# One lock per destination path; concurrent callers for the same file queue up.
_dst_locks: dict[Path, threading.Lock] = {}
_dst_locks_guard = threading.Lock()


@dataclass(frozen=True)
class Digests:
    sha256_hex: Optional[str] = None
    md5_hex: Optional[str] = None


def eq_hex(a: str, b: str) -> bool:
    """Compare hex digests ignoring case, surrounding whitespace and a 0x prefix."""
    def _norm(s: str) -> str:
        s = s.strip().lower()
        return s[2:] if s.startswith("0x") else s
    return _norm(a) == _norm(b)


def temp_path_for(dst: Path) -> Path:
    return dst.with_name(dst.name + ".part")


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def _lock_for(dst: Path) -> threading.Lock:
    key = dst.absolute()
    with _dst_locks_guard:
        lock = _dst_locks.get(key)
        if lock is None:
            lock = _dst_locks[key] = threading.Lock()
        return lock


def download_to_path(
    url: str,
    dst: Path,
    digests: Digests = Digests(),
    on_progress: Optional[DownloadObserver] = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    progress_interval_s: float = DEFAULT_PROGRESS_INTERVAL_S,
    timeout_s: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> Path:
    """
    Stream `url` into `dst` via a sibling `<dst>.part` file.

    Digests are verified before the temp file is renamed, so `dst` only ever
    appears fully written and verified. On any failure the temp file is removed.
    Progress goes to `on_progress` at most every `progress_interval_s`, plus one
    final event with `done=True`.

    Calls for the same `dst` are serialized within the process. A caller that
    waited while another one completed `dst` reuses that file instead of
    downloading it again.
    """
    already_present = dst.is_file()
    with _lock_for(dst):
        if not already_present and dst.is_file():
            logger.info("Reusing %s written by a concurrent download", dst)
            if on_progress is not None:
                size = dst.stat().st_size
                on_progress(DownloadProgress(size, size, 0.0, True))
            return dst
        return _download_locked(
            url,
            dst,
            digests,
            on_progress,
            chunk_size=chunk_size,
            progress_interval_s=progress_interval_s,
            timeout_s=timeout_s,
            clock=clock,
        )


def _download_locked(
    url: str,
    dst: Path,
    digests: Digests,
    on_progress: Optional[DownloadObserver],
    *,
    chunk_size: int,
    progress_interval_s: float,
    timeout_s: Optional[float],
    clock: Callable[[], float],
) -> Path:
    tmp = temp_path_for(dst)
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        _remove_quietly(tmp)
    except OSError as exc:
        raise DownloadError(f"prepare {dst} for {url}: {exc}", url=url, destination=dst) from exc

    logger.info("Downloading %s -> %s", url, dst)
    try:
        resp = requests.get(url, stream=True, timeout=timeout_s)
    except requests.RequestException as exc:
        raise TransportError(f"GET {url} failed: {exc}", url=url, destination=dst) from exc

    try:
        with resp:
            if resp.status_code // 100 != 2:
                raise TransportError(
                    f"download failed (HTTP {resp.status_code}): {url}",
                    url=url,
                    status=resp.status_code,
                    destination=dst,
                )
            total = _content_length(resp)
            sha256 = hashlib.sha256() if digests.sha256_hex else None
            md5 = hashlib.md5() if digests.md5_hex else None

            downloaded = 0
            start = clock()
            last = start
            with open(tmp, "wb") as fh:
                for chunk in resp.iter_content(chunk_size=chunk_size):
                    if not chunk:
                        continue
                    downloaded += len(chunk)
                    if sha256 is not None:
                        sha256.update(chunk)
                    if md5 is not None:
                        md5.update(chunk)
                    fh.write(chunk)

                    now = clock()
                    if on_progress is not None and now - last >= progress_interval_s:
                        on_progress(DownloadProgress(downloaded, total, now - start, False))
                        last = now

            if on_progress is not None:
                on_progress(DownloadProgress(downloaded, total, clock() - start, True))

        if sha256 is not None:
            _check_digest(url, dst, "sha256", digests.sha256_hex, sha256.hexdigest())
        if md5 is not None:
            _check_digest(url, dst, "md5", digests.md5_hex, md5.hexdigest())

        tmp.replace(dst)
    except requests.RequestException as exc:
        _remove_quietly(tmp)
        raise TransportError(f"read response body from {url}: {exc}", url=url, destination=dst) from exc
    except OSError as exc:
        _remove_quietly(tmp)
        raise DownloadError(f"write {dst} from {url}: {exc}", url=url, destination=dst) from exc
    except DownloadError:
        _remove_quietly(tmp)
        raise

    logger.info("Downloaded %d bytes to %s", downloaded, dst)
    return dst


def _content_length(resp: requests.Response) -> Optional[int]:
    raw = resp.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _check_digest(url: str, dst: Path, algorithm: str, expected: Optional[str], actual: str) -> None:
    if expected is None:
        return
    if not eq_hex(expected, actual):
        raise IntegrityError(url=url, algorithm=algorithm, expected=expected, actual=actual, destination=dst)
