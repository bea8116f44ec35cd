from __future__ import annotations

from pathlib import Path, PurePosixPath
import logging
import os
import shutil
import tempfile
import zipfile

from rembg_provision.app.errors import ExtractionError
from rembg_provision.helpers.native_libs import is_runtime_lib_file

logger = logging.getLogger(__name__)

# onnxruntime wheels ship their native binaries under onnxruntime/capi/.
NATIVE_MARKER = "/capi/"


def extract_native_libs(archive_path: Path, lib_dir: Path, *, marker: str = NATIVE_MARKER) -> list[Path]:
    """
    Copy the shared libraries under `marker` out of a wheel into `lib_dir`.

    Entries are flattened to their basename. Each file is written to a hidden
    temp name and renamed into place, so a library name only appears once its
    contents are complete. Files already present in `lib_dir` are left alone,
    so re-running after an interrupted extraction only fills in what is
    missing. Returns the newly written paths.
    """
    lib_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    try:
        with zipfile.ZipFile(archive_path) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                name = info.filename.replace("\\", "/")
                if marker not in f"/{name}":
                    continue
                if not is_runtime_lib_file(name):
                    continue
                base = PurePosixPath(name).name
                if not base:
                    raise ExtractionError(f"invalid zip entry name: {name}")
                dst = lib_dir / base
                if dst.exists():
                    continue
                _copy_entry(zf, info, dst)
                written.append(dst)
    except zipfile.BadZipFile as exc:
        raise ExtractionError(f"open zip archive {archive_path}: {exc}") from exc
    except OSError as exc:
        raise ExtractionError(f"extract {archive_path} into {lib_dir}: {exc}") from exc

    logger.info("Extracted %d native libraries from %s", len(written), archive_path.name)
    return written


def _copy_entry(zf: zipfile.ZipFile, info: zipfile.ZipInfo, dst: Path) -> None:
    # Leading dot keeps the temp file out of main library discovery.
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dst.name}.", suffix=".partial", dir=dst.parent)
    tmp = Path(tmp_name)
    try:
        with zf.open(info) as src, os.fdopen(fd, "wb") as out:
            shutil.copyfileobj(src, out)
        os.replace(tmp, dst)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
