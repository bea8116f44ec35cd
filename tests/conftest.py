import hashlib
import io
import json
import zipfile
from pathlib import Path

import pytest
import requests

from rembg_provision.app.context import build_context
from rembg_provision.config.model_catalog import ModelSpec
from rembg_provision.config.runtime_config import ProvisioningConfig
from rembg_provision.helpers.platform_info import PlatformInfo

INDEX_URL = "https://index.test/pypi/{name}/json"


class FakeResponse:
    def __init__(self, status_code=200, body=b"", headers=None, fail_after=None):
        self.status_code = status_code
        self._body = body
        self.headers = headers if headers is not None else {"Content-Length": str(len(body))}
        self._fail_after = fail_after
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def iter_content(self, chunk_size=1):
        sent = 0
        for i in range(0, len(self._body), chunk_size):
            if self._fail_after is not None and sent >= self._fail_after:
                raise requests.ConnectionError("connection reset")
            chunk = self._body[i:i + chunk_size]
            sent += len(chunk)
            yield chunk

    def json(self):
        return json.loads(self._body.decode("utf-8"))


class FakeHttp:
    """Serves canned responses by URL and records every GET."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, url, response):
        self.routes[url] = response

    def add_bytes(self, url, body, status_code=200):
        self.add(url, lambda: FakeResponse(status_code=status_code, body=body))

    def add_response(self, url, **kwargs):
        self.add(url, lambda: FakeResponse(**kwargs))

    def add_json(self, url, payload, status_code=200):
        body = json.dumps(payload).encode("utf-8")
        self.add(url, lambda: FakeResponse(status_code=status_code, body=body))

    def get(self, url, stream=False, timeout=None, **kwargs):
        self.calls.append(url)
        if url not in self.routes:
            return FakeResponse(status_code=404, body=b"not found")
        return self.routes[url]()


@pytest.fixture
def http(monkeypatch):
    fake = FakeHttp()
    monkeypatch.setattr(requests, "get", fake.get)
    return fake


@pytest.fixture
def linux():
    return PlatformInfo(os="linux", arch="x86_64")


@pytest.fixture
def windows():
    return PlatformInfo(os="windows", arch="x86_64")


@pytest.fixture
def macos():
    return PlatformInfo(os="macos", arch="aarch64")


def build_wheel_bytes(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
def wheel_bytes():
    return build_wheel_bytes


@pytest.fixture
def make_wheel():
    def _make(path: Path, entries):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_wheel_bytes(entries))
        return path
    return _make


@pytest.fixture
def pypi_payload():
    """Build a minimal JSON project document for one version."""
    def _payload(version, files):
        return {
            "info": {"version": version},
            "releases": {
                version: [
                    {
                        "filename": name,
                        "url": f"https://files.test/{name}",
                        "packagetype": packagetype,
                        "digests": {"sha256": hashlib.sha256(body).hexdigest()},
                    }
                    for name, body, packagetype in files
                ],
            },
        }
    return _payload


@pytest.fixture
def loaded_libraries():
    return []


@pytest.fixture
def make_context(tmp_path, loaded_libraries):
    """Context rooted in tmp_path with a recording native loader."""
    def _make(platform, *, catalog=None, **overrides):
        values = dict(
            app_name="rembg-provision-test",
            app_author="tests",
            device="auto",
            gpu_backend="auto",
            model_name="tiny",
            cache_dir=tmp_path / "cache",
            index_url=INDEX_URL,
            progress_interval_s=0.0,
        )
        values.update(overrides)
        cfg = ProvisioningConfig.from_strings(**values)
        if catalog is None:
            catalog = [ModelSpec(name="tiny", url="https://models.test/tiny.onnx", input_size=320)]

        def loader(path):
            loaded_libraries.append(path)
            return object()

        return build_context(cfg, platform=platform, catalog=catalog, loader=loader)
    return _make


@pytest.fixture
def install_cached(make_wheel):
    """Lay out an extracted install: <root>/onnxruntime/<pkg>/<ver>/lib/<lib>."""
    def _install(cache, package_id, version, lib_name, size=16):
        lib_dir = cache.lib_dir(package_id, version)
        lib_dir.mkdir(parents=True, exist_ok=True)
        lib = lib_dir / lib_name
        lib.write_bytes(b"\0" * size)
        return lib
    return _install
