import pytest

from rembg_provision.app.errors import (
    DownloadCancelledError,
    DownloadRequiredError,
    ExtractionError,
    IntegrityError,
)
from rembg_provision.app.runtime_bootstrap import (
    bootstrap_runtime,
    ensure_backend_interactive,
    ensure_backend_noninteractive,
    get_cache_root,
)
from rembg_provision.interfaces.runtime.plan import ExecutionPlan

LINUX_WHEEL = "onnxruntime-1.20.0-cp312-cp312-manylinux_2_28_x86_64.whl"
INDEX = "https://index.test/pypi/onnxruntime/json"


@pytest.fixture
def published(http, pypi_payload, wheel_bytes):
    """Publish a linux wheel for onnxruntime 1.20.0 on the fake index."""
    body = wheel_bytes({
        "onnxruntime/capi/libonnxruntime.so.1.20.0": b"runtime" * 100,
        "onnxruntime/capi/libonnxruntime_providers_shared.so": b"aux",
        "onnxruntime/__init__.py": b"",
    })
    http.add_json(INDEX, pypi_payload("1.20.0", [(LINUX_WHEEL, body, "bdist_wheel")]))
    http.add_bytes(f"https://files.test/{LINUX_WHEEL}", body)
    return body


def test_noninteractive_downloads_extracts_and_locates_main_lib(make_context, linux, published, http):
    ctx = make_context(linux)
    plan = ExecutionPlan("onnxruntime", None, True)
    events = []

    install = ensure_backend_noninteractive(plan, ctx, lambda url, p: events.append((url, p)))

    vdir = ctx.cache.version_dir("onnxruntime", "1.20.0")
    assert install.main_lib == vdir / "lib" / "libonnxruntime.so.1.20.0"
    assert (vdir / LINUX_WHEEL).read_bytes() == published
    assert http.calls == [INDEX, f"https://files.test/{LINUX_WHEEL}"]
    assert events and events[-1][1].done
    assert all(url == f"https://files.test/{LINUX_WHEEL}" for url, _ in events)


def test_second_call_with_populated_cache_makes_no_network_calls(make_context, linux, published, http):
    ctx = make_context(linux)
    plan = ExecutionPlan("onnxruntime", None, True)
    first = ensure_backend_noninteractive(plan, ctx)
    http.calls.clear()

    second = ensure_backend_noninteractive(plan, ctx)

    assert second == first
    assert http.calls == []


def test_download_not_permitted_fails_fast_with_url(make_context, linux, published):
    ctx = make_context(linux)
    plan = ExecutionPlan("onnxruntime", None, False)

    with pytest.raises(DownloadRequiredError) as excinfo:
        ensure_backend_noninteractive(plan, ctx)

    message = str(excinfo.value)
    assert message.startswith("download required:")
    assert "onnxruntime" in message
    assert LINUX_WHEEL in message
    assert not ctx.cache.version_dir("onnxruntime", "1.20.0").exists()


def test_existing_archive_is_reextracted_without_download_or_permission(make_context, linux, published, http):
    ctx = make_context(linux)
    vdir = ctx.cache.version_dir("onnxruntime", "1.20.0")
    (vdir / LINUX_WHEEL).parent.mkdir(parents=True)
    (vdir / LINUX_WHEEL).write_bytes(published)

    # find_installed recovers it first; the index is never consulted.
    install = ensure_backend_noninteractive(ExecutionPlan("onnxruntime", None, False), ctx)

    assert install.main_lib.name == "libonnxruntime.so.1.20.0"
    assert http.calls == []


def test_digest_mismatch_does_not_install(make_context, linux, http, pypi_payload, wheel_bytes):
    ctx = make_context(linux)
    real = wheel_bytes({"onnxruntime/capi/libonnxruntime.so": b"real"})
    tampered = wheel_bytes({"onnxruntime/capi/libonnxruntime.so": b"evil"})
    http.add_json(INDEX, pypi_payload("1.20.0", [(LINUX_WHEEL, real, "bdist_wheel")]))
    http.add_bytes(f"https://files.test/{LINUX_WHEEL}", tampered)

    with pytest.raises(IntegrityError):
        ensure_backend_noninteractive(ExecutionPlan("onnxruntime", None, True), ctx)

    vdir = ctx.cache.version_dir("onnxruntime", "1.20.0")
    assert not (vdir / LINUX_WHEEL).exists()
    assert ctx.cache.find_installed("onnxruntime") is None


def test_wheel_without_runtime_library_is_extraction_error(make_context, linux, http, pypi_payload, wheel_bytes):
    ctx = make_context(linux)
    body = wheel_bytes({"onnxruntime/capi/libsomething_else.so": b"x"})
    http.add_json(INDEX, pypi_payload("1.20.0", [(LINUX_WHEEL, body, "bdist_wheel")]))
    http.add_bytes(f"https://files.test/{LINUX_WHEEL}", body)

    with pytest.raises(ExtractionError, match="unable to find ONNX Runtime library"):
        ensure_backend_noninteractive(ExecutionPlan("onnxruntime", None, True), ctx)


def test_interactive_prompts_with_package_message(make_context, linux, published):
    ctx = make_context(linux)
    asked = []

    def confirm(message, assume_yes):
        asked.append((message, assume_yes))
        return True

    install = ensure_backend_interactive(ExecutionPlan("onnxruntime", None, False), ctx, confirm)

    assert asked == [("Download ONNX Runtime CPU backend now?", False)]
    assert install.main_lib.exists()


def test_interactive_decline_cancels_download(make_context, linux, published, http):
    ctx = make_context(linux)

    with pytest.raises(DownloadCancelledError):
        ensure_backend_interactive(ExecutionPlan("onnxruntime", None, False), ctx, lambda m, y: y)

    assert f"https://files.test/{LINUX_WHEEL}" not in http.calls


def test_interactive_consented_plan_downloads_without_prompt(make_context, linux, published, capsys):
    ctx = make_context(linux)
    asked = []

    def confirm(message, assume_yes):
        asked.append(message)
        return False

    ensure_backend_interactive(ExecutionPlan("onnxruntime", None, True), ctx, confirm)

    assert asked == []
    assert "Downloading" in capsys.readouterr().err


def test_cache_root_resolution(tmp_path, monkeypatch):
    monkeypatch.delenv("REMBG_CACHE_DIR", raising=False)
    monkeypatch.delenv("DEV_MODE", raising=False)
    assert get_cache_root("app", "org", tmp_path / "explicit") == (tmp_path / "explicit").resolve()

    monkeypatch.setenv("REMBG_CACHE_DIR", str(tmp_path / "env"))
    assert get_cache_root("app", "org") == (tmp_path / "env").resolve()

    monkeypatch.delenv("REMBG_CACHE_DIR")
    monkeypatch.setenv("DEV_MODE", "1")
    assert get_cache_root("app", "org").name == ".appcache"


def _refuse(message, assume_yes):
    return False


def test_bootstrap_with_allow_download_setting_never_prompts(make_context, linux, published, http, loaded_libraries):
    ctx = make_context(linux, device="cpu", allow_download=True)
    http.add_bytes("https://models.test/tiny.onnx", b"model")
    asked = []

    def confirm(message, assume_yes):
        asked.append(message)
        return False

    runtime = bootstrap_runtime(ctx, confirm)

    assert asked == []
    assert runtime.plan.package_id == "onnxruntime"
    assert runtime.plan.allow_download
    assert runtime.backend.library_path.name == "libonnxruntime.so.1.20.0"
    assert loaded_libraries == [runtime.backend.library_path]
    assert runtime.model.path.read_bytes() == b"model"
    assert runtime.model.input_size == 320


def test_bootstrap_without_consent_asks_and_respects_refusal(make_context, linux, published, loaded_libraries):
    ctx = make_context(linux, device="cpu")

    with pytest.raises(DownloadCancelledError):
        bootstrap_runtime(ctx, _refuse)

    assert loaded_libraries == []
    assert ctx.guard.committed is None


def test_bootstrap_reuses_cached_runtime_and_model_offline(make_context, linux, install_cached, http):
    ctx = make_context(linux, device="cpu")
    lib = install_cached(ctx.cache, "onnxruntime", "1.19.2", "libonnxruntime.so")
    model = ctx.cache.model_path("tiny")
    model.parent.mkdir(parents=True)
    model.write_bytes(b"m")

    runtime = bootstrap_runtime(ctx, _refuse)

    assert runtime.backend.library_path == lib.resolve()
    assert runtime.model.path == model
    assert http.calls == []
