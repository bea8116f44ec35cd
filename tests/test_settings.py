from pathlib import Path

import pytest

from rembg_provision.app.settings import build_settings
from rembg_provision.config.runtime_config import DEFAULT_INDEX_URL, ProvisioningConfig


def test_defaults_from_empty_environment():
    cfg = build_settings({})
    assert cfg.device == "auto"
    assert cfg.gpu_backend == "auto"
    assert cfg.model_name == "u2netp"
    assert cfg.assume_yes is False
    assert cfg.allow_download is False
    assert cfg.cache_dir is None
    assert cfg.index_url == DEFAULT_INDEX_URL


def test_environment_overrides(tmp_path):
    cfg = build_settings({
        "REMBG_DEVICE": "GPU",
        "REMBG_GPU_BACKEND": " CUDA ",
        "REMBG_MODEL": "isnet-anime",
        "REMBG_ASSUME_YES": "yes",
        "REMBG_ALLOW_DOWNLOAD": "1",
        "REMBG_CACHE_DIR": str(tmp_path),
        "REMBG_INDEX_URL": "https://mirror.test/{name}/json",
    })
    assert cfg.device == "gpu"
    assert cfg.gpu_backend == "cuda"
    assert cfg.model_name == "isnet-anime"
    assert cfg.assume_yes and cfg.allow_download
    assert cfg.cache_dir == tmp_path.resolve()
    assert cfg.index_url == "https://mirror.test/{name}/json"


@pytest.mark.parametrize("key,value", [
    ("REMBG_DEVICE", "tpu"),
    ("REMBG_GPU_BACKEND", "metal"),
    ("REMBG_INDEX_URL", "https://mirror.test/onnxruntime/json"),
])
def test_invalid_values_are_rejected(key, value):
    with pytest.raises(ValueError, match="ProvisioningConfig"):
        build_settings({key: value})


def test_validate_rejects_bad_numbers():
    with pytest.raises(ValueError, match="chunk_size"):
        ProvisioningConfig("a", "b", "cpu", "auto", "u2netp", chunk_size=0).validate()
    cfg = ProvisioningConfig("a", "b", "cpu", "auto", "u2netp", request_timeout_s=-1)
    with pytest.raises(ValueError, match="request_timeout_s"):
        cfg.validate()


def test_cache_dir_must_be_path():
    cfg = ProvisioningConfig("a", "b", "cpu", "auto", "u2netp", cache_dir="relative")
    with pytest.raises(ValueError, match="cache_dir"):
        cfg.validate()
    assert isinstance(ProvisioningConfig.from_strings("a", "b", "cpu", "auto", "u2netp", cache_dir="rel").cache_dir, Path)
