from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

DEFAULT_INDEX_URL = "https://pypi.org/pypi/{name}/json"

_DEVICES = {"cpu", "gpu", "auto"}
_GPU_BACKENDS = {"auto", "directml", "cuda"}


@dataclass(frozen=True, slots=True)
class ProvisioningConfig:
    """
    Settings for runtime and model provisioning.

    `cache_dir` is an explicit cache root override; when None the root is
    resolved from the platform's user cache directory at context build time.
    `request_timeout_s` of None means requests block until the transport errors.
    """
    app_name: str
    app_author: str
    device: str
    gpu_backend: str
    model_name: str
    assume_yes: bool = False
    allow_download: bool = False
    cache_dir: Path | None = None
    index_url: str = DEFAULT_INDEX_URL
    chunk_size: int = 64 * 1024
    progress_interval_s: float = 0.25
    request_timeout_s: float | None = None

    def validate(self) -> None:
        if not isinstance(self.app_name, str) or not self.app_name.strip():
            raise ValueError("ProvisioningConfig.app_name must be a non-empty string.")
        if not isinstance(self.app_author, str) or not self.app_author.strip():
            raise ValueError("ProvisioningConfig.app_author must be a non-empty string.")
        if self.device not in _DEVICES:
            raise ValueError("ProvisioningConfig.device must be one of 'cpu', 'gpu', 'auto'.")
        if self.gpu_backend not in _GPU_BACKENDS:
            raise ValueError("ProvisioningConfig.gpu_backend must be one of 'auto', 'directml', 'cuda'.")
        if not isinstance(self.model_name, str) or not self.model_name.strip():
            raise ValueError("ProvisioningConfig.model_name must be a non-empty string.")
        if not isinstance(self.assume_yes, bool):
            raise ValueError("ProvisioningConfig.assume_yes must be a bool.")
        if not isinstance(self.allow_download, bool):
            raise ValueError("ProvisioningConfig.allow_download must be a bool.")
        if self.cache_dir is not None and not isinstance(self.cache_dir, Path):
            raise ValueError("ProvisioningConfig.cache_dir must be a Path or None.")
        if not isinstance(self.index_url, str) or "{name}" not in self.index_url:
            raise ValueError("ProvisioningConfig.index_url must be a string containing '{name}'.")
        if not isinstance(self.chunk_size, int) or self.chunk_size <= 0:
            raise ValueError("ProvisioningConfig.chunk_size must be a positive integer.")
        if not isinstance(self.progress_interval_s, (int, float)) or self.progress_interval_s < 0:
            raise ValueError("ProvisioningConfig.progress_interval_s must be a non-negative number.")
        if self.request_timeout_s is not None and (
            not isinstance(self.request_timeout_s, (int, float)) or self.request_timeout_s <= 0
        ):
            raise ValueError("ProvisioningConfig.request_timeout_s must be a positive number or None.")

    @staticmethod
    def from_strings(
            app_name: str,
            app_author: str,
            device: str,
            gpu_backend: str,
            model_name: str,
            assume_yes: bool = False,
            allow_download: bool = False,
            cache_dir: str | Path | None = None,
            index_url: str = DEFAULT_INDEX_URL,
            chunk_size: int = 64 * 1024,
            progress_interval_s: float = 0.25,
            request_timeout_s: float | None = None,
    ) -> "ProvisioningConfig":
        """
        Convenience constructor for env/CLI usage.
        Lower-cases the enum-like fields and normalizes the cache override.
        """
        cfg = ProvisioningConfig(
            app_name=app_name,
            app_author=app_author,
            device=(device or "").strip().lower(),
            gpu_backend=(gpu_backend or "").strip().lower(),
            model_name=(model_name or "").strip(),
            assume_yes=assume_yes,
            allow_download=allow_download,
            cache_dir=Path(cache_dir).expanduser().resolve() if cache_dir else None,
            index_url=index_url,
            chunk_size=chunk_size,
            progress_interval_s=progress_interval_s,
            request_timeout_s=request_timeout_s,
        )
        cfg.validate()
        return cfg
