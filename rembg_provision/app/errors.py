from __future__ import annotations

from pathlib import Path
from typing import Optional


class ProvisioningError(RuntimeError):
    """Base class for every fatal provisioning failure."""


class ConfigurationError(ProvisioningError, ValueError):
    pass


class UnsupportedModelError(ConfigurationError):
    pass


class UnsupportedPlatformError(ConfigurationError):
    pass


class ArtifactNotFoundError(ConfigurationError):
    pass


class DownloadRequiredError(ProvisioningError):
    """A download is needed but the caller did not permit it."""


class DownloadCancelledError(ProvisioningError):
    pass


class DownloadError(ProvisioningError):
    def __init__(self, message: str, *, url: str, destination: Optional[Path] = None):
        super().__init__(message)
        self.url = url
        self.destination = destination


class TransportError(DownloadError):
    def __init__(
        self,
        message: str,
        *,
        url: str,
        status: Optional[int] = None,
        destination: Optional[Path] = None,
    ):
        super().__init__(message, url=url, destination=destination)
        self.status = status


class IntegrityError(DownloadError):
    def __init__(self, *, url: str, algorithm: str, expected: str, actual: str, destination: Optional[Path] = None):
        super().__init__(
            f"{algorithm} mismatch for {url}: expected {expected}, got {actual}",
            url=url,
            destination=destination,
        )
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual


class ExtractionError(ProvisioningError):
    pass


class BackendLoadError(ProvisioningError):
    pass


class BackendAlreadyInitializedError(ProvisioningError):
    def __init__(self, current: Path, requested: Path):
        super().__init__(
            f"ONNX Runtime is already initialized with {current}. "
            f"Restart required to switch to {requested}."
        )
        self.current = current
        self.requested = requested
