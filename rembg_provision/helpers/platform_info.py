from __future__ import annotations

from dataclasses import dataclass
import platform
import sys

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    os: str    # "windows" | "linux" | "macos"
    arch: str  # "x86_64" | "aarch64" | raw machine string

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"


def normalize_os(name: str) -> str:
    name = name.lower()
    if name.startswith("win"):
        return "windows"
    if name in {"darwin", "macos", "mac"}:
        return "macos"
    # Every other unix is treated like linux for library naming.
    return "linux"


def normalize_arch(machine: str) -> str:
    machine = machine.lower()
    return _ARCH_ALIASES.get(machine, machine)


def current_platform() -> PlatformInfo:
    return PlatformInfo(
        os=normalize_os(sys.platform),
        arch=normalize_arch(platform.machine()),
    )
