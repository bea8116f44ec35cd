from __future__ import annotations

from typing import Protocol


class Confirmer(Protocol):
    def __call__(self, message: str, assume_yes: bool) -> bool:
        ...
