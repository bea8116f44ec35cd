from __future__ import annotations

import sys


def prompt_yes_no(message: str, assume_yes: bool = False) -> bool:
    """
    Ask a yes/no question on the terminal. Empty input means no.
    Never call this from a non-interactive entry point.
    """
    if assume_yes:
        return True
    sys.stderr.write(f"{message} [y/N] ")
    sys.stderr.flush()
    raw = input().strip().lower()
    return raw in {"y", "yes"}
