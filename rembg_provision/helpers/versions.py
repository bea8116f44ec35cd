from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable


def parse_version_prefix(version: str) -> list[int]:
    """
    Parse the numeric dot-separated prefix of a version string.
    "1.24.1.post1" -> [1, 24, 1]; parsing stops at the first part without leading digits.
    """
    out: list[int] = []
    for part in version.split("."):
        digits = ""
        for ch in part:
            if not ch.isdigit():
                break
            digits += ch
        if not digits:
            break
        out.append(int(digits))
    return out


def compare_versions(a: str, b: str) -> int:
    pa = parse_version_prefix(a)
    pb = parse_version_prefix(b)
    for i in range(max(len(pa), len(pb))):
        av = pa[i] if i < len(pa) else 0
        bv = pb[i] if i < len(pb) else 0
        if av != bv:
            return -1 if av < bv else 1
    # Equal numeric prefixes: fall back to lexicographic order on the whole string.
    if a == b:
        return 0
    return -1 if a < b else 1


def sort_versions_desc(versions: Iterable[str]) -> list[str]:
    return sorted(versions, key=cmp_to_key(compare_versions), reverse=True)
