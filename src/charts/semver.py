"""Minimal semantic version helpers for chart versions."""

from __future__ import annotations

import re

_SEMVER_PATTERN = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


def is_valid(version: str) -> bool:
    return bool(version) and _SEMVER_PATTERN.match(version) is not None


def _key(version: str) -> tuple:
    match = _SEMVER_PATTERN.match(version)
    if match is None:
        raise ValueError(f"invalid semantic version: {version!r}")

    core = (int(match["major"]), int(match["minor"]), int(match["patch"]))
    prerelease = match["prerelease"]
    if prerelease is None:
        # A release sorts after every prerelease of the same core version
        return (*core, 1, ())

    identifiers = tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part)
        for part in prerelease.split(".")
    )
    return (*core, 0, identifiers)


def compare(a: str, b: str) -> int:
    """Compare two versions, returning -1, 0 or 1. Build metadata is ignored.

    Raises:
        ValueError: If either version is invalid
    """
    key_a, key_b = _key(a), _key(b)
    return (key_a > key_b) - (key_a < key_b)


def minor_bump(version: str) -> str:
    """Increment the minor version, e.g. ``1.2.3`` -> ``1.3.0``.

    Raises:
        ValueError: If the version is invalid
    """
    match = _SEMVER_PATTERN.match(version or "")
    if match is None:
        raise ValueError(f"invalid semantic version: {version!r}")
    return f"{int(match['major'])}.{int(match['minor']) + 1}.0"


def max_version(versions: list[str]) -> str:
    """Return the highest valid version, or an empty string if none are valid."""
    valid = [v for v in versions if is_valid(v)]
    if not valid:
        return ""
    best = valid[0]
    for v in valid[1:]:
        if compare(v, best) > 0:
            best = v
    return best
