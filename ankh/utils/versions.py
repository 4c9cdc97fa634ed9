"""Version ordering and semantic version bumping."""

from __future__ import annotations

import re
from collections.abc import Iterable

_NUMBER = re.compile(r"\d+")
_SEMVER = re.compile(r"^(?P<prefix>v?)(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)(?P<rest>.*)$")

SEMVER_PARTS = ("major", "minor", "patch")


def version_sort_key(version: str) -> tuple[tuple[int, ...], str]:
    """Fuzzy ordering key: numeric components first, then the raw string."""
    return tuple(int(n) for n in _NUMBER.findall(version)), version


def sort_versions(versions: Iterable[str], *, descending: bool = True) -> list[str]:
    return sorted(versions, key=version_sort_key, reverse=descending)


def bump_semver(version: str, part: str = "patch") -> str:
    """Bump one component of an ``x.y.z`` version, resetting lower components.

    Raises:
        ValueError: If ``part`` is unknown or ``version`` is not semantic
    """
    if part not in SEMVER_PARTS:
        raise ValueError(
            f"Unknown semantic version part '{part}', expected one of {', '.join(SEMVER_PARTS)}"
        )

    match = _SEMVER.match(version.strip())
    if not match:
        raise ValueError(f"Version '{version}' is not a semantic version (x.y.z)")

    major, minor, patch = (int(match.group(p)) for p in SEMVER_PARTS)
    if part == "major":
        major, minor, patch = major + 1, 0, 0
    elif part == "minor":
        minor, patch = minor + 1, 0
    else:
        patch += 1

    return f"{match.group('prefix')}{major}.{minor}.{patch}"
