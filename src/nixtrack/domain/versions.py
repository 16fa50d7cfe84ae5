"""Version ordering across heterogeneous upstream version schemes.

Comparison is total in the sense that it never raises: pairs that cannot be
ordered meaningfully (``"unstable-2024-01-01"`` vs ``"1.2.3"``) compare as
``None`` and callers must treat them as incomparable.

Two strategies are tried in turn:

- semantic: both sides look like ``N(.N)*(-prerelease)?(+build)?``; numeric
  release parts are compared with zero padding and prereleases follow semver
  precedence
- lexical: both sides are split into digit and letter runs, compared the way
  nixpkgs' ``builtins.compareVersions`` does; only used when both first
  components are of the same kind; prerelease words (``dev``, ``alpha``,
  ``beta``, ``rc``, ``pre``) sort below the release they precede
"""

from __future__ import annotations

import re
from itertools import zip_longest
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable

_SEMANTIC_RE: Final = re.compile(
    r"^(?P<release>\d+(?:\.\d+)*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z]+(?:\.[0-9A-Za-z]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)
_COMPONENT_RE: Final = re.compile(r"\d+|[A-Za-z]+")
_LEADING_V_RE: Final = re.compile(r"^[vV](?=\d)")

# words that mark a release as not yet final; lower rank sorts first
_PRERELEASE_RANKS: Final = {
    "dev": 0,
    "alpha": 1,
    "beta": 2,
    "pre": 3,
    "preview": 3,
    "rc": 3,
}
# 2.0b1, 1.0a2, 3.1c1; a bare trailing letter stays a patch letter (1.0.2a)
_SHORT_PRERELEASE: Final = {"a": "alpha", "b": "beta", "c": "rc"}

type Semantic = tuple[tuple[str, ...], tuple[str, ...] | None]


def normalize_version(version: str) -> str:
    """Strip whitespace and a leading ``v`` in front of a digit."""

    return _LEADING_V_RE.sub("", version.strip())


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _digits(part: str) -> str:
    return part.lstrip("0")


def _compare_digits(left: str, right: str) -> int:
    # digit runs of any length, without int() conversion limits
    a, b = _digits(left), _digits(right)
    if len(a) != len(b):
        return _sign(len(a) - len(b))
    return (a > b) - (a < b)


def parse_semantic(version: str) -> Semantic | None:
    match = _SEMANTIC_RE.match(normalize_version(version))
    if match is None:
        return None
    release = tuple(_digits(part) or "0" for part in match.group("release").split("."))
    prerelease = match.group("prerelease")
    return release, tuple(prerelease.split(".")) if prerelease else None


def split_components(version: str) -> tuple[str, ...]:
    parts = _COMPONENT_RE.findall(normalize_version(version))
    components: list[str] = []
    for index, part in enumerate(parts):
        following = parts[index + 1] if index + 1 < len(parts) else ""
        if part.lower() in _SHORT_PRERELEASE and following.isdigit():
            components.append(_SHORT_PRERELEASE[part.lower()])
        else:
            components.append(part)
    return tuple(components)


def _compare_release(left: tuple[str, ...], right: tuple[str, ...]) -> int:
    for a, b in zip_longest(left, right, fillvalue="0"):
        result = _compare_digits(a, b)
        if result:
            return result
    return 0


def _compare_prerelease_identifier(left: str, right: str) -> int:
    if left.isdigit() and right.isdigit():
        return _compare_digits(left, right)
    if left.isdigit():
        return -1
    if right.isdigit():
        return 1
    return (left > right) - (left < right)


def _compare_prerelease(left: tuple[str, ...] | None, right: tuple[str, ...] | None) -> int:
    if left is None and right is None:
        return 0
    # a release without prerelease outranks any prerelease of the same version
    if left is None:
        return 1
    if right is None:
        return -1
    for a, b in zip(left, right, strict=False):
        result = _compare_prerelease_identifier(a, b)
        if result:
            return result
    return _sign(len(left) - len(right))


def _compare_semantic(left: Semantic, right: Semantic) -> int:
    return _compare_release(left[0], right[0]) or _compare_prerelease(left[1], right[1])


def _component_less(left: str, right: str) -> bool:
    if left.isdigit() and right.isdigit():
        return _compare_digits(left, right) < 0
    left_rank = _PRERELEASE_RANKS.get(left.lower())
    right_rank = _PRERELEASE_RANKS.get(right.lower())
    if left_rank is not None and right_rank is not None:
        return (left_rank, left.lower()) < (right_rank, right.lower())
    if left_rank is not None:
        return True
    if right_rank is not None:
        return False
    if left == "" and right.isdigit():
        return True
    # 2.3a < 2.3.1
    if right.isdigit():
        return True
    if left.isdigit():
        return False
    return left < right


def _compare_component(left: str, right: str) -> int:
    if left == right:
        return 0
    if _component_less(left, right):
        return -1
    if _component_less(right, left):
        return 1
    return 0


def _compare_lexical(left: tuple[str, ...], right: tuple[str, ...]) -> int:
    for a, b in zip_longest(left, right, fillvalue=""):
        result = _compare_component(a, b)
        if result:
            return result
    return 0


def compare_versions(left: str, right: str) -> int | None:
    """Return -1, 0 or 1 ordering ``left`` against ``right``; ``None`` if incomparable."""

    if normalize_version(left) == normalize_version(right):
        return 0 if split_components(left) else None

    left_semantic = parse_semantic(left)
    right_semantic = parse_semantic(right)
    if left_semantic is not None and right_semantic is not None:
        return _compare_semantic(left_semantic, right_semantic)

    left_parts = split_components(left)
    right_parts = split_components(right)
    if not left_parts or not right_parts:
        return None
    if left_parts[0].isdigit() != right_parts[0].isdigit():
        return None
    return _compare_lexical(left_parts, right_parts)


def is_older(left: str, right: str) -> bool:
    """True when ``left`` is comparable with and strictly older than ``right``."""

    result = compare_versions(left, right)
    return result is not None and result < 0


def best_version[K: Hashable](
    candidates: Iterable[tuple[K, str]],
    *,
    anchor: str | None = None,
) -> tuple[K, str] | None:
    """Pick the newest candidate, given in priority order.

    Candidates incomparable with ``anchor`` (when given) or with the running best
    are excluded. Ties keep the earlier, higher-priority candidate.
    """

    best: tuple[K, str] | None = None
    for key, version in candidates:
        if anchor is not None and compare_versions(version, anchor) is None:
            continue
        if best is None:
            if split_components(version):
                best = (key, version)
            continue
        result = compare_versions(version, best[1])
        if result is not None and result > 0:
            best = (key, version)
    return best
