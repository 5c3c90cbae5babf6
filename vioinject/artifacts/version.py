"""Dotted version parsing and ordering.

Versions are plain tuples of non-negative ints. Anything that does not carry
a dotted numeric group normalizes to ``(0, 0, 0)``, so an unrecognized
artifact never wins a selection against a recognized one.
"""

import re
from itertools import zip_longest


Version = tuple[int, ...]

MINIMUM_VERSION: Version = (0, 0, 0)

_VERSION_RE = re.compile(r"(?<![\d.])(\d+(?:\.\d+)+)(?![\d])")


def parse_version(text: str | None) -> Version:
    """Extract the first dotted numeric group from ``text``.

    >>> parse_version("virtio-win-0.1.285.iso")
    (0, 1, 285)
    >>> parse_version("setup.exe")
    (0, 0, 0)
    """
    if not text:
        return MINIMUM_VERSION
    match = _VERSION_RE.search(text)
    if not match:
        return MINIMUM_VERSION
    return tuple(int(part) for part in match.group(1).split("."))


def compare_versions(a: Version, b: Version) -> int:
    """Return -1, 0 or 1 as ``a`` is less than, equal to or greater than ``b``.

    Missing trailing components count as zero, so ``(1, 2)`` equals
    ``(1, 2, 0)``.
    """
    for left, right in zip_longest(a, b, fillvalue=0):
        if left != right:
            return -1 if left < right else 1
    return 0


def version_key(version: Version) -> Version:
    """Sort key consistent with ``compare_versions``."""
    trimmed = list(version)
    while trimmed and trimmed[-1] == 0:
        trimmed.pop()
    return tuple(trimmed)


def format_version(version: Version) -> str:
    return ".".join(str(part) for part in version)


def release_prefix(version: Version) -> Version:
    """Significant major.minor pair of ``version``.

    Leading zero components carry no meaning (``0.1.285`` is release
    ``1.285``), so they are dropped before taking two components.
    """
    significant = list(version)
    while significant and significant[0] == 0:
        significant.pop(0)
    significant.extend([0, 0])
    return tuple(significant[:2])


def same_release(a: Version, b: Version) -> bool:
    """True when both versions share the same significant major.minor."""
    return release_prefix(a) == release_prefix(b)
