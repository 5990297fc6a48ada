"""
App version parsing and comparison (pure).

App versions are ``major.minor[.build[.revision]]``. Components compare
numerically, so ``10.0`` sorts above ``9.0``. Missing trailing
components count as zero.
"""

from __future__ import annotations

from appconsole.core.engine.errors import ClassificationError

AppVersion = tuple[int, int, int, int]

_MIN_PARTS = 2
_MAX_PARTS = 4


def parse_version(text: str) -> AppVersion:
    """Parse a version string into a comparable 4-tuple.

    Raises:
        ClassificationError: If the string is not 2–4 dot-separated
            non-negative integers.
    """
    if not isinstance(text, str):
        raise ClassificationError(f"Version must be a string, got {type(text).__name__}")

    parts = text.strip().split(".")
    if not _MIN_PARTS <= len(parts) <= _MAX_PARTS:
        raise ClassificationError(
            f"Malformed version '{text}': expected major.minor[.build[.revision]]"
        )

    numbers: list[int] = []
    for part in parts:
        if not part.isdigit() or not part.isascii():
            raise ClassificationError(f"Malformed version '{text}': '{part}' is not a number")
        numbers.append(int(part))

    numbers.extend([0] * (_MAX_PARTS - len(numbers)))
    return (numbers[0], numbers[1], numbers[2], numbers[3])


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0 or 1 as ``left`` is lower, equal or higher than ``right``."""
    a, b = parse_version(left), parse_version(right)
    return (a > b) - (a < b)
