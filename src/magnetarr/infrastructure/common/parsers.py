"""Parsing utilities for loosely typed backend payloads."""

from __future__ import annotations

import re
from typing import Any

_SIZE_RE = re.compile(r"([\d.]+)\s*([KMGT]I?B)")

_MULTIPLIERS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
}


def parse_size_to_bytes(size_str: str) -> int:
    """Parse size string to bytes.

    Supports formats:
        - "1234" (raw bytes)
        - "4.5 GB"
        - "500 MiB"
        - "1.2 TB"

    Args:
        size_str: Size string.

    Returns:
        Size in bytes (int), 0 when unparseable.
    """
    if not size_str:
        return 0

    size_str = size_str.strip()
    if size_str.isdigit():
        return int(size_str)

    match = _SIZE_RE.match(size_str.upper())
    if not match:
        return 0

    try:
        value = float(match.group(1))
    except ValueError:
        return 0
    unit = match.group(2).replace("I", "")
    return int(value * _MULTIPLIERS.get(unit, 1))


def to_int(value: Any) -> int | None:
    """Coerce numbers and numeric strings to int; None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return None


def to_float(value: Any) -> float | None:
    """Coerce numbers and numeric strings to float; None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None
