"""Common infrastructure utilities."""

from __future__ import annotations

from .parsers import parse_size_to_bytes, to_float, to_int

__all__ = [
    "parse_size_to_bytes",
    "to_float",
    "to_int",
]
