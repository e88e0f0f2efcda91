"""Engine exceptions."""

from __future__ import annotations


class MagnetarrError(Exception):
    """Base class for all magnetarr errors."""


class InvalidMediaDescriptorError(MagnetarrError, ValueError):
    """Raised when a catalog payload cannot be turned into a MediaDescriptor."""
