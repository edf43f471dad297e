"""Exception types raised by blamelens for programming errors.

Runtime failures (provider errors, stale or cancelled fetches, malformed
records) never raise; they degrade to "no attribution available".
"""

from __future__ import annotations


class BlameLensError(Exception):
    """Base class for blamelens errors."""


class InvalidPaletteError(BlameLensError, ValueError):
    """Raised when a color palette is empty or otherwise unusable."""


__all__ = ["BlameLensError", "InvalidPaletteError"]
