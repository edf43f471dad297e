"""Core value types shared by the attribution and blame packages."""

from .errors import BlameLensError
from .ranges import LineRange

__all__ = ["BlameLensError", "LineRange"]
