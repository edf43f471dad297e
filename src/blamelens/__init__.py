"""Line-level AI attribution cache for editor integrations."""

from .attribution import BlameResult, ColorAssigner, LineAttribution, Priority, PromptRecord, get_color_index
from .blame import BlameLensManager, BlameProvider
from .core import BlameLensError, LineRange
from .services import BlameLensSettings, load_settings

__all__ = [
    "BlameLensError",
    "BlameLensManager",
    "BlameLensSettings",
    "BlameProvider",
    "BlameResult",
    "ColorAssigner",
    "LineAttribution",
    "LineRange",
    "Priority",
    "PromptRecord",
    "get_color_index",
    "load_settings",
]
