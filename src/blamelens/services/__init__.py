"""Settings and telemetry services."""

from .settings import BlameLensSettings, load_settings

__all__ = ["BlameLensSettings", "load_settings"]
