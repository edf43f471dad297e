"""Runtime settings for the blame lens core."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping

__all__ = ["BlameLensSettings", "DEFAULT_DEBOUNCE_SECONDS", "load_settings"]

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "BLAMELENS_DEBUG_LOGGING": "debug_logging",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "BLAMELENS_FETCH_ATTEMPTS": "fetch_attempts",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "BLAMELENS_DEBOUNCE_SECONDS": "debounce_seconds",
    "BLAMELENS_RETRY_MIN_SECONDS": "retry_min_seconds",
    "BLAMELENS_RETRY_MAX_SECONDS": "retry_max_seconds",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True, frozen=True)
class BlameLensSettings:
    """Tunable parameters for fetch coordination and debouncing.

    Attributes:
        debounce_seconds: Quiet window after the last edit before a refetch.
        fetch_attempts: Provider calls per fetch before degrading to no
            attribution (1 disables in-fetch retries).
        retry_min_seconds: Base delay of the exponential retry backoff.
        retry_max_seconds: Upper bound of the retry backoff.
        debug_logging: Log every state transition at DEBUG level.
    """

    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    fetch_attempts: int = 1
    retry_min_seconds: float = 0.25
    retry_max_seconds: float = 2.0
    debug_logging: bool = False

    def validated(self) -> BlameLensSettings:
        """Return a copy with out-of-range values replaced by defaults."""

        defaults = BlameLensSettings()
        updates: Dict[str, Any] = {}
        if self.debounce_seconds < 0:
            LOGGER.warning("debounce_seconds=%s is negative; using default", self.debounce_seconds)
            updates["debounce_seconds"] = defaults.debounce_seconds
        if self.fetch_attempts < 1:
            LOGGER.warning("fetch_attempts=%s must be >= 1; using default", self.fetch_attempts)
            updates["fetch_attempts"] = defaults.fetch_attempts
        retry_min = self.retry_min_seconds
        if retry_min < 0:
            retry_min = updates["retry_min_seconds"] = defaults.retry_min_seconds
        if self.retry_max_seconds < retry_min:
            updates["retry_max_seconds"] = retry_min
        return replace(self, **updates) if updates else self


def load_settings(
    overrides: Mapping[str, Any] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> BlameLensSettings:
    """Build settings from defaults, then environment, then explicit overrides."""

    settings = BlameLensSettings()
    settings = _apply_env_overrides(settings, os.environ if environ is None else environ)
    if overrides:
        settings = _apply_overrides(settings, overrides, source="explicit")
    return settings.validated()


def _apply_overrides(
    settings: BlameLensSettings,
    overrides: Mapping[str, Any],
    *,
    source: str,
) -> BlameLensSettings:
    known = {item.name for item in fields(BlameLensSettings)}
    filtered: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in known:
            LOGGER.warning("Ignoring unknown %s setting %r", source, key)
            continue
        filtered[key] = value
    if filtered:
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
        settings = replace(settings, **filtered)
    return settings


def _apply_env_overrides(settings: BlameLensSettings, environ: Mapping[str, str]) -> BlameLensSettings:
    overrides: Dict[str, Any] = {}
    for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is not None:
            overrides[field_name] = value.strip().lower() in _TRUE_VALUES
    for env_name, field_name in _INT_ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None:
            continue
        try:
            overrides[field_name] = int(value, 10)
        except ValueError:
            LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
    for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None:
            continue
        try:
            overrides[field_name] = float(value)
        except ValueError:
            LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
    if overrides:
        settings = _apply_overrides(settings, overrides, source="environment")
    return settings
