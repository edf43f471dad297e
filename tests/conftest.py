"""Shared pytest fixtures."""

from __future__ import annotations

import logging
from typing import Iterator

import pytest

from blamelens.services import telemetry
from blamelens.services.settings import BlameLensSettings
from tests.helpers import FakeBlameProvider


@pytest.fixture
def provider() -> FakeBlameProvider:
    return FakeBlameProvider()


@pytest.fixture
def fast_settings() -> BlameLensSettings:
    """Settings with a short debounce window so timer tests stay quick."""

    return BlameLensSettings(debounce_seconds=0.05, retry_min_seconds=0.0, retry_max_seconds=0.0)


@pytest.fixture
def telemetry_events() -> Iterator[list[dict]]:
    """Capture every ``blame.fetch.*`` telemetry event emitted during a test."""

    captured: list[dict] = []
    names = (
        "blame.fetch.start",
        "blame.fetch.end",
        "blame.fetch.failed",
        "blame.fetch.stale",
        "blame.fetch.cancelled",
    )
    for name in names:
        telemetry.register_event_listener(name, captured.append)
    yield captured
    for name in names:
        telemetry.unregister_event_listener(name, captured.append)


@pytest.fixture(autouse=True)
def _quiet_tenacity() -> None:
    logging.getLogger("tenacity").setLevel(logging.WARNING)
