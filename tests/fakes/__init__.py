"""Fake price sources and fixtures for resolver and source tests (no live network)."""

from .sources import (
    FAKE_NOW_MS,
    FakeClock,
    FakeFetcher,
    FakeSource,
    FakeSourceAlwaysFail,
    FakeSourceFailNThenSucceed,
    FakeSourceRaises,
    RecordingObserver,
    json_response,
    raw_response,
)

__all__ = [
    "FAKE_NOW_MS",
    "FakeClock",
    "FakeFetcher",
    "FakeSource",
    "FakeSourceAlwaysFail",
    "FakeSourceFailNThenSucceed",
    "FakeSourceRaises",
    "RecordingObserver",
    "json_response",
    "raw_response",
]
