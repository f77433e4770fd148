# tests/conftest.py
"""
Shared fixtures: in-memory stores on a controllable clock, a lifecycle
manager wired to them, and a TestClient for the app built around it.
"""

import pytest
from fastapi.testclient import TestClient

from dropfade.core.config import Settings
from dropfade.core.rate_limit import limiter
from dropfade.infra.memory import InMemoryBlobStore, InMemoryMetadataStore
from dropfade.main import create_app
from dropfade.services.drop_lifecycle import DropLifecycleManager


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        max_file_size=1024,
        max_text_length=1000,
        sweep_interval_seconds=0,
        log_level="DEBUG",
    )


@pytest.fixture
def metadata(clock):
    return InMemoryMetadataStore(clock=clock)


@pytest.fixture
def blobs():
    return InMemoryBlobStore()


@pytest.fixture
def manager(metadata, blobs, settings, clock):
    return DropLifecycleManager(metadata, blobs, settings, clock=clock)


@pytest.fixture(autouse=True)
def _no_rate_limits():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def client(settings, manager):
    app = create_app(settings, manager)
    with TestClient(app) as test_client:
        yield test_client
