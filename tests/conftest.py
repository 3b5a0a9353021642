"""
tests/conftest.py -- Shared test fixtures for ipguard.

This module provides:
  - clock: a FakeClock for AdmissionController tests
  - fake_resolver: a FakeResolver standing in for dns.asyncresolver.Resolver
  - api_client: TestClient running the real lifespan, with the DNS resolver
    swapped for the fake after startup

No test in this suite sends a real DNS query.
"""

from __future__ import annotations

import os
from collections.abc import Generator

# Settings are cached on first import; pin the values the tests assert on
# before api.main is imported. An explicit nameserver keeps startup
# independent of the host's /etc/resolv.conf.
os.environ.setdefault("BLACKLIST_RATE_LIMIT", "20")
os.environ.setdefault("RATE_LIMIT_WINDOW_SECONDS", "60")
os.environ.setdefault("DNS_NAMESERVERS", '["192.0.2.53"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from tests.fakes import FakeClock, FakeResolver


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def api_client(fake_resolver: FakeResolver) -> Generator[tuple[TestClient, FakeResolver], None, None]:
    """Yield (client, resolver) with a fresh admission controller per test.

    The real lifespan runs, so the AdmissionController and its sweep task are
    created and cancelled exactly as in production. Only the DNS resolver is
    replaced.
    """
    with TestClient(app, raise_server_exceptions=True) as client:
        app.state.resolver = fake_resolver
        yield client, fake_resolver
