"""
tests/conftest.py

Shared fixtures built on the in-memory fakes in tests/fakes.py.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from fakes import (
    FakeClock,
    FakeConnectionRepository,
    FakeConnector,
    FakeMappingRepository,
    FakeRecordRepository,
    FakeSession,
    make_connection,
)


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def connection() -> SimpleNamespace:
    return make_connection()


@pytest.fixture()
def connection_repository(connection: SimpleNamespace) -> FakeConnectionRepository:
    return FakeConnectionRepository([connection])


@pytest.fixture()
def mapping_repository() -> FakeMappingRepository:
    return FakeMappingRepository()


@pytest.fixture()
def record_repository() -> FakeRecordRepository:
    return FakeRecordRepository()


@pytest.fixture()
def connector() -> FakeConnector:
    return FakeConnector()
