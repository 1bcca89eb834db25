"""Shared fixtures for unit tests."""

import pytest

from fakes import FakeQueryExecutor, FakeSink


@pytest.fixture
def fake_executor():
    """Users u1, u2 belong to tenant t1; u3 to t2."""
    return FakeQueryExecutor(tenants={"u1": "t1", "u2": "t1", "u3": "t2"})


@pytest.fixture
def sink():
    return FakeSink()
