"""Shared fixtures for unit tests."""

from __future__ import annotations

import pytest
from fakes import FakeRunner


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner(outputs={"output": '{"kubeone_api": {"value": {"endpoint": "lb"}}}'})
