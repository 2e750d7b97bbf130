"""Shared fixtures for chainwatch tests."""

import pytest

from helpers import FakeBeaconNode


@pytest.fixture
def node() -> FakeBeaconNode:
    return FakeBeaconNode()
