"""Pytest configuration for integration tests against the real gist API."""

import os

import pytest


def pytest_collection_modifyitems(items):
    """Mark everything here as integration; skip it without a token."""
    skip = pytest.mark.skip(reason="LIFTLOG_TEST_TOKEN not set")
    for item in items:
        if "integration_tests" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
            if not os.environ.get("LIFTLOG_TEST_TOKEN"):
                item.add_marker(skip)


@pytest.fixture
def gist_token() -> str:
    """Token for a throwaway GitHub account with the gist scope."""
    return os.environ["LIFTLOG_TEST_TOKEN"]
