"""
Pytest configuration and shared fixtures.

This module provides central pytest configuration, custom markers,
and shared fixtures for the logroute test suite.
"""

from __future__ import annotations

import io
from collections.abc import Generator

import pytest

from logroute.levels import Level
from logroute.logger import Logger
from logroute.record import Record
from tests.helpers.writers import MemoryWriter

# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (may use network, filesystem)"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests (full system integration)"
    )
    config.addinivalue_line("markers", "property: Property-based tests (hypothesis)")
    config.addinivalue_line("markers", "slow: Tests that take >1 second to run")


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def memory_writer() -> MemoryWriter:
    """Provide a fresh in-memory writer."""
    return MemoryWriter()


@pytest.fixture
def logger() -> Generator[Logger, None, None]:
    """
    Provide an empty Logger that is closed after the test.

    Yields:
        Logger: Logger without filters
    """
    lg = Logger()
    try:
        yield lg
    finally:
        lg.close()


@pytest.fixture
def stream() -> io.StringIO:
    """Provide an in-memory text stream for console writers."""
    return io.StringIO()


@pytest.fixture
def make_record():
    """Factory for records with sensible defaults."""

    def _make(
        message: str = "hello",
        level: Level = Level.INFO,
        source: str = "app.main:1",
        created: float | None = None,
    ) -> Record:
        if created is None:
            return Record(level=level, source=source, message=message)
        return Record(level=level, source=source, message=message, created=created)

    return _make


# =============================================================================
# Test Collection Hooks
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """
    Add 'unit' marker to tests without other markers.

    Args:
        config: Pytest config object
        items: List of collected test items
    """
    for item in items:
        if not any(
            mark.name in ["integration", "e2e"] for mark in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
