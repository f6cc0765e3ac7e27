"""Root conftest — shared test configuration."""

import logging
import os

import pytest

# Ensure tests never reach a real database by accident
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers installed by setup_logging() so they never outlive a test."""
    level = logging.root.level
    yield
    for handler in list(logging.root.handlers):
        if getattr(handler, "_paradigm", False):
            logging.root.removeHandler(handler)
    logging.root.setLevel(level)
