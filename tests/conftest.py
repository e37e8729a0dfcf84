import os

import pytest

# Set test environment variables
os.environ.setdefault("TELEGRAM_API_ID", "12345")
os.environ.setdefault("TELEGRAM_API_HASH", "test-hash")
os.environ["LOG_LEVEL"] = "WARNING"

from fakes import FakeSession  # noqa: E402


@pytest.fixture
def output_dir(tmp_path):
    """Archive directory for a test run."""
    return str(tmp_path / "output")


@pytest.fixture
def downloads_dir(tmp_path):
    """Directory fake downloads are materialized in."""
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest.fixture
def fake_session(downloads_dir):
    """Create an in-memory Telegram session for testing"""
    return FakeSession(downloads_dir)
