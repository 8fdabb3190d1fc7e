"""Global pytest configuration and fixtures.

The test run points Storefront at a throwaway SQLite database and upload
directory. The environment has to be set before anything imports
``storefront``, because settings and the engine are created at import.
"""

import os
import shutil
import tempfile
from pathlib import Path

import pytest

# =============================================================================
# Environment
# =============================================================================

TEST_ROOT = Path(tempfile.mkdtemp(prefix="storefront-tests-"))

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_ROOT / 'storefront.db'}"
os.environ["UPLOAD_DIR"] = str(TEST_ROOT / "uploads")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "storefront-test-secret"
os.environ["BASE_URL"] = "http://testserver"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.pop("SENTRY_DSN", None)


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (database-backed, run against SQLite)"
    )
    config.addinivalue_line(
        "markers", "slow: Slow tests (>30 seconds)"
    )


def pytest_unconfigure(config):
    shutil.rmtree(TEST_ROOT, ignore_errors=True)


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def upload_dir() -> Path:
    """Directory the application stores uploaded images in."""
    path = TEST_ROOT / "uploads"
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def now_ms():
    """Fixed client clock (milliseconds) for token checks."""
    return 1_750_000_000_000
