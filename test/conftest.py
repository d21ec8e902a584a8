"""Pytest configuration for CRM Desk test suite."""

import os
import sys
from pathlib import Path


def _ensure_test_env() -> None:
    """Seed required environment variables for tests."""
    os.environ.setdefault("RECORD_API_URL", "http://records.test/api")
    os.environ.setdefault("RECORD_API_KEY", "test-key")
    os.environ.setdefault("RECORD_API_PROJECT_ID", "test-project")
    os.environ.setdefault("USER_TIMEZONE", "UTC")


_ensure_test_env()

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))
