"""
Pytest configuration and shared fixtures.
Run from project root: python -m pytest tests/ -v
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is on path when running tests
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from juportal.state import CrawlContext  # noqa: E402
from juportal.store import JsonBlobStore  # noqa: E402


@pytest.fixture
def data_store(tmp_path):
    return JsonBlobStore(tmp_path / "data")


@pytest.fixture
def meta_store(tmp_path):
    return JsonBlobStore(tmp_path / "state")


@pytest.fixture
def context(data_store, meta_store):
    return CrawlContext.load(data_store, meta_store)
