"""
Root-level shared test fixtures.

Inherited by every test suite that runs from the repo root.
"""

from __future__ import annotations

import pytest

BW_ENV_VARS = [
    "BW_TRANSPORT",
    "BW_DEBUG",
    "BW_REST_ENDPOINT",
    "BW_HTTP_TIMEOUT",
    "BW_EXECUTABLE",
    "BITWARDENCLI_APPDATA_DIR",
    "BW_SESSION",
    "BW_RETRY_MAX_ATTEMPTS",
    "BW_RETRY_BASE_DELAY",
    "BW_RETRY_MAX_DELAY",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove bwclient env vars that leak in from the shell running the tests."""
    for key in BW_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
