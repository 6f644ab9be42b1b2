"""
tests/conftest.py - Shared fixtures and path setup for all tests.

Adds the project root to sys.path so unit tests can import:
    from config.settings import Settings
    from probe.snmp.walker import walk_tables
    from tests.fixtures.fake_agent import FakeAgent
"""
import pathlib
import sys

import pytest

# Make project root importable without installing as a package
PROJECT_ROOT = pathlib.Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import Settings  # noqa: E402


@pytest.fixture(autouse=True)
def _no_settings_env(monkeypatch):
    """Keep probe variables exported on the test host out of load_settings()."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)
