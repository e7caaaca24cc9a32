"""
Shared pytest fixtures for the THE VAULT test suite.

Every fixture builds its own backend so no test touches the real
~/.thevault preferences file.
"""

import pytest

from thevault.storage import FilePreferences, MemoryPreferences, StorageManager
from thevault.vault_manager import VaultController


MNEMONIC = "abandon ability able about above absent absorb abstract absurd abuse access accident"
PASSPHRASE = "Tr0ub4dor&3"


@pytest.fixture(autouse=True)
def _isolate_home(tmp_path, monkeypatch):
    """Point THEVAULT_HOME at a temp directory for every test."""
    monkeypatch.setenv("THEVAULT_HOME", str(tmp_path / "home"))


@pytest.fixture
def memory_backend():
    backend = MemoryPreferences()
    yield backend
    backend.close()


@pytest.fixture
def store(memory_backend):
    return StorageManager(memory_backend)


@pytest.fixture
def controller(store):
    return VaultController(store)


@pytest.fixture
def prefs_path(tmp_path):
    return str(tmp_path / "prefs" / "preferences.json")


@pytest.fixture
def file_backend(prefs_path):
    backend = FilePreferences(prefs_path)
    yield backend
    backend.close()
