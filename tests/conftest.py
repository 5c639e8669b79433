"""Shared fixtures for piivault tests."""

import pytest

from piivault import sdk
from piivault.config import Config, set_config
from piivault.errors import StoreError
from piivault.vault import InMemoryStore, SQLiteStore, Encryptor, Vault


class FailingStore(InMemoryStore):
    """A store whose backend is down."""

    def __init__(self, fail_reads=True, fail_writes=True, failing_tokens=None):
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.failing_tokens = failing_tokens

    def _should_fail(self, token):
        return self.failing_tokens is None or token in self.failing_tokens

    def upsert(self, token, original, category):
        if self.fail_writes and self._should_fail(token):
            raise StoreError("connection refused")
        return super().upsert(token, original, category)

    def find_by_token(self, token):
        if self.fail_reads and self._should_fail(token):
            raise StoreError("connection refused")
        return super().find_by_token(token)

    def stats_by_category(self):
        if self.fail_reads:
            raise StoreError("connection refused")
        return super().stats_by_category()

    def all_mappings(self):
        if self.fail_reads:
            raise StoreError("connection refused")
        return super().all_mappings()

    def clear_all(self):
        if self.fail_writes:
            raise StoreError("connection refused")
        return super().clear_all()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def vault(store):
    return Vault(store)


@pytest.fixture
def key():
    return Encryptor.generate_key()


@pytest.fixture
def sqlite_store(tmp_path, key):
    return SQLiteStore(str(tmp_path / "vault.db"), key)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the global config at a temp dir and forget any cached vault."""
    monkeypatch.delenv("PIIVAULT_KEY", raising=False)
    monkeypatch.delenv("PIIVAULT_DATA_DIR", raising=False)
    monkeypatch.delenv("PIIVAULT_STORE", raising=False)

    config = Config(data_dir=tmp_path / "data")
    set_config(config)
    sdk.clear_vault()
    yield config
    sdk.clear_vault()
    set_config(None)
