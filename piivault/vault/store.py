"""Vault Store - storage for token mappings.

This module provides the persistence layer for the vault. Every store
implements the same small contract (find, atomic upsert, clear, stats) so
the anonymizer never knows which backend it talks to.

Security model (SQLiteStore):
- Original values are AES-256-GCM encrypted before storage
- Token, category, digest and usage metadata stay in clear for lookup/stats
- The encryption key is supplied by the caller (env var or key file)
"""

import os
import sqlite3
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Optional, List, Dict
from pathlib import Path
from contextlib import contextmanager

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..config import Config, get_config
from ..errors import ConfigurationError, StoreError
from ..types import Category, MappingStats, TokenMapping, utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# ENCRYPTION HELPERS
# =============================================================================

class Encryptor:
    """AES-256-GCM encryption for original values."""

    def __init__(self, key: bytes):
        """Initialize with a 32-byte key."""
        if len(key) != 32:
            raise ConfigurationError("Key must be 32 bytes for AES-256")
        self._aesgcm = AESGCM(key)

    def encrypt(self, plaintext: str) -> bytes:
        """Encrypt a string, returns nonce + ciphertext."""
        nonce = os.urandom(12)  # 96-bit nonce for GCM
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode('utf-8'), None)
        return nonce + ciphertext

    def decrypt(self, data: bytes) -> str:
        """Decrypt nonce + ciphertext back to string."""
        nonce = data[:12]
        ciphertext = data[12:]
        plaintext = self._aesgcm.decrypt(nonce, ciphertext, None)
        return plaintext.decode('utf-8')

    @staticmethod
    def generate_key() -> bytes:
        """Generate a random 32-byte key."""
        return os.urandom(32)


def load_or_create_key(config: Optional[Config] = None) -> bytes:
    """Resolve the store encryption key.

    PIIVAULT_KEY (64 hex chars) wins; otherwise the key file is read, and
    created with a fresh random key on first use.
    """
    env_key = os.environ.get("PIIVAULT_KEY")
    if env_key:
        try:
            key = bytes.fromhex(env_key)
        except ValueError:
            raise ConfigurationError("PIIVAULT_KEY must be hex encoded")
        if len(key) != 32:
            raise ConfigurationError("PIIVAULT_KEY must encode 32 bytes")
        return key

    config = config or get_config()
    key_path = Path(config.key_path)

    if key_path.exists():
        key = key_path.read_bytes()
        if len(key) != 32:
            raise ConfigurationError(f"Key file {key_path} is not 32 bytes")
        return key

    key_path.parent.mkdir(parents=True, exist_ok=True)
    key = Encryptor.generate_key()
    key_path.write_bytes(key)
    key_path.chmod(0o600)
    logger.info(f"Created new vault key at {key_path}")
    return key


# =============================================================================
# STORE CONTRACT
# =============================================================================

class MappingStore(ABC):
    """Token -> original value storage.

    Implementations must make upsert atomic: concurrent calls for the same
    token converge to one mapping whose usage_count equals the number of
    calls. The original value and created_at of an existing mapping are
    never overwritten.
    """

    @abstractmethod
    def find_by_token(self, token: str) -> Optional[TokenMapping]:
        """Return the mapping for token, or None."""
        pass

    @abstractmethod
    def upsert(self, token: str, original: str, category: Category) -> TokenMapping:
        """Create the mapping, or bump usage_count/last_used if it exists."""
        pass

    @abstractmethod
    def clear_all(self) -> int:
        """Delete every mapping, returns how many were removed."""
        pass

    @abstractmethod
    def stats_by_category(self) -> MappingStats:
        """Count mappings, total and per category."""
        pass

    @abstractmethod
    def all_mappings(self) -> List[TokenMapping]:
        """All mappings, oldest first."""
        pass

    def close(self):
        pass


def digest_of(token: str) -> str:
    return token.rsplit("_", 1)[-1]


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class InMemoryStore(MappingStore):
    """Process-local store. State lives as long as the instance."""

    def __init__(self):
        self._mappings: Dict[str, TokenMapping] = {}
        self._lock = threading.Lock()

    def find_by_token(self, token: str) -> Optional[TokenMapping]:
        with self._lock:
            mapping = self._mappings.get(token)
            return replace(mapping) if mapping else None

    def upsert(self, token: str, original: str, category: Category) -> TokenMapping:
        with self._lock:
            mapping = self._mappings.get(token)
            if mapping is None:
                mapping = TokenMapping(
                    token=token,
                    original=original,
                    category=category,
                    digest=digest_of(token),
                )
                self._mappings[token] = mapping
            else:
                mapping.usage_count += 1
                mapping.last_used = utcnow()
            return replace(mapping)

    def clear_all(self) -> int:
        with self._lock:
            count = len(self._mappings)
            self._mappings.clear()
        return count

    def stats_by_category(self) -> MappingStats:
        stats = MappingStats()
        with self._lock:
            for mapping in self._mappings.values():
                stats.by_category[mapping.category] += 1
                stats.total += 1
        return stats

    def all_mappings(self) -> List[TokenMapping]:
        with self._lock:
            mappings = [replace(m) for m in self._mappings.values()]
        return sorted(mappings, key=lambda m: m.created_at)

    def __len__(self):
        return len(self._mappings)


# =============================================================================
# SQLITE STORE
# =============================================================================

SCHEMA = """
CREATE TABLE IF NOT EXISTS token_mappings (
    token TEXT PRIMARY KEY,
    category TEXT NOT NULL,
    digest TEXT NOT NULL,
    original_encrypted BLOB NOT NULL,
    created_at TEXT NOT NULL,
    last_used TEXT NOT NULL,
    usage_count INTEGER NOT NULL DEFAULT 1
);
CREATE INDEX IF NOT EXISTS idx_mappings_category
    ON token_mappings(category, created_at);
"""


class SQLiteStore(MappingStore):
    """Persistent, encrypted storage for token mappings.

    Usage:
        key = Encryptor.generate_key()  # Or load_or_create_key()
        store = SQLiteStore("/path/to/vault.db", key)

        store.upsert("EMAIL_8004719c", "jane@test.org", Category.EMAIL)
        store.find_by_token("EMAIL_8004719c").original
        # "jane@test.org"
    """

    def __init__(self, db_path: str, encryption_key: bytes, timeout: float = 10.0):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file
            encryption_key: 32-byte key for AES-256-GCM encryption
            timeout: Seconds to wait on a locked database
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout

        self._encryptor = Encryptor(encryption_key)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connect(self):
        """Context manager for database connections.

        sqlite3 errors surface as StoreError so callers can degrade.
        """
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _row_to_mapping(self, row: sqlite3.Row) -> TokenMapping:
        try:
            original = self._encryptor.decrypt(row["original_encrypted"])
        except InvalidTag as e:
            raise StoreError(f"Cannot decrypt {row['token']}: wrong key?") from e
        return TokenMapping(
            token=row["token"],
            original=original,
            category=Category(row["category"]),
            digest=row["digest"],
            created_at=datetime.fromisoformat(row["created_at"]),
            last_used=datetime.fromisoformat(row["last_used"]),
            usage_count=row["usage_count"],
        )

    def find_by_token(self, token: str) -> Optional[TokenMapping]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM token_mappings WHERE token = ?", (token,)
            ).fetchone()

            if row:
                return self._row_to_mapping(row)
        return None

    def upsert(self, token: str, original: str, category: Category) -> TokenMapping:
        now = utcnow().isoformat()
        encrypted = self._encryptor.encrypt(original)

        with self._connect() as conn:
            # Single statement: insert, or only touch usage metadata.
            conn.execute(
                """INSERT INTO token_mappings
                   (token, category, digest, original_encrypted,
                    created_at, last_used, usage_count)
                   VALUES (?, ?, ?, ?, ?, ?, 1)
                   ON CONFLICT(token) DO UPDATE SET
                       usage_count = usage_count + 1,
                       last_used = excluded.last_used""",
                (token, Category(category).value, digest_of(token), encrypted, now, now)
            )
            row = conn.execute(
                "SELECT * FROM token_mappings WHERE token = ?", (token,)
            ).fetchone()

        return self._row_to_mapping(row)

    def clear_all(self) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM token_mappings")
            count = cursor.rowcount
        logger.info(f"Cleared {count} mappings from {self.db_path}")
        return count

    def stats_by_category(self) -> MappingStats:
        stats = MappingStats()
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT category, COUNT(*) AS n FROM token_mappings GROUP BY category"
            ).fetchall()

        for row in rows:
            stats.by_category[Category(row["category"])] = row["n"]
            stats.total += row["n"]
        return stats

    def all_mappings(self) -> List[TokenMapping]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM token_mappings ORDER BY created_at ASC"
            ).fetchall()
        return [self._row_to_mapping(row) for row in rows]


# =============================================================================
# CONVENIENCE FACTORY
# =============================================================================

_default_store: Optional[MappingStore] = None


def create_store(config: Optional[Config] = None) -> MappingStore:
    """Build the store selected by config.store."""
    config = config or get_config()

    if config.store == "memory":
        return InMemoryStore()
    if config.store == "sqlite":
        return SQLiteStore(str(config.db_path), load_or_create_key(config))

    raise ConfigurationError(f"Unknown store backend: {config.store!r}")


def get_store(config: Optional[Config] = None) -> MappingStore:
    """Get or create the default store."""
    global _default_store

    if _default_store is None:
        _default_store = create_store(config)

    return _default_store


def reset_store():
    """Forget the default store (for testing)."""
    global _default_store
    if _default_store is not None:
        _default_store.close()
    _default_store = None
