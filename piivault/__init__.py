"""piivault - Reversible PII tokenization.

Replaces emails, phone numbers and personal names with deterministic
tokens before text leaves your hands, and restores them afterwards.

Quick Start:
    from piivault import sync_anonymize, sync_deanonymize, Vault

    # Default vault (encrypted SQLite under ~/.piivault)
    safe = sync_anonymize("Contact John Doe at john@example.com")
    restored = sync_deanonymize(llm_response)

    # Async API
    safe = await anonymize(text)
    restored = await deanonymize(safe)

    # Explicit vault over an in-memory store
    vault = Vault(InMemoryStore())
    safe = vault.anonymize("Call 123-456-7890")
"""

__version__ = "0.1.0"

# Core async API
from .sdk import (
    anonymize,
    deanonymize,
)

# Sync API
from .sdk import (
    sync_anonymize,
    sync_deanonymize,
    detect,
    stats,
    reset,
    get_token_mapping,
    get_all_mappings,
)

# Vault management
from .sdk import (
    get_vault,
    set_vault,
    clear_vault,
    configure,
)

# Engine
from .vault import (
    Vault,
    MappingStore,
    InMemoryStore,
    SQLiteStore,
    AnonymizeResult,
    DeanonymizeResult,
)
from .detector import Detector

# Core types
from .types import (
    Category,
    TokenMapping,
    MappingStats,
)

# Exceptions
from .errors import (
    VaultError,
    InvalidInputError,
    StoreError,
    ConfigurationError,
    CompletionError,
)

# Configuration
from .config import (
    Config,
    get_config,
    set_config,
)

__all__ = [
    # Version
    "__version__",

    # Async API
    "anonymize",
    "deanonymize",

    # Sync API
    "sync_anonymize",
    "sync_deanonymize",
    "detect",
    "stats",
    "reset",
    "get_token_mapping",
    "get_all_mappings",

    # Vault management
    "get_vault",
    "set_vault",
    "clear_vault",
    "configure",

    # Engine
    "Vault",
    "MappingStore",
    "InMemoryStore",
    "SQLiteStore",
    "AnonymizeResult",
    "DeanonymizeResult",
    "Detector",

    # Core types
    "Category",
    "TokenMapping",
    "MappingStats",

    # Exceptions
    "VaultError",
    "InvalidInputError",
    "StoreError",
    "ConfigurationError",
    "CompletionError",

    # Configuration
    "Config",
    "get_config",
    "set_config",
]
