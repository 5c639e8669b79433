"""Vault - reversible tokenization of PII.

Replaces emails, phone numbers and personal names with deterministic
tokens such as EMAIL_8004719c, so text can be sent to an LLM and the
answer restored afterwards.

Components:
- store: Mapping store contract, in-memory and encrypted SQLite backends
- tokenizer: Token derivation (value -> token) with store upsert
- anonymizer: Category passes (text -> tokens) and restoration (tokens -> text)
- manager: Vault, bundling the above over one injected store

Usage:
    from piivault.vault import Vault, SQLiteStore, load_or_create_key

    vault = Vault(SQLiteStore("~/.piivault/vault.db", load_or_create_key()))

    safe = vault.anonymize("Contact John Doe at john@example.com")
    # "Contact NAME_xxxxxxxx NAME_yyyyyyyy at EMAIL_zzzzzzzz"

    restored = vault.deanonymize(llm_response)
"""

from .store import (
    MappingStore,
    InMemoryStore,
    SQLiteStore,
    Encryptor,
    load_or_create_key,
    create_store,
    get_store,
    reset_store,
)

from .tokenizer import (
    Tokenizer,
    DerivedToken,
    normalize,
    compute_digest,
    make_token,
)

from .anonymizer import (
    Anonymizer,
    Deanonymizer,
    AnonymizeResult,
    DeanonymizeResult,
    TOKEN_PATTERN,
)

from .manager import Vault

__all__ = [
    # Store
    "MappingStore",
    "InMemoryStore",
    "SQLiteStore",
    "Encryptor",
    "load_or_create_key",
    "create_store",
    "get_store",
    "reset_store",
    # Tokenizer
    "Tokenizer",
    "DerivedToken",
    "normalize",
    "compute_digest",
    "make_token",
    # Anonymizer
    "Anonymizer",
    "Deanonymizer",
    "AnonymizeResult",
    "DeanonymizeResult",
    "TOKEN_PATTERN",
    # Vault
    "Vault",
]
