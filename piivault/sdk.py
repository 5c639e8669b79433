"""piivault SDK - reversible PII tokenization for safe LLM usage.

Quick Start:
    import piivault.sdk as piivault

    # Async API
    safe = await piivault.anonymize("Contact John Doe at john@example.com")
    # Send `safe` to the LLM...
    restored = await piivault.deanonymize(llm_response)

    # Detection only, nothing stored
    found = piivault.detect("Call 123-456-7890")
    # {"emails": [], "phones": [" 123-456-7890"], "names": []}

Sync Usage:
    safe = piivault.sync_anonymize("Contact John Doe...")
    restored = piivault.sync_deanonymize(safe)
"""

__version__ = "0.1.0"

import asyncio
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional, Union

from .config import Config, get_config, set_config
from .errors import (
    VaultError,
    InvalidInputError,
    StoreError,
    ConfigurationError,
    CompletionError,
)
from .types import Category
from .vault.anonymizer import AnonymizeResult, DeanonymizeResult
from .vault.manager import Vault
from .vault.store import create_store

# =============================================================================
# VAULT MANAGEMENT
# =============================================================================

_vault: Optional[Vault] = None
_executor: Optional[ThreadPoolExecutor] = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="piivault_")
    return _executor


def get_vault() -> Vault:
    """Get or create the default vault, backed by the configured store."""
    global _vault
    if _vault is None:
        _vault = Vault(create_store(get_config()))
    return _vault


def set_vault(vault: Vault):
    """Use vault for every module-level operation."""
    global _vault
    _vault = vault


def clear_vault():
    """Drop the cached vault (for testing)."""
    global _vault
    if _vault is not None:
        _vault.close()
    _vault = None


async def _in_executor(fn, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_get_executor(), fn, *args)


# =============================================================================
# CORE API - ASYNC
# =============================================================================

async def anonymize(text: str, *, full: bool = False) -> Union[str, AnonymizeResult]:
    """Replace PII in text with tokens.

    Args:
        text: Non-empty text
        full: If True, return AnonymizeResult. If False, return just the text.

    Raises:
        InvalidInputError: text is not a non-empty string
    """
    result = await _in_executor(get_vault().anonymize_with_map, text)
    return result if full else result.safe_text


async def deanonymize(text: str, *, full: bool = False) -> Union[str, DeanonymizeResult]:
    """Restore tokens in text to their original values.

    Unknown tokens are left as they are.
    """
    result = await _in_executor(get_vault().deanonymize_with_map, text)
    return result if full else result.text


def detect(text: str) -> Dict[str, List[str]]:
    """Detect PII without storing anything."""
    return get_vault().detect(text)


def stats() -> dict:
    """Mapping counts: {"total": n, "by_category": {...}}"""
    return get_vault().stats()


def reset() -> int:
    """Clear the mapping store. Test/debug utility."""
    return get_vault().reset()


def get_token_mapping(token: str) -> Optional[dict]:
    """Stored mapping for one token, or None."""
    return get_vault().get_token_mapping(token)


def get_all_mappings(category: Optional[Category] = None) -> List[dict]:
    """Every stored mapping, oldest first."""
    return get_vault().get_all_mappings(category)


# =============================================================================
# SYNC WRAPPERS
# =============================================================================

def _run_sync(coro):
    """Run coroutine synchronously."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    # Called from inside a running loop: run on a fresh loop in a worker.
    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def sync_anonymize(text: str, **kwargs) -> Union[str, AnonymizeResult]:
    """Sync version of anonymize()."""
    return _run_sync(anonymize(text, **kwargs))


def sync_deanonymize(text: str, **kwargs) -> Union[str, DeanonymizeResult]:
    """Sync version of deanonymize()."""
    return _run_sync(deanonymize(text, **kwargs))


# =============================================================================
# CONFIGURE HELPER
# =============================================================================

def configure(**kwargs) -> Config:
    """Configure piivault globally.

    Args:
        data_dir: Path to data directory (db and key file live here)
        store: "sqlite" or "memory"

    Returns:
        Updated Config
    """
    config = get_config()

    if "data_dir" in kwargs:
        config = Config(
            data_dir=Path(kwargs["data_dir"]),
            store=config.store,
            completion=config.completion,
        )
    if "store" in kwargs:
        config.store = kwargs["store"]

    set_config(config)
    clear_vault()  # Reset vault to pick up new config
    return config


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
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

    # Vault
    "Vault",
    "get_vault",
    "set_vault",
    "clear_vault",
    "configure",

    # Result types
    "AnonymizeResult",
    "DeanonymizeResult",

    # Errors
    "VaultError",
    "InvalidInputError",
    "StoreError",
    "ConfigurationError",
    "CompletionError",
]
