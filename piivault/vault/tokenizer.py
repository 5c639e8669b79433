"""Vault Tokenizer - derive deterministic tokens and record their mappings.

A token is a pure function of (category, normalized value):

    token = CATEGORY + "_" + sha256(normalized.lower())[:8]

so the same value always yields the same token, across processes, as long
as the mapping store persists.
"""

import re
import hashlib
import logging
from dataclasses import dataclass

from ..errors import StoreError
from ..types import Category

logger = logging.getLogger(__name__)


DIGEST_LENGTH = 8

# Separators dropped from phone numbers before hashing ("+" survives)
PHONE_NOISE = re.compile(r'[\s\-()]')


@dataclass
class NormalizedValue:
    """The two faces of a matched value."""
    hash_key: str  # What is hashed
    original: str  # What is restored


def normalize(raw: str, category: Category) -> NormalizedValue:
    """Split a raw match into its hash key and its restorable value.

    Phone formatting varies, so the hash ignores separators, while the
    stored original keeps them (only surrounding whitespace is trimmed).
    Emails and name parts are hashed and stored as matched.
    """
    if category == Category.PHONE:
        return NormalizedValue(hash_key=PHONE_NOISE.sub('', raw), original=raw.strip())
    if category in (Category.EMAIL, Category.NAME):
        return NormalizedValue(hash_key=raw, original=raw)
    raise ValueError(f"Unknown category: {category!r}")


def compute_digest(hash_key: str) -> str:
    """First 8 hex chars of SHA-256 over the lower-cased key."""
    return hashlib.sha256(hash_key.lower().encode('utf-8')).hexdigest()[:DIGEST_LENGTH]


def make_token(hash_key: str, category: Category) -> str:
    """Compose the token text without touching any store."""
    return f"{Category(category).prefix}_{compute_digest(hash_key)}"


@dataclass
class DerivedToken:
    """Outcome of one tokenization."""
    token: str
    original: str
    recorded: bool = True  # False when the store write failed


class Tokenizer:
    """Derives tokens and records them in a mapping store.

    Usage:
        tokenizer = Tokenizer(InMemoryStore())
        tokenizer.derive_token(" 555-123-4567 ", Category.PHONE)
        # "PHONE_xxxxxxxx"; stored original is "555-123-4567"
    """

    def __init__(self, store):
        """Initialize with a MappingStore."""
        self.store = store

    def derive(self, raw: str, category: Category) -> DerivedToken:
        """Tokenize raw and create or touch its mapping.

        A StoreError is logged and reported through DerivedToken.recorded;
        the token is produced either way.
        """
        category = Category(category)
        value = normalize(raw, category)
        token = make_token(value.hash_key, category)

        try:
            mapping = self.store.upsert(token, value.original, category)
        except StoreError as e:
            logger.warning(f"Mapping for {token} not recorded: {e}")
            return DerivedToken(token, value.original, recorded=False)

        if mapping.usage_count == 1:
            logger.debug(f"Created {token}")
        else:
            logger.debug(f"Touched {token} (used {mapping.usage_count}x)")
            if mapping.original != value.original:
                # Same hash, different spelling: the first write is kept.
                logger.debug(f"{token} keeps its first original value")

        return DerivedToken(token, value.original)

    def derive_token(self, raw: str, category: Category) -> str:
        """Return the token for raw. Idempotent after the first write."""
        return self.derive(raw, category).token
