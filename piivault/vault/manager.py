"""Vault - wires a mapping store to detection, anonymization and restoration."""

import logging
from typing import Dict, List, Optional

from ..detector import Detector
from ..errors import StoreError
from ..types import Category, MappingStats
from .anonymizer import Anonymizer, AnonymizeResult, Deanonymizer, DeanonymizeResult
from .store import MappingStore, InMemoryStore
from .tokenizer import Tokenizer

logger = logging.getLogger(__name__)


class Vault:
    """The tokenization engine over one injected mapping store.

    Any MappingStore works; swapping InMemoryStore for SQLiteStore changes
    nothing else.

    Usage:
        vault = Vault(SQLiteStore(db_path, key))

        safe = vault.anonymize("Call Jane Roe at 555-123-4567")
        # Send `safe` to the LLM...
        restored = vault.deanonymize(llm_response)
    """

    def __init__(
        self,
        store: Optional[MappingStore] = None,
        detector: Optional[Detector] = None,
    ):
        """Initialize the vault.

        Args:
            store: MappingStore instance (defaults to a fresh InMemoryStore)
            detector: Detector instance (defaults to the built-in matchers)
        """
        self.store = store if store is not None else InMemoryStore()
        self.detector = detector or Detector()

        self.tokenizer = Tokenizer(self.store)
        self._anonymizer = Anonymizer(self.detector, self.tokenizer)
        self._deanonymizer = Deanonymizer(self.store)

    # =========================================================================
    # TEXT OPERATIONS
    # =========================================================================

    def anonymize(self, text: str) -> str:
        """Replace PII in text with tokens."""
        return self._anonymizer.anonymize(text)

    def anonymize_with_map(self, text: str) -> AnonymizeResult:
        return self._anonymizer.anonymize_with_map(text)

    def deanonymize(self, text: str) -> str:
        """Restore tokens in text to original values."""
        return self._deanonymizer.deanonymize(text)

    def deanonymize_with_map(self, text: str) -> DeanonymizeResult:
        return self._deanonymizer.deanonymize_with_map(text)

    def detect(self, text: str) -> Dict[str, List[str]]:
        """Detected PII per category, without touching the store."""
        return self.detector.detect_pii(text)

    # =========================================================================
    # STORE ACCESS
    # =========================================================================

    def stats(self) -> dict:
        """{"total": n, "by_category": {"phone": n, "email": n, "name": n}}

        All zeros if the store cannot be read.
        """
        try:
            stats = self.store.stats_by_category()
        except StoreError as e:
            logger.warning(f"Cannot read mapping stats: {e}")
            stats = MappingStats()
        return stats.to_dict()

    def reset(self) -> int:
        """Clear every mapping. Meant for tests and debugging.

        Returns how many mappings were removed, 0 if the store failed.
        """
        try:
            count = self.store.clear_all()
        except StoreError as e:
            logger.warning(f"Vault reset failed: {e}")
            return 0
        logger.info(f"Vault reset, {count} mappings removed")
        return count

    def get_token_mapping(self, token: str) -> Optional[dict]:
        """Mapping details for one token, or None."""
        try:
            mapping = self.store.find_by_token(token)
        except StoreError as e:
            logger.warning(f"Lookup of {token} failed: {e}")
            return None
        return mapping.to_dict() if mapping else None

    def get_all_mappings(self, category: Optional[Category] = None) -> List[dict]:
        """All mappings, optionally for one category."""
        try:
            mappings = self.store.all_mappings()
        except StoreError as e:
            logger.warning(f"Cannot list mappings: {e}")
            return []
        return [
            m.to_dict()
            for m in mappings
            if category is None or m.category == Category(category)
        ]

    def close(self):
        self.store.close()
