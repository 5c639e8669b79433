"""Core types for PII tokenization."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict


class Category(str, Enum):
    """Supported PII categories.

    Order of declaration is the anonymization precedence: phones claim
    their matches first, then emails, then names.
    """
    PHONE = "phone"
    EMAIL = "email"
    NAME = "name"

    @property
    def prefix(self) -> str:
        """Token prefix, e.g. EMAIL."""
        return self.value.upper()

    @property
    def plural(self) -> str:
        return self.value + "s"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Match:
    """A single detector hit."""
    text: str
    start: int
    end: int
    category: Category


@dataclass
class TokenMapping:
    """A mapping from token to its original value."""
    token: str  # e.g. EMAIL_8004719c
    original: str
    category: Category
    digest: str  # 8 hex chars, same as the token suffix
    created_at: datetime = field(default_factory=utcnow)
    last_used: datetime = field(default_factory=utcnow)
    usage_count: int = 1

    def __post_init__(self):
        if isinstance(self.category, str):
            self.category = Category(self.category)

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "original": self.original,
            "category": self.category.value,
            "digest": self.digest,
            "created_at": self.created_at.isoformat(),
            "last_used": self.last_used.isoformat(),
            "usage_count": self.usage_count,
        }


@dataclass
class MappingStats:
    """Count of stored mappings, total and per category."""
    total: int = 0
    by_category: Dict[Category, int] = field(
        default_factory=lambda: {c: 0 for c in Category}
    )

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "by_category": {c.value: n for c, n in self.by_category.items()},
        }
