"""Rule-based PII detection for emails, phone numbers and personal names."""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import logging

from .errors import require_text
from .types import Category, Match

logger = logging.getLogger(__name__)


# =============================================================================
# PATTERNS
# =============================================================================

EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')

# Any 7-20 char run of ASCII digits, spaces, dashes and parentheses,
# optionally after a "+". Order numbers and IDs match too.
PHONE_PATTERN = re.compile(r'\+?[0-9\-()\s]{7,20}')

# Words that start a capitalized run without being part of a name.
NAME_STOPWORDS = (
    "Contact", "Call", "Email", "Phone", "Teléfono", "Para", "Con",
    "At", "Or", "And", "The", "A", "An", "In", "On", "To", "For", "Of",
    "With", "By", "Me", "My", "I", "You", "We", "They", "He", "She", "It",
)

_UPPER = "A-ZÁÉÍÓÚÑ"
_LOWER = "a-záéíóúñ"
_WORD = f"[{_UPPER}][{_LOWER}]+"

NAME_PATTERN = re.compile(
    rf"\b(?!(?:{'|'.join(NAME_STOPWORDS)})\b)"
    rf"{_WORD}\s+{_WORD}(?:\s+{_WORD})?\b"
)


# =============================================================================
# VALIDATORS
# =============================================================================

def has_digit(text: str) -> bool:
    """A phone run made only of spaces and punctuation carries no number."""
    return any(c in "0123456789" for c in text)


# =============================================================================
# MATCHER
# =============================================================================

@dataclass
class Matcher:
    """A detection pattern for one category with optional validation."""
    name: str
    pattern: re.Pattern
    category: Category
    validator: Optional[Callable[[str], bool]] = None

    def find_all(self, text: str) -> List[Match]:
        """Find all matches in text, left to right, duplicates included."""
        matches = []
        for m in self.pattern.finditer(text):
            if self.validator is not None and not self.validator(m.group()):
                continue
            matches.append(Match(
                text=m.group(),
                start=m.start(),
                end=m.end(),
                category=self.category,
            ))
        return matches


DEFAULT_MATCHERS = (
    Matcher("phone", PHONE_PATTERN, Category.PHONE, validator=has_digit),
    Matcher("email", EMAIL_PATTERN, Category.EMAIL),
    Matcher("name", NAME_PATTERN, Category.NAME),
)


class Detector:
    """Runs one matcher per category, in precedence order.

    Matchers are pure; nothing here touches the mapping store.
    """

    def __init__(self, matchers=DEFAULT_MATCHERS):
        self.matchers: Dict[Category, Matcher] = {}
        for matcher in matchers:
            self.matchers[matcher.category] = matcher

    @property
    def categories(self) -> List[Category]:
        """Categories in the order they are applied."""
        return list(self.matchers)

    def find_all(self, text: str, category: Category) -> List[Match]:
        """Matches for one category."""
        return self.matchers[category].find_all(text)

    def detect(self, text: str) -> Dict[Category, List[Match]]:
        """Matches for every category, each run against the raw text."""
        return {category: self.find_all(text, category) for category in self.matchers}

    def detect_pii(self, text: str) -> Dict[str, List[str]]:
        """Unique matched strings per category, first-seen order.

        Returns:
            {"emails": [...], "phones": [...], "names": [...]}
        """
        require_text(text)

        detected = {"emails": [], "phones": [], "names": []}
        for category, matches in self.detect(text).items():
            detected[category.plural] = list(dict.fromkeys(m.text for m in matches))

        logger.debug(
            "Detected %s",
            ", ".join(f"{len(v)} {k}" for k, v in detected.items()),
        )
        return detected

    def list_matchers(self) -> List[dict]:
        """List all matchers with their details."""
        return [
            {
                "name": m.name,
                "category": m.category.value,
                "pattern": m.pattern.pattern,
                "has_validator": m.validator is not None,
            }
            for m in self.matchers.values()
        ]
