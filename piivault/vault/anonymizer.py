"""Vault Anonymizer - replace detected PII with tokens, and back.

Anonymization runs one pass per category, phones first, then emails, then
names. Each pass replaces every match of its category, left to right, in
the output of the previous pass. The name pattern never matches a token.
An email match can contain a phone token (jane.PHONE_087b70dc@test.org);
such tokens are expanded back before the address is tokenized.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from ..detector import Detector
from ..errors import StoreError, require_text
from ..types import Category, Match
from .tokenizer import Tokenizer

logger = logging.getLogger(__name__)


# Matches tokens like EMAIL_8004719c, PHONE_40e83067, NAME_c1b4ed05
TOKEN_PATTERN = re.compile(
    r'\b(?:' + '|'.join(c.prefix for c in Category) + r')_[a-f0-9]{8}\b'
)

_WHITESPACE_SPLIT = re.compile(r'(\s+)')


@dataclass
class AnonymizeResult:
    """Anonymized text plus what was substituted."""
    original: str
    safe_text: str
    token_map: Dict[str, str] = field(default_factory=dict)  # token -> original
    degraded_tokens: List[str] = field(default_factory=list)

    @property
    def has_pii(self) -> bool:
        return bool(self.token_map)

    @property
    def degraded(self) -> bool:
        """True when some mapping may not have been stored.

        Such tokens are still in safe_text but may not restore later.
        """
        return bool(self.degraded_tokens)


@dataclass
class DeanonymizeResult:
    """Restored text plus which tokens resolved."""
    text: str
    restored: Dict[str, str] = field(default_factory=dict)  # token -> original
    unresolved: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unresolved


class Anonymizer:
    """Replaces detected PII with deterministic tokens.

    Usage:
        anonymizer = Anonymizer(Detector(), Tokenizer(store))
        anonymizer.anonymize("Contact John Doe at john@example.com")
        # "Contact NAME_xxxxxxxx NAME_yyyyyyyy at EMAIL_zzzzzzzz"
    """

    def __init__(self, detector: Detector, tokenizer: Tokenizer):
        self.detector = detector
        self.tokenizer = tokenizer

    def anonymize(self, text: str) -> str:
        """Return text with every detected PII occurrence tokenized."""
        return self.anonymize_with_map(text).safe_text

    def anonymize_with_map(self, text: str) -> AnonymizeResult:
        """Anonymize and report the substitutions made.

        Raises:
            InvalidInputError: text is not a non-empty string
        """
        require_text(text)

        result = AnonymizeResult(original=text, safe_text=text)
        current = text
        for category in self.detector.categories:
            current = self._substitute(current, category, result)
        result.safe_text = current

        # Phone tokens folded back into an address are not in the output
        result.token_map = {
            t: o for t, o in result.token_map.items() if t in current
        }
        result.degraded_tokens = [t for t in result.degraded_tokens if t in current]

        if result.degraded:
            logger.warning(
                f"{len(result.degraded_tokens)} token(s) not persisted; "
                "they may not restore"
            )
        return result

    def _substitute(self, text: str, category: Category, result: AnonymizeResult) -> str:
        """One traversal replacing all matches of category."""
        matches = self.detector.find_all(text, category)
        if not matches:
            return text

        pieces = []
        position = 0
        for match in matches:
            pieces.append(text[position:match.start])
            pieces.append(self._replacement(match, result))
            position = match.end
        pieces.append(text[position:])

        return "".join(pieces)

    def _replacement(self, match: Match, result: AnonymizeResult) -> str:
        if match.category == Category.PHONE:
            return self._replace_phone(match.text, result)
        elif match.category == Category.EMAIL:
            return self._replace_email(match.text, result)
        elif match.category == Category.NAME:
            return self._replace_name(match.text, result)
        raise ValueError(f"Unknown category: {match.category!r}")

    def _replace_phone(self, raw: str, result: AnonymizeResult) -> str:
        """Keep the whitespace the run swallowed around the number."""
        core = raw.strip()
        start = len(raw) - len(raw.lstrip())
        leading = raw[:start]
        trailing = raw[start + len(core):]
        return leading + self._tokenize(raw, Category.PHONE, result) + trailing

    def _replace_email(self, raw: str, result: AnonymizeResult) -> str:
        """Tokenize an address, first undoing phone tokens inside it.

        The local part may hold a digit run the phone pass already took
        (jane.5551234@test.org), and "_" is a valid local-part character,
        so the match can contain a phone token. The stored original must
        be the address as written.
        """
        phone_prefix = Category.PHONE.prefix + "_"
        for token, original in result.token_map.items():
            if token.startswith(phone_prefix) and token in raw:
                raw = raw.replace(token, original)
        return self._tokenize(raw, Category.EMAIL, result)

    def _replace_name(self, raw: str, result: AnonymizeResult) -> str:
        """Each name part gets its own token; separators are kept."""
        parts = _WHITESPACE_SPLIT.split(raw)
        return "".join(
            part if _WHITESPACE_SPLIT.fullmatch(part) else
            self._tokenize(part, Category.NAME, result)
            for part in parts
            if part
        )

    def _tokenize(self, raw: str, category: Category, result: AnonymizeResult) -> str:
        derived = self.tokenizer.derive(raw, category)
        result.token_map.setdefault(derived.token, derived.original)
        if not derived.recorded and derived.token not in result.degraded_tokens:
            result.degraded_tokens.append(derived.token)
        return derived.token


class Deanonymizer:
    """Restores tokens back to original values.

    Usage:
        deanonymizer = Deanonymizer(store)

        llm_response = "I will email EMAIL_8004719c today"
        deanonymizer.deanonymize(llm_response)
        # "I will email jane@test.org today"
    """

    def __init__(self, store):
        """Initialize with a MappingStore."""
        self.store = store

    def deanonymize(self, text: str) -> str:
        """Replace known tokens with their original values.

        Unknown tokens stay in the text as they are.
        """
        return self.deanonymize_with_map(text).text

    def deanonymize_with_map(self, text: str) -> DeanonymizeResult:
        """Restore and report which tokens resolved.

        Raises:
            InvalidInputError: text is not a non-empty string
        """
        require_text(text, "Anonymized message")

        tokens = self.find_tokens(text)
        result = DeanonymizeResult(text=text)
        if not tokens:
            return result

        for token in tokens:
            try:
                mapping = self.store.find_by_token(token)
            except StoreError as e:
                logger.warning(f"Lookup of {token} failed: {e}")
                result.unresolved.append(token)
                continue

            if mapping is None:
                logger.warning(f"Token not found in store: {token}")
                result.unresolved.append(token)
                continue

            result.restored[token] = mapping.original

        if result.restored:
            result.text = TOKEN_PATTERN.sub(
                lambda m: result.restored.get(m.group(), m.group()), text
            )
        return result

    def find_tokens(self, text: str) -> List[str]:
        """Unique tokens in text, first-seen order."""
        return list(dict.fromkeys(TOKEN_PATTERN.findall(text)))

    def has_tokens(self, text: str) -> bool:
        """Check if text contains any tokens."""
        return bool(TOKEN_PATTERN.search(text))
