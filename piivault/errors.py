"""Exceptions raised by piivault."""


class VaultError(Exception):
    """Base exception for all piivault errors."""
    pass


class InvalidInputError(VaultError, ValueError):
    """Input text is not a non-empty string."""
    pass


class StoreError(VaultError):
    """The mapping store could not read or write."""
    pass


class ConfigurationError(VaultError):
    """Configuration is invalid or missing."""
    pass


class CompletionError(VaultError):
    """The external completion service failed."""
    pass


def require_text(text, what: str = "Message") -> str:
    """Validate that text is a non-empty string."""
    if not isinstance(text, str) or not text:
        raise InvalidInputError(f"{what} must be a non-empty string")
    return text
