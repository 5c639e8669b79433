"""Secure text completion: anonymize, ask an LLM, restore the answer.

The LLM only ever sees tokens like NAME_c1b4ed05; the caller gets the
answer back with the original values put in place.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

import httpx

from .config import CompletionConfig, get_config
from .errors import CompletionError, ConfigurationError, require_text
from .vault.anonymizer import TOKEN_PATTERN

logger = logging.getLogger(__name__)


@dataclass
class Completion:
    """Raw reply from a completion backend."""
    text: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    finish_reason: Optional[str] = None


@dataclass
class CompletionResult:
    """A completed round trip through the vault."""
    text: str  # Restored answer
    anonymized_prompt: str
    anonymized_text: str  # Answer as the LLM wrote it
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    finish_reason: Optional[str] = None
    unresolved_tokens: List[str] = field(default_factory=list)
    degraded_tokens: List[str] = field(default_factory=list)

    @property
    def pii_count(self) -> int:
        """Tokens sent in place of PII."""
        return len(TOKEN_PATTERN.findall(self.anonymized_prompt))


class CompletionClient(ABC):
    """Base interface for text completion backends."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        system_message: str = "You are a helpful assistant.",
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> Completion:
        """Generate a completion for prompt."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend is ready."""
        pass


class OllamaClient(CompletionClient):
    """Complete using a local Ollama server."""

    def __init__(
        self,
        url: str = "http://localhost:11434",
        model: str = "phi3:mini",
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._available: Optional[bool] = None

    def complete(
        self,
        prompt: str,
        system_message: str = "You are a helpful assistant.",
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> Completion:
        """Ask Ollama for a completion."""
        try:
            response = self._client.post(
                f"{self.url}/api/generate",
                json={
                    "model": self.model,
                    "system": system_message,
                    "prompt": prompt,
                    "stream": False,
                    "options": {
                        "temperature": temperature,
                        "num_predict": max_tokens,
                    }
                },
            )
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Ollama completion failed: {e}")
            raise CompletionError(f"Failed to generate completion: {e}") from e

        prompt_tokens = result.get("prompt_eval_count", 0)
        completion_tokens = result.get("eval_count", 0)
        return Completion(
            text=result.get("response", ""),
            model=result.get("model", self.model),
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
            finish_reason=result.get("done_reason"),
        )

    def is_available(self) -> bool:
        """Check if Ollama is running and the model is pulled."""
        if self._available is not None:
            return self._available

        try:
            response = self._client.get(f"{self.url}/api/tags", timeout=5.0)
            response.raise_for_status()

            models = response.json().get("models", [])
            model_names = [m.get("name", "") for m in models]

            if any(self.model in name or name in self.model for name in model_names):
                self._available = True
            else:
                logger.warning(f"Model {self.model} not found. Available: {model_names}")
                self._available = False

            return self._available

        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Ollama not available: {e}")
            self._available = False
            return False


class RemoteClient(CompletionClient):
    """Complete using a remote OpenAI-compatible API."""

    def __init__(
        self,
        url: str,
        api_key: str,
        model: str,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def complete(
        self,
        prompt: str,
        system_message: str = "You are a helpful assistant.",
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> Completion:
        """Ask the remote API for a chat completion."""
        try:
            response = self._client.post(
                f"{self.url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json"
                },
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system_message},
                        {"role": "user", "content": prompt},
                    ],
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
            response.raise_for_status()

            result = response.json()
            choice = result["choices"][0]
            text = choice["message"]["content"] or ""
            usage = result.get("usage") or {}
        except (httpx.HTTPError, ValueError, KeyError, IndexError) as e:
            logger.error(f"Remote completion failed: {e}")
            raise CompletionError(f"Failed to generate completion: {e}") from e

        return Completion(
            text=text,
            model=result.get("model", self.model),
            usage={
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            },
            finish_reason=choice.get("finish_reason"),
        )

    def is_available(self) -> bool:
        """Check if remote API is configured."""
        return bool(self.url and self.api_key and self.model)


def get_completion_client(config: Optional[CompletionConfig] = None) -> CompletionClient:
    """Factory function to get the configured completion backend."""
    if config is None:
        config = get_config().completion

    if config.provider == "ollama":
        return OllamaClient(
            url=config.ollama.url,
            model=config.ollama.model,
            timeout=config.ollama.timeout,
        )

    if config.provider == "remote":
        if not config.remote.api_key:
            raise ConfigurationError("Remote completion needs an API key (LLM_API_KEY)")
        return RemoteClient(
            url=config.remote.url,
            api_key=config.remote.api_key,
            model=config.remote.model,
            timeout=config.remote.timeout,
        )

    raise ConfigurationError(
        f"Completion provider is {config.provider!r}; set it to 'ollama' or 'remote'"
    )


class SecureCompletion:
    """Round trip a prompt through a completion backend without leaking PII.

    Usage:
        secure = SecureCompletion(vault, get_completion_client())
        result = secure.complete("Write to Jane Roe at jane@test.org")
        result.anonymized_prompt  # what the LLM saw
        result.text               # answer with the originals restored
    """

    def __init__(
        self,
        vault,
        client: CompletionClient,
        config: Optional[CompletionConfig] = None,
    ):
        self.vault = vault
        self.client = client
        self.config = config or get_config().completion

    def complete(
        self,
        prompt: str,
        system_message: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> CompletionResult:
        """Anonymize prompt, complete it, restore the answer.

        Raises:
            InvalidInputError: prompt is not a non-empty string
            CompletionError: the backend failed
        """
        require_text(prompt, "Prompt")

        anonymized = self.vault.anonymize_with_map(prompt)
        logger.info(f"Anonymized {len(anonymized.token_map)} PII item(s)")

        completion = self.client.complete(
            anonymized.safe_text,
            system_message=system_message or self.config.system_message,
            max_tokens=max_tokens or self.config.max_tokens,
            temperature=self.config.temperature if temperature is None else temperature,
        )
        logger.info(f"Received response ({completion.usage.get('total_tokens', 0)} tokens)")

        if completion.text:
            restored = self.vault.deanonymize_with_map(completion.text)
            text, unresolved = restored.text, restored.unresolved
        else:
            text, unresolved = completion.text, []

        return CompletionResult(
            text=text,
            anonymized_prompt=anonymized.safe_text,
            anonymized_text=completion.text,
            model=completion.model,
            usage=completion.usage,
            finish_reason=completion.finish_reason,
            unresolved_tokens=unresolved,
            degraded_tokens=anonymized.degraded_tokens,
        )
