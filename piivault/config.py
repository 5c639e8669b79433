"""Configuration for piivault."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os
import yaml


@dataclass
class OllamaConfig:
    """Local Ollama completion settings."""
    url: str = "http://localhost:11434"
    model: str = "phi3:mini"
    timeout: int = 60


@dataclass
class RemoteConfig:
    """Remote OpenAI-compatible completion settings."""
    url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-3.5-turbo"
    timeout: int = 60


@dataclass
class CompletionConfig:
    """Text completion settings."""
    provider: str = "none"  # "ollama" | "remote" | "none"
    max_tokens: int = 500
    temperature: float = 0.7
    system_message: str = "You are a helpful assistant."
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)


@dataclass
class Config:
    """Main configuration."""
    # Paths
    data_dir: Path = field(default_factory=lambda: Path.home() / ".piivault")
    db_path: Path = field(default=None)
    key_path: Path = field(default=None)

    # Mapping store backend: "sqlite" | "memory"
    store: str = "sqlite"

    completion: CompletionConfig = field(default_factory=CompletionConfig)

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        if self.db_path is None:
            self.db_path = self.data_dir / "vault.db"
        if self.key_path is None:
            self.key_path = self.data_dir / "vault.key"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load config from file or use defaults, then apply env overrides."""
        if path is None:
            path = Path.home() / ".piivault" / "config.yaml"

        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
                config = cls._from_dict(data)
        else:
            config = cls()

        config._apply_env()
        return config

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create config from dict."""
        config = cls()

        if "data_dir" in data:
            config = cls(data_dir=Path(data["data_dir"]))

        if "store" in data:
            config.store = data["store"]

        if "completion" in data:
            c = data["completion"]
            config.completion.provider = c.get("provider", "none")
            config.completion.max_tokens = c.get("max_tokens", 500)
            config.completion.temperature = c.get("temperature", 0.7)
            config.completion.system_message = c.get(
                "system_message", "You are a helpful assistant."
            )

            if "ollama" in c:
                config.completion.ollama.url = c["ollama"].get("url", "http://localhost:11434")
                config.completion.ollama.model = c["ollama"].get("model", "phi3:mini")
                config.completion.ollama.timeout = c["ollama"].get("timeout", 60)

            if "remote" in c:
                config.completion.remote.url = c["remote"].get("url", "https://api.openai.com/v1")
                config.completion.remote.api_key = c["remote"].get("api_key", "")
                config.completion.remote.model = c["remote"].get("model", "gpt-3.5-turbo")
                config.completion.remote.timeout = c["remote"].get("timeout", 60)

        return config

    def _apply_env(self):
        """Environment variables win over the config file."""
        data_dir = os.environ.get("PIIVAULT_DATA_DIR")
        if data_dir:
            self.data_dir = Path(data_dir)
            self.db_path = self.data_dir / "vault.db"
            self.key_path = self.data_dir / "vault.key"

        store = os.environ.get("PIIVAULT_STORE")
        if store:
            self.store = store

        api_key = os.environ.get("LLM_API_KEY")
        if api_key:
            self.completion.remote.api_key = api_key

    def save(self, path: Optional[Path] = None):
        """Save config to file. The API key is never written."""
        if path is None:
            path = self.data_dir / "config.yaml"

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "data_dir": str(self.data_dir),
            "store": self.store,
            "completion": {
                "provider": self.completion.provider,
                "max_tokens": self.completion.max_tokens,
                "temperature": self.completion.temperature,
                "system_message": self.completion.system_message,
                "ollama": {
                    "url": self.completion.ollama.url,
                    "model": self.completion.ollama.model,
                    "timeout": self.completion.ollama.timeout,
                },
                "remote": {
                    "url": self.completion.remote.url,
                    "model": self.completion.remote.model,
                    "timeout": self.completion.remote.timeout,
                },
            },
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global config instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config):
    """Set global config instance."""
    global _config
    _config = config
