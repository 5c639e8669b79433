"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml

from piivault.config import Config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("PIIVAULT_DATA_DIR", "PIIVAULT_STORE", "LLM_API_KEY"):
        monkeypatch.delenv(var, raising=False)


class TestDefaults:

    def test_paths_follow_data_dir(self, tmp_path):
        config = Config(data_dir=tmp_path)
        assert config.db_path == tmp_path / "vault.db"
        assert config.key_path == tmp_path / "vault.key"

    def test_completion_defaults(self):
        config = Config()
        assert config.store == "sqlite"
        assert config.completion.provider == "none"
        assert config.completion.max_tokens == 500
        assert config.completion.temperature == 0.7
        assert config.completion.system_message == "You are a helpful assistant."
        assert config.completion.remote.model == "gpt-3.5-turbo"

    def test_missing_file(self, tmp_path):
        config = Config.load(tmp_path / "nope.yaml")
        assert config.store == "sqlite"


class TestLoad:

    def test_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({
            "data_dir": str(tmp_path / "vault"),
            "store": "memory",
            "completion": {
                "provider": "remote",
                "max_tokens": 200,
                "remote": {"model": "gpt-4o-mini", "api_key": "sk-file"},
            },
        }))

        config = Config.load(path)

        assert config.db_path == tmp_path / "vault" / "vault.db"
        assert config.store == "memory"
        assert config.completion.provider == "remote"
        assert config.completion.max_tokens == 200
        assert config.completion.temperature == 0.7
        assert config.completion.remote.model == "gpt-4o-mini"
        assert config.completion.remote.api_key == "sk-file"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert Config.load(path).store == "sqlite"

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"store": "memory"}))
        monkeypatch.setenv("PIIVAULT_DATA_DIR", str(tmp_path / "env"))
        monkeypatch.setenv("PIIVAULT_STORE", "sqlite")
        monkeypatch.setenv("LLM_API_KEY", "sk-env")

        config = Config.load(path)

        assert config.data_dir == Path(tmp_path / "env")
        assert config.key_path == tmp_path / "env" / "vault.key"
        assert config.store == "sqlite"
        assert config.completion.remote.api_key == "sk-env"


class TestSave:

    def test_round_trip(self, tmp_path):
        config = Config(data_dir=tmp_path, store="memory")
        config.completion.provider = "ollama"
        config.completion.ollama.model = "llama3"
        config.completion.remote.timeout = 15
        config.save()

        loaded = Config.load(tmp_path / "config.yaml")
        assert loaded.store == "memory"
        assert loaded.completion.provider == "ollama"
        assert loaded.completion.ollama.model == "llama3"
        assert loaded.completion.remote.timeout == 15

    def test_api_key_never_written(self, tmp_path):
        config = Config(data_dir=tmp_path)
        config.completion.remote.api_key = "sk-secret"
        config.save()

        assert "sk-secret" not in (tmp_path / "config.yaml").read_text()
