"""Tests for configuration and API key storage."""

import json

import pytest

from commit_navigator.config import Config, NavigatorSettings
from commit_navigator.errors import ConfigurationError


class TestConfig:
    """Test the Config store."""

    def make_config(self, tmp_path):
        return Config(tmp_path / ".cnav")

    def test_config_dir_created_with_restrictive_permissions(self, tmp_path):
        config = self.make_config(tmp_path)

        assert config.config_dir.is_dir()
        assert oct(config.config_dir.stat().st_mode)[-3:] == "700"

    def test_api_key_round_trip(self, tmp_path):
        config = self.make_config(tmp_path)

        config.set_ai_api_key("openai", "sk-test")

        assert config.get_ai_api_key("openai") == "sk-test"
        assert config.get_ai_api_key("anthropic") is None
        assert oct(config.config_file.stat().st_mode)[-3:] == "600"
        assert json.loads(config.config_file.read_text()) == {"openai_api_key": "sk-test"}

    def test_remove_last_key_deletes_file(self, tmp_path):
        config = self.make_config(tmp_path)
        config.set_ai_api_key("anthropic", "ak-test")

        config.remove_ai_api_key("anthropic")

        assert not config.config_file.exists()
        assert config.get_ai_api_key("anthropic") is None

    def test_remove_keeps_other_settings(self, tmp_path):
        config = self.make_config(tmp_path)
        config.config_file.write_text(json.dumps({"openai_api_key": "sk", "max_depth": 2}))

        config.remove_ai_api_key("openai")

        assert json.loads(config.config_file.read_text()) == {"max_depth": 2}

    def test_unknown_provider(self, tmp_path):
        config = self.make_config(tmp_path)

        assert config.get_ai_api_key("mistral") is None
        with pytest.raises(ConfigurationError):
            config.set_ai_api_key("mistral", "key")

    def test_list_ai_api_keys(self, tmp_path):
        config = self.make_config(tmp_path)
        config.set_ai_api_key("openai", "sk-test")

        assert config.list_ai_api_keys() == {"openai": True, "anthropic": False}

    def test_corrupt_config_ignored(self, tmp_path):
        config = self.make_config(tmp_path)
        config.config_file.write_text("{ not json")

        assert config.get_ai_api_key("openai") is None
        assert config.load_settings() == NavigatorSettings()

    def test_config_info(self, tmp_path):
        config = self.make_config(tmp_path)
        assert config.get_config_info()["config_exists"] is False

        config.set_ai_api_key("openai", "sk-test")
        info = config.get_config_info()

        assert info["config_exists"] is True
        assert info["config_file_permissions"] == "600"
        assert info["ai_api_keys"]["openai"] is True


class TestSettings:
    """Test settings loading and validation."""

    def test_defaults(self):
        settings = NavigatorSettings()

        assert settings.max_depth == 3
        assert settings.max_concurrency == 8
        assert settings.max_tokens == 20000
        assert settings.temperature == 0.2
        assert settings.default_model is None

    def test_load_settings_from_file(self, tmp_path):
        config = Config(tmp_path)
        config.config_file.write_text(
            json.dumps(
                {
                    "openai_api_key": "sk-test",
                    "default_model": "gpt-4o",
                    "max_concurrency": 4,
                    "unrelated": True,
                }
            )
        )

        settings = config.load_settings()

        assert settings.default_model == "gpt-4o"
        assert settings.max_concurrency == 4

    @pytest.mark.parametrize(
        "values",
        [
            {"max_depth": 0},
            {"max_concurrency": 100},
            {"temperature": 2.5},
            {"max_tokens": 0},
        ],
    )
    def test_invalid_settings_rejected(self, tmp_path, values):
        config = Config(tmp_path)
        config.config_file.write_text(json.dumps(values))

        with pytest.raises(ConfigurationError):
            config.load_settings()
