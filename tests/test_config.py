"""Tests for configuration loading, validation and serialization."""

import yaml

from kilo_agent.config import (
    CONFIG_FIELDS,
    Config,
    ModelPreset,
    _validate_bool,
    _validate_enum,
    _validate_int_range,
    validate_config_value,
)


def _write_project_config(tmp_dir, data):
    path = tmp_dir / ".kilo.yml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


class TestValidators:
    def test_int_range(self):
        assert _validate_int_range("7", 1, 20) == (True, 7, "")
        ok, value, msg = _validate_int_range(50, 1, 20)
        assert not ok and value == 20 and "between 1 and 20" in msg
        assert not _validate_int_range("many", 1, 20)[0]
        assert not _validate_int_range(True, 1, 20)[0]

    def test_bool(self):
        assert _validate_bool("yes") == (True, True, "")
        assert _validate_bool("off") == (True, False, "")
        assert not _validate_bool("maybe")[0]

    def test_enum(self):
        assert _validate_enum("Anthropic", {"anthropic", "openai"}) == (True, "anthropic", "")
        assert not _validate_enum("other", {"anthropic"})[0]

    def test_unknown_key(self):
        ok, _, msg = validate_config_value("nope", 1)
        assert not ok
        assert "Unknown configuration key" in msg

    def test_defaults_match_loop_constants(self):
        assert CONFIG_FIELDS["max-iterations"].default == 5
        assert CONFIG_FIELDS["tool-timeout"].default == 30
        assert CONFIG_FIELDS["exchange-timeout"].default == 60
        assert CONFIG_FIELDS["max-output-chars"].default == 5000


class TestConfigLoad:
    def test_defaults_without_files(self, isolated_config, tmp_dir):
        config = Config.load(str(tmp_dir))

        assert config.active_model == "claude-sonnet"
        assert config.max_iterations == 5
        assert config.tool_timeout == 30
        assert config.exchange_timeout == 60
        assert config.get_active_preset().model == "anthropic/claude-sonnet-4-20250514"
        assert config.get_active_preset().max_tokens == 1024
        assert config.summary()["Config"] == "(defaults)"

    def test_load_project_yaml(self, isolated_config, tmp_dir):
        _write_project_config(tmp_dir, {
            "active-model": "local",
            "max-iterations": 8,
            "tool-timeout": 10,
            "verbose": "yes",
            "models": {
                "local": {
                    "provider": "local",
                    "model": "openai/model",
                    "api-base": "http://localhost:8080/v1",
                    "api-key": "not-needed",
                    "max-tokens": 2048,
                },
            },
        })

        config = Config.load(str(tmp_dir))

        assert config.active_model == "local"
        assert config.max_iterations == 8
        assert config.tool_timeout == 10
        assert config.verbose is True
        preset = config.get_active_preset()
        assert isinstance(preset, ModelPreset)
        assert preset.api_base == "http://localhost:8080/v1"
        assert preset.max_tokens == 2048

    def test_out_of_range_values_clamped(self, isolated_config, tmp_dir):
        _write_project_config(tmp_dir, {"max-iterations": 500, "exchange-timeout": 1})

        config = Config.load(str(tmp_dir))

        assert config.max_iterations == 20
        assert config.exchange_timeout == 5

    def test_global_config_used_when_no_project_file(self, isolated_config, tmp_dir):
        isolated_config.mkdir(parents=True)
        with open(isolated_config / "config.yml", "w") as f:
            yaml.dump({"max-output-chars": 800}, f)

        config = Config.load(str(tmp_dir))

        assert config.max_output_chars == 800
        assert config._config_source.endswith("config.yml")

    def test_env_overrides(self, isolated_config, tmp_dir, monkeypatch):
        monkeypatch.setenv("KILO_MODEL", "local")
        monkeypatch.setenv("KILO_MAX_ITERATIONS", "3")
        monkeypatch.setenv("KILO_VERBOSE", "1")

        config = Config.load(str(tmp_dir))

        assert config.active_model == "local"
        assert config.max_iterations == 3
        assert config.verbose is True

    def test_invalid_env_ignored(self, isolated_config, tmp_dir, monkeypatch):
        monkeypatch.setenv("KILO_MAX_ITERATIONS", "lots")

        assert Config.load(str(tmp_dir)).max_iterations == 5

    def test_dotenv_supplies_api_key(self, isolated_config, tmp_dir, monkeypatch):
        # Recorded by monkeypatch so the value loaded from .env is undone afterwards.
        monkeypatch.setenv("ANTHROPIC_API_KEY", "placeholder")
        monkeypatch.delenv("ANTHROPIC_API_KEY")
        (tmp_dir / ".env").write_text("ANTHROPIC_API_KEY=sk-from-dotenv\n")

        config = Config.load(str(tmp_dir))

        assert config.get_active_preset().resolve_api_key() == "sk-from-dotenv"


class TestModelPreset:
    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "from-env")
        preset = ModelPreset(name="p", provider="anthropic", model="m", api_key="explicit")

        assert preset.resolve_api_key() == "explicit"

    def test_provider_default_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        preset = ModelPreset(name="p", provider="openai", model="openai/gpt-4o-mini")

        assert preset.resolve_api_key() == "sk-openai"
        assert preset.get_gateway_kwargs()["api_key"] == "sk-openai"


class TestConfigSave:
    def test_save_and_reload(self, isolated_config, tmp_dir):
        config = Config.load(str(tmp_dir))
        config.max_iterations = 9
        target = tmp_dir / "saved.yml"

        config.save(str(target))
        data = yaml.safe_load(target.read_text())

        assert data["max-iterations"] == 9
        assert data["models"]["claude-sonnet"]["api-key-env"] == "ANTHROPIC_API_KEY"
        assert "log-file" not in data

    def test_save_defaults_to_global_file(self, isolated_config, tmp_dir):
        config = Config.load(str(tmp_dir))
        config.save()

        assert (isolated_config / "config.yml").exists()
