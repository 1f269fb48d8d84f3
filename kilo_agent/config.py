"""
Configuration: model presets plus loop limits.

Loading priority:
  1. Project dir .kilo.yml
  2. Global ~/.kilo/config.yml
  3. Built-in defaults

``.env`` files in ~/.kilo and the project dir are loaded first (without
overriding variables already set), so API keys can live there.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml
from dotenv import load_dotenv

from .llm import DEFAULT_MODEL

CONFIG_DIR = Path.home() / ".kilo"
CONFIG_FILE = CONFIG_DIR / "config.yml"
HISTORY_FILE = CONFIG_DIR / "history.txt"
PROJECT_CONFIG_NAME = ".kilo.yml"

PROVIDERS = {"anthropic", "openai", "deepseek", "gemini", "local"}


# ── Configuration metadata and validation ──


@dataclass
class ConfigFieldSpec:
    """Configuration field definition with validation rules."""
    key: str
    field_name: str
    description: str
    value_type: str  # "str", "int", "bool"
    default: Any
    validator: Optional[Callable[[Any], tuple[bool, Any, str]]] = None  # (valid, coerced_value, error_msg)


def _validate_int_range(value: Any, min_val: int, max_val: int) -> tuple[bool, int, str]:
    """Validate integer within range."""
    if isinstance(value, bool):
        return False, min_val, "Must be an integer"
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return False, min_val, "Must be an integer"
    if parsed < min_val or parsed > max_val:
        return False, max(min_val, min(max_val, parsed)), f"Must be between {min_val} and {max_val}"
    return True, parsed, ""


def _validate_enum(value: Any, valid_values: set) -> tuple[bool, str, str]:
    """Validate value is in allowed set."""
    val_str = str(value).strip().lower()
    if val_str not in valid_values:
        return False, "", f"Must be one of: {', '.join(sorted(valid_values))}"
    return True, val_str, ""


def _validate_bool(value: Any) -> tuple[bool, bool, str]:
    """Validate boolean value."""
    if isinstance(value, bool):
        return True, value, ""
    if isinstance(value, str):
        val_lower = value.strip().lower()
        if val_lower in ("1", "true", "yes", "on"):
            return True, True, ""
        if val_lower in ("0", "false", "no", "off"):
            return True, False, ""
    return False, False, "Must be true/false, yes/no, on/off, or 1/0"


CONFIG_FIELDS: Dict[str, ConfigFieldSpec] = {
    "active-model": ConfigFieldSpec(
        key="active-model",
        field_name="active_model",
        description="Currently active model preset name",
        value_type="str",
        default="claude-sonnet",
        validator=None,  # Validated against available models separately
    ),
    "max-iterations": ConfigFieldSpec(
        key="max-iterations",
        field_name="max_iterations",
        description="Maximum tool round-trips per exchange",
        value_type="int",
        default=5,
        validator=lambda v: _validate_int_range(v, 1, 20),
    ),
    "tool-timeout": ConfigFieldSpec(
        key="tool-timeout",
        field_name="tool_timeout",
        description="Per-tool execution timeout in seconds",
        value_type="int",
        default=30,
        validator=lambda v: _validate_int_range(v, 1, 600),
    ),
    "exchange-timeout": ConfigFieldSpec(
        key="exchange-timeout",
        field_name="exchange_timeout",
        description="Deadline for one whole exchange in seconds",
        value_type="int",
        default=60,
        validator=lambda v: _validate_int_range(v, 5, 3600),
    ),
    "max-output-chars": ConfigFieldSpec(
        key="max-output-chars",
        field_name="max_output_chars",
        description="Tool output characters kept before truncation",
        value_type="int",
        default=5000,
        validator=lambda v: _validate_int_range(v, 500, 100000),
    ),
    "verbose": ConfigFieldSpec(
        key="verbose",
        field_name="verbose",
        description="Enable verbose debug output",
        value_type="bool",
        default=False,
        validator=_validate_bool,
    ),
    "log-file": ConfigFieldSpec(
        key="log-file",
        field_name="log_file",
        description="Log file path (empty disables file logging)",
        value_type="str",
        default=None,
        validator=None,
    ),
}


def validate_config_value(key: str, value: Any) -> tuple[bool, Any, str]:
    """
    Validate a configuration value.

    Returns:
        (is_valid, coerced_value, error_message)
    """
    if key not in CONFIG_FIELDS:
        return False, value, f"Unknown configuration key: {key}"

    spec = CONFIG_FIELDS[key]
    if spec.validator:
        return spec.validator(value)

    if spec.value_type == "str":
        return True, (None if value is None else str(value)), ""
    return True, value, ""


@dataclass
class ModelPreset:
    name: str
    provider: str
    model: str
    api_base: Optional[str] = None
    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    temperature: float = 0.0
    max_tokens: int = 1024
    description: str = ""

    def resolve_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        env_map = {
            "openai": "OPENAI_API_KEY", "anthropic": "ANTHROPIC_API_KEY",
            "deepseek": "DEEPSEEK_API_KEY", "gemini": "GEMINI_API_KEY",
        }
        env_var = env_map.get(self.provider)
        return os.environ.get(env_var) if env_var else None

    def get_gateway_kwargs(self) -> dict:
        """Return kwargs for the ModelGateway constructor; keys are passed directly, not via env vars."""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "api_base": self.api_base,
            "api_key": self.resolve_api_key(),
        }


@dataclass
class Config:
    active_model: str = "claude-sonnet"
    models: Dict[str, ModelPreset] = field(default_factory=dict)
    max_iterations: int = 5
    tool_timeout: int = 30
    exchange_timeout: int = 60
    max_output_chars: int = 5000
    verbose: bool = False
    log_file: Optional[str] = None
    project_root: Optional[str] = None
    _config_source: str = ""

    @classmethod
    def load(cls, project_dir: str = ".") -> "Config":
        config = cls()
        project_path = Path(project_dir).resolve()

        for env_path in [CONFIG_DIR / ".env", project_path / ".env"]:
            if env_path.exists():
                load_dotenv(env_path, override=False)

        for candidate in [project_path / PROJECT_CONFIG_NAME, CONFIG_FILE]:
            if candidate.exists():
                config._load_yaml(candidate)
                config._config_source = str(candidate)
                break

        if not config.models:
            config.models = cls.get_default_presets()

        config._apply_env()
        config.project_root = str(project_path)
        return config

    @classmethod
    def get_default_presets(cls) -> Dict[str, ModelPreset]:
        return {
            "claude-sonnet": ModelPreset(
                name="claude-sonnet", provider="anthropic",
                model=DEFAULT_MODEL,
                api_key_env="ANTHROPIC_API_KEY",
                description="Claude Sonnet 4 (Anthropic)",
            ),
            "gpt-4o-mini": ModelPreset(
                name="gpt-4o-mini", provider="openai",
                model="openai/gpt-4o-mini",
                api_key_env="OPENAI_API_KEY",
                description="GPT-4o mini (OpenAI)",
            ),
            "local": ModelPreset(
                name="local", provider="local", model="openai/model",
                api_base="http://localhost:8080/v1", api_key="not-needed",
                description="Local model (vLLM / llama.cpp on :8080)",
            ),
        }

    def _load_yaml(self, filepath: Path):
        with open(filepath) as f:
            data = yaml.safe_load(f) or {}

        self.active_model = str(data.get("active-model", self.active_model))
        for key, spec in CONFIG_FIELDS.items():
            if key == "active-model" or key not in data:
                continue
            _, value, _ = validate_config_value(key, data[key])
            setattr(self, spec.field_name, value)

        self.models = {}
        for name, m in (data.get("models") or {}).items():
            m = m or {}
            ok, provider, _ = _validate_enum(m.get("provider", "openai"), PROVIDERS)
            self.models[name] = ModelPreset(
                name=name, provider=provider if ok else "openai",
                model=m.get("model", "openai/gpt-4o-mini"),
                api_base=m.get("api-base"), api_key=m.get("api-key"),
                api_key_env=m.get("api-key-env"),
                temperature=m.get("temperature", 0.0),
                max_tokens=m.get("max-tokens", 1024),
                description=m.get("description", ""),
            )

    def _apply_env(self):
        env_map = {
            "KILO_MODEL": "active-model",
            "KILO_VERBOSE": "verbose",
            "KILO_MAX_ITERATIONS": "max-iterations",
        }
        for env_var, key in env_map.items():
            val = os.environ.get(env_var)
            if not val:
                continue
            ok, coerced, _ = validate_config_value(key, val)
            if ok:
                setattr(self, CONFIG_FIELDS[key].field_name, coerced)

    def save(self, filepath: Optional[str] = None):
        target = Path(filepath) if filepath else (
            Path(self._config_source) if self._config_source else CONFIG_FILE
        )
        target.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = {
            key: getattr(self, spec.field_name)
            for key, spec in CONFIG_FIELDS.items()
            if getattr(self, spec.field_name) is not None
        }
        data["models"] = {}
        for name, m in self.models.items():
            entry = {"provider": m.provider, "model": m.model,
                     "description": m.description, "temperature": m.temperature,
                     "max-tokens": m.max_tokens}
            if m.api_base:
                entry["api-base"] = m.api_base
            if m.api_key:
                entry["api-key"] = m.api_key
            if m.api_key_env:
                entry["api-key-env"] = m.api_key_env
            data["models"][name] = entry

        with open(target, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        self._config_source = str(target)

    def get_active_preset(self) -> ModelPreset:
        if self.active_model in self.models:
            return self.models[self.active_model]
        if self.models:
            return next(iter(self.models.values()))
        return self.get_default_presets()["claude-sonnet"]

    def summary(self) -> dict:
        p = self.get_active_preset()
        return {
            "Active model": f"{self.active_model} → {p.model}",
            "Provider": p.provider,
            "API base": p.api_base or "(provider default)",
            "API key": "set" if p.resolve_api_key() else "not set",
            "Max iterations": self.max_iterations,
            "Tool timeout": f"{self.tool_timeout}s",
            "Exchange timeout": f"{self.exchange_timeout}s",
            "Max output chars": self.max_output_chars,
            "Project": self.project_root,
            "Config": self._config_source or "(defaults)",
        }
