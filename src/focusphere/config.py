"""Assistant configuration loader.

Loads assistant configuration from a YAML file with safe defaults and
environment-variable overrides.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

SUPPORTED_LLM_PROVIDERS = ("stub", "openai")


@dataclass(frozen=True)
class AssistantConfig:
    """Tunables for the chat action pipeline."""

    pending_ttl_seconds: int = 300
    sweep_interval_seconds: int = 60
    max_confirmation_length: int = 50
    destructive_confirm_threshold: int = 5
    destructive_confirm_token: str = "DELETE"
    llm_provider: str = "stub"
    llm_model: str = "gpt-4o-mini"
    llm_fallback_models: tuple[str, ...] = field(default_factory=tuple)
    llm_temperature: float = 0.3
    llm_timeout_seconds: float = 30.0
    history_limit: int = 5
    task_context_limit: int = 10
    goal_context_limit: int = 5


_POSITIVE_INT_FIELDS = (
    "pending_ttl_seconds",
    "sweep_interval_seconds",
    "max_confirmation_length",
)
_NON_NEGATIVE_INT_FIELDS = (
    "destructive_confirm_threshold",
    "history_limit",
    "task_context_limit",
    "goal_context_limit",
)


def parse_config(data: dict[str, Any]) -> AssistantConfig:
    """Parse a configuration dictionary into an AssistantConfig.

    Unknown keys are ignored; missing keys take their defaults.

    Args:
        data: Dictionary containing assistant configuration.

    Returns:
        AssistantConfig with parsed values.

    Raises:
        ValueError: If a field has the wrong type or an out-of-range value.
    """
    defaults = AssistantConfig()
    values: dict[str, Any] = {}

    for name in _POSITIVE_INT_FIELDS:
        value = data.get(name, getattr(defaults, name))
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Field '{name}' must be an integer")
        if value <= 0:
            raise ValueError(f"Field '{name}' must be positive")
        values[name] = value

    for name in _NON_NEGATIVE_INT_FIELDS:
        value = data.get(name, getattr(defaults, name))
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Field '{name}' must be an integer")
        if value < 0:
            raise ValueError(f"Field '{name}' must be non-negative")
        values[name] = value

    token = data.get("destructive_confirm_token", defaults.destructive_confirm_token)
    if not isinstance(token, str) or not token.strip():
        raise ValueError("Field 'destructive_confirm_token' must be a non-empty string")
    values["destructive_confirm_token"] = token.strip()

    provider = data.get("llm_provider", defaults.llm_provider)
    if not isinstance(provider, str) or provider.lower() not in SUPPORTED_LLM_PROVIDERS:
        raise ValueError(
            f"Field 'llm_provider' must be one of: {', '.join(SUPPORTED_LLM_PROVIDERS)}"
        )
    values["llm_provider"] = provider.lower()

    model = data.get("llm_model", defaults.llm_model)
    if not isinstance(model, str) or not model:
        raise ValueError("Field 'llm_model' must be a non-empty string")
    values["llm_model"] = model

    fallbacks = data.get("llm_fallback_models", list(defaults.llm_fallback_models))
    if not isinstance(fallbacks, list) or not all(isinstance(m, str) for m in fallbacks):
        raise ValueError("Field 'llm_fallback_models' must be a list of strings")
    values["llm_fallback_models"] = tuple(fallbacks)

    for name in ("llm_temperature", "llm_timeout_seconds"):
        value = data.get(name, getattr(defaults, name))
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ValueError(f"Field '{name}' must be a number")
        values[name] = float(value)

    if values["llm_timeout_seconds"] <= 0:
        raise ValueError("Field 'llm_timeout_seconds' must be positive")

    return AssistantConfig(**values)


def _apply_env_overrides(config: AssistantConfig) -> AssistantConfig:
    """Apply FOCUSPHERE_* environment overrides on top of a loaded config.

    Raises:
        ValueError: If a numeric override is not a valid positive integer.
    """
    overrides: dict[str, Any] = {}

    provider = os.environ.get("FOCUSPHERE_LLM_PROVIDER")
    if provider:
        if provider.lower() not in SUPPORTED_LLM_PROVIDERS:
            raise ValueError(f"Unsupported FOCUSPHERE_LLM_PROVIDER: {provider}")
        overrides["llm_provider"] = provider.lower()

    model = os.environ.get("FOCUSPHERE_LLM_MODEL")
    if model:
        overrides["llm_model"] = model

    ttl = os.environ.get("FOCUSPHERE_PENDING_TTL_SECONDS")
    if ttl:
        try:
            ttl_seconds = int(ttl)
        except ValueError as e:
            raise ValueError(f"FOCUSPHERE_PENDING_TTL_SECONDS must be an integer: {ttl}") from e
        if ttl_seconds <= 0:
            raise ValueError("FOCUSPHERE_PENDING_TTL_SECONDS must be positive")
        overrides["pending_ttl_seconds"] = ttl_seconds

    return replace(config, **overrides) if overrides else config


def load_config(config_path: str | None = None) -> AssistantConfig:
    """Load assistant configuration from YAML file.

    Args:
        config_path: Path to the configuration YAML file. If None, uses
                    FOCUSPHERE_CONFIG_PATH or config/assistant.yaml.

    Returns:
        AssistantConfig. If the file is missing or invalid, defaults are used
        (environment overrides still apply).
    """
    if config_path is None:
        config_path = os.environ.get("FOCUSPHERE_CONFIG_PATH")
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = os.path.join(project_root, "config", "assistant.yaml")

    config = AssistantConfig()

    if os.path.exists(config_path):
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}

            if not isinstance(data, dict):
                raise ValueError("Config file must contain a YAML dictionary")

            section = data.get("assistant", data)
            if section is None:
                section = {}
            if not isinstance(section, dict):
                raise ValueError("The assistant section must be a YAML dictionary")

            config = parse_config(section)
        except (yaml.YAMLError, ValueError, OSError) as e:
            logger.warning("Failed to load assistant config from %s: %s", config_path, e)
            logger.warning("Using default assistant configuration")
            config = AssistantConfig()

    return _apply_env_overrides(config)


# Cache the loaded configuration
_cached_config: AssistantConfig | None = None


def get_config(config_path: str | None = None) -> AssistantConfig:
    """Get the assistant configuration (cached)."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config(config_path)
    return _cached_config


def clear_config_cache() -> None:
    """Clear the cached configuration.

    Used primarily for testing to ensure clean state between tests.
    """
    global _cached_config
    _cached_config = None
