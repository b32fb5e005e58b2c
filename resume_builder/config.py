"""Configuration loading for the résumé builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from .domain.prompts import DEFAULT_HISTORY_WINDOW, DEFAULT_LANGUAGE, DEFAULT_SOURCE_CHAR_LIMIT
from .retry import RetryConfig

DEFAULT_CONFIG_PATH = "config/config.local.yaml"
BASE_CONFIG_PATH = "config/config.yaml"


@dataclass
class BuilderConfig:
    """Model and conversation settings."""

    api_key: str = ""
    provider: str = "gemini"
    model: str = "gemini-2.5-flash"
    api_base: str = ""  # Custom API endpoint (proxy)
    max_tokens: int = 4096
    temperature: float = 0.7
    language: str = DEFAULT_LANGUAGE
    history_window: int = DEFAULT_HISTORY_WINDOW
    source_char_limit: int = DEFAULT_SOURCE_CHAR_LIMIT
    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuilderConfig":
        retry_data = data.get("retry") or {}
        defaults = RetryConfig()
        return cls(
            api_key=data.get("api_key", "") or "",
            provider=data.get("provider", "gemini"),
            model=data.get("model", "gemini-2.5-flash"),
            api_base=data.get("api_base", "") or "",
            max_tokens=data.get("max_tokens", 4096),
            temperature=data.get("temperature", 0.7),
            language=data.get("language") or DEFAULT_LANGUAGE,
            history_window=data.get("history_window", DEFAULT_HISTORY_WINDOW),
            source_char_limit=data.get("source_char_limit", DEFAULT_SOURCE_CHAR_LIMIT),
            retry=RetryConfig(
                max_attempts=retry_data.get("max_attempts", defaults.max_attempts),
                base_delay=retry_data.get("base_delay", defaults.base_delay),
                max_delay=retry_data.get("max_delay", defaults.max_delay),
            ),
        )


def _resolve(candidate: str) -> Path:
    path = Path(candidate)
    if path.exists():
        return path
    alt = Path(__file__).resolve().parents[1] / candidate
    if alt.exists():
        return alt
    return path


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must be a mapping: {path}")
    return data


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(base_value, value)
        else:
            merged[key] = value
    return merged


def load_raw_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load the raw configuration mapping.

    The default local path is overlaid on ``config/config.yaml``; any other
    path is loaded as-is.
    """
    target = _resolve(config_path)

    if Path(config_path).name == Path(DEFAULT_CONFIG_PATH).name:
        merged = _deep_merge(_load_yaml(_resolve(BASE_CONFIG_PATH)), _load_yaml(target))
        if not merged:
            raise FileNotFoundError(f"Config file not found: {config_path} (also missing fallback {BASE_CONFIG_PATH})")
        return merged

    data = _load_yaml(target)
    if not data:
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return data


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> BuilderConfig:
    """Load :class:`BuilderConfig` from YAML."""
    return BuilderConfig.from_dict(load_raw_config(config_path))
