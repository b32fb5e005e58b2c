"""Configuration validator for startup checks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from .providers import PROVIDER_DEFAULTS, resolve_api_key


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ConfigIssue:
    """A single configuration issue."""

    field: str
    message: str
    severity: Severity


def validate_config(raw_config: Dict[str, Any]) -> List[ConfigIssue]:
    """Validate raw configuration and return a list of issues.

    Args:
        raw_config: Raw config dict from YAML

    Returns:
        List of ConfigIssue (empty = valid)
    """
    issues: List[ConfigIssue] = []

    # --- Provider ---
    provider = str(raw_config.get("provider", "gemini") or "gemini").lower()
    if provider not in PROVIDER_DEFAULTS:
        issues.append(ConfigIssue(
            field="provider",
            message=f"provider must be one of {', '.join(sorted(PROVIDER_DEFAULTS))}, got {provider!r}",
            severity=Severity.ERROR,
        ))

    # --- API Key ---
    try:
        resolve_api_key(provider, raw_config.get("api_key", "") or "")
    except ValueError as e:
        issues.append(ConfigIssue(field="api_key", message=str(e), severity=Severity.ERROR))

    # --- Model ---
    model = raw_config.get("model", "")
    if not model or not isinstance(model, str):
        issues.append(ConfigIssue(
            field="model",
            message="model must be a non-empty string",
            severity=Severity.ERROR,
        ))

    # --- Temperature ---
    temperature = raw_config.get("temperature", 0.7)
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)) or not 0 <= temperature <= 2:
        issues.append(ConfigIssue(
            field="temperature",
            message=f"temperature must be a number between 0 and 2, got {temperature}",
            severity=Severity.ERROR,
        ))

    # --- Positive integers ---
    for name, default in (("max_tokens", 4096), ("history_window", 12), ("source_char_limit", 25000)):
        value = raw_config.get(name, default)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            issues.append(ConfigIssue(
                field=name,
                message=f"{name} must be a positive integer, got {value}",
                severity=Severity.ERROR,
            ))

    # --- Retry ---
    retry = raw_config.get("retry", {})
    if retry and not isinstance(retry, dict):
        issues.append(ConfigIssue(field="retry", message="retry must be a mapping", severity=Severity.ERROR))
    elif retry:
        attempts = retry.get("max_attempts", 3)
        if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 1:
            issues.append(ConfigIssue(
                field="retry.max_attempts",
                message=f"retry.max_attempts must be at least 1, got {attempts}",
                severity=Severity.ERROR,
            ))

    # --- Language ---
    language = raw_config.get("language", "English")
    if not isinstance(language, str) or not language.strip():
        issues.append(ConfigIssue(
            field="language",
            message="language is empty; free text will default to English",
            severity=Severity.WARNING,
        ))

    return issues


def has_errors(issues: List[ConfigIssue]) -> bool:
    """Check if any issues are errors (not just warnings)."""
    return any(e.severity == Severity.ERROR for e in issues)
