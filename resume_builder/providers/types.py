"""Provider-agnostic message types for text-only model calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class Message:
    """Provider-agnostic chat message."""

    role: str  # "user" | "assistant"
    text: str

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role="user", text=text)

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(role="assistant", text=text)


@dataclass
class GenerationConfig:
    """Common generation settings passed to providers."""

    system_prompt: str = ""
    max_tokens: int = 4096
    temperature: Optional[float] = 0.7


@dataclass
class LLMResponse:
    """Normalized response from a provider."""

    text: str = ""
    usage: Optional[Dict[str, int]] = None
    raw: Any = None
