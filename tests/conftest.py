"""Global pytest fixtures for deterministic test environment."""

from __future__ import annotations

import asyncio
import itertools
from typing import Callable, List, Optional, Sequence, Union

import pytest

from resume_builder.llm import ModelClient
from resume_builder.observability import PipelineObserver
from resume_builder.providers.types import GenerationConfig, LLMResponse, Message
from resume_builder.retry import RetryConfig

PROVIDER_ENV_KEYS = (
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "GLM_API_KEY",
    "KIMI_API_KEY",
    "DEEPSEEK_API_KEY",
    "MINIMAX_API_KEY",
)


@pytest.fixture(autouse=True)
def _isolate_provider_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear provider keys that can leak into tests on developer machines."""
    for key in PROVIDER_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class FakeProvider:
    """Replays canned replies in call order.

    A reply that is an exception instance is raised instead of returned.
    ``delays`` holds per-call sleeps so tests can control completion order.
    """

    def __init__(
        self,
        replies: Sequence[Union[str, BaseException]],
        delays: Optional[Sequence[float]] = None,
        model: str = "fake-model",
    ):
        self.model = model
        self.replies = list(replies)
        self.delays = list(delays or [])
        self.prompts: List[str] = []

    async def generate(self, messages: List[Message], config: GenerationConfig) -> LLMResponse:
        self.prompts.append(messages[-1].text)
        delay = self.delays.pop(0) if self.delays else 0
        reply = self.replies.pop(0) if self.replies else ""
        if delay:
            await asyncio.sleep(delay)
        if isinstance(reply, BaseException):
            raise reply
        return LLMResponse(text=reply, usage={"total_tokens": 10})


@pytest.fixture
def make_client() -> Callable[..., ModelClient]:
    """Build a ModelClient around a FakeProvider with fast retries."""

    def _make(replies, delays=None) -> ModelClient:
        return ModelClient(
            FakeProvider(replies, delays=delays),
            retry=RetryConfig(max_attempts=2, base_delay=0.01, max_delay=0.02),
            observer=PipelineObserver(session_id="test"),
        )

    return _make


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Deterministic experience ids: exp_1, exp_2, ..."""
    counter = itertools.count(1)
    return lambda: f"exp_{next(counter)}"
