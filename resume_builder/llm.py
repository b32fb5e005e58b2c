"""Model client - one prompt in, one raw text reply out."""

from __future__ import annotations

import time
from typing import Optional

from .config import BuilderConfig
from .observability import PipelineObserver
from .providers import ChatProvider, create_provider
from .providers.types import GenerationConfig, Message
from .retry import RetryConfig, retry_with_backoff


class ModelCallError(Exception):
    """The model could not produce a reply (timeout, network, auth, empty)."""


class ModelClient:
    """Wraps a provider with generation settings, retries and timing."""

    def __init__(
        self,
        provider: ChatProvider,
        generation: Optional[GenerationConfig] = None,
        retry: Optional[RetryConfig] = None,
        observer: Optional[PipelineObserver] = None,
    ):
        self.provider = provider
        self.generation = generation or GenerationConfig()
        self.retry = retry or RetryConfig()
        self.observer = observer or PipelineObserver()

    @classmethod
    def from_config(cls, config: BuilderConfig, observer: Optional[PipelineObserver] = None) -> "ModelClient":
        provider = create_provider(
            provider=config.provider,
            api_key=config.api_key,
            model=config.model,
            api_base=config.api_base,
        )
        return cls(
            provider=provider,
            generation=GenerationConfig(max_tokens=config.max_tokens, temperature=config.temperature),
            retry=config.retry,
            observer=observer,
        )

    @property
    def model(self) -> str:
        return getattr(self.provider, "model", "unknown")

    async def call(self, prompt: str, purpose: str = "chat") -> str:
        """Send *prompt* and return the raw reply text.

        Raises:
            ModelCallError: if every attempt failed or the reply was empty.
        """
        start = time.time()
        try:
            response = await retry_with_backoff(
                self.provider.generate,
                self.retry,
                [Message.user(prompt)],
                self.generation,
            )
        except Exception as e:
            duration_ms = (time.time() - start) * 1000
            self.observer.log_model_call(self.model, purpose, duration_ms, success=False)
            self.observer.log_error("model_call", str(e), {"purpose": purpose})
            raise ModelCallError(str(e)) from e

        duration_ms = (time.time() - start) * 1000
        tokens = (response.usage or {}).get("total_tokens")
        text = response.text or ""
        self.observer.log_model_call(self.model, purpose, duration_ms, tokens=tokens, success=bool(text.strip()))
        if not text.strip():
            raise ModelCallError("Empty LLM response")
        return text
