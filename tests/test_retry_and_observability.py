"""Test suite for retry, observability and the model client."""

import asyncio

import pytest

from resume_builder.llm import ModelCallError, ModelClient
from resume_builder.observability import PipelineObserver
from resume_builder.retry import (
    PermanentError,
    RetryConfig,
    TransientError,
    backoff_delay,
    is_transient_error,
    retry_with_backoff,
)


class TestRetryLogic:
    """Test exponential backoff retry logic."""

    @pytest.mark.asyncio
    async def test_retry_success_on_first_attempt(self):
        """Test successful execution on first attempt."""
        call_count = 0

        async def success_func():
            nonlocal call_count
            call_count += 1
            return "success"

        config = RetryConfig(max_attempts=3, base_delay=0.1)
        result = await retry_with_backoff(success_func, config)

        assert result == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_retry_success_after_failures(self):
        """Test successful execution after transient failures."""
        call_count = 0
        retries = []

        async def flaky_func():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise TransientError("Temporary failure")
            return "success"

        config = RetryConfig(max_attempts=5, base_delay=0.01)
        result = await retry_with_backoff(
            flaky_func, config, on_retry=lambda attempt, error, delay: retries.append(attempt)
        )

        assert result == "success"
        assert call_count == 3
        assert retries == [1, 2]

    @pytest.mark.asyncio
    async def test_unknown_error_becomes_permanent(self):
        """Errors that do not look transient fail fast."""
        call_count = 0

        async def bad_request():
            nonlocal call_count
            call_count += 1
            raise ValueError("invalid api key")

        with pytest.raises(PermanentError, match="invalid api key"):
            await retry_with_backoff(bad_request, RetryConfig(max_attempts=3, base_delay=0.01))

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_retry_max_attempts_exceeded(self):
        """Test that max attempts limit is respected."""
        call_count = 0

        async def always_fails():
            nonlocal call_count
            call_count += 1
            raise ConnectionError("connection reset by peer")

        with pytest.raises(ConnectionError):
            await retry_with_backoff(always_fails, RetryConfig(max_attempts=3, base_delay=0.01))

        assert call_count == 3

    @pytest.mark.asyncio
    async def test_cancellation_is_not_retried(self):
        call_count = 0

        async def cancelled():
            nonlocal call_count
            call_count += 1
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await retry_with_backoff(cancelled, RetryConfig(max_attempts=3, base_delay=0.01))

        assert call_count == 1

    def test_exponential_backoff_calculation(self):
        config = RetryConfig(base_delay=1.0, max_delay=5.0, exponential_base=2.0, jitter_factor=0.0)

        assert [backoff_delay(attempt, config) for attempt in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_jitter_stays_in_bounds(self):
        config = RetryConfig(base_delay=1.0, jitter_factor=0.2)

        for _ in range(50):
            assert 0.8 <= backoff_delay(0, config) <= 1.2

    def test_error_classification(self):
        assert is_transient_error(TimeoutError())
        assert is_transient_error(Exception("503 Service Unavailable"))
        assert is_transient_error(Exception("Rate limit reached"))
        assert not is_transient_error(Exception("400 bad request"))
        assert not is_transient_error(PermanentError("timeout"))


class TestObservability:
    """Test logging and session stats."""

    def test_observer_initialization(self):
        observer = PipelineObserver()

        assert observer.events == []
        assert observer.logger is not None

    def test_log_model_call(self):
        observer = PipelineObserver(session_id="abc")

        observer.log_model_call(model="gemini-2.5-flash", purpose="import", duration_ms=120.5, tokens=900)

        assert len(observer.events) == 1
        event = observer.events[0]
        assert event.event_type == "model_call"
        assert event.data["purpose"] == "import"
        assert event.duration_ms == 120.5
        assert event.tokens_used == 900

    def test_session_stats(self):
        observer = PipelineObserver()

        observer.log_model_call("model", "chat", 100.0, tokens=500)
        observer.log_model_call("model", "chat", 50.0, success=False)
        observer.log_extraction("tagged", None, None)
        observer.log_extraction("fenced", "recovered from code fence", None)
        observer.log_extraction(None, None, "NO_BLOCK_FOUND")
        observer.log_patch_applied("patch", changed=True)
        observer.log_error("model_call", "boom")

        stats = observer.get_session_stats()
        assert stats["event_count"] == 7
        assert stats["model_calls"] == 2
        assert stats["failed_model_calls"] == 1
        assert stats["total_model_ms"] == 150.0
        assert stats["total_tokens"] == 500
        assert stats["extraction_failures"] == 1
        assert stats["degraded_extractions"] == 1
        assert stats["patches_applied"] == 1
        assert stats["errors"] == 1

    def test_observer_clear(self):
        observer = PipelineObserver()

        observer.log_error("import", "Empty input")
        observer.clear()

        assert observer.events == []


class TestModelClient:
    @pytest.mark.asyncio
    async def test_call_returns_text_and_logs(self, make_client):
        client = make_client(["Hello there"])

        reply = await client.call("hi", purpose="chat")

        assert reply == "Hello there"
        stats = client.observer.get_session_stats()
        assert stats["model_calls"] == 1
        assert stats["total_tokens"] == 10

    @pytest.mark.asyncio
    async def test_empty_reply_raises(self, make_client):
        client = make_client(["   "])

        with pytest.raises(ModelCallError, match="Empty LLM response"):
            await client.call("hi")

        assert client.observer.get_session_stats()["failed_model_calls"] == 1

    @pytest.mark.asyncio
    async def test_provider_failure_is_wrapped(self, make_client):
        client = make_client([ValueError("invalid api key")])

        with pytest.raises(ModelCallError, match="invalid api key"):
            await client.call("hi")

        assert client.observer.get_session_stats()["errors"] == 1

    def test_default_observer_and_model_name(self):
        class Provider:
            model = "custom-model"

            async def generate(self, messages, config):
                raise NotImplementedError

        client = ModelClient(Provider())

        assert client.model == "custom-model"
        assert isinstance(client.observer, PipelineObserver)
