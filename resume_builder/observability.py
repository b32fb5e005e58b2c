"""Observability for the conversation pipeline - logging and session stats."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

LOGGER_NAME = "resume_builder"


@dataclass
class PipelineEvent:
    """A single event in a résumé-building session."""

    timestamp: datetime
    event_type: str  # "model_call", "extraction", "patch_applied", "error"
    data: Dict[str, Any]
    duration_ms: Optional[float] = None
    tokens_used: Optional[int] = None


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach the console handler once and set the level."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
    return logger


class PipelineObserver:
    """
    Records what each model turn did to the document.

    The pure pipeline never logs; the session reports its results here.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.events: List[PipelineEvent] = []
        self.logger = logging.getLogger(LOGGER_NAME)
        self.session_id = session_id

    def _prefix(self) -> str:
        return f"[{self.session_id}] " if self.session_id else ""

    def _record(self, event_type: str, data: Dict[str, Any], **extra: Any) -> PipelineEvent:
        event = PipelineEvent(timestamp=datetime.now(), event_type=event_type, data=data, **extra)
        self.events.append(event)
        return event

    def log_model_call(
        self,
        model: str,
        purpose: str,
        duration_ms: float,
        tokens: Optional[int] = None,
        success: bool = True,
    ):
        """
        Log one call to the generative model.

        Args:
            model: Model name (e.g., "gemini-2.5-flash")
            purpose: "chat", "import" or "followup"
            duration_ms: Request duration in milliseconds
            tokens: Total tokens reported by the provider, if any
            success: Whether a response text came back
        """
        self._record(
            "model_call",
            {"model": model, "purpose": purpose, "success": success},
            duration_ms=duration_ms,
            tokens_used=tokens,
        )
        status = "ok" if success else "failed"
        self.logger.info(f"{self._prefix()}Model {model} ({purpose}) {status} in {duration_ms:.2f}ms")

    def log_extraction(self, strategy: Optional[str], warning: Optional[str], failure: Optional[str]):
        self._record("extraction", {"strategy": strategy, "warning": warning, "failure": failure})
        if failure:
            self.logger.warning(f"{self._prefix()}No usable block: {failure}")
        elif warning:
            self.logger.warning(f"{self._prefix()}Block recovered via {strategy}: {warning}")
        else:
            self.logger.info(f"{self._prefix()}Block extracted via {strategy}")

    def log_patch_applied(self, operation: str, changed: bool, source: str = "model"):
        self._record("patch_applied", {"operation": operation, "changed": changed, "source": source})
        self.logger.info(f"{self._prefix()}Applied {operation} patch from {source} (changed={changed})")

    def log_error(self, error_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        """
        Log an error event.

        Args:
            error_type: Type of error (e.g., "model_call", "import")
            message: Error message
            context: Additional context about the error
        """
        self._record("error", {"error_type": error_type, "message": message, "context": context or {}})
        self.logger.error(f"{self._prefix()}Error ({error_type}): {message}")

    def get_session_stats(self) -> Dict[str, Any]:
        """Aggregate counts and timings for the session so far."""
        model_calls = [e for e in self.events if e.event_type == "model_call"]
        extractions = [e for e in self.events if e.event_type == "extraction"]
        applied = [e for e in self.events if e.event_type == "patch_applied"]
        errors = [e for e in self.events if e.event_type == "error"]

        return {
            "event_count": len(self.events),
            "model_calls": len(model_calls),
            "failed_model_calls": sum(1 for e in model_calls if not e.data.get("success")),
            "total_model_ms": sum(e.duration_ms or 0 for e in model_calls),
            "total_tokens": sum(e.tokens_used or 0 for e in model_calls),
            "extraction_failures": sum(1 for e in extractions if e.data.get("failure")),
            "degraded_extractions": sum(1 for e in extractions if e.data.get("warning")),
            "patches_applied": len(applied),
            "errors": len(errors),
        }

    def clear(self):
        """Clear all recorded events."""
        self.events.clear()
