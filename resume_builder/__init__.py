"""Conversational résumé builder: model replies in, résumé edits out."""

from .config import BuilderConfig, load_config, load_raw_config
from .llm import ModelCallError, ModelClient
from .observability import PipelineEvent, PipelineObserver
from .pipeline import IssueCode, PipelineIssue, PipelineResult, apply_direct, process_response
from .retry import PermanentError, RetryConfig, TransientError, is_transient_error, retry_with_backoff
from .session import ChatMessage, ImportResult, ResumeSession, TurnResult
from .snapshots import Snapshot, SnapshotStore

__version__ = "0.1.0"

__all__ = [
    "BuilderConfig",
    "ChatMessage",
    "ImportResult",
    "IssueCode",
    "ModelCallError",
    "ModelClient",
    "PermanentError",
    "PipelineEvent",
    "PipelineIssue",
    "PipelineObserver",
    "PipelineResult",
    "ResumeSession",
    "RetryConfig",
    "Snapshot",
    "SnapshotStore",
    "TransientError",
    "TurnResult",
    "apply_direct",
    "is_transient_error",
    "load_config",
    "load_raw_config",
    "process_response",
    "retry_with_backoff",
]
