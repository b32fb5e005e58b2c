"""Extractor -> Normalizer -> Applicator, as one pure step.

The session runs :func:`process_response` inside its single-writer queue;
nothing here touches shared state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .domain.applicator import IdFactory, apply_patch
from .domain.document import ResumeDocument, make_experience_id
from .domain.extractor import FailureCode, extract, strip_block
from .domain.normalizer import normalize
from .domain.patch import Patch


class IssueCode(str, Enum):
    """Non-fatal outcomes reported to the caller alongside the document."""

    NO_BLOCK_FOUND = "NO_BLOCK_FOUND"
    PARSE_ERROR = "PARSE_ERROR"
    DEGRADED_RECOVERY = "DEGRADED_RECOVERY"
    EMPTY_PATCH = "EMPTY_PATCH"


@dataclass
class PipelineIssue:
    code: IssueCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


@dataclass
class PipelineResult:
    """What one model response did to the document."""

    document: ResumeDocument
    message: str = ""
    patch: Optional[Patch] = None
    failure: Optional[FailureCode] = None
    issues: List[PipelineIssue] = field(default_factory=list)
    changed: bool = False
    strategy: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.patch is not None and self.failure is None

    @property
    def warnings(self) -> List[str]:
        """Human-readable notes for the UI layer."""
        return [issue.message for issue in self.issues]


def process_response(
    document: ResumeDocument,
    raw_text: str,
    id_factory: IdFactory = make_experience_id,
) -> PipelineResult:
    """Run *raw_text* through the whole pipeline against *document*.

    The returned ``message`` is the conversational part of the reply with
    the consumed block cut out. On failure the original document is
    returned unchanged and the applicator is never invoked.
    """
    raw_text = raw_text if isinstance(raw_text, str) else ""
    extraction = extract(raw_text)
    message = strip_block(raw_text, extraction)

    if not extraction.ok:
        failure = extraction.failure or FailureCode.NO_BLOCK_FOUND
        return PipelineResult(
            document=document,
            message=message,
            failure=failure,
            issues=[PipelineIssue(IssueCode(failure.value), failure.message)],
        )

    issues: List[PipelineIssue] = []
    if extraction.warning is not None:
        issues.append(PipelineIssue(IssueCode.DEGRADED_RECOVERY, extraction.warning.message))

    patch = normalize(extraction.data)
    if not patch.is_actionable():
        issues.append(PipelineIssue(IssueCode.EMPTY_PATCH, "structured block contained nothing to apply"))
        return PipelineResult(
            document=document,
            message=message,
            patch=patch,
            issues=issues,
            strategy=extraction.strategy,
        )

    updated = apply_patch(document, patch, id_factory=id_factory)
    return PipelineResult(
        document=updated,
        message=message,
        patch=patch,
        issues=issues,
        changed=updated != document,
        strategy=extraction.strategy,
    )


def apply_direct(
    document: ResumeDocument,
    patch: Patch,
    id_factory: IdFactory = make_experience_id,
) -> PipelineResult:
    """Apply an already-canonical patch (direct UI edits, local heuristics)."""
    updated = apply_patch(document, patch, id_factory=id_factory)
    return PipelineResult(document=updated, patch=patch, changed=updated != document)
