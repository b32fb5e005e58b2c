"""Locate the structured edit block embedded in model output.

Strategies run from most to least trustworthy; the first one that yields a
JSON object wins. Nothing here raises: failures come back as codes on the
:class:`ExtractionResult`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

START_MARKER = "[RESUME_DATA]"
END_MARKER = "[/RESUME_DATA]"

_TAGGED_RE = re.compile(r"\[RESUME_DATA\](.*?)\[/RESUME_DATA\]", re.IGNORECASE | re.DOTALL)
_START_RE = re.compile(r"\[RESUME_DATA\]", re.IGNORECASE)
_END_RE = re.compile(r"\[/RESUME_DATA\]", re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)
_BARE_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_SMART_QUOTES = {
    "“": '"',
    "”": '"',
    "„": '"',
    "‘": "'",
    "’": "'",
}


class WarningCode(str, Enum):
    """Attached to a successful parse obtained through a weaker strategy."""

    UNTERMINATED_BLOCK = "UNTERMINATED_BLOCK"
    FENCED_FALLBACK = "FENCED_FALLBACK"
    UNTAGGED_FALLBACK = "UNTAGGED_FALLBACK"

    @property
    def message(self) -> str:
        return _WARNING_MESSAGES[self]


class FailureCode(str, Enum):
    NO_BLOCK_FOUND = "NO_BLOCK_FOUND"
    PARSE_ERROR = "PARSE_ERROR"

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self]


_WARNING_MESSAGES = {
    WarningCode.UNTERMINATED_BLOCK: "recovered without closing marker",
    WarningCode.FENCED_FALLBACK: "used fenced fallback",
    WarningCode.UNTAGGED_FALLBACK: "untagged fallback, may be unreliable",
}
_FAILURE_MESSAGES = {
    FailureCode.NO_BLOCK_FOUND: "no structured block found",
    FailureCode.PARSE_ERROR: "structured block found but could not be parsed",
}


@dataclass
class ExtractionResult:
    """Outcome of :func:`extract`.

    ``span`` is the ``(start, end)`` slice of the raw text consumed by the
    winning strategy, markers included, so callers can cut the block out of
    the conversational reply.
    """

    data: Optional[Dict[str, Any]] = None
    warning: Optional[WarningCode] = None
    failure: Optional[FailureCode] = None
    strategy: Optional[str] = None
    span: Optional[Tuple[int, int]] = None

    @property
    def ok(self) -> bool:
        return self.data is not None


# A candidate is (text to parse, span in the raw input).
_Candidate = Tuple[str, Tuple[int, int]]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract(raw_text: str) -> ExtractionResult:
    """Recover the embedded edit object from *raw_text*."""
    if not isinstance(raw_text, str) or not raw_text.strip():
        return ExtractionResult(failure=FailureCode.NO_BLOCK_FOUND)

    text = raw_text.lstrip("\ufeff")
    offset = len(raw_text) - len(text)
    saw_candidate = False

    for name, finder, warning in _STRATEGIES:
        candidate = finder(text)
        if candidate is None:
            continue
        saw_candidate = True
        body, (start, end) = candidate
        data = parse_object(body)
        if data is not None:
            return ExtractionResult(
                data=data,
                warning=warning,
                strategy=name,
                span=(start + offset, end + offset),
            )

    failure = FailureCode.PARSE_ERROR if saw_candidate else FailureCode.NO_BLOCK_FOUND
    return ExtractionResult(failure=failure)


def parse_object(candidate: str) -> Optional[Dict[str, Any]]:
    """Parse *candidate* as a JSON object, retrying once after light repair."""
    for attempt in (candidate, recover_json_text(candidate)):
        try:
            value = json.loads(attempt)
        except (json.JSONDecodeError, TypeError):
            continue
        if isinstance(value, dict):
            return value
    return None


def recover_json_text(text: str) -> str:
    """Undo the usual damage: fences, smart quotes, trailing commas."""
    cleaned = text.strip().strip("`").strip()
    if cleaned[:4].lower() == "json" and cleaned[4:].lstrip().startswith("{"):
        cleaned = cleaned[4:].lstrip()
    for smart, plain in _SMART_QUOTES.items():
        cleaned = cleaned.replace(smart, plain)
    return _TRAILING_COMMA_RE.sub(r"\1", cleaned)


def strip_block(raw_text: str, result: ExtractionResult) -> str:
    """Return *raw_text* without the block consumed by *result*."""
    if not result.span:
        return raw_text.strip()
    start, end = result.span
    return (raw_text[:start].rstrip() + "\n" + raw_text[end:].lstrip()).strip()


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def _find_tagged(text: str) -> Optional[_Candidate]:
    match = _TAGGED_RE.search(text)
    if not match:
        return None
    return match.group(1), match.span()


def _find_unterminated(text: str) -> Optional[_Candidate]:
    start_match = _START_RE.search(text)
    if not start_match or _END_RE.search(text, start_match.end()):
        return None
    brace = text.find("{", start_match.end())
    if brace == -1:
        return None
    close = _balanced_end(text, brace)
    if close is None:
        return None
    return text[brace:close], (start_match.start(), close)


def _find_fenced(text: str) -> Optional[_Candidate]:
    match = _FENCE_RE.search(text)
    if not match:
        return None
    return match.group(1), match.span()


def _find_bare_object(text: str) -> Optional[_Candidate]:
    match = _BARE_OBJECT_RE.search(text)
    if not match:
        return None
    return match.group(0), match.span()


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index just past the ``}`` closing the brace at *start*.

    Plain depth counting: braces inside string literals are not expected
    in this format.
    """
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


_STRATEGIES: List[Tuple[str, Callable[[str], Optional[_Candidate]], Optional[WarningCode]]] = [
    ("tagged", _find_tagged, None),
    ("unterminated", _find_unterminated, WarningCode.UNTERMINATED_BLOCK),
    ("fenced", _find_fenced, WarningCode.FENCED_FALLBACK),
    ("bare_object", _find_bare_object, WarningCode.UNTAGGED_FALLBACK),
]
