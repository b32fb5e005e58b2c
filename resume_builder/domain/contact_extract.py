"""Best-effort contact detection on raw résumé text.

Runs locally before the model sees an imported résumé so the header is
populated even when the model's block is unusable.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .document import Contact

EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
# Optional country code and area code, then digit groups split by spaces, dots or dashes.
PHONE_RE = re.compile(r"(?<![\w+])(?:\+\d{1,3}[-. ]?)?(?:\(\d{1,4}\)[-. ]?)?\d{1,4}(?:[-. ]?\d{1,4}){2,5}(?!\w)")
# One to four words of letters (any script), joined by spaces, hyphens or apostrophes.
NAME_RE = re.compile(r"^[^\W\d_]+(?:[ '\-][^\W\d_]{2,}){0,3}$")

_HEAD_LINES = 8
_MAX_NAME_LINE = 50
_MIN_PHONE_DIGITS = 9


def quick_extract_contact(text: str) -> Contact:
    """Pull e-mail, phone and full name out of the top of *text*."""
    if not text:
        return Contact()
    email = EMAIL_RE.search(text)
    return Contact(
        full_name=_guess_name(text),
        email=email.group(0) if email else None,
        phone=_find_phone(text),
    )


def _find_phone(text: str) -> Optional[str]:
    for match in PHONE_RE.finditer(text):
        candidate = match.group(0).strip()
        if sum(ch.isdigit() for ch in candidate) >= _MIN_PHONE_DIGITS:
            return candidate
    return None


def _guess_name(text: str) -> Optional[str]:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    head: List[str] = [line for line in lines[:_HEAD_LINES] if len(line) < _MAX_NAME_LINE]

    for line in head:
        if "@" not in line and len(line.split()) <= 4 and NAME_RE.match(line):
            return line
    for line in head:
        if not any(ch.isdigit() for ch in line) and len(line.split()) == 2:
            return line
    return None
