"""Turn the loosely shaped object a model emits into a canonical Patch.

Models drift between singular and plural keys, nest experiences inside
``work``/``education`` containers, and send descriptions as one long
string. Every variation is resolved here through explicit, ordered alias
tables, so the applicator only ever sees one shape.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from .document import CONTACT_FIELDS
from .patch import ExperiencePatch, Operation, Patch

# Where an experience may live, probed in order.
EXPERIENCE_CONTAINER_KEYS = ("experience", "experiences", "work", "education", "job", "role", "position")

EXPERIENCE_FIELD_ALIASES: Dict[str, Sequence[str]] = {
    "company": ("company", "companyName", "employer"),
    "title": ("title", "position"),
    "duration": ("duration", "period"),
}

LIST_FIELDS = {
    "skills": "skills",
    "removeSkills": "remove_skills",
    "removeExperiences": "remove_experiences",
    "clearSections": "clear_sections",
}

# Line breaks, bullets, semicolons, commas, and hyphens acting as separators
# (leading a line or standing between spaces; "Node.js-based" stays whole).
_DESCRIPTION_SPLIT_RE = re.compile(r"[\r\n•·;,]+|(?:^|\s)[-–—]+(?=\s|$)", re.MULTILINE)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize(generic: Any) -> Patch:
    """Build a :class:`Patch` from an extracted object.

    Never raises. Fields that cannot be resolved are left out, so an
    unusable input yields an inert ``Patch(operation=PATCH)``.
    """
    if not isinstance(generic, dict):
        return Patch()

    operation = resolve_operation(generic.get("operation"))
    patch = Patch(operation=operation)

    patch.experience = resolve_experience(generic)

    for wire_name, attr in LIST_FIELDS.items():
        value = generic.get(wire_name)
        if isinstance(value, list):
            setattr(patch, attr, list(value))

    summary = generic.get("summary")
    if isinstance(summary, str):
        patch.summary = summary

    complete = generic.get("completeResume")
    if operation == Operation.REPLACE and isinstance(complete, dict):
        patch.complete_resume = complete
        patch.experiences = resolve_payload_experiences(complete)

    patch.contact = resolve_contact(generic)
    return patch


def resolve_operation(value: Any) -> Operation:
    if value == Operation.REPLACE.value:
        return Operation.REPLACE
    if value == Operation.RESET.value:
        return Operation.RESET
    return Operation.PATCH


def resolve_experience(generic: Dict[str, Any]) -> Optional[ExperiencePatch]:
    """Find the experience payload; an array contributes its first object only."""
    item = _first_object(_first_present(generic, EXPERIENCE_CONTAINER_KEYS))

    # One level of wrapping, e.g. {"work": {"experience": [...]}}.
    if item is not None:
        nested = _first_present(item, EXPERIENCE_CONTAINER_KEYS, containers_only=True)
        if nested is not None:
            item = _first_object(nested)

    return normalize_experience(item) if item is not None else None


def resolve_payload_experiences(payload: Dict[str, Any]) -> Optional[List[ExperiencePatch]]:
    """Every experience of a ``completeResume`` payload, in order."""
    raw = payload.get("experiences")
    if raw is None:
        raw = payload.get("experience")
    items = _objects(raw)
    return [normalize_experience(item) for item in items] or None


def normalize_experience(source: Dict[str, Any]) -> ExperiencePatch:
    """Resolve field aliases on a single experience object."""
    exp = ExperiencePatch(
        company=_alias_string(source, EXPERIENCE_FIELD_ALIASES["company"]),
        title=_alias_string(source, EXPERIENCE_FIELD_ALIASES["title"]),
        duration=_alias_string(source, EXPERIENCE_FIELD_ALIASES["duration"]),
        description=coerce_description(source.get("description")),
    )
    raw_id = source.get("id")
    if isinstance(raw_id, (str, int)) and not isinstance(raw_id, bool) and str(raw_id).strip():
        exp.id = str(raw_id).strip()
    return exp


def coerce_description(value: Any) -> List[Any]:
    """Lists pass through; strings are split into trimmed bullet lines."""
    if isinstance(value, list):
        return list(value)
    if isinstance(value, str):
        pieces = (piece.strip() for piece in _DESCRIPTION_SPLIT_RE.split(value))
        return [piece for piece in pieces if piece]
    return []


def resolve_contact(generic: Dict[str, Any]) -> Optional[Dict[str, str]]:
    """Top-level ``contact`` wins; ``completeResume.contact`` is the fallback."""
    contact = generic.get("contact")
    if not isinstance(contact, dict):
        complete = generic.get("completeResume")
        contact = complete.get("contact") if isinstance(complete, dict) else None
    if not isinstance(contact, dict):
        return None

    cleaned: Dict[str, str] = {}
    for wire_name in CONTACT_FIELDS:
        value = contact.get(wire_name)
        if isinstance(value, str) and value.strip():
            cleaned[wire_name] = value.strip()
    return cleaned or None


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------


def _first_present(source: Dict[str, Any], keys: Sequence[str], containers_only: bool = False) -> Any:
    for key in keys:
        value = source.get(key)
        if value is None or value == "" or value is False:
            continue
        if containers_only and not isinstance(value, (dict, list)):
            continue
        return value
    return None


def _objects(value: Any) -> List[Dict[str, Any]]:
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return []


def _first_object(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else None


def _alias_string(source: Dict[str, Any], keys: Sequence[str]) -> str:
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    return ""
