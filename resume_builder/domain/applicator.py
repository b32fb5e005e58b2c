"""Apply a canonical Patch to a résumé document.

:func:`apply_patch` is total: it never raises and never mutates its input.
Fields it cannot act on are skipped, so a partially usable patch is
partially applied. Merge steps run in a fixed order (clears before
additions) which makes "clear then add" inside one patch well defined.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .document import CONTACT_FIELDS, Contact, Experience, ResumeDocument, make_experience_id, natural_key
from .normalizer import resolve_payload_experiences
from .patch import ExperiencePatch, Operation, Patch

IdFactory = Callable[[], str]

MAX_ID_ATTEMPTS = 16


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def apply_patch(
    document: ResumeDocument,
    patch: Optional[Patch],
    id_factory: IdFactory = make_experience_id,
) -> ResumeDocument:
    """Return the document that results from applying *patch* to *document*."""
    if not isinstance(patch, Patch):
        return document.copy()

    if patch.operation == Operation.RESET:
        return ResumeDocument.empty()

    if patch.operation == Operation.REPLACE and isinstance(patch.complete_resume, dict):
        return build_from_payload(patch.complete_resume, id_factory)

    # "patch", or "replace" without a payload, which degrades to a merge.
    doc = document.copy()
    _clear_sections(doc, patch.clear_sections)
    # ``experiences`` only describes a replace payload; merges take one entry.
    if isinstance(patch.experience, ExperiencePatch):
        upsert_experience(doc, patch.experience, id_factory)
    remove_experiences(doc, patch.remove_experiences or [])
    doc.skills = merge_skills(doc.skills, patch.skills or [])
    doc.skills = remove_skills(doc.skills, patch.remove_skills or [])
    if isinstance(patch.summary, str) and patch.summary.strip():
        doc.summary = patch.summary.strip()
    if patch.contact:
        _set_contact(doc.contact, patch.contact)
    return doc


def build_from_payload(payload: Dict[str, Any], id_factory: IdFactory = make_experience_id) -> ResumeDocument:
    """Build a fresh document from a ``completeResume`` payload.

    Sections missing from the payload come back empty; the payload is
    sanitized so the document invariants hold.
    """
    doc = ResumeDocument.empty()

    seen_ids: Set[str] = set()
    for incoming in resolve_payload_experiences(payload) or []:
        if not incoming.company:
            continue
        exp_id = incoming.id if incoming.id and incoming.id not in seen_ids else _fresh_id(doc, id_factory)
        seen_ids.add(exp_id)
        doc.experiences.append(
            Experience(
                id=exp_id,
                company=incoming.company,
                title=incoming.title,
                duration=incoming.duration,
                description=merge_lines([], incoming.description),
            )
        )

    skills = payload.get("skills")
    doc.skills = merge_skills([], skills if isinstance(skills, list) else [])

    summary = payload.get("summary")
    doc.summary = summary.strip() if isinstance(summary, str) else ""

    contact = payload.get("contact")
    if not isinstance(contact, dict):
        # Some payloads flatten the contact fields onto the résumé itself.
        contact = {name: payload.get(name) for name in CONTACT_FIELDS}
    doc.contact = Contact.from_dict(contact)
    return doc


def upsert_experience(
    doc: ResumeDocument,
    incoming: ExperiencePatch,
    id_factory: IdFactory = make_experience_id,
) -> Optional[Experience]:
    """Merge *incoming* into a matching entry or append it as a new one.

    Matching is by exact ``id`` first, then by case-insensitive company
    name. Returns the touched entry, or ``None`` when *incoming* has no
    company.
    """
    company = incoming.company.strip() if isinstance(incoming.company, str) else ""
    if not company:
        return None

    existing = None
    if incoming.id:
        existing = next((exp for exp in doc.experiences if exp.id and exp.id == incoming.id), None)
        if existing is not None:
            existing.company = company
    if existing is None:
        key = natural_key(company)
        existing = next((exp for exp in doc.experiences if natural_key(exp.company) == key), None)

    if existing is not None:
        if incoming.title.strip():
            existing.title = incoming.title.strip()
        if incoming.duration.strip():
            existing.duration = incoming.duration.strip()
        existing.description = merge_lines(existing.description, incoming.description)
        return existing

    created = Experience(
        id=_fresh_id(doc, id_factory),
        company=company,
        title=incoming.title.strip(),
        duration=incoming.duration.strip(),
        description=merge_lines([], incoming.description),
    )
    doc.experiences.append(created)
    return created


def remove_experiences(doc: ResumeDocument, keys: Iterable[Any]) -> None:
    """Drop every entry whose id or company name matches one of *keys*."""
    for key in keys:
        if not isinstance(key, str) or not key.strip():
            continue
        wanted = natural_key(key)
        doc.experiences = [
            exp for exp in doc.experiences if not (exp.id == key.strip() or natural_key(exp.company) == wanted)
        ]


def merge_skills(current: List[str], incoming: Iterable[Any]) -> List[str]:
    """Case-insensitive union keeping first-seen casing and order."""
    merged: List[str] = []
    seen: Set[str] = set()
    for skill in list(current) + list(incoming):
        if not isinstance(skill, str) or not skill.strip():
            continue
        key = natural_key(skill)
        if key in seen:
            continue
        seen.add(key)
        merged.append(skill.strip())
    return merged


def remove_skills(current: List[str], to_remove: Iterable[Any]) -> List[str]:
    doomed = {natural_key(skill) for skill in to_remove if isinstance(skill, str)}
    return [skill for skill in current if natural_key(skill) not in doomed]


def merge_lines(current: List[str], incoming: Iterable[Any]) -> List[str]:
    """Exact-string set union of description lines, existing order first."""
    merged: List[str] = []
    for line in list(current) + list(incoming):
        if not isinstance(line, str):
            continue
        line = line.strip()
        if line and line not in merged:
            merged.append(line)
    return merged


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _clear_sections(doc: ResumeDocument, sections: Optional[List[Any]]) -> None:
    for name in sections or []:
        if not isinstance(name, str):
            continue
        name = name.strip().lower()
        if name == "experiences":
            doc.experiences = []
        elif name == "skills":
            doc.skills = []
        elif name == "summary":
            doc.summary = ""


def _set_contact(contact: Contact, values: Dict[str, Any]) -> None:
    for wire_name, attr in CONTACT_FIELDS.items():
        value = values.get(wire_name)
        if isinstance(value, str) and value.strip():
            setattr(contact, attr, value.strip())


def _fresh_id(doc: ResumeDocument, id_factory: IdFactory) -> str:
    """Ask *id_factory* for an unused id; random ids only once it keeps colliding."""
    taken = {exp.id for exp in doc.experiences}
    for _ in range(MAX_ID_ATTEMPTS):
        new_id = id_factory()
        if new_id not in taken:
            return new_id
    new_id = make_experience_id()
    while new_id in taken:
        new_id = make_experience_id()
    return new_id
