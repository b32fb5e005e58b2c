"""Render a document as the plain text the model is shown."""

from __future__ import annotations

from typing import List

from .document import ResumeDocument

MAX_BULLETS_PER_EXPERIENCE = 8


def build_plain_text_resume(doc: ResumeDocument) -> str:
    """Compact plain-text rendering: header, summary, experience, skills."""
    lines: List[str] = []

    name = doc.contact.full_name or ""
    title = doc.contact.title or ""
    if name or title:
        lines.append(f"{name} — {title}".strip(" —") if title else name)

    if doc.summary:
        lines.append("--- Summary ---")
        lines.append(doc.summary)

    if doc.experiences:
        lines.append("--- Experience ---")
        for index, exp in enumerate(doc.experiences, start=1):
            heading = f"{index}. {exp.company}"
            if exp.title:
                heading += f" – {exp.title}"
            if exp.duration:
                heading += f" ({exp.duration})"
            lines.append(heading)
            lines.extend(f"• {line}" for line in exp.description[:MAX_BULLETS_PER_EXPERIENCE])

    if doc.skills:
        lines.append("--- Skills ---")
        lines.append(", ".join(doc.skills))

    return "\n".join(lines)
