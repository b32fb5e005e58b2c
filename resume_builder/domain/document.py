"""Résumé document model.

The document is a plain value: the applicator builds a new one for every
patch, and the session decides which snapshot is authoritative.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# wire name -> attribute name
CONTACT_FIELDS = {
    "fullName": "full_name",
    "email": "email",
    "phone": "phone",
    "location": "location",
    "title": "title",
}
SECTION_NAMES = ("experiences", "skills", "summary")


def make_experience_id() -> str:
    """Create an opaque experience id."""
    return f"exp_{uuid.uuid4().hex[:10]}"


def natural_key(value: str) -> str:
    """Case-insensitive trimmed form used for company and skill matching."""
    return value.strip().casefold()


@dataclass
class Contact:
    """Contact header of the résumé. Absent fields are ``None``."""

    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        """Wire form (camelCase keys), absent fields omitted."""
        data = {}
        for wire_name, attr in CONTACT_FIELDS.items():
            value = getattr(self, attr)
            if value:
                data[wire_name] = value
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Contact":
        """Build from a wire mapping; non-string and blank values are dropped."""
        if not isinstance(data, dict):
            return cls()
        values = {}
        for wire_name, attr in CONTACT_FIELDS.items():
            value = data.get(wire_name)
            if isinstance(value, str) and value.strip():
                values[attr] = value.strip()
        return cls(**values)

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass
class Experience:
    """One position on the résumé."""

    id: str
    company: str
    title: str = ""
    duration: str = ""
    description: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company": self.company,
            "title": self.title,
            "duration": self.duration,
            "description": list(self.description),
        }


@dataclass
class ResumeDocument:
    """Authoritative résumé state for one session."""

    contact: Contact = field(default_factory=Contact)
    summary: str = ""
    experiences: List[Experience] = field(default_factory=list)
    skills: List[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "ResumeDocument":
        return cls()

    def copy(self) -> "ResumeDocument":
        return copy.deepcopy(self)

    def is_empty(self) -> bool:
        return self == ResumeDocument.empty()

    def find_experience(self, key: str) -> Optional[Experience]:
        """Find an experience by id, then by case-insensitive company name."""
        for exp in self.experiences:
            if exp.id == key:
                return exp
        wanted = natural_key(key)
        for exp in self.experiences:
            if natural_key(exp.company) == wanted:
                return exp
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contact": self.contact.to_dict(),
            "summary": self.summary,
            "experiences": [exp.to_dict() for exp in self.experiences],
            "skills": list(self.skills),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResumeDocument":
        """Rebuild a document saved with :meth:`to_dict`.

        Input is trusted (it was produced by this package); use a
        ``replace`` patch to ingest untrusted payloads.
        """
        experiences = [
            Experience(
                id=item["id"],
                company=item["company"],
                title=item.get("title", ""),
                duration=item.get("duration", ""),
                description=list(item.get("description", [])),
            )
            for item in data.get("experiences", [])
        ]
        return cls(
            contact=Contact.from_dict(data.get("contact", {})),
            summary=data.get("summary", ""),
            experiences=experiences,
            skills=list(data.get("skills", [])),
        )
