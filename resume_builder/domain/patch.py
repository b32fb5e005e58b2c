"""Canonical patch representation produced by the normalizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Operation(str, Enum):
    """Whole-document behavior selected by a patch."""

    PATCH = "patch"
    REPLACE = "replace"
    RESET = "reset"


@dataclass
class ExperiencePatch:
    """Incoming experience after alias resolution.

    ``description`` is whatever list the model sent (or the split form of a
    string); the applicator drops non-string and blank lines.
    """

    company: str = ""
    title: str = ""
    duration: str = ""
    description: List[Any] = field(default_factory=list)
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "company": self.company,
            "title": self.title,
            "duration": self.duration,
            "description": list(self.description),
        }
        if self.id:
            data["id"] = self.id
        return data


@dataclass
class Patch:
    """Normalized edit instruction. ``None`` means the field was absent.

    ``experience`` is the single entry a merge upserts. ``experiences`` is
    only filled from a ``replace`` payload and lists what it rebuilds.
    """

    operation: Operation = Operation.PATCH
    experience: Optional[ExperiencePatch] = None
    experiences: Optional[List[ExperiencePatch]] = None
    skills: Optional[List[Any]] = None
    remove_skills: Optional[List[Any]] = None
    remove_experiences: Optional[List[Any]] = None
    clear_sections: Optional[List[Any]] = None
    summary: Optional[str] = None
    complete_resume: Optional[Dict[str, Any]] = None
    contact: Optional[Dict[str, str]] = None

    def is_actionable(self) -> bool:
        """Whether applying this patch can change anything at all."""
        if self.operation == Operation.RESET:
            return True
        if self.operation == Operation.REPLACE and self.complete_resume is not None:
            return True
        return bool(
            (self.experience and self.experience.company.strip())
            or self.experiences
            or self.skills
            or self.remove_skills
            or self.remove_experiences
            or self.clear_sections
            or (self.summary and self.summary.strip())
            or self.contact
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire-shaped view (camelCase keys), absent fields omitted."""
        data: Dict[str, Any] = {"operation": self.operation.value}
        if self.experience is not None:
            data["experience"] = self.experience.to_dict()
        if self.experiences is not None:
            data["experiences"] = [exp.to_dict() for exp in self.experiences]
        optional = {
            "skills": self.skills,
            "removeSkills": self.remove_skills,
            "removeExperiences": self.remove_experiences,
            "clearSections": self.clear_sections,
            "summary": self.summary,
            "completeResume": self.complete_resume,
            "contact": self.contact,
        }
        for key, value in optional.items():
            if value is not None:
                data[key] = value
        return data
