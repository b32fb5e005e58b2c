"""Résumé Builder Domain - Pure logic for turning model output into résumé edits.

This package contains pure functions with no file system or LLM dependencies.
Model calls and document ownership live in the session layer; this package
operates on strings, dicts and document values.
"""

from .applicator import apply_patch, build_from_payload, merge_skills, upsert_experience
from .contact_extract import quick_extract_contact
from .document import Contact, Experience, ResumeDocument, make_experience_id
from .extractor import (
    END_MARKER,
    START_MARKER,
    ExtractionResult,
    FailureCode,
    WarningCode,
    extract,
    strip_block,
)
from .normalizer import normalize
from .patch import ExperiencePatch, Operation, Patch
from .plain_text import build_plain_text_resume
from .prompts import CONTACT_FOLLOWUP_MESSAGE, build_chat_prompt, build_import_prompt

__all__ = [
    # Document
    "ResumeDocument",
    "Experience",
    "Contact",
    "make_experience_id",
    # Extractor
    "extract",
    "strip_block",
    "ExtractionResult",
    "WarningCode",
    "FailureCode",
    "START_MARKER",
    "END_MARKER",
    # Normalizer
    "normalize",
    "Patch",
    "ExperiencePatch",
    "Operation",
    # Applicator
    "apply_patch",
    "build_from_payload",
    "upsert_experience",
    "merge_skills",
    # Import helpers
    "quick_extract_contact",
    # Prompts
    "build_plain_text_resume",
    "build_chat_prompt",
    "build_import_prompt",
    "CONTACT_FOLLOWUP_MESSAGE",
]
