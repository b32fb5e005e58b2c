"""Prompt builders for the résumé conversation and for plain-text import."""

from __future__ import annotations

from typing import Optional, Sequence

from .document import ResumeDocument
from .extractor import END_MARKER, START_MARKER
from .plain_text import build_plain_text_resume

DEFAULT_LANGUAGE = "English"
DEFAULT_HISTORY_WINDOW = 12
DEFAULT_SOURCE_CHAR_LIMIT = 25000

CONTACT_FOLLOWUP_MESSAGE = (
    "Please provide only a contact block with fullName and title if they are missing. "
    "Do not change any other section."
)

CHAT_PERSONA = """You are a career résumé improvement guide.
Your goal is to improve the current résumé step by step so it fits the target role as well as possible.

CURRENT RÉSUMÉ:
------------------
{resume_text}

TARGET JOB:
------------------
{target_job}"""

CHAT_RULES = f"""TAILORING GUIDELINES:
- Sharpen wording, add measurable outcomes, focus on impact and precise terminology.
- Keep names of technologies, libraries and companies exactly as written.
- Do not invent companies or technologies the user never mentioned unless asked to add them.
- Do not change existing dates without a reason.
- Make incremental changes: each reply changes only what the target role calls for right now.
- If you have no real improvement for a field, leave it out.

RESPONSE RULES:
- At most 6 lines of narrative before the data block.
- Ask ONE clarifying question if critical information is missing.
- ALWAYS include a {START_MARKER} block with "operation" ("patch" unless you send a full replacement or a reset).
- Provide only changed fields.
- Do not mention the target role title or company names from the job posting inside the summary or bullet
  descriptions. Company names only appear in the structured "company" field.
- Do not invent exact numbers the user did not give.

Supported fields: operation, experience, skills, removeSkills, removeExperiences,
clearSections (experiences | skills | summary), summary, completeResume, contact
(fullName, email, phone, location, title).

FORMAT EXAMPLE:
{START_MARKER}
{{
  "operation": "patch",
  "experience": {{
    "company": "Harvard University",
    "title": "BSc in Computer Science",
    "duration": "2021-2025",
    "description": ["Built CNN project achieving 99% MNIST accuracy"]
  }},
  "skills": ["Deep Learning", "CNN"],
  "summary": "Computer science graduate focused on ML."
}}
{END_MARKER}"""

LANGUAGE_RULES = """LANGUAGE:
- Write all free text (role descriptions, summary, clarifying questions) in {language}.
- Never translate company names, technologies, tool names or official degree titles.
- Keep skills in their usual form unless the user wrote them in {language} explicitly."""

IMPORT_PROMPT = f"""You convert résumé text (extracted from a file) into one structured result written in {{language}}.
Return ONLY a single {START_MARKER} block with:
operation = "replace"
completeResume.contact: {{{{ fullName, title, email, phone, location }}}}
completeResume.experiences: up to 6 entries; description: up to 4 short bullet points each.
completeResume.skills: a unique array (React, Node.js, AWS...).
completeResume.summary: 2-3 sentences, no extra personal or sensitive data.
contact.fullName is required; if it is not stated explicitly, infer it from the top line with 2-4 words and no digits.
Do not add any text outside the block. Keep company and technology names in their original language.

[SOURCE_RESUME_TEXT]
{{source}}
[/SOURCE_RESUME_TEXT]"""


def build_chat_prompt(
    document: ResumeDocument,
    message: str,
    target_job: Optional[str] = None,
    history: Sequence = (),
    language: str = DEFAULT_LANGUAGE,
    history_window: int = DEFAULT_HISTORY_WINDOW,
) -> str:
    """Full single-turn prompt: persona, memory, rules, then the user message.

    *history* holds objects with ``role`` ("user" | "assistant") and
    ``content`` attributes, oldest first.
    """
    parts = [
        CHAT_PERSONA.format(
            resume_text=build_plain_text_resume(document) or "(empty résumé)",
            target_job=(target_job or "").strip() or "(no job posting provided)",
        )
    ]

    memory = build_conversation_memory(history, history_window)
    if memory:
        parts.append(memory)
    parts.append(LANGUAGE_RULES.format(language=language))
    parts.append(CHAT_RULES)
    parts.append(
        f'User message (may be in any language; the output follows the language rules): "{message}"\n\n'
        f"Remember: always include a {START_MARKER} block, even for a single change."
    )
    return "\n\n".join(parts)


def build_conversation_memory(history: Sequence, window: int = DEFAULT_HISTORY_WINDOW) -> str:
    """Summarize the last *window* assistant questions and user answers."""
    if not history or window <= 0:
        return ""
    questions = [m.content for m in history if getattr(m, "role", "") == "assistant"][-window:]
    answers = [m.content for m in history if getattr(m, "role", "") == "user"][-window:]
    if not questions and not answers:
        return ""
    return "\n".join(
        [
            "CONVERSATION MEMORY:",
            f"Assistant questions: {' | '.join(questions)}",
            f"User answers: {' | '.join(answers)}",
        ]
    )


def build_import_prompt(
    raw_text: str,
    char_limit: int = DEFAULT_SOURCE_CHAR_LIMIT,
    language: str = DEFAULT_LANGUAGE,
) -> str:
    """Ask for a single ``replace`` block built from *raw_text*."""
    return IMPORT_PROMPT.format(source=(raw_text or "")[:char_limit], language=language)
