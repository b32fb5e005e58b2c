"""Tests for the conversation session and its single-writer queue."""

import asyncio

import pytest

from resume_builder.config import BuilderConfig
from resume_builder.domain.document import ResumeDocument
from resume_builder.domain.extractor import FailureCode
from resume_builder.domain.patch import Patch
from resume_builder.domain.prompts import CONTACT_FOLLOWUP_MESSAGE
from resume_builder.session import ResumeSession


def block(payload: str) -> str:
    return f"[RESUME_DATA]{payload}[/RESUME_DATA]"


@pytest.mark.asyncio
async def test_send_message_applies_reply(make_client, id_factory):
    client = make_client(["Added Go.\n" + block('{"skills": ["Go"]}')])

    async with ResumeSession(client, id_factory=id_factory) as session:
        result = await session.send_message("I know Go")

        assert result.changed
        assert result.failure is None
        assert result.message == "Added Go."
        assert session.document.skills == ["Go"]
        assert [(m.role, m.content) for m in session.history] == [("user", "I know Go"), ("assistant", "Added Go.")]


@pytest.mark.asyncio
async def test_reply_without_block_keeps_document(make_client):
    client = make_client(["Which company was that?"])

    async with ResumeSession(client, document=ResumeDocument(skills=["Go"])) as session:
        result = await session.send_message("I worked somewhere")

        assert result.failure == FailureCode.NO_BLOCK_FOUND
        assert result.error is None
        assert result.message == "Which company was that?"
        assert session.document.skills == ["Go"]


@pytest.mark.asyncio
async def test_model_failure_becomes_no_block_found(make_client):
    client = make_client([RuntimeError("invalid api key")])

    async with ResumeSession(client) as session:
        result = await session.send_message("hello")

        assert result.failure == FailureCode.NO_BLOCK_FOUND
        assert "invalid api key" in result.error
        assert session.document.is_empty()
        assert session.observer.get_session_stats()["failed_model_calls"] == 1


@pytest.mark.asyncio
async def test_transient_failure_is_retried(make_client):
    client = make_client([ConnectionError("connection reset"), block('{"summary": "Engineer."}')])

    async with ResumeSession(client) as session:
        result = await session.send_message("write my summary")

        assert result.changed
        assert session.document.summary == "Engineer."
        assert len(client.provider.prompts) == 2


@pytest.mark.asyncio
async def test_blank_message_is_not_sent(make_client):
    client = make_client([])

    async with ResumeSession(client) as session:
        result = await session.send_message("   ")

        assert result.message == ""
        assert client.provider.prompts == []
        assert session.history == []


@pytest.mark.asyncio
async def test_concurrent_replies_apply_in_completion_order(make_client, id_factory):
    client = make_client(
        [
            block('{"experience": {"company": "Slow Co"}, "summary": "from slow"}'),
            block('{"experience": {"company": "Fast Co"}, "summary": "from fast"}'),
        ],
        delays=[0.05, 0],
    )

    async with ResumeSession(client, id_factory=id_factory) as session:
        await asyncio.gather(session.send_message("first"), session.send_message("second"))

        doc = session.document
        assert [exp.company for exp in doc.experiences] == ["Fast Co", "Slow Co"]
        assert doc.summary == "from slow"


@pytest.mark.asyncio
async def test_history_feeds_the_next_prompt(make_client):
    client = make_client(["What was your role at Acme?", block('{"skills": ["Go"]}')])

    async with ResumeSession(client, config=BuilderConfig(language="French")) as session:
        await session.send_message("I worked at Acme")
        await session.send_message("Backend")

        second_prompt = client.provider.prompts[1]
        assert "CONVERSATION MEMORY" in second_prompt
        assert "What was your role at Acme?" in second_prompt
        assert "French" in second_prompt


@pytest.mark.asyncio
async def test_import_with_name_needs_no_followup(make_client):
    text = "Jane Doe\njane@example.com\n+1 415 555 0100\nBackend engineer at Acme"
    reply = block(
        '{"operation": "replace", "completeResume": {"contact": {"fullName": "Jane Doe", "title": "Engineer"},'
        ' "experiences": [{"company": "Acme", "title": "Backend engineer"}], "skills": ["Go"]}}'
    )
    client = make_client([reply])

    async with ResumeSession(client) as session:
        result = await session.import_text(text)

        assert result.ok
        assert not result.followup_scheduled
        assert result.document.contact.full_name == "Jane Doe"
        assert [exp.company for exp in result.document.experiences] == ["Acme"]
        assert "[SOURCE_RESUME_TEXT]" in client.provider.prompts[0]
        assert len(client.provider.prompts) == 1


@pytest.mark.asyncio
async def test_import_without_name_schedules_followup(make_client):
    text = "Worked at Acme on payments.\nSkills: Python, Go"
    client = make_client(
        [
            block('{"operation": "replace", "completeResume": {"experiences": [{"company": "Acme"}], "skills": ["Python"]}}'),
            block('{"contact": {"fullName": "Jane Doe", "title": "Engineer"}}'),
        ]
    )

    async with ResumeSession(client) as session:
        result = await session.import_text(text)
        assert result.ok
        assert result.followup_scheduled

        await session.drain()

        doc = session.document
        assert doc.contact.full_name == "Jane Doe"
        assert doc.contact.title == "Engineer"
        assert [exp.company for exp in doc.experiences] == ["Acme"]
        assert CONTACT_FOLLOWUP_MESSAGE in client.provider.prompts[1]
        assert session.history == []


@pytest.mark.asyncio
async def test_heuristic_contact_survives_replace_without_contact(make_client):
    text = "Jane Doe\njane@example.com\n+1 415 555 0100\nWorked at Acme"
    client = make_client([block('{"operation": "replace", "completeResume": {"experiences": [{"company": "Acme"}]}}')])

    async with ResumeSession(client) as session:
        result = await session.import_text(text)
        await session.drain()

        assert result.ok
        assert not result.followup_scheduled
        assert result.document.contact.email == "jane@example.com"
        doc = session.document
        assert doc.contact.full_name == "Jane Doe"
        assert doc.contact.email == "jane@example.com"
        assert doc.contact.phone == "+1 415 555 0100"
        assert [exp.company for exp in doc.experiences] == ["Acme"]
        assert len(client.provider.prompts) == 1


@pytest.mark.asyncio
async def test_model_contact_wins_over_heuristic(make_client):
    text = "Jane Doe\njane@example.com"
    reply = block('{"operation": "replace", "completeResume": {"contact": {"fullName": "Jane A. Doe"}}}')

    async with ResumeSession(make_client([reply])) as session:
        await session.import_text(text)

        assert session.document.contact.full_name == "Jane A. Doe"
        assert session.document.contact.email == "jane@example.com"


@pytest.mark.asyncio
async def test_heuristic_contact_survives_failed_import(make_client):
    client = make_client([RuntimeError("quota exhausted")])

    async with ResumeSession(client) as session:
        result = await session.import_text("Jane Doe\njane@example.com")

        assert not result.ok
        assert "quota exhausted" in result.error
        assert session.document.contact.full_name == "Jane Doe"
        assert session.document.contact.email == "jane@example.com"


@pytest.mark.asyncio
async def test_import_with_unusable_reply(make_client):
    client = make_client(["Sorry, I cannot read that file."])

    async with ResumeSession(client) as session:
        result = await session.import_text("Some text")

        assert not result.ok
        assert result.raw == "Sorry, I cannot read that file."
        assert result.error == FailureCode.NO_BLOCK_FOUND.message


@pytest.mark.asyncio
async def test_apply_direct_and_reset(make_client):
    client = make_client([])

    async with ResumeSession(client) as session:
        await session.apply_direct(Patch(skills=["Go", "go", "SQL"]))
        assert session.document.skills == ["Go", "SQL"]

        await session.reset()
        assert session.document.is_empty()
        assert session.observer.get_session_stats()["patches_applied"] == 2


@pytest.mark.asyncio
async def test_document_property_is_a_copy(make_client):
    client = make_client([])

    async with ResumeSession(client, document=ResumeDocument(skills=["Go"])) as session:
        session.document.skills.append("Mutated")

        assert session.document.skills == ["Go"]


@pytest.mark.asyncio
async def test_writes_without_explicit_start(make_client):
    session = ResumeSession(make_client([]))

    await session.apply_direct(Patch(summary="Auto-started"))
    assert session.document.summary == "Auto-started"

    await session.stop()
    assert session._worker_task is None
