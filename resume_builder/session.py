"""Conversation session - owns the résumé document and serializes every write.

Model calls run concurrently; the pipeline step that turns a reply into a
new document runs on a single writer task, one job at a time, in the order
replies arrive.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Set, Tuple

from .config import BuilderConfig
from .domain.applicator import IdFactory
from .domain.contact_extract import quick_extract_contact
from .domain.document import CONTACT_FIELDS, Contact, ResumeDocument, make_experience_id
from .domain.extractor import FailureCode
from .domain.patch import Operation, Patch
from .domain.prompts import CONTACT_FOLLOWUP_MESSAGE, build_chat_prompt, build_import_prompt
from .llm import ModelCallError, ModelClient
from .observability import PipelineObserver
from .pipeline import IssueCode, PipelineResult, apply_direct, process_response

logger = logging.getLogger(__name__)

WriteJob = Callable[[ResumeDocument], PipelineResult]


@dataclass
class ChatMessage:
    role: str  # "user" | "assistant"
    content: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class TurnResult:
    """Outcome of one chat turn, ready for display."""

    message: str
    document: ResumeDocument
    patch: Optional[Patch] = None
    warnings: List[str] = field(default_factory=list)
    failure: Optional[FailureCode] = None
    error: Optional[str] = None
    changed: bool = False


@dataclass
class ImportResult:
    ok: bool
    document: ResumeDocument
    patch: Optional[Patch] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None
    raw: Optional[str] = None
    followup_scheduled: bool = False


class ResumeSession:
    """One user's résumé plus the chat that edits it."""

    def __init__(
        self,
        client: ModelClient,
        config: Optional[BuilderConfig] = None,
        document: Optional[ResumeDocument] = None,
        observer: Optional[PipelineObserver] = None,
        id_factory: IdFactory = make_experience_id,
    ):
        self.client = client
        self.config = config or BuilderConfig()
        self.observer = observer or client.observer
        self.history: List[ChatMessage] = []
        self.target_job: Optional[str] = None
        self._document = document.copy() if document is not None else ResumeDocument.empty()
        self._id_factory = id_factory
        self._queue: asyncio.Queue[Optional[Tuple[WriteJob, asyncio.Future]]] = asyncio.Queue()
        self._worker_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    async def __aenter__(self) -> "ResumeSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        """Start the writer task."""
        if self._worker_task is None:
            self._worker_task = asyncio.create_task(self._run_writer())

    async def stop(self) -> None:
        """Finish background follow-ups, then stop the writer."""
        await self.drain()
        if self._worker_task:
            await self._queue.put(None)
            await self._worker_task
            self._worker_task = None

    @property
    def document(self) -> ResumeDocument:
        """A copy of the current document."""
        return self._document.copy()

    @property
    def pending_writes(self) -> int:
        return self._queue.qsize()

    def set_target_job(self, text: Optional[str]) -> None:
        self.target_job = (text or "").strip() or None

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def send_message(self, text: str, purpose: str = "chat") -> TurnResult:
        """Send one user message and merge whatever the model returns."""
        text = (text or "").strip()
        if not text:
            return TurnResult(message="", document=self.document)

        prompt = build_chat_prompt(
            self._document,
            text,
            target_job=self.target_job,
            history=list(self.history),
            language=self.config.language,
            history_window=self.config.history_window,
        )
        if purpose != "followup":
            self.history.append(ChatMessage(role="user", content=text))

        try:
            raw = await self.client.call(prompt, purpose=purpose)
        except ModelCallError as e:
            self.observer.log_extraction(None, None, FailureCode.NO_BLOCK_FOUND.value)
            return TurnResult(
                message=f"API Error: {e}",
                document=self.document,
                failure=FailureCode.NO_BLOCK_FOUND,
                error=str(e),
            )

        result = await self._submit(lambda doc: process_response(doc, raw, self._id_factory))
        self._report(result, source=purpose)
        if result.message:
            self.history.append(ChatMessage(role="assistant", content=result.message))

        return TurnResult(
            message=result.message,
            document=result.document.copy(),
            patch=result.patch,
            warnings=result.warnings,
            failure=result.failure,
            changed=result.changed,
        )

    async def import_text(self, raw_text: str) -> ImportResult:
        """Turn free résumé text into a document via a ``replace`` reply."""
        if not raw_text or not raw_text.strip():
            return ImportResult(ok=False, document=self.document, error="No text to import")

        heuristic = quick_extract_contact(raw_text)
        if not heuristic.is_empty():
            await self.apply_direct(Patch(contact=heuristic.to_dict()), source="heuristic")

        prompt = build_import_prompt(
            raw_text,
            char_limit=self.config.source_char_limit,
            language=self.config.language,
        )
        try:
            raw = await self.client.call(prompt, purpose="import")
        except ModelCallError as e:
            self.observer.log_error("import", str(e))
            return ImportResult(ok=False, document=self.document, error=str(e))

        result = await self._submit(lambda doc: process_response(doc, raw, self._id_factory))
        self._report(result, source="import")
        if not result.applied:
            error = result.failure.message if result.failure else "Import produced no résumé data"
            return ImportResult(
                ok=False,
                document=result.document.copy(),
                patch=result.patch,
                warnings=result.warnings,
                error=error,
                raw=raw,
            )

        # A replace payload rebuilds the contact; keep what the heuristic found.
        if not heuristic.is_empty():
            filled = await self._fill_missing_contact(heuristic)
            if filled.changed:
                result = dataclasses.replace(result, document=filled.document)

        followup = False
        patch_contact = result.patch.contact if result.patch else None
        if not (patch_contact or {}).get("fullName") and not self._document.contact.full_name:
            self._spawn(self.send_message(CONTACT_FOLLOWUP_MESSAGE, purpose="followup"))
            followup = True

        return ImportResult(
            ok=True,
            document=result.document.copy(),
            patch=result.patch,
            warnings=result.warnings,
            raw=raw,
            followup_scheduled=followup,
        )

    async def drain(self) -> None:
        """Wait for every background follow-up, including ones they spawn."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Direct edits
    # ------------------------------------------------------------------

    async def apply_direct(self, patch: Patch, source: str = "direct") -> PipelineResult:
        """Apply an already-canonical patch through the writer queue."""
        result = await self._submit(lambda doc: apply_direct(doc, patch, self._id_factory))
        self.observer.log_patch_applied(patch.operation.value, result.changed, source=source)
        return result

    async def reset(self) -> PipelineResult:
        return await self.apply_direct(Patch(operation=Operation.RESET), source="reset")

    async def _fill_missing_contact(self, contact: Contact) -> PipelineResult:
        """Set only the contact fields the document still lacks."""

        def job(doc: ResumeDocument) -> PipelineResult:
            missing = {
                wire_name: value
                for wire_name, value in contact.to_dict().items()
                if not getattr(doc.contact, CONTACT_FIELDS[wire_name])
            }
            return apply_direct(doc, Patch(contact=missing or None), self._id_factory)

        result = await self._submit(job)
        if result.changed:
            self.observer.log_patch_applied(Operation.PATCH.value, True, source="heuristic")
        return result

    # ------------------------------------------------------------------
    # Writer
    # ------------------------------------------------------------------

    async def _submit(self, job: WriteJob) -> PipelineResult:
        if self._worker_task is None:
            await self.start()
        future = asyncio.get_running_loop().create_future()
        await self._queue.put((job, future))
        return await future

    async def _run_writer(self) -> None:
        """Apply queued jobs in order."""
        while True:
            item = await self._queue.get()
            if item is None:
                self._queue.task_done()
                break
            job, future = item
            try:
                result = job(self._document)
            except Exception as e:
                logger.exception("Write job failed")
                if not future.done():
                    future.set_exception(e)
            else:
                # A caller that stopped waiting still gets its write applied.
                self._document = result.document
                if not future.done():
                    future.set_result(result)
            finally:
                self._queue.task_done()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.observer.log_error("followup", str(error))

    def _report(self, result: PipelineResult, source: str) -> None:
        warning = next(
            (issue.message for issue in result.issues if issue.code == IssueCode.DEGRADED_RECOVERY),
            None,
        )
        failure = result.failure.value if result.failure else None
        self.observer.log_extraction(result.strategy, warning, failure)
        if result.applied and result.patch is not None and result.patch.is_actionable():
            self.observer.log_patch_applied(result.patch.operation.value, result.changed, source=source)
