"""Caller-owned state for one generation session.

The context holds everything the orchestrator and refinement engine read or
write: the verified profile, requirement text and attachment, the unlocking
flags, the artifact store and one job record per content type. UI code
observes it through `subscribe` or by polling `snapshot`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Coroutine, Dict, Literal, Optional

from core.artifact_store import ArtifactStore, InMemoryArtifactStore
from core.errors import describe_error
from core.llm_client import Attachment
from core.models import AnalysisResult, ContactProfile, ContentType, GenerationOptions
from core.scheduler import CancellationToken, StaggerQueue
from core.state_machine import JobStateMachine, JobStatus


logger = logging.getLogger(__name__)

JobKind = Literal["generate", "refine"]


@dataclass(frozen=True, slots=True)
class JobSnapshot:
    content_type: ContentType
    status: JobStatus
    last_error: Optional[str]
    has_artifact: bool
    score: Optional[int] = None


@dataclass(slots=True)
class JobRecord:
    content_type: ContentType
    machine: JobStateMachine = field(default_factory=JobStateMachine)
    last_error: Optional[str] = None
    task: Optional[asyncio.Task[str]] = None
    kind: JobKind = "generate"

    @property
    def status(self) -> JobStatus:
        return self.machine.state

    @property
    def in_flight(self) -> bool:
        return self.status is JobStatus.RUNNING and self.task is not None and not self.task.done()


Listener = Callable[[JobSnapshot], None]


class OrchestratorContext:
    def __init__(
        self,
        analysis: AnalysisResult,
        requirement: str,
        attachment: Attachment | None = None,
        *,
        options: GenerationOptions | None = None,
        profile: ContactProfile | None = None,
        store: ArtifactStore | None = None,
        paid: bool = False,
        profile_confirmed: bool = False,
    ) -> None:
        self.analysis = analysis
        self.requirement = requirement
        self.attachment = attachment
        self.options = options or GenerationOptions()
        self.profile = profile or analysis.contact_profile
        self.store: ArtifactStore = store if store is not None else InMemoryArtifactStore()
        self.paid = paid
        self.profile_confirmed = profile_confirmed
        self.optimized_score: Optional[int] = None
        self.token = CancellationToken()
        self.queue = StaggerQueue()
        self.drain_task: Optional[asyncio.Task[None]] = None
        self.rescore_task: Optional[asyncio.Task[None]] = None
        self._jobs: Dict[ContentType, JobRecord] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._listeners: list[Listener] = []

    # ----- Unlocking -----

    def confirm_profile(self, profile: ContactProfile | None = None) -> None:
        if profile is not None:
            self.profile = profile
        self.profile_confirmed = True

    def mark_paid(self, paid: bool = True) -> None:
        self.paid = paid

    @property
    def unlocked(self) -> bool:
        return self.paid and self.profile_confirmed

    # ----- Jobs and views -----

    def job(self, content_type: ContentType) -> JobRecord:
        record = self._jobs.get(content_type)
        if record is None:
            record = JobRecord(
                content_type=content_type,
                machine=JobStateMachine(on_change=lambda _old, _new: self.notify(content_type)),
            )
            self._jobs[content_type] = record
        return record

    def jobs(self) -> list[JobRecord]:
        return list(self._jobs.values())

    def status(self, content_type: ContentType) -> JobStatus:
        record = self._jobs.get(content_type)
        return record.status if record else JobStatus.IDLE

    def artifact(self, content_type: ContentType) -> Optional[str]:
        return self.store.get(content_type)

    def snapshot_for(self, content_type: ContentType) -> JobSnapshot:
        record = self._jobs.get(content_type)
        return JobSnapshot(
            content_type=content_type,
            status=record.status if record else JobStatus.IDLE,
            last_error=record.last_error if record else None,
            has_artifact=self.store.get(content_type) is not None,
            score=self.optimized_score if content_type is ContentType.RESUME else None,
        )

    def snapshot(self) -> Dict[ContentType, JobSnapshot]:
        return {ct: self.snapshot_for(ct) for ct in ContentType}

    # ----- Observation -----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, content_type: ContentType) -> None:
        snap = self.snapshot_for(content_type)
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("session.listener_failed ct=%s", content_type.value)

    def set_score(self, score: int) -> None:
        self.optimized_score = score
        self.notify(ContentType.RESUME)

    # ----- Background work -----

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("session.task_failed name=%s error=%s", task.get_name(), exc)

    def run_job(
        self,
        content_type: ContentType,
        work: Callable[[], Awaitable[str]],
        kind: JobKind = "generate",
    ) -> asyncio.Task[str]:
        """Mark the job running and start `work`; its result replaces the stored artifact.

        The caller must have checked the job is not already in flight. A failure
        records the error and leaves any previous artifact in place.
        """
        record = self.job(content_type)
        record.machine.start()
        record.kind = kind
        task = self.spawn(self._job_body(record, work), name=f"job:{content_type.value}")
        record.task = task
        task.add_done_callback(lambda t: self._settle_cancelled(record, t))
        return task

    async def _job_body(self, record: JobRecord, work: Callable[[], Awaitable[str]]) -> str:
        try:
            artifact = await work()
        except Exception as exc:
            record.last_error = describe_error(exc)
            record.machine.fail()
            logger.warning(
                "generation.job_failed ct=%s error_type=%s error=%s",
                record.content_type.value,
                type(exc).__name__,
                exc,
            )
            raise
        self.store.put(record.content_type, artifact)
        record.last_error = None
        record.machine.succeed()
        logger.info("generation.job_succeeded ct=%s chars=%d", record.content_type.value, len(artifact))
        return artifact

    @staticmethod
    def _settle_cancelled(record: JobRecord, task: asyncio.Task[str]) -> None:
        if task.cancelled() and record.task is task and record.status is JobStatus.RUNNING:
            record.machine.cancel()

    async def cancel_pending(self) -> None:
        """Tear down the stagger queue and every in-flight task, then install a fresh token."""
        self.token.cancel()
        self.queue.clear()
        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        for record in self._jobs.values():
            if record.status is JobStatus.RUNNING and (record.task is None or record.task.done()):
                record.machine.cancel()
        self.drain_task = None
        self.rescore_task = None
        self.token = CancellationToken()

    async def wait_idle(self) -> None:
        """Wait until no background work (stagger loop, jobs, re-scoring) remains."""
        current = asyncio.current_task()
        while True:
            pending = [t for t in self._tasks if t is not current]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
