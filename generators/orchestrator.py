"""Generation orchestrator.

Drives one session's catalog of content types:

run_primary (resume, awaited)
  → artifact stored, re-score fired in the background
  → enqueue_remaining: the other catalog entries staggered by fixed offsets
force_regenerate (any type, bypasses the skip-if-exists guard)

At most one job per content type is in flight; a second request for a
running type receives the in-flight task instead of a new remote call, unless
that task is a refinement, which is rejected with JobInProgress. All
state lives in the caller-owned `OrchestratorContext`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Mapping

from core.errors import JobInProgress, NotAuthorized, ParseError
from core.executor import RequestExecutor
from core.models import SUPPORTED_LANGUAGES, ContentType
from core.scheduler import ScheduledJob
from core.settings import GenerationSettings, get_generation_settings
from core.state_machine import JobStatus
from generators.catalog import (
    GENERATION_CATALOG,
    PRIMARY_CONTENT_TYPE,
    SECONDARY_CONTENT_TYPES,
    CatalogEntry,
    render_output,
)
from generators.score import ScoreEstimator, schedule_rescore
from generators.session import OrchestratorContext


logger = logging.getLogger(__name__)


def ensure_unlocked(ctx: OrchestratorContext) -> None:
    if not ctx.paid:
        raise NotAuthorized("Session is locked; payment has not been verified")
    if not ctx.profile_confirmed:
        raise NotAuthorized("Profile has not been confirmed by the user")


@dataclass(slots=True)
class GenerationOrchestrator:
    """Schedules and runs catalog jobs against an OrchestratorContext."""

    executor: RequestExecutor
    score_estimator: ScoreEstimator
    settings: GenerationSettings = field(default_factory=get_generation_settings)
    catalog: Mapping[ContentType, CatalogEntry] = field(default_factory=lambda: GENERATION_CATALOG)
    logger: logging.Logger = field(default_factory=lambda: logger)

    # ----- Job launch (single check-and-set per type) -----

    def _launch(self, ctx: OrchestratorContext, content_type: ContentType, *, force: bool) -> asyncio.Future[str]:
        ensure_unlocked(ctx)
        record = ctx.job(content_type)
        if record.in_flight:
            if record.kind == "refine":
                raise JobInProgress(f"A {content_type.value} refinement is still running")
            self.logger.info("generation.coalesced ct=%s", content_type.value)
            assert record.task is not None
            return record.task
        existing = ctx.store.get(content_type)
        if not force and (existing is not None or record.status is JobStatus.SUCCEEDED):
            self.logger.info("generation.skipped_existing ct=%s", content_type.value)
            done: asyncio.Future[str] = asyncio.get_running_loop().create_future()
            done.set_result(existing or "")
            return done
        self.logger.info("generation.job_started ct=%s force=%s", content_type.value, force)
        return ctx.run_job(content_type, lambda: self._generate(ctx, content_type))

    async def _generate(self, ctx: OrchestratorContext, content_type: ContentType) -> str:
        entry = self.catalog[content_type]
        request = entry.build_request(
            ctx.profile, ctx.requirement, ctx.options, ctx.analysis, ctx.attachment
        )
        response = await self.executor.execute(request, timeout=self.settings.request_timeout_seconds)
        artifact = render_output(entry, response)
        if not artifact.strip():
            raise ParseError(f"Empty {content_type.value} output from generation service")
        if content_type is PRIMARY_CONTENT_TYPE:
            schedule_rescore(ctx, self.score_estimator, artifact)
        return artifact

    # ----- Public operations -----

    async def run_primary(self, ctx: OrchestratorContext) -> str:
        """Generate the resume and wait for it; re-scoring continues in the background."""
        return await asyncio.shield(self._launch(ctx, PRIMARY_CONTENT_TYPE, force=True))

    def enqueue_remaining(self, ctx: OrchestratorContext, *, force: bool = False) -> asyncio.Task[None]:
        """Stagger the secondary catalog entries; returns the drain task."""
        ensure_unlocked(ctx)
        for position, content_type in enumerate(SECONDARY_CONTENT_TYPES):
            ctx.queue.push(content_type, self.settings.stagger_offset(position), ctx.token, force=force)
        if ctx.drain_task is None or ctx.drain_task.done():
            ctx.drain_task = ctx.spawn(
                ctx.queue.drain(lambda job: self._dispatch(ctx, job)), name="stagger-drain"
            )
        self.logger.info("generation.enqueued count=%d force=%s", len(SECONDARY_CONTENT_TYPES), force)
        return ctx.drain_task

    def _dispatch(self, ctx: OrchestratorContext, job: ScheduledJob) -> None:
        try:
            self._launch(ctx, job.content_type, force=job.force)
        except (NotAuthorized, JobInProgress) as exc:
            self.logger.warning("generation.dispatch_refused ct=%s reason=%s", job.content_type.value, exc)

    async def force_regenerate(self, ctx: OrchestratorContext, content_type: ContentType) -> str:
        """Regenerate one type regardless of any stored artifact.

        Joins a generation already running for the type; raises JobInProgress
        while a refinement of it is running.
        """
        return await asyncio.shield(self._launch(ctx, ContentType(content_type), force=True))

    async def generate_all(self, ctx: OrchestratorContext) -> asyncio.Task[None]:
        """Primary job first (its failure does not stop the rest), then the staggered jobs."""
        try:
            await self.run_primary(ctx)
        except NotAuthorized:
            raise
        except Exception as exc:
            self.logger.warning(
                "generation.primary_failed error_type=%s error=%s", type(exc).__name__, exc
            )
        return self.enqueue_remaining(ctx)

    async def reset_session(self, ctx: OrchestratorContext) -> None:
        """Cancel pending and in-flight work and drop every artifact."""
        await ctx.cancel_pending()
        ctx.store.clear()
        ctx.optimized_score = None
        for record in ctx.jobs():
            record.last_error = None
            record.machine.reset()
        self.logger.info("generation.session_reset")

    async def change_language(self, ctx: OrchestratorContext, language: str) -> asyncio.Task[None]:
        """Switch the output language, invalidating every artifact and regenerating."""
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language '{language}'")
        ensure_unlocked(ctx)
        await self.reset_session(ctx)
        ctx.options = ctx.options.model_copy(update={"language": language})
        self.logger.info("generation.language_changed language=%s", language)
        return await self.generate_all(ctx)
