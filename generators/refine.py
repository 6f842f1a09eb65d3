"""Free-text and section-scoped refinement of an existing artifact.

The model always returns the full replacement document. Whether the
untouched sections of a section rewrite are reproduced verbatim depends on
the model; nothing here diffs the result against the original.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable

from core.config import get_model_for_tier
from core.errors import JobInProgress
from core.executor import RequestExecutor
from core.llm_client import GenerationRequest
from core.models import ContentType
from core.sanitize import sanitize_markdown
from core.settings import GenerationSettings, get_generation_settings
from generators.orchestrator import ensure_unlocked
from generators.score import ScoreEstimator, schedule_rescore
from generators.session import OrchestratorContext


logger = logging.getLogger(__name__)

REFINE_TEMPLATE = """
You are a professional career editor assistant.
CURRENT CONTENT: {content}
USER INSTRUCTION: "{instruction}"
CONTEXT: {context}...

Task: Rewrite content to satisfy user instruction.
Maintain Markdown structure.
Output ONLY the updated document.
"""

SECTION_TEMPLATE = """
You are an expert Resume Writer.

TASK: Regenerate ONLY the "{section}" section of the resume based on the instruction below.
Keep the rest of the resume exactly as is, including every other section header.

RESUME:
{content}

INSTRUCTION FOR {section}:
"{instruction}"

JOB DESCRIPTION CONTEXT:
{requirement}...

Output the FULL updated resume markdown.
"""

GENERIC_CONTEXT = "Professional Context"


class QuickAction(str, Enum):
    SHORTEN = "shorten"
    EXPAND = "expand"
    IMPROVE_CLARITY = "improve_clarity"
    ATS_OPTIMIZE = "ats_optimize"
    STRENGTHEN_IMPACT = "strengthen_impact"
    AUTO_QUANTIFY = "auto_quantify"

    @property
    def instruction(self) -> str:
        return QUICK_ACTION_INSTRUCTIONS[self]


QUICK_ACTION_INSTRUCTIONS: dict[QuickAction, str] = {
    QuickAction.SHORTEN: "Shorten this content by 20% while keeping key metrics.",
    QuickAction.EXPAND: "Expand on the key points with more professional detail.",
    QuickAction.IMPROVE_CLARITY: "Improve clarity and readability; simplify long sentences without losing facts.",
    QuickAction.ATS_OPTIMIZE: "Optimize for ATS parsing: standard section headers, job description keywords, no tables or graphics.",
    QuickAction.STRENGTHEN_IMPACT: "Strengthen impact: lead every bullet with a strong action verb and a concrete outcome.",
    QuickAction.AUTO_QUANTIFY: "Quantify achievements with plausible metrics (%, $, time saved, scale) where the text implies them.",
}


@dataclass(slots=True)
class RefinementEngine:
    """Applies instructions to artifacts through the executor and markdown sanitizer."""

    executor: RequestExecutor
    score_estimator: ScoreEstimator
    settings: GenerationSettings = field(default_factory=get_generation_settings)
    temperature: float = 0.7

    def _request(self, prompt: str) -> GenerationRequest:
        return GenerationRequest(
            model=get_model_for_tier("standard"),
            prompt=prompt,
            temperature=self.temperature,
        )

    async def _rewrite(self, current: str, prompt: str) -> str:
        response = await self.executor.execute(
            self._request(prompt), timeout=self.settings.request_timeout_seconds
        )
        return sanitize_markdown(response.text or current)

    async def refine(self, existing: str, instruction: str, context: str) -> str:
        prompt = REFINE_TEMPLATE.format(
            content=existing,
            instruction=instruction,
            context=context[: self.settings.refine_context_chars],
        )
        return await self._rewrite(existing, prompt)

    async def regenerate_section(
        self, existing: str, section: str, instruction: str, requirement: str
    ) -> str:
        prompt = SECTION_TEMPLATE.format(
            section=section,
            content=existing,
            instruction=instruction,
            requirement=requirement[: self.settings.refine_context_chars],
        )
        return await self._rewrite(existing, prompt)

    # ----- Session-aware variants (write back to the artifact store) -----

    def _begin(self, ctx: OrchestratorContext, content_type: ContentType) -> str:
        ensure_unlocked(ctx)
        existing = ctx.store.get(content_type)
        if existing is None:
            raise LookupError(f"No {content_type.value} artifact to refine")
        if ctx.job(content_type).in_flight:
            raise JobInProgress(f"A {content_type.value} job is already running")
        return existing

    async def _commit(
        self, ctx: OrchestratorContext, content_type: ContentType, rewrite: Callable[[], Awaitable[str]]
    ) -> str:
        async def work() -> str:
            artifact = await rewrite()
            if content_type is ContentType.RESUME:
                schedule_rescore(ctx, self.score_estimator, artifact)
            return artifact

        return await asyncio.shield(ctx.run_job(content_type, work, kind="refine"))

    async def refine_artifact(self, ctx: OrchestratorContext, content_type: ContentType, instruction: str) -> str:
        existing = self._begin(ctx, content_type)
        context = ctx.requirement if content_type is ContentType.RESUME else GENERIC_CONTEXT
        logger.info("refine.started ct=%s", content_type.value)
        return await self._commit(ctx, content_type, lambda: self.refine(existing, instruction, context))

    async def apply_quick_action(self, ctx: OrchestratorContext, content_type: ContentType, action: QuickAction) -> str:
        return await self.refine_artifact(ctx, content_type, QuickAction(action).instruction)

    async def regenerate_artifact_section(
        self,
        ctx: OrchestratorContext,
        content_type: ContentType,
        section: str,
        instruction: str,
    ) -> str:
        existing = self._begin(ctx, content_type)
        logger.info("refine.section_started ct=%s section=%s", content_type.value, section)
        return await self._commit(
            ctx,
            content_type,
            lambda: self.regenerate_section(existing, section, instruction, ctx.requirement),
        )
