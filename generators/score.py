"""Advisory keyword-overlap score for a generated resume."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.config import get_model_for_tier
from core.errors import ParseError
from core.executor import RequestExecutor
from core.llm_client import GenerationRequest, OutputMode
from core.models import ScoreResult
from core.sanitize import parse_json_object, sanitize_json
from core.settings import GenerationSettings, get_generation_settings

if TYPE_CHECKING:
    from generators.session import OrchestratorContext


logger = logging.getLogger(__name__)

SCORE_PROMPT_TEMPLATE = """
Act as a rigid, mathematical ATS algorithm.
Compare the RESUME below against the JOB DESCRIPTION.

RESUME:
{resume}

JOB DESCRIPTION:
{requirement}

TASK: Calculate the RELEVANCE score.
1. Extract the top 20 hard skills/keywords from the JD.
2. Count how many appear in the Resume.
3. Score = (Matches / Total Keywords) * 100.

Output strictly valid JSON:
{{ "score": number }}
"""


def clamp_score(value: float) -> int:
    if not math.isfinite(value):
        return 0
    return max(0, min(100, int(round(value))))


@dataclass(slots=True)
class ScoreEstimator:
    """Display-only re-scoring; never raises, returns 0 on any failure."""

    executor: RequestExecutor
    settings: GenerationSettings = field(default_factory=get_generation_settings)
    model: str | None = None

    def build_request(self, document: str, requirement: str) -> GenerationRequest:
        prompt = SCORE_PROMPT_TEMPLATE.format(
            resume=document[: self.settings.score_resume_chars],
            requirement=requirement[: self.settings.score_requirement_chars],
        )
        return GenerationRequest(
            model=self.model or get_model_for_tier("fast"),
            prompt=prompt,
            temperature=0.0,
            output_mode=OutputMode.JSON,
        )

    async def estimate(self, document: str, requirement: str) -> int:
        try:
            request = self.build_request(document, requirement)
            response = await self.executor.execute(
                request, timeout=self.settings.request_timeout_seconds
            )
            data = parse_json_object(sanitize_json(response.text), ParseError)
            score = clamp_score(float(ScoreResult.model_validate(data).score))
        except Exception as exc:
            logger.warning("score.estimate_failed error_type=%s error=%s", type(exc).__name__, exc)
            return 0
        logger.info("score.estimated score=%d", score)
        return score


def schedule_rescore(ctx: OrchestratorContext, estimator: ScoreEstimator, document: str) -> None:
    """Re-score `document` in the background; the result lands in ctx.optimized_score.

    A re-score still running for an earlier version of the resume is cancelled
    so that only the latest document's score is ever shown.
    """
    previous = ctx.rescore_task
    if previous is not None and not previous.done():
        logger.info("score.superseded")
        previous.cancel()

    async def _rescore() -> None:
        ctx.set_score(await estimator.estimate(document, ctx.requirement))

    ctx.rescore_task = ctx.spawn(_rescore(), name="rescore")
