import asyncio

import pytest

from core.errors import JobInProgress, NotAuthorized, RateLimited
from core.executor import RequestExecutor
from core.models import ContentType
from core.state_machine import JobStatus
from generators.orchestrator import GenerationOrchestrator
from generators.refine import GENERIC_CONTEXT, QuickAction, RefinementEngine
from generators.score import ScoreEstimator
from generators.session import OrchestratorContext


pytestmark = pytest.mark.usefixtures("isolated_config")

RESUME = "# Jane Doe\njane@example.com | Austin, TX\n\n## Summary\nEngineer.\n\n## Experience\n- Built pipelines"


def engine_with(make_client, responder, settings):
    client = make_client(responder)
    executor = RequestExecutor(client, backoff_base=0.0)
    return client, RefinementEngine(executor, ScoreEstimator(executor, settings), settings)


def score_aware(reply):
    def responder(request):
        if "rigid, mathematical ATS" in request.prompt:
            return '{"score": 91}'
        return reply(request) if callable(reply) else reply

    return responder


@pytest.fixture
def ctx(analysis):
    context = OrchestratorContext(analysis, "JD " * 600, paid=True, profile_confirmed=True)
    context.store.put(ContentType.RESUME, RESUME)
    return context


@pytest.mark.asyncio
async def test_refine_resume_keeps_sections_and_rescores(make_client, fast_settings, ctx):
    rewritten = "Here is the update:\n# Jane Doe\njane@example.com | Austin, TX\n\n## Summary\nPunchy engineer.\n\n## Experience\n- Built pipelines"
    client, engine = engine_with(make_client, score_aware(rewritten), fast_settings)

    out = await engine.refine_artifact(ctx, ContentType.RESUME, "Make the summary punchier")
    await ctx.wait_idle()

    assert out.startswith("# Jane Doe")
    assert "## Experience" in out
    assert ctx.artifact(ContentType.RESUME) == out
    assert ctx.status(ContentType.RESUME) is JobStatus.SUCCEEDED
    assert ctx.optimized_score == 91

    refine_request = client.requests[0]
    assert refine_request.temperature == 0.7
    assert 'USER INSTRUCTION: "Make the summary punchier"' in refine_request.prompt
    context_line = next(l for l in refine_request.prompt.splitlines() if l.startswith("CONTEXT:"))
    assert len(context_line) <= len("CONTEXT: ") + fast_settings.refine_context_chars + len("...")


@pytest.mark.asyncio
async def test_refine_other_types_use_generic_context_and_skip_rescore(make_client, fast_settings, ctx):
    ctx.store.put(ContentType.COVER_LETTER, "**Dear Hiring Manager**,\nHello.")
    client, engine = engine_with(make_client, score_aware("**Dear Hiring Manager**,\nHi!"), fast_settings)

    out = await engine.refine_artifact(ctx, ContentType.COVER_LETTER, "Friendlier")
    await ctx.wait_idle()

    assert out == "**Dear Hiring Manager**,\nHi!"
    assert f"CONTEXT: {GENERIC_CONTEXT}..." in client.requests[0].prompt
    assert client.calls == 1
    assert ctx.optimized_score is None


@pytest.mark.asyncio
async def test_empty_reply_keeps_existing_text(make_client, fast_settings, ctx):
    _, engine = engine_with(make_client, score_aware(""), fast_settings)
    assert await engine.refine_artifact(ctx, ContentType.RESUME, "anything") == RESUME
    await ctx.wait_idle()


@pytest.mark.asyncio
async def test_refine_requires_existing_artifact(make_client, fast_settings, ctx):
    _, engine = engine_with(make_client, score_aware("x"), fast_settings)
    with pytest.raises(LookupError):
        await engine.refine_artifact(ctx, ContentType.OUTREACH, "shorter")


@pytest.mark.asyncio
async def test_refine_requires_unlocked_session(make_client, fast_settings, analysis):
    locked = OrchestratorContext(analysis, "JD")
    locked.store.put(ContentType.RESUME, RESUME)
    client, engine = engine_with(make_client, score_aware("x"), fast_settings)
    with pytest.raises(NotAuthorized):
        await engine.refine_artifact(locked, ContentType.RESUME, "shorter")
    assert client.calls == 0


@pytest.mark.asyncio
async def test_refine_rejected_while_job_running(make_client, fast_settings, ctx):
    gate = asyncio.Event()

    async def slow(_request):
        await gate.wait()
        return "# Jane Doe\n## Summary\nNew"

    _, engine = engine_with(make_client, score_aware(slow), fast_settings)
    first = asyncio.ensure_future(engine.refine_artifact(ctx, ContentType.RESUME, "one"))
    await asyncio.sleep(0.01)
    with pytest.raises(JobInProgress):
        await engine.refine_artifact(ctx, ContentType.RESUME, "two")
    gate.set()
    await first
    await ctx.wait_idle()


@pytest.mark.asyncio
async def test_failed_refine_keeps_previous_artifact(make_client, fast_settings, ctx):
    _, engine = engine_with(make_client, score_aware(lambda _r: RateLimited("429")), fast_settings)
    with pytest.raises(RateLimited):
        await engine.refine_artifact(ctx, ContentType.RESUME, "shorter")
    assert ctx.artifact(ContentType.RESUME) == RESUME
    assert ctx.status(ContentType.RESUME) is JobStatus.FAILED
    assert ctx.snapshot_for(ContentType.RESUME).last_error == "High traffic. Please retry shortly."


@pytest.mark.asyncio
async def test_regenerate_section_prompt(make_client, fast_settings, ctx):
    client, engine = engine_with(
        make_client, score_aware(RESUME.replace("Engineer.", "Staff engineer.")), fast_settings
    )
    out = await engine.regenerate_artifact_section(ctx, ContentType.RESUME, "Summary", "Say staff")
    await ctx.wait_idle()

    prompt = client.requests[0].prompt
    assert 'Regenerate ONLY the "Summary" section' in prompt
    assert "Output the FULL updated resume markdown." in prompt
    assert "## Experience" in out
    assert "Staff engineer." in ctx.artifact(ContentType.RESUME)


@pytest.mark.asyncio
async def test_quick_action_sends_canned_instruction(make_client, fast_settings, ctx):
    client, engine = engine_with(make_client, score_aware(RESUME), fast_settings)
    await engine.apply_quick_action(ctx, ContentType.RESUME, QuickAction.SHORTEN)
    await ctx.wait_idle()
    assert QuickAction.SHORTEN.instruction in client.requests[0].prompt


def test_every_quick_action_has_instruction():
    assert all(action.instruction for action in QuickAction)
    assert QuickAction("auto_quantify") is QuickAction.AUTO_QUANTIFY


def orchestrator_and_engine(make_client, responder, settings):
    client = make_client(responder)
    executor = RequestExecutor(client, backoff_base=0.0)
    estimator = ScoreEstimator(executor, settings)
    return (
        client,
        GenerationOrchestrator(executor=executor, score_estimator=estimator, settings=settings),
        RefinementEngine(executor, estimator, settings),
    )


@pytest.mark.asyncio
async def test_score_of_refined_resume_wins_over_slower_earlier_score(make_client, fast_settings, ctx):
    async def slow_first_score():
        await asyncio.sleep(0.2)
        return '{"score": 10}'

    def responder(request):
        if "rigid, mathematical ATS" in request.prompt:
            return slow_first_score() if "## v1" in request.prompt else '{"score": 90}'
        if "USER INSTRUCTION:" in request.prompt:
            return "# Jane Doe\n## v2"
        return "# Jane Doe\n## v1"

    _, orchestrator, engine = orchestrator_and_engine(make_client, responder, fast_settings)

    await orchestrator.run_primary(ctx)
    await engine.refine_artifact(ctx, ContentType.RESUME, "shorten")
    await ctx.wait_idle()

    assert ctx.artifact(ContentType.RESUME) == "# Jane Doe\n## v2"
    assert ctx.optimized_score == 90


@pytest.mark.asyncio
async def test_force_regenerate_rejected_while_refinement_running(make_client, fast_settings, ctx):
    ctx.store.put(ContentType.COVER_LETTER, "**Dear Hiring Manager**,\nHello.")
    gate = asyncio.Event()

    async def gated(_request):
        await gate.wait()
        return "# REFINED"

    client, orchestrator, engine = orchestrator_and_engine(make_client, gated, fast_settings)
    refining = asyncio.ensure_future(engine.refine_artifact(ctx, ContentType.COVER_LETTER, "warmer"))
    await asyncio.sleep(0.01)

    with pytest.raises(JobInProgress):
        await orchestrator.force_regenerate(ctx, ContentType.COVER_LETTER)

    gate.set()
    assert await refining == "# REFINED"
    await ctx.wait_idle()
    assert client.calls == 1
