import pytest

from core.artifact_store import InMemoryArtifactStore
from core.models import ContactProfile, ContentType
from core.state_machine import JobStatus
from generators.session import OrchestratorContext


def test_store_snapshot_is_a_copy() -> None:
    store = InMemoryArtifactStore({ContentType.RESUME: "# R"})
    snap = store.snapshot()
    snap[ContentType.RESUME] = "mutated"
    assert store.get(ContentType.RESUME) == "# R"
    assert ContentType.RESUME in store
    store.clear()
    assert store.get(ContentType.RESUME) is None


def test_context_defaults_and_unlocking(analysis) -> None:
    ctx = OrchestratorContext(analysis, "JD")
    assert not ctx.unlocked
    assert ctx.profile == analysis.contact_profile
    assert all(s.status is JobStatus.IDLE and not s.has_artifact for s in ctx.snapshot().values())

    edited = ContactProfile(name="J. Rivera", email="j@example.com")
    ctx.confirm_profile(edited)
    ctx.mark_paid()
    assert ctx.unlocked
    assert ctx.profile is edited


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_notification(analysis) -> None:
    ctx = OrchestratorContext(analysis, "JD", paid=True, profile_confirmed=True)
    seen = []

    def broken(_snap):
        raise RuntimeError("ui went away")

    ctx.subscribe(broken)
    ctx.subscribe(seen.append)
    ctx.set_score(64)
    assert [s.score for s in seen] == [64]


@pytest.mark.asyncio
async def test_run_job_stores_result(analysis) -> None:
    ctx = OrchestratorContext(analysis, "JD", paid=True, profile_confirmed=True)

    async def work():
        return "# Learning path"

    assert await ctx.run_job(ContentType.LEARNING_PATH, work) == "# Learning path"
    assert ctx.artifact(ContentType.LEARNING_PATH) == "# Learning path"
    assert ctx.snapshot_for(ContentType.LEARNING_PATH).has_artifact
