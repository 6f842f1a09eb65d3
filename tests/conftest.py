import inspect
import os
from pathlib import Path
import sys

import pytest

# Ensure project root is on sys.path for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Load .env into os.environ so integration tests can pick up keys
from core.config_adapter import DotEnvConfigSource  # noqa: E402
from core.llm_client import GenerationResponse  # noqa: E402
from core.models import AnalysisResult, ContactProfile  # noqa: E402
from core.settings import GenerationSettings  # noqa: E402

dotenv = DotEnvConfigSource(path=ROOT / ".env")
for key, val in dotenv.as_dict().items():
    os.environ.setdefault(key, val)


class FakeGenerationClient:
    """AsyncGenerationClient double driven by a responder callable.

    The responder receives the request and returns a str, a GenerationResponse,
    an exception instance (raised), or an awaitable producing one of those.
    """

    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def generate(self, request):
        self.requests.append(request)
        result = self.responder(request)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, str):
            result = GenerationResponse(text=result)
        return result


def sequence(*outcomes, default="ok"):
    """Responder that returns outcomes in order, then `default` forever."""
    pending = list(outcomes)

    def responder(_request):
        return pending.pop(0) if pending else default

    return responder


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def isolated_config(monkeypatch):
    from core import config as cfg
    from core import settings as settings_mod

    # Prevent tests from accidentally reading your real .env file.
    monkeypatch.setenv("DOTENV_PATH", "tests/.env.DO_NOT_USE")
    for key in [
        "LLM_PROVIDER",
        "LLM_MODEL_STANDARD",
        "LLM_MODEL_FAST",
        "LLM_MODEL_REASONING",
        "LLM_TIMEOUT_SECONDS",
        "LLM_LONG_TIMEOUT_SECONDS",
        "LLM_MAX_ATTEMPTS",
        "LLM_BACKOFF_BASE_SECONDS",
        "GENERATION_STAGGER_SECONDS",
    ]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LLM_MODEL", "test-model")
    cfg._config_adapter.cache_clear()  # type: ignore[attr-defined]
    settings_mod.get_generation_settings.cache_clear()
    yield
    cfg._config_adapter.cache_clear()  # type: ignore[attr-defined]
    settings_mod.get_generation_settings.cache_clear()


@pytest.fixture
def fast_settings():
    # No stagger or backoff waits; short timeouts.
    return GenerationSettings(
        request_timeout_seconds=1.0,
        analysis_timeout_seconds=2.0,
        max_attempts=3,
        backoff_base_seconds=0.0,
        stagger_step_seconds=0.0,
    )


@pytest.fixture
def analysis():
    return AnalysisResult(
        ats_score=62,
        relevance_score=48,
        role_fit_analysis="Candidate is a reasonable match for Senior Data Engineer.",
        contact_profile=ContactProfile(
            name="Jordan Rivera",
            email="jordan@example.com",
            phone="+1 555 0100",
            linkedin="linkedin.com/in/jrivera",
            location="Austin, TX",
        ),
        languages=["English", "Spanish"],
        missing_keywords=["Airflow", "dbt", "Kafka", "Terraform", "Snowflake"],
        critical_issues=["Dates are inconsistent"],
        key_strengths=["Python", "SQL"],
        summary="Data engineer with 6 years of pipeline experience.",
    )


@pytest.fixture
def make_client():
    return FakeGenerationClient


@pytest.fixture
def scripted():
    return sequence


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()
