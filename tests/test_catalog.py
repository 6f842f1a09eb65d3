import json

import pytest

from core.errors import ParseError
from core.llm_client import Citation, GenerationResponse, OutputMode, Tool
from core.models import ContentType, GenerationOptions
from core.sanitize import SOURCES_HEADER
from generators import prompts
from generators.catalog import (
    GENERATION_CATALOG,
    PRIMARY_CONTENT_TYPE,
    SECONDARY_CONTENT_TYPES,
    ModelTier,
    lookup,
    parse_market_insights,
    render_output,
)


pytestmark = pytest.mark.usefixtures("isolated_config")


def test_catalog_covers_every_content_type() -> None:
    assert set(GENERATION_CATALOG) == set(ContentType)
    assert PRIMARY_CONTENT_TYPE is ContentType.RESUME
    assert PRIMARY_CONTENT_TYPE not in SECONDARY_CONTENT_TYPES
    assert len(SECONDARY_CONTENT_TYPES) == len(ContentType) - 1


def test_catalog_rows() -> None:
    assert lookup(ContentType.RESUME).model_tier is ModelTier.REASONING
    assert lookup(ContentType.OUTREACH).model_tier is ModelTier.FAST
    market = lookup(ContentType.MARKET_INSIGHTS)
    assert market.output_mode is OutputMode.JSON
    assert market.grounded
    assert not lookup(ContentType.COVER_LETTER).grounded


def test_lookup_unknown_raises_key_error() -> None:
    with pytest.raises(KeyError):
        lookup("haiku")  # type: ignore[arg-type]


def test_build_request_uses_tier_model(monkeypatch, analysis) -> None:
    from core import config as cfg

    monkeypatch.setenv("LLM_MODEL_FAST", "flash-lite")
    cfg._config_adapter.cache_clear()  # type: ignore[attr-defined]
    entry = lookup(ContentType.OUTREACH)
    request = entry.build_request(
        analysis.contact_profile, "Senior Data Engineer at Acme", GenerationOptions(), analysis
    )
    assert request.model == "flash-lite"
    assert request.prompt.startswith("Job Description Context: Senior Data Engineer at Acme")
    assert "\n\nTask: " in request.prompt
    assert lookup(ContentType.MARKET_INSIGHTS).build_request(
        analysis.contact_profile, "jd", GenerationOptions(), analysis
    ).tools == frozenset({Tool.SEARCH_GROUNDING})


def test_resume_prompt_uses_profile_and_tailoring(analysis) -> None:
    conservative = prompts.build_resume_prompt(
        analysis.contact_profile, "jd", GenerationOptions(), analysis
    )
    aggressive = prompts.build_resume_prompt(
        analysis.contact_profile, "jd", GenerationOptions(tailor_experience=True), analysis
    )
    assert "# Jordan Rivera" in conservative
    assert "jordan@example.com | +1 555 0100 | Austin, TX | linkedin.com/in/jrivera" in conservative
    assert prompts.TAILOR_CONSERVATIVE in conservative
    assert prompts.TAILOR_AGGRESSIVE in aggressive
    assert "English, Spanish" in conservative


def test_language_instruction_only_for_non_english(analysis) -> None:
    german = prompts.build_cover_letter_prompt(
        analysis.contact_profile, "jd", GenerationOptions(language="German"), analysis
    )
    assert "TRANSLATE final output to German" in german
    assert "TRANSLATE" not in prompts.language_instruction("English")


def test_learning_path_uses_first_four_missing_keywords(analysis) -> None:
    text = prompts.build_learning_path_prompt(analysis.contact_profile, "jd", GenerationOptions(), analysis)
    assert "Airflow, dbt, Kafka, Terraform" in text
    assert "Snowflake" not in text


def test_outreach_prompt_switches_on_channel(analysis) -> None:
    email = prompts.build_outreach_prompt(
        analysis.contact_profile, "jd", GenerationOptions(email_scenario="Thank you"), analysis
    )
    linkedin = prompts.build_outreach_prompt(
        analysis.contact_profile, "jd", GenerationOptions(email_channel="LinkedIn"), analysis
    )
    assert '"Thank you"' in email and "Subject Line" in email
    assert "3-Step LinkedIn Outreach Campaign" in linkedin


def test_render_output_markdown_entry_strips_preamble() -> None:
    entry = lookup(ContentType.COVER_LETTER)
    out = render_output(entry, GenerationResponse(text="Sure thing!\n**Dear Hiring Manager**,\nHello."))
    assert out == "**Dear Hiring Manager**,\nHello."


def test_render_output_grounded_json_entry_returns_json() -> None:
    entry = lookup(ContentType.MARKET_INSIGHTS)
    payload = {"verdict": "Good", "salary_range": "$150k", "culture_wfh": "Hybrid"}
    response = GenerationResponse(
        text=f"```json\n{json.dumps(payload)}\n```",
        citations=[Citation(title="t", uri="https://x.test")],
    )
    out = render_output(entry, response)
    assert json.loads(out) == payload
    assert SOURCES_HEADER not in out


def test_render_output_grounded_prose_gets_sources() -> None:
    entry = lookup(ContentType.MARKET_INSIGHTS)
    response = GenerationResponse(
        text="Here is what I found:\n## Verdict\nStrong role.",
        citations=[Citation(title="Levels", uri="https://levels.test")],
    )
    out = render_output(entry, response)
    assert out.startswith("## Verdict")
    assert out.endswith("- [Levels](https://levels.test)\n")


def test_parse_market_insights() -> None:
    insights = parse_market_insights('{"verdict": "Good", "pros": ["Pay"], "cons": []}')
    assert insights.verdict == "Good"
    assert insights.pros == ["Pay"]
    with pytest.raises(ParseError):
        parse_market_insights('{"pros": "not-a-list"}')
    with pytest.raises(ParseError):
        parse_market_insights("## Verdict\nprose")
