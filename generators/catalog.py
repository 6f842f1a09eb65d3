"""Static generation catalog: one row per content type.

Adding a content type means adding a row here (and a prompt builder); the
orchestrator never branches on the type itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Mapping

from pydantic import ValidationError

from core.config import get_model_for_tier
from core.errors import ParseError
from core.llm_client import Attachment, GenerationRequest, GenerationResponse, OutputMode, Tool
from core.models import AnalysisResult, ContactProfile, ContentType, GenerationOptions, MarketInsights
from core.sanitize import format_sources, is_json_object, parse_json_object, sanitize_json, sanitize_markdown
from generators import prompts


class ModelTier(str, Enum):
    STANDARD = "standard"
    FAST = "fast"
    REASONING = "reasoning"


PromptBuilder = Callable[[ContactProfile, str, GenerationOptions, AnalysisResult], str]


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    content_type: ContentType
    label: str
    model_tier: ModelTier
    prompt_builder: PromptBuilder
    output_mode: OutputMode = OutputMode.TEXT
    tools: frozenset[Tool] = frozenset()
    temperature: float = 0.4

    @property
    def grounded(self) -> bool:
        return Tool.SEARCH_GROUNDING in self.tools

    def build_prompt(
        self,
        profile: ContactProfile,
        requirement: str,
        options: GenerationOptions,
        analysis: AnalysisResult,
    ) -> str:
        task = self.prompt_builder(profile, requirement, options, analysis)
        return prompts.wrap_task(requirement, task)

    def build_request(
        self,
        profile: ContactProfile,
        requirement: str,
        options: GenerationOptions,
        analysis: AnalysisResult,
        attachment: Attachment | None = None,
    ) -> GenerationRequest:
        return GenerationRequest(
            model=get_model_for_tier(self.model_tier.value),
            prompt=self.build_prompt(profile, requirement, options, analysis),
            attachment=attachment,
            temperature=self.temperature,
            output_mode=self.output_mode,
            tools=self.tools,
        )


_ENTRIES: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        content_type=ContentType.RESUME,
        label="Full ATS Resume",
        model_tier=ModelTier.REASONING,
        prompt_builder=prompts.build_resume_prompt,
    ),
    CatalogEntry(
        content_type=ContentType.COVER_LETTER,
        label="Cover Letter",
        model_tier=ModelTier.REASONING,
        prompt_builder=prompts.build_cover_letter_prompt,
    ),
    CatalogEntry(
        content_type=ContentType.INTERVIEW_PREP,
        label="Interview",
        model_tier=ModelTier.STANDARD,
        prompt_builder=prompts.build_interview_prep_prompt,
    ),
    CatalogEntry(
        content_type=ContentType.LEARNING_PATH,
        label="Skill Gap & Learning",
        model_tier=ModelTier.STANDARD,
        prompt_builder=prompts.build_learning_path_prompt,
    ),
    CatalogEntry(
        content_type=ContentType.OUTREACH,
        label="Outreach",
        model_tier=ModelTier.FAST,
        prompt_builder=prompts.build_outreach_prompt,
    ),
    CatalogEntry(
        content_type=ContentType.MARKET_INSIGHTS,
        label="Market Insights",
        model_tier=ModelTier.REASONING,
        prompt_builder=prompts.build_market_insights_prompt,
        output_mode=OutputMode.JSON,
        tools=frozenset({Tool.SEARCH_GROUNDING}),
    ),
)

GENERATION_CATALOG: Mapping[ContentType, CatalogEntry] = MappingProxyType(
    {entry.content_type: entry for entry in _ENTRIES}
)

PRIMARY_CONTENT_TYPE = ContentType.RESUME

# Background jobs, in stagger order.
SECONDARY_CONTENT_TYPES: tuple[ContentType, ...] = tuple(
    entry.content_type for entry in _ENTRIES if entry.content_type is not PRIMARY_CONTENT_TYPE
)


def lookup(content_type: ContentType) -> CatalogEntry:
    try:
        return GENERATION_CATALOG[ContentType(content_type)]
    except (KeyError, ValueError) as exc:
        raise KeyError(f"No catalog entry for content type '{content_type}'") from exc


def render_output(entry: CatalogEntry, response: GenerationResponse) -> str:
    """Sanitize a raw response according to the entry's output mode.

    A grounded JSON entry whose output is not a JSON object is treated as
    markdown and gets the citations appended as a sources list.
    """
    text = response.text or ""
    if entry.output_mode is OutputMode.JSON:
        cleaned = sanitize_json(text)
        if not entry.grounded or is_json_object(cleaned):
            return cleaned
    markdown = sanitize_markdown(text)
    if entry.grounded and response.citations:
        markdown = markdown.rstrip() + format_sources(response.citations)
    return markdown


def parse_market_insights(artifact: str) -> MarketInsights:
    data = parse_json_object(artifact, ParseError)
    try:
        return MarketInsights.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Market insights validation failed: {e}") from e
