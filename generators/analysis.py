"""Upstream resume analysis: dual scoring, contact extraction, gap listing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from pydantic import ValidationError

from core.config import get_model_for_tier
from core.errors import ParseError
from core.executor import RequestExecutor
from core.llm_client import Attachment, GenerationRequest, OutputMode, Tool
from core.models import AnalysisResult
from core.sanitize import parse_json_object, sanitize_json
from core.settings import GenerationSettings, get_generation_settings


logger = logging.getLogger(__name__)

NO_JD_PROVIDED = "NO_JD_PROVIDED"

ANALYSIS_PROMPT = """
You are an impartial, evidence-based ATS Algorithm and Career Coach.

INPUT DATA:
1. Resume (attached document)
2. Job Description (JD) OR Link.
   - If the JD looks like a URL, use your Google Search tool to open it and extract the job details (Title, Requirements, Responsibilities).
   - If JD is "NO_JD_PROVIDED", evaluate the resume for general ATS health only, set 'relevanceScore' to 0, and 'roleFitAnalysis' to "No Job Description provided for role fit analysis.".

TASK 1: DUAL SCORING SYSTEM
- ATS Score (Formatting & Compliance): parsing safety, header structure, date formats, section clarity. (0-100).
- Relevance Score (Skill Match): strict skill/experience match against the JD. (0-100). If NO JD, return 0.

TASK 2: ROLE FIT ANALYSIS
- One sentence, e.g. "Role Mismatch: Candidate background is Customer Support, JD is Engineering."

TASK 3: CONTACT PROFILE
- Extract Name, Email, Phone, LinkedIn.
- Location: ONLY if fully explicit. Do NOT infer it from area codes or company names.
- Languages: spoken/written languages only, never programming languages.

TASK 4: HONEST ANALYSIS
- Missing keywords, critical issues (parsing errors, severe mismatches), key strengths.

TASK 5: MARKET INSIGHTS
- Estimated salary range, a brief verdict, culture/WFH vibe inferred from the JD.

Return ONLY a JSON object with keys:
atsScore, relevanceScore, roleFitAnalysis, contactProfile {{name, email, phone, linkedin, location}},
languages, missingKeywords, criticalIssues, keyStrengths, summary, marketAnalysis {{salary, verdict, culture}}

JOB DESCRIPTION:
{job_description}
"""

_STRING_LIST: Dict[str, Any] = {"type": "ARRAY", "items": {"type": "STRING"}}

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "atsScore": {"type": "INTEGER", "description": "Formatting and parsing compliance score"},
        "relevanceScore": {"type": "INTEGER", "description": "Skill and experience match score"},
        "roleFitAnalysis": {"type": "STRING"},
        "contactProfile": {
            "type": "OBJECT",
            "properties": {
                key: {"type": "STRING"} for key in ("name", "email", "phone", "linkedin", "location")
            },
        },
        "languages": _STRING_LIST,
        "missingKeywords": _STRING_LIST,
        "criticalIssues": _STRING_LIST,
        "keyStrengths": _STRING_LIST,
        "summary": {"type": "STRING"},
        "marketAnalysis": {
            "type": "OBJECT",
            "properties": {key: {"type": "STRING"} for key in ("salary", "verdict", "culture")},
        },
    },
    "required": [
        "atsScore",
        "relevanceScore",
        "roleFitAnalysis",
        "contactProfile",
        "languages",
        "missingKeywords",
        "criticalIssues",
        "keyStrengths",
        "summary",
    ],
}


@dataclass(slots=True)
class ResumeAnalyzer:
    executor: RequestExecutor
    settings: GenerationSettings = field(default_factory=get_generation_settings)

    def build_request(self, attachment: Attachment, job_description: str) -> GenerationRequest:
        jd_text = (job_description or "").strip() or NO_JD_PROVIDED
        return GenerationRequest(
            model=get_model_for_tier("reasoning"),
            prompt=ANALYSIS_PROMPT.format(job_description=jd_text),
            attachment=attachment,
            temperature=0.2,
            output_mode=OutputMode.JSON,
            response_schema=ANALYSIS_SCHEMA,
            tools=frozenset({Tool.SEARCH_GROUNDING}),
            thinking_budget=self.settings.analysis_thinking_budget,
        )

    async def analyze(self, attachment: Attachment, job_description: str) -> AnalysisResult:
        """Score the resume against the job description (long timeout, retried)."""
        request = self.build_request(attachment, job_description)
        response = await self.executor.execute(request, timeout=self.settings.analysis_timeout_seconds)
        data = parse_json_object(sanitize_json(response.text), ParseError)
        try:
            result = AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"Analysis validation failed: {e}") from e
        logger.info(
            "analysis.completed ats_score=%d relevance_score=%d missing=%d",
            result.ats_score,
            result.relevance_score,
            len(result.missing_keywords),
        )
        return result
