from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


SUPPORTED_LANGUAGES: tuple[str, ...] = (
    "English",
    "Spanish",
    "French",
    "German",
    "Hindi",
    "Mandarin",
    "Portuguese",
    "Arabic",
)


class ContentType(str, Enum):
    """Kinds of document the generation catalog can produce."""

    RESUME = "resume"
    COVER_LETTER = "cover_letter"
    INTERVIEW_PREP = "interview_prep"
    OUTREACH = "outreach"
    LEARNING_PATH = "learning_path"
    MARKET_INSIGHTS = "market_insights"


# ==== Upstream analysis (read-only input to prompt construction) ====

class ContactProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""
    phone: str = ""
    linkedin: str = ""
    location: str = ""


class MarketAnalysis(BaseModel):
    salary: str = ""
    verdict: str = ""
    culture: str = ""


class AnalysisResult(BaseModel):
    """Scores and extracted profile for one resume/job description pair."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    ats_score: int = Field(0, description="Formatting and parsing compliance score.")
    relevance_score: int = Field(0, description="Skill and experience match score.")
    role_fit_analysis: str = ""
    contact_profile: ContactProfile = Field(default_factory=ContactProfile)
    languages: list[str] = Field(default_factory=list, description="Spoken languages only.")
    missing_keywords: list[str] = Field(default_factory=list)
    critical_issues: list[str] = Field(default_factory=list)
    key_strengths: list[str] = Field(default_factory=list)
    summary: str = ""
    market_analysis: Optional[MarketAnalysis] = None


# ==== Per-type generation options ====

class GenerationOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: str = "English"
    tailor_experience: bool = False
    tone: Optional[str] = None
    email_channel: Literal["Email", "LinkedIn"] = "Email"
    email_scenario: str = "Follow-up"
    email_recipient: str = "Recruiter"


# ==== Structured outputs ====

class MarketInsights(BaseModel):
    verdict: str = ""
    salary_range: str = ""
    culture_wfh: str = ""
    interview_trends: list[str] = Field(default_factory=list)
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)


class ScoreResult(BaseModel):
    score: float
