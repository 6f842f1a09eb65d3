"""Prompt builders, one per content type.

Each builder is a pure function of (profile, requirement, options, analysis)
returning the task instruction; `wrap_task` adds the shared job-description
preamble.
"""

from __future__ import annotations

from core.models import AnalysisResult, ContactProfile, GenerationOptions


def wrap_task(requirement: str, task: str) -> str:
    return f"Job Description Context: {requirement}\n\nTask: {task.strip()}"


def language_instruction(language: str) -> str:
    if language and language != "English":
        return f"IMPORTANT: TRANSLATE final output to {language}."
    return "Write in professional English."


def tone_instruction(tone: str | None) -> str:
    if tone:
        return f"Adopt a tone that is: {tone}."
    return "Adopt a professional, confident tone."


RESUME_TEMPLATE = """
Rewrite resume to be 100% ATS-optimized for the Job Description.
{language}

**THE 60/40 RULE**:
- PROFESSIONAL EXPERIENCE: Keep 60% of the original core duties to maintain authenticity and truth.
- TAILORING: {tailoring}

**FORMAT & LAYOUT RULES**:
1. **HEADER**: Use strictly **Markdown**.
   - Line 1: # {name}
   - Line 2: Contact info separated by pipes (|).
     Format: {contact}
     *Do NOT include labels like 'Email:', just the values.*
2. **SUMMARY**: High-impact pitch tailored to JD.
3. **SKILLS**: Grouped keywords matching JD.
4. **EXPERIENCE**: Reverse chronological. Metric-heavy. Use the 60/40 rule.
5. **EDUCATION**.
6. **LANGUAGES**: Include a section for spoken languages{spoken} if applicable at the end.

Output ONLY Markdown. Do NOT use code blocks or raw HTML tags.
"""

TAILOR_AGGRESSIVE = (
    "Rewrite the remaining 40% of bullet points to specifically align with JD keywords/metrics. "
    "Quantify achievements."
)
TAILOR_CONSERVATIVE = "Keep original points but optimize phrasing for impact."


def _contact_line(profile: ContactProfile) -> str:
    values = [profile.email, profile.phone, profile.location, profile.linkedin]
    filled = [v.strip() for v in values if v and v.strip()]
    return " | ".join(filled) if filled else "Email | Phone | Location | LinkedIn"


def build_resume_prompt(
    profile: ContactProfile,
    requirement: str,
    options: GenerationOptions,
    analysis: AnalysisResult,
) -> str:
    spoken = f" (e.g. {', '.join(analysis.languages)})" if analysis.languages else ""
    return RESUME_TEMPLATE.format(
        language=language_instruction(options.language),
        tailoring=TAILOR_AGGRESSIVE if options.tailor_experience else TAILOR_CONSERVATIVE,
        name=profile.name or "Name",
        contact=_contact_line(profile),
        spoken=spoken,
    )


def build_cover_letter_prompt(
    profile: ContactProfile,
    requirement: str,
    options: GenerationOptions,
    analysis: AnalysisResult,
) -> str:
    strengths = "; ".join(analysis.key_strengths) or "the strengths evident in the resume"
    return (
        f"Write a persuasive Cover Letter. {language_instruction(options.language)} "
        f"Tone: {tone_instruction(options.tone)} Candidate: {profile.name or 'the candidate'}. "
        f"Structure: Hook, Value, CTA. Directly reference the candidate's key strengths: {strengths}."
    )


def build_interview_prep_prompt(
    profile: ContactProfile,
    requirement: str,
    options: GenerationOptions,
    analysis: AnalysisResult,
) -> str:
    return (
        f"Create Interview Prep Kit. {language_instruction(options.language)} "
        "Part 1: STAR Method intro. "
        "Part 2: 10 Predicted Questions based on JD with scripted STAR answers. "
        "Part 3: Follow-up Questions to ask. "
        "Part 4: Common Pitfalls to avoid."
    )


LINKEDIN_CAMPAIGN_TEMPLATE = """
Create a 3-Step LinkedIn Outreach Campaign.
Recipient: {recipient}.
Tone: Cheeky, Persuasive, Sales-Expert, Aware of current trends.
{language}

Output Structure:
### Step 1: Connection Request (Max 300 chars)
### Step 2: First Message (Value drop, no hard pitch)
### Step 3: Follow-up (Humorous nudge)

Also add a "Pro Tip" section on how to find their email if not connected.
"""


def build_outreach_prompt(
    profile: ContactProfile,
    requirement: str,
    options: GenerationOptions,
    analysis: AnalysisResult,
) -> str:
    if options.email_channel == "LinkedIn":
        return LINKEDIN_CAMPAIGN_TEMPLATE.format(
            recipient=options.email_recipient,
            language=language_instruction(options.language),
        )
    return (
        f'Draft a professional email for "{options.email_scenario}". '
        f"{language_instruction(options.language)} Recipient Role: {options.email_recipient}. "
        f"Tone: {tone_instruction(options.tone)} Sign off as {profile.name or 'the candidate'}. "
        "Include Subject Line."
    )


def build_learning_path_prompt(
    profile: ContactProfile,
    requirement: str,
    options: GenerationOptions,
    analysis: AnalysisResult,
) -> str:
    keywords = ", ".join(analysis.missing_keywords[:4]) or "the most important skills in the JD"
    return (
        f'Create a "Mini Learning Path" for missing keywords: {keywords}. '
        f"{language_instruction(options.language)} Format as Markdown Guide."
    )


MARKET_INSIGHTS_TEMPLATE = """
Analyze the Job Description first using Google Search Grounding for current data.
1. **Verdict**: Is this a good job? (Based on typical salary/growth for this title).
2. **Salary**: Find current market range for this Title/Location{location}.
3. **Culture**: What does the JD imply about culture/WFH?
4. **Interview**: Common questions for this company/role.
{language}

Output strictly valid JSON:
{{
  "verdict": "string",
  "salary_range": "string",
  "culture_wfh": "string",
  "interview_trends": ["string"],
  "pros": ["string"],
  "cons": ["string"]
}}
"""


def build_market_insights_prompt(
    profile: ContactProfile,
    requirement: str,
    options: GenerationOptions,
    analysis: AnalysisResult,
) -> str:
    location = f" (candidate location: {profile.location})" if profile.location else ""
    return MARKET_INSIGHTS_TEMPLATE.format(
        location=location, language=language_instruction(options.language)
    )
