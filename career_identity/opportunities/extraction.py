from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from career_identity.ai.gateway import ai_complete, parse_json_content
from career_identity.ai.types import ChatMessage
from career_identity.schemas.opportunity import ClassifiedRequirement, ExtractedOpportunity

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a job posting analyzer. Return ONLY valid JSON."

EXTRACTION_PROMPT = """Extract job details and requirements from this job posting. Return ONLY valid JSON.

Fields:
- title: the job title
- company: the company name if mentioned, or null
- mustHave: required qualifications, each classified
- niceToHave: preferred qualifications, each classified
- responsibilities: key job duties

Requirement types:
- "education": degree, diploma, academic qualification
- "certification": professional certification or license
- "skill": technical skill, tool, competency
- "experience": work experience, years in a role

Example:
{
  "title": "Senior Software Engineer",
  "company": "Acme Corp",
  "mustHave": [{"text": "5+ years Python", "type": "experience"}],
  "niceToHave": [{"text": "AWS Certified", "type": "certification"}],
  "responsibilities": ["Lead technical design"]
}

JOB DESCRIPTION:
"""


def normalize_requirements(items: Any) -> list[ClassifiedRequirement]:
    """Accept plain strings or ``{text, type}`` objects; anything unclassified is a skill."""
    if not isinstance(items, list):
        return []
    requirements: list[ClassifiedRequirement] = []
    for item in items:
        if isinstance(item, str):
            if item.strip():
                requirements.append(ClassifiedRequirement(text=item.strip(), type="skill"))
        elif isinstance(item, dict) and isinstance(item.get("text"), str) and item["text"].strip():
            requirements.append(ClassifiedRequirement(text=item["text"].strip(), type=item.get("type")))
    return requirements


async def extract_opportunity(
    description: str,
    *,
    user_id: str | None = None,
) -> ExtractedOpportunity:
    completion = await ai_complete(
        "extract_opportunity",
        [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=EXTRACTION_PROMPT + description),
        ],
        temperature=0,
        max_tokens=2000,
        user_id=user_id,
    )

    fallback = ExtractedOpportunity()
    if not completion.content:
        return fallback
    try:
        parsed = parse_json_content(completion.content)
    except json.JSONDecodeError:
        logger.warning("opportunity_extraction_parse_failed content=%s", completion.content[:200])
        return fallback
    if not isinstance(parsed, dict):
        return fallback

    title = parsed.get("title")
    company = parsed.get("company")
    responsibilities = parsed.get("responsibilities")
    try:
        return ExtractedOpportunity(
            title=title.strip() if isinstance(title, str) and title.strip() else fallback.title,
            company=company.strip() if isinstance(company, str) and company.strip() else None,
            must_have=normalize_requirements(parsed.get("mustHave")),
            nice_to_have=normalize_requirements(parsed.get("niceToHave")),
            responsibilities=[r for r in responsibilities if isinstance(r, str)]
            if isinstance(responsibilities, list)
            else [],
        )
    except ValidationError:
        logger.warning("opportunity_extraction_invalid content=%s", completion.content[:200])
        return fallback
