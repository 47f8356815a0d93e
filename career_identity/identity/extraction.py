from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable

from pydantic import ValidationError

from career_identity.ai.gateway import ai_complete, parse_json_content
from career_identity.ai.types import ChatMessage
from career_identity.core.scoring import get_scoring_value
from career_identity.schemas.evidence import (
    EVIDENCE_TYPES,
    EvidenceContext,
    ExtractedEvidence,
    WorkHistoryEntry,
)

logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"\d{4}")

RESUME_SYSTEM_PROMPT = (
    "You are an evidence extractor. Extract discrete factual statements from resumes. "
    "Return ONLY valid JSON."
)

RESUME_USER_PROMPT = """Extract discrete factual statements from this resume. Each item is one of:
- accomplishment: a single result with measurable impact, or a venture/project founded or co-founded
- skill_listed: one technology, tool, framework, methodology or soft skill
- trait_indicator: a trait or value indicator
- education: a degree with type, field of study, institution and graduation year
- certification: a professional certification or license

Rules:
- Split skill lists: "Go, TypeScript, React" is three separate skill_listed items
- "AWS (Lambda, DynamoDB)" yields "AWS", "AWS Lambda" and "AWS DynamoDB"
- Category headers are not skills; extract the technologies listed under them
- Ventures are accomplishments with role "Founder" (or "Co-Founder") and the venture as company;
  technologies mentioned in a venture description are also separate skill_listed items
- Keep numbers, percentages and scale in accomplishments
- Add context (role, company, dates) to accomplishments, (institution, year) to education
- Be exhaustive: every bullet, every skill, every degree and certification

Return a JSON array, no markdown:
[
  {"text": "Reduced API latency by 40% serving 2M daily users", "type": "accomplishment",
   "context": {"role": "Senior Engineer", "company": "Acme Corp", "dates": "2020-2023"}},
  {"text": "Go", "type": "skill_listed", "context": null},
  {"text": "Thrives in ambiguous environments", "type": "trait_indicator", "context": null},
  {"text": "BS in Information Systems", "type": "education", "context": {"institution": "State University", "year": "2005"}},
  {"text": "AWS Solutions Architect Professional", "type": "certification", "context": {"year": "2023"}}
]

RESUME TEXT:
"""

STORY_SYSTEM_PROMPT = (
    "You are an evidence extractor. Extract discrete factual statements from personal stories "
    "and narratives. Return ONLY valid JSON."
)

STORY_USER_PROMPT = """Extract evidence from this professional story:
1. accomplishment: what was achieved, with company/role context when mentioned
2. skill_listed: every technology, tool, framework or platform described as used, one per item
3. trait_indicator: personal qualities demonstrated through action

Example input:
"At Google, I built a real-time data pipeline using Kafka and Spark. The system processed 10M events/day. I stayed calm during a major outage."

Example output:
[
  {"text": "Built real-time data pipeline processing 10M events/day", "type": "accomplishment", "context": {"company": "Google"}},
  {"text": "Kafka", "type": "skill_listed", "context": null},
  {"text": "Spark", "type": "skill_listed", "context": null},
  {"text": "Stays calm under pressure", "type": "trait_indicator", "context": null}
]

Return ONLY a JSON array, no markdown.

STORY TEXT:
"""

WORK_HISTORY_SYSTEM_PROMPT = (
    "You are a resume parser. Extract work history, ventures/projects, and additional "
    "experience from resumes. Return ONLY valid JSON."
)

WORK_HISTORY_USER_PROMPT = """Extract every professional entry from this resume: employment,
ventures or side projects, and additional/earlier experience.

Fields per entry:
- company: company, organization or venture name
- company_domain: website domain such as "google.com"; best guess from the name, null for personal ventures
- title: job title or role
- start_date: as written ("Jan 2020", "2020")
- end_date: as written, or null when current ("Present", "Current", "In Development", "Pre-Launch")
- location: city/state/country or null
- summary: one sentence about the role, or null
- entry_type: "work", "venture" or "additional"

Ventures without a role use "Founder" as title; ventures without dates use "Ongoing" as start_date.

Return a JSON array, no markdown:
[
  {"company": "Google", "company_domain": "google.com", "title": "Senior Engineer", "start_date": "2020",
   "end_date": "2024", "location": "San Francisco, CA", "summary": "Led cloud infrastructure team", "entry_type": "work"}
]

RESUME TEXT:
"""


class ExtractionError(RuntimeError):
    pass


def _parse_array(content: str, what: str) -> list[Any]:
    if not content:
        raise ExtractionError(f"No response while extracting {what}")
    try:
        parsed = parse_json_content(content)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Failed to parse {what} response: {content[:200]}") from exc
    if not isinstance(parsed, list):
        raise ExtractionError(f"Failed to parse {what} response: expected a JSON array")
    return parsed


def _valid_evidence(raw_items: Iterable[Any], source_type: str) -> list[ExtractedEvidence]:
    max_length = int(get_scoring_value("synthesis.max_evidence_text_length", 5000))
    items: list[ExtractedEvidence] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        text = raw.get("text")
        if not isinstance(text, str) or not text or len(text) > max_length:
            continue
        if raw.get("type") not in EVIDENCE_TYPES:
            continue
        context = raw.get("context") if isinstance(raw.get("context"), dict) else None
        try:
            items.append(
                ExtractedEvidence(
                    text=text,
                    type=raw["type"],
                    context=EvidenceContext.model_validate(context) if context else None,
                    source_type=source_type,
                )
            )
        except ValidationError:
            continue
    return items


async def extract_evidence(
    text: str,
    source_type: str = "resume",
    *,
    user_id: str | None = None,
    document_id: str | None = None,
) -> list[ExtractedEvidence]:
    completion = await ai_complete(
        "extract_evidence",
        [
            ChatMessage(role="system", content=RESUME_SYSTEM_PROMPT),
            ChatMessage(role="user", content=RESUME_USER_PROMPT + text),
        ],
        max_tokens=16000,
        user_id=user_id,
        document_id=document_id,
    )
    return _valid_evidence(_parse_array(completion.content, "evidence"), source_type)


async def extract_story_evidence(
    text: str,
    *,
    user_id: str | None = None,
    document_id: str | None = None,
) -> list[ExtractedEvidence]:
    completion = await ai_complete(
        "extract_story_evidence",
        [
            ChatMessage(role="system", content=STORY_SYSTEM_PROMPT),
            ChatMessage(role="user", content=STORY_USER_PROMPT + text),
        ],
        max_tokens=4000,
        user_id=user_id,
        document_id=document_id,
    )
    return _valid_evidence(_parse_array(completion.content, "evidence"), "story")


async def extract_work_history(
    text: str,
    *,
    user_id: str | None = None,
    document_id: str | None = None,
) -> list[WorkHistoryEntry]:
    completion = await ai_complete(
        "extract_work_history",
        [
            ChatMessage(role="system", content=WORK_HISTORY_SYSTEM_PROMPT),
            ChatMessage(role="user", content=WORK_HISTORY_USER_PROMPT + text),
        ],
        temperature=0,
        max_tokens=4000,
        user_id=user_id,
        document_id=document_id,
    )

    entries: list[WorkHistoryEntry] = []
    for raw in _parse_array(completion.content, "work history"):
        if not isinstance(raw, dict):
            continue
        job = dict(raw)
        if job.get("entry_type") == "venture":
            job["title"] = job.get("title") or "Founder"
            job["start_date"] = job.get("start_date") or "Ongoing"
        if not all(isinstance(job.get(key), str) and job[key] for key in ("company", "title", "start_date")):
            continue
        if job.get("entry_type") not in {"work", "venture", "additional"}:
            job["entry_type"] = "work"
        try:
            entries.append(WorkHistoryEntry.model_validate(job))
        except ValidationError:
            logger.debug("work_history_entry_invalid company=%s", job.get("company"))
    return entries


def _first_year(value: str | None) -> int:
    match = _YEAR_RE.search(value or "")
    return int(match.group(0)) if match else 0


def _is_current(entry: WorkHistoryEntry) -> bool:
    return not entry.end_date or entry.end_date.strip().lower() == "present"


def sort_work_history(entries: Iterable[WorkHistoryEntry]) -> list[WorkHistoryEntry]:
    """Current roles first, then most recent start year, then most recent end year."""
    return sorted(
        entries,
        key=lambda entry: (
            0 if _is_current(entry) else 1,
            -_first_year(entry.start_date),
            0 if _is_current(entry) else -_first_year(entry.end_date),
        ),
    )


def derive_evidence_date(context: EvidenceContext | None) -> str | None:
    """Approximate when evidence happened as mid-year of its most recent year."""
    if context is None:
        return None
    if context.dates:
        years = _YEAR_RE.findall(context.dates)
        return f"{years[-1]}-06-01" if years else None
    if context.year:
        years = _YEAR_RE.findall(context.year)
        if years:
            return f"{years[-1]}-06-01"
    return None
