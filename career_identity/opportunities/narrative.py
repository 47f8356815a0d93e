from __future__ import annotations

import logging

from career_identity.ai.gateway import AIGatewayError, ai_complete
from career_identity.ai.types import ChatMessage
from career_identity.schemas.talking_points import TalkingPoints

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a professional writer helping job candidates craft compelling narratives for cover "
    "letters and applications. Write in first person, professional but warm tone. Be authentic: "
    "emphasize genuine strengths and honestly address gaps."
)


def build_user_prompt(talking_points: TalkingPoints, title: str, company: str | None) -> str:
    at_company = f" at {company}" if company else ""
    strengths = "\n".join(
        f"- {s.claim_label}: {s.evidence_summary}\n  Framing: {s.framing}" for s in talking_points.strengths
    )
    gaps = "\n".join(f"- {g.requirement}: {g.mitigation}" for g in talking_points.gaps)
    inferences = "\n".join(f"- {i.inferred_claim}: {i.reasoning}" for i in talking_points.inferences)

    return f"""Write a 2-3 paragraph narrative (200-300 words) for a cover letter applying to the {title} role{at_company}.

## Strengths to Highlight
{strengths}

## Gaps to Address
{gaps}

## Inferences to Weave In
{inferences}

## Guidelines
- First person voice ("I led...", "My experience...")
- Lead with strongest value proposition
- Acknowledge gaps honestly with mitigation (1 sentence max per gap)
- Don't keyword-stuff or mirror job posting language exactly
- End with genuine enthusiasm for the role
- 2-3 paragraphs, ~200-300 words total

Return ONLY the narrative text, no JSON or markdown formatting."""


async def generate_narrative(
    talking_points: TalkingPoints,
    title: str,
    company: str | None,
    *,
    user_id: str | None = None,
    opportunity_id: str | None = None,
) -> str:
    """Cover-letter prose built from talking points; empty when there is nothing to say."""
    if not talking_points.strengths and not talking_points.gaps:
        return ""

    completion = await ai_complete(
        "generate_narrative",
        [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=build_user_prompt(talking_points, title, company)),
        ],
        temperature=0.7,
        max_tokens=1000,
        user_id=user_id,
        opportunity_id=opportunity_id,
    )
    narrative = (completion.content or "").strip()
    if not narrative:
        raise AIGatewayError("No response while generating narrative", code="llm_empty_response")
    logger.info("narrative_generated opportunity_id=%s chars=%s", opportunity_id, len(narrative))
    return narrative
