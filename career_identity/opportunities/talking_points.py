from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from pydantic import BaseModel, ValidationError

from career_identity.ai.gateway import AIGatewayError, ai_complete, parse_json_content
from career_identity.ai.types import ChatMessage
from career_identity.opportunities.matching import OpportunityNotFound, load_requirements
from career_identity.schemas.opportunity import Requirement
from career_identity.schemas.talking_points import Gap, Inference, Strength, TalkingPoints
from career_identity.store import IdentityStore

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a career coach helping candidates prepare for job applications. Analyze how a "
    "candidate's experience maps to job requirements. Be honest but strategic: find genuine "
    "strengths and acknowledge real gaps with constructive mitigation strategies."
)


def build_user_prompt(requirements: Sequence[Requirement], claims: Sequence[dict[str, Any]]) -> str:
    must_have = "\n".join(f"- {r.text} ({r.type})" for r in requirements if r.category == "mustHave")
    nice_to_have = "\n".join(f"- {r.text} ({r.type})" for r in requirements if r.category == "niceToHave")
    claim_blocks = "\n\n".join(
        "### {label} ({type}) [id: {id}]\n{description}\nEvidence:\n{evidence}".format(
            label=claim["label"],
            type=claim["type"],
            id=claim["id"],
            description=claim.get("description") or "",
            evidence="\n".join(f"- {item['text']}" for item in claim.get("evidence", [])),
        )
        for claim in claims
    )

    return f"""Analyze this candidate's fit for a role. Return JSON with strengths, gaps, and inferences.

## Job Requirements

### Must Have:
{must_have}

### Nice to Have:
{nice_to_have}

## Candidate's Claims (with evidence)

{claim_blocks}

## Instructions

1. Strengths: for each requirement the candidate meets, name the claim that addresses it,
   summarize the evidence, suggest how to frame it, and give a confidence between 0 and 1.
2. Gaps: for each requirement not met, acknowledge the gap honestly and suggest a mitigation
   (related experience, transferable skills), listing claim ids that partially address it.
3. Inferences: skills or experience implied by the evidence but not stated, with the claim
   ids they derive from and the reasoning.

Return JSON:
{{
  "strengths": [{{"requirement": "...", "requirement_type": "experience", "claim_id": "...",
                  "claim_label": "...", "evidence_summary": "...", "framing": "...", "confidence": 0.9}}],
  "gaps": [{{"requirement": "...", "requirement_type": "skill", "mitigation": "...", "related_claims": ["..."]}}],
  "inferences": [{{"inferred_claim": "...", "derived_from": ["..."], "reasoning": "..."}}]
}}

IMPORTANT:
- Use actual claim ids from the data provided
- Be honest about gaps
- Framing should be authentic emphasis, not keyword stuffing
- Return ONLY valid JSON"""


def _validated(items: Any, model: type[BaseModel]) -> list[Any]:
    if not isinstance(items, list):
        return []
    valid = []
    for item in items:
        try:
            valid.append(model.model_validate(item))
        except ValidationError:
            logger.debug("talking_point_dropped model=%s", model.__name__)
    return valid


async def generate_talking_points(
    store: IdentityStore, opportunity_id: str, user_id: str
) -> TalkingPoints:
    opportunity = store.get_opportunity(opportunity_id, user_id)
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)

    requirements = load_requirements(opportunity.get("requirements"))
    if not requirements:
        return TalkingPoints()

    claims = store.list_claims_with_evidence(user_id)
    if not claims:
        return TalkingPoints()

    completion = await ai_complete(
        "generate_talking_points",
        [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=build_user_prompt(requirements, claims)),
        ],
        temperature=0.3,
        max_tokens=4000,
        json_mode=True,
        user_id=user_id,
        opportunity_id=opportunity_id,
    )
    if not completion.content:
        raise AIGatewayError("No response while generating talking points", code="llm_empty_response")

    try:
        parsed = parse_json_content(completion.content)
    except json.JSONDecodeError as exc:
        raise AIGatewayError(
            f"Failed to parse talking points: {completion.content[:200]}", code="llm_invalid_json"
        ) from exc
    if not isinstance(parsed, dict):
        raise AIGatewayError("Talking points response is not a JSON object", code="llm_invalid_json")

    return TalkingPoints(
        strengths=_validated(parsed.get("strengths"), Strength),
        gaps=_validated(parsed.get("gaps"), Gap),
        inferences=_validated(parsed.get("inferences"), Inference),
    )
