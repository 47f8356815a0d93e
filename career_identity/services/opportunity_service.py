from __future__ import annotations

import logging

from career_identity.opportunities.extraction import extract_opportunity
from career_identity.schemas.opportunity import ExtractedOpportunity, OpportunityCreateResponse
from career_identity.semantic import generate_embedding
from career_identity.store import IdentityStore

logger = logging.getLogger(__name__)


def build_embedding_text(extracted: ExtractedOpportunity) -> str:
    requirement_texts = ". ".join(requirement.text for requirement in extracted.must_have[:5])
    return f"{extracted.title} at {extracted.company or 'Unknown'}. {requirement_texts}"


async def add_opportunity(
    store: IdentityStore,
    user_id: str,
    description: str,
    url: str | None = None,
) -> OpportunityCreateResponse:
    extracted = await extract_opportunity(description, user_id=user_id)
    requirements = {
        "mustHave": [item.model_dump() for item in extracted.must_have],
        "niceToHave": [item.model_dump() for item in extracted.nice_to_have],
        "responsibilities": extracted.responsibilities,
    }
    embedding = await generate_embedding(build_embedding_text(extracted))

    opportunity = store.create_opportunity(
        user_id=user_id,
        title=extracted.title,
        company=extracted.company,
        url=url,
        description=description,
        requirements=requirements,
        embedding=embedding,
    )
    logger.info(
        "opportunity_created id=%s must_have=%s nice_to_have=%s",
        opportunity["id"],
        len(extracted.must_have),
        len(extracted.nice_to_have),
    )
    return OpportunityCreateResponse(
        opportunity_id=opportunity["id"],
        title=opportunity["title"],
        company=opportunity["company"],
        requirements=requirements,
    )
