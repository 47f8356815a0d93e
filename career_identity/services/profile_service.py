from __future__ import annotations

import json
import logging

from career_identity.opportunities.matching import OpportunityNotFound
from career_identity.opportunities.narrative import generate_narrative
from career_identity.opportunities.talking_points import generate_talking_points
from career_identity.schemas.profile import ProfileResponse, TailoredProfile
from career_identity.store import IdentityStore

logger = logging.getLogger(__name__)


def _to_profile(record: dict) -> TailoredProfile:
    return TailoredProfile(
        id=record["id"],
        talking_points=record["talking_points"] or {},
        narrative=record.get("narrative") or "",
        created_at=record.get("created_at") or "",
    )


async def generate_profile(
    store: IdentityStore,
    opportunity_id: str,
    user_id: str,
    regenerate: bool = False,
) -> ProfileResponse:
    """Return the tailored profile for an opportunity, building it when absent or on regenerate."""
    opportunity = store.get_opportunity(opportunity_id, user_id)
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)

    if regenerate:
        store.delete_tailored_profile(user_id, opportunity_id)
    else:
        existing = store.get_tailored_profile(user_id, opportunity_id)
        if existing is not None:
            return ProfileResponse(profile=_to_profile(existing), cached=True)

    talking_points = await generate_talking_points(store, opportunity_id, user_id)
    narrative = await generate_narrative(
        talking_points,
        opportunity["title"],
        opportunity.get("company"),
        user_id=user_id,
        opportunity_id=opportunity_id,
    )
    record = store.insert_tailored_profile(
        user_id=user_id,
        opportunity_id=opportunity_id,
        talking_points=talking_points.model_dump(),
        narrative=narrative,
    )
    logger.info(
        json.dumps(
            {
                "event": "tailored_profile_created",
                "opportunity_id": opportunity_id,
                "strengths": len(talking_points.strengths),
                "gaps": len(talking_points.gaps),
                "regenerated": regenerate,
            }
        )
    )
    return ProfileResponse(profile=_to_profile(record), cached=False)
