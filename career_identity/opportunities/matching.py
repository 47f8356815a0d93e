from __future__ import annotations

import logging
import math
from typing import Any

from career_identity.core.scoring import get_scoring_value
from career_identity.opportunities.extraction import normalize_requirements
from career_identity.schemas.opportunity import (
    MatchedClaim,
    MatchResult,
    Requirement,
    RequirementMatch,
)
from career_identity.semantic import generate_embeddings
from career_identity.store import IdentityStore

logger = logging.getLogger(__name__)

VALID_CLAIM_TYPES: dict[str, tuple[str, ...]] = {
    "education": ("education",),
    "certification": ("certification",),
    "skill": ("skill", "achievement"),
    "experience": ("skill", "achievement", "attribute"),
}


class OpportunityNotFound(RuntimeError):
    def __init__(self, opportunity_id: str):
        super().__init__(f"Opportunity not found: {opportunity_id}")
        self.opportunity_id = opportunity_id


def load_requirements(requirements: dict[str, Any] | None) -> list[Requirement]:
    if not isinstance(requirements, dict):
        return []
    return [
        Requirement(text=item.text, category=category, type=item.type)
        for category in ("mustHave", "niceToHave")
        for item in normalize_requirements(requirements.get(category))
    ]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _category_score(matches: list[RequirementMatch], category: str) -> int:
    in_category = [match for match in matches if match.requirement.category == category]
    if not in_category:
        return 100
    matched = sum(1 for match in in_category if match.best_match is not None)
    return _round_half_up(matched / len(in_category) * 100)


async def compute_opportunity_matches(
    store: IdentityStore, opportunity_id: str, user_id: str
) -> MatchResult:
    """Score how well a user's claims cover an opportunity's requirements."""
    opportunity = store.get_opportunity(opportunity_id, user_id)
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)

    requirements = load_requirements(opportunity.get("requirements"))
    if not requirements:
        return MatchResult()

    threshold = float(get_scoring_value("matching.threshold", 0.4))
    match_count = int(get_scoring_value("matching.match_count", 10))
    top_matches = int(get_scoring_value("matching.top_matches", 3))
    strength_similarity = float(get_scoring_value("matching.strength_similarity", 0.4))
    must_weight = float(get_scoring_value("matching.weights.must_have", 0.7))
    nice_weight = float(get_scoring_value("matching.weights.nice_to_have", 0.3))

    embeddings = await generate_embeddings([requirement.text for requirement in requirements])

    requirement_matches: list[RequirementMatch] = []
    for requirement, embedding in zip(requirements, embeddings):
        try:
            rows = store.match_identity_claims(embedding, user_id, threshold, match_count)
        except Exception as exc:
            logger.warning("claim_match_failed requirement=%r: %s", requirement.text, exc)
            rows = []
        valid_types = VALID_CLAIM_TYPES.get(requirement.type, VALID_CLAIM_TYPES["skill"])
        matches = [MatchedClaim(**row) for row in rows if row["type"] in valid_types][:top_matches]
        requirement_matches.append(
            RequirementMatch(
                requirement=requirement,
                matches=matches,
                best_match=matches[0] if matches else None,
            )
        )

    must_have_score = _category_score(requirement_matches, "mustHave")
    nice_to_have_score = _category_score(requirement_matches, "niceToHave")
    strengths = sorted(
        (
            match
            for match in requirement_matches
            if match.best_match is not None and match.best_match.similarity > strength_similarity
        ),
        key=lambda match: match.best_match.similarity,
        reverse=True,
    )

    return MatchResult(
        overall_score=_round_half_up(must_have_score * must_weight + nice_to_have_score * nice_weight),
        must_have_score=must_have_score,
        nice_to_have_score=nice_to_have_score,
        requirement_matches=requirement_matches,
        gaps=[match.requirement for match in requirement_matches if match.best_match is None],
        strengths=strengths,
    )
