from __future__ import annotations

import logging
from typing import Any, Sequence

from career_identity.core.scoring import get_scoring_value
from career_identity.schemas.claims import RelevantClaim
from career_identity.store import IdentityStore

logger = logging.getLogger(__name__)


def find_relevant_claims_for_batch(
    store: IdentityStore,
    user_id: str,
    evidence_items: Sequence[Any],
    *,
    similarity_threshold: float | None = None,
    max_claims_per_query: int | None = None,
) -> list[RelevantClaim]:
    """Vector-search the user's claims for every evidence embedding in a batch.

    Results from all queries are merged by claim id in first-seen order, so
    the synthesis prompt only sees claims that could plausibly match.
    """
    if not evidence_items:
        return []

    threshold = (
        similarity_threshold
        if similarity_threshold is not None
        else float(get_scoring_value("synthesis.rag.similarity_threshold", 0.5))
    )
    max_claims = (
        max_claims_per_query
        if max_claims_per_query is not None
        else int(get_scoring_value("synthesis.rag.max_claims_per_query", 25))
    )

    claims: dict[str, RelevantClaim] = {}
    for evidence in evidence_items:
        try:
            rows = store.find_relevant_claims_for_synthesis(
                evidence.embedding, user_id, threshold, max_claims
            )
        except Exception as exc:
            logger.warning("rag_query_failed evidence_id=%s: %s", getattr(evidence, "id", None), exc)
            continue
        for row in rows:
            if row["id"] not in claims:
                claims[row["id"]] = RelevantClaim(**row)
    return list(claims.values())
