from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Callable, Sequence

from pydantic import ValidationError

from career_identity.ai.gateway import ai_complete, parse_json_content
from career_identity.ai.types import ChatMessage
from career_identity.core.scoring import get_scoring_value
from career_identity.identity.confidence import (
    EvidenceInput,
    calculate_claim_confidence,
    parse_evidence_date,
)
from career_identity.identity.rag import find_relevant_claims_for_batch
from career_identity.schemas.claims import (
    BatchDecision,
    ClaimUpdate,
    RelevantClaim,
    SynthesisProgress,
    SynthesisResult,
)
from career_identity.schemas.evidence import EvidenceItem
from career_identity.semantic import generate_embeddings
from career_identity.store import IdentityStore, StoreError

logger = logging.getLogger(__name__)

BATCH_SIZE = 10

EVIDENCE_TO_CLAIM_TYPE: dict[str, str] = {
    "skill_listed": "skill",
    "accomplishment": "achievement",
    "trait_indicator": "attribute",
    "education": "education",
    "certification": "certification",
}

BATCH_SYSTEM_PROMPT = (
    "You are an identity synthesizer. Given multiple evidence items and existing claims, "
    "decide whether each evidence item supports an existing claim or requires a new one. "
    "Return ONLY a valid JSON array with one decision per evidence item."
)

ProgressCallback = Callable[[SynthesisProgress], None]
ClaimUpdateCallback = Callable[[ClaimUpdate], None]


def build_batch_prompt(evidence_items: Sequence[EvidenceItem], existing_claims: Sequence[RelevantClaim]) -> str:
    if existing_claims:
        claims_list = "\n".join(
            f'{index}. "{claim.label}" ({claim.type}) - {claim.description or "No description"}'
            for index, claim in enumerate(existing_claims, start=1)
        )
    else:
        claims_list = "No existing claims yet."

    evidence_list = "\n".join(
        f'{index}. [ID: {item.id}] "{item.text}" (type: {item.type} -> {EVIDENCE_TO_CLAIM_TYPE[item.type]})'
        for index, item in enumerate(evidence_items, start=1)
    )

    return f"""For each evidence item, determine if it matches an existing claim or needs a new one.

EXISTING CLAIMS:
{claims_list}

EVIDENCE ITEMS:
{evidence_list}

Rules:
1. If evidence clearly supports an existing claim, return match with the claim's exact label
2. If evidence shows a new capability, achievement, trait, degree or certification, create a new claim
3. New claim labels: concise (2-4 words), semantic, reusable
4. Strength: "strong" = direct evidence, "medium" = related, "weak" = tangential
5. Respect the evidence type -> claim type mapping shown in parentheses

Return a JSON array with EXACTLY {len(evidence_items)} decisions, one per evidence item:
[
  {{
    "evidence_id": "id-from-above",
    "match": "Exact label" or null,
    "strength": "weak" | "medium" | "strong",
    "new_claim": null or {{"type": "skill|achievement|attribute|education|certification", "label": "...", "description": "..."}}
  }}
]"""


def _chunk(items: Sequence[EvidenceItem], size: int) -> list[Sequence[EvidenceItem]]:
    return [items[start : start + size] for start in range(0, len(items), size)]


def _parse_decision(raw: Any) -> BatchDecision | None:
    if not isinstance(raw, dict):
        return None
    try:
        return BatchDecision.model_validate(raw)
    except ValidationError:
        pass
    # A malformed new_claim should not discard a usable match.
    try:
        return BatchDecision.model_validate({**raw, "new_claim": None})
    except ValidationError:
        return None


def _find_by_label(claims: Sequence[RelevantClaim], label: str) -> RelevantClaim | None:
    for claim in claims:
        if claim.label == label and claim.id:
            return claim
    return None


async def synthesize_claims_batch(
    store: IdentityStore,
    user_id: str,
    evidence_items: Sequence[EvidenceItem],
    on_progress: ProgressCallback | None = None,
    on_claim_update: ClaimUpdateCallback | None = None,
) -> SynthesisResult:
    """Turn stored evidence into identity claims, one LLM call per batch.

    Claim updates are collected and only delivered to ``on_claim_update``
    after every batch has run and confidences have been recalculated.
    """
    result = SynthesisResult()
    batch_size = int(get_scoring_value("synthesis.batch_size", BATCH_SIZE))
    max_tokens = int(get_scoring_value("synthesis.max_tokens", 2000))
    batches = _chunk(list(evidence_items), batch_size)

    local_claims: list[RelevantClaim] = []
    claims_to_recalculate: list[str] = []
    claim_updates: list[ClaimUpdate] = []

    def _link(claim: RelevantClaim, evidence: EvidenceItem, strength: str) -> None:
        store.link_evidence(claim.id, evidence.id, strength)
        if claim.id not in claims_to_recalculate:
            claims_to_recalculate.append(claim.id)
        claim_updates.append(ClaimUpdate(action="matched", label=claim.label))
        result.claims_updated += 1

    for batch_index, batch in enumerate(batches):
        if on_progress:
            on_progress(SynthesisProgress(current=batch_index + 1, total=len(batches)))

        try:
            all_claims = find_relevant_claims_for_batch(store, user_id, batch)
            seen_ids = {claim.id for claim in all_claims}
            for claim in local_claims:
                if claim.id not in seen_ids:
                    all_claims.append(claim.model_copy(update={"confidence": 0.5, "similarity": 0.0}))

            completion = await ai_complete(
                "synthesize_claims",
                [
                    ChatMessage(role="system", content=BATCH_SYSTEM_PROMPT),
                    ChatMessage(role="user", content=build_batch_prompt(batch, all_claims)),
                ],
                temperature=0,
                max_tokens=max_tokens,
                user_id=user_id,
            )
            if not completion.content:
                continue

            try:
                raw_decisions = parse_json_content(completion.content)
            except json.JSONDecodeError:
                logger.warning(
                    "synthesis_parse_failed batch=%s content=%s", batch_index + 1, completion.content[:200]
                )
                continue
            if not isinstance(raw_decisions, list):
                logger.warning("synthesis_unexpected_shape batch=%s", batch_index + 1)
                continue

            evidence_by_id = {item.id: item for item in batch}
            pending: list[tuple[BatchDecision, EvidenceItem]] = []

            for raw in raw_decisions:
                decision = _parse_decision(raw)
                if decision is None:
                    continue
                evidence = evidence_by_id.get(decision.evidence_id)
                if evidence is None:
                    continue

                if decision.match:
                    matched = _find_by_label(all_claims, decision.match)
                    if matched is not None:
                        _link(matched, evidence, decision.strength)
                elif decision.new_claim:
                    existing = _find_by_label(all_claims, decision.new_claim.label)
                    if existing is not None:
                        _link(existing, evidence, decision.strength)
                    else:
                        pending.append((decision, evidence))

            if not pending:
                continue

            embeddings = await generate_embeddings([decision.new_claim.label for decision, _ in pending])
            for (decision, evidence), embedding in zip(pending, embeddings):
                new_claim = decision.new_claim
                created_here = _find_by_label(local_claims, new_claim.label)
                if created_here is not None:
                    _link(created_here, evidence, decision.strength)
                    continue

                confidence = calculate_claim_confidence(
                    [
                        EvidenceInput(
                            strength=decision.strength,
                            source_type=evidence.source_type,
                            evidence_date=evidence.evidence_date,
                            claim_type=new_claim.type,
                        )
                    ]
                )
                try:
                    stored = store.insert_claim(
                        user_id=user_id,
                        claim_type=new_claim.type,
                        label=new_claim.label,
                        description=new_claim.description,
                        confidence=confidence,
                        embedding=embedding,
                    )
                except StoreError:
                    logger.exception("synthesis_claim_insert_failed label=%s", new_claim.label)
                    continue

                store.link_evidence(stored["id"], evidence.id, decision.strength)
                local_claims.append(
                    RelevantClaim(
                        id=stored["id"],
                        type=new_claim.type,
                        label=new_claim.label,
                        description=new_claim.description,
                        confidence=confidence,
                    )
                )
                claim_updates.append(ClaimUpdate(action="created", label=new_claim.label))
                result.claims_created += 1
        except Exception:
            logger.exception(
                json.dumps({"event": "synthesis_batch_failed", "batch": batch_index + 1, "total": len(batches)})
            )

    for claim_id in claims_to_recalculate:
        try:
            recalculate_confidence(store, claim_id)
        except StoreError:
            logger.exception("confidence_recalculation_failed claim_id=%s", claim_id)

    if on_claim_update:
        for update in claim_updates:
            on_claim_update(update)

    return result


def recalculate_confidence(
    store: IdentityStore,
    claim_id: str,
    reference_date: date | datetime | None = None,
) -> float | None:
    """Recompute and persist a claim's confidence from all of its linked evidence."""
    claim = store.get_claim(claim_id)
    if not claim:
        return None

    links = store.get_claim_evidence(claim_id)
    if not links:
        return None

    items = [
        EvidenceInput(
            strength=link.get("strength") or "medium",
            source_type=link.get("source_type") or "resume",
            evidence_date=parse_evidence_date(link.get("evidence_date")),
            claim_type=claim["type"],
        )
        for link in links
    ]
    confidence = calculate_claim_confidence(items, reference_date)
    store.update_claim_confidence(claim_id, confidence)
    return confidence


def recalculate_all_confidences(
    store: IdentityStore,
    user_id: str | None = None,
    reference_date: date | datetime | None = None,
) -> int:
    updated = 0
    for claim_id in store.list_claim_ids(user_id):
        if recalculate_confidence(store, claim_id, reference_date) is not None:
            updated += 1
    logger.info("confidences_recalculated user_id=%s updated=%s", user_id, updated)
    return updated
