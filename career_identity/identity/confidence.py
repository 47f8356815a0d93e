"""Claim confidence from supporting evidence.

Each evidence item contributes ``strength x recency_decay x source_weight``.
Skills fade faster than achievements, and character attributes last longest.
Education and certifications never decay.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Literal

SourceType = Literal["resume", "story", "certification", "inferred"]
ClaimType = Literal["skill", "achievement", "attribute", "education", "certification"]
StrengthLevel = Literal["weak", "medium", "strong"]

SOURCE_WEIGHTS: dict[str, float] = {
    "certification": 1.5,
    "resume": 1.0,
    "story": 0.8,
    "inferred": 0.6,
}

# Half-life in years.
CLAIM_HALF_LIVES: dict[str, float] = {
    "skill": 4.0,
    "achievement": 7.0,
    "attribute": 15.0,
    "education": math.inf,
    "certification": math.inf,
}

STRENGTH_MULTIPLIERS: dict[str, float] = {
    "strong": 1.2,
    "medium": 1.0,
    "weak": 0.7,
}

BASE_CONFIDENCE: tuple[float, ...] = (0.5, 0.7, 0.8, 0.9)
MAX_CONFIDENCE = 0.95

_SECONDS_PER_YEAR = 365.25 * 24 * 60 * 60


@dataclass(frozen=True)
class EvidenceInput:
    strength: str
    source_type: str
    evidence_date: date | datetime | None
    claim_type: str


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def parse_evidence_date(value: str | date | datetime | None) -> date | datetime | None:
    if value is None or isinstance(value, (date, datetime)):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def calculate_recency_decay(
    evidence_date: date | datetime | None,
    claim_type: str,
    reference_date: date | datetime | None = None,
) -> float:
    if evidence_date is None:
        return 1.0

    half_life = CLAIM_HALF_LIVES.get(claim_type, math.inf)
    if math.isinf(half_life):
        return 1.0

    reference = _as_datetime(reference_date) if reference_date else datetime.now(timezone.utc)
    age_years = (reference - _as_datetime(evidence_date)).total_seconds() / _SECONDS_PER_YEAR
    if age_years <= 0:
        return 1.0
    return 0.5 ** (age_years / half_life)


def get_source_weight(source_type: str | None) -> float:
    return SOURCE_WEIGHTS.get(source_type or "", 1.0)


def calculate_evidence_weight(
    evidence: EvidenceInput, reference_date: date | datetime | None = None
) -> float:
    strength = STRENGTH_MULTIPLIERS.get(evidence.strength, STRENGTH_MULTIPLIERS["medium"])
    decay = calculate_recency_decay(evidence.evidence_date, evidence.claim_type, reference_date)
    return strength * decay * get_source_weight(evidence.source_type)


def calculate_claim_confidence(
    evidence_items: Iterable[EvidenceInput], reference_date: date | datetime | None = None
) -> float:
    """Base confidence for the evidence count scaled by the mean evidence weight, capped at 0.95."""
    items = list(evidence_items)
    if not items:
        return 0.0

    base = BASE_CONFIDENCE[min(len(items), len(BASE_CONFIDENCE)) - 1]
    weights = [calculate_evidence_weight(item, reference_date) for item in items]
    return min(base * (sum(weights) / len(weights)), MAX_CONFIDENCE)
