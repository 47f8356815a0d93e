from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

ClaimType = Literal["skill", "achievement", "attribute", "education", "certification"]
StrengthLevel = Literal["weak", "medium", "strong"]
ClaimAction = Literal["created", "matched"]


class NewClaim(BaseModel):
    type: ClaimType
    label: str = Field(min_length=1)
    description: str = ""

    @field_validator("label")
    @classmethod
    def _strip_label(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("label must not be blank")
        return stripped


class BatchDecision(BaseModel):
    evidence_id: str
    match: str | None = None
    strength: StrengthLevel = "medium"
    new_claim: NewClaim | None = None

    @field_validator("strength", mode="before")
    @classmethod
    def _normalize_strength(cls, value: Any) -> str:
        normalized = str(value or "").strip().lower()
        return normalized if normalized in {"weak", "medium", "strong"} else "medium"


class RelevantClaim(BaseModel):
    id: str | None = None
    type: str
    label: str
    description: str | None = None
    confidence: float = 0.5
    similarity: float = 0.0


class ClaimUpdate(BaseModel):
    action: ClaimAction
    label: str


class SynthesisProgress(BaseModel):
    current: int
    total: int


class SynthesisResult(BaseModel):
    claims_created: int = 0
    claims_updated: int = 0


class ClaimSummary(BaseModel):
    id: str
    type: str
    label: str
    description: str | None = None
    confidence: float
    evidence_count: int = 0
    created_at: str | None = None
    updated_at: str | None = None


class ClaimEvidence(BaseModel):
    evidence_id: str
    text: str
    evidence_type: str
    strength: StrengthLevel
    source_type: str
    evidence_date: str | None = None
    context: dict[str, Any] | None = None


class ClaimDetail(BaseModel):
    id: str
    type: str
    label: str
    description: str | None = None
    confidence: float
    evidence: list[ClaimEvidence] = Field(default_factory=list)
