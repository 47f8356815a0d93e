from __future__ import annotations

from pydantic import BaseModel, Field


class Strength(BaseModel):
    requirement: str
    requirement_type: str = ""
    claim_id: str = ""
    claim_label: str = ""
    evidence_summary: str = ""
    framing: str = ""
    confidence: float = 0.0


class Gap(BaseModel):
    requirement: str
    requirement_type: str = ""
    mitigation: str = ""
    related_claims: list[str] = Field(default_factory=list)


class Inference(BaseModel):
    inferred_claim: str
    derived_from: list[str] = Field(default_factory=list)
    reasoning: str = ""


class TalkingPoints(BaseModel):
    strengths: list[Strength] = Field(default_factory=list)
    gaps: list[Gap] = Field(default_factory=list)
    inferences: list[Inference] = Field(default_factory=list)
