from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

RequirementType = Literal["education", "certification", "skill", "experience"]
RequirementCategory = Literal["mustHave", "niceToHave"]

REQUIREMENT_TYPES: tuple[str, ...] = ("education", "certification", "skill", "experience")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClassifiedRequirement(BaseModel):
    text: str
    type: RequirementType = "skill"

    @field_validator("type", mode="before")
    @classmethod
    def _default_unknown_type(cls, value: Any) -> str:
        normalized = str(value or "").strip().lower()
        return normalized if normalized in REQUIREMENT_TYPES else "skill"


class Requirement(BaseModel):
    text: str
    category: RequirementCategory
    type: RequirementType = "skill"


class ExtractedOpportunity(_CamelModel):
    title: str = "Unknown Position"
    company: str | None = None
    must_have: list[ClassifiedRequirement] = Field(default_factory=list)
    nice_to_have: list[ClassifiedRequirement] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)


class OpportunityCreateRequest(BaseModel):
    description: str = Field(min_length=1, max_length=50000)
    url: str | None = None


class OpportunityCreateResponse(_CamelModel):
    opportunity_id: str
    title: str
    company: str | None = None
    requirements: dict[str, Any]


class MatchedClaim(BaseModel):
    id: str
    type: str
    label: str
    description: str | None = None
    confidence: float
    similarity: float


class RequirementMatch(_CamelModel):
    requirement: Requirement
    matches: list[MatchedClaim] = Field(default_factory=list)
    best_match: MatchedClaim | None = None


class MatchResult(_CamelModel):
    overall_score: int = 0
    must_have_score: int = 0
    nice_to_have_score: int = 0
    requirement_matches: list[RequirementMatch] = Field(default_factory=list)
    gaps: list[Requirement] = Field(default_factory=list)
    strengths: list[RequirementMatch] = Field(default_factory=list)
