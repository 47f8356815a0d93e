from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

EvidenceType = Literal["accomplishment", "skill_listed", "trait_indicator", "education", "certification"]
SourceType = Literal["resume", "story", "certification", "inferred"]
EntryType = Literal["work", "venture", "additional"]

EVIDENCE_TYPES: tuple[str, ...] = (
    "accomplishment",
    "skill_listed",
    "trait_indicator",
    "education",
    "certification",
)


class EvidenceContext(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str | None = None
    company: str | None = None
    dates: str | None = None
    institution: str | None = None
    year: str | None = None

    @field_validator("role", "company", "dates", "institution", "year", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class ExtractedEvidence(BaseModel):
    text: str
    type: EvidenceType
    context: EvidenceContext | None = None
    source_type: SourceType = "resume"


class EvidenceItem(BaseModel):
    """Stored evidence ready for synthesis."""

    id: str
    text: str
    type: EvidenceType
    embedding: list[float] = Field(default_factory=list)
    source_type: SourceType = "resume"
    evidence_date: date | None = None


class WorkHistoryEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    company: str
    company_domain: str | None = None
    title: str
    start_date: str
    end_date: str | None = None
    location: str | None = None
    summary: str | None = None
    entry_type: EntryType = "work"


class WorkHistoryItem(WorkHistoryEntry):
    id: str
