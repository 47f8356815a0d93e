from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StoryRequest(BaseModel):
    text: str | None = None


class ProcessingSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_id: str
    evidence_count: int = 0
    work_history_count: int = 0
    claims_created: int = 0
    claims_updated: int = 0
    issues_found: int | None = None

    def to_event(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class DocumentEvidence(BaseModel):
    id: str
    text: str
    evidence_type: str
    source_type: str | None = None
    evidence_date: str | None = None
    created_at: str | None = None


class DocumentDetail(BaseModel):
    id: str
    type: str
    filename: str | None = None
    raw_text: str | None = None
    status: str | None = None
    created_at: str | None = None
    evidence: list[DocumentEvidence] = Field(default_factory=list)
