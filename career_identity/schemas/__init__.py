from .claims import (
    BatchDecision,
    ClaimDetail,
    ClaimEvidence,
    ClaimSummary,
    ClaimUpdate,
    NewClaim,
    RelevantClaim,
    SynthesisProgress,
    SynthesisResult,
)
from .documents import DocumentDetail, DocumentEvidence, ProcessingSummary, StoryRequest
from .evidence import EvidenceContext, EvidenceItem, ExtractedEvidence, WorkHistoryEntry, WorkHistoryItem
from .opportunity import (
    ClassifiedRequirement,
    ExtractedOpportunity,
    MatchedClaim,
    MatchResult,
    OpportunityCreateRequest,
    OpportunityCreateResponse,
    Requirement,
    RequirementMatch,
)
from .profile import ProfileRequest, ProfileResponse, TailoredProfile
from .talking_points import Gap, Inference, Strength, TalkingPoints

__all__ = [
    "BatchDecision",
    "ClaimDetail",
    "ClaimEvidence",
    "ClaimSummary",
    "ClaimUpdate",
    "ClassifiedRequirement",
    "DocumentDetail",
    "DocumentEvidence",
    "EvidenceContext",
    "EvidenceItem",
    "ExtractedEvidence",
    "ExtractedOpportunity",
    "Gap",
    "Inference",
    "MatchedClaim",
    "MatchResult",
    "NewClaim",
    "OpportunityCreateRequest",
    "OpportunityCreateResponse",
    "ProcessingSummary",
    "ProfileRequest",
    "ProfileResponse",
    "RelevantClaim",
    "Requirement",
    "RequirementMatch",
    "Strength",
    "TailoredProfile",
    "StoryRequest",
    "SynthesisProgress",
    "SynthesisResult",
    "TalkingPoints",
    "WorkHistoryEntry",
    "WorkHistoryItem",
]
