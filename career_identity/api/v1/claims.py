from fastapi import APIRouter, Depends, HTTPException, status

from career_identity.core.security import require_user_id
from career_identity.schemas.claims import ClaimDetail, ClaimEvidence, ClaimSummary
from career_identity.store import IdentityStore, get_store

router = APIRouter()


@router.get("/claims", response_model=list[ClaimSummary])
def list_claims(
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    return [ClaimSummary(**claim) for claim in store.list_claims(user_id)]


@router.get("/claims/{claim_id}", response_model=ClaimDetail)
def get_claim(
    claim_id: str,
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    claim = store.get_claim(claim_id, user_id)
    if claim is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Claim not found")
    return ClaimDetail(
        id=claim["id"],
        type=claim["type"],
        label=claim["label"],
        description=claim["description"],
        confidence=claim["confidence"],
        evidence=[ClaimEvidence(**link) for link in store.get_claim_evidence(claim_id)],
    )
