from fastapi import APIRouter, Depends, HTTPException, Request, status

from career_identity.ai.gateway import AIGatewayError
from career_identity.core.rate_limit import rate_limit
from career_identity.core.security import require_user_id
from career_identity.opportunities.matching import OpportunityNotFound, compute_opportunity_matches
from career_identity.opportunities.talking_points import generate_talking_points
from career_identity.schemas.opportunity import (
    MatchResult,
    OpportunityCreateRequest,
    OpportunityCreateResponse,
)
from career_identity.schemas.profile import ProfileRequest, ProfileResponse
from career_identity.schemas.talking_points import TalkingPoints
from career_identity.services.opportunity_service import add_opportunity
from career_identity.services.profile_service import generate_profile
from career_identity.store import IdentityStore, StoreError, get_store

router = APIRouter()


def _not_found(exc: OpportunityNotFound) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _upstream_error(exc: AIGatewayError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"code": exc.code, "message": str(exc)},
    )


@router.post("/opportunities", response_model=OpportunityCreateResponse, status_code=status.HTTP_201_CREATED)
@rate_limit()
async def create_opportunity(
    request: Request,
    payload: OpportunityCreateRequest,
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    _ = request
    try:
        return await add_opportunity(store, user_id, payload.description, url=payload.url)
    except AIGatewayError as exc:
        raise _upstream_error(exc) from exc
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.get("/opportunities/{opportunity_id}/match", response_model=MatchResult)
async def match_opportunity(
    opportunity_id: str,
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    try:
        return await compute_opportunity_matches(store, opportunity_id, user_id)
    except OpportunityNotFound as exc:
        raise _not_found(exc) from exc


@router.post("/opportunities/{opportunity_id}/talking-points", response_model=TalkingPoints)
@rate_limit()
async def talking_points(
    request: Request,
    opportunity_id: str,
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    _ = request
    try:
        return await generate_talking_points(store, opportunity_id, user_id)
    except OpportunityNotFound as exc:
        raise _not_found(exc) from exc
    except AIGatewayError as exc:
        raise _upstream_error(exc) from exc


@router.post("/opportunities/{opportunity_id}/profile", response_model=ProfileResponse)
@rate_limit()
async def tailored_profile(
    request: Request,
    opportunity_id: str,
    payload: ProfileRequest | None = None,
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    _ = request
    regenerate = payload.regenerate if payload else False
    try:
        return await generate_profile(store, opportunity_id, user_id, regenerate=regenerate)
    except OpportunityNotFound as exc:
        raise _not_found(exc) from exc
    except AIGatewayError as exc:
        raise _upstream_error(exc) from exc
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
