from fastapi import APIRouter, Depends

from career_identity.core.security import require_user_id
from career_identity.schemas.evidence import WorkHistoryItem
from career_identity.store import IdentityStore, get_store

router = APIRouter()


@router.get("/work-history", response_model=list[WorkHistoryItem])
def list_work_history(
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    return [WorkHistoryItem(**entry) for entry in store.list_work_history(user_id)]
