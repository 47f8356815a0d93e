from fastapi import APIRouter, Depends

from career_identity.analytics import db as analytics_db
from career_identity.core.security import require_user_id

router = APIRouter()


@router.get("/usage/summary")
def usage_summary(user_id: str = Depends(require_user_id)):
    return analytics_db.get_summary(user_id=user_id)
