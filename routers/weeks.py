"""
Study week APIs.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth.dependencies import Principal, get_current_principal, get_db_session
from core.responses import success_response
from core.week import week_number, week_options
from services.profile_service import ProfileService
import config


router = APIRouter(prefix="/api/focus-group/weeks", tags=["weeks"])


@router.get("")
async def get_weeks(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """
    Week selector options and the caller's current week.
    current_week is null until the caller has enrolled.
    """
    profile = ProfileService.find_for_principal(db, principal.principal_id)
    return success_response({
        "current_week": week_number(profile.created_at) if profile else None,
        "study_length_weeks": config.STUDY_LENGTH_WEEKS,
        "options": week_options(),
    })
