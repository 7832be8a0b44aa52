"""
Participant profile APIs (All Authenticated Users).
"""
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from auth.dependencies import Principal, get_current_principal, get_db_session
from core.responses import success_response
from core.week import week_number
from database.models import Profile
from services.audit_service import AuditService
from services.profile_service import ProfileService
import config


router = APIRouter(prefix="/api/focus-group/profile", tags=["profile"])


class ProfileIntake(BaseModel):
    """Intake questionnaire. Every field is optional and opaque to study logic."""
    age_range: Optional[str] = Field(None, max_length=20)
    skin_type: Optional[str] = Field(None, max_length=50)
    fitzpatrick_skin_tone: Optional[int] = Field(None, ge=1, le=6)
    top_concerns: Optional[List[str]] = None
    lifestyle: Optional[List[str]] = None
    climate_exposure: Optional[str] = Field(None, max_length=255)
    current_routine: Optional[str] = Field(None, max_length=config.MAX_TEXT_LENGTH)
    known_sensitivities: Optional[str] = Field(None, max_length=config.MAX_TEXT_LENGTH)
    image_consent: Optional[bool] = None
    data_use_consent: Optional[bool] = None


class ProfileResponse(BaseModel):
    """Profile response model."""
    id: str
    user_id: str
    email: Optional[str]
    is_admin: bool
    age_range: Optional[str]
    skin_type: Optional[str]
    fitzpatrick_skin_tone: Optional[int]
    top_concerns: Optional[List[str]]
    lifestyle: Optional[List[str]]
    climate_exposure: Optional[str]
    current_routine: Optional[str]
    known_sensitivities: Optional[str]
    image_consent: bool
    data_use_consent: bool
    cohort_name: Optional[str]
    participation_status: str
    current_week: int
    created_at: datetime
    updated_at: datetime


def profile_to_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        user_id=profile.user_id,
        email=profile.email,
        is_admin=bool(profile.is_admin),
        age_range=profile.age_range,
        skin_type=profile.skin_type,
        fitzpatrick_skin_tone=profile.fitzpatrick_skin_tone,
        top_concerns=profile.top_concerns,
        lifestyle=profile.lifestyle,
        climate_exposure=profile.climate_exposure,
        current_routine=profile.current_routine,
        known_sensitivities=profile.known_sensitivities,
        image_consent=bool(profile.image_consent),
        data_use_consent=bool(profile.data_use_consent),
        cohort_name=profile.cohort_name,
        participation_status=profile.participation_status,
        current_week=week_number(profile.created_at),
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_profile(
    payload: ProfileIntake,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """
    Complete registration by submitting the intake questionnaire.
    Enrollment (week 1) starts now.
    """
    profile = ProfileService.create_profile(db, principal, payload.model_dump(exclude_unset=True))

    AuditService.log_from_request(
        db=db,
        request=request,
        action="profile_create",
        user_id=principal.principal_id,
        resource_type="profile",
        resource_id=profile.id
    )

    return success_response(
        profile_to_response(profile),
        status_code=status.HTTP_201_CREATED,
        message="Profile created successfully"
    )


@router.get("")
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """Get own profile with the current study week."""
    profile = ProfileService.require_for_principal(db, principal)
    return success_response(profile_to_response(profile))


@router.patch("")
async def update_profile(
    payload: ProfileIntake,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """
    Update own intake answers.
    Administrator flag, cohort and participation status are admin-only.
    """
    changes = payload.model_dump(exclude_unset=True)
    profile = ProfileService.update_intake(db, principal, changes)

    AuditService.log_from_request(
        db=db,
        request=request,
        action="profile_update",
        user_id=principal.principal_id,
        resource_type="profile",
        resource_id=profile.id,
        details={"fields": sorted(changes)}
    )

    return success_response(profile_to_response(profile), message="Profile updated successfully")
