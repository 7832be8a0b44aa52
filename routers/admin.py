"""
Study administration APIs (administrators only).
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from auth.dependencies import Principal, require_administrator, get_db_session, get_object_store
from core.responses import success_response
from routers.feedback import feedback_to_response
from routers.profile import profile_to_response
from services.audit_service import AuditService
from services.feedback_service import FeedbackService
from services.profile_service import ProfileService
from services.upload_service import UploadService, serialize_upload
import config


router = APIRouter(prefix="/api/focus-group/admin", tags=["admin"])


class ParticipantUpdate(BaseModel):
    """Coordinator changes to a participant."""
    participation_status: Optional[str] = None
    is_admin: Optional[bool] = None
    cohort_name: Optional[str] = Field(None, max_length=100)


class UploadVerify(BaseModel):
    verified: bool = True


@router.get("/participants")
async def list_participants(
    participation_status: Optional[str] = Query(None, alias="status"),
    principal: Principal = Depends(require_administrator),
    db: Session = Depends(get_db_session)
):
    """All participant profiles, oldest enrollment first. Optional ?status= filter."""
    profiles = ProfileService.list_profiles(db, participation_status=participation_status)
    return success_response([profile_to_response(p) for p in profiles])


@router.patch("/participants/{profile_id}")
async def update_participant(
    profile_id: str,
    payload: ParticipantUpdate,
    request: Request,
    principal: Principal = Depends(require_administrator),
    db: Session = Depends(get_db_session)
):
    """Change participation status, administrator flag or cohort."""
    changes = payload.model_dump(exclude_unset=True)
    profile = ProfileService.admin_update(db, profile_id, **changes)

    AuditService.log_from_request(
        db=db,
        request=request,
        action="participant_update",
        user_id=principal.principal_id,
        resource_type="profile",
        resource_id=profile.id,
        details=changes
    )

    return success_response(profile_to_response(profile), message="Participant updated successfully")


@router.get("/participants/{profile_id}/feedback")
async def participant_feedback(
    profile_id: str,
    principal: Principal = Depends(require_administrator),
    db: Session = Depends(get_db_session)
):
    profile = ProfileService.get_by_id(db, profile_id)
    entries = FeedbackService.list_for_profile(db, profile.id)
    return success_response([feedback_to_response(e) for e in entries])


@router.get("/participants/{profile_id}/uploads")
async def participant_uploads(
    profile_id: str,
    week: Optional[int] = Query(None, ge=1, le=config.MAX_UPLOAD_WEEK),
    principal: Principal = Depends(require_administrator),
    db: Session = Depends(get_db_session),
    store=Depends(get_object_store),
):
    """A participant's uploads, newest first, optionally for one week, with signed URLs."""
    profile = ProfileService.get_by_id(db, profile_id)
    records = UploadService.records_for_profile(db, profile.id, week)
    return success_response(UploadService.with_signed_urls(store, records))


@router.patch("/uploads/{upload_id}/verify")
async def verify_upload(
    upload_id: str,
    request: Request,
    payload: Optional[UploadVerify] = None,
    principal: Principal = Depends(require_administrator),
    db: Session = Depends(get_db_session)
):
    """Mark an upload as reviewed by study staff."""
    verified = payload.verified if payload is not None else True
    record = UploadService.set_verified(db, principal, upload_id, verified)

    AuditService.log_from_request(
        db=db,
        request=request,
        action="upload_verify",
        user_id=principal.principal_id,
        resource_type="upload",
        resource_id=record.id,
        details={"verified": verified}
    )

    return success_response(serialize_upload(record), message="Upload updated successfully")
