"""
Weekly feedback APIs (participants).
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from auth.dependencies import Principal, get_current_principal, get_db_session
from core.responses import success_response
from database.models import FeedbackEntry
from services.audit_service import AuditService
from services.feedback_service import FeedbackService
import config


router = APIRouter(prefix="/api/focus-group/feedback", tags=["feedback"])


class FeedbackFields(BaseModel):
    """Free-text answers plus an optional 1-10 rating."""
    product_usage: Optional[str] = Field(None, max_length=config.MAX_TEXT_LENGTH)
    perceived_changes: Optional[str] = Field(None, max_length=config.MAX_TEXT_LENGTH)
    concerns_or_issues: Optional[str] = Field(None, max_length=config.MAX_TEXT_LENGTH)
    emotional_response: Optional[str] = Field(None, max_length=config.MAX_TEXT_LENGTH)
    next_week_focus: Optional[str] = Field(None, max_length=config.MAX_TEXT_LENGTH)
    overall_rating: Optional[int] = Field(None, ge=1, le=10)


class FeedbackCreate(FeedbackFields):
    """Submit feedback. week_number is derived from enrollment when omitted."""
    week_number: Optional[int] = Field(None, ge=1, le=config.STUDY_LENGTH_WEEKS)


class FeedbackResponse(BaseModel):
    id: str
    profile_id: str
    week_number: int
    product_usage: Optional[str]
    perceived_changes: Optional[str]
    concerns_or_issues: Optional[str]
    emotional_response: Optional[str]
    next_week_focus: Optional[str]
    overall_rating: Optional[int]
    created_at: datetime
    updated_at: datetime


def feedback_to_response(entry: FeedbackEntry) -> FeedbackResponse:
    return FeedbackResponse(
        id=entry.id,
        profile_id=entry.profile_id,
        week_number=entry.week_number,
        product_usage=entry.product_usage,
        perceived_changes=entry.perceived_changes,
        concerns_or_issues=entry.concerns_or_issues,
        emotional_response=entry.emotional_response,
        next_week_focus=entry.next_week_focus,
        overall_rating=entry.overall_rating,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    payload: FeedbackCreate,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """
    Submit feedback for a study week.
    A second submission for the same week is rejected with 409.
    """
    fields = payload.model_dump(exclude={"week_number"}, exclude_unset=True)
    entry = FeedbackService.submit(db, principal, fields, week=payload.week_number)

    AuditService.log_from_request(
        db=db,
        request=request,
        action="feedback_submit",
        user_id=principal.principal_id,
        resource_type="feedback",
        resource_id=entry.id,
        details={"week_number": entry.week_number}
    )

    return success_response(
        feedback_to_response(entry),
        status_code=status.HTTP_201_CREATED,
        message="Feedback submitted successfully"
    )


@router.get("")
async def get_feedback(
    week: Optional[int] = Query(None, ge=1, le=config.STUDY_LENGTH_WEEKS),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """
    List own feedback, or fetch a single week with ?week=N.
    A week with no entry returns {"feedback": null}.
    """
    if week is not None:
        entry = FeedbackService.get_by_week(db, principal, week)
        return success_response({"feedback": feedback_to_response(entry) if entry else None})

    entries = FeedbackService.list(db, principal)
    return success_response([feedback_to_response(e) for e in entries])


@router.put("/{week}")
async def update_feedback(
    week: int,
    payload: FeedbackFields,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """Revise own feedback for a week."""
    entry = FeedbackService.update(db, principal, week, payload.model_dump(exclude_unset=True))

    AuditService.log_from_request(
        db=db,
        request=request,
        action="feedback_update",
        user_id=principal.principal_id,
        resource_type="feedback",
        resource_id=entry.id,
        details={"week_number": week}
    )

    return success_response(feedback_to_response(entry), message="Feedback updated successfully")
