"""
Feedback service: one structured feedback entry per participant per week.

The (profile_id, week_number) unique constraint is what guarantees no
duplicates. The existence check before insert only produces a friendlier
conflict message in the common, non-racing case.
"""
from typing import Optional, List, Dict, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auth.dependencies import Principal
from core.errors import Conflict, NotFound, InternalError
from core.logger import logger
from core.week import week_number as calculate_week_number
from database.models import FeedbackEntry, Profile
from services.profile_service import ProfileService

FEEDBACK_FIELDS = (
    "product_usage",
    "perceived_changes",
    "concerns_or_issues",
    "emotional_response",
    "next_week_focus",
    "overall_rating",
)


def _is_duplicate_week(error: IntegrityError) -> bool:
    """True when the violation is the (profile_id, week_number) uniqueness, not another constraint."""
    message = str(error.orig).lower()
    return "uq_feedback_profile_week" in message or "unique" in message or "duplicate" in message


def _conflict(week: int) -> Conflict:
    return Conflict(
        f"Feedback for week {week} already exists. You can update it instead.",
        details={"week_number": week, "update_path": f"/api/focus-group/feedback/{week}"}
    )


class FeedbackService:
    """Weekly feedback register."""

    @staticmethod
    def _find(db: Session, profile_id: str, week: int) -> Optional[FeedbackEntry]:
        return db.query(FeedbackEntry).filter(
            FeedbackEntry.profile_id == profile_id,
            FeedbackEntry.week_number == week
        ).first()

    @staticmethod
    def resolve_week(profile: Profile, requested: Optional[int]) -> int:
        """Explicit week wins; otherwise derive it from enrollment."""
        calculated = calculate_week_number(profile.created_at)
        if requested is None:
            return calculated
        if requested != calculated:
            logger.warning(
                f"Week number mismatch for profile {profile.id}: provided {requested}, calculated {calculated}"
            )
        return requested

    @staticmethod
    def submit(db: Session, principal: Principal, fields: Dict[str, Any], week: Optional[int] = None) -> FeedbackEntry:
        """
        Submit the caller's feedback for a week.

        Args:
            db: Database session
            principal: Caller
            fields: Validated feedback fields
            week: Week number; derived from the profile when omitted

        Raises:
            NotFound: Caller has no profile
            Conflict: Feedback for that week already exists
            InternalError: Storage failure (not retried)
        """
        profile = ProfileService.require_for_principal(db, principal)
        target_week = FeedbackService.resolve_week(profile, week)

        if FeedbackService._find(db, profile.id, target_week) is not None:
            raise _conflict(target_week)

        entry = FeedbackEntry(
            profile_id=profile.id,
            week_number=target_week,
            **{k: v for k, v in fields.items() if k in FEEDBACK_FIELDS}
        )
        db.add(entry)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if not _is_duplicate_week(e):
                logger.error(f"Feedback rejected by database constraint: {e.orig}", exc_info=True)
                raise InternalError("Failed to save feedback", details=str(e.orig))
            # Lost the race against a concurrent submission for the same week
            logger.info(f"Feedback uniqueness violation for profile {profile.id}, week {target_week}: {e.orig}")
            raise _conflict(target_week)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save feedback: {e}", exc_info=True)
            raise InternalError("Failed to save feedback", details=str(e))

        db.refresh(entry)
        logger.info(f"Feedback submitted for profile {profile.id}, week {target_week}")
        return entry

    @staticmethod
    def update(db: Session, principal: Principal, week: int, fields: Dict[str, Any]) -> FeedbackEntry:
        """Revise the caller's own entry for a week."""
        profile = ProfileService.require_for_principal(db, principal)
        entry = FeedbackService._find(db, profile.id, week)
        if entry is None:
            raise NotFound(f"No feedback found for week {week}")

        for name, value in fields.items():
            if name in FEEDBACK_FIELDS:
                setattr(entry, name, value)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update feedback: {e}", exc_info=True)
            raise InternalError("Failed to update feedback", details=str(e))
        db.refresh(entry)
        return entry

    @staticmethod
    def list_for_profile(db: Session, profile_id: str) -> List[FeedbackEntry]:
        try:
            return db.query(FeedbackEntry).filter(
                FeedbackEntry.profile_id == profile_id
            ).order_by(FeedbackEntry.week_number.asc()).all()
        except SQLAlchemyError as e:
            raise InternalError("Failed to fetch feedback", details=str(e))

    @staticmethod
    def list(db: Session, principal: Principal) -> List[FeedbackEntry]:
        """All of the caller's entries, week ascending."""
        profile = ProfileService.require_for_principal(db, principal)
        return FeedbackService.list_for_profile(db, profile.id)

    @staticmethod
    def get_by_week(db: Session, principal: Principal, week: int) -> Optional[FeedbackEntry]:
        profile = ProfileService.require_for_principal(db, principal)
        return FeedbackService._find(db, profile.id, week)
