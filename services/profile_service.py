"""
Profile service: intake records for study participants.
"""
from typing import Optional, List, Dict, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auth.dependencies import Principal, is_allow_listed_admin
from core.errors import NotFound, Conflict, BadRequest, InternalError
from core.logger import logger
from core.week import week_number
from database.models import Profile, ParticipationStatus

# Fields a participant may set on their own profile
INTAKE_FIELDS = (
    "age_range",
    "skin_type",
    "fitzpatrick_skin_tone",
    "top_concerns",
    "lifestyle",
    "climate_exposure",
    "current_routine",
    "known_sensitivities",
    "image_consent",
    "data_use_consent",
)

PROFILE_REQUIRED_MESSAGE = "Profile not found. Please complete your profile first."


class ProfileService:
    """Create, read and administer participant profiles."""

    @staticmethod
    def find_for_principal(db: Session, principal_id: str) -> Optional[Profile]:
        return db.query(Profile).filter(Profile.user_id == principal_id).first()

    @staticmethod
    def require_for_principal(db: Session, principal: Principal) -> Profile:
        """Caller's profile, or NotFound: intake must be completed first."""
        profile = ProfileService.find_for_principal(db, principal.principal_id)
        if profile is None:
            raise NotFound(PROFILE_REQUIRED_MESSAGE)
        return profile

    @staticmethod
    def get_by_id(db: Session, profile_id: str) -> Profile:
        profile = db.query(Profile).filter(Profile.id == profile_id).first()
        if profile is None:
            raise NotFound("Participant not found")
        return profile

    @staticmethod
    def current_week(profile: Profile) -> int:
        return week_number(profile.created_at)

    @staticmethod
    def create_profile(db: Session, principal: Principal, fields: Dict[str, Any]) -> Profile:
        """
        Complete registration by creating the caller's profile.

        Allow-listed administrator emails get the database flag at creation;
        from then on the flag alone decides administrator status.
        """
        if ProfileService.find_for_principal(db, principal.principal_id) is not None:
            raise Conflict("Profile already exists. Update it instead.")

        profile = Profile(
            user_id=principal.principal_id,
            email=principal.email,
            is_admin=is_allow_listed_admin(principal.email),
            participation_status=ParticipationStatus.ACTIVE.value,
            **{k: v for k, v in fields.items() if k in INTAKE_FIELDS}
        )
        db.add(profile)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise Conflict("Profile already exists. Update it instead.")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create profile for {principal.principal_id}: {e}", exc_info=True)
            raise InternalError("Failed to create profile", details=str(e))
        db.refresh(profile)
        logger.info(f"Created profile {profile.id} for principal {principal.principal_id}")
        return profile

    @staticmethod
    def update_intake(db: Session, principal: Principal, fields: Dict[str, Any]) -> Profile:
        profile = ProfileService.require_for_principal(db, principal)
        for name, value in fields.items():
            if name in INTAKE_FIELDS:
                setattr(profile, name, value)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise InternalError("Failed to update profile", details=str(e))
        db.refresh(profile)
        return profile

    @staticmethod
    def list_profiles(db: Session, participation_status: Optional[str] = None) -> List[Profile]:
        query = db.query(Profile)
        if participation_status:
            query = query.filter(Profile.participation_status == participation_status)
        return query.order_by(Profile.created_at.asc()).all()

    @staticmethod
    def admin_update(
        db: Session,
        profile_id: str,
        participation_status: Optional[str] = None,
        is_admin: Optional[bool] = None,
        cohort_name: Optional[str] = None
    ) -> Profile:
        """Coordinator-only changes: status, administrator flag, cohort."""
        profile = ProfileService.get_by_id(db, profile_id)

        if participation_status is not None:
            allowed = {s.value for s in ParticipationStatus}
            if participation_status not in allowed:
                raise BadRequest(
                    f"Invalid participation status: {participation_status}",
                    details={"allowed": sorted(allowed)}
                )
            profile.participation_status = participation_status
        if is_admin is not None:
            profile.is_admin = is_admin
        if cohort_name is not None:
            profile.cohort_name = cohort_name

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise InternalError("Failed to update participant", details=str(e))
        db.refresh(profile)
        return profile
