"""
Database models for the focus group study portal.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text,
    ForeignKey, JSON, Index, TypeDecorator, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship
import enum

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Custom Type Decorator for Enum Values
# ============================================================================

class EnumValue(TypeDecorator):
    """Type decorator to ensure enum values (not names) are stored."""
    impl = String
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        """Convert enum to its value when writing to database."""
        if value is None:
            return None
        if isinstance(value, enum.Enum):
            return value.value
        return value

    def process_result_value(self, value, dialect):
        """Convert database value back to enum when reading."""
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return self.enum_class(value)
            except ValueError:
                return value
        return value


# ============================================================================
# Enums
# ============================================================================

class SenderRole(str, enum.Enum):
    """Role of a message's author at send time."""
    ADMINISTRATOR = "administrator"
    PARTICIPANT = "participant"


class ParticipationStatus(str, enum.Enum):
    """Soft lifecycle of a participant; profiles are never hard-deleted."""
    ACTIVE = "active"
    PAUSED = "paused"
    WITHDRAWN = "withdrawn"
    COMPLETED = "completed"


# ============================================================================
# Models
# ============================================================================

class Profile(Base):
    """Participant study record, one per identity-provider principal."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(255), nullable=False, unique=True, index=True)  # Principal id from identity provider
    email = Column(String(255), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)

    # Intake fields (opaque to study logic)
    age_range = Column(String(20), nullable=True)
    skin_type = Column(String(50), nullable=True)
    fitzpatrick_skin_tone = Column(Integer, nullable=True)
    top_concerns = Column(JSON, nullable=True)
    lifestyle = Column(JSON, nullable=True)
    climate_exposure = Column(String(255), nullable=True)
    current_routine = Column(Text, nullable=True)
    known_sensitivities = Column(Text, nullable=True)

    # Consent
    image_consent = Column(Boolean, default=False, nullable=False)
    data_use_consent = Column(Boolean, default=False, nullable=False)

    # Cohort metadata (admin)
    cohort_name = Column(String(100), nullable=True)
    participation_status = Column(String(50), default=ParticipationStatus.ACTIVE.value, nullable=False)

    # Enrollment timestamp: week numbers are derived from created_at
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    feedback = relationship("FeedbackEntry", back_populates="profile", order_by="FeedbackEntry.week_number")
    uploads = relationship("UploadRecord", back_populates="profile")

    __table_args__ = (
        Index('idx_profile_admin', 'is_admin'),
        Index('idx_profile_status', 'participation_status'),
    )


class FeedbackEntry(Base):
    """Weekly structured feedback. One per (profile, week)."""
    __tablename__ = "focus_group_feedback"

    id = Column(String(36), primary_key=True, default=_uuid)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    week_number = Column(Integer, nullable=False)
    product_usage = Column(Text, nullable=True)
    perceived_changes = Column(Text, nullable=True)
    concerns_or_issues = Column(Text, nullable=True)
    emotional_response = Column(Text, nullable=True)
    next_week_focus = Column(Text, nullable=True)
    overall_rating = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    profile = relationship("Profile", back_populates="feedback")

    __table_args__ = (
        # Source of truth for "no duplicate weekly feedback"; the service pre-check is advisory
        UniqueConstraint('profile_id', 'week_number', name='uq_feedback_profile_week'),
        CheckConstraint('week_number >= 1 AND week_number <= 12', name='ck_feedback_week_range'),
        CheckConstraint(
            'overall_rating IS NULL OR (overall_rating >= 1 AND overall_rating <= 10)',
            name='ck_feedback_rating_range'
        ),
    )


class UploadRecord(Base):
    """Progress photo uploaded by a participant for a given week."""
    __tablename__ = "focus_group_uploads"

    id = Column(String(36), primary_key=True, default=_uuid)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    week_number = Column(Integer, nullable=False)
    storage_key = Column(String(512), nullable=False, unique=True)  # Object key, e.g. {profile_id}/week-4-....jpg
    original_filename = Column(String(255), nullable=True)
    content_type = Column(String(100), default="image/jpeg", nullable=False)
    size_bytes = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    consent_given = Column(Boolean, default=True, nullable=False)
    verified_by_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    profile = relationship("Profile", back_populates="uploads")

    __table_args__ = (
        Index('idx_upload_profile_week', 'profile_id', 'week_number'),
        CheckConstraint('week_number >= 1 AND week_number <= 52', name='ck_upload_week_range'),
    )


class Message(Base):
    """Flat message table; threads are reconstructed per participant."""
    __tablename__ = "focus_group_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)  # Insertion order breaks created_at ties
    sender_id = Column(String(255), nullable=False)
    recipient_id = Column(String(255), nullable=False)
    sender_role = Column(EnumValue(SenderRole, 20), nullable=False)
    body = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_message_sender', 'sender_id'),
        Index('idx_message_recipient_unread', 'recipient_id', 'sender_role', 'is_read'),
        Index('idx_message_created', 'created_at'),
    )


class AuditLog(Base):
    """Audit trail of study actions."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(255), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
