"""
Upload pipeline: validate, sanitize, store and record participant photos.

Files in a batch are processed independently. A file that fails validation
or storage is reported and skipped; the call only fails when nothing
succeeded.
"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.dependencies import Principal
from core.errors import BadRequest, Forbidden, InternalError, NotFound
from core.image_sanitizer import sanitize_image, ImageSanitizationError
from core.logger import logger
from core.validators import validate_image_content_type, validate_file_size, sanitize_filename, parse_week
from database.models import UploadRecord
from services.profile_service import ProfileService
from storage.paths import upload_object_key
from storage.presigned import get_signed_url
import config


@dataclass
class IncomingFile:
    """One file from a multipart upload, already read into memory."""
    filename: Optional[str]
    content_type: Optional[str]
    data: bytes
    size: Optional[int] = None  # Declared size when larger than what was read

    @property
    def byte_size(self) -> int:
        return self.size if self.size is not None else len(self.data)


@dataclass
class UploadBatchResult:
    uploaded: List[UploadRecord] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)


class _FileRejected(Exception):
    """Per-file validation failure."""


def serialize_upload(record: UploadRecord, signed_url: Optional[str] = None) -> Dict[str, Any]:
    data = {
        "id": record.id,
        "profile_id": record.profile_id,
        "week_number": record.week_number,
        "storage_key": record.storage_key,
        "original_filename": record.original_filename,
        "content_type": record.content_type,
        "size_bytes": record.size_bytes,
        "notes": record.notes,
        "consent_given": record.consent_given,
        "verified_by_admin": record.verified_by_admin,
        "created_at": record.created_at,
    }
    if signed_url is not None:
        data["signed_url"] = signed_url
    return data


def _display_name(incoming: IncomingFile, index: int) -> str:
    try:
        return sanitize_filename(incoming.filename or "")
    except ValueError:
        return f"file-{index + 1}"


class UploadService:
    """Participant upload register."""

    @staticmethod
    def validate_week(week) -> int:
        parsed, error = parse_week(week, config.MAX_UPLOAD_WEEK)
        if error:
            raise BadRequest(error)
        return parsed

    @staticmethod
    def _validate_file(incoming: IncomingFile) -> None:
        ok, error = validate_image_content_type(incoming.content_type)
        if not ok:
            raise _FileRejected(error)
        ok, error = validate_file_size(incoming.byte_size, config.MAX_UPLOAD_SIZE_BYTES)
        if not ok:
            raise _FileRejected(error)

    @staticmethod
    def upload(
        db: Session,
        store,
        principal: Principal,
        week,
        files: List[IncomingFile],
        consent_given: bool = True,
        notes: Optional[str] = None
    ) -> UploadBatchResult:
        """
        Upload progress photos for a week.

        Raises:
            NotFound: Caller has no profile
            BadRequest: Bad week, bad file count, or every file invalid
            InternalError: No file could be stored
        """
        profile = ProfileService.require_for_principal(db, principal)
        target_week = UploadService.validate_week(week)

        if not files:
            raise BadRequest("At least one file is required")
        if len(files) > config.MAX_UPLOAD_FILES:
            raise BadRequest(f"Maximum {config.MAX_UPLOAD_FILES} files allowed per upload")

        result = UploadBatchResult()
        storage_failures = 0

        for index, incoming in enumerate(files):
            name = _display_name(incoming, index)
            try:
                UploadService._validate_file(incoming)
                image = sanitize_image(incoming.data)
            except (_FileRejected, ImageSanitizationError) as e:
                logger.info(f"Rejected upload {name} for profile {profile.id}: {e}")
                result.failed.append({"filename": name, "error": str(e), "code": "BAD_REQUEST"})
                continue

            key = upload_object_key(profile.id, target_week, image.extension)
            try:
                store.put_object(key, image.data, content_type=image.content_type)
            except Exception as e:
                logger.error(f"Upload processing failed for file {name}: {e}", exc_info=True)
                storage_failures += 1
                result.failed.append({"filename": name, "error": "Failed to store file", "code": "INTERNAL_ERROR"})
                continue

            record = UploadRecord(
                profile_id=profile.id,
                week_number=target_week,
                storage_key=key,
                original_filename=name,
                content_type=image.content_type,
                size_bytes=len(image.data),
                notes=notes,
                consent_given=consent_given,
                verified_by_admin=False,
            )
            db.add(record)
            try:
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Database insert failed for {key}: {e}", exc_info=True)
                try:
                    store.delete_object(key)
                except Exception as cleanup_error:
                    logger.warning(f"Could not remove orphaned object {key}: {cleanup_error}")
                storage_failures += 1
                result.failed.append({"filename": name, "error": "Failed to record upload", "code": "INTERNAL_ERROR"})
                continue

            db.refresh(record)
            result.uploaded.append(record)

        if not result.uploaded:
            if storage_failures:
                raise InternalError("Failed to upload files. Please try again.", details=result.failed)
            raise BadRequest("No valid image files were uploaded", details=result.failed)

        logger.info(
            f"Uploaded {len(result.uploaded)}/{len(files)} files for profile {profile.id}, week {target_week}"
        )
        return result

    @staticmethod
    def records_for_profile(db: Session, profile_id: str, week: Optional[int] = None) -> List[UploadRecord]:
        query = db.query(UploadRecord).filter(UploadRecord.profile_id == profile_id)
        if week is not None:
            query = query.filter(UploadRecord.week_number == week)
        try:
            return query.order_by(UploadRecord.created_at.desc()).all()
        except SQLAlchemyError as e:
            raise InternalError("Failed to fetch uploads", details=str(e))

    @staticmethod
    def with_signed_urls(store, records: List[UploadRecord]) -> List[Dict[str, Any]]:
        return [serialize_upload(record, get_signed_url(store, record.storage_key)[0]) for record in records]

    @staticmethod
    def list(db: Session, store, principal: Principal, week) -> List[Dict[str, Any]]:
        """The caller's uploads for a week, newest first, each with a signed URL."""
        profile = ProfileService.require_for_principal(db, principal)
        target_week = UploadService.validate_week(week)
        records = UploadService.records_for_profile(db, profile.id, target_week)
        return UploadService.with_signed_urls(store, records)

    @staticmethod
    def set_verified(db: Session, principal: Principal, upload_id: str, verified: bool = True) -> UploadRecord:
        """Administrator-only: the verified flag is the one mutable field."""
        if not principal.is_administrator:
            raise Forbidden("Only administrators can verify uploads")
        record = db.query(UploadRecord).filter(UploadRecord.id == upload_id).first()
        if record is None:
            raise NotFound("Upload not found")
        record.verified_by_admin = verified
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise InternalError("Failed to update upload", details=str(e))
        db.refresh(record)
        return record
