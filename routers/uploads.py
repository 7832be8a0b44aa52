"""
Progress photo upload APIs (participants) and signed file retrieval.
"""
from typing import Optional, List

from fastapi import APIRouter, Depends, Request, File, UploadFile, Form, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from auth.dependencies import Principal, get_current_principal, get_db_session, get_object_store
from core.errors import Forbidden, NotFound
from core.logger import logger
from core.responses import success_response
from services.audit_service import AuditService
from services.upload_service import UploadService, IncomingFile, serialize_upload
from storage.local_store import LocalObjectStore, ObjectNotFoundError
import config


router = APIRouter(prefix="/api/focus-group/uploads", tags=["uploads"])
files_router = APIRouter(prefix="/api/focus-group/files", tags=["uploads"])


def _parse_bool(value: Optional[str], default: bool = True) -> bool:
    """Parse form string to bool. Form data sends everything as strings."""
    if value is None or not str(value).strip():
        return default
    return str(value).strip().lower() in ("true", "1", "yes", "on")


async def _read_upload(file: UploadFile) -> IncomingFile:
    # Read at most one byte past the limit; oversized files fail validation without being buffered
    data = await file.read(config.MAX_UPLOAD_SIZE_BYTES + 1)
    size = getattr(file, "size", None)
    return IncomingFile(
        filename=file.filename,
        content_type=file.content_type,
        data=data,
        size=size if size is not None else len(data),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_images(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session),
    store=Depends(get_object_store),
    week: Optional[str] = Form(None),
    consent_given: Optional[str] = Form("true"),
    notes: Optional[str] = Form(None),
    files: List[UploadFile] = File(default=[]),
):
    """
    Upload up to 10 progress photos for a week.
    Use multipart/form-data with repeated "files" fields plus "week".
    Files that fail validation are listed under "failed"; the rest are stored.
    """
    incoming = [await _read_upload(f) for f in files]
    result = UploadService.upload(
        db,
        store,
        principal,
        week,
        incoming,
        consent_given=_parse_bool(consent_given),
        notes=notes.strip() if notes and notes.strip() else None,
    )

    AuditService.log_from_request(
        db=db,
        request=request,
        action="upload_create",
        user_id=principal.principal_id,
        resource_type="upload",
        details={
            "week_number": result.uploaded[0].week_number,
            "uploaded": len(result.uploaded),
            "failed": len(result.failed),
        }
    )

    message = f"Successfully uploaded {len(result.uploaded)} file(s)"
    if result.failed:
        message += f"; {len(result.failed)} file(s) failed"
    return success_response(
        [serialize_upload(record) for record in result.uploaded],
        status_code=status.HTTP_201_CREATED,
        message=message,
        failed=result.failed,
    )


@router.get("")
async def list_uploads(
    week: Optional[str] = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session),
    store=Depends(get_object_store),
):
    """Own uploads for a week, newest first, each with a time-limited signed_url."""
    return success_response(UploadService.list(db, store, principal, week))


@files_router.get("/{key:path}")
async def get_file(
    key: str,
    token: Optional[str] = Query(None),
    store=Depends(get_object_store),
):
    """
    Serve a locally stored object behind a signed URL.
    Only the local store mints these links; S3 URLs point at the bucket directly.
    """
    if not isinstance(store, LocalObjectStore):
        raise NotFound("File not found")
    if not store.verify_token(key, token):
        logger.warning(f"Rejected file request for {key}: invalid or expired token")
        raise Forbidden("Invalid or expired file link")
    try:
        data = store.get_object(key)
    except (ObjectNotFoundError, ValueError):
        raise NotFound("File not found")
    return Response(
        content=data,
        media_type="image/jpeg",
        headers={"Cache-Control": "private, max-age=300"}
    )
