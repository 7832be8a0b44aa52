"""
Authentication dependencies for FastAPI.

Collaborators (database, identity provider, object store) are built once in
the application lifespan and read from app.state here.
"""
from dataclasses import dataclass
from typing import Optional, Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from auth.identity import IdentityProvider
from auth.security import extract_credential
from core.errors import Unauthenticated, Forbidden, InternalError
from core.logger import logger
from database.models import Profile
import config


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""
    principal_id: str
    email: Optional[str]
    is_administrator: bool
    profile_id: Optional[str] = None


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """Get a request-scoped database session."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise InternalError("Database not initialized")
    with db.get_session() as session:
        yield session


def get_identity_provider(request: Request) -> IdentityProvider:
    identity = getattr(request.app.state, "identity", None)
    if identity is None:
        raise InternalError("Identity provider not initialized")
    return identity


def get_object_store(request: Request):
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise InternalError("Object storage not initialized")
    return store


def is_allow_listed_admin(email: Optional[str]) -> bool:
    """Configuration-based administrator check (bootstrap only)."""
    if not email:
        return False
    return email.strip().lower() in config.ADMIN_EMAILS


def resolve_principal(request: Request, db: Session, identity: IdentityProvider) -> Principal:
    """
    Resolve the calling principal and whether it holds the administrator role.

    Raises:
        Unauthenticated: If no credential is present or the provider rejects it
    """
    token = extract_credential(request)
    if not token:
        raise Unauthenticated()

    user = identity.get_user(token)
    if user is None:
        raise Unauthenticated("Invalid or expired credentials")

    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    if profile is not None:
        is_admin = bool(profile.is_admin)
    else:
        # No profile yet: the allow-list is the only source of admin status
        is_admin = is_allow_listed_admin(user.email)
        if is_admin:
            logger.info(f"Administrator {user.id} resolved from allow-list (no profile)")

    return Principal(
        principal_id=user.id,
        email=user.email or (profile.email if profile else None),
        is_administrator=is_admin,
        profile_id=profile.id if profile else None,
    )


async def get_current_principal(
    request: Request,
    db: Session = Depends(get_db_session),
    identity: IdentityProvider = Depends(get_identity_provider)
) -> Principal:
    """Dependency: authenticated principal or 401."""
    return resolve_principal(request, db, identity)


async def require_administrator(
    principal: Principal = Depends(get_current_principal)
) -> Principal:
    """Dependency: administrator principal or 403."""
    if not principal.is_administrator:
        raise Forbidden("Administrator access required")
    return principal
