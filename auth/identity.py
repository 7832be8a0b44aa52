"""
Identity provider adapter.

The identity provider owns user accounts and issues access tokens; this
service only verifies them. The administrative helpers (create a confirmed
user, issue a token) exist for fixtures and provisioning scripts.
"""
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from auth.security import create_access_token, decode_access_token
from core.logger import logger


@dataclass(frozen=True)
class IdentityUser:
    """A user known to the identity provider."""
    id: str
    email: Optional[str] = None


class IdentityProvider:
    """Verifies provider-issued JWT access tokens."""

    def __init__(self, secret_key: str, audience: Optional[str] = None):
        """
        Args:
            secret_key: Shared JWT signing secret
            audience: Expected "aud" claim (None disables the check)
        """
        if not secret_key:
            raise ValueError("Identity provider requires a signing secret")
        self.secret_key = secret_key
        self.audience = audience

    def get_user(self, token: str) -> Optional[IdentityUser]:
        """Exchange an access token for the user it was issued to, or None."""
        if not token:
            return None
        payload = decode_access_token(token, self.secret_key, audience=self.audience)
        if payload is None:
            logger.debug("Rejected access token")
            return None
        user_id = payload.get("sub")
        if not user_id:
            return None
        return IdentityUser(id=str(user_id), email=payload.get("email"))

    def create_confirmed_user(self, email: str, user_id: Optional[str] = None) -> IdentityUser:
        """Register a user whose email is already confirmed."""
        user = IdentityUser(id=user_id or str(uuid.uuid4()), email=email.strip().lower() if email else None)
        logger.info(f"Created confirmed identity user {user.id}")
        return user

    def issue_access_token(self, user: IdentityUser, expires_delta: Optional[timedelta] = None) -> str:
        """Mint an access token for a user."""
        claims = {"sub": user.id, "role": "authenticated"}
        if user.email:
            claims["email"] = user.email
        return create_access_token(claims, self.secret_key, expires_delta=expires_delta, audience=self.audience)
