"""
Token and credential utilities.
Access tokens are HS256 JWTs shared with the identity provider.
"""
import json
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from fastapi import Request
from jose import JWTError, jwt

import config

# JWT settings
SECRET_KEY_ALGORITHM = config.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = config.ACCESS_TOKEN_EXPIRE_MINUTES

BEARER_PREFIX = "bearer "


def create_access_token(
    data: Dict[str, Any],
    secret_key: str,
    expires_delta: Optional[timedelta] = None,
    audience: Optional[str] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode (must include "sub")
        secret_key: Secret key for signing
        expires_delta: Optional expiration time
        audience: Optional "aud" claim

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": "access"
    })
    if audience:
        to_encode["aud"] = audience
    return jwt.encode(to_encode, secret_key, algorithm=SECRET_KEY_ALGORITHM)


def decode_access_token(token: str, secret_key: str, audience: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT access token.

    Args:
        token: JWT token string
        secret_key: Secret key for verification
        audience: Expected "aud" claim

    Returns:
        Decoded token data or None if invalid
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[SECRET_KEY_ALGORITHM], audience=audience)
        if payload.get("type") != "access":
            return None
        return payload
    except JWTError:
        return None


def _token_from_cookie(raw: str) -> Optional[str]:
    """Session cookies hold either JSON with an access_token or the bare token."""
    raw = raw.strip()
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(parsed, dict):
        return parsed.get("access_token") or None
    if isinstance(parsed, list) and parsed and isinstance(parsed[0], str):
        return parsed[0]
    return raw


def extract_credential(request: Request) -> Optional[str]:
    """
    Extract the bearer credential from a request.

    The Authorization header takes precedence over the session cookie.
    """
    authorization = request.headers.get("authorization")
    if authorization and authorization.lower().startswith(BEARER_PREFIX):
        token = authorization[len(BEARER_PREFIX):].strip()
        if token:
            return token

    cookie = request.cookies.get(config.SESSION_COOKIE_NAME)
    if cookie:
        return _token_from_cookie(cookie)

    return None
