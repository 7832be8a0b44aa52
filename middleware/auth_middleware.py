"""
Authentication middleware that flags requests arriving without credentials.
Actual validation is done by FastAPI dependencies, which produce the 401 envelope.
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from typing import List

from core.logger import logger
import config

# Exact public paths
PUBLIC_ROUTES: List[str] = [
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
]

# Public path prefixes; signed file links carry their own token
PUBLIC_PREFIXES: List[str] = [
    "/docs/",
    "/api/focus-group/files/",
]


class AuthRequiredMiddleware(BaseHTTPMiddleware):
    """
    Log protected requests that carry neither a bearer token nor a session cookie.
    """

    def __init__(self, app, public_routes: List[str] = None, public_prefixes: List[str] = None):
        super().__init__(app)
        self.public_routes = public_routes or PUBLIC_ROUTES
        self.public_prefixes = public_prefixes or PUBLIC_PREFIXES

    def is_public(self, path: str) -> bool:
        return path in self.public_routes or any(path.startswith(p) for p in self.public_prefixes)

    async def dispatch(self, request: Request, call_next):
        """Process request with authentication check."""
        path = request.url.path

        if self.is_public(path) or request.method == "OPTIONS":
            return await call_next(request)

        authorization = request.headers.get("authorization")
        session_cookie = request.cookies.get(config.SESSION_COOKIE_NAME)

        if not authorization and not session_cookie:
            logger.warning(
                f"Request without credentials: {request.method} {path} "
                f"from {request.client.host if request.client else 'unknown'}"
            )

        return await call_next(request)
