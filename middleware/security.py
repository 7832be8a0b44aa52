"""
Security middleware: response headers, CORS and trusted hosts.
"""
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.base import BaseHTTPMiddleware


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to responses."""

    async def dispatch(self, request: Request, call_next):
        """Add security headers."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Participant photos must never land in shared caches
        if request.url.path.startswith("/api/focus-group/files/"):
            response.headers.setdefault("Cache-Control", "private, no-store")

        return response


def setup_cors(app, allowed_origins: list[str], allow_credentials: bool = True, allowed_methods: list[str] = None):
    """
    Setup CORS middleware.

    Args:
        app: FastAPI application
        allowed_origins: List of allowed origins
        allow_credentials: Allow the session cookie on cross-origin requests
        allowed_methods: List of allowed HTTP methods
    """
    if allowed_methods is None:
        allowed_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allow_credentials,
        allow_methods=allowed_methods,
        allow_headers=["*"],
    )


def setup_trusted_hosts(app, allowed_hosts: list[str]):
    """
    Setup trusted hosts middleware.

    Args:
        app: FastAPI application
        allowed_hosts: List of allowed hostnames
    """
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=allowed_hosts
    )
