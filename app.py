"""
Focus group study API: participant profiles, weekly feedback, progress photos and messaging.
"""
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from auth.identity import IdentityProvider
from core.errors import StudyError, code_for_status
from core.logger import logger
from core.responses import error_response
from database.connection import Database
from middleware.auth_middleware import AuthRequiredMiddleware
from middleware.security import SecurityHeadersMiddleware, setup_cors, setup_trusted_hosts
from routers.admin import router as admin_router
from routers.feedback import router as feedback_router
from routers.messages import router as messages_router
from routers.profile import router as profile_router
from routers.uploads import router as uploads_router, files_router
from routers.weeks import router as weeks_router
from storage.local_store import LocalObjectStore
from storage.s3_client import S3ObjectStore


def build_database() -> Database:
    database = Database(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW
    )
    # Create tables if they don't exist
    database.create_tables()
    logger.info("Database initialized successfully")
    return database


def build_object_store():
    """S3 when enabled, otherwise (or when S3 fails to initialize) the local store."""
    if config.USE_S3:
        try:
            store = S3ObjectStore(
                bucket_name=config.S3_BUCKET_NAME,
                aws_access_key_id=config.S3_ACCESS_KEY_ID,
                aws_secret_access_key=config.S3_SECRET_ACCESS_KEY,
                region_name=config.S3_REGION,
                endpoint_url=config.S3_ENDPOINT_URL,
                auto_create_bucket=config.S3_AUTO_CREATE_BUCKET,
            )
            logger.info(f"S3 object store initialized (bucket: {config.S3_BUCKET_NAME})")
            return store
        except Exception as e:
            logger.error(f"Failed to initialize S3 client: {e}", exc_info=True)
            logger.warning("Continuing without S3 - files will be stored locally")
    else:
        logger.info("S3 storage disabled - using local storage")
    return LocalObjectStore(config.UPLOADS_DIR, signing_key=config.AUTH_JWT_SECRET)


def build_identity_provider() -> IdentityProvider:
    return IdentityProvider(config.AUTH_JWT_SECRET, audience=config.AUTH_JWT_AUDIENCE)


def register_exception_handlers(app: FastAPI) -> None:
    """Map every error onto the {success: false, error, code, details?} envelope."""

    @app.exception_handler(StudyError)
    async def study_error_handler(request: Request, exc: StudyError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
        return error_response(exc.message, exc.status_code, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        details = None if isinstance(exc.detail, str) else exc.detail
        return error_response(message, exc.status_code, code_for_status(exc.status_code), details)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return error_response("Invalid request data", 400, "BAD_REQUEST", details)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return error_response("Internal server error", 500, "INTERNAL_ERROR")


def create_app(
    database: Optional[Database] = None,
    identity: Optional[IdentityProvider] = None,
    store=None
) -> FastAPI:
    """
    Build the application.

    Collaborators passed in are used as-is; missing ones are built from config
    during startup. Handlers reach them through app.state.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info(f"Starting {config.APP_NAME} ({config.ENVIRONMENT})...")
        logger.info("=" * 60)

        owns_database = getattr(app.state, "db", None) is None
        if owns_database:
            try:
                app.state.db = build_database()
            except Exception as e:
                logger.error(f"Failed to initialize database: {e}", exc_info=True)
                raise
        if getattr(app.state, "identity", None) is None:
            app.state.identity = build_identity_provider()
        if getattr(app.state, "store", None) is None:
            app.state.store = build_object_store()

        logger.info("Server ready!")
        yield

        logger.info("Shutting down...")
        if owns_database and app.state.db is not None:
            app.state.db.dispose()
            logger.info("Database connections closed")

    app = FastAPI(
        title=config.APP_NAME,
        description="Participant study API: intake profiles, weekly feedback, progress photos and messaging",
        version=config.APP_VERSION,
        debug=config.DEBUG,
        lifespan=lifespan
    )
    app.state.db = database
    app.state.identity = identity
    app.state.store = store

    register_exception_handlers(app)

    # Setup security middleware
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(AuthRequiredMiddleware)
    setup_cors(app, config.CORS_ORIGINS, allow_credentials=config.CORS_ALLOW_CREDENTIALS)
    if config.ENVIRONMENT == "production":
        setup_trusted_hosts(app, config.TRUSTED_HOSTS)

    # Include routers
    app.include_router(weeks_router)
    app.include_router(profile_router)
    app.include_router(feedback_router)
    app.include_router(uploads_router)
    app.include_router(files_router)
    app.include_router(messages_router)
    app.include_router(admin_router)

    @app.get("/")
    async def root():
        """Root endpoint with API information. Public endpoint."""
        return {
            "message": config.APP_NAME,
            "version": config.APP_VERSION,
            "environment": config.ENVIRONMENT,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint for monitoring. Public endpoint."""
        health_status = {
            "status": "healthy",
            "timestamp": time.time(),
            "checks": {}
        }

        db = getattr(request.app.state, "db", None)
        try:
            if db is None:
                health_status["checks"]["database"] = {"status": "error", "error": "not initialized"}
                health_status["status"] = "degraded"
            else:
                with db.get_session() as session:
                    session.execute(text("SELECT 1"))
                health_status["checks"]["database"] = {"status": "ok"}
        except Exception as e:
            health_status["checks"]["database"] = {"status": "error", "error": str(e)}
            health_status["status"] = "degraded"

        store = getattr(request.app.state, "store", None)
        if isinstance(store, S3ObjectStore):
            try:
                store.s3_client.head_bucket(Bucket=store.bucket_name)
                health_status["checks"]["storage"] = {"status": "ok", "backend": "s3", "bucket": store.bucket_name}
            except Exception as e:
                health_status["checks"]["storage"] = {"status": "error", "backend": "s3", "error": str(e)}
                health_status["status"] = "degraded"
        elif store is not None:
            health_status["checks"]["storage"] = {"status": "ok", "backend": "local"}
        else:
            health_status["checks"]["storage"] = {"status": "error", "error": "not initialized"}
            health_status["status"] = "degraded"

        return health_status

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
