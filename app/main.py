import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.errors import DatabaseError, StudioError
from app.core.logging import configure_logging
from app.db.session import Database
from app.services.file_lock import FileLock
from app.api.v1.api import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owned = getattr(app.state, "db", None) is None
    if owned:
        app.state.db = Database(settings.DATABASE_URL).init()
    if getattr(app.state, "locks", None) is None:
        app.state.locks = FileLock(settings.LOCK_DIR, settings.LOCK_TIMEOUT_MS, settings.LOCK_POLL_INTERVAL_MS)
    logger.info("app_started", extra={"extra": {"env": settings.ENV}})
    try:
        yield
    finally:
        if owned:
            app.state.db.dispose()
            app.state.db = None


async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    context = {"path": request.url.path, "code": exc.code, **exc.context}
    if isinstance(exc, DatabaseError):
        logger.error("request_failed", extra={"extra": {**context, "error": exc.message}})
        detail = exc.public_message
    else:
        logger.info("request_rejected", extra={"extra": {**context, "error": exc.message}})
        detail = exc.message
    return JSONResponse(status_code=exc.status_code, content={"detail": detail, "code": exc.code})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "code": "validation_error", "errors": jsonable_encoder(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", extra={"extra": {"path": request.url.path}})
    return JSONResponse(status_code=500, content={"detail": DatabaseError.public_message, "code": "internal_error"})


def create_app(db: Database | None = None, locks: FileLock | None = None) -> FastAPI:
    configure_logging(settings.LOG_LEVEL)
    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.db = db
    app.state.locks = locks

    # CORS: use CORS_ORIGINS from env in production; default to localhost for dev
    _default_origins = ["http://127.0.0.1:3000", "http://localhost:3000"]
    _origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StudioError, studio_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(api_router)

    @app.get("/health")
    @app.get("/api/v1/health")
    def health(request: Request):
        with request.app.state.db.session_scope() as s:
            s.execute(text("SELECT 1"))
        return {"status": "ok"}

    return app


app = create_app()
