from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging
import uuid

from sqlalchemy.orm import sessionmaker

from . import __version__ as VERSION
from .config import Settings, get_settings
from .database import build_session_factory, create_db_engine, create_tables
from .utils.logging_config import setup_logging, set_request_context, clear_request_context
from .routers import analytics, health, metrics, webhook

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings: Settings = app.state.settings
    setup_logging(level=settings.log_level, json_format=settings.use_json_logs)

    logger.info(f"Starting FareHarbor webhook server ({settings.environment})")
    logger.info(f"CORS origins: {settings.cors_origins}")

    if not settings.signature_verification_enabled:
        if settings.webhook_signature_required:
            logger.error("WEBHOOK_SIGNATURE_REQUIRED is set without FAREHARBOR_WEBHOOK_SECRET: all webhooks will be rejected")
        else:
            logger.warning("FAREHARBOR_WEBHOOK_SECRET not set: webhook signature verification is disabled")

    create_tables(app.state.session_factory.kw["bind"])
    logger.info("Ready to receive FareHarbor webhooks")

    yield

    logger.info("Shutting down FareHarbor webhook server")


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None
) -> FastAPI:
    """
    Build the application.

    The session factory is constructed here (or injected by tests) and
    stored on app.state; request handlers get sessions through get_db.
    """
    settings = settings or get_settings()
    if session_factory is None:
        engine = create_db_engine(settings.database_url)
        session_factory = build_session_factory(engine)

    app = FastAPI(
        title="FareHarbor Webhook Server",
        description="Receives FareHarbor booking webhooks and reports on stored bookings",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.session_factory = session_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(webhook.router)
    app.include_router(health.router)
    app.include_router(analytics.router)
    app.include_router(metrics.router)

    @app.get("/")
    async def root():
        return {
            "service": "fareharbor-webhook-server",
            "version": VERSION,
            "docs": "/docs",
            "status": "running"
        }

    return app


app = create_app()
