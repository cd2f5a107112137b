# fuelogic/main.py
"""
Fuelogic Alerts - Main Application

Fuel-tank monitoring backend: classifies tank readings against per-user
thresholds and dispatches water-contamination alerts to registered
webhooks (generic HTTP, SlingFlow and Sophia AI).
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from starlette.middleware.base import BaseHTTPMiddleware

from .api import (
    alerts_router,
    configurations_router,
    orders_router,
    sophia_router,
    tanks_router,
    webhooks_router,
)
from .contacts import ContactDirectory
from .db import build_engine, build_session_factory, check_connection, init_schema
from .errors import AuthenticationError, FuelogicError, ValidationError
from .logging import configure_logging, get_logger
from .security import CredentialProvider
from .settings import Settings, settings as default_settings
from .tanks import ConfigurationStore, ThresholdConfig
from .webhooks import AlertDispatcher, WebhookRegistry, WebhookValidator

logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add basic security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Server"] = "Fuelogic Alerts"
        return response


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    http_client: Optional[httpx.Client] = None,
) -> FastAPI:
    """
    Build the application and its components.

    Args:
        settings: Configuration (defaults to environment settings)
        engine: Database engine (defaults to one built from settings)
        http_client: Outbound HTTP client shared by the dispatcher and the
            Sophia proxy
    """
    settings = settings or default_settings
    configure_logging(level=settings.log_level, json_output=settings.log_json)

    engine = engine or build_engine(settings.database_url)
    session_factory = build_session_factory(engine)
    http_client = http_client or httpx.Client(timeout=settings.webhook_timeout_seconds)

    contacts = ContactDirectory(session_factory)
    registry = WebhookRegistry(
        session_factory,
        WebhookValidator(contacts, allow_internal=settings.allow_internal_webhooks),
    )
    config_store = ConfigurationStore(
        session_factory,
        defaults=ThresholdConfig(
            critical_percent=settings.default_threshold_critical,
            attention_percent=settings.default_threshold_attention,
        ),
    )
    dispatcher = AlertDispatcher(
        registry,
        contacts,
        timeout_seconds=settings.webhook_timeout_seconds,
        client=http_client,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Create missing tables on startup; on shutdown wait for abandoned deliveries and close the HTTP client."""
        logger.info("startup", database=engine.url.render_as_string(hide_password=True))
        init_schema(engine)
        if not check_connection(engine):
            logger.warning("database_connection_failed")

        yield

        dispatcher.close()
        logger.info("shutdown")

    app = FastAPI(
        title="Fuelogic Alerts",
        description="""
        Tank status classification and inspection alert dispatch.

        - Thresholds per user (critico / atencao) drive the tank status bands
        - Tanks with water are always in alerta
        - Alerts fan out in parallel to generic, SlingFlow and Sophia AI webhooks,
          with one result per webhook
        """,
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.http_client = http_client
    app.state.credentials = CredentialProvider.from_settings(settings)
    app.state.contacts = contacts
    app.state.registry = registry
    app.state.config_store = config_store
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    @app.exception_handler(FuelogicError)
    async def handle_fuelogic_error(request: Request, exc: FuelogicError):
        content = {"message": exc.message}
        if isinstance(exc, ValidationError):
            content["field"] = exc.field
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        # Malformed bodies answer like invariant violations: 400 with the first bad field
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query")]
        return JSONResponse(
            status_code=400,
            content={
                "message": first.get("msg", "Requisição inválida"),
                "field": ".".join(loc) or None,
            },
        )

    app.include_router(alerts_router)
    app.include_router(configurations_router)
    app.include_router(orders_router)
    app.include_router(tanks_router)
    app.include_router(webhooks_router)
    app.include_router(sophia_router)

    @app.get("/health")
    async def health_check():
        """Basic health check."""
        return {"status": "ok", "service": "fuelogic-alerts"}

    @app.get("/health/db")
    async def db_health_check():
        """Database health check."""
        if check_connection(engine):
            return {"status": "ok", "database": "connected"}
        raise HTTPException(status_code=503, detail="Database connection failed")

    return app


app = create_app()


def run():
    """Run the server (entry point for CLI)."""
    import uvicorn
    uvicorn.run(
        "fuelogic.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
    )


if __name__ == "__main__":
    run()
