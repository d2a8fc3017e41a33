"""
FastAPI entrypoint for the credentialing service.

Wires the enrollment transition guard, the security audit recorder and
the (development) stores onto ``app.state``. Collaborators are created
by the application factory so tests can inject their own; the lifespan
only owns the background audit shipper and its HTTP client.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

import httpx
from fastapi import FastAPI

from credentialing.app.api.audit_log import router as audit_log_router
from credentialing.app.api.banking import router as banking_router
from credentialing.app.api.enrollments import router as enrollments_router
from credentialing.app.audit.forwarding import AuditShipper, HttpAuditForwarder
from credentialing.app.audit.rate_limit import SlidingWindowRateLimiter
from credentialing.app.audit.recorder import AuditRecorder
from credentialing.app.audit.sink import (
    AuditSink,
    ForwardingAuditSink,
    MemoryAuditSink,
)
from credentialing.app.config import Settings, get_settings
from credentialing.app.errors import register_exception_handlers
from credentialing.app.lifecycle.guard import EnrollmentTransitionGuard
from credentialing.app.storage.memory import (
    InMemoryBankingStore,
    InMemoryEnrollmentStore,
)

logger = logging.getLogger("credentialing.main")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def get_app_version() -> str:
    try:
        return version("credentialing")
    except PackageNotFoundError:
        return "0.1.0"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Starts audit forwarding when an external sink is configured and
    flushes pending entries on shutdown.
    """
    settings: Settings = app.state.settings
    sink = app.state.audit_sink

    logger.info(
        "credentialing_startup",
        extra={
            "service": "credentialing",
            "version": get_app_version(),
            "environment": settings.environment,
        },
    )

    http_client: Optional[httpx.AsyncClient] = None
    shipper: Optional[AuditShipper] = None

    if settings.audit_forward_url is not None and isinstance(
        sink, ForwardingAuditSink
    ):
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.audit_forward_timeout_seconds),
            headers={"User-Agent": f"credentialing/{get_app_version()}"},
        )
        shipper = AuditShipper(
            sink,
            HttpAuditForwarder(http_client, str(settings.audit_forward_url)),
            batch_size=settings.audit_forward_batch_size,
            interval_seconds=settings.audit_forward_interval_seconds,
        )
        shipper.start()
        logger.info("audit_forwarding_enabled")

    app.state.audit_shipper = shipper

    try:
        yield
    finally:
        logger.info("credentialing_shutdown_begin")

        if shipper is not None:
            try:
                await shipper.stop()
                await shipper.flush()
            except Exception:
                logger.warning("audit_shipper_shutdown_failed")

        if http_client is not None:
            try:
                await http_client.aclose()
            except Exception:
                logger.warning("http_client_shutdown_failed")


def build_audit_sink(settings: Settings) -> AuditSink:
    local = MemoryAuditSink(capacity=settings.audit_buffer_capacity)
    if settings.audit_forward_url is None:
        return local
    return ForwardingAuditSink(
        local, pending_capacity=settings.audit_buffer_capacity
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    audit_sink: Optional[AuditSink] = None,
    enrollment_store: Optional[InMemoryEnrollmentStore] = None,
    banking_store: Optional[InMemoryBankingStore] = None,
    banking_limiter: Optional[SlidingWindowRateLimiter] = None,
) -> FastAPI:
    """Application factory."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Credentialing Service",
        description=(
            "Enrollment lifecycle guard and security audit trail "
            "for provider credentialing"
        ),
        version=get_app_version(),
        lifespan=lifespan,
    )

    sink = audit_sink if audit_sink is not None else build_audit_sink(settings)

    app.state.settings = settings
    app.state.audit_sink = sink
    app.state.audit_recorder = AuditRecorder(
        sink, environment=settings.environment
    )
    app.state.transition_guard = EnrollmentTransitionGuard()
    app.state.enrollment_store = enrollment_store or InMemoryEnrollmentStore()
    app.state.banking_store = banking_store or InMemoryBankingStore()
    app.state.rate_limiters = {
        "banking": banking_limiter
        or SlidingWindowRateLimiter(
            window_ms=settings.banking_rate_limit_window_ms,
            max_requests=settings.banking_rate_limit_max,
        ),
    }

    register_exception_handlers(app)

    app.include_router(enrollments_router)
    app.include_router(banking_router)
    app.include_router(audit_log_router)

    @app.get("/health", tags=["Monitoring"], summary="Liveness probe")
    async def health_check():
        return {
            "status": "ok",
            "service": "credentialing",
            "version": app.version,
            "environment": settings.environment,
            "auditEntries": len(app.state.audit_sink),
        }

    return app
