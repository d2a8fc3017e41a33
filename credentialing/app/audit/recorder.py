"""
Security audit recorder.

Normalizes an ``AuditContext`` into an immutable ``AuditLogEntry``,
appends it to the injected sink, and emits one log line for shipping.

The recorder is strictly observational:
- it never raises into the request path
- capture failures are logged and the entry is dropped
- it performs no network or disk I/O itself
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from fastapi import Request

from credentialing.app.audit.formatting import format_audit_line
from credentialing.app.audit.origin import (
    client_ip,
    current_principal,
    route_path,
    user_agent,
)
from credentialing.app.audit.sink import DEFAULT_QUERY_LIMIT, AuditSink
from credentialing.app.schemas.audit import AuditContext, AuditLogEntry

logger = logging.getLogger("credentialing.audit")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditRecorder:
    """Captures and reads back security audit entries."""

    def __init__(
        self,
        sink: AuditSink,
        *,
        environment: str = "development",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._sink = sink
        self._environment = environment
        self._clock = clock

    @property
    def sink(self) -> AuditSink:
        return self._sink

    def record(self, context: AuditContext) -> Optional[AuditLogEntry]:
        """
        Capture one entry.

        Returns the stored entry, or None if capture failed.
        """
        try:
            entry = AuditLogEntry.from_context(context, timestamp=self._clock())
            self._sink.append(entry)
        except Exception:
            logger.exception(
                "audit_capture_failed",
                extra={
                    "action": getattr(context, "action", None),
                    "resource": getattr(context, "resource", None),
                },
            )
            return None

        try:
            logger.log(
                logging.INFO if entry.success else logging.WARNING,
                format_audit_line(entry, self._environment),
                extra={"audit": entry.model_dump(mode="json", by_alias=True)},
            )
        except Exception:
            # Entry is stored; only the diagnostic line is lost
            logger.exception("audit_log_line_failed")

        return entry

    def record_request(
        self,
        request: Request,
        *,
        action: str,
        resource: str,
        success: bool,
        resource_id: Optional[str] = None,
        error_message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLogEntry]:
        """Capture one entry with actor and origin taken from ``request``."""
        try:
            context = AuditContext(
                principal=current_principal(request),
                ip_address=client_ip(request),
                user_agent=user_agent(request),
                action=action,
                resource=resource,
                resource_id=resource_id,
                route=route_path(request),
                method=request.method,
                success=success,
                error_message=error_message,
                metadata=metadata,
            )
        except Exception:
            logger.exception(
                "audit_capture_failed",
                extra={"action": action, "resource": resource},
            )
            return None
        return self.record(context)

    def query(
        self,
        limit: int = DEFAULT_QUERY_LIMIT,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[AuditLogEntry]:
        """Most-recent-first entries matching ``filters`` exactly."""
        return self._sink.query(limit, filters)
