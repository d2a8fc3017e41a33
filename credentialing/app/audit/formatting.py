"""
Human-readable audit log lines.

PRESENTATION ONLY: the structured ``AuditLogEntry`` is the record of
truth. Both forms always carry actor, action, resource, outcome and
origin.
"""

from __future__ import annotations

from credentialing.app.schemas.audit import AuditLogEntry

TERSE_ENVIRONMENTS = frozenset({"staging", "production"})


def _actor(entry: AuditLogEntry) -> str:
    return f"{entry.user_email or 'system'} ({entry.user_role or 'unknown'})"


def _outcome(entry: AuditLogEntry) -> str:
    return "SUCCESS" if entry.success else "FAILED"


def format_terse(entry: AuditLogEntry) -> str:
    level = "INFO" if entry.success else "WARN"
    return (
        f"[SECURITY_AUDIT] {level}: {entry.action} {entry.resource} "
        f"by {_actor(entry)} from {entry.ip_address} - {_outcome(entry)}"
    )


def format_verbose(entry: AuditLogEntry) -> str:
    resource_id = f" ({entry.resource_id})" if entry.resource_id else ""
    error = f" - Error: {entry.error_message}" if entry.error_message else ""
    return (
        f"SECURITY_AUDIT [{entry.timestamp.isoformat()}]: "
        f"{entry.action} {entry.resource}{resource_id} "
        f"via {entry.method} {entry.route} "
        f"by {_actor(entry)} from {entry.ip_address} "
        f"[{entry.user_agent}] - {_outcome(entry)}{error}"
    )


def format_audit_line(entry: AuditLogEntry, environment: str) -> str:
    if environment in TERSE_ENVIRONMENTS:
        return format_terse(entry)
    return format_verbose(entry)
