"""
Security audit schemas.

An ``AuditLogEntry`` is one immutable observation of a security-sensitive
operation: who did what, to which resource, from where, and with which
result. Entries are created once, after the outcome of the operation is
known, and are never updated.

Serialized field names are camelCase to match the JSON contract consumed
by compliance tooling; Python attribute names are snake_case.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Principal(BaseModel):
    """
    An already-authenticated actor.

    Issued by the external authentication layer and attached to
    ``request.state.principal``. Absent for system-initiated actions.
    """

    id: str
    email: Optional[str] = None
    role: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class AuditContext(BaseModel):
    """
    Everything the recorder needs to capture one entry.

    The capture timestamp is deliberately not part of the context; it is
    taken by the recorder at normalization time.
    """

    principal: Optional[Principal] = None
    ip_address: str = "unknown"
    user_agent: str = "unknown"
    action: str
    resource: str
    resource_id: Optional[str] = None
    route: str = ""
    method: str = ""
    success: bool
    error_message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)


class AuditLogEntry(BaseModel):
    """
    One recorded security event.

    Immutable after creation. ``user_*`` fields are ``None`` when the
    action was not initiated by an authenticated principal.
    """

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_role: Optional[str] = None
    ip_address: str
    user_agent: str
    action: str
    resource: str
    resource_id: Optional[str] = None
    route: str
    method: str
    success: bool
    error_message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("metadata")
    @classmethod
    def metadata_must_be_json(
        cls, v: Optional[Dict[str, Any]]
    ) -> Optional[Dict[str, Any]]:
        # Entries are shipped as JSON; reject what cannot be shipped
        if v is not None:
            try:
                json.dumps(v, allow_nan=False)
            except (TypeError, ValueError) as exc:
                raise ValueError(
                    f"Audit metadata is not JSON-serializable: {exc}"
                ) from exc
        return v

    @classmethod
    def from_context(
        cls,
        context: AuditContext,
        *,
        timestamp: Optional[datetime] = None,
    ) -> "AuditLogEntry":
        principal = context.principal
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            user_id=principal.id if principal else None,
            user_email=principal.email if principal else None,
            user_role=principal.role if principal else None,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            action=context.action,
            resource=context.resource,
            resource_id=context.resource_id,
            route=context.route,
            method=context.method,
            success=context.success,
            error_message=context.error_message,
            metadata=dict(context.metadata) if context.metadata else None,
        )

    @classmethod
    def resolve_field(cls, key: str) -> str:
        """
        Map a filter key (attribute name or camelCase alias) to an
        attribute name.

        Raises ValueError for keys that are not entry fields.
        """
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        raise ValueError(
            f"Unknown audit log field '{key}'. "
            f"Allowed fields: {sorted(cls.model_fields)}"
        )
