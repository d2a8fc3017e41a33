"""
Administrative audit log query endpoint.

Returns entries most-recent-first, filtered by exact field equality.
Access is expected to be restricted to privileged roles by the
external auth layer; this router does not enforce it.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from credentialing.app.api.dependencies import get_app_settings, get_recorder
from credentialing.app.audit.recorder import AuditRecorder
from credentialing.app.config import Settings
from credentialing.app.errors import ShapeError

router = APIRouter(prefix="/admin", tags=["Audit Log"])


@router.get("/audit-log", summary="Query the security audit log")
async def query_audit_log(
    recorder: Annotated[AuditRecorder, Depends(get_recorder)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    limit: Annotated[Optional[int], Query(ge=1)] = None,
    action: Optional[str] = None,
    resource: Optional[str] = None,
    resource_id: Annotated[Optional[str], Query(alias="resourceId")] = None,
    user_id: Annotated[Optional[str], Query(alias="userId")] = None,
    user_email: Annotated[Optional[str], Query(alias="userEmail")] = None,
    user_role: Annotated[Optional[str], Query(alias="userRole")] = None,
    ip_address: Annotated[Optional[str], Query(alias="ipAddress")] = None,
    method: Optional[str] = None,
    success: Optional[bool] = None,
) -> Dict[str, Any]:
    effective_limit = min(
        limit or settings.audit_query_default_limit,
        settings.audit_query_max_limit,
    )

    filters = {
        key: value
        for key, value in {
            "action": action,
            "resource": resource,
            "resource_id": resource_id,
            "user_id": user_id,
            "user_email": user_email,
            "user_role": user_role,
            "ip_address": ip_address,
            "method": method,
            "success": success,
        }.items()
        if value is not None
    }

    try:
        entries = recorder.query(effective_limit, filters)
    except ValueError as exc:
        raise ShapeError(str(exc))

    return {
        "entries": [
            entry.model_dump(mode="json", by_alias=True) for entry in entries
        ],
        "count": len(entries),
    }
