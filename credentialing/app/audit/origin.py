"""
Request origin helpers.

Extract the network origin and the already-authenticated principal
from an incoming request. Authentication itself happens upstream; this
module only reads what the auth layer left on ``request.state``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from credentialing.app.schemas.audit import Principal

UNKNOWN = "unknown"


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN


def user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or UNKNOWN


def current_principal(request: Request) -> Optional[Principal]:
    """Principal attached by the auth layer, or None for system calls."""
    principal = getattr(request.state, "principal", None)
    if principal is None or isinstance(principal, Principal):
        return principal
    # Auth layers that attach plain mappings
    return Principal.model_validate(principal)


def route_path(request: Request) -> str:
    """Route template (``/enrollments/{id}/status``) when matched."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or request.url.path
