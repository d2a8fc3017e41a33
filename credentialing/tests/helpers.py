"""Shared helpers for HTTP-level tests."""

import httpx

from credentialing.app.schemas.audit import Principal


class FakeAuthMiddleware:
    """
    Stand-in for the external auth layer.

    Attaches a principal to the request state when ``X-Test-User`` is
    present; requests without it are treated as system calls.
    """

    def __init__(self, app) -> None:
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http":
            headers = dict(scope.get("headers") or [])
            user = headers.get(b"x-test-user")
            if user:
                user_id = user.decode()
                scope.setdefault("state", {})["principal"] = Principal(
                    id=user_id,
                    email=f"{user_id}@example.org",
                    role=headers.get(b"x-test-role", b"staff").decode(),
                )
        await self.app(scope, receive, send)


def client_for(app, *, raise_app_exceptions: bool = True) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(
            app=app, raise_app_exceptions=raise_app_exceptions
        ),
        base_url="http://credentialing.test",
    )
