"""Dependency providers backed by ``app.state``."""

from __future__ import annotations

from fastapi import Request

from credentialing.app.audit.recorder import AuditRecorder
from credentialing.app.config import Settings
from credentialing.app.lifecycle.guard import EnrollmentTransitionGuard
from credentialing.app.storage.memory import (
    InMemoryBankingStore,
    InMemoryEnrollmentStore,
)


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized")
    return value


def get_app_settings(request: Request) -> Settings:
    return _state(request, "settings")


def get_guard(request: Request) -> EnrollmentTransitionGuard:
    return _state(request, "transition_guard")


def get_recorder(request: Request) -> AuditRecorder:
    return _state(request, "audit_recorder")


def get_enrollment_store(request: Request) -> InMemoryEnrollmentStore:
    return _state(request, "enrollment_store")


def get_banking_store(request: Request) -> InMemoryBankingStore:
    return _state(request, "banking_store")
