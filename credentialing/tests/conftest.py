import pytest

from credentialing.app.audit.recorder import AuditRecorder
from credentialing.app.audit.sink import MemoryAuditSink
from credentialing.app.config import Settings
from credentialing.app.schemas.audit import AuditContext, Principal


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(_env_file=None, environment="test")


@pytest.fixture
def sink():
    return MemoryAuditSink(capacity=1000)


@pytest.fixture
def recorder(sink):
    return AuditRecorder(sink, environment="test")


@pytest.fixture
def principal():
    return Principal(id="user-1", email="ada@example.org", role="admin")


@pytest.fixture
def make_context(principal):
    def factory(**overrides):
        values = dict(
            principal=principal,
            ip_address="10.0.0.7",
            user_agent="pytest-agent",
            action="update_status",
            resource="payer_enrollment",
            resource_id="enr-1",
            route="/enrollments/{id}/status",
            method="PATCH",
            success=True,
        )
        values.update(overrides)
        return AuditContext(**values)

    return factory
