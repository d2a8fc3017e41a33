import pytest
from pydantic import ValidationError

from credentialing.app.audit.sink import ForwardingAuditSink, MemoryAuditSink
from credentialing.app.config import Settings
from credentialing.app.main import build_audit_sink


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.environment == "development"
    assert settings.audit_query_default_limit == 100
    assert settings.banking_rate_limit_window_ms == 900_000
    assert settings.rate_limit_retry_after_default_ms == 900_000
    assert settings.audit_forward_url is None
    assert settings.is_production_like is False


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("CREDENTIALING_ENVIRONMENT", "production")
    monkeypatch.setenv("CREDENTIALING_BANKING_RATE_LIMIT_MAX", "5")
    monkeypatch.setenv("CREDENTIALING_LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.environment == "production"
    assert settings.is_production_like is True
    assert settings.banking_rate_limit_max == 5
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides",
    [
        {"environment": "qa"},
        {"log_level": "LOUD"},
        {"audit_buffer_capacity": 0},
        {"banking_rate_limit_window_ms": 10},
        {"audit_query_default_limit": 50, "audit_query_max_limit": 10},
        {"audit_forward_url": "not a url"},
    ],
)
def test_invalid_values_fail_fast(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_settings_are_frozen():
    settings = Settings(_env_file=None)

    with pytest.raises(ValidationError):
        settings.environment = "production"


def test_sink_selection_follows_forwarding_config():
    local = build_audit_sink(Settings(_env_file=None, audit_buffer_capacity=5))
    forwarding = build_audit_sink(
        Settings(_env_file=None, audit_forward_url="https://collector.test/audit")
    )

    assert isinstance(local, MemoryAuditSink)
    assert local.capacity == 5
    assert isinstance(forwarding, ForwardingAuditSink)
