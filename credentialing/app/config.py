"""
Centralized configuration for the credentialing service.

Pydantic v2 settings management: values are read from the environment
(prefix ``CREDENTIALING_``) once at startup, validated strictly, and
are immutable for the lifetime of the process.
"""

from functools import lru_cache
from typing import Annotated, Literal, Optional

from pydantic import AnyHttpUrl, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

PositiveInt = Annotated[int, Field(ge=1)]

WindowMillis = Annotated[
    int,
    Field(ge=1000, description="Rate-limit window length in milliseconds"),
]

Environment = Literal["development", "test", "staging", "production"]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    Fails fast at startup on malformed values.
    """

    # ---------------------------------------------------------------------
    # Runtime
    # ---------------------------------------------------------------------

    environment: Annotated[
        Environment,
        Field(
            default="development",
            description=(
                "Deployment environment. Selects the terse (staging, "
                "production) or verbose audit log-line form."
            ),
        ),
    ]

    log_level: Annotated[
        str,
        Field(default="INFO", description="Root logger level"),
    ]

    # ---------------------------------------------------------------------
    # Audit log buffer
    # ---------------------------------------------------------------------

    audit_buffer_capacity: Annotated[
        int,
        Field(
            default=10_000,
            ge=1,
            description=(
                "Entries retained in-process; the oldest are evicted "
                "once the buffer is full"
            ),
        ),
    ]

    audit_query_default_limit: PositiveInt = 100
    audit_query_max_limit: PositiveInt = 1000

    # ---------------------------------------------------------------------
    # External durable sink
    # ---------------------------------------------------------------------

    audit_forward_url: Annotated[
        Optional[AnyHttpUrl],
        Field(
            default=None,
            description=(
                "HTTP endpoint receiving batches of audit entries. "
                "Forwarding is disabled when unset."
            ),
        ),
    ]

    audit_forward_batch_size: PositiveInt = 100

    audit_forward_interval_seconds: Annotated[
        float,
        Field(default=5.0, gt=0),
    ]

    audit_forward_timeout_seconds: Annotated[
        float,
        Field(default=10.0, gt=0),
    ]

    # ---------------------------------------------------------------------
    # Banking access rate limiting
    # ---------------------------------------------------------------------

    banking_rate_limit_max: PositiveInt = 20
    banking_rate_limit_window_ms: WindowMillis = 900_000

    # Independent of any session TTL
    rate_limit_retry_after_default_ms: WindowMillis = 900_000

    # ---------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ---------------------------------------------------------------------

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level not in allowed:
            raise ValueError(
                f"Unsupported log_level '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return level

    @field_validator("audit_query_max_limit")
    @classmethod
    def max_limit_not_below_default(
        cls, v: int, info: ValidationInfo
    ) -> int:
        default = info.data.get("audit_query_default_limit")
        if default is not None and v < default:
            raise ValueError(
                "audit_query_max_limit must be >= audit_query_default_limit."
            )
        return v

    @property
    def is_production_like(self) -> bool:
        return self.environment in {"staging", "production"}

    model_config = SettingsConfigDict(
        env_prefix="CREDENTIALING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Dependency injection provider for application settings.

    Singleton within the process.
    """
    return Settings()
