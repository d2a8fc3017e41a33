from .sink import AuditSink, ForwardingAuditSink, MemoryAuditSink
from .recorder import AuditRecorder
from .route import AuditedRoute, audited
from .rate_limit import RateLimitGuard, SlidingWindowRateLimiter, banking_rate_limit
from .forwarding import (
    AuditForwarder,
    AuditShipper,
    HttpAuditForwarder,
    LoggingAuditForwarder,
)

__all__ = [
    "AuditSink",
    "ForwardingAuditSink",
    "MemoryAuditSink",
    "AuditRecorder",
    "AuditedRoute",
    "audited",
    "RateLimitGuard",
    "SlidingWindowRateLimiter",
    "banking_rate_limit",
    "AuditForwarder",
    "AuditShipper",
    "HttpAuditForwarder",
    "LoggingAuditForwarder",
]
