"""
Audit log storage.

An ``AuditSink`` owns the sequence of recorded entries. The in-process
implementation is a bounded ring buffer; ``ForwardingAuditSink`` layers
a shipment queue on top so entries can be handed to an external
durable sink without touching the network on the request path.

Concurrency contract:
- ``append`` is O(1) and atomic with respect to other appends
- ``query`` works on a snapshot taken under the lock; it may miss
  entries appended after the snapshot but never sees a partial entry
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Deque, Dict, List, Mapping, Optional, Protocol

from credentialing.app.schemas.audit import AuditLogEntry

DEFAULT_QUERY_LIMIT = 100


class AuditSink(Protocol):
    """
    Interface for audit entry storage.

    Implementations must be:
    - append-only (entries are never updated)
    - safe under concurrent writers
    - non-blocking on append (no network or disk I/O)
    """

    def append(self, entry: AuditLogEntry) -> None:
        ...

    def query(
        self,
        limit: int = DEFAULT_QUERY_LIMIT,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[AuditLogEntry]:
        ...

    def __len__(self) -> int:
        ...


def resolve_filters(filters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Normalize filter keys to entry attribute names.

    Raises ValueError on unknown fields.
    """
    if not filters:
        return {}
    return {
        AuditLogEntry.resolve_field(key): value
        for key, value in filters.items()
    }


def _field_equals(actual: Any, expected: Any) -> bool:
    # True == 1 in Python; a success flag must only match a bool
    if isinstance(actual, bool) or isinstance(expected, bool):
        return actual is expected
    return actual == expected


def matches(entry: AuditLogEntry, filters: Mapping[str, Any]) -> bool:
    """Exact equality on every filtered field."""
    return all(
        _field_equals(getattr(entry, name), value)
        for name, value in filters.items()
    )


def select_entries(
    snapshot: List[AuditLogEntry],
    limit: int,
    filters: Optional[Mapping[str, Any]],
) -> List[AuditLogEntry]:
    """Most-recent-first, filtered, at most ``limit`` entries."""
    resolved = resolve_filters(filters)
    if limit <= 0:
        return []

    selected: List[AuditLogEntry] = []
    for entry in reversed(snapshot):
        if resolved and not matches(entry, resolved):
            continue
        selected.append(entry)
        if len(selected) >= limit:
            break
    return selected


class MemoryAuditSink:
    """
    Thread-safe bounded ring buffer of audit entries.

    Once ``capacity`` is reached the oldest entry is evicted on each
    append. ``evicted`` counts entries lost that way.
    """

    def __init__(self, capacity: int = 10_000) -> None:
        if capacity < 1:
            raise ValueError("Audit sink capacity must be at least 1.")
        self._capacity = capacity
        self._entries: Deque[AuditLogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._evicted = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted(self) -> int:
        return self._evicted

    def append(self, entry: AuditLogEntry) -> None:
        with self._lock:
            if len(self._entries) == self._capacity:
                self._evicted += 1
            self._entries.append(entry)

    def snapshot(self) -> List[AuditLogEntry]:
        with self._lock:
            return list(self._entries)

    def query(
        self,
        limit: int = DEFAULT_QUERY_LIMIT,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[AuditLogEntry]:
        return select_entries(self.snapshot(), limit, filters)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ForwardingAuditSink:
    """
    Sink that keeps entries locally and queues them for shipment.

    Reads are served by the inner sink. Entries wait in a bounded
    pending queue until ``drain`` hands them to a shipper; on overflow
    the oldest pending entries are dropped and counted in ``dropped``.
    """

    def __init__(self, inner: AuditSink, pending_capacity: int = 10_000) -> None:
        if pending_capacity < 1:
            raise ValueError("Pending capacity must be at least 1.")
        self._inner = inner
        self._pending_capacity = pending_capacity
        self._pending: Deque[AuditLogEntry] = deque()
        self._lock = threading.Lock()
        self._dropped = 0

    @property
    def inner(self) -> AuditSink:
        return self._inner

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def append(self, entry: AuditLogEntry) -> None:
        # One lock keeps the shipped order identical to the local order
        with self._lock:
            self._inner.append(entry)
            if len(self._pending) >= self._pending_capacity:
                self._pending.popleft()
                self._dropped += 1
            self._pending.append(entry)

    def drain(self, max_items: int) -> List[AuditLogEntry]:
        """Pop up to ``max_items`` pending entries, oldest first."""
        with self._lock:
            count = min(max_items, len(self._pending))
            return [self._pending.popleft() for _ in range(count)]

    def query(
        self,
        limit: int = DEFAULT_QUERY_LIMIT,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[AuditLogEntry]:
        return self._inner.query(limit, filters)

    def __len__(self) -> int:
        return len(self._inner)
