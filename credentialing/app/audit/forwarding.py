"""
Shipping audit entries to an external durable sink.

The request path only appends to a ``ForwardingAuditSink``. An
``AuditShipper`` task, owned by the application lifespan, drains the
pending queue in batches and hands them to an ``AuditForwarder``.

Delivery is fire-and-forget: a batch that fails to forward is logged
and discarded. The in-process buffer still holds the entries for
local queries.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import List, Optional, Protocol, Sequence

import httpx

from credentialing.app.audit.sink import ForwardingAuditSink
from credentialing.app.schemas.audit import AuditLogEntry

logger = logging.getLogger("credentialing.audit.forwarding")
sink_logger = logging.getLogger("credentialing.audit.sink")


def serialize_entries(entries: Sequence[AuditLogEntry]) -> List[dict]:
    return [entry.model_dump(mode="json", by_alias=True) for entry in entries]


class AuditForwarder(Protocol):
    """Delivers a batch of entries to an external sink."""

    async def forward(self, entries: Sequence[AuditLogEntry]) -> None:
        ...


class LoggingAuditForwarder:
    """Writes each entry as one JSON line for a log shipper to collect."""

    def __init__(self, target: Optional[logging.Logger] = None) -> None:
        self._logger = target or sink_logger

    async def forward(self, entries: Sequence[AuditLogEntry]) -> None:
        for payload in serialize_entries(entries):
            self._logger.info(
                json.dumps(payload, ensure_ascii=False, sort_keys=True)
            )


class HttpAuditForwarder:
    """POSTs each batch as a JSON array to a collector endpoint."""

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    async def forward(self, entries: Sequence[AuditLogEntry]) -> None:
        response = await self._client.post(
            self._url,
            json=serialize_entries(entries),
        )
        response.raise_for_status()


class AuditShipper:
    """Periodically drains a forwarding sink into a forwarder."""

    def __init__(
        self,
        sink: ForwardingAuditSink,
        forwarder: AuditForwarder,
        *,
        batch_size: int = 100,
        interval_seconds: float = 5.0,
    ) -> None:
        self._sink = sink
        self._forwarder = forwarder
        self._batch_size = batch_size
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def ship_once(self) -> int:
        """Forward everything pending. Returns entries delivered."""
        delivered = 0
        while True:
            batch = self._sink.drain(self._batch_size)
            if not batch:
                return delivered
            try:
                await self._forwarder.forward(batch)
            except Exception:
                logger.exception(
                    "audit_forward_failed",
                    extra={"batch_size": len(batch)},
                )
                continue
            delivered += len(batch)

    async def run(self) -> None:
        while True:
            await self.ship_once()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Cancel the shipping loop. Pending entries stay queued."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def flush(self) -> int:
        """Final pass at shutdown: forward everything still pending."""
        delivered = await self.ship_once()
        logger.info(
            "audit_forward_flushed",
            extra={"delivered": delivered, "dropped": self._sink.dropped},
        )
        return delivered
