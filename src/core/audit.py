"""Fire-and-forget audit event emission.

Events are scheduled on the running loop and never awaited by the turn, so a
slow or failing sink cannot affect the turn outcome.
"""

from __future__ import annotations

import asyncio
import logging

from core.models import AuditEvent
from core.ports import AuditSink

LOGGER = logging.getLogger(__name__)

MESSAGE_CREATED = "CHAT_MESSAGE_CREATED"
RULE_TRIGGERED = "CHAT_MESSAGE_BLOCK_RULE_TRIGGERED"
PERSIST_FAILED = "CHAT_MESSAGE_PERSIST_FAILED"


class AuditEmitter:
    """Schedules sink writes as background tasks."""

    def __init__(self, sink: AuditSink) -> None:
        self._sink = sink
        # Strong references so pending tasks are not garbage collected.
        self._pending: set[asyncio.Task] = set()

    def emit(self, event: AuditEvent) -> None:
        try:
            task = asyncio.get_running_loop().create_task(self._deliver(event))
        except RuntimeError:
            LOGGER.warning("No running loop; dropping audit event %s", event.type)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: AuditEvent) -> None:
        try:
            await self._sink.record(event)
        except Exception:
            LOGGER.exception("Audit sink failed for %s", event.type)

    async def drain(self) -> None:
        """Wait for in-flight events, mostly useful at shutdown and in tests."""

        if self._pending:
            await asyncio.gather(*list(self._pending))
