"""Guaranteed bookkeeping for every reply attempt.

The orchestrator runs each invocation inside ``PersistenceRecorder.track``.
Whatever path the pipeline takes (normal reply, handoff, delivery failure,
or an unexpected exception), the block's exit writes:

- an outbound conversation turn, when the owner is known and a reply text
  exists, with ``delivered_at`` set only if delivery succeeded;
- exactly one notification log entry.

A provider failure means no reply exists, so the pipeline calls
``suppress()`` and nothing is written. Write failures are logged with their
error code and swallowed: bookkeeping never changes the caller's outcome.

Example:
    async with recorder.track("whatsapp", "5511987654321", owner_id) as record:
        ...
        record.complete(status="sent", message=text, metadata={...})
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from src.db.models import NotificationStatus
from src.errors import PersistenceError
from src.orchestrator.ports import NotificationLog, TurnWriter
from src.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)


@dataclass
class ReplyRecord:
    """Mutable bookkeeping state for one invocation."""

    channel: str
    recipient: str
    owner_id: str | None = None
    contact_type: str = "unknown"
    order_id: str | None = None
    status: str | None = None
    message: str | None = None
    conversation_type: str = "ai_response"
    delivered_at: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    suppressed: bool = False
    turn_id: str | None = None
    log_id: str | None = None

    def complete(
        self,
        status: str,
        message: str,
        metadata: dict[str, Any] | None = None,
        conversation_type: str = "ai_response",
        delivered_at: str | None = None,
        order_id: str | None = None,
    ) -> None:
        """Set the final outcome to be written on exit."""
        self.status = status
        self.message = message
        self.conversation_type = conversation_type
        self.delivered_at = delivered_at
        if order_id:
            self.order_id = order_id
        if metadata:
            self.metadata.update(metadata)

    def suppress(self, reason: str) -> None:
        """Skip all writes (no reply was ever generated)."""
        self.suppressed = True
        self.metadata["suppressed_reason"] = reason


class PersistenceRecorder:
    """Writes conversation turns and notification log entries."""

    def __init__(self, turns: TurnWriter, log: NotificationLog) -> None:
        self._turns = turns
        self._log = log

    @asynccontextmanager
    async def track(
        self,
        channel: str,
        recipient: str,
        owner_id: str | None = None,
        contact_type: str = "unknown",
    ) -> AsyncIterator[ReplyRecord]:
        """Scope one invocation; writes happen when the block exits."""
        record = ReplyRecord(
            channel=channel,
            recipient=recipient,
            owner_id=owner_id,
            contact_type=contact_type,
        )
        error: Exception | None = None
        try:
            yield record
        except Exception as e:
            error = e
            raise
        finally:
            await self._flush(record, error)

    async def _flush(self, record: ReplyRecord, error: Exception | None) -> None:
        if record.suppressed:
            logger.info(
                "Persistence skipped for %s: %s",
                record.recipient, record.metadata.get("suppressed_reason"),
            )
            return

        if record.status is None:
            record.status = NotificationStatus.failed.value
            record.metadata["error"] = sanitize_error_message(
                f"{type(error).__name__}: {error}" if error else "pipeline exited without outcome"
            )

        if record.owner_id and record.message:
            await self._write_turn(record)
        await self._write_log(record)

    async def _write_turn(self, record: ReplyRecord) -> None:
        try:
            record.turn_id = await asyncio.to_thread(
                self._turns.add_outbound_turn,
                record.owner_id,
                record.message,
                record.contact_type,
                record.conversation_type,
                record.metadata,
                record.order_id,
                record.delivered_at,
            )
        except Exception as e:
            err = PersistenceError.from_code(
                "E-4001", owner_id=record.owner_id, reason=sanitize_error_message(str(e))
            )
            logger.error("%s", err)

    async def _write_log(self, record: ReplyRecord) -> None:
        try:
            record.log_id = await asyncio.to_thread(
                self._log.add_notification,
                record.channel,
                record.recipient,
                record.message or "",
                record.status,
                record.metadata,
            )
            logger.info(
                "Notification logged: recipient=%s status=%s", record.recipient, record.status
            )
        except Exception as e:
            err = PersistenceError.from_code(
                "E-4002", recipient=record.recipient, reason=sanitize_error_message(str(e))
            )
            logger.error("%s", err)

    async def flag_handoff(self, owner_id: str | None, reason: str, detected_at: str) -> bool:
        """Upsert the owner's handoff flag.

        Returns:
            True when the flag was written.
        """
        if not owner_id:
            logger.warning("Handoff triggered without a known owner, flag not written")
            return False
        try:
            await asyncio.to_thread(self._turns.upsert_handoff, owner_id, reason, detected_at)
        except Exception as e:
            err = PersistenceError.from_code(
                "E-4003", owner_id=owner_id, reason=sanitize_error_message(str(e))
            )
            logger.error("%s", err)
            return False
        logger.info("Conversation %s flagged for human attention: %s", owner_id, reason)
        return True
