"""Append-only notification log for auto-reply attempts.

Entries are written once per inbound message and never updated. Metadata
is redacted before storage since it may carry raw gateway responses.
"""

import json
import logging
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from src.db.models import NotificationLogEntry, generate_uuid, utc_now_iso
from src.utils.redaction import redact_for_logging

logger = logging.getLogger(__name__)


class NotificationLogService:
    """Writes and lists notification log entries."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add_notification(
        self,
        channel: str,
        recipient: str,
        message_content: str,
        status: str,
        metadata: dict[str, Any],
    ) -> str:
        """Insert one log entry.

        Args:
            channel: Delivery channel (e.g. whatsapp).
            recipient: Recipient address.
            message_content: Generated or fixed reply text.
            status: Final status (sent, failed, pending_manual_send,
                human_handoff_required).
            metadata: Provenance bag; sensitive keys are redacted.

        Returns:
            The new entry id.
        """
        now = utc_now_iso()
        entry = NotificationLogEntry(
            id=generate_uuid(),
            channel=channel,
            recipient=recipient,
            message_content=message_content,
            status=status,
            metadata_json=json.dumps(redact_for_logging(metadata), default=str),
            sent_at=now,
            created_at=now,
        )
        entry_id = entry.id
        with self._session_factory.begin() as db:
            db.add(entry)
        return entry_id

    def list_recent(self, limit: int = 20, status: str | None = None) -> list[dict[str, Any]]:
        """List the most recent entries as dicts, newest first."""
        with self._session_factory() as db:
            query = db.query(NotificationLogEntry)
            if status:
                query = query.filter(NotificationLogEntry.status == status)
            rows = (
                query.order_by(NotificationLogEntry.created_at.desc())
                .limit(limit)
                .all()
            )
            return [
                {
                    "id": row.id,
                    "channel": row.channel,
                    "recipient": row.recipient,
                    "message_content": row.message_content,
                    "status": row.status,
                    "metadata": json.loads(row.metadata_json) if row.metadata_json else {},
                    "sent_at": row.sent_at,
                }
                for row in rows
            ]
