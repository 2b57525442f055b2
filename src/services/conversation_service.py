"""Conversation thread reads and writes.

Reads feed the prompt history; writes record outbound replies and the
per-owner handoff flag shared with the operator console.

Example:
    svc = ConversationService(SessionLocal)
    turns = svc.recent_turns(carrier_id, limit=20)
"""

import json
import logging
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session, sessionmaker

from src.db.models import (
    Carrier,
    ConversationTurn,
    HandoffCache,
    MessageDirection,
    generate_uuid,
    utc_now_iso,
)
from src.orchestrator.models import HistoryTurn
from src.services.channel_normalizer import digits_only

logger = logging.getLogger(__name__)


class ConversationService:
    """Conversation history repository and outbound turn writer."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def recent_turns(self, owner_id: str, limit: int) -> list[HistoryTurn]:
        """Return the owner's most recent turns, newest first.

        Args:
            owner_id: Conversation owner (carrier id).
            limit: Maximum number of turns.

        Returns:
            List of HistoryTurn ordered by sent_at descending.
        """
        with self._session_factory() as db:
            rows = (
                db.query(ConversationTurn)
                .filter(ConversationTurn.owner_id == owner_id)
                .order_by(
                    ConversationTurn.sent_at.desc(),
                    ConversationTurn.created_at.desc(),
                )
                .limit(limit)
                .all()
            )
            return [
                HistoryTurn(direction=r.direction, content=r.content, sent_at=r.sent_at)
                for r in rows
            ]

    def find_owner_by_address_suffix(self, suffix: str) -> str | None:
        """Find the carrier whose WhatsApp or phone number ends with the suffix.

        Stored numbers are free-form, so matching happens on their digits.
        """
        if not suffix:
            return None
        with self._session_factory() as db:
            rows = (
                db.query(Carrier.id, Carrier.whatsapp, Carrier.phone)
                .filter(or_(Carrier.whatsapp.isnot(None), Carrier.phone.isnot(None)))
                .order_by(Carrier.created_at)
                .all()
            )
        for carrier_id, whatsapp, phone in rows:
            for number in (whatsapp, phone):
                if digits_only(number).endswith(suffix):
                    return carrier_id
        return None

    def add_outbound_turn(
        self,
        owner_id: str,
        content: str,
        contact_type: str,
        conversation_type: str,
        metadata: dict[str, Any],
        order_id: str | None = None,
        delivered_at: str | None = None,
    ) -> str:
        """Insert an outbound turn.

        Returns:
            The new turn id.
        """
        turn = ConversationTurn(
            id=generate_uuid(),
            owner_id=owner_id,
            order_id=order_id,
            direction=MessageDirection.outbound.value,
            content=content,
            contact_type=contact_type,
            conversation_type=conversation_type,
            metadata_json=json.dumps(metadata, default=str),
            sent_at=utc_now_iso(),
            delivered_at=delivered_at,
        )
        turn_id = turn.id
        with self._session_factory.begin() as db:
            db.add(turn)
        return turn_id

    def upsert_handoff(self, owner_id: str, reason: str, detected_at: str) -> None:
        """Flag the owner's conversation for human attention.

        Uses the dialect's native INSERT ... ON CONFLICT so concurrent
        triggers for the same owner converge on one row.
        """
        values = {
            "id": generate_uuid(),
            "owner_id": owner_id,
            "requires_human_attention": True,
            "handoff_reason": reason,
            "handoff_detected_at": detected_at,
            "updated_at": detected_at,
        }
        update = {
            "requires_human_attention": True,
            "handoff_reason": reason,
            "handoff_detected_at": detected_at,
            "updated_at": detected_at,
        }
        with self._session_factory.begin() as db:
            dialect = db.get_bind().dialect.name
            if dialect == "sqlite":
                from sqlalchemy.dialects.sqlite import insert
            elif dialect == "postgresql":
                from sqlalchemy.dialects.postgresql import insert
            else:
                self._merge_handoff(db, owner_id, update)
                return
            stmt = insert(HandoffCache).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[HandoffCache.owner_id], set_=update
            )
            db.execute(stmt)

    def _merge_handoff(self, db: Session, owner_id: str, update: dict[str, Any]) -> None:
        row = db.query(HandoffCache).filter(HandoffCache.owner_id == owner_id).first()
        if row is None:
            db.add(HandoffCache(id=generate_uuid(), owner_id=owner_id, **update))
            return
        for key, value in update.items():
            setattr(row, key, value)

    def get_handoff(self, owner_id: str) -> HandoffCache | None:
        """Return the owner's handoff flag row, if any."""
        with self._session_factory() as db:
            row = db.query(HandoffCache).filter(HandoffCache.owner_id == owner_id).first()
            if row is not None:
                db.expunge(row)
            return row
