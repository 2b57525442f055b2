"""Conversation history for prompt context."""

import logging

from src.orchestrator.models import ChatTurn, HistoryTurn, NormalizedAddress
from src.orchestrator.ports import HistoryStore

logger = logging.getLogger(__name__)

_ROLE_BY_DIRECTION = {"inbound": "user", "outbound": "assistant"}


def resolve_owner(
    store: HistoryStore, owner_id: str | None, sender: NormalizedAddress
) -> str | None:
    """Conversation owner from the event, else by sender address suffix.

    An unresolved owner is a normal state (unknown sender), not an error.
    """
    if owner_id:
        return owner_id
    if sender.is_empty:
        return None
    found = store.find_owner_by_address_suffix(sender.suffix)
    if found:
        logger.info("Owner resolved by sender suffix *%s -> %s", sender.suffix, found)
    return found


def to_chat_turns(turns: list[HistoryTurn]) -> list[ChatTurn]:
    """Reverse newest-first turns into chronological provider roles."""
    chat: list[ChatTurn] = []
    for turn in reversed(turns):
        role = _ROLE_BY_DIRECTION.get(turn.direction)
        if role is None or not turn.content:
            continue
        chat.append(ChatTurn(role=role, content=turn.content))
    return chat


def load_history(store: HistoryStore, owner_id: str | None, limit: int = 20) -> list[ChatTurn]:
    """Most recent turns for the owner in chronological order.

    Returns an empty list when the owner is unknown.
    """
    if not owner_id:
        return []
    return to_chat_turns(store.recent_turns(owner_id, limit))
