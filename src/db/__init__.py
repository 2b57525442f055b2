"""Database module for ReplyAgent state and persistence."""

from src.db.connection import (
    SessionLocal,
    engine,
    init_db,
    session_factory_for,
)
from src.db.models import (
    AgentPersona,
    AgentType,
    Carrier,
    ChannelInstance,
    ContactType,
    ConversationTurn,
    CustomerContact,
    HandoffCache,
    KnowledgeItem,
    MessageDirection,
    NotificationLogEntry,
    NotificationStatus,
    Order,
    OrderItem,
    OrderVolume,
)

__all__ = [
    # Models
    "AgentPersona",
    "Carrier",
    "CustomerContact",
    "Order",
    "OrderItem",
    "OrderVolume",
    "KnowledgeItem",
    "ConversationTurn",
    "NotificationLogEntry",
    "HandoffCache",
    "ChannelInstance",
    # Enums
    "AgentType",
    "ContactType",
    "MessageDirection",
    "NotificationStatus",
    # Connection
    "engine",
    "SessionLocal",
    "init_db",
    "session_factory_for",
]
