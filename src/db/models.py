"""SQLAlchemy ORM models for the ReplyAgent state database.

This module defines the tables the auto-reply orchestrator reads (personas,
knowledge base, orders, contacts, channel instances) and writes (conversation
turns, notification log, handoff cache). Uses SQLAlchemy 2.0 style with
Mapped and mapped_column.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


def _load_json_list(raw: str | None) -> list[str]:
    """Parse a JSON array column, tolerating NULL and corrupt values."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return [str(v) for v in value] if isinstance(value, list) else []


# Enums matching the database schema constraints


class ContactType(str, Enum):
    """Who is on the other side of a conversation."""

    carrier = "carrier"
    customer = "customer"
    unknown = "unknown"


class AgentType(str, Enum):
    """Applicability tag for personas and knowledge items."""

    carrier = "carrier"
    customer = "customer"
    general = "general"


class MessageDirection(str, Enum):
    """Direction of a conversation turn."""

    inbound = "inbound"
    outbound = "outbound"


class NotificationStatus(str, Enum):
    """Final status values for notification log entries.

    Lifecycle: entries are append-only; the status is decided once at
    insert time and never updated.
    """

    sent = "sent"
    failed = "failed"
    pending_manual_send = "pending_manual_send"
    human_handoff_required = "human_handoff_required"


class InstanceStatus(str, Enum):
    """Connection status of a channel (WhatsApp) instance."""

    connected = "connected"
    disconnected = "disconnected"
    connecting = "connecting"


# SQLAlchemy Base


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Models


class AgentPersona(Base):
    """Configured agent persona the orchestrator impersonates.

    A persona is either scoped to one routing address (the number that
    received the message) or is the single global catch-all. Fields left
    empty on a scoped persona are inherited from the global one at
    resolution time.

    Attributes:
        id: UUID primary key
        name: Display name the agent introduces itself with
        agent_type: Applicability tag (carrier, customer, general)
        tone_of_voice: Free-text tone description
        language: Reply language (e.g. pt-BR)
        personality: Free-text personality description
        custom_instructions: Extra instructions appended to the prompt
        custom_system_prompt: Full prompt override (used verbatim when set)
        signature: Optional signature line
        use_signature: Whether the signature may be used
        llm_model: Completion model identifier
        forbidden_phrases: JSON array of phrases the agent must never say
        human_handoff_keywords: JSON array of handoff trigger phrases
        conversation_style: chatty, concise or professional
        closing_style: varied, none or simple
        auto_reply_delay_ms: Pause before sending to simulate human pacing
        auto_reply_enabled: Master switch for autonomous replies
        max_response_time_seconds: Completion call timeout
        routing_address: Normalized digits of the receiving number (NULL = unscoped)
        is_global: Marks the catch-all persona
        is_active: Soft-disable flag
    """

    __tablename__ = "ai_agent_personas"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    agent_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AgentType.general.value
    )
    tone_of_voice: Mapped[str | None] = mapped_column(String(255), nullable=True)
    language: Mapped[str | None] = mapped_column(String(20), nullable=True)
    personality: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_system_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature: Mapped[str | None] = mapped_column(String(255), nullable=True)
    use_signature: Mapped[bool | None] = mapped_column(nullable=True)
    llm_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    forbidden_phrases: Mapped[str | None] = mapped_column(Text, nullable=True)
    human_handoff_keywords: Mapped[str | None] = mapped_column(Text, nullable=True)
    conversation_style: Mapped[str | None] = mapped_column(String(20), nullable=True)
    closing_style: Mapped[str | None] = mapped_column(String(20), nullable=True)
    auto_reply_delay_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    auto_reply_enabled: Mapped[bool] = mapped_column(nullable=False, default=True)
    max_response_time_seconds: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    routing_address: Mapped[str | None] = mapped_column(String(30), nullable=True)
    is_global: Mapped[bool] = mapped_column(nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    __table_args__ = (
        Index("idx_personas_routing_address", "routing_address"),
        Index("idx_personas_is_global", "is_global"),
    )

    @property
    def forbidden_phrase_list(self) -> list[str]:
        """Parse forbidden_phrases JSON into a Python list."""
        return _load_json_list(self.forbidden_phrases)

    @forbidden_phrase_list.setter
    def forbidden_phrase_list(self, value: list[str]) -> None:
        self.forbidden_phrases = json.dumps(value) if value else None

    @property
    def handoff_keyword_list(self) -> list[str]:
        """Parse human_handoff_keywords JSON into a Python list."""
        return _load_json_list(self.human_handoff_keywords)

    @handoff_keyword_list.setter
    def handoff_keyword_list(self, value: list[str]) -> None:
        self.human_handoff_keywords = json.dumps(value) if value else None

    def __repr__(self) -> str:
        return (
            f"<AgentPersona(name={self.name!r}, routing={self.routing_address!r}, "
            f"global={self.is_global})>"
        )


class Carrier(Base):
    """Carrier (transportadora) that owns a conversation thread.

    Attributes:
        name: Carrier display name
        whatsapp: WhatsApp number as stored by administration (any format)
        phone: Landline or secondary number (any format)
    """

    __tablename__ = "carriers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    whatsapp: Mapped[str | None] = mapped_column(String(30), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    def __repr__(self) -> str:
        return f"<Carrier(id={self.id!r}, name={self.name!r})>"


class CustomerContact(Base):
    """Customer contact known to the channel, with its most recent order."""

    __tablename__ = "customer_contacts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    whatsapp: Mapped[str | None] = mapped_column(String(30), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    last_order_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    def __repr__(self) -> str:
        return f"<CustomerContact(id={self.id!r}, name={self.customer_name!r})>"


class Order(Base):
    """Business record referenced by conversations.

    Holds operational, logistics and commercial data. The commercial and
    personal columns (values, tax document, address, customer name) are
    read by administration screens only; the reply pipeline projects
    the operational subset into a redacted snapshot.

    Attributes:
        order_number: Internal order number
        erp_order_number: Order number in the ERP (customers often quote this one)
        status: Internal status code (translated before display)
        order_type: Internal order type code
        delivery_date: Expected delivery date (ISO date)
        shipping_date: Shipping date (ISO date)
        carrier_name: Carrier assigned to the order
        tracking_code: Carrier tracking code
        freight_modality: CIF/FOB etc.
        municipality: Destination city
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    erp_order_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    order_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    delivery_date: Mapped[str | None] = mapped_column(String(50), nullable=True)
    shipping_date: Mapped[str | None] = mapped_column(String(50), nullable=True)
    carrier_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    tracking_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    freight_modality: Mapped[str | None] = mapped_column(String(20), nullable=True)
    municipality: Mapped[str | None] = mapped_column(String(120), nullable=True)

    # Sensitive columns (never projected into a snapshot)
    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    customer_document: Mapped[str | None] = mapped_column(String(30), nullable=True)
    delivery_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    freight_value: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )
    volumes: Mapped[list["OrderVolume"]] = relationship(
        "OrderVolume",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderVolume.volume_number",
    )

    __table_args__ = (
        Index("idx_orders_order_number", "order_number"),
        Index("idx_orders_erp_order_number", "erp_order_number"),
    )

    def __repr__(self) -> str:
        return f"<Order(number={self.order_number!r}, status={self.status!r})>"


class OrderItem(Base):
    """Line item of an order."""

    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    item_code: Mapped[str | None] = mapped_column(String(60), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    unit: Mapped[str | None] = mapped_column(String(10), nullable=True)
    unit_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_value: Mapped[float | None] = mapped_column(Float, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    __table_args__ = (Index("idx_order_items_order_id", "order_id"),)


class OrderVolume(Base):
    """Physical volume (package) of an order."""

    __tablename__ = "order_volumes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    volume_number: Mapped[int] = mapped_column(Integer, nullable=False)
    weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    length_cm: Mapped[float | None] = mapped_column(Float, nullable=True)
    width_cm: Mapped[float | None] = mapped_column(Float, nullable=True)
    height_cm: Mapped[float | None] = mapped_column(Float, nullable=True)
    packaging_type: Mapped[str | None] = mapped_column(String(30), nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="volumes")

    __table_args__ = (Index("idx_order_volumes_order_id", "order_id"),)


class KnowledgeItem(Base):
    """Knowledge base snippet used to ground generated replies.

    Attributes:
        title: Short title (scored against the inbound text)
        content: Body text (scored and injected into the prompt)
        category: Free-form grouping label
        keywords: JSON array of keywords
        carrier_name: Optional associated partner (carrier) name
        agent_type: Applicability tag (carrier, customer, general)
        priority: Candidate ordering before scoring (higher first)
        is_active: Soft-disable flag
    """

    __tablename__ = "ai_knowledge_base"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(String(60), nullable=True)
    keywords: Mapped[str | None] = mapped_column(Text, nullable=True)
    carrier_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    agent_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AgentType.general.value
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    __table_args__ = (Index("idx_knowledge_agent_type", "agent_type", "is_active"),)

    @property
    def keyword_list(self) -> list[str]:
        """Parse keywords JSON into a Python list."""
        return _load_json_list(self.keywords)

    @keyword_list.setter
    def keyword_list(self, value: list[str]) -> None:
        self.keywords = json.dumps(value) if value else None

    def __repr__(self) -> str:
        return f"<KnowledgeItem(title={self.title!r}, type={self.agent_type!r})>"


class ConversationTurn(Base):
    """One directional message in a conversation thread.

    Immutable once written, except for the delivery-status column on
    outbound turns.

    Attributes:
        owner_id: Entity that owns the thread (carrier id)
        order_id: Order discussed, when known
        direction: inbound or outbound
        content: Message text
        contact_type: carrier, customer or unknown
        conversation_type: Origin tag (e.g. ai_response, handoff_ack)
        metadata_json: Generation provenance (model, latency, gateway response)
        sent_at: ISO8601 timestamp the turn was sent/received
        delivered_at: ISO8601 timestamp of accepted delivery (NULL if not delivered)
    """

    __tablename__ = "carrier_conversations"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False)
    order_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    contact_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContactType.carrier.value
    )
    conversation_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    delivered_at: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    __table_args__ = (
        Index("idx_conversations_owner_sent", "owner_id", "sent_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ConversationTurn(owner={self.owner_id!r}, "
            f"direction={self.direction!r})>"
        )


class NotificationLogEntry(Base):
    """Append-only audit record of one auto-reply attempt.

    Attributes:
        channel: Delivery channel (whatsapp)
        recipient: Address the reply was (or would have been) sent to
        message_content: Generated or fixed text
        status: sent, failed, pending_manual_send or human_handoff_required
        metadata_json: Model, processing time, knowledge used, history length,
            delivery attempts
        sent_at: ISO8601 timestamp of the attempt
    """

    __tablename__ = "ai_notification_log"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    recipient: Mapped[str] = mapped_column(String(60), nullable=False)
    message_content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    __table_args__ = (
        Index("idx_notification_log_status", "status"),
        Index("idx_notification_log_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationLogEntry(recipient={self.recipient!r}, "
            f"status={self.status!r})>"
        )


class HandoffCache(Base):
    """Per-conversation handoff / sentiment flag shared with operators.

    One row per conversation owner; written with an upsert so repeated
    handoff triggers converge on the same row.
    """

    __tablename__ = "conversation_sentiment_cache"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    owner_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    requires_human_attention: Mapped[bool] = mapped_column(
        nullable=False, default=False
    )
    handoff_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    handoff_detected_at: Mapped[str | None] = mapped_column(String(50), nullable=True)
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    def __repr__(self) -> str:
        return (
            f"<HandoffCache(owner={self.owner_id!r}, "
            f"attention={self.requires_human_attention})>"
        )


class ChannelInstance(Base):
    """Messaging gateway instance (one connected WhatsApp session)."""

    __tablename__ = "whatsapp_instances"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    instance_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InstanceStatus.disconnected.value
    )
    api_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    connected_at: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ChannelInstance(key={self.instance_key!r}, status={self.status!r})>"
        )
