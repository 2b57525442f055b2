"""Store and provider contracts consumed by the reply pipeline.

The orchestrator depends only on these protocols. SQL-backed store
implementations live in ``src/services``; tests substitute in-memory fakes.
Store methods are synchronous (they run in worker threads); provider and
gateway methods are coroutines.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from src.orchestrator.models import (
    ChannelInstanceRecord,
    CompletionResult,
    DeliveryOutcome,
    HistoryTurn,
    KnowledgeCandidate,
    OrderItemRecord,
    OrderRecord,
    OrderVolumeRecord,
    PersonaRecord,
)


@runtime_checkable
class PersonaStore(Protocol):
    """Read-only persona lookups."""

    def find_by_routing_address(self, digits: str) -> PersonaRecord | None:
        """Active persona whose routing address equals the digits exactly."""
        ...

    def find_by_routing_suffix(self, suffix: str) -> PersonaRecord | None:
        """Active persona whose routing address ends with the suffix."""
        ...

    def get_global(self) -> PersonaRecord | None:
        """The single active global persona, if any."""
        ...


@runtime_checkable
class HistoryStore(Protocol):
    """Read-only conversation history lookups."""

    def recent_turns(self, owner_id: str, limit: int) -> list[HistoryTurn]:
        """Most recent turns for the owner, newest first."""
        ...

    def find_owner_by_address_suffix(self, suffix: str) -> str | None:
        """Owner id whose registered address ends with the suffix."""
        ...


@runtime_checkable
class KnowledgeStore(Protocol):
    """Read-only knowledge base candidates."""

    def candidates(
        self, agent_types: Sequence[str], limit: int
    ) -> list[KnowledgeCandidate]:
        """Active items tagged with any of the agent types."""
        ...


@runtime_checkable
class RecordStore(Protocol):
    """Read-only business record lookups."""

    def find_by_reference(self, reference: str) -> OrderRecord | None:
        """Order whose order number or ERP number equals the reference."""
        ...

    def find_by_id(self, record_id: str) -> OrderRecord | None:
        ...

    def find_last_for_customer(
        self, customer_id: str | None, address_suffix: str | None
    ) -> OrderRecord | None:
        """Last known order of a customer, by id or by address suffix."""
        ...

    def list_items(self, record_id: str) -> list[OrderItemRecord]:
        ...

    def list_volumes(self, record_id: str) -> list[OrderVolumeRecord]:
        ...


@runtime_checkable
class ChannelInstanceStore(Protocol):
    """Messaging gateway instance lookup."""

    def find_connected(self, preferred_key: str | None = None) -> ChannelInstanceRecord | None:
        """Connected instance, preferring the given key when it is connected."""
        ...


@runtime_checkable
class TurnWriter(Protocol):
    """Conversation write side used by the persistence recorder."""

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
        """Insert an outbound turn and return its id."""
        ...

    def upsert_handoff(self, owner_id: str, reason: str, detected_at: str) -> None:
        """Flag the owner's conversation as requiring human attention."""
        ...


@runtime_checkable
class NotificationLog(Protocol):
    """Append-only notification log."""

    def add_notification(
        self,
        channel: str,
        recipient: str,
        message_content: str,
        status: str,
        metadata: dict[str, Any],
    ) -> str:
        """Insert a notification log entry and return its id."""
        ...


@runtime_checkable
class CompletionProvider(Protocol):
    """Language completion capability."""

    async def complete(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> CompletionResult:
        """Generate one reply. Raises ProviderError on any failure."""
        ...


@runtime_checkable
class MessageGateway(Protocol):
    """Outbound delivery to the messaging channel."""

    async def deliver(
        self,
        recipient: str,
        text: str,
        instance_key: str | None = None,
        delay_ms: int = 0,
    ) -> DeliveryOutcome:
        """Send text to the recipient. Never raises for delivery failures."""
        ...
