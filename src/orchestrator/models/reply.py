"""Value types passed between reply pipeline stages.

Store-facing records (``PersonaRecord``, ``KnowledgeCandidate``,
``OrderRecord`` ...) are plain snapshots of rows so they can cross thread
boundaries after the session that loaded them is closed. Stage outputs
(``EffectivePersona``, ``RecordSnapshot``, ``DeliveryOutcome`` ...) are
immutable and live only for one pipeline execution.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# --- Store records ---


@dataclass(frozen=True)
class PersonaRecord:
    """One configured persona row. Unset fields are None or empty."""

    id: str
    name: str | None = None
    agent_type: str | None = None
    tone_of_voice: str | None = None
    language: str | None = None
    personality: str | None = None
    custom_instructions: str | None = None
    custom_system_prompt: str | None = None
    signature: str | None = None
    use_signature: bool | None = None
    llm_model: str | None = None
    forbidden_phrases: tuple[str, ...] = ()
    handoff_keywords: tuple[str, ...] = ()
    conversation_style: str | None = None
    closing_style: str | None = None
    auto_reply_delay_ms: int | None = None
    auto_reply_enabled: bool = True
    max_response_time_seconds: int | None = None
    routing_address: str | None = None
    is_global: bool = False


@dataclass(frozen=True)
class HistoryTurn:
    """One stored conversation turn as read from the history store."""

    direction: str
    content: str
    sent_at: str


@dataclass(frozen=True)
class KnowledgeCandidate:
    """Knowledge base item eligible for scoring."""

    id: str
    title: str
    content: str
    keywords: tuple[str, ...] = ()
    carrier_name: str | None = None
    agent_type: str = "general"


@dataclass(frozen=True)
class OrderRecord:
    """Full business record as returned by the record store.

    Carries sensitive columns; only ``build_snapshot`` may read it and it
    projects the operational subset.
    """

    id: str
    order_number: str
    status: str
    erp_order_number: str | None = None
    order_type: str | None = None
    delivery_date: str | None = None
    shipping_date: str | None = None
    carrier_name: str | None = None
    tracking_code: str | None = None
    freight_modality: str | None = None
    municipality: str | None = None
    customer_name: str | None = None
    customer_document: str | None = None
    delivery_address: str | None = None
    total_value: float | None = None
    freight_value: float | None = None


@dataclass(frozen=True)
class OrderItemRecord:
    """Order line item. Monetary columns are intentionally absent."""

    item_code: str | None
    description: str | None
    quantity: float
    unit: str | None = None


@dataclass(frozen=True)
class OrderVolumeRecord:
    """Physical volume of an order."""

    volume_number: int
    weight_kg: float | None = None
    length_cm: float | None = None
    width_cm: float | None = None
    height_cm: float | None = None
    packaging_type: str | None = None


@dataclass(frozen=True)
class ChannelInstanceRecord:
    """Connected messaging gateway instance."""

    instance_key: str
    status: str
    api_token: str | None = None


# --- Stage outputs ---


@dataclass(frozen=True)
class NormalizedAddress:
    """Canonical form of a phone-like address.

    Attributes:
        raw: Original input (None when absent)
        digits: Digits only
        suffix: Last 8 digits, used for fuzzy matching across formatting drift
    """

    raw: str | None
    digits: str
    suffix: str

    @property
    def is_empty(self) -> bool:
        return not self.digits


class PersonaSource(str, Enum):
    """How the effective persona was selected."""

    EXACT = "routing_exact"
    SUFFIX = "routing_suffix"
    GLOBAL = "global"


@dataclass(frozen=True)
class EffectivePersona:
    """Persona after merging a routed persona with the global defaults."""

    id: str
    name: str
    source: PersonaSource
    agent_type: str = "general"
    tone_of_voice: str | None = None
    language: str | None = None
    personality: str | None = None
    custom_instructions: str | None = None
    custom_system_prompt: str | None = None
    signature: str | None = None
    use_signature: bool = False
    model: str | None = None
    forbidden_phrases: tuple[str, ...] = ()
    handoff_keywords: tuple[str, ...] = ()
    conversation_style: str | None = None
    closing_style: str | None = None
    reply_delay_ms: int = 0
    auto_reply_enabled: bool = True
    max_response_time_seconds: int | None = None


@dataclass(frozen=True)
class HandoffDecision:
    """Result of scanning inbound text for handoff trigger phrases."""

    triggered: bool
    matched_phrases: tuple[str, ...] = ()

    @property
    def reason(self) -> str:
        return ", ".join(self.matched_phrases)


@dataclass(frozen=True)
class ChatTurn:
    """Turn in completion-provider role form (user / assistant / system)."""

    role: str
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ScoredKnowledge:
    """Knowledge candidate with its relevance score."""

    item: KnowledgeCandidate
    score: int


@dataclass(frozen=True)
class VolumeSummary:
    """Per-volume logistics data kept in a snapshot."""

    volume_number: int
    weight_kg: float | None
    dimensions_cm: str | None
    packaging_type: str | None


@dataclass(frozen=True)
class RecordSnapshot:
    """Redacted projection of an order for prompt context.

    Contains operational, status and logistics fields only. There is no
    attribute for monetary values, tax identifiers, addresses or customer
    names.
    """

    record_id: str
    order_number: str
    lookup_method: str
    status_code: str
    status_label: str
    erp_order_number: str | None = None
    order_type_label: str | None = None
    delivery_date: str = "Não definida"
    shipping_date: str = "Não definida"
    carrier_name: str = "Pendente"
    tracking_code: str = "Aguardando"
    freight_modality: str | None = None
    municipality: str | None = None
    item_count: int = 0
    total_quantity: float = 0.0
    volume_count: int = 0
    total_weight_kg: float = 0.0
    volumes: tuple[VolumeSummary, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "order_number": self.order_number,
            "erp_order_number": self.erp_order_number,
            "lookup_method": self.lookup_method,
            "status": self.status_label,
            "order_type": self.order_type_label,
            "delivery_date": self.delivery_date,
            "shipping_date": self.shipping_date,
            "carrier_name": self.carrier_name,
            "tracking_code": self.tracking_code,
            "freight_modality": self.freight_modality,
            "municipality": self.municipality,
            "item_count": self.item_count,
            "total_quantity": self.total_quantity,
            "volume_count": self.volume_count,
            "total_weight_kg": self.total_weight_kg,
        }


@dataclass
class ConversationContext:
    """Everything the prompt composer needs besides the persona."""

    owner_id: str | None = None
    history: list[ChatTurn] = field(default_factory=list)
    knowledge: list[ScoredKnowledge] = field(default_factory=list)
    snapshot: RecordSnapshot | None = None
    degraded: list[str] = field(default_factory=list)

    @property
    def knowledge_titles(self) -> list[str]:
        return [hit.item.title for hit in self.knowledge]


@dataclass(frozen=True)
class ComposedPrompt:
    """System instruction plus the chronological message list."""

    system: str
    messages: list[dict[str, str]]
    used_custom_prompt: bool = False


@dataclass(frozen=True)
class CompletionResult:
    """Generated text plus provider bookkeeping."""

    text: str
    model: str
    input_tokens: int | None = None
    output_tokens: int | None = None
    latency_ms: int = 0

    @property
    def usage(self) -> dict[str, int | None]:
        """Token counts for log metadata. Keys must not contain "token" (redacted)."""
        return {"input": self.input_tokens, "output": self.output_tokens}


class AttemptOutcome(str, Enum):
    """Outcome of one delivery attempt."""

    ACCEPTED = "accepted"
    AUTH_REJECTED = "auth_rejected"
    OTHER_ERROR = "other_error"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class DeliveryAttempt:
    """One try against the gateway using one authentication convention."""

    convention: str
    outcome: AttemptOutcome
    status_code: int | None = None
    response: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "convention": self.convention,
            "outcome": self.outcome.value,
            "status_code": self.status_code,
            "response": self.response,
        }


@dataclass(frozen=True)
class DeliveryOutcome:
    """Final result of a delivery, including the attempt ladder.

    Attributes:
        delivered: True only when one attempt was accepted
        log_status: Notification log status (sent, failed, pending_manual_send)
        reason: Machine-readable reason when not delivered
        recipient: Normalized recipient address
        instance_key: Instance used (None if none was resolved)
        attempts: Attempts in the order they were made
        error_code: Registry code when not delivered
    """

    delivered: bool
    log_status: str
    recipient: str
    reason: str | None = None
    instance_key: str | None = None
    attempts: tuple[DeliveryAttempt, ...] = ()
    error_code: str | None = None
    delivered_at: str | None = None

    def to_metadata(self) -> dict[str, Any]:
        return {
            "delivered": self.delivered,
            "reason": self.reason,
            "instance_key": self.instance_key,
            "error_code": self.error_code,
            "attempts": [a.to_dict() for a in self.attempts],
        }


class ReplyStatus(str, Enum):
    """Overall status of one pipeline execution."""

    SENT = "sent"
    FAILED = "failed"
    PENDING_MANUAL_SEND = "pending_manual_send"
    HUMAN_HANDOFF_REQUIRED = "human_handoff_required"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class ReplyResult:
    """What one pipeline execution did.

    ``success`` is False only for configuration and provider failures;
    undelivered replies are success-shaped with ``sent`` False.
    """

    success: bool
    status: ReplyStatus
    reason: str | None = None
    message: str | None = None
    sent: bool = False
    handoff: bool = False
    matched_phrases: list[str] = field(default_factory=list)
    model: str | None = None
    processing_time_ms: int = 0
    knowledge_used: list[str] = field(default_factory=list)
    error_code: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status.value,
            "reason": self.reason,
            "message": self.message,
            "sent": self.sent,
            "handoff": self.handoff,
            "matched_phrases": list(self.matched_phrases),
            "model": self.model,
            "processing_time_ms": self.processing_time_ms,
            "knowledge_used": list(self.knowledge_used),
            "error_code": self.error_code,
            "error": self.error,
        }
