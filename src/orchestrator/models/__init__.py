"""Models for the reply orchestrator.

This module exports the inbound event contract and the value types that
flow between pipeline stages.
"""

from src.orchestrator.models.inbound import ContactTypeLiteral, InboundEvent
from src.orchestrator.models.reply import (
    AttemptOutcome,
    ChannelInstanceRecord,
    ChatTurn,
    CompletionResult,
    ComposedPrompt,
    ConversationContext,
    DeliveryAttempt,
    DeliveryOutcome,
    EffectivePersona,
    HandoffDecision,
    HistoryTurn,
    KnowledgeCandidate,
    NormalizedAddress,
    OrderItemRecord,
    OrderRecord,
    OrderVolumeRecord,
    PersonaRecord,
    PersonaSource,
    RecordSnapshot,
    ReplyResult,
    ReplyStatus,
    ScoredKnowledge,
    VolumeSummary,
)

__all__ = [
    # Inbound
    "InboundEvent",
    "ContactTypeLiteral",
    # Store records
    "PersonaRecord",
    "HistoryTurn",
    "KnowledgeCandidate",
    "OrderRecord",
    "OrderItemRecord",
    "OrderVolumeRecord",
    "ChannelInstanceRecord",
    # Stage outputs
    "NormalizedAddress",
    "PersonaSource",
    "EffectivePersona",
    "HandoffDecision",
    "ChatTurn",
    "ScoredKnowledge",
    "VolumeSummary",
    "RecordSnapshot",
    "ConversationContext",
    "ComposedPrompt",
    "CompletionResult",
    "AttemptOutcome",
    "DeliveryAttempt",
    "DeliveryOutcome",
    "ReplyStatus",
    "ReplyResult",
]
