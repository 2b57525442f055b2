"""Selects the effective persona for an inbound message.

Resolution is a pure function of the receiving address and the persona
store: exact routing-address match, then suffix match (last 8 digits),
then the global persona. A routed persona inherits every field it leaves
empty from the global persona.
"""

import logging
from dataclasses import fields

from src.errors import ConfigurationError
from src.orchestrator.models import (
    EffectivePersona,
    NormalizedAddress,
    PersonaRecord,
    PersonaSource,
)
from src.orchestrator.ports import PersonaStore

logger = logging.getLogger(__name__)

DEFAULT_PERSONA_NAME = "Assistente"

# Always taken from the selected persona, never inherited
_OWN_FIELDS = frozenset({"id", "routing_address", "is_global", "auto_reply_enabled"})


def _is_unset(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, tuple, list)) and len(value) == 0:
        return True
    return False


def merge_personas(specific: PersonaRecord, fallback: PersonaRecord | None) -> PersonaRecord:
    """Fill the specific persona's unset fields from the fallback.

    Args:
        specific: Routed persona.
        fallback: Global persona (None when not configured).

    Returns:
        New PersonaRecord with inherited values.
    """
    if fallback is None:
        return specific
    merged = {}
    for f in fields(PersonaRecord):
        value = getattr(specific, f.name)
        if f.name not in _OWN_FIELDS and _is_unset(value):
            value = getattr(fallback, f.name)
        merged[f.name] = value
    return PersonaRecord(**merged)


def to_effective(record: PersonaRecord, source: PersonaSource) -> EffectivePersona:
    return EffectivePersona(
        id=record.id,
        name=record.name or DEFAULT_PERSONA_NAME,
        source=source,
        agent_type=record.agent_type or "general",
        tone_of_voice=record.tone_of_voice,
        language=record.language,
        personality=record.personality,
        custom_instructions=record.custom_instructions,
        custom_system_prompt=record.custom_system_prompt,
        signature=record.signature,
        use_signature=bool(record.use_signature),
        model=record.llm_model,
        forbidden_phrases=tuple(p for p in record.forbidden_phrases if p.strip()),
        handoff_keywords=tuple(k for k in record.handoff_keywords if k.strip()),
        conversation_style=record.conversation_style,
        closing_style=record.closing_style,
        reply_delay_ms=max(record.auto_reply_delay_ms or 0, 0),
        auto_reply_enabled=record.auto_reply_enabled,
        max_response_time_seconds=record.max_response_time_seconds,
    )


def resolve_persona(receiver: NormalizedAddress, store: PersonaStore) -> EffectivePersona:
    """Resolve the persona that answers messages sent to the receiver.

    Args:
        receiver: Normalized receiving address (may be empty).
        store: Persona repository.

    Returns:
        EffectivePersona, merged with the global persona when routed.

    Raises:
        ConfigurationError: No routed persona and no global persona exist.
    """
    specific: PersonaRecord | None = None
    source = PersonaSource.GLOBAL

    if not receiver.is_empty:
        specific = store.find_by_routing_address(receiver.digits)
        if specific is not None:
            source = PersonaSource.EXACT
        else:
            specific = store.find_by_routing_suffix(receiver.suffix)
            if specific is not None:
                source = PersonaSource.SUFFIX

    global_persona = store.get_global()

    if specific is not None:
        if specific.is_global or global_persona is None or specific.id == global_persona.id:
            record = specific
        else:
            record = merge_personas(specific, global_persona)
    elif global_persona is not None:
        record = global_persona
    else:
        raise ConfigurationError.from_code("E-1001", receiver=receiver.raw or "")

    persona = to_effective(record, source)
    logger.info(
        "Persona resolved: %s (%s) for receiver %s",
        persona.name, source.value, receiver.digits or "-",
    )
    return persona
