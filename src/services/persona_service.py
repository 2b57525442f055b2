"""SQL-backed persona lookups for the reply pipeline.

Personas are administered elsewhere; this service only reads them. Each
call opens its own short-lived session so lookups can run in worker
threads.

Example:
    svc = PersonaService(SessionLocal)
    persona = svc.find_by_routing_address("5511987654321")
"""

import logging

from sqlalchemy.orm import Session, sessionmaker

from src.db.models import AgentPersona
from src.orchestrator.models import PersonaRecord

logger = logging.getLogger(__name__)


def persona_to_record(persona: AgentPersona) -> PersonaRecord:
    """Copy an AgentPersona row into a detached PersonaRecord."""
    return PersonaRecord(
        id=persona.id,
        name=persona.name,
        agent_type=persona.agent_type,
        tone_of_voice=persona.tone_of_voice,
        language=persona.language,
        personality=persona.personality,
        custom_instructions=persona.custom_instructions,
        custom_system_prompt=persona.custom_system_prompt,
        signature=persona.signature,
        use_signature=persona.use_signature,
        llm_model=persona.llm_model,
        forbidden_phrases=tuple(persona.forbidden_phrase_list),
        handoff_keywords=tuple(persona.handoff_keyword_list),
        conversation_style=persona.conversation_style,
        closing_style=persona.closing_style,
        auto_reply_delay_ms=persona.auto_reply_delay_ms,
        auto_reply_enabled=bool(persona.auto_reply_enabled),
        max_response_time_seconds=persona.max_response_time_seconds,
        routing_address=persona.routing_address,
        is_global=bool(persona.is_global),
    )


class PersonaService:
    """Read-only persona repository."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        """Initialize with a session factory.

        Args:
            session_factory: Factory producing new sessions (one per call).
        """
        self._session_factory = session_factory

    def _routed(self, db: Session):
        return db.query(AgentPersona).filter(
            AgentPersona.is_active.is_(True),
            AgentPersona.routing_address.isnot(None),
            AgentPersona.routing_address != "",
        )

    def find_by_routing_address(self, digits: str) -> PersonaRecord | None:
        """Find the active persona routed to exactly these digits."""
        if not digits:
            return None
        with self._session_factory() as db:
            persona = (
                self._routed(db)
                .filter(AgentPersona.routing_address == digits)
                .order_by(AgentPersona.created_at)
                .first()
            )
            return persona_to_record(persona) if persona else None

    def find_by_routing_suffix(self, suffix: str) -> PersonaRecord | None:
        """Find the active persona whose routing address ends with the suffix."""
        if not suffix:
            return None
        with self._session_factory() as db:
            persona = (
                self._routed(db)
                .filter(AgentPersona.routing_address.like(f"%{suffix}"))
                .order_by(AgentPersona.created_at)
                .first()
            )
            return persona_to_record(persona) if persona else None

    def get_global(self) -> PersonaRecord | None:
        """Return the global persona, or None when none is configured."""
        with self._session_factory() as db:
            personas = (
                db.query(AgentPersona)
                .filter(
                    AgentPersona.is_global.is_(True),
                    AgentPersona.is_active.is_(True),
                )
                .order_by(AgentPersona.created_at)
                .all()
            )
            if not personas:
                return None
            if len(personas) > 1:
                logger.warning(
                    "%d active global personas found, using the oldest (%s)",
                    len(personas), personas[0].id,
                )
            return persona_to_record(personas[0])
