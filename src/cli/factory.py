"""Orchestrator factory.

The factory keeps CLI commands and API routes from constructing stores and
adapters themselves. Tests build ReplyOrchestrator directly with fakes.
"""

import httpx
from sqlalchemy.orm import Session, sessionmaker

from src.cli.config import ReplyAgentConfig
from src.orchestrator.pipeline import ReplyOrchestrator


def build_orchestrator(
    config: ReplyAgentConfig,
    session_factory: sessionmaker[Session] | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ReplyOrchestrator:
    """Create a ReplyOrchestrator backed by the database and live adapters.

    Args:
        config: Loaded ReplyAgent configuration.
        session_factory: Session factory for the stores. Defaults to one
            bound to ``config.database.url``.
        http_client: Shared HTTP client for the messaging gateway. The
            gateway opens one per delivery when omitted.

    Returns:
        A fully wired ReplyOrchestrator.
    """
    from src.services import (
        AnthropicCompletionClient,
        ChannelInstanceService,
        ConversationService,
        KnowledgeService,
        NotificationLogService,
        OrderLookupService,
        PersistenceRecorder,
        PersonaService,
        WhatsAppGateway,
    )

    if session_factory is None:
        from src.db.connection import session_factory_for

        session_factory = session_factory_for(config.database.url)

    conversations = ConversationService(session_factory)
    gateway = WhatsAppGateway(
        config.gateway,
        ChannelInstanceService(session_factory),
        client=http_client,
    )
    return ReplyOrchestrator(
        personas=PersonaService(session_factory),
        history=conversations,
        knowledge=KnowledgeService(session_factory),
        records=OrderLookupService(session_factory),
        completion=AnthropicCompletionClient(config.completion),
        gateway=gateway,
        recorder=PersistenceRecorder(conversations, NotificationLogService(session_factory)),
        completion_config=config.completion,
        pipeline_config=config.pipeline,
        default_country_code=config.gateway.default_country_code,
    )
