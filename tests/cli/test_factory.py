"""Tests for the orchestrator factory."""

import httpx

from src.cli.config import CompletionConfig, GatewayConfig, PipelineConfig, ReplyAgentConfig
from src.cli.factory import build_orchestrator
from src.orchestrator.pipeline import ReplyOrchestrator
from src.services import (
    AnthropicCompletionClient,
    ConversationService,
    KnowledgeService,
    OrderLookupService,
    PersonaService,
    WhatsAppGateway,
)


class TestBuildOrchestrator:
    """Tests for production wiring."""

    def test_wires_sql_stores_and_live_adapters(self, session_factory):
        config = ReplyAgentConfig(
            completion=CompletionConfig(api_key="sk-test"),
            gateway=GatewayConfig(base_url="https://gw", default_country_code="351"),
            pipeline=PipelineConfig(history_limit=4),
        )
        client = httpx.AsyncClient()

        orchestrator = build_orchestrator(config, session_factory=session_factory, http_client=client)

        assert isinstance(orchestrator, ReplyOrchestrator)
        assert isinstance(orchestrator._personas, PersonaService)
        assert isinstance(orchestrator._history, ConversationService)
        assert isinstance(orchestrator._completion, AnthropicCompletionClient)
        assert isinstance(orchestrator._gateway, WhatsAppGateway)
        assert isinstance(orchestrator._assembler._knowledge, KnowledgeService)
        assert isinstance(orchestrator._assembler._records, OrderLookupService)
        assert orchestrator._gateway._client is client
        assert orchestrator._pipeline.history_limit == 4
        assert orchestrator._country_code == "351"

    def test_history_store_doubles_as_turn_writer(self, session_factory):
        orchestrator = build_orchestrator(ReplyAgentConfig(), session_factory=session_factory)
        assert orchestrator._recorder._turns is orchestrator._history
