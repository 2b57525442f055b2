"""End-to-end reply pipeline over a file-backed SQLite database.

Only the two network edges are mocked: the Anthropic Messages API and the
WhatsApp gateway both run over httpx.MockTransport. Everything between
them (stores, persona resolution, context assembly, prompt composition,
delivery ladder, bookkeeping) is the production wiring from
build_orchestrator.
"""

import json

import httpx
import pytest
from anthropic import AsyncAnthropic

from src.cli.config import CompletionConfig, DatabaseConfig, GatewayConfig, ReplyAgentConfig
from src.cli.factory import build_orchestrator
from src.db.connection import init_db, session_factory_for
from src.db.models import (
    AgentPersona,
    Carrier,
    ChannelInstance,
    ConversationTurn,
    KnowledgeItem,
    Order,
)
from src.orchestrator.models import InboundEvent, ReplyStatus
from src.services import ConversationService, NotificationLogService

pytestmark = pytest.mark.integration

REPLY_TEXT = "Opa! O pedido 123456 está em trânsito com a Rapidão Cometa."


class ScriptedEndpoint:
    """MockTransport handler that records requests and returns one status."""

    def __init__(self, status: int = 200, body: dict | None = None) -> None:
        self.status = status
        self.body = body or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    def json_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


def _anthropic_message(text: str) -> dict:
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "model": "claude-haiku-4-5",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 310, "output_tokens": 24},
    }


@pytest.fixture
def session_factory(tmp_path):
    factory = session_factory_for(f"sqlite:///{tmp_path / 'replyagent.db'}")
    init_db(bind=factory.kw["bind"])
    with factory.begin() as db:
        db.add_all([
            AgentPersona(
                id="persona-global",
                name="Ana",
                is_global=True,
                tone_of_voice="amigável",
                human_handoff_keywords=json.dumps(["atendente"]),
                auto_reply_delay_ms=0,
            ),
            Carrier(id="car-1", name="Rapidão Cometa", whatsapp="+55 11 98765-4321"),
            Order(
                id="o1", order_number="123456", status="in_transit",
                carrier_name="Rapidão Cometa", customer_document="12.345.678/0001-90",
                total_value=990.0,
            ),
            KnowledgeItem(
                id="k1", title="Coleta com a Rapidão", content="Coletas às terças.",
                keywords=json.dumps(["coleta"]), carrier_name="Rapidão Cometa",
                agent_type="carrier",
            ),
            ChannelInstance(
                instance_key="main", status="connected", api_token="tok-live",
                connected_at="2026-03-01T00:00:00",
            ),
        ])
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture
def anthropic_api(monkeypatch):
    endpoint = ScriptedEndpoint(body=_anthropic_message(REPLY_TEXT))

    def _client(api_key: str) -> AsyncAnthropic:
        return AsyncAnthropic(
            api_key=api_key,
            max_retries=0,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(endpoint)),
        )

    monkeypatch.setattr("src.services.completion_client.AsyncAnthropic", _client)
    return endpoint


@pytest.fixture
def gateway_api():
    return ScriptedEndpoint(body={"key": {"id": "wamid.1"}})


def _orchestrator(session_factory, gateway_api, base_url="https://gw.test"):
    config = ReplyAgentConfig(
        database=DatabaseConfig(url=str(session_factory.kw["bind"].url)),
        completion=CompletionConfig(api_key="sk-ant-test"),
        gateway=GatewayConfig(base_url=base_url, token=""),
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(gateway_api))
    return build_orchestrator(config, session_factory=session_factory, http_client=client)


def _event(text: str) -> InboundEvent:
    return InboundEvent(
        conversation_id="conv-1",
        message_text=text,
        sender_address="5511987654321@s.whatsapp.net",
        receiver_address="5511900001111",
        contact_type="carrier",
    )


@pytest.mark.asyncio
async def test_reply_is_generated_delivered_and_recorded(session_factory, anthropic_api, gateway_api):
    orchestrator = _orchestrator(session_factory, gateway_api)

    result = await orchestrator.handle(_event("Qual a coleta do pedido 123456?"))

    assert result.status == ReplyStatus.SENT
    assert result.message == REPLY_TEXT
    assert result.knowledge_used == ["Coleta com a Rapidão"]

    [request] = anthropic_api.json_bodies()
    assert "Pedido: 123456" in request["system"]
    assert "12.345.678/0001-90" not in request["system"]
    assert "990" not in request["system"]
    assert request["messages"][-1]["role"] == "user"

    [delivery] = gateway_api.requests
    assert delivery.url.path == "/rest/sendMessage/main/text"
    assert delivery.headers["apikey"] == "tok-live"
    assert json.loads(delivery.content)["to"] == "5511987654321"

    [turn] = ConversationService(session_factory).recent_turns("car-1", limit=5)
    assert turn.direction == "outbound"
    assert turn.content == REPLY_TEXT

    [entry] = NotificationLogService(session_factory).list_recent()
    assert entry["status"] == "sent"
    assert entry["metadata"]["usage"] == {"input": 310, "output": 24}
    assert entry["metadata"]["record_reference"] == "123456"


@pytest.mark.asyncio
async def test_handoff_flags_conversation(session_factory, anthropic_api, gateway_api):
    orchestrator = _orchestrator(session_factory, gateway_api)

    result = await orchestrator.handle(_event("quero falar com um atendente"))

    assert result.status == ReplyStatus.HUMAN_HANDOFF_REQUIRED
    assert anthropic_api.requests == []
    assert len(gateway_api.requests) == 1

    flag = ConversationService(session_factory).get_handoff("car-1")
    assert flag.requires_human_attention is True
    assert flag.handoff_reason == "atendente"
    [entry] = NotificationLogService(session_factory).list_recent()
    assert entry["status"] == "human_handoff_required"


@pytest.mark.asyncio
async def test_unconfigured_gateway_queues_for_manual_send(session_factory, anthropic_api, gateway_api):
    orchestrator = _orchestrator(session_factory, gateway_api, base_url="")

    result = await orchestrator.handle(_event("bom dia"))

    assert result.success is True
    assert result.status == ReplyStatus.PENDING_MANUAL_SEND
    assert gateway_api.requests == []
    [entry] = NotificationLogService(session_factory).list_recent()
    assert entry["status"] == "pending_manual_send"
    assert entry["message_content"] == REPLY_TEXT


@pytest.mark.asyncio
async def test_provider_failure_writes_nothing(session_factory, anthropic_api, gateway_api):
    anthropic_api.status = 500
    anthropic_api.body = {"type": "error", "error": {"type": "api_error", "message": "boom"}}
    orchestrator = _orchestrator(session_factory, gateway_api)

    result = await orchestrator.handle(_event("pedido 123456"))

    assert result.success is False
    assert result.error_code == "E-2001"
    assert gateway_api.requests == []
    assert NotificationLogService(session_factory).list_recent() == []
    assert ConversationService(session_factory).recent_turns("car-1", limit=5) == []


@pytest.mark.asyncio
async def test_no_connected_instance_records_failed_reply(session_factory, anthropic_api, gateway_api):
    with session_factory.begin() as db:
        db.query(ChannelInstance).delete()
    orchestrator = _orchestrator(session_factory, gateway_api)

    result = await orchestrator.handle(_event("bom dia"))

    assert result.success is True
    assert result.status == ReplyStatus.FAILED
    assert result.sent is False
    assert result.message == REPLY_TEXT
    assert result.reason == "no_connected_instance"
    assert result.error_code == "E-3002"
    assert gateway_api.requests == []

    [entry] = NotificationLogService(session_factory).list_recent()
    assert entry["status"] == "failed"
    assert entry["message_content"] == REPLY_TEXT
    assert entry["metadata"]["delivery"]["reason"] == "no_connected_instance"
    assert entry["metadata"]["delivery"]["error_code"] == "E-3002"

    with session_factory() as db:
        [turn] = db.query(ConversationTurn).filter_by(owner_id="car-1").all()
        assert turn.direction == "outbound"
        assert turn.content == REPLY_TEXT
        assert turn.delivered_at is None
