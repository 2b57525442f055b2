"""Root-level pytest fixtures for all tests.

Provides shared fixtures:
- Database fixtures (in-memory SQLite shared across worker threads)
- Record builders for personas, orders and knowledge items
"""

import os
import tempfile
from collections.abc import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.db.models import Base
from src.orchestrator.models import (
    InboundEvent,
    KnowledgeCandidate,
    OrderRecord,
    PersonaRecord,
)


# ============================================================================
# Pytest Markers
# ============================================================================


def pytest_configure(config):
    """Register custom markers and isolate the default data directory."""
    config.addinivalue_line(
        "markers", "integration: marks tests that touch a file-backed database"
    )
    # Keep the module-level default engine away from the project root
    if not os.environ.get("REPLYAGENT_HOME"):
        os.environ["REPLYAGENT_HOME"] = tempfile.mkdtemp(prefix="replyagent-test-")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Session factory over an in-memory SQLite database.

    StaticPool keeps one connection so every session (and every worker
    thread used by asyncio.to_thread) sees the same database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    """Plain session for seeding rows."""
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Record builders
# ============================================================================


@pytest.fixture
def global_persona() -> PersonaRecord:
    return PersonaRecord(
        id="persona-global",
        name="Ana",
        agent_type="general",
        tone_of_voice="amigável",
        language="português",
        llm_model="claude-haiku-4-5",
        forbidden_phrases=("Fico no aguardo",),
        handoff_keywords=("falar com humano", "atendente"),
        signature="Equipe Logística",
        use_signature=False,
        auto_reply_delay_ms=1500,
        is_global=True,
    )


@pytest.fixture
def sample_order() -> OrderRecord:
    return OrderRecord(
        id="order-1",
        order_number="123456",
        erp_order_number="ERP-9001",
        status="in_transit",
        order_type="vendas_ecommerce",
        delivery_date="2026-03-10",
        shipping_date="2026-03-02T14:30:00",
        carrier_name="Rapidão Cometa",
        tracking_code="BR123456789",
        freight_modality="CIF",
        municipality="Campinas",
        customer_name="Maria Souza",
        customer_document="123.456.789-09",
        delivery_address="Rua das Flores, 100",
        total_value=1890.50,
        freight_value=120.00,
    )


@pytest.fixture
def knowledge_items() -> list[KnowledgeCandidate]:
    return [
        KnowledgeCandidate(
            id="kb-1",
            title="Prazo de entrega",
            content="O prazo de entrega padrão é de 5 dias úteis após a expedição.",
            keywords=("prazo", "entrega"),
            agent_type="general",
        ),
        KnowledgeCandidate(
            id="kb-2",
            title="Coleta com a Rapidão",
            content="Coletas da Rapidão Cometa ocorrem às terças e quintas.",
            keywords=("coleta",),
            carrier_name="Rapidão Cometa",
            agent_type="carrier",
        ),
        KnowledgeCandidate(
            id="kb-3",
            title="Troca e devolução",
            content="Trocas podem ser solicitadas em até 7 dias.",
            keywords=("troca", "devolução"),
            agent_type="customer",
        ),
    ]


@pytest.fixture
def make_event():
    """Factory for inbound events with sensible defaults."""

    def _make(**overrides) -> InboundEvent:
        data = {
            "conversation_id": "conv-1",
            "message_text": "Olá, tudo bem?",
            "sender_address": "5511987654321@s.whatsapp.net",
            "receiver_address": "5511900001111",
            "contact_type": "carrier",
        }
        data.update(overrides)
        return InboundEvent(**data)

    return _make
