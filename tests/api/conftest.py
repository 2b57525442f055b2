"""Pytest fixtures for API tests.

Provides a TestClient whose orchestrator dependency is replaced by one
wired to in-memory fakes, so no database or network is touched.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.routes.replies import get_orchestrator
from src.orchestrator.pipeline import ReplyOrchestrator
from src.services.persistence_recorder import PersistenceRecorder
from tests.helpers import (
    FakeCompletion,
    FakeGateway,
    FakeHistoryStore,
    FakeKnowledgeStore,
    FakeNotificationLog,
    FakePersonaStore,
    FakeRecordStore,
    FakeTurnWriter,
)


@pytest.fixture
def build_client(global_persona):
    """Factory for a TestClient around an orchestrator over fakes.

    Keyword overrides replace individual ports (personas, completion,
    gateway, ...). The created orchestrator is exposed as
    ``client.orchestrator`` and the notification log as ``client.log``.
    """

    def _build(**ports) -> TestClient:
        log = ports.pop("log", FakeNotificationLog())
        orchestrator = ReplyOrchestrator(
            personas=ports.pop("personas", FakePersonaStore([global_persona])),
            history=ports.pop("history", FakeHistoryStore()),
            knowledge=ports.pop("knowledge", FakeKnowledgeStore()),
            records=ports.pop("records", FakeRecordStore()),
            completion=ports.pop("completion", FakeCompletion()),
            gateway=ports.pop("gateway", FakeGateway()),
            recorder=PersistenceRecorder(FakeTurnWriter(), log),
        )
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        client = TestClient(app)
        client.orchestrator = orchestrator
        client.log = log
        return client

    yield _build
    app.dependency_overrides.clear()


@pytest.fixture
def client(build_client) -> Generator[TestClient, None, None]:
    """TestClient with the default fakes."""
    yield build_client()
