"""Test helper utilities: in-memory stores and adapters for pipeline tests."""

from tests.helpers.fakes import (
    FakeCompletion,
    FakeGateway,
    FakeHistoryStore,
    FakeKnowledgeStore,
    FakeNotificationLog,
    FakePersonaStore,
    FakeRecordStore,
    FakeTurnWriter,
)

__all__ = [
    "FakeCompletion",
    "FakeGateway",
    "FakeHistoryStore",
    "FakeKnowledgeStore",
    "FakeNotificationLog",
    "FakePersonaStore",
    "FakeRecordStore",
    "FakeTurnWriter",
]
