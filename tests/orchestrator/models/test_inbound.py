"""Tests for the InboundEvent contract."""

import pytest
from pydantic import ValidationError

from src.orchestrator.models import InboundEvent


class TestInboundEvent:
    def test_defaults(self):
        event = InboundEvent(conversation_id="c1", sender_address="5511987654321")
        assert event.message_text == ""
        assert event.contact_type == "unknown"
        assert event.receiver_address is None
        assert event.instance_key is None

    def test_strips_whitespace(self):
        event = InboundEvent(
            conversation_id=" c1 ",
            sender_address=" 5511987654321 ",
            message_text="  Olá  ",
        )
        assert event.conversation_id == "c1"
        assert event.sender_address == "5511987654321"
        assert event.message_text == "Olá"

    @pytest.mark.parametrize(
        "field", ["receiver_address", "owner_id", "record_id", "customer_id", "instance_key"]
    )
    def test_blank_optional_becomes_none(self, field):
        event = InboundEvent(conversation_id="c1", sender_address="551199", **{field: "   "})
        assert getattr(event, field) is None

    def test_rejects_unknown_contact_type(self):
        with pytest.raises(ValidationError):
            InboundEvent(conversation_id="c1", sender_address="551199", contact_type="vendor")

    def test_requires_sender(self):
        with pytest.raises(ValidationError):
            InboundEvent(conversation_id="c1", sender_address="")
