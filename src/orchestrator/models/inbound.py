"""Inbound event model consumed by the reply pipeline.

One inbound event corresponds to one message received on the channel and
triggers exactly one pipeline execution.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ContactTypeLiteral = Literal["carrier", "customer", "unknown"]


class InboundEvent(BaseModel):
    """Message received from the messaging channel.

    Attributes:
        conversation_id: Identifier of the conversation thread
        message_text: Text content of the inbound message
        sender_address: Address (phone number) of the sender, any format
        receiver_address: Address that received the message (routes the persona)
        owner_id: Entity owning the conversation thread, when known
        owner_name: Display name of the owner
        record_id: Business record explicitly attached to the message
        contact_type: Who is writing (carrier, customer, unknown)
        customer_id: Customer contact id when the sender is a known customer
        instance_key: Channel instance the message arrived on
    """

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    conversation_id: str = Field(..., min_length=1, description="Conversation thread id")
    message_text: str = Field(default="", description="Inbound message text")
    sender_address: str = Field(..., min_length=1, description="Sender phone/address")
    receiver_address: Optional[str] = Field(
        default=None, description="Receiving phone/address"
    )
    owner_id: Optional[str] = Field(default=None, description="Conversation owner id")
    owner_name: Optional[str] = Field(default=None, description="Owner display name")
    record_id: Optional[str] = Field(default=None, description="Attached record id")
    contact_type: ContactTypeLiteral = Field(
        default="unknown", description="carrier, customer or unknown"
    )
    customer_id: Optional[str] = Field(default=None, description="Customer contact id")
    instance_key: Optional[str] = Field(
        default=None, description="Channel instance the message arrived on"
    )

    @field_validator(
        "receiver_address", "owner_id", "owner_name", "record_id",
        "customer_id", "instance_key",
    )
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value
