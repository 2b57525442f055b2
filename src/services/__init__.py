"""Service layer for ReplyAgent.

Provides the database-backed stores and the outbound adapters (completion
provider, message gateway, persistence recorder) that the reply
orchestrator is wired with.
"""

from src.services.completion_client import AnthropicCompletionClient
from src.services.conversation_service import ConversationService
from src.services.delivery_gateway import WhatsAppGateway
from src.services.gateway_credentials import ChannelInstanceService
from src.services.knowledge_service import KnowledgeService
from src.services.notification_log_service import NotificationLogService
from src.services.order_lookup_service import OrderLookupService
from src.services.persistence_recorder import PersistenceRecorder
from src.services.persona_service import PersonaService

__all__ = [
    "PersonaService",
    "ConversationService",
    "KnowledgeService",
    "OrderLookupService",
    "NotificationLogService",
    "ChannelInstanceService",
    "AnthropicCompletionClient",
    "WhatsAppGateway",
    "PersistenceRecorder",
]
