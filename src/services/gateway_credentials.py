"""Gateway instance and token resolution for outbound delivery.

Resolution order for the gateway token: the connected instance's own
token, then the configured token, then None. Tokens that still hold a
setup placeholder ("SEU_TOKEN", "YOUR_TOKEN" ...) count as unset.
"""

import logging

from sqlalchemy.orm import Session, sessionmaker

from src.db.models import ChannelInstance, InstanceStatus
from src.orchestrator.models import ChannelInstanceRecord

logger = logging.getLogger(__name__)

PLACEHOLDER_MARKERS = (
    "SEU_TOKEN",
    "API_KEY",
    "YOUR_TOKEN",
    "TOKEN_AQUI",
    "PLACEHOLDER",
    "XXX",
    "EXEMPLO",
)


def is_placeholder_token(token: str | None) -> bool:
    """Return True for empty tokens and setup placeholders."""
    if not token or not token.strip():
        return True
    upper = token.upper()
    return any(marker in upper for marker in PLACEHOLDER_MARKERS)


def resolve_token(instance_token: str | None, configured_token: str | None) -> str | None:
    """Pick the usable gateway token.

    Args:
        instance_token: Token stored on the channel instance.
        configured_token: Token from configuration (GATEWAY_API_TOKEN).

    Returns:
        The first token that is not a placeholder, or None.
    """
    if not is_placeholder_token(instance_token):
        return instance_token.strip()  # type: ignore[union-attr]
    if not is_placeholder_token(configured_token):
        if instance_token:
            logger.debug("Instance token is a placeholder, using configured token")
        return configured_token.strip()  # type: ignore[union-attr]
    return None


class ChannelInstanceService:
    """Looks up the connected messaging gateway instance."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def find_connected(self, preferred_key: str | None = None) -> ChannelInstanceRecord | None:
        """Return a connected, active instance.

        The preferred key (the instance the inbound message arrived on) wins
        when it is connected; otherwise the most recently connected instance
        is used.
        """
        with self._session_factory() as db:
            base = db.query(ChannelInstance).filter(
                ChannelInstance.is_active.is_(True),
                ChannelInstance.status == InstanceStatus.connected.value,
            )
            instance = None
            if preferred_key:
                instance = base.filter(ChannelInstance.instance_key == preferred_key).first()
                if instance is None:
                    logger.info(
                        "Preferred instance %s is not connected, falling back",
                        preferred_key,
                    )
            if instance is None:
                instance = base.order_by(ChannelInstance.connected_at.desc()).first()
            if instance is None:
                return None
            return ChannelInstanceRecord(
                instance_key=instance.instance_key,
                status=instance.status,
                api_token=instance.api_token,
            )
