"""WhatsApp HTTP gateway delivery with an authentication fallback ladder.

Gateway deployments disagree on how the API token is sent: some read an
``apikey`` header, some expect ``Authorization: Bearer``, some only accept
the capitalized ``Apikey``. The accepted convention cannot be discovered
up front, so every send walks an ordered list of conventions against the
same endpoint:

- 2xx: accepted, stop.
- 401/403: auth rejected, try the next convention.
- Timeout or connection error: try the next convention.
- Any other status: stop, the remaining conventions would fail the same way.

Delivery never raises for gateway problems. Every outcome, including
"credentials not configured" and "no connected instance", is returned as a
``DeliveryOutcome`` for the recorder.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from src.cli.config import GatewayConfig
from src.db.models import NotificationStatus, utc_now_iso
from src.errors import DeliveryError
from src.orchestrator.models import AttemptOutcome, DeliveryAttempt, DeliveryOutcome
from src.orchestrator.ports import ChannelInstanceStore
from src.services.channel_normalizer import normalize_base_url, normalize_recipient
from src.services.gateway_credentials import resolve_token
from src.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

AUTH_REJECTED_STATUSES = frozenset({401, 403})

RESPONSE_EXCERPT_CHARS = 500


@dataclass(frozen=True)
class AuthConvention:
    """One way of presenting the gateway token."""

    name: str
    header: str
    template: str = "{token}"

    def headers(self, token: str) -> dict[str, str]:
        return {self.header: self.template.format(token=token)}


DEFAULT_AUTH_CONVENTIONS: tuple[AuthConvention, ...] = (
    AuthConvention(name="apikey", header="apikey"),
    AuthConvention(name="bearer", header="Authorization", template="Bearer {token}"),
    AuthConvention(name="Apikey", header="Apikey"),
)


def classify_status(status_code: int) -> AttemptOutcome:
    """Map an HTTP status to an attempt outcome."""
    if 200 <= status_code < 300:
        return AttemptOutcome.ACCEPTED
    if status_code in AUTH_REJECTED_STATUSES:
        return AttemptOutcome.AUTH_REJECTED
    return AttemptOutcome.OTHER_ERROR


def _excerpt(text: str | None) -> str | None:
    return sanitize_error_message(text, max_length=RESPONSE_EXCERPT_CHARS)


class WhatsAppGateway:
    """MessageGateway implementation for the WhatsApp HTTP gateway.

    Example:
        gateway = WhatsAppGateway(config.gateway, ChannelInstanceService(SessionLocal))
        outcome = await gateway.deliver("11 98765-4321", "Olá!")
    """

    def __init__(
        self,
        config: GatewayConfig,
        instances: ChannelInstanceStore,
        client: httpx.AsyncClient | None = None,
        conventions: tuple[AuthConvention, ...] = DEFAULT_AUTH_CONVENTIONS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the gateway.

        Args:
            config: Gateway URL, token, endpoint template and timeouts.
            instances: Store used to resolve the connected instance.
            client: Shared HTTP client; one is created per delivery otherwise.
            conventions: Ordered authentication conventions to try.
            sleep: Awaitable sleep used for the human-pacing delay.
        """
        self._config = config
        self._instances = instances
        self._client = client
        self._conventions = conventions
        self._sleep = sleep

    def _not_sent(
        self,
        recipient: str,
        log_status: NotificationStatus,
        error: DeliveryError,
        reason: str,
        instance_key: str | None = None,
        attempts: tuple[DeliveryAttempt, ...] = (),
    ) -> DeliveryOutcome:
        logger.warning("Delivery to %s not sent (%s): %s", recipient, reason, error)
        return DeliveryOutcome(
            delivered=False,
            log_status=log_status.value,
            recipient=recipient,
            reason=reason,
            instance_key=instance_key,
            attempts=attempts,
            error_code=error.code,
        )

    async def deliver(
        self,
        recipient: str,
        text: str,
        instance_key: str | None = None,
        delay_ms: int = 0,
    ) -> DeliveryOutcome:
        """Send text to a recipient through the connected instance.

        Args:
            recipient: Recipient address in any format.
            text: Message text.
            instance_key: Preferred instance (the one the message came in on).
            delay_ms: Pause before sending, to simulate human pacing.

        Returns:
            DeliveryOutcome describing what happened.
        """
        normalized = normalize_recipient(recipient, self._config.default_country_code)
        base_url = normalize_base_url(self._config.base_url)
        if not base_url:
            return self._not_sent(
                normalized,
                NotificationStatus.pending_manual_send,
                DeliveryError.from_code("E-3001"),
                reason="gateway_not_configured",
            )

        instance = await asyncio.to_thread(self._instances.find_connected, instance_key)
        if instance is None:
            return self._not_sent(
                normalized,
                NotificationStatus.failed,
                DeliveryError.from_code("E-3002"),
                reason="no_connected_instance",
            )

        token = resolve_token(instance.api_token, self._config.token)
        if token is None:
            return self._not_sent(
                normalized,
                NotificationStatus.pending_manual_send,
                DeliveryError.from_code("E-3001"),
                reason="gateway_not_configured",
                instance_key=instance.instance_key,
            )

        url = base_url + self._config.send_path.format(instance=instance.instance_key)

        if delay_ms > 0:
            logger.info("Waiting %dms before sending to %s", delay_ms, normalized)
            await self._sleep(delay_ms / 1000)

        if self._client is not None:
            attempts = await self._run_ladder(self._client, url, normalized, text, token)
        else:
            async with httpx.AsyncClient() as client:
                attempts = await self._run_ladder(client, url, normalized, text, token)

        return self._outcome(normalized, instance.instance_key, attempts)

    async def _run_ladder(
        self,
        client: httpx.AsyncClient,
        url: str,
        recipient: str,
        text: str,
        token: str,
    ) -> tuple[DeliveryAttempt, ...]:
        attempts: list[DeliveryAttempt] = []
        payload = {"to": recipient, "text": text}
        for convention in self._conventions:
            try:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"Content-Type": "application/json", **convention.headers(token)},
                    timeout=self._config.attempt_timeout_seconds,
                )
            except httpx.HTTPError as e:
                logger.warning(
                    "Gateway attempt %s failed: %s",
                    convention.name, sanitize_error_message(str(e)),
                )
                attempts.append(
                    DeliveryAttempt(
                        convention=convention.name,
                        outcome=AttemptOutcome.TRANSPORT_ERROR,
                        response=_excerpt(f"{type(e).__name__}: {e}"),
                    )
                )
                continue

            outcome = classify_status(response.status_code)
            attempts.append(
                DeliveryAttempt(
                    convention=convention.name,
                    outcome=outcome,
                    status_code=response.status_code,
                    response=_excerpt(response.text),
                )
            )
            logger.info(
                "Gateway attempt %s -> %d (%s)",
                convention.name, response.status_code, outcome.value,
            )
            if outcome is AttemptOutcome.AUTH_REJECTED:
                continue
            break
        return tuple(attempts)

    def _outcome(
        self,
        recipient: str,
        instance_key: str,
        attempts: tuple[DeliveryAttempt, ...],
    ) -> DeliveryOutcome:
        last = attempts[-1] if attempts else None
        if last is not None and last.outcome is AttemptOutcome.ACCEPTED:
            logger.info(
                "Delivered to %s via %s (%s)", recipient, instance_key, last.convention
            )
            return DeliveryOutcome(
                delivered=True,
                log_status=NotificationStatus.sent.value,
                recipient=recipient,
                instance_key=instance_key,
                attempts=attempts,
                delivered_at=utc_now_iso(),
            )

        if last is not None and last.outcome is AttemptOutcome.OTHER_ERROR:
            error = DeliveryError.from_code(
                "E-3004", status=last.status_code, instance=instance_key
            )
            reason = "gateway_error"
        elif last is not None and last.outcome is AttemptOutcome.TRANSPORT_ERROR:
            error = DeliveryError.from_code("E-3005", reason=last.response or "")
            reason = "gateway_unreachable"
        else:
            error = DeliveryError.from_code(
                "E-3003", attempts=len(attempts), instance=instance_key
            )
            reason = "auth_rejected"
        return self._not_sent(
            recipient,
            NotificationStatus.failed,
            error,
            reason=reason,
            instance_key=instance_key,
            attempts=attempts,
        )
