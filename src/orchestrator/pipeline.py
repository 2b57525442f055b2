"""Reply orchestrator: one inbound message in, one pipeline execution out.

Stage order:
    normalize -> resolve persona -> handoff check (may short-circuit) ->
    assemble context -> compose prompt -> complete -> deliver -> record

Propagation:
- ConfigurationError (no persona) aborts before any side effect.
- ProviderError aborts after context assembly; nothing is delivered or
  recorded because no reply exists.
- Everything else degrades and still yields a success-shaped result
  describing what happened (sent, generated but not sent, handed off).

Runs for the same conversation are serialized inside one process by a
per-conversation lock, so replies go out in arrival order. Separate
processes are not coordinated.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from src.cli.config import CompletionConfig, PipelineConfig
from src.db.models import NotificationStatus, utc_now_iso
from src.errors import ConfigurationError, ProviderError
from src.orchestrator.context import ContextAssembler, resolve_owner
from src.orchestrator.handoff import classify_handoff
from src.orchestrator.models import (
    DeliveryOutcome,
    EffectivePersona,
    HandoffDecision,
    InboundEvent,
    NormalizedAddress,
    ReplyResult,
    ReplyStatus,
)
from src.orchestrator.persona_resolver import resolve_persona
from src.orchestrator.ports import (
    CompletionProvider,
    HistoryStore,
    KnowledgeStore,
    MessageGateway,
    PersonaStore,
    RecordStore,
)
from src.orchestrator.prompt_composer import compose_prompt
from src.services.channel_normalizer import normalize_address, normalize_recipient
from src.services.persistence_recorder import PersistenceRecorder, ReplyRecord

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class ReplyOrchestrator:
    """Runs the auto-reply pipeline for inbound channel messages.

    Example:
        orchestrator = build_orchestrator(load_config())
        result = await orchestrator.handle(InboundEvent(...))
    """

    def __init__(
        self,
        personas: PersonaStore,
        history: HistoryStore,
        knowledge: KnowledgeStore,
        records: RecordStore,
        completion: CompletionProvider,
        gateway: MessageGateway,
        recorder: PersistenceRecorder,
        completion_config: CompletionConfig | None = None,
        pipeline_config: PipelineConfig | None = None,
        default_country_code: str = "55",
    ) -> None:
        self._personas = personas
        self._history = history
        self._completion = completion
        self._gateway = gateway
        self._recorder = recorder
        self._completion_config = completion_config or CompletionConfig()
        self._pipeline = pipeline_config or PipelineConfig()
        self._country_code = default_country_code
        self._assembler = ContextAssembler(history, knowledge, records, self._pipeline)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _conversation_lock(self, conversation_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[conversation_id] -= 1
            if self._lock_users[conversation_id] == 0:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]

    async def handle(self, event: InboundEvent) -> ReplyResult:
        """Process one inbound message.

        Args:
            event: Inbound channel event.

        Returns:
            ReplyResult. ``success`` is False only for configuration and
            provider failures.
        """
        started = time.monotonic()
        if not event.message_text.strip():
            logger.info("Skipping empty message in conversation %s", event.conversation_id)
            return ReplyResult(success=True, status=ReplyStatus.SKIPPED, reason="empty_message")

        async with self._conversation_lock(event.conversation_id):
            return await self._run(event, started)

    async def _run(self, event: InboundEvent, started: float) -> ReplyResult:
        sender = normalize_address(event.sender_address)
        receiver = normalize_address(event.receiver_address)

        try:
            persona = await asyncio.to_thread(resolve_persona, receiver, self._personas)
        except ConfigurationError as e:
            logger.error("Reply aborted: %s", e)
            return ReplyResult(
                success=False,
                status=ReplyStatus.ERROR,
                reason="configuration_error",
                error_code=e.code,
                error=e.message,
                processing_time_ms=_elapsed_ms(started),
            )

        if not persona.auto_reply_enabled:
            logger.info("Auto-reply disabled for persona %s", persona.name)
            return ReplyResult(
                success=True,
                status=ReplyStatus.SKIPPED,
                reason="auto_reply_disabled",
                processing_time_ms=_elapsed_ms(started),
            )

        owner_id = await self._resolve_owner(event, sender)
        decision = classify_handoff(event.message_text, persona.handoff_keywords)
        recipient = normalize_recipient(event.sender_address, self._country_code)

        async with self._recorder.track(
            self._pipeline.channel, recipient, owner_id, event.contact_type
        ) as record:
            if decision.triggered:
                logger.info("Handoff triggered by: %s", decision.reason)
                return await self._handoff(event, persona, decision, record, started)
            logger.info("No handoff trigger, generating reply")
            return await self._reply(event, persona, sender, owner_id, record, started)

    async def _resolve_owner(self, event: InboundEvent, sender: NormalizedAddress) -> str | None:
        try:
            return await asyncio.to_thread(resolve_owner, self._history, event.owner_id, sender)
        except Exception as e:
            logger.warning("Owner lookup failed, continuing without history owner: %s", e)
            return None

    async def _deliver(
        self, event: InboundEvent, text: str, delay_ms: int
    ) -> DeliveryOutcome:
        try:
            return await self._gateway.deliver(
                event.sender_address, text, event.instance_key, delay_ms=delay_ms
            )
        except Exception as e:
            logger.exception("Delivery raised unexpectedly: %s", e)
            return DeliveryOutcome(
                delivered=False,
                log_status=NotificationStatus.failed.value,
                recipient=normalize_recipient(event.sender_address, self._country_code),
                reason="delivery_exception",
            )

    async def _handoff(
        self,
        event: InboundEvent,
        persona: EffectivePersona,
        decision: HandoffDecision,
        record: ReplyRecord,
        started: float,
    ) -> ReplyResult:
        detected_at = utc_now_iso()
        await self._recorder.flag_handoff(record.owner_id, decision.reason, detected_at)

        acknowledgment = self._pipeline.handoff_acknowledgment
        outcome = await self._deliver(event, acknowledgment, delay_ms=0)

        processing_ms = _elapsed_ms(started)
        record.complete(
            status=NotificationStatus.human_handoff_required.value,
            message=acknowledgment,
            conversation_type="handoff_ack",
            delivered_at=outcome.delivered_at,
            metadata={
                "generated_by": "ai_agent",
                "ai_generated": False,
                "persona": persona.name,
                "matched_phrases": list(decision.matched_phrases),
                "handoff_reason": decision.reason,
                "handoff_detected_at": detected_at,
                "processing_time_ms": processing_ms,
                "delivery": outcome.to_metadata(),
            },
        )
        return ReplyResult(
            success=True,
            status=ReplyStatus.HUMAN_HANDOFF_REQUIRED,
            reason="human_handoff_required",
            message=acknowledgment,
            sent=outcome.delivered,
            handoff=True,
            matched_phrases=list(decision.matched_phrases),
            processing_time_ms=processing_ms,
        )

    async def _reply(
        self,
        event: InboundEvent,
        persona: EffectivePersona,
        sender: NormalizedAddress,
        owner_id: str | None,
        record: ReplyRecord,
        started: float,
    ) -> ReplyResult:
        context = await self._assembler.assemble(event, sender, owner_id)
        prompt = compose_prompt(
            persona, context, event, snippet_chars=self._pipeline.knowledge_snippet_chars
        )

        model = persona.model or self._completion_config.default_model
        timeout = persona.max_response_time_seconds or self._completion_config.timeout_seconds
        try:
            completion = await self._completion.complete(
                prompt.messages,
                model=model,
                max_tokens=self._completion_config.max_tokens,
                temperature=self._completion_config.temperature,
                timeout=timeout,
            )
        except ProviderError as e:
            record.suppress("provider_error")
            logger.error("Completion failed for %s: %s", event.conversation_id, e)
            return ReplyResult(
                success=False,
                status=ReplyStatus.ERROR,
                reason="provider_error",
                model=model,
                error_code=e.code,
                error=e.message,
                processing_time_ms=_elapsed_ms(started),
                knowledge_used=context.knowledge_titles,
            )

        logger.info("Reply generated with %s: %s", completion.model, completion.text[:100])
        outcome = await self._deliver(event, completion.text, delay_ms=persona.reply_delay_ms)

        processing_ms = _elapsed_ms(started)
        snapshot = context.snapshot
        record.complete(
            status=outcome.log_status,
            message=completion.text,
            conversation_type="ai_response",
            delivered_at=outcome.delivered_at,
            order_id=snapshot.record_id if snapshot else None,
            metadata={
                "generated_by": "ai_agent",
                "ai_generated": True,
                "persona": persona.name,
                "model": completion.model,
                "processing_time_ms": processing_ms,
                "completion_latency_ms": completion.latency_ms,
                "usage": completion.usage,
                "knowledge_used": context.knowledge_titles,
                "history_length": len(context.history),
                "record_reference": snapshot.order_number if snapshot else None,
                "degraded_context": list(context.degraded),
                "custom_prompt": prompt.used_custom_prompt,
                "delivery": outcome.to_metadata(),
            },
        )
        logger.info(
            "Reply for %s finished: status=%s sent=%s in %dms",
            event.conversation_id, outcome.log_status, outcome.delivered, processing_ms,
        )
        return ReplyResult(
            success=True,
            status=ReplyStatus(outcome.log_status),
            reason=outcome.reason,
            message=completion.text,
            sent=outcome.delivered,
            model=completion.model,
            processing_time_ms=processing_ms,
            knowledge_used=context.knowledge_titles,
            error_code=outcome.error_code,
        )
