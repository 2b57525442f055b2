"""Context assembly: history, knowledge candidates and record snapshot.

The three lookups are independent, so they run concurrently on worker
threads. Any one of them may fail; the failure is logged, recorded in
``ConversationContext.degraded`` and the reply goes ahead with less
context.

Knowledge ranking runs after the lookups because the carrier bonus needs
the referenced record.
"""

import asyncio
import logging

from src.cli.config import PipelineConfig
from src.orchestrator.context.history import load_history
from src.orchestrator.context.knowledge import fetch_candidates, log_ranking, rank_knowledge
from src.orchestrator.context.records import MISSING_CARRIER, find_record
from src.orchestrator.models import ConversationContext, InboundEvent, NormalizedAddress
from src.orchestrator.ports import HistoryStore, KnowledgeStore, RecordStore

logger = logging.getLogger(__name__)


class ContextAssembler:
    """Gathers grounding context for one inbound message."""

    def __init__(
        self,
        history: HistoryStore,
        knowledge: KnowledgeStore,
        records: RecordStore,
        config: PipelineConfig | None = None,
    ) -> None:
        self._history = history
        self._knowledge = knowledge
        self._records = records
        self._config = config or PipelineConfig()

    async def assemble(
        self,
        event: InboundEvent,
        sender: NormalizedAddress,
        owner_id: str | None,
    ) -> ConversationContext:
        """Run the three lookups concurrently and combine their results.

        Args:
            event: Inbound event.
            sender: Normalized sender address.
            owner_id: Resolved conversation owner (None if unknown).

        Returns:
            ConversationContext; never raises for lookup failures.
        """
        history_result, candidates_result, snapshot_result = await asyncio.gather(
            asyncio.to_thread(
                load_history, self._history, owner_id, self._config.history_limit
            ),
            asyncio.to_thread(
                fetch_candidates,
                self._knowledge,
                event.contact_type,
                self._config.knowledge_candidate_limit,
            ),
            asyncio.to_thread(
                find_record,
                self._records,
                event.message_text,
                event.record_id,
                event.contact_type,
                event.customer_id,
                sender.suffix or None,
            ),
            return_exceptions=True,
        )

        context = ConversationContext(owner_id=owner_id)

        if isinstance(history_result, BaseException):
            logger.warning("History lookup failed: %s", history_result)
            context.degraded.append("history")
        else:
            context.history = history_result
            logger.info("Loaded %d history turns", len(history_result))

        if isinstance(snapshot_result, BaseException):
            logger.warning("Record lookup failed: %s", snapshot_result)
            context.degraded.append("record")
        else:
            context.snapshot = snapshot_result

        if isinstance(candidates_result, BaseException):
            logger.warning("Knowledge lookup failed: %s", candidates_result)
            context.degraded.append("knowledge")
        else:
            known_carrier = None
            if context.snapshot and context.snapshot.carrier_name != MISSING_CARRIER:
                known_carrier = context.snapshot.carrier_name
            context.knowledge = rank_knowledge(
                candidates_result,
                event.message_text,
                known_carrier=known_carrier,
                top_k=self._config.knowledge_top_k,
            )
            log_ranking(context.knowledge, len(candidates_result))

        return context
