"""API routes for the auto-reply pipeline.

Provides the endpoint the channel webhook calls for every inbound message.
All endpoints use the /api/v1/replies prefix.
"""

import logging

from fastapi import APIRouter, Depends, Response

from src.api.schemas import ReplyResponse
from src.cli.config import load_config
from src.orchestrator.models import InboundEvent, ReplyResult
from src.orchestrator.pipeline import ReplyOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/replies", tags=["replies"])

# Reason -> HTTP status for non-success results
_FAILURE_STATUS = {
    "configuration_error": 503,
    "provider_error": 502,
}

_orchestrator: ReplyOrchestrator | None = None


def get_orchestrator() -> ReplyOrchestrator:
    """Dependency injector for the process-wide ReplyOrchestrator.

    Built on first use from the resolved configuration so the
    per-conversation locks are shared by every request.
    """
    global _orchestrator
    if _orchestrator is None:
        from src.cli.factory import build_orchestrator

        _orchestrator = build_orchestrator(load_config())
        logger.info("Reply orchestrator initialized")
    return _orchestrator


def reset_orchestrator() -> None:
    """Drop the cached orchestrator (shutdown and tests)."""
    global _orchestrator
    _orchestrator = None


def _http_status(result: ReplyResult) -> int:
    if result.success:
        return 200
    return _FAILURE_STATUS.get(result.reason or "", 500)


@router.post("", response_model=ReplyResponse)
async def create_reply(
    event: InboundEvent,
    response: Response,
    orchestrator: ReplyOrchestrator = Depends(get_orchestrator),
) -> ReplyResponse:
    """Run the reply pipeline for one inbound message.

    Args:
        event: Inbound channel event.
        response: Outgoing response (status code set from the result).
        orchestrator: ReplyOrchestrator (injected).

    Returns:
        What the pipeline did. 200 for success-shaped results (including
        undelivered replies), 503 for configuration errors, 502 for
        completion provider errors.
    """
    logger.info(
        "Inbound message for conversation %s (%s)",
        event.conversation_id, event.contact_type,
    )
    result = await orchestrator.handle(event)
    response.status_code = _http_status(result)
    return ReplyResponse.from_result(result)
