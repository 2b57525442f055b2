"""Knowledge base reads for reply grounding."""

from collections.abc import Sequence

from sqlalchemy.orm import Session, sessionmaker

from src.db.models import KnowledgeItem
from src.orchestrator.models import KnowledgeCandidate


class KnowledgeService:
    """Read-only knowledge base repository."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def candidates(
        self, agent_types: Sequence[str], limit: int
    ) -> list[KnowledgeCandidate]:
        """Return active items tagged with one of the agent types.

        Items come back by priority (highest first), then title, so the
        candidate cut-off is stable across calls.

        Args:
            agent_types: Applicability tags to include (e.g. carrier, general).
            limit: Maximum number of candidates.

        Returns:
            List of KnowledgeCandidate.
        """
        if not agent_types:
            return []
        with self._session_factory() as db:
            rows = (
                db.query(KnowledgeItem)
                .filter(
                    KnowledgeItem.is_active.is_(True),
                    KnowledgeItem.agent_type.in_(list(agent_types)),
                )
                .order_by(KnowledgeItem.priority.desc(), KnowledgeItem.title)
                .limit(limit)
                .all()
            )
            return [
                KnowledgeCandidate(
                    id=row.id,
                    title=row.title,
                    content=row.content,
                    keywords=tuple(row.keyword_list),
                    carrier_name=row.carrier_name,
                    agent_type=row.agent_type,
                )
                for row in rows
            ]
