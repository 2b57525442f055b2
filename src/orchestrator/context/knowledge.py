"""Deterministic keyword scoring of knowledge base items.

No embeddings: every point of an item's score can be traced to a token,
so the titles and scores logged per reply explain why a snippet was used.

Per query token (lower-cased, longer than 2 characters, first 10 only):
    +10 if any item keyword contains the token
    +5  if the title contains the token
    +2  if the body contains the token
Plus +15 once when the carrier named on the referenced record contains
the item's carrier name.
"""

import logging
from collections.abc import Sequence

from src.orchestrator.models import KnowledgeCandidate, ScoredKnowledge
from src.orchestrator.ports import KnowledgeStore

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3
MAX_TOKENS = 10

KEYWORD_POINTS = 10
TITLE_POINTS = 5
BODY_POINTS = 2
CARRIER_BONUS = 15


def tokenize(text: str | None) -> list[str]:
    """Lower-case, split on whitespace, drop short tokens, keep the first 10."""
    if not text:
        return []
    tokens = [t for t in text.lower().split() if len(t) >= MIN_TOKEN_LENGTH]
    return tokens[:MAX_TOKENS]


def score_item(
    item: KnowledgeCandidate,
    tokens: Sequence[str],
    known_carrier: str | None = None,
) -> int:
    """Score one item against the query tokens."""
    keywords = [k.lower() for k in item.keywords]
    title = item.title.lower()
    body = item.content.lower()

    score = 0
    for token in tokens:
        if any(token in keyword for keyword in keywords):
            score += KEYWORD_POINTS
        if token in title:
            score += TITLE_POINTS
        if token in body:
            score += BODY_POINTS

    if known_carrier and item.carrier_name:
        if item.carrier_name.lower() in known_carrier.lower():
            score += CARRIER_BONUS
    return score


def rank_knowledge(
    candidates: Sequence[KnowledgeCandidate],
    text: str,
    known_carrier: str | None = None,
    top_k: int = 3,
) -> list[ScoredKnowledge]:
    """Score candidates and keep the best ones.

    Items scoring zero are dropped. Ties keep candidate order (the sort is
    stable), so the result is deterministic for a fixed input.

    Args:
        candidates: Items to score, in store order.
        text: Inbound message text.
        known_carrier: Carrier name from the referenced record, if any.
        top_k: Number of items to keep.

    Returns:
        Scored items, highest first.
    """
    tokens = tokenize(text)
    scored = [
        ScoredKnowledge(item=item, score=score_item(item, tokens, known_carrier))
        for item in candidates
    ]
    ranked = sorted(
        (s for s in scored if s.score > 0), key=lambda s: s.score, reverse=True
    )
    return ranked[:top_k]


def applicable_agent_types(contact_type: str) -> list[str]:
    """Applicability tags eligible for a conversation: the contact type plus general."""
    if contact_type and contact_type not in ("unknown", "general"):
        return [contact_type, "general"]
    return ["general"]


def fetch_candidates(
    store: KnowledgeStore, contact_type: str, limit: int = 10
) -> list[KnowledgeCandidate]:
    """Load the candidate set for the contact type (plus general items)."""
    return store.candidates(applicable_agent_types(contact_type), limit)


def log_ranking(ranked: Sequence[ScoredKnowledge], candidate_count: int) -> None:
    if ranked:
        logger.info(
            "Knowledge used: %s",
            ", ".join(f"{hit.item.title} ({hit.score})" for hit in ranked),
        )
    else:
        logger.info("No relevant knowledge among %d candidates", candidate_count)
