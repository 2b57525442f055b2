"""Grounding context for generated replies."""

from src.orchestrator.context.assembler import ContextAssembler
from src.orchestrator.context.history import load_history, resolve_owner
from src.orchestrator.context.knowledge import rank_knowledge, score_item, tokenize
from src.orchestrator.context.records import (
    build_snapshot,
    extract_reference,
    find_record,
    translate_status,
)

__all__ = [
    "ContextAssembler",
    "load_history",
    "resolve_owner",
    "rank_knowledge",
    "score_item",
    "tokenize",
    "build_snapshot",
    "extract_reference",
    "find_record",
    "translate_status",
]
