"""Human handoff detection.

A message triggers handoff when any configured phrase appears in it
(case-insensitive substring). Every matching phrase is reported so the
audit log shows exactly why the conversation left the bot.
"""

from collections.abc import Iterable

from src.orchestrator.models import HandoffDecision


def classify_handoff(text: str | None, trigger_phrases: Iterable[str]) -> HandoffDecision:
    """Scan text for trigger phrases.

    Args:
        text: Inbound message text.
        trigger_phrases: Configured phrases (blank entries are ignored).

    Returns:
        HandoffDecision with all matched phrases in configuration order.
    """
    if not text:
        return HandoffDecision(triggered=False)
    haystack = text.casefold()
    matched: list[str] = []
    for phrase in trigger_phrases:
        needle = (phrase or "").strip()
        if needle and needle.casefold() in haystack and needle not in matched:
            matched.append(needle)
    return HandoffDecision(triggered=bool(matched), matched_phrases=tuple(matched))
