"""Credential scrubbing for notification metadata, gateway excerpts and errors.

The gateway token travels as ``apikey: <t>``, ``Authorization: Bearer <t>``
or ``Authorization: Apikey <t>``. Gateway error bodies and httpx error
strings can echo any of those back, so nothing reaches the notification
log or the logs without passing through here.
"""

import re

REDACTED = "***REDACTED***"

# Case-insensitive substrings; a metadata key containing one is blanked
SENSITIVE_KEY_PARTS = (
    "token", "apikey", "api_key", "authorization", "secret", "password", "headers",
)

_AUTH_HEADER = re.compile(r"(?i)\bauthorization\s*:\s*(?:bearer|apikey)\s+\S+")
_KEYED_SECRET = re.compile(
    r'(?i)("?(?:apikey|api_key|access_token|token|secret|password)"?\s*[=:]\s*)'
    r'("[^"]*"|\S+)'
)


def redact_for_logging(metadata: dict) -> dict:
    """Copy a metadata dict with credential-bearing values blanked.

    Nested dicts and dicts inside lists (delivery attempts) are walked.
    """
    redacted = {}
    for key, value in metadata.items():
        if any(part in str(key).lower() for part in SENSITIVE_KEY_PARTS):
            redacted[key] = REDACTED
        elif isinstance(value, dict):
            redacted[key] = redact_for_logging(value)
        elif isinstance(value, list):
            redacted[key] = [
                redact_for_logging(item) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            redacted[key] = value
    return redacted


def sanitize_error_message(msg: str | None, max_length: int = 2000) -> str | None:
    """Scrub credentials out of free text and cap its length.

    Args:
        msg: Error message or raw gateway response body.
        max_length: Maximum length of the result, ellipsis included.

    Returns:
        Sanitized text, or None when msg is None.
    """
    if msg is None:
        return None
    sanitized = _AUTH_HEADER.sub(REDACTED, msg)
    sanitized = _KEYED_SECRET.sub(lambda m: m.group(1) + REDACTED, sanitized)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."
    return sanitized


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Mask a secret for display, keeping only its last characters."""
    if not value:
        return "(not set)"
    if len(value) <= visible * 2:
        return "****"
    return "****" + value[-visible:]
