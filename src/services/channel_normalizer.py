"""Canonicalization of channel addresses and gateway URLs.

Phone numbers arrive in many shapes ("+55 (11) 98765-4321",
"5511987654321@s.whatsapp.net", "11 98765 4321"). Lookups use the digits
only; when country or area code formatting drifts between systems, the
last 8 digits are used as a suffix key.
"""

import re

from src.orchestrator.models import NormalizedAddress

SUFFIX_LENGTH = 8

_NON_DIGITS = re.compile(r"\D")


def digits_only(value: str | None) -> str:
    """Strip every non-digit character. None yields an empty string."""
    if not value:
        return ""
    # WhatsApp JIDs carry a device/server part after "@"; drop it first
    local_part = value.split("@", 1)[0]
    return _NON_DIGITS.sub("", local_part)


def suffix_key(digits: str, length: int = SUFFIX_LENGTH) -> str:
    """Last ``length`` digits (the whole string when shorter)."""
    return digits[-length:] if digits else ""


def normalize_address(value: str | None) -> NormalizedAddress:
    """Normalize a phone-like address into digits and a suffix key.

    Never fails: malformed input produces an empty (or partial) key.

    Args:
        value: Raw address as received from the channel.

    Returns:
        NormalizedAddress with digits and suffix.
    """
    digits = digits_only(value)
    return NormalizedAddress(raw=value, digits=digits, suffix=suffix_key(digits))


def normalize_recipient(value: str | None, country_code: str = "55") -> str:
    """Normalize a recipient number for the delivery gateway.

    Prepends the default country code when it is absent and the number is
    short enough to be a national number (area code + subscriber, up to
    11 digits).

    Args:
        value: Raw recipient address.
        country_code: Country calling code to prepend.

    Returns:
        Digits-only recipient.
    """
    digits = digits_only(value)
    if digits and not digits.startswith(country_code) and len(digits) <= 11:
        digits = country_code + digits
    return digits


def normalize_base_url(url: str) -> str:
    """Ensure a scheme prefix and strip trailing slashes."""
    cleaned = (url or "").strip()
    if not cleaned:
        return ""
    if not cleaned.startswith(("http://", "https://")):
        cleaned = f"https://{cleaned}"
    return cleaned.rstrip("/")
