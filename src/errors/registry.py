"""Error code registry with E-XXXX format codes.

This module defines the error code system for ReplyAgent, organizing errors
into categories:
- E-1xxx: Configuration errors
- E-2xxx: Completion provider errors
- E-3xxx: Delivery gateway errors
- E-4xxx: Persistence errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    CONFIGURATION = "configuration"  # E-1xxx
    PROVIDER = "provider"  # E-2xxx
    DELIVERY = "delivery"  # E-3xxx
    PERSISTENCE = "persistence"  # E-4xxx


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action an operator should take to resolve.
        is_retryable: Whether the operation can be retried without operator action.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Configuration errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.CONFIGURATION,
        title="No Persona Configured",
        message_template="No agent persona could be resolved for receiver '{receiver}' and no global persona exists.",
        remediation="Create an active global persona or one routed to this receiving number.",
    ),
    "E-1002": ErrorCode(
        code="E-1002",
        category=ErrorCategory.CONFIGURATION,
        title="Invalid Configuration",
        message_template="Configuration file '{path}' is invalid: {reason}",
        remediation="Fix the configuration file or remove it to use environment defaults.",
    ),
    # Completion provider errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.PROVIDER,
        title="Completion Provider Error",
        message_template="Completion provider returned status {status}: {reason}",
        remediation="Check the provider status and the configured model name.",
        is_retryable=True,
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.PROVIDER,
        title="Empty Completion",
        message_template="Completion provider returned no text for model '{model}'.",
        remediation="Retry the message; if it persists, review the persona prompt.",
        is_retryable=True,
    ),
    "E-2003": ErrorCode(
        code="E-2003",
        category=ErrorCategory.PROVIDER,
        title="Completion Timed Out",
        message_template="Completion did not finish within {timeout} seconds.",
        remediation="Raise the persona max response time or retry later.",
        is_retryable=True,
    ),
    "E-2004": ErrorCode(
        code="E-2004",
        category=ErrorCategory.PROVIDER,
        title="Provider Credentials Missing",
        message_template="No API key configured for the completion provider.",
        remediation="Set ANTHROPIC_API_KEY or completion.api_key in the configuration file.",
    ),
    "E-2005": ErrorCode(
        code="E-2005",
        category=ErrorCategory.PROVIDER,
        title="Provider Unreachable",
        message_template="Could not reach the completion provider: {reason}",
        remediation="Check network connectivity and retry.",
        is_retryable=True,
    ),
    # Delivery errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.DELIVERY,
        title="Gateway Not Configured",
        message_template="Messaging gateway URL or token is not configured; reply queued for manual sending.",
        remediation="Set GATEWAY_API_URL and GATEWAY_API_TOKEN, or store a token on the channel instance.",
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.DELIVERY,
        title="No Connected Instance",
        message_template="No connected channel instance is available.",
        remediation="Reconnect a WhatsApp instance in the gateway and resend the reply manually.",
        is_retryable=True,
    ),
    "E-3003": ErrorCode(
        code="E-3003",
        category=ErrorCategory.DELIVERY,
        title="Gateway Authentication Rejected",
        message_template="All {attempts} authentication conventions were rejected by the gateway.",
        remediation="Verify the gateway token for instance '{instance}'.",
    ),
    "E-3004": ErrorCode(
        code="E-3004",
        category=ErrorCategory.DELIVERY,
        title="Gateway Error",
        message_template="Gateway returned status {status} for instance '{instance}'.",
        remediation="Check the gateway logs; the reply can be resent manually.",
        is_retryable=True,
    ),
    "E-3005": ErrorCode(
        code="E-3005",
        category=ErrorCategory.DELIVERY,
        title="Gateway Unreachable",
        message_template="Could not reach the messaging gateway: {reason}",
        remediation="Check the gateway URL and network connectivity.",
        is_retryable=True,
    ),
    # Persistence errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.PERSISTENCE,
        title="Conversation Write Failed",
        message_template="Failed to record outbound turn for owner '{owner_id}': {reason}",
        remediation="Check database connectivity; the reply itself was processed.",
    ),
    "E-4002": ErrorCode(
        code="E-4002",
        category=ErrorCategory.PERSISTENCE,
        title="Notification Log Write Failed",
        message_template="Failed to write notification log for '{recipient}': {reason}",
        remediation="Check database connectivity; the reply itself was processed.",
    ),
    "E-4003": ErrorCode(
        code="E-4003",
        category=ErrorCategory.PERSISTENCE,
        title="Handoff Flag Write Failed",
        message_template="Failed to flag conversation '{owner_id}' for human attention: {reason}",
        remediation="Flag the conversation manually in the operator console.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Look up error code definition.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all error codes in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
