"""Error formatting utilities for operator-facing output."""

from src.errors.domain import ReplyAgentError


def format_error(error: ReplyAgentError, include_remediation: bool = True) -> str:
    """Format error for display to an operator.

    Args:
        error: The ReplyAgentError to format.
        include_remediation: Whether to include remediation steps.

    Returns:
        Multi-line formatted string suitable for terminal display.
    """
    lines = [f"{error.code}: {error.message}"]

    for key, value in sorted(error.details.items()):
        lines.append(f"  {key}: {value}")

    if include_remediation and error.remediation:
        lines.append(f"  Action: {error.remediation}")

    return "\n".join(lines)
