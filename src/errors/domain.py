"""Typed domain exceptions raised by the reply pipeline.

Each exception carries a registry code (E-XXXX) so the API and CLI can
surface a stable identifier alongside the message. Callers pick the
subclass that matches the failing stage:

    # In a stage
    raise ProviderError.from_code("E-2003", timeout=30)

    # In the orchestrator
    try:
        text = await completion.complete(...)
    except ProviderError as e:
        return ReplyResult(success=False, status=ReplyStatus.ERROR, error_code=e.code)
"""

from typing import Any

from src.errors.registry import get_error


class ReplyAgentError(Exception):
    """Base exception for all coded ReplyAgent errors.

    Attributes:
        code: Error code in E-XXXX format.
        message: Human-readable error message.
        remediation: Action an operator should take.
        is_retryable: Whether the operation can be retried without operator action.
        details: Additional context dictionary.
    """

    def __init__(
        self,
        code: str,
        message: str,
        remediation: str = "",
        is_retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.remediation = remediation
        self.is_retryable = is_retryable
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    @classmethod
    def from_code(cls, code: str, **kwargs: Any) -> "ReplyAgentError":
        """Create error from registry code with context substitution.

        Args:
            code: Error code in E-XXXX format.
            **kwargs: Context values for message template substitution.
                The special key 'details' is stored on the error rather
                than substituted.

        Returns:
            Instance of the calling class with a formatted message.
        """
        details = kwargs.pop("details", None)
        if not isinstance(details, dict):
            details = {}

        error_def = get_error(code)
        if not error_def:
            return cls(
                code=code,
                message=f"Unknown error: {code}",
                remediation="Contact support.",
                details=details,
            )

        message = error_def.message_template
        try:
            message = message.format(**kwargs)
        except KeyError:
            # Keep template if some placeholders are missing
            pass

        remediation = error_def.remediation
        try:
            remediation = remediation.format(**kwargs)
        except KeyError:
            pass

        return cls(
            code=error_def.code,
            message=message,
            remediation=remediation,
            is_retryable=error_def.is_retryable,
            details=details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses and log metadata."""
        return {
            "code": self.code,
            "message": self.message,
            "remediation": self.remediation,
            "is_retryable": self.is_retryable,
        }


class ConfigurationError(ReplyAgentError):
    """Fatal setup problem; aborts the pipeline before any side effect. Maps to HTTP 503."""


class ProviderError(ReplyAgentError):
    """Completion provider failed or returned nothing. Maps to HTTP 502."""


class DeliveryError(ReplyAgentError):
    """Messaging gateway could not accept the reply. Always recorded, never fatal."""


class PersistenceError(ReplyAgentError):
    """Bookkeeping write failed. Logged and swallowed by the recorder."""
