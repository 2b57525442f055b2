"""Error handling framework for ReplyAgent.

This package provides:
- Error code registry with E-XXXX format codes
- Typed exceptions per pipeline stage
- Error formatting for operator display

Error categories:
- E-1xxx: Configuration errors
- E-2xxx: Completion provider errors
- E-3xxx: Delivery gateway errors
- E-4xxx: Persistence errors
"""

from src.errors.domain import (
    ConfigurationError,
    DeliveryError,
    PersistenceError,
    ProviderError,
    ReplyAgentError,
)
from src.errors.formatter import format_error
from src.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Exceptions
    "ReplyAgentError",
    "ConfigurationError",
    "ProviderError",
    "DeliveryError",
    "PersistenceError",
    # Formatter
    "format_error",
]
