"""FastAPI route modules.

Exports all route modules for inclusion in the main application.
"""

from src.api.routes import replies

__all__ = [
    "replies",
]
