"""
Observability infrastructure for the furniture catalog backend.

Provides:
- Structured logging with correlation IDs
- Request correlation middleware
"""

from .logging import get_logger, correlation_id_context, get_correlation_id, setup_logging

__all__ = [
    "get_logger",
    "correlation_id_context",
    "get_correlation_id",
    "setup_logging",
]
