"""Observability infrastructure: logging setup and optional tracing.

setup_logging:
    Console + rotating file handlers, text or JSON, cycle-id context.

setup_tracing / trace_operation:
    Optional Logfire spans around cycles and source fetches.

Example:
    >>> from observability import setup_logging, trace_operation
    >>> setup_logging(config)
    >>> with trace_operation("cycle"):
    ...     pass
"""

from observability.logging import clear_context, set_cycle_context, setup_logging
from observability.tracing import TracingContext, setup_tracing, trace_operation

__all__ = [
    "setup_logging",
    "set_cycle_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
