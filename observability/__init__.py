"""Observability infrastructure: structured logging and optional tracing.

setup_logging:
    Console + rotating file logging with gather-cycle context.

set_run_context / set_source_context / clear_context:
    Stamp every log record with the gather-cycle id and the source being retrieved.

setup_tracing / trace_operation:
    Optional Logfire spans (ENABLE_LOGFIRE=true).

Example:
    >>> from observability import setup_tracing, trace_operation
    >>> setup_tracing(enabled=True, service_name="scout")
    >>> with trace_operation("gather"):
    ...     pass
"""

from observability.logging import clear_context, set_run_context, set_source_context, setup_logging
from observability.tracing import TracingContext, setup_tracing, trace_operation

__all__ = [
    "setup_logging",
    "set_run_context",
    "set_source_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
