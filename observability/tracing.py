"""Optional Logfire spans around gather cycles and source retrievals.

Tracing is off unless ENABLE_LOGFIRE=true. When off, trace_operation
still yields an attribute dict and logs the operation duration at DEBUG,
so callers never branch on whether tracing is configured.

Every span carries the gather-cycle id from the logging context, which
lets a span be matched with the log lines of the same cycle.

Usage:
    >>> setup_tracing(enabled=True, service_name="scout")
    >>> with trace_operation("gather", {"timeframe": "24h"}) as attrs:
    ...     attrs["alerts"] = 12
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator

from observability.logging import run_id_var

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    enabled: bool = False
    service_name: str = "scout"
    configured: bool = False

    @property
    def active(self) -> bool:
        return self.enabled and self.configured


_context = TracingContext()


def setup_tracing(enabled: bool = False, service_name: str = "scout", token: str = "") -> TracingContext:
    """Configure Logfire when enabled.

    A missing logfire package or a failed configure leaves tracing off
    and the process running.

    Args:
        enabled: Whether to enable tracing
        service_name: Service name reported on every span
        token: Logfire write token; empty means local-only

    Returns:
        The module-level TracingContext
    """
    _context.enabled = enabled
    _context.service_name = service_name
    _context.configured = False

    if not enabled:
        logger.debug("Tracing disabled")
        return _context

    try:
        import logfire
    except ImportError:
        logger.warning("Tracing disabled | reason=logfire not installed")
        _context.enabled = False
        return _context

    try:
        logfire.configure(service_name=service_name, token=token or None)
    except Exception as e:
        logger.error("Tracing disabled | reason=configure failed error=%s", e)
        _context.enabled = False
        return _context

    _context.configured = True
    logger.info("Tracing enabled | service=%s", service_name)
    return _context


@contextmanager
def trace_operation(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[dict[str, Any], None, None]:
    """Wrap an operation in a span.

    Yields a dict; entries added to it inside the block are set on the
    span when the block exits normally.
    """
    result_attrs: dict[str, Any] = {}
    start = time.monotonic()
    try:
        if not _context.active:
            yield result_attrs
            return

        import logfire

        span_attrs = {"run_id": run_id_var.get(), **(attributes or {})}
        with logfire.span(name, **span_attrs) as span:
            yield result_attrs
            for key, value in result_attrs.items():
                span.set_attribute(key, value)
    finally:
        logger.debug("Operation done | name=%s elapsed=%.2fs", name, time.monotonic() - start)
