"""Logging configuration for Storefront.

Application modules use plain stdlib loggers::

    from storefront.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Order confirmed", extra={"order_id": str(order.id)})

Request-scoped fields (the correlation ID, the acting user) live in a
``contextvars`` dict and are merged into every record, whether it came
through a stdlib logger or a structlog logger. Rendering is done by
structlog's ``ProcessorFormatter`` so both paths share one output format,
human-readable console lines or JSON.
"""

import asyncio
import contextvars
import functools
import logging
import sys
import time
from typing import Any, Callable, Dict, Optional

import structlog

_log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "storefront_log_context", default={}
)

_configured = False


# ============================================================================
# Context helpers
# ============================================================================


def set_context(**fields: Any) -> None:
    """Add fields to the current logging context."""
    _log_context.set({**_log_context.get(), **fields})


def clear_context() -> None:
    """Drop every field from the current logging context."""
    _log_context.set({})


def get_context() -> Dict[str, Any]:
    """Return a copy of the current logging context."""
    return dict(_log_context.get())


class LogContext:
    """Scope extra logging fields to a ``with`` block.

    Example:
        with LogContext(operation="confirm_order", order_id=str(order.id)):
            ...
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def _merge_log_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in _log_context.get().items():
        event_dict.setdefault(key, value)
    return event_dict


# ============================================================================
# Setup
# ============================================================================


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Install the root handler and the structlog pipeline.

    Safe to call more than once; later calls replace the handler.
    """
    global _configured

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    shared_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        timestamper,
        _merge_log_context,
    ]

    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[*shared_chain, structlog.stdlib.ExtraAdder()],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info if json_output else _identity,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_storefront_handler", False):
            root.removeHandler(existing)
    handler._storefront_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            *shared_chain,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # uvicorn installs its own handlers; route them through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = []
        uv_logger.propagate = True

    _configured = True


def _identity(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    return event_dict


def get_logger(name: str) -> logging.Logger:
    """Return a stdlib logger for ``name``."""
    return logging.getLogger(name)


def is_configured() -> bool:
    return _configured


# ============================================================================
# Decorators
# ============================================================================


def log_operation(operation: str) -> Callable:
    """Log start, completion and duration of the wrapped call.

    Works on both sync and async callables.
    """

    def decorator(func: Callable) -> Callable:
        op_logger = get_logger(func.__module__)

        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start = time.perf_counter()
                with LogContext(operation=operation):
                    op_logger.debug(f"{operation} started")
                    try:
                        result = await func(*args, **kwargs)
                    except Exception:
                        op_logger.warning(
                            f"{operation} failed",
                            extra={"duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                        )
                        raise
                    op_logger.debug(
                        f"{operation} finished",
                        extra={"duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                    )
                    return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            with LogContext(operation=operation):
                op_logger.debug(f"{operation} started")
                try:
                    result = func(*args, **kwargs)
                except Exception:
                    op_logger.warning(
                        f"{operation} failed",
                        extra={"duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                    )
                    raise
                op_logger.debug(
                    f"{operation} finished",
                    extra={"duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                )
                return result

        return wrapper

    return decorator
