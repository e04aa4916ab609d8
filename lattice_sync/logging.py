"""
Structured Logging for lattice_sync

structlog is layered over the standard library. Every event carries the id of
the reconciliation pass that emitted it, so interleaved passes running on
different worker threads can be told apart.
"""

import logging
import sys
import threading
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Optional

import structlog

from .config import ControllerSettings, get_config

# Thread-local storage for the active pass
_pass_context = threading.local()


class PassContext:
    """Tracks the reconciliation pass running on the current thread."""

    @staticmethod
    def get_pass_id() -> Optional[str]:
        return getattr(_pass_context, "pass_id", None)

    @staticmethod
    def set_pass_id(pass_id: str):
        _pass_context.pass_id = pass_id

    @staticmethod
    def clear_pass_id():
        if hasattr(_pass_context, "pass_id"):
            delattr(_pass_context, "pass_id")

    @staticmethod
    def get_stack_id() -> Optional[str]:
        return getattr(_pass_context, "stack_id", None)

    @staticmethod
    def set_stack_id(stack_id: Optional[str]):
        _pass_context.stack_id = stack_id

    @staticmethod
    def get_trace_context() -> Dict[str, Any]:
        """Return the fields injected into every log event."""
        context: Dict[str, Any] = {}
        pass_id = PassContext.get_pass_id()
        if pass_id:
            context["pass_id"] = pass_id
        stack_id = PassContext.get_stack_id()
        if stack_id:
            context["stack_id"] = stack_id
        return context


def add_pass_context(logger, method_name, event_dict):
    """structlog processor adding the current pass id and stack id."""
    for key, value in PassContext.get_trace_context().items():
        event_dict.setdefault(key, value)
    return event_dict


@contextmanager
def reconciliation_pass(stack_id: str, pass_id: Optional[str] = None):
    """Bind a pass id (generated if not given) for the duration of one pass."""
    old_pass_id = PassContext.get_pass_id()
    old_stack_id = PassContext.get_stack_id()

    PassContext.set_pass_id(pass_id or str(uuid.uuid4())[:8])
    PassContext.set_stack_id(stack_id)
    try:
        yield PassContext.get_pass_id()
    finally:
        if old_pass_id:
            PassContext.set_pass_id(old_pass_id)
        else:
            PassContext.clear_pass_id()
        PassContext.set_stack_id(old_stack_id)


@contextmanager
def time_operation(logger, operation: str, **context):
    """Log the duration and outcome of ``operation``."""
    start_time = time.time()
    success = False
    error = None

    try:
        yield
        success = True
    except Exception as e:
        error = str(e)
        raise
    finally:
        duration = time.time() - start_time
        log = logger.info if success else logger.warning
        log(
            "Operation completed",
            operation=operation,
            duration_seconds=round(duration, 4),
            success=success,
            error=error,
            **context,
        )


def setup_logging(settings: Optional[ControllerSettings] = None):
    """Setup structured logging for lattice_sync."""
    settings = settings or get_config()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_pass_context,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            (
                structlog.processors.JSONRenderer()
                if settings.log_format == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # structlog renders the final line; the handler only writes it out.
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("lattice_sync").info(
        f"Logging initialized - vpc={settings.cluster_vpc_id}, "
        f"cluster={settings.cluster_name}, log_level={settings.log_level}, "
        f"log_format={settings.log_format}"
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
