# ==== STRUCTURED LOGGING WITH LOGURU ==== #

"""
Structured logging with loguru for the smart contract engine.

Every record is serialized as JSON. Loggers returned by ``get_logger`` bind
their keyword arguments as structured fields and stamp the active trace and
span ids, so a rule evaluation or override decision can be joined with its
span in the tracing backend.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from opentelemetry import trace


# ==== SINK CONFIGURATION ==== #

# (file name pattern, minimum level, rotation, retention)
_FILE_SINKS = (
    ("contract_engine_{time:YYYY-MM-DD}.log", "DEBUG", "100 MB", "30 days"),
    ("contract_engine_errors_{time:YYYY-MM-DD}.log", "ERROR", "50 MB", "90 days"),
)


class _StdlibBridge(logging.Handler):
    """Forward records emitted via the ``logging`` module into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        level: Any = record.levelno
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            pass

        depth = 2
        frame = logging.currentframe()
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def init_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure loguru sinks for the engine.

    Args:
        level: Console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for rotating JSON log files; console only when None
    """
    logger.remove()
    logger.add(sys.stdout, format="{message}", serialize=True, level=level.upper(), colorize=False)

    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        for pattern, sink_level, rotation, retention in _FILE_SINKS:
            logger.add(
                directory / pattern,
                level=sink_level,
                rotation=rotation,
                retention=retention,
                compression="gz",
                serialize=True,
                enqueue=True,
            )

    logging.basicConfig(handlers=[_StdlibBridge()], level=0, force=True)
    logger.bind(log_dir=log_dir).info("Logging configured", level=level.upper())


# ==== CONTEXTUAL LOGGER ==== #


def _trace_fields() -> Dict[str, str]:
    """Trace and span ids of the current span, empty outside a recording span."""
    span = trace.get_current_span()
    span_context = span.get_span_context()
    if not (span.is_recording() and span_context.is_valid):
        return {}
    return {
        "trace_id": format(span_context.trace_id, "032x"),
        "span_id": format(span_context.span_id, "016x"),
    }


class ContextualLogger:
    """Loguru wrapper binding keyword arguments and trace ids per call."""

    def __init__(self, name: str):
        self.name = name
        self._logger = logger.bind(logger_name=name)

    def _log(self, level: str, msg: str, fields: Dict[str, Any], exc: bool = False) -> None:
        bound = self._logger.bind(**_trace_fields(), **fields)
        bound.opt(depth=2, exception=exc).log(level, msg)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log("DEBUG", msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log("INFO", msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log("WARNING", msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log("ERROR", msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback attached."""
        self._log("ERROR", msg, kwargs, exc=True)


def get_logger(name: str) -> ContextualLogger:
    """
    Get a contextual logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        ContextualLogger: Logger bound to ``name``
    """
    return ContextualLogger(name)


def log_business_event(event_type: str, contract_id: str, **context: Any) -> None:
    """
    Emit an auditable business event such as ``override_approved``.

    Args:
        event_type: Event name
        contract_id: Contract the event belongs to
        **context: Extra structured fields
    """
    fields = dict(context, event_type=event_type, contract_id=contract_id, business_event=True)
    logger.bind(**_trace_fields(), **fields).info("Business event: {}", event_type)
