"""Root logger setup for the calkit CLI and API server.

Standard-library loggers are rendered by structlog, either as a console
line (``text``) or one JSON object per record (``json``). Each record
carries the current API request id and the active OpenTelemetry trace and
span ids. With ``log_root`` set, JSON copies are written to ``calkit.log``
and ``uvicorn.log`` in that directory.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar, Token
from pathlib import Path

import structlog
from opentelemetry import trace

APP_LOG_FILENAME = "calkit.log"
SERVER_LOG_FILENAME = "uvicorn.log"

_SERVER_LOGGERS = ("uvicorn.access", "uvicorn.error")
_NOISE_LOGGERS = (*_SERVER_LOGGERS, "httpx", "httpcore")

_NULL_TRACE_ID = "0" * 32
_NULL_SPAN_ID = "0" * 16

_request_id: ContextVar[str | None] = ContextVar("calkit_request_id", default=None)


def set_request_context(request_id: str | None) -> Token[str | None]:
    return _request_id.set(request_id)


def reset_request_context(token: Token[str | None]) -> None:
    _request_id.reset(token)


def get_request_context() -> str | None:
    return _request_id.get()


def add_request_context(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    event_dict["request_id"] = _request_id.get()
    return event_dict


def add_otel_context(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    """Add hex ``trace_id``/``span_id``; all zeros outside a recording span."""
    span_context = trace.get_current_span().get_span_context()
    if span_context and span_context.trace_id:
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")
    else:
        event_dict["trace_id"] = _NULL_TRACE_ID
        event_dict["span_id"] = _NULL_SPAN_ID
    return event_dict


def _pre_chain(time_fmt: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt=time_fmt),
        add_request_context,
        add_otel_context,
        structlog.stdlib.ExtraAdder(),
    ]


def _formatter(
    renderer: structlog.types.Processor, pre_chain: list
) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=pre_chain,
    )


def _json_file_handler(path: Path) -> logging.FileHandler:
    handler = logging.FileHandler(path)
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer(), _pre_chain("iso")))
    handler.setLevel(logging.DEBUG)
    return handler


def configure_logging(
    level: str = "INFO",
    fmt: str = "text",
    log_root: Path | None = None,
) -> None:
    """Install calkit's handlers on the root logger, replacing existing ones.

    ``level`` is a logging level name (case-insensitive, unknown names fall
    back to INFO) and ``fmt`` is ``"text"`` or ``"json"``.
    """
    if fmt == "json":
        pre_chain = _pre_chain("iso")
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        pre_chain = _pre_chain("%H:%M:%S")
        renderer = structlog.dev.ConsoleRenderer()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_formatter(renderer, pre_chain))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISE_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_root is not None:
        log_root = Path(log_root)
        log_root.mkdir(parents=True, exist_ok=True)
        root.addHandler(_json_file_handler(log_root / APP_LOG_FILENAME))
        server_handler = _json_file_handler(log_root / SERVER_LOG_FILENAME)
        for name in _SERVER_LOGGERS:
            logging.getLogger(name).addHandler(server_handler)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
