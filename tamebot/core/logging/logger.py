"""
Structured logging for Tamebot.

Records are queued by a ``QueueHandler`` on the calling task and written
by a background ``QueueListener``, so a slow disk never stalls the
Discord event loop. Output goes to stdout (JSON in production, plain text
otherwise) and to a JSON file rotated at midnight UTC.

Interaction context (user, encounter, operation, correlation id) lives
in a ContextVar and is stamped onto each record before it is queued:

    async with LogContext(user_id=uid, encounter_id=eid, operation="mount.tame"):
        logger.info("Taming attempt", extra={"pool": 3})

Anything passed as ``extra`` ends up under ``"extra"`` in the JSON line.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from tamebot.core.config.config import Config

CONTEXT_FIELDS = ("user_id", "guild_id", "encounter_id", "operation", "component", "event_name", "correlation_id")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(encounter_id)s] %(message)s"
LOG_FILE = "tamebot.json.log"
QUEUE_SIZE = 10_000
QUIET_LOGGERS = ("discord", "discord.http", "discord.gateway", "asyncio", "sqlalchemy.engine")

_context: ContextVar[Dict[str, Any]] = ContextVar("tamebot_log_context", default={})
_listener: Optional[QueueListener] = None

# LogRecord attributes that are not user-supplied extras.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _level() -> int:
    level = getattr(logging, str(Config.LOG_LEVEL).upper(), None)
    return level if isinstance(level, int) else logging.INFO


def _json_output() -> bool:
    if Config.LOG_JSON is not None:
        return bool(Config.LOG_JSON)
    return str(Config.ENVIRONMENT).lower() == "production"


class ContextFilter(logging.Filter):
    """Copies the current interaction context onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _context.get()
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, context.get(field, "-"))
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        line: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "at": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        line.update(
            (field, getattr(record, field))
            for field in CONTEXT_FIELDS
            if getattr(record, field, "-") != "-"
        )
        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS and not key.startswith("_")
        }
        if extra:
            line["extra"] = extra
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


class _NonBlockingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            sys.stderr.write("tamebot: log queue full, record dropped\n")


def _handlers(level: int) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(JSONFormatter() if _json_output() else logging.Formatter(TEXT_FORMAT))

    logs_dir = Path(Config.LOGS_DIR)
    logs_dir.mkdir(parents=True, exist_ok=True)
    daily = TimedRotatingFileHandler(
        logs_dir / LOG_FILE, when="midnight", backupCount=1, encoding="utf-8", utc=True
    )
    daily.setFormatter(JSONFormatter())

    for handler in (console, daily):
        handler.setLevel(level)
    return [console, daily]


def setup_logging() -> None:
    """Install the queue-backed handlers on the root logger. Safe to call twice."""
    global _listener
    if _listener is not None:
        return

    level = _level()
    records: "queue.Queue[logging.LogRecord]" = queue.Queue(QUEUE_SIZE)
    _listener = QueueListener(records, *_handlers(level), respect_handler_level=True)
    _listener.start()

    handler = _NonBlockingQueueHandler(records)
    handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={"level": logging.getLevelName(level), "json": _json_output(), "logs_dir": str(Config.LOGS_DIR)},
    )


def shutdown_logging() -> None:
    """Flush queued records and detach every root handler."""
    global _listener
    if _listener is None:
        return
    _listener.stop()
    for handler in _listener.handlers:
        handler.close()
    _listener = None
    logging.getLogger().handlers.clear()


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """Scoped interaction context; usable with ``with`` and ``async with``."""

    def __init__(
        self,
        user_id: Optional[Any] = None,
        encounter_id: Optional[str] = None,
        operation: Optional[str] = None,
        component: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **fields: Any,
    ) -> None:
        self.context: Dict[str, Any] = {
            **_context.get(),
            **{k: v for k, v in fields.items() if v is not None},
            "correlation_id": correlation_id or uuid.uuid4().hex[:8],
        }
        for key, value in (
            ("user_id", user_id),
            ("encounter_id", encounter_id),
            ("operation", operation),
            ("component", component),
        ):
            if value is not None:
                self.context[key] = str(value)
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _context.set(self.context)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


def set_log_context(**fields: Any) -> None:
    """Merge non-None fields into the current context without a scope."""
    _context.set({**_context.get(), **{k: v for k, v in fields.items() if v is not None}})


def get_log_context() -> Dict[str, Any]:
    return dict(_context.get())


setup_logging()
