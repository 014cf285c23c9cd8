"""
Logging for HireScout.

Console output goes through Rich, file output is one JSON object per line.
Concurrent executors and enrichment tasks log through a contextual adapter
so each line carries the org / search / run / company it belongs to.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import orjson
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

ROOT_LOGGER = "hirescout"

CONTEXT_FIELDS = ("org_id", "search_id", "run_id", "scraper_index", "company_id")

# Per-request chatter from client libraries
NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


# =============================================================================
# Formatters / Handlers
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
            **_context_of(record),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return orjson.dumps(entry, default=str).decode()


class ContextRichHandler(RichHandler):
    """RichHandler that tags lines with the scraper or company they concern."""

    def render_message(self, record: logging.LogRecord, message: str) -> Text:
        text = super().render_message(record, message)
        if hasattr(record, "scraper_index"):
            tag = f"scraper {record.scraper_index}"
        elif hasattr(record, "company_id"):
            tag = f"company {str(record.company_id)[:8]}"
        else:
            return text
        return Text.assemble((f"[{tag}] ", "cyan"), text)


# =============================================================================
# Setup
# =============================================================================


def _file_handler(path: Path, json_format: bool) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Configure the ``hirescout`` logger tree.

    Args:
        level: Console log level (the file handler always records DEBUG)
        log_file: Optional log file path, parent directories are created
        json_format: JSON lines in the log file instead of plain text
        rich_console: Rich console output instead of a plain stream handler
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(logging.DEBUG if log_file else level.upper())
    root.handlers.clear()
    root.propagate = False

    if rich_console:
        console: logging.Handler = ContextRichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
    else:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(PLAIN_FORMAT))
    console.setLevel(level.upper())
    root.addHandler(console)

    if log_file:
        root.addHandler(_file_handler(Path(log_file), json_format))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger under the ``hirescout`` namespace, e.g. ``get_logger("api")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


# =============================================================================
# Contextual Logging
# =============================================================================


class ContextualLogger(logging.LoggerAdapter):
    """Adds fixed context fields to every record; per-call ``extra`` wins."""

    def __init__(self, logger: logging.Logger, **context: Any):
        super().__init__(logger, {k: v for k, v in context.items() if k in CONTEXT_FIELDS and v is not None})

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_contextual_logger(name: str | None = None, **context: Any) -> ContextualLogger:
    """Contextual logger; accepts any of ``CONTEXT_FIELDS`` as keyword arguments."""
    return ContextualLogger(get_logger(name), **context)
