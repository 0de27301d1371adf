"""Logging setup for harness runs.

Provides consistent logging for the CLI and for embedding applications:
    - Console and optional file handlers (file handler may rotate)
    - JSON output mode for log ingestion
    - Contextual fields (page, case) carried by contextvars
    - Warning capture (Python warnings → logging)

Public API:
    setup_logging(log_level="INFO", log_file=None, json=False, context={"page": "index"})
    push_context(case="top center")
    pop_context(keys=["case"])
    case_context("top center")      # context manager, push + pop
    log_context(page="shape2")      # same, for arbitrary fields

Format examples:
    Human: 2026-10-18T13:45:12.345Z | INFO     | page=index case=top center | Case started
    JSON:  {"t": "2026-10-18T13:45:12.345+00:00", "lvl": "INFO", "case": "top center", "msg": "..."}

The runner pushes ``case=<id>`` around each case, so every line a case
emits (including engine warnings) is grouped under its id.
Idempotent: repeated setup_logging() calls replace handlers, never stack them.
"""

import contextvars
import json as jsonlib
import logging
import logging.handlers
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional


_context_var: contextvars.ContextVar = contextvars.ContextVar('harness_log_context', default={})

_configured = False

_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}
_RESET = '\033[0m'


class ContextFormatter(logging.Formatter):
    """Formatter that appends contextual fields.

    Parameters
    ----------
    fmt_mode : str
        "human" (default) or "json"
    use_color : bool
        Colorize the level in human mode when the stream is a TTY
    """

    def __init__(self, fmt_mode: str = "human", use_color: bool = True):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"Unknown format mode: {fmt_mode}. Use 'human' or 'json'.")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        context = _context_var.get()
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if self.fmt_mode == "json":
            return self._format_json(record, ts, context)
        return self._format_human(record, ts, context)

    def _format_json(self, record: logging.LogRecord, ts: datetime, context: dict) -> str:
        entry = {
            't': ts.isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': os.getpid(),
        }
        entry.update(context)
        entry['msg'] = record.getMessage()
        if record.exc_info:
            entry['exc'] = self.formatException(record.exc_info)
        return jsonlib.dumps(entry, default=str)

    def _format_human(self, record: logging.LogRecord, ts: datetime, context: dict) -> str:
        ts_str = ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{_COLORS.get(record.levelname, '')}{level}{_RESET}"

        parts = [ts_str, '|', level, '|']
        if context:
            parts.append(' '.join(f"{k}={v}" for k, v in context.items()))
            parts.append('|')
        parts.append(record.getMessage())

        line = ' '.join(parts)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    rotate: Optional[Dict[str, Any]] = None,
    capture_warnings: bool = True,
    quiet_libs: Optional[List[str]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> List[logging.Handler]:
    """Configure the root logger (idempotent).

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL"
    log_file : str, optional
        Log file path; None disables file logging
    json : bool
        JSON lines instead of human-readable lines (console and file)
    color : bool
        ANSI colors on the console
    to_stderr : bool
        Log to stderr
    rotate : dict, optional
        File rotation, e.g. {"max_bytes": 5_000_000, "backup_count": 3}
    capture_warnings : bool
        Route Python warnings into logging
    quiet_libs : list[str], optional
        Loggers to raise to WARNING (e.g. ["PIL"])
    context : dict, optional
        Initial contextual fields (e.g. {"page": "shape1"})

    Returns
    -------
    list[logging.Handler]
        Handlers installed on the root logger
    """
    global _configured

    root = logging.getLogger()
    if _configured:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    root.setLevel(level)

    fmt_mode = "json" if json else "human"
    handlers: List[logging.Handler] = []

    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter(fmt_mode, use_color=color and not json))
        handlers.append(console)

    if log_file:
        handlers.append(_create_file_handler(log_file, rotate, fmt_mode))

    for handler in handlers:
        root.addHandler(handler)

    if context:
        push_context(**context)

    for lib in quiet_libs or ["PIL"]:
        logging.getLogger(lib).setLevel(logging.WARNING)

    if capture_warnings:
        logging.captureWarnings(True)

    _configured = True
    return handlers


def _create_file_handler(
    log_file: str,
    rotate: Optional[Dict[str, Any]],
    fmt_mode: str,
) -> logging.Handler:
    """Create a file handler, rotating by size when ``rotate`` is given."""
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    if rotate:
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=int(rotate.get('max_bytes', 5_000_000)),
            backupCount=int(rotate.get('backup_count', 3)),
            encoding='utf-8',
        )
    else:
        handler = logging.FileHandler(log_path, encoding='utf-8')

    handler.setFormatter(ContextFormatter(fmt_mode, use_color=False))
    return handler


def push_context(**kwargs: Any) -> None:
    """Add contextual fields to all subsequent log records.

    Examples
    --------
    >>> push_context(page="index")
    >>> logger.info("Run started")  # → "... | page=index | Run started"
    """
    _context_var.set({**_context_var.get(), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove contextual fields; all of them when ``keys`` is None."""
    if keys is None:
        _context_var.set({})
        return
    current = dict(_context_var.get())
    for key in keys:
        current.pop(key, None)
    _context_var.set(current)


def get_context() -> Dict[str, Any]:
    return dict(_context_var.get())


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Add contextual fields for the duration of the block."""
    token = _context_var.set({**_context_var.get(), **kwargs})
    try:
        yield
    finally:
        _context_var.reset(token)


def case_context(case_id: str):
    """Tag every record emitted inside the block with ``case=<case_id>``."""
    return log_context(case=case_id)
