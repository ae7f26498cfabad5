"""Centralized logging helpers.

Provides a single configure_logging() entry used by the CLI plus small helpers
for structured DEBUG traces (extra_context), cheap level checks and timing.
When running on a pipeline agent, records are rendered with the agent's
``##[debug]``/``##[warning]``/``##[error]`` prefixes so they are highlighted
in the build log.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants, EnvVars

_AGENT_PREFIXES = {
    logging.DEBUG: "##[debug]",
    logging.WARNING: "##[warning]",
    logging.ERROR: "##[error]",
    logging.CRITICAL: "##[error]",
}

# Keys that extra_context() always accepts; anything else is passed through too
_CONTEXT_KEYS = ("event", "component", "action", "outcome", "target")


class AgentFormatter(logging.Formatter):
    """Formatter that prefixes records with pipeline agent log commands."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message = f"{message}\n{record.exc_text}"
        prefix = _AGENT_PREFIXES.get(record.levelno, "")
        return f"{prefix}{message}"


def running_on_agent() -> bool:
    """Return True when the process runs inside a pipeline agent job."""
    return str(os.environ.get(EnvVars.TF_BUILD, "")).lower() == "true"


def _resolve_level() -> int:
    name = str(os.environ.get(EnvVars.LOG_LEVEL, "INFO")).upper()
    level = getattr(logging, name, None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Configure the root logger once.

    Level is read from SECDEVOPS_LOG_LEVEL (default INFO). Repeated calls
    replace the handler installed by a previous call instead of stacking.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_secdevops_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if running_on_agent():
        handler.setFormatter(AgentFormatter())
    else:
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    handler._secdevops_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(_resolve_level())


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True if DEBUG records would be emitted by logger."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for structured log records.

    None values are dropped so formatters never see half-filled fields.
    """
    ctx: Dict[str, Any] = {}
    for key in _CONTEXT_KEYS:
        if kwargs.get(key) is not None:
            ctx[key] = kwargs[key]
    for key, value in kwargs.items():
        if key not in ctx and value is not None:
            ctx[key] = value
    return ctx


def safe_url(url: Optional[str]) -> Optional[str]:
    """Strip credentials and query strings from a URL before logging it."""
    if not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid-url>"
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
