"""
Centralised logging helpers for the build status adapter.

Everything logs through :func:`get_logger` so that host applications and the
bundled CLI share one formatter. Structured context (cache decisions, build
identifiers, stream states) is attached through ``extra`` and rendered as
``key=value`` pairs after the message.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from copy import copy
from logging import Logger, LoggerAdapter
from typing import Any, Iterable, Mapping, MutableMapping, Optional, Sequence

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = "WARNING"
_ENV_LEVEL = "BUILDWATCH_LOG_LEVEL"
_ENV_COLOR = "BUILDWATCH_LOG_COLOR"
_EXTRA_FOCUS_ORDER: Sequence[str] = (
    "phase",
    "status",
    "state",
    "project_url",
    "cache",
    "cache_key",
    "definitions",
    "build_id",
    "emitted",
    "method",
    "url",
    "status_code",
    "attempt",
)

_LEVEL_STYLES = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[95m",
}
_RESET = "\033[0m"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}

_configured = False


def _resolve_level(level: Optional[int | str]) -> int:
    if isinstance(level, int):
        return level
    candidate = (level or os.getenv(_ENV_LEVEL) or DEFAULT_LEVEL).upper()
    resolved = logging.getLevelName(candidate)
    return resolved if isinstance(resolved, int) else logging.WARNING


def _supports_color(stream: Any) -> bool:
    preference = (os.getenv(_ENV_COLOR) or "auto").strip().lower()
    if preference in {"1", "true", "yes", "on", "always"}:
        return True
    if preference in {"0", "false", "no", "off", "never"}:
        return False
    return hasattr(stream, "isatty") and bool(stream.isatty())


def _iter_extras(record: logging.LogRecord) -> Iterable[tuple[str, Any]]:
    payload = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS and not key.startswith("_") and value is not None}

    for key in _EXTRA_FOCUS_ORDER:
        if key in payload:
            yield key, payload.pop(key)

    for key in sorted(payload):
        yield key, payload[key]


def _format_extra_value(value: Any) -> str:
    if isinstance(value, (list, tuple, set, frozenset)):
        return "[" + ", ".join(_format_extra_value(item) for item in value) + "]"
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, default=str)
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """Formatter that appends ``extra`` fields and optionally colours the level name."""

    def __init__(self, *, use_color: bool = False) -> None:
        super().__init__(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        working = copy(record)
        if self.use_color:
            style = _LEVEL_STYLES.get(working.levelname)
            if style:
                working.levelname = f"{style}{working.levelname}{_RESET}"
        base = super().format(working)
        extras = " ".join(f"{key}={_format_extra_value(value)}" for key, value in _iter_extras(record))
        if extras:
            return f"{base} | {extras}"
        return base


def _build_handler(level: Optional[int | str]) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(_resolve_level(level))
    handler.setFormatter(StructuredLogFormatter(use_color=_supports_color(handler.stream)))
    return handler


def configure_logging(level: Optional[int | str] = None, *, force: bool = False) -> None:
    """
    Install the structured handler on the root logger.

    Parameters
    ----------
    level:
        Optional level override. Falls back to ``BUILDWATCH_LOG_LEVEL`` or ``WARNING``.
    force:
        Reapply the configuration even when it already ran once in this process.
    """

    global _configured
    if _configured and not force:
        return
    logging.basicConfig(level=_resolve_level(level), handlers=[_build_handler(level)], force=force)
    _configured = True


def get_logger(name: str, *, extra: Optional[Mapping[str, object]] = None) -> LoggerAdapter:
    """
    Return a :class:`logging.LoggerAdapter` bound to ``extra``.

    The root handler is not installed here; library code only creates loggers
    and leaves handler setup to the host or the CLI.
    """

    payload: MutableMapping[str, object] = {}
    if extra:
        payload.update({key: value for key, value in extra.items() if value is not None})
    return _MergingAdapter(logging.getLogger(name), payload)


class _MergingAdapter(LoggerAdapter):
    """LoggerAdapter that merges per-call ``extra`` with the bound context instead of replacing it."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        merged = dict(self.extra or {})
        call_extra = kwargs.get("extra")
        if call_extra:
            merged.update(call_extra)
        kwargs["extra"] = merged
        return msg, kwargs


def log_progress(
    logger: LoggerAdapter | Logger,
    message: str,
    *,
    phase: Optional[str] = None,
    status: Optional[str] = None,
    level: int = logging.INFO,
    extra: Optional[Mapping[str, object]] = None,
) -> None:
    """Emit a log line tagged with the current ``phase`` and ``status``."""

    payload: MutableMapping[str, object] = dict(extra or {})
    if phase:
        payload["phase"] = phase
    if status:
        payload["status"] = status
    logger.log(level, message, extra=payload)
