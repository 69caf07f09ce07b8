"""
ClientNote Logging — colorized dev output, JSON for production.

Features:
- Color formatter for dev mode (auto-detects TTY)
- JSON structured formatter (CLIENTNOTE_LOG_FORMAT=json)
- Suppresses noisy third-party loggers (httpx, httpcore, openai)
- Pipeline timing helper for analysis -> compose -> stream latency

Structured log extra fields (pass via logger.info(..., extra={...})):
    activity_id, job_id, state, kind, duration_ms, model

Clinical text never goes into log records. Log ids and lengths only.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from datetime import datetime, timezone

COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1;31m",
    "RESET": "\033[0m",
    "DIM": "\033[2m",
}


class ColorFormatter(logging.Formatter):
    """Colorized log formatter for terminal output."""

    def __init__(self, use_color: bool = True):
        super().__init__(
            fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_color:
            return super().format(record)

        level_color = COLORS.get(record.levelname, "")
        reset = COLORS["RESET"]
        dim = COLORS["DIM"]

        orig_levelname = record.levelname
        orig_name = record.name

        record.levelname = f"{level_color}{record.levelname}{reset}"
        record.name = f"{dim}{record.name}{reset}"

        result = super().format(record)

        record.levelname = orig_levelname
        record.name = orig_name

        return result


_STRUCTURED_FIELDS = (
    "activity_id",
    "client_id",
    "job_id",
    "state",
    "kind",
    "label",
    "duration_ms",
    "model",
)


class StructuredFormatter(logging.Formatter):
    """JSON log formatter for log aggregation.

    Each log line is a single JSON object. Extra fields passed via
    logger.info("msg", extra={"activity_id": "...", "duration_ms": 42})
    are included at the top level.

    Enable with: CLIENTNOTE_LOG_FORMAT=json
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        for key in _STRUCTURED_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class PipelineTimer:
    """Tracks timing across the stages of one generation job.

    Usage:
        timer = PipelineTimer()
        timer.mark("analysis")
        timer.mark("compose")
        timer.mark("stream")
        timer.summary()  # -> "analysis: 3.2s | compose: 0.0s | stream: 8.1s | Total: 11.3s"
    """

    def __init__(self):
        self._marks: list[tuple[str, float]] = []
        self._start = time.monotonic()

    def mark(self, stage: str) -> None:
        self._marks.append((stage, time.monotonic()))

    def elapsed(self, stage: str) -> float | None:
        """Time between the previous mark and this one."""
        for i, (name, ts) in enumerate(self._marks):
            if name == stage:
                prev_ts = self._marks[i - 1][1] if i > 0 else self._start
                return ts - prev_ts
        return None

    def total(self) -> float:
        return time.monotonic() - self._start

    def summary(self) -> str:
        parts = []
        for i, (name, ts) in enumerate(self._marks):
            prev_ts = self._marks[i - 1][1] if i > 0 else self._start
            parts.append(f"{name}: {ts - prev_ts:.1f}s")
        parts.append(f"Total: {self.total():.1f}s")
        return " | ".join(parts)


def _should_use_color() -> bool:
    env_val = os.getenv("CLIENTNOTE_LOG_COLOR", "auto").lower()
    if env_val == "true":
        return True
    if env_val == "false":
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def setup_logging() -> None:
    """Configure logging for the whole application. Call once at startup.

    Env vars:
        CLIENTNOTE_LOG_LEVEL  — DEBUG / INFO / WARNING / ERROR (default: INFO)
        CLIENTNOTE_LOG_COLOR  — true / false / auto (default: auto)
        CLIENTNOTE_LOG_FORMAT — text / json (default: text)
    """
    level_name = os.getenv("CLIENTNOTE_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    log_format = os.getenv("CLIENTNOTE_LOG_FORMAT", "text").lower()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if log_format == "json":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = ColorFormatter(use_color=_should_use_color())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    for noisy_logger in [
        "httpx",
        "httpcore",
        "openai",
        "openai._base_client",
        "aiosqlite",
        "uvicorn.access",
    ]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    logging.getLogger("uvicorn.error").setLevel(level)

    logging.getLogger("clientnote").debug(
        "Logging configured (level=%s, format=%s)", level_name, log_format
    )
