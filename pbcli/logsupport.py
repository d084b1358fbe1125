"""Log levels, request log context and structured error responses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Any, Optional

TRACE_ID_HEADER = "X-Trace-ID"
REQUEST_ID_KEY = "request_id"

_EXCLUDED_PATHS = frozenset({"/service-worker.js", "/favicon.ico", "/manifest.json"})
_BROWSER_MARKERS = ("mozilla", "chrome", "safari", "firefox")


class LogLevel(IntEnum):
    """Severity levels; values outside the named ones render as ``LEVEL_<n>``."""

    DEBUG = -4
    INFO = 0
    WARN = 4
    ERROR = 8

    @classmethod
    def _missing_(cls, value: object) -> Optional["LogLevel"]:
        if isinstance(value, int) and not isinstance(value, bool):
            member = int.__new__(cls, value)
            member._name_ = f"LEVEL_{value}"
            member._value_ = value
            return member
        return None

    def __str__(self) -> str:
        return self._name_


@dataclass
class LogContext:
    """Information collected about one HTTP request for logging."""

    trace_id: str = ""
    start_time: Optional[datetime] = None
    method: str = ""
    path: str = ""
    status_code: int = 0
    duration: timedelta = field(default_factory=timedelta)
    user_agent: str = ""
    ip: str = ""


@dataclass
class ErrorResponse:
    """Standard error body returned to clients."""

    status: str = ""
    message: str = ""
    type: str = ""
    operation: str = ""
    status_code: int = 0
    trace_id: str = ""
    timestamp: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON shape; empty ``type`` and ``operation`` are left out."""
        data: dict[str, Any] = {"status": self.status, "message": self.message}
        if self.type:
            data["type"] = self.type
        if self.operation:
            data["operation"] = self.operation
        data["status_code"] = self.status_code
        data["trace_id"] = self.trace_id
        data["timestamp"] = self.timestamp
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorResponse":
        return cls(
            status=data.get("status", ""),
            message=data.get("message", ""),
            type=data.get("type", ""),
            operation=data.get("operation", ""),
            status_code=int(data.get("status_code", 0)),
            trace_id=data.get("trace_id", ""),
            timestamp=data.get("timestamp", ""),
        )


def should_exclude_from_logging(path: str) -> bool:
    """True for service-worker, favicon and manifest requests."""
    return path in _EXCLUDED_PATHS


def is_browser(user_agent: str) -> bool:
    """Guess from the User-Agent whether the client is a web browser."""
    lowered = user_agent.lower()
    return any(marker in lowered for marker in _BROWSER_MARKERS)


def wants_html(accept: str, user_agent: str) -> bool:
    """True when an HTML error page should be served instead of JSON."""
    return is_browser(user_agent) or "text/html" in accept.lower()