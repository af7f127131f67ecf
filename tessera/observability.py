"""
TESSERA Observability

Structured logging and a hash-chained audit trail for the asset registry.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                    Registry Code                         │
    │  log.info("Transfer committed")  audit.log(...)          │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │               RegistryLogger / AuditLogger               │
    │  correlation ids, component tags, structured context    │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │          StructuredHandler (JSON) │ text formatter       │
    └─────────────────────────────────────────────────────────┘

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import hashlib
import json
import logging
import sys
import threading
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, TypeVar

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

ROOT_LOGGER_NAME = "tessera"


class RegistryComponent(Enum):
    """Registry components for log categorization."""
    LEDGER = "ledger"
    APPROVALS = "approvals"
    ACCESS = "access"
    ENGINE = "engine"
    REGISTRY = "registry"
    EVENTS = "events"
    CONFIG = "config"
    CLI = "cli"


@dataclass
class LogEvent:
    """One structured log line. Empty fields are omitted from the output."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    component: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEvent":
        exception = None
        if record.exc_info:
            exception = "".join(traceback.format_exception(*record.exc_info))
        return cls(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname.lower(),
            logger=record.name,
            message=record.getMessage(),
            correlation_id=correlation_id_var.get(),
            component=getattr(record, "component", ""),
            operation=getattr(record, "operation", ""),
            duration_ms=getattr(record, "duration_ms", None),
            error_code=getattr(record, "error_code", ""),
            context=getattr(record, "context", None) or {},
            exception=exception,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v not in (None, "", {})}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return LogEvent.from_record(record).to_json()


class StructuredHandler(logging.StreamHandler):
    """Stream handler writing one JSON object per record."""

    def __init__(self, stream: Any = None):
        super().__init__(stream or sys.stderr)
        self.setFormatter(JsonFormatter())


class TextFormatter(logging.Formatter):
    """Human-readable single-line format with the structured context appended."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = getattr(record, "context", None)
        code = getattr(record, "error_code", "")
        extra = []
        if code:
            extra.append(f"code={code}")
        if context:
            extra.extend(f"{k}={v}" for k, v in sorted(context.items()))
        return f"{base} {' '.join(extra)}".rstrip()


def configure_logging(
    level: str = "info",
    fmt: str = "json",
    stream: Any = None,
) -> logging.Logger:
    """Install a single handler on the `tessera` logger tree.

    Calling again replaces the handler, so the level and format can be changed
    at runtime (for example after loading configuration).
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level.upper()))
    for h in list(root.handlers):
        if getattr(h, "_tessera_handler", False):
            root.removeHandler(h)

    if fmt == "json":
        handler: logging.Handler = StructuredHandler(stream)
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(TextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler._tessera_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root


class RegistryLogger:
    """
    Structured logger for registry components.

    Includes the correlation id and component in every record; free-form
    keyword arguments become the record's `context`.
    """

    def __init__(self, name: str, component: RegistryComponent):
        self.name = name
        self.component = component
        self._logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component.value}.{name}")

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "component": self.component.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, error_code: str = "", **context: Any) -> None:
        self._log(logging.WARNING, message, error_code=error_code, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        error_code: str = "",
        **context: Any,
    ) -> None:
        """Record how long an operation took; failures carry their error code."""
        if error_code:
            self._log(logging.WARNING, f"{name} failed", operation=name,
                      duration_ms=duration_ms, error_code=error_code, **context)
        else:
            self._log(logging.DEBUG, f"{name} ok", operation=name,
                      duration_ms=duration_ms, **context)


def generate_correlation_id() -> str:
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one if unset."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str, component: RegistryComponent) -> RegistryLogger:
    return RegistryLogger(name, component)


T = TypeVar("T")


def timed_operation(
    logger: RegistryLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Log the wall time of each call at DEBUG, or at WARNING if it raised."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.perf_counter()
            error_code = ""
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                error_code = getattr(exc, "code", None) or type(exc).__name__
                raise
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger.operation(operation_name, elapsed_ms, error_code=error_code)
        return wrapper
    return decorator


# Audit logging

@dataclass
class AuditEvent:
    """Audit record for one mutating registry call."""
    event_id: str
    timestamp: str
    actor: str
    action: str
    resource_id: str
    outcome: str  # success, denied, failure
    correlation_id: str = ""
    previous_hash: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AuditLogger:
    """
    Append-only audit trail with hash chaining.

    Each entry's hash covers the entry and the previous hash, so editing or
    dropping an entry breaks every later link.
    """

    GENESIS = "genesis"

    def __init__(self, logger: RegistryLogger, enabled: bool = True):
        self._logger = logger
        self._enabled = enabled
        self._last_hash: str = self.GENESIS
        self._entries: List[tuple] = []
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def head(self) -> str:
        return self._last_hash

    @staticmethod
    def _compute_hash(event: AuditEvent, previous_hash: str) -> str:
        data = json.dumps(event.to_dict(), sort_keys=True, default=str) + previous_hash
        return hashlib.sha256(data.encode()).hexdigest()

    def log(
        self,
        actor: Any,
        action: str,
        resource_id: Any,
        outcome: str,
        **details: Any,
    ) -> Optional[AuditEvent]:
        if not self._enabled:
            return None

        with self._lock:
            event = AuditEvent(
                event_id=uuid.uuid4().hex,
                timestamp=datetime.now(timezone.utc).isoformat(),
                actor=str(actor),
                action=action,
                resource_id=str(resource_id),
                outcome=outcome,
                correlation_id=get_correlation_id(),
                previous_hash=self._last_hash,
                details=details,
            )
            event_hash = self._compute_hash(event, self._last_hash)
            self._last_hash = event_hash
            self._entries.append((event, event_hash))

        self._logger.info(
            f"AUDIT: {action} on {resource_id} {outcome}",
            operation="audit",
            event_hash=event_hash,
            **event.to_dict(),
        )
        return event

    def entries(self) -> List[AuditEvent]:
        with self._lock:
            return [e for e, _ in self._entries]

    def verify_chain(self) -> bool:
        """Recompute every link; False if any entry was altered."""
        with self._lock:
            previous = self.GENESIS
            for event, stored_hash in self._entries:
                if event.previous_hash != previous:
                    return False
                if self._compute_hash(event, previous) != stored_hash:
                    return False
                previous = stored_hash
            return True
