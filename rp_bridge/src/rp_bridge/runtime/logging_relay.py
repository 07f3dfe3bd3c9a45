from __future__ import annotations

import logging
from collections.abc import Callable
from contextvars import ContextVar

from rp_bridge.contracts.reporting import LogLevel, ReportingClient
from rp_bridge.runtime.clock import timestamp

logger = logging.getLogger("rp_bridge.logging_relay")


class LoggingRelay:
    """
    Forward log entries to the item active in the caller's context.

    The active item lives in a ContextVar, so every thread and every asyncio
    task sees only the item it set itself.
    """

    def __init__(self, client: ReportingClient, *, clock: Callable[[], str] = timestamp) -> None:
        self._client = client
        self._clock = clock
        self._active: ContextVar[str | None] = ContextVar("rp_bridge_active_item", default=None)

    def set_active(self, handle: str) -> None:
        self._active.set(handle)

    def clear_active(self) -> None:
        self._active.set(None)

    def active(self) -> str | None:
        return self._active.get()

    def emit(self, message: str, level: LogLevel = "INFO", *, item: str | None = None) -> None:
        """Send a log entry to `item` or the active item. Never raises."""
        target = item if item is not None else self._active.get()
        if target is None:
            logger.warning("No logging context available; dropping log entry")
            return
        try:
            self._client.log(target, time=self._clock(), level=level, message=message)
        except Exception:
            logger.error("Failed to emit log to item %s", target, exc_info=True)


class ReportPortalLogHandler(logging.Handler):
    """
    Route stdlib log records from the code under test into the active item.

    Records from the bridge's own loggers are skipped; they describe the
    bridge itself and would loop back through the relay.
    """

    def __init__(self, relay: LoggingRelay, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._relay = relay

    def emit(self, record: logging.LogRecord) -> None:
        if record.name == "rp_bridge" or record.name.startswith("rp_bridge."):
            return
        if self._relay.active() is None:
            return
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        self._relay.emit(message, level_for(record.levelno))


def level_for(levelno: int) -> LogLevel:
    if levelno >= logging.CRITICAL:
        return "FATAL"
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARN"
    if levelno >= logging.INFO:
        return "INFO"
    if levelno >= logging.DEBUG:
        return "DEBUG"
    return "TRACE"
