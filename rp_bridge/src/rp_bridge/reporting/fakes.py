from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from rp_bridge.contracts.nodes import ItemAttribute
from rp_bridge.contracts.outcomes import ItemStatus
from rp_bridge.contracts.reporting import ItemType, LaunchMode, LogLevel


@dataclass(frozen=True, slots=True)
class ReportingCall:
    """Record of a reporting call for assertions in tests."""

    name: str
    args: tuple[Any, ...]
    kwargs: dict[str, Any]


class FakeReportingClient:
    """
    In-memory ReportingClient for unit tests.

    Thread safe. `fail_next` makes the next N calls of an operation raise,
    which is how tests simulate an unavailable service.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: list[ReportingCall] = []
        self._failures: dict[str, list[Exception]] = {}
        self._active_launch: str | None = None
        self._open_items: dict[str, str] = {}
        self._launch_counter = 0
        self._item_counter = 0

    @property
    def calls(self) -> list[ReportingCall]:
        """Return the recorded calls in order."""
        with self._lock:
            return list(self._calls)

    @property
    def active_launch(self) -> str | None:
        return self._active_launch

    @property
    def open_items(self) -> dict[str, str]:
        """Return started but unfinished items mapped to their names."""
        with self._lock:
            return dict(self._open_items)

    def call_names(self) -> list[str]:
        return [call.name for call in self.calls]

    def fail_next(self, operation: str, *, times: int = 1, error: Exception | None = None) -> None:
        """Make the next `times` calls of `operation` raise."""
        exc = error or ConnectionError(f"{operation} unavailable")
        with self._lock:
            self._failures.setdefault(operation, []).extend([exc] * times)

    def start_launch(
        self,
        *,
        name: str,
        start_time: str,
        mode: LaunchMode,
        attributes: Sequence[ItemAttribute],
        description: str | None = None,
    ) -> str:
        with self._lock:
            self._record(
                "start_launch",
                name=name,
                start_time=start_time,
                mode=mode,
                attributes=list(attributes),
                description=description,
            )
            self._raise_if_failing("start_launch")
            if self._active_launch is not None:
                raise RuntimeError("A launch is already active.")
            self._launch_counter += 1
            self._active_launch = f"launch_{self._launch_counter}"
            return self._active_launch

    def start_item(
        self,
        *,
        name: str,
        start_time: str,
        item_type: ItemType,
        parent: str | None = None,
        code_ref: str | None = None,
        attributes: Sequence[ItemAttribute] = (),
        description: str | None = None,
        has_stats: bool = True,
    ) -> str:
        with self._lock:
            self._record(
                "start_item",
                name=name,
                start_time=start_time,
                item_type=item_type,
                parent=parent,
                code_ref=code_ref,
                attributes=list(attributes),
                description=description,
                has_stats=has_stats,
            )
            self._raise_if_failing("start_item")
            self._ensure_active_launch()
            if parent is not None and parent not in self._open_items:
                raise RuntimeError(f"Unknown parent item: {parent}")
            self._item_counter += 1
            item = f"item_{self._item_counter}"
            self._open_items[item] = name
            return item

    def finish_item(
        self,
        item: str,
        *,
        end_time: str,
        status: ItemStatus,
        description: str | None = None,
    ) -> None:
        with self._lock:
            self._record(
                "finish_item",
                item,
                name=self._open_items.get(item),
                end_time=end_time,
                status=status,
                description=description,
            )
            self._raise_if_failing("finish_item")
            if item not in self._open_items:
                raise RuntimeError(f"Unknown or finished item: {item}")
            del self._open_items[item]

    def finish_launch(self, launch: str, *, end_time: str) -> None:
        with self._lock:
            self._record("finish_launch", launch, end_time=end_time)
            self._raise_if_failing("finish_launch")
            if launch != self._active_launch:
                raise RuntimeError(f"Unknown launch: {launch}")
            self._active_launch = None

    def log(self, item: str, *, time: str, level: LogLevel, message: str) -> None:
        with self._lock:
            self._record("log", item, time=time, level=level, message=message)
            self._raise_if_failing("log")

    def close(self) -> None:
        with self._lock:
            self._record("close")

    def _record(self, operation: str, /, *args: Any, **kwargs: Any) -> None:
        self._calls.append(ReportingCall(name=operation, args=args, kwargs=kwargs))

    def _raise_if_failing(self, operation: str) -> None:
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _ensure_active_launch(self) -> None:
        if self._active_launch is None:
            raise RuntimeError("No active launch. Call start_launch first.")
