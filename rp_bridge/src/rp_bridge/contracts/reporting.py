from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Protocol, runtime_checkable

from rp_bridge.contracts.nodes import ItemAttribute
from rp_bridge.contracts.outcomes import ItemStatus

LaunchMode = Literal["DEFAULT", "DEBUG"]
ItemType = Literal["SUITE", "TEST", "STEP"]
LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARN", "ERROR", "FATAL"]


@runtime_checkable
class ReportingClient(Protocol):
    """
    Facade contract for the remote reporting service.

    Handles are opaque ids owned by the service; timestamps are epoch
    milliseconds rendered as strings.
    """

    def start_launch(
        self,
        *,
        name: str,
        start_time: str,
        mode: LaunchMode,
        attributes: Sequence[ItemAttribute],
        description: str | None = None,
    ) -> str:
        """Start a launch and return its handle."""
        ...

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
        """Start an item under `parent` (or the launch root) and return its handle."""
        ...

    def finish_item(
        self,
        item: str,
        *,
        end_time: str,
        status: ItemStatus,
        description: str | None = None,
    ) -> None:
        """Finish a started item."""
        ...

    def finish_launch(self, launch: str, *, end_time: str) -> None:
        """Finish the launch."""
        ...

    def log(self, item: str, *, time: str, level: LogLevel, message: str) -> None:
        """Attach a log entry to an item."""
        ...

    def close(self) -> None:
        """Release client resources."""
        ...
