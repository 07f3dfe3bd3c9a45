from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from rp_bridge.contracts.nodes import ItemAttribute
from rp_bridge.contracts.outcomes import ItemStatus
from rp_bridge.contracts.reporting import ItemType, LaunchMode, LogLevel

try:
    import reportportal_client as _rp
except Exception:  # pragma: no cover - handled via runtime error
    _rp = None


def _require_reportportal() -> Any:
    if _rp is None:
        raise RuntimeError(
            "reportportal-client is not installed. "
            "Install reportportal-client or provide a fake module for tests."
        )
    return _rp


class ReportPortalReportingClient:
    """
    ReportPortal-backed implementation of the ReportingClient facade.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        project: str,
        api_key: str,
        mode: LaunchMode = "DEFAULT",
    ) -> None:
        """Create a client bound to one ReportPortal project."""
        rp = _require_reportportal()
        self._client = rp.RPClient(
            endpoint=endpoint,
            project=project,
            api_key=api_key,
            mode=mode,
        )
        self._launch: str | None = None

    @property
    def launch(self) -> str | None:
        """Return the active launch id, if any."""
        return self._launch

    def start_launch(
        self,
        *,
        name: str,
        start_time: str,
        mode: LaunchMode,
        attributes: Sequence[ItemAttribute],
        description: str | None = None,
    ) -> str:
        """Start a ReportPortal launch and return its id."""
        if self._launch is not None:
            raise RuntimeError("A ReportPortal launch is already active.")
        launch = self._client.start_launch(
            name=name,
            start_time=start_time,
            description=description,
            attributes=_attribute_payload(attributes),
            mode=mode,
        )
        if not launch:
            raise RuntimeError(f"ReportPortal did not return a launch id for '{name}'.")
        self._launch = launch
        return launch

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
        """Start a test item and return its id."""
        self._ensure_active_launch()
        item = self._client.start_test_item(
            name=name,
            start_time=start_time,
            item_type=item_type,
            description=description,
            attributes=_attribute_payload(attributes),
            parent_item_id=parent,
            has_stats=has_stats,
            code_ref=code_ref,
        )
        if not item:
            raise RuntimeError(f"ReportPortal did not return an item id for '{name}'.")
        return item

    def finish_item(
        self,
        item: str,
        *,
        end_time: str,
        status: ItemStatus,
        description: str | None = None,
    ) -> None:
        """Finish a test item."""
        self._ensure_active_launch()
        self._client.finish_test_item(
            item_id=item,
            end_time=end_time,
            status=status,
            description=description,
        )

    def finish_launch(self, launch: str, *, end_time: str) -> None:
        """Finish the active launch."""
        self._ensure_active_launch()
        if launch != self._launch:
            raise RuntimeError(f"Launch {launch} is not the active ReportPortal launch.")
        self._client.finish_launch(end_time=end_time)
        self._launch = None

    def log(self, item: str, *, time: str, level: LogLevel, message: str) -> None:
        """Attach a log entry to an item."""
        self._client.log(time=time, message=message, level=level, item_id=item)

    def close(self) -> None:
        """Flush pending requests and close the HTTP session."""
        self._client.close()

    def _ensure_active_launch(self) -> None:
        if self._launch is None:
            raise RuntimeError("No active ReportPortal launch. Call start_launch first.")


def _attribute_payload(attributes: Sequence[ItemAttribute]) -> list[dict[str, str]]:
    return [attribute.to_payload() for attribute in attributes]
