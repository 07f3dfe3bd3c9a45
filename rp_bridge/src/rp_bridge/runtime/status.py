from __future__ import annotations

import threading

from rp_bridge.contracts.outcomes import ItemStatus, OutcomeRecord


class StatusAggregator:
    """Outcome records for one run and any-failure-dominates roll-up."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, OutcomeRecord] = {}

    def record(self, key: str, status: ItemStatus, *, scope: tuple[str, ...] = ()) -> OutcomeRecord:
        outcome = OutcomeRecord(key=key, status=status, scope=scope)
        with self._lock:
            self._records[key] = outcome
        return outcome

    def get(self, key: str) -> OutcomeRecord | None:
        with self._lock:
            return self._records.get(key)

    def roll_up(self, scope_key: str | None = None) -> ItemStatus:
        """FAILED if any record under `scope_key` (or the whole run) failed."""
        with self._lock:
            records = list(self._records.values())
        for record in records:
            if scope_key is not None and scope_key not in record.scope:
                continue
            if record.status == "FAILED":
                return "FAILED"
        return "PASSED"

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
