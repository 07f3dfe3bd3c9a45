from __future__ import annotations

import threading
from typing import Literal

from rp_bridge.contracts.nodes import ItemRecord
from rp_bridge.runtime.registry import ItemRegistry
from rp_bridge.runtime.status import StatusAggregator

RunPhase = Literal["UNINITIALIZED", "RUN_ACTIVE", "RUN_FINISHING", "RUN_FINISHED"]


class _Flag:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = False

    def compare_and_set(self, expected: bool, new: bool) -> bool:
        with self._lock:
            if self._value is not expected:
                return False
            self._value = new
            return True

    def clear(self) -> None:
        with self._lock:
            self._value = False


class RunState:
    """
    Everything the bridge knows about one run.

    `begin` and `end` are the guarded transitions: each admits exactly one
    caller per run. `reset` clears the state so the object can serve the
    next run.
    """

    def __init__(self, *, registry_wait_s: float = 30.0) -> None:
        self.registry = ItemRegistry(wait_timeout_s=registry_wait_s)
        self.outcomes = StatusAggregator()
        self.launch: str | None = None
        self.root: ItemRecord | None = None
        self.phase: RunPhase = "UNINITIALIZED"
        self._started = _Flag()
        self._finished = _Flag()

    @property
    def is_active(self) -> bool:
        return self.phase == "RUN_ACTIVE" and self.root is not None

    def begin(self) -> bool:
        return self._started.compare_and_set(False, True)

    def end(self) -> bool:
        return self._finished.compare_and_set(False, True)

    def activate(self, root: ItemRecord) -> None:
        self.root = root
        self.phase = "RUN_ACTIVE"

    def reset(self) -> None:
        self.registry.clear()
        self.outcomes.clear()
        self.launch = None
        self.root = None
        self.phase = "UNINITIALIZED"
        self._started.clear()
        self._finished.clear()
