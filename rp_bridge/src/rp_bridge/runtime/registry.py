from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from rp_bridge.contracts.nodes import ItemRecord

logger = logging.getLogger("rp_bridge.registry")


@dataclass(slots=True)
class _Slot:
    parent_key: str | None
    handle: str | None = None
    released: bool = False
    ready: threading.Event = field(default_factory=threading.Event)


class ItemRegistry:
    """
    Active items keyed by run identity, with exactly-once creation per key.

    A caller that wins `try_begin` owns the reservation and must either
    `fill` it with the created handle or `release` it. Other callers for the
    same key wait for that outcome instead of creating a second item.
    """

    def __init__(self, *, wait_timeout_s: float = 30.0) -> None:
        self._lock = threading.Lock()
        self._slots: dict[str, _Slot] = {}
        self._wait_timeout_s = wait_timeout_s

    def try_begin(self, key: str, *, parent_key: str | None = None) -> tuple[str | None, bool]:
        """
        Reserve `key` or observe an existing entry.

        Returns `(None, False)` to the winner, `(handle, True)` to callers that
        found a filled entry, and `(None, True)` when the entry is still empty
        after waiting (the winner released it or timed out).
        """
        with self._lock:
            slot = self._slots.get(key)
            if slot is None:
                self._slots[key] = _Slot(parent_key=parent_key)
                return None, False

        if not slot.ready.wait(self._wait_timeout_s):
            logger.warning("Timed out waiting for item creation of %s", key)
            return None, True
        return slot.handle, True

    def fill(self, key: str, handle: str) -> None:
        with self._lock:
            slot = self._slots.get(key)
            if slot is None or slot.released:
                raise KeyError(f"No reservation for {key}")
            slot.handle = handle
        slot.ready.set()

    def release(self, key: str) -> None:
        """Drop an unfilled reservation so a later attempt can retry."""
        with self._lock:
            slot = self._slots.get(key)
            if slot is None or slot.handle is not None:
                return
            del self._slots[key]
            slot.released = True
        slot.ready.set()

    def resolve(self, key: str) -> str | None:
        with self._lock:
            slot = self._slots.get(key)
            return slot.handle if slot is not None else None

    def record(self, key: str) -> ItemRecord | None:
        with self._lock:
            slot = self._slots.get(key)
            if slot is None or slot.handle is None:
                return None
            return ItemRecord(key=key, handle=slot.handle, parent_key=slot.parent_key)

    def finish(self, key: str) -> ItemRecord | None:
        """
        Remove and return the active record for `key`.

        Only one caller ever receives the record, so an item is finished at
        most once. Unknown keys and in-flight reservations yield None.
        """
        with self._lock:
            slot = self._slots.get(key)
            if slot is None or slot.handle is None:
                logger.debug("No active item for %s; nothing to finish", key)
                return None
            del self._slots[key]
        return ItemRecord(key=key, handle=slot.handle, parent_key=slot.parent_key)

    def active_keys(self) -> list[str]:
        with self._lock:
            return [key for key, slot in self._slots.items() if slot.handle is not None]

    def clear(self) -> None:
        with self._lock:
            slots = list(self._slots.values())
            self._slots.clear()
        for slot in slots:
            if slot.handle is None:
                slot.released = True
            slot.ready.set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
