import threading

from rp_bridge.runtime.registry import ItemRegistry


def test_first_caller_wins_reservation():
    registry = ItemRegistry()

    assert registry.try_begin("test:a") == (None, False)
    registry.fill("test:a", "item_1")

    assert registry.try_begin("test:a") == ("item_1", True)
    assert registry.resolve("test:a") == "item_1"


def test_finish_removes_record_once():
    registry = ItemRegistry()
    registry.try_begin("test:a", parent_key="spec:s")
    registry.fill("test:a", "item_1")

    record = registry.finish("test:a")

    assert record is not None
    assert (record.key, record.handle, record.parent_key) == ("test:a", "item_1", "spec:s")
    assert registry.finish("test:a") is None
    assert registry.resolve("test:a") is None


def test_finish_unknown_key_is_noop():
    registry = ItemRegistry()

    assert registry.finish("test:missing") is None
    assert len(registry) == 0


def test_release_frees_slot_for_a_later_attempt():
    registry = ItemRegistry()
    registry.try_begin("test:a")

    registry.release("test:a")

    assert registry.try_begin("test:a") == (None, False)


def test_unfilled_reservation_is_not_resolvable_or_finishable():
    registry = ItemRegistry()
    registry.try_begin("test:a")

    assert registry.resolve("test:a") is None
    assert registry.record("test:a") is None
    assert registry.finish("test:a") is None


def test_concurrent_begin_has_single_winner_and_shared_handle():
    registry = ItemRegistry(wait_timeout_s=5.0)
    barrier = threading.Barrier(8)
    results: list[tuple[str | None, bool]] = []
    lock = threading.Lock()
    created: list[str] = []

    def worker() -> None:
        barrier.wait()
        handle, existed = registry.try_begin("test:shared")
        if not existed:
            created.append("item_1")
            registry.fill("test:shared", "item_1")
            handle = "item_1"
        with lock:
            results.append((handle, existed))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(created) == 1
    assert [existed for _, existed in results].count(False) == 1
    assert {handle for handle, _ in results} == {"item_1"}


def test_waiter_observes_release():
    registry = ItemRegistry(wait_timeout_s=5.0)
    registry.try_begin("test:a")
    seen: list[tuple[str | None, bool]] = []

    waiter = threading.Thread(target=lambda: seen.append(registry.try_begin("test:a")))
    waiter.start()
    registry.release("test:a")
    waiter.join()

    assert seen == [(None, True)] or seen == [(None, False)]


def test_clear_drops_everything():
    registry = ItemRegistry()
    registry.try_begin("test:a")
    registry.fill("test:a", "item_1")
    registry.try_begin("test:b")

    registry.clear()

    assert len(registry) == 0
    assert registry.active_keys() == []
