import pytest

from rp_bridge.runtime.retry import RetryExecutor


class _Flaky:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls} failed")
        return "ok"


def test_retry_returns_after_transient_failures():
    sleeps: list[float] = []
    operation = _Flaky(failures=2)
    executor = RetryExecutor(max_attempts=3, delay_s=1.5, sleep=sleeps.append)

    assert executor.execute(operation, description="Start launch") == "ok"
    assert operation.calls == 3
    assert sleeps == [1.5, 1.5]


def test_retry_raises_last_failure_on_exhaustion():
    sleeps: list[float] = []
    operation = _Flaky(failures=5)
    executor = RetryExecutor(max_attempts=3, delay_s=1.0, sleep=sleeps.append)

    with pytest.raises(ConnectionError, match="attempt 3 failed"):
        executor.execute(operation)
    assert operation.calls == 3
    assert sleeps == [1.0, 1.0]


def test_single_attempt_does_not_sleep():
    sleeps: list[float] = []
    operation = _Flaky(failures=1)
    executor = RetryExecutor(max_attempts=1, delay_s=1.0, sleep=sleeps.append)

    with pytest.raises(ConnectionError):
        executor.execute(operation)
    assert sleeps == []


def test_retry_logs_each_failed_attempt(caplog):
    executor = RetryExecutor(max_attempts=2, delay_s=0, sleep=lambda _: None)

    with caplog.at_level("WARNING", logger="rp_bridge.retry"):
        executor.execute(_Flaky(failures=1), description="Start root suite")

    assert "Start root suite failed (attempt 1/2)" in caplog.text


@pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"delay_s": -1}])
def test_retry_rejects_invalid_policy(kwargs):
    with pytest.raises(ValueError):
        RetryExecutor(**kwargs)
