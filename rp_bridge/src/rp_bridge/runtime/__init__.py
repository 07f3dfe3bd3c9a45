"""Runtime building blocks for the lifecycle controller."""

from rp_bridge.runtime.clock import timestamp
from rp_bridge.runtime.identity import key_for, scope_for
from rp_bridge.runtime.logging_relay import LoggingRelay, ReportPortalLogHandler
from rp_bridge.runtime.registry import ItemRegistry
from rp_bridge.runtime.retry import RetryExecutor
from rp_bridge.runtime.run_state import RunPhase, RunState
from rp_bridge.runtime.status import StatusAggregator

__all__ = [
    "timestamp",
    "key_for",
    "scope_for",
    "LoggingRelay",
    "ReportPortalLogHandler",
    "ItemRegistry",
    "RetryExecutor",
    "RunPhase",
    "RunState",
    "StatusAggregator",
]
