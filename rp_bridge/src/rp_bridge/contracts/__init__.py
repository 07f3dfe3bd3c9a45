from .bridge_config import BridgeConfig, LaunchConfig, RetryConfig
from .nodes import ItemAttribute, ItemRecord, NodeDescriptor, NodeKind
from .outcomes import (
    Error,
    Failure,
    Ignored,
    ItemStatus,
    Outcome,
    OutcomeRecord,
    Success,
    describe_failure,
    resolve_status,
)
from .reporting import ItemType, LaunchMode, LogLevel, ReportingClient

__all__ = [
    "BridgeConfig",
    "LaunchConfig",
    "RetryConfig",
    "ItemAttribute",
    "ItemRecord",
    "NodeDescriptor",
    "NodeKind",
    "Outcome",
    "OutcomeRecord",
    "Success",
    "Failure",
    "Error",
    "Ignored",
    "ItemStatus",
    "describe_failure",
    "resolve_status",
    "ReportingClient",
    "ItemType",
    "LaunchMode",
    "LogLevel",
]
