from __future__ import annotations

import logging
import time
from collections.abc import Callable

from rp_bridge.contracts import (
    BridgeConfig,
    ItemAttribute,
    ItemRecord,
    ItemStatus,
    ItemType,
    LogLevel,
    NodeDescriptor,
    Outcome,
    ReportingClient,
    describe_failure,
    resolve_status,
)
from rp_bridge.reporting import ReportPortalReportingClient
from rp_bridge.runtime import (
    LoggingRelay,
    RetryExecutor,
    RunPhase,
    RunState,
    key_for,
    scope_for,
    timestamp,
)

logger = logging.getLogger("rp_bridge.lifecycle")

ROOT_SUITE_DESCRIPTION = "Main Test Suite"
ROOT_SUITE_ATTRIBUTES = (ItemAttribute(key="suite", value="main"),)


class LifecycleController:
    """
    Project test lifecycle events onto ReportPortal items.

    Every public method is safe to call from any thread and never raises:
    reporting problems are logged and the observed run carries on. Only the
    launch and root suite creation are retried; node-level calls are single
    attempts.
    """

    def __init__(
        self,
        client: ReportingClient,
        config: BridgeConfig,
        *,
        clock: Callable[[], str] = timestamp,
        sleep: Callable[[float], None] = time.sleep,
        state: RunState | None = None,
    ) -> None:
        self._client = client
        self._config = config
        self._clock = clock
        self._retry = RetryExecutor(
            max_attempts=config.retry.attempts,
            delay_s=config.retry.delay_s,
            sleep=sleep,
        )
        self._state = state or RunState(registry_wait_s=config.registry_wait_s)
        self._relay = LoggingRelay(client, clock=clock)

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def relay(self) -> LoggingRelay:
        return self._relay

    @property
    def phase(self) -> RunPhase:
        return self._state.phase

    # -----------------------------------------------------------------
    # Run
    # -----------------------------------------------------------------

    def on_run_start(self) -> bool:
        """Create the launch and root suite once per run. Returns True on success."""
        if not self._state.begin():
            logger.debug("Run already started; ignoring duplicate start")
            return False

        logger.debug("Initializing ReportPortal launch")
        try:
            launch = self._retry.execute(self._start_launch, description="Start launch")
            self._state.launch = launch
            suite = self._retry.execute(self._start_root_suite, description="Start root suite")
        except Exception:
            logger.error(
                "Failed to initialize ReportPortal reporting; the run will not be reported",
                exc_info=True,
            )
            return False

        self._state.activate(ItemRecord(key=f"suite:{self._config.suite_name}", handle=suite))
        self._relay.set_active(suite)
        logger.info("Started ReportPortal launch %s with root suite %s", launch, suite)
        return True

    def on_run_finish(self) -> bool:
        """Finish the root suite and launch once per run, then reset local state."""
        if not self._state.end():
            logger.debug("Run already finishing; ignoring duplicate finish")
            return False

        state = self._state
        try:
            if state.launch is None:
                logger.debug("No active launch; nothing to finish")
                return False

            state.phase = "RUN_FINISHING"
            orphans = state.registry.active_keys()
            if orphans:
                logger.warning(
                    "Dropping %d item(s) that never received a finish event: %s",
                    len(orphans),
                    ", ".join(sorted(orphans)),
                )
            if state.root is not None:
                status = state.outcomes.roll_up()
                self._best_effort(
                    "finish root suite",
                    lambda: self._client.finish_item(
                        state.root.handle, end_time=self._clock(), status=status
                    ),
                )
            launch = state.launch
            self._best_effort(
                "finish launch",
                lambda: self._client.finish_launch(launch, end_time=self._clock()),
            )
            state.phase = "RUN_FINISHED"
            self._best_effort("close reporting client", self._client.close)
            logger.info("Finished ReportPortal launch %s", launch)
            return True
        except Exception:
            logger.error("Failed to finish ReportPortal reporting", exc_info=True)
            return False
        finally:
            self._relay.clear_active()
            state.reset()

    # -----------------------------------------------------------------
    # Nodes
    # -----------------------------------------------------------------

    def on_spec_start(self, node: NodeDescriptor) -> str | None:
        return self._start_node(node)

    def on_test_start(self, node: NodeDescriptor) -> str | None:
        return self._start_node(node)

    def on_spec_finish(self, node: NodeDescriptor, outcome: Outcome | None = None) -> bool:
        """Finish a spec; without an explicit outcome its children's roll-up is used."""
        return self._finish_node(node, outcome)

    def on_test_finish(self, node: NodeDescriptor, outcome: Outcome | None = None) -> bool:
        """Finish a test; containers may omit the outcome to use their roll-up."""
        return self._finish_node(node, outcome)

    def roll_up(self, node: NodeDescriptor | None = None) -> ItemStatus:
        scope_key = key_for(node) if node is not None else None
        return self._state.outcomes.roll_up(scope_key)

    def log(self, message: str, level: LogLevel = "INFO") -> None:
        self._relay.emit(message, level)

    def _start_node(self, node: NodeDescriptor) -> str | None:
        if not self._state.is_active:
            return None
        key = key_for(node)
        try:
            parent_key, parent = self._resolve_parent(node)
            handle, existed = self._state.registry.try_begin(key, parent_key=parent_key)
            if existed:
                return handle

            try:
                handle = self._client.start_item(
                    name=node.name if node.kind == "spec" else node.display_name,
                    start_time=self._clock(),
                    item_type=_item_type(node),
                    parent=parent,
                    code_ref=node.path,
                    attributes=_attributes(node),
                    has_stats=True,
                )
            except Exception:
                self._state.registry.release(key)
                raise

            self._state.registry.fill(key, handle)
            self._relay.set_active(handle)
            self._relay.emit(f"Starting {_label(node)}: {node.name}", "DEBUG", item=handle)
            return handle
        except Exception:
            logger.error("Failed to start %s: %s", _label(node), node.path, exc_info=True)
            return None

    def _finish_node(self, node: NodeDescriptor, outcome: Outcome | None) -> bool:
        if not self._state.is_active:
            return False
        key = key_for(node)
        try:
            record = self._state.registry.finish(key)
            if record is None:
                logger.warning("Finish for %s without an active item; ignoring", key)
                return False

            status = resolve_status(outcome) if outcome is not None else self.roll_up(node)
            description = describe_failure(outcome) if outcome is not None else None
            self._state.outcomes.record(key, status, scope=scope_for(node))

            if description is not None:
                self._relay.emit(
                    f"{_label(node).capitalize()} failed: {node.name}\n{description}",
                    "ERROR",
                    item=record.handle,
                )
            self._client.finish_item(
                record.handle,
                end_time=self._clock(),
                status=status,
                description=description,
            )
            self._relay.emit(
                f"{_label(node).capitalize()} finished: {node.name} with status: {status}",
                "DEBUG",
                item=record.handle,
            )
            return True
        except Exception:
            logger.error("Failed to finish %s: %s", _label(node), node.path, exc_info=True)
            return False
        finally:
            self._relay.clear_active()

    def _resolve_parent(self, node: NodeDescriptor) -> tuple[str | None, str | None]:
        root = self._state.root
        root_handle = root.handle if root is not None else None
        if node.kind == "spec":
            return None, root_handle
        for ancestor in node.lineage()[1:]:
            ancestor_key = key_for(ancestor)
            handle = self._state.registry.resolve(ancestor_key)
            if handle is not None:
                return ancestor_key, handle
        return None, root_handle

    # -----------------------------------------------------------------
    # Bootstrap calls
    # -----------------------------------------------------------------

    def _start_launch(self) -> str:
        launch = self._config.launch
        return self._client.start_launch(
            name=launch.name,
            start_time=self._clock(),
            mode=launch.mode,
            attributes=launch.attribute_list(),
            description=launch.description,
        )

    def _start_root_suite(self) -> str:
        return self._client.start_item(
            name=self._config.suite_name,
            start_time=self._clock(),
            item_type="SUITE",
            attributes=ROOT_SUITE_ATTRIBUTES,
            description=ROOT_SUITE_DESCRIPTION,
            has_stats=True,
        )

    def _best_effort(self, action: str, call: Callable[[], object]) -> None:
        try:
            call()
        except Exception:
            logger.error("Failed to %s", action, exc_info=True)


def create_controller(config: BridgeConfig) -> LifecycleController:
    """Build a controller reporting to the ReportPortal instance in `config`."""
    client = ReportPortalReportingClient(
        endpoint=config.endpoint,
        project=config.project,
        api_key=config.api_key,
        mode=config.launch.mode,
    )
    return LifecycleController(client, config)


def _item_type(node: NodeDescriptor) -> ItemType:
    if node.kind == "spec" or node.container:
        return "TEST"
    return "STEP"


def _attributes(node: NodeDescriptor) -> list[ItemAttribute]:
    if node.kind == "spec":
        return [ItemAttribute(key="tag", value=tag) for tag in node.tags]
    return [ItemAttribute(value=tag) for tag in node.tags]


def _label(node: NodeDescriptor) -> str:
    if node.kind == "spec":
        return "specification"
    return "container" if node.container else "test"
