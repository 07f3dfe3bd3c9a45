"""
pytest entry point for the ReportPortal bridge.

A test module is reported as a spec, a test class as a container and a test
function as a leaf test. Enable it with ``--rp-config path/to/rp.yaml`` or the
``rp_config`` ini option.

Log records emitted by the code under test are forwarded to the running test.
They pass through the root logger first, so records below its level (WARNING
unless configured) never arrive; set pytest's ``log_level`` to forward INFO
or DEBUG output as well.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import pytest

from rp_bridge.configuration import ConfigError, load_bridge_config
from rp_bridge.contracts import (
    Error,
    Failure,
    Ignored,
    NodeDescriptor,
    Outcome,
    Success,
)
from rp_bridge.contracts.nodes import PATH_SEPARATOR
from rp_bridge.lifecycle import LifecycleController, create_controller
from rp_bridge.runtime import ReportPortalLogHandler, key_for

logger = logging.getLogger("rp_bridge.pytest")

PLUGIN_NAME = "rp_bridge_reporter"

# Markers that configure pytest itself rather than describe the test.
_BUILTIN_MARKERS = frozenset(
    {"parametrize", "usefixtures", "filterwarnings", "skip", "skipif", "xfail"}
)


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("reportportal", "ReportPortal reporting")
    group.addoption(
        "--rp-config",
        action="store",
        dest="rp_config",
        default=None,
        metavar="PATH",
        help=(
            "YAML file with ReportPortal settings; enables reporting. "
            "Test log output is forwarded from the log_level threshold up (WARNING by default)."
        ),
    )
    group.addoption(
        "--rp-launch",
        action="store",
        dest="rp_launch",
        default=None,
        help="Override the launch name from the config file.",
    )
    group.addoption(
        "--rp-disable",
        action="store_true",
        dest="rp_disable",
        default=False,
        help="Disable ReportPortal reporting even if configured.",
    )
    parser.addini("rp_config", help="YAML file with ReportPortal settings.", default="")


def pytest_configure(config: pytest.Config) -> None:
    if config.getoption("rp_disable"):
        return
    config_path = _config_path(config)
    if config_path is None:
        return
    if hasattr(config, "workerinput"):
        logger.debug("Running inside an xdist worker; ReportPortal reporting stays with the controller")
        return

    overrides = {"launch": {"name": config.getoption("rp_launch")}}
    try:
        bridge_config = load_bridge_config(config_path, overrides=overrides)
    except ConfigError as exc:
        raise pytest.UsageError(f"ReportPortal configuration error: {exc}") from exc
    if not bridge_config.enabled:
        logger.info("ReportPortal reporting disabled in %s", config_path)
        return

    try:
        controller = create_controller(bridge_config)
    except RuntimeError as exc:
        raise pytest.UsageError(str(exc)) from exc
    config.pluginmanager.register(ReportPortalPlugin(controller), PLUGIN_NAME)


def _config_path(config: pytest.Config) -> Path | None:
    option = config.getoption("rp_config")
    if option:
        return Path(option)
    ini_value = config.getini("rp_config")
    if ini_value:
        path = Path(ini_value)
        return path if path.is_absolute() else config.rootpath / path
    return None


class ReportPortalPlugin:
    """Translate pytest hooks into lifecycle controller events."""

    def __init__(self, controller: LifecycleController, *, capture_logs: bool = True) -> None:
        self._controller = controller
        self._reports: dict[str, list[pytest.TestReport]] = {}
        # Tests and ancestors run by xdist workers, known only from their reports.
        self._remote_tests: dict[str, tuple[NodeDescriptor, list[pytest.TestReport]]] = {}
        self._remote_ancestors: dict[str, NodeDescriptor] = {}
        self._log_handler = ReportPortalLogHandler(controller.relay) if capture_logs else None

    @property
    def controller(self) -> LifecycleController:
        return self._controller

    def pytest_sessionstart(self, session: pytest.Session) -> None:
        self._controller.on_run_start()
        if self._log_handler is not None:
            logging.getLogger().addHandler(self._log_handler)

    @pytest.hookimpl(trylast=True)
    def pytest_sessionfinish(self, session: pytest.Session, exitstatus: int) -> None:
        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)
        self._finish_remote()
        self._controller.on_run_finish()

    @pytest.hookimpl(hookwrapper=True)
    def pytest_runtest_protocol(self, item: pytest.Item, nextitem: pytest.Item | None):
        test = describe_item(item)
        for ancestor in test.ancestors():
            self._start(ancestor)
        self._controller.on_test_start(test)
        self._reports[item.nodeid] = []

        yield

        reports = self._reports.pop(item.nodeid, [])
        self._controller.on_test_finish(test, outcome_from_reports(reports))

        remaining = set()
        if nextitem is not None:
            remaining = {key_for(node) for node in describe_item(nextitem).ancestors()}
        for ancestor in reversed(test.ancestors()):
            if key_for(ancestor) not in remaining:
                self._finish(ancestor)

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        reports = self._reports.get(report.nodeid)
        if reports is not None:
            reports.append(report)
            return
        # No local protocol for this test: it ran on an xdist worker.
        self._remote_report(report)

    def _remote_report(self, report: pytest.TestReport) -> None:
        entry = self._remote_tests.get(report.nodeid)
        if entry is None:
            test = describe_report(report)
            for ancestor in test.ancestors():
                key = key_for(ancestor)
                if key not in self._remote_ancestors:
                    self._remote_ancestors[key] = ancestor
                    self._start(ancestor)
            self._controller.on_test_start(test)
            entry = self._remote_tests[report.nodeid] = (test, [])
        test, reports = entry
        reports.append(report)
        if report.when == "teardown":
            del self._remote_tests[report.nodeid]
            self._controller.on_test_finish(test, outcome_from_reports(reports))

    def _finish_remote(self) -> None:
        # Workers interleave modules, so ancestors close only once every test is in.
        for test, reports in self._remote_tests.values():
            self._controller.on_test_finish(test, outcome_from_reports(reports))
        self._remote_tests.clear()
        for ancestor in reversed(list(self._remote_ancestors.values())):
            self._finish(ancestor)
        self._remote_ancestors.clear()

    def _start(self, node: NodeDescriptor) -> None:
        if node.kind == "spec":
            self._controller.on_spec_start(node)
        else:
            self._controller.on_test_start(node)

    def _finish(self, node: NodeDescriptor) -> None:
        if node.kind == "spec":
            self._controller.on_spec_finish(node)
        else:
            self._controller.on_test_finish(node)


def describe_item(item: pytest.Item) -> NodeDescriptor:
    """Build the descriptor chain module -> classes -> test for a collected item."""
    parent: NodeDescriptor | None = None
    for node in item.listchain():
        if node is item:
            break
        if isinstance(node, pytest.Module):
            parent = NodeDescriptor(
                kind="spec",
                segment=node.nodeid,
                name=node.nodeid,
                tags=_marker_names(node.own_markers),
            )
        elif isinstance(node, pytest.Class):
            parent = NodeDescriptor(
                kind="test",
                segment=node.name,
                name=node.name,
                parent=parent,
                tags=_marker_names(node.own_markers),
                container=True,
            )
    segment = item.name if parent is not None else item.nodeid
    return NodeDescriptor(
        kind="test",
        segment=segment,
        name=item.name,
        parent=parent,
        tags=_marker_names(item.own_markers),
    )


def describe_report(report: pytest.TestReport) -> NodeDescriptor:
    """
    Build the descriptor chain for a test known only from its report.

    Reports forwarded by xdist workers carry the node id but not the
    collected nodes, so the chain is rebuilt from the id: the file part is
    a spec node, the middle parts are classes. Markers are not recoverable and
    the descriptors carry no tags. Keys match those of `describe_item`.
    """
    parts = report.nodeid.split(PATH_SEPARATOR)
    if len(parts) == 1:
        return NodeDescriptor(kind="test", segment=report.nodeid, name=report.nodeid)
    parent = NodeDescriptor(kind="spec", segment=parts[0], name=parts[0])
    for class_name in parts[1:-1]:
        parent = NodeDescriptor(
            kind="test",
            segment=class_name,
            name=class_name,
            parent=parent,
            container=True,
        )
    return NodeDescriptor(kind="test", segment=parts[-1], name=parts[-1], parent=parent)


def outcome_from_reports(reports: Iterable[pytest.TestReport]) -> Outcome:
    """
    Fold the setup/call/teardown reports of one test into a single outcome.

    A failed call is a Failure; a failure in setup or teardown is an Error.
    """
    reports = list(reports)
    for report in reports:
        if report.failed:
            message = _failure_message(report)
            trace = report.longreprtext or None
            if report.when == "call":
                return Failure(message=message, trace=trace)
            return Error(message=f"Error in {report.when}: {message}", trace=trace)
    for report in reports:
        if report.skipped:
            return Ignored(reason=_skip_reason(report))
    return Success()


def _failure_message(report: pytest.TestReport) -> str:
    crash = getattr(report.longrepr, "reprcrash", None)
    if crash is not None:
        return crash.message
    lines = report.longreprtext.strip().splitlines()
    return lines[-1] if lines else "failed"


def _skip_reason(report: pytest.TestReport) -> str | None:
    wasxfail = getattr(report, "wasxfail", None)
    if wasxfail is not None:
        return f"xfail: {wasxfail}" if wasxfail else "xfail"
    if isinstance(report.longrepr, tuple) and len(report.longrepr) == 3:
        return str(report.longrepr[2])
    return None


def _marker_names(markers: Iterable[pytest.Mark]) -> tuple[str, ...]:
    names: list[str] = []
    for marker in markers:
        if marker.name in _BUILTIN_MARKERS or marker.name in names:
            continue
        names.append(marker.name)
    return tuple(names)
