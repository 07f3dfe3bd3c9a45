import pytest

from rp_bridge.contracts import ItemAttribute, ReportingClient
from rp_bridge.reporting.fakes import FakeReportingClient


def test_fake_reporting_client_records_calls_in_order():
    client = FakeReportingClient()

    launch = client.start_launch(
        name="demo",
        start_time="1000",
        mode="DEFAULT",
        attributes=[ItemAttribute(key="team", value="core")],
    )
    suite = client.start_item(name="Suite", start_time="1000", item_type="SUITE")
    test = client.start_item(name="t", start_time="1000", item_type="STEP", parent=suite)
    client.log(test, time="1000", level="INFO", message="hello")
    client.finish_item(test, end_time="2000", status="PASSED")
    client.finish_item(suite, end_time="2000", status="PASSED")
    client.finish_launch(launch, end_time="2000")
    client.close()

    assert client.call_names() == [
        "start_launch",
        "start_item",
        "start_item",
        "log",
        "finish_item",
        "finish_item",
        "finish_launch",
        "close",
    ]
    assert client.calls[2].kwargs["parent"] == suite
    assert client.calls[4].kwargs["name"] == "t"
    assert client.open_items == {}
    assert client.active_launch is None


def test_fake_reporting_client_strict_lifecycle():
    client = FakeReportingClient()

    with pytest.raises(RuntimeError, match="No active launch"):
        client.start_item(name="t", start_time="1000", item_type="STEP")

    client.start_launch(name="demo", start_time="1000", mode="DEFAULT", attributes=[])

    with pytest.raises(RuntimeError, match="already active"):
        client.start_launch(name="dup", start_time="1000", mode="DEFAULT", attributes=[])

    item = client.start_item(name="t", start_time="1000", item_type="STEP")
    client.finish_item(item, end_time="2000", status="PASSED")

    with pytest.raises(RuntimeError, match="Unknown or finished item"):
        client.finish_item(item, end_time="2000", status="PASSED")


def test_fake_reporting_client_fail_next_counts_attempts():
    client = FakeReportingClient()
    client.fail_next("start_launch", times=2)

    for _ in range(2):
        with pytest.raises(ConnectionError):
            client.start_launch(name="demo", start_time="1000", mode="DEFAULT", attributes=[])
    launch = client.start_launch(name="demo", start_time="1000", mode="DEFAULT", attributes=[])

    assert launch == "launch_1"
    assert client.call_names().count("start_launch") == 3


def test_fake_reporting_client_satisfies_protocol():
    assert isinstance(FakeReportingClient(), ReportingClient)


def test_fake_reporting_client_keeps_name_arguments_on_calls():
    client = FakeReportingClient()

    client.start_launch(name="nightly", start_time="1000", mode="DEBUG", attributes=[])
    client.start_item(name="Suite", start_time="1000", item_type="SUITE")

    launch_call, item_call = client.calls
    assert (launch_call.name, launch_call.kwargs["name"]) == ("start_launch", "nightly")
    assert (item_call.name, item_call.kwargs["name"]) == ("start_item", "Suite")
