import pytest

from snmpsim_client.api.errors import NotFoundError
from snmpsim_client.flows.lab_setup import AgentSpec, LabSetup, wait_for_agent_process

pytestmark = pytest.mark.system


@pytest.fixture
def running_lab(mgmt, settings, test_tag, data_dir):
    spec = AgentSpec(
        name="metrics-agent",
        data_dir=data_dir("metrics-agent"),
        engine_name="metrics-engine",
        endpoint_name="metrics-endpoint",
        endpoint_address="127.0.0.1:1165",
        protocol=settings.protocol,
    )
    with LabSetup(mgmt, "metrics-lab", tag_id=test_tag.id) as setup:
        setup.build([spec])
        yield spec


def test_process_of_running_agent(metrics, running_lab):
    process = wait_for_agent_process(metrics, running_lab.data_dir)

    assert metrics.get_process(process.id).id == process.id
    assert process.supervisor.hostname
    assert process.id in [p.id for p in metrics.get_processes()]


def test_process_endpoints(metrics, running_lab):
    process = wait_for_agent_process(metrics, running_lab.data_dir)

    endpoints = metrics.get_process_endpoints(process.id)
    assert running_lab.endpoint_address in [e.address for e in endpoints]

    first = endpoints[0]
    assert metrics.get_process_endpoint(process.id, first.id) == first


def test_process_console(metrics, running_lab):
    process = wait_for_agent_process(metrics, running_lab.data_dir)

    pages = metrics.get_process_console_pages(process.id)
    assert pages
    assert metrics.get_process_console_page(process.id, pages[0].id).text == pages[0].text


def test_process_is_gone_after_power_off(mgmt, metrics, store, running_lab):
    process = wait_for_agent_process(metrics, running_lab.data_dir)
    (lab,) = mgmt.get_labs({"name": "metrics-lab"})

    mgmt.set_lab_power(lab.id, False)

    with pytest.raises(NotFoundError):
        metrics.get_process(process.id)


def test_packet_activity(metrics, store):
    store.add_packet_activity({"local_address": "127.0.0.1:1161", "protocol": "udpv4"}, total=10, parse_failures=1)
    store.add_packet_activity({"local_address": "[::1]:1161", "protocol": "udpv6"}, total=5, auth_failures=2)

    assert sorted(metrics.get_packet_filters()) == ["local_address", "peer_address", "protocol"]
    assert metrics.get_possible_values_for_packet_filter("protocol") == ["udpv4", "udpv6"]

    everything = metrics.get_packets()
    assert everything.total == 15
    assert everything.auth_failures == 2
    assert everything.first_hit is not None

    v4 = metrics.get_packets({"protocol": "udpv4"})
    assert v4.total == 10
    assert v4.parse_failures == 1

    with pytest.raises(NotFoundError):
        metrics.get_possible_values_for_packet_filter("no_such_filter")


def test_message_activity(metrics, store):
    store.add_message_activity(
        {"engine_id": "0102030405060708", "pdu_type": "GetRequestPDU"},
        variations=[{"name": "writecache", "total": 3, "failures": 1}],
        pdus=5,
        var_binds=7,
    )
    store.add_message_activity({"engine_id": "0807060504030201", "pdu_type": "SetRequestPDU"}, pdus=2, var_binds=2)

    assert "pdu_type" in metrics.get_message_filters()
    assert metrics.get_possible_values_for_message_filter("pdu_type") == ["GetRequestPDU", "SetRequestPDU"]

    get_requests = metrics.get_messages({"pdu_type": "GetRequestPDU"})
    assert get_requests.pdus == 5
    assert get_requests.var_binds == 7
    (variation,) = get_requests.variations
    assert (variation.name, variation.total, variation.failures) == ("writecache", 3, 1)

    assert metrics.get_messages().pdus == 7


def test_no_activity_yet(metrics, store):
    packets = metrics.get_packets()
    assert packets.total == 0
    assert packets.first_hit is None
    assert metrics.get_messages().variations == []
