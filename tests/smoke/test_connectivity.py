import pytest
from fastapi.testclient import TestClient

from services.snmpsim_fake.app.main import create_app
from snmpsim_client.api.errors import HttpError, RequestFailedError
from snmpsim_client.api.management import ManagementClient
from snmpsim_client.api.metrics import MetricsClient
from snmpsim_client.flows.lab_setup import wait_until_reachable
from snmpsim_client.utils.retry import RetryPolicy

pytestmark = pytest.mark.smoke


def test_management_api_answers(mgmt):
    assert isinstance(mgmt.get_labs(), list)


def test_metrics_api_answers(metrics):
    assert isinstance(wait_until_reachable(metrics), list)


def test_unreachable_server_is_request_failure():
    # nothing listens on port 1
    with ManagementClient("http://127.0.0.1:1/", timeout_s=1.0) as client:
        with pytest.raises(RequestFailedError):
            client.get_labs()


def test_wait_until_reachable_gives_up():
    policy = RetryPolicy(attempts=2, base_delay_s=0.01, max_delay_s=0.01)
    with MetricsClient("http://127.0.0.1:1/", timeout_s=1.0) as client:
        with pytest.raises(RequestFailedError):
            wait_until_reachable(client, policy)


def test_basic_auth_is_enforced_when_configured():
    http = TestClient(create_app(credentials=("admin", "secret")))
    client = ManagementClient("http://testserver/", http_client=http)

    with pytest.raises(HttpError) as info:
        client.get_labs()
    assert info.value.status_code == 401
    assert info.value.body.message == "authentication required"

    client.set_username_and_password("admin", "wrong")
    with pytest.raises(HttpError):
        client.get_labs()

    client.set_username_and_password("admin", "secret")
    assert client.get_labs() == []
    http.close()
