import dataclasses
import os

import pytest
from fastapi.testclient import TestClient

from services.snmpsim_fake.app.core.store import ControlPlaneStore
from services.snmpsim_fake.app.main import create_app
from snmpsim_client.api.management import ManagementClient
from snmpsim_client.api.metrics import MetricsClient
from snmpsim_client.config.settings import get_settings

# SNMPSIM_LIVE=1 runs the suite against the server at SNMPSIM_HTTP
LIVE = os.getenv("SNMPSIM_LIVE") == "1"
FAKE_BASE_URL = "http://testserver/"


@pytest.fixture
def settings():
    settings = get_settings()
    if LIVE:
        return settings
    return dataclasses.replace(settings, base_url=FAKE_BASE_URL, username="", password="")


@pytest.fixture
def fake_store():
    return ControlPlaneStore()


@pytest.fixture
def store(fake_store):
    """
    Direct access to the fake control plane state, for tests that need to
    seed data the real api only produces on its own (activity counters).
    """
    if LIVE:
        pytest.skip("needs the in-process fake control plane")
    return fake_store


@pytest.fixture
def sim_http(fake_store):
    if LIVE:
        yield None
        return
    client = TestClient(create_app(fake_store))
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def mgmt(settings, sim_http):
    client = ManagementClient.from_settings(settings, http_client=sim_http)
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def metrics(settings, sim_http):
    client = MetricsClient.from_settings(settings, http_client=sim_http)
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def test_tag(mgmt, settings):
    """
    Tag that marks every object a test creates. Looked up by name (created if
    missing) and emptied before and after the test, so a failed run leaves
    nothing behind on a live server.
    """
    tags = mgmt.get_tags({"name": settings.test_tag})
    if len(tags) > 1:
        pytest.fail(f"more than one tag named {settings.test_tag!r} on the server")

    if tags:
        tag = tags[0]
        mgmt.delete_all_objects_with_tag(tag.id)
    else:
        tag = mgmt.create_tag(settings.test_tag, "objects created by the snmpsim-client test suite")

    yield tag
    mgmt.delete_all_objects_with_tag(tag.id)


@pytest.fixture
def data_dir(settings):
    def _data_dir(name: str) -> str:
        return f"{settings.root_data_dir}{name}"

    return _data_dir
