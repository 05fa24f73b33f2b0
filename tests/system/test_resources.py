import pytest

from snmpsim_client.api.errors import BadRequestError, NotFoundError

pytestmark = pytest.mark.system

MISSING_ID = 999999


def test_agent_crud(mgmt, test_tag, data_dir):
    created = mgmt.create_agent_with_tag("res-agent", data_dir("res-agent"), test_tag.id)
    assert created.name == "res-agent"
    assert created.data_dir == data_dir("res-agent")

    assert mgmt.get_agent(created.id).name == "res-agent"
    assert [a.id for a in mgmt.get_agents({"name": "res-agent"})] == [created.id]
    assert created.id in [a.id for a in mgmt.get_agents()]

    mgmt.delete_agent(created.id)
    with pytest.raises(NotFoundError):
        mgmt.get_agent(created.id)
    with pytest.raises(NotFoundError):
        mgmt.delete_agent(created.id)


def test_engine_defaults_to_auto_id(mgmt, test_tag):
    engine = mgmt.create_engine_with_tag("res-engine", "", test_tag.id)
    assert engine.engine_id == "auto"


def test_endpoint_crud(mgmt, settings, test_tag):
    endpoint = mgmt.create_endpoint_with_tag("res-endpoint", "127.0.0.1:1163", settings.protocol, test_tag.id)
    assert endpoint.protocol == settings.protocol

    (found,) = mgmt.get_endpoints({"address": "127.0.0.1:1163"})
    assert found.name == "res-endpoint"

    mgmt.delete_endpoint(endpoint.id)
    assert mgmt.get_endpoints({"address": "127.0.0.1:1163"}) == []


def test_user_without_keys_has_null_keys(mgmt, test_tag):
    user = mgmt.create_user_with_tag("res-user", "res user", "", "", "", "", test_tag.id)

    user = mgmt.get_user(user.id)
    assert user.auth_key is None
    assert user.priv_key is None
    assert user.auth_proto == "none"
    assert user.priv_proto == "none"


def test_user_with_keys(mgmt, test_tag):
    user = mgmt.create_user_with_tag(
        "res-user-v3", "res user v3", "authkey123", "sha", "privkey123", "aes", test_tag.id
    )
    assert (user.auth_key, user.auth_proto) == ("authkey123", "sha")
    assert (user.priv_key, user.priv_proto) == ("privkey123", "aes")
    assert [u.id for u in mgmt.get_users({"user": "res-user-v3"})] == [user.id]


def test_selector_crud(mgmt, test_tag):
    selector = mgmt.create_selector_with_tag("by source", "${source-address}.snmprec", test_tag.id)
    assert mgmt.get_selector(selector.id).template == "${source-address}.snmprec"

    mgmt.delete_selector(selector.id)
    with pytest.raises(NotFoundError):
        mgmt.get_selector(selector.id)


def test_duplicate_name_is_bad_request(mgmt, test_tag):
    mgmt.create_lab_with_tag("res-lab", test_tag.id)
    with pytest.raises(BadRequestError) as info:
        mgmt.create_lab_with_tag("res-lab", test_tag.id)
    assert info.value.status_code == 400


@pytest.mark.parametrize("getter", ["get_lab", "get_agent", "get_engine", "get_endpoint", "get_user", "get_tag"])
def test_get_missing_is_not_found(mgmt, getter):
    with pytest.raises(NotFoundError) as info:
        getattr(mgmt, getter)(MISSING_ID)
    assert info.value.body is not None
    assert info.value.body.status == 404


def test_unknown_filter_is_ignored_by_fake(mgmt, store, test_tag):
    lab = mgmt.create_lab_with_tag("res-filter-lab", test_tag.id)
    assert lab.id in [x.id for x in mgmt.get_labs({"no_such_field": "x"})]
