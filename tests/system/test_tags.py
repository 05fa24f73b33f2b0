import pytest

from snmpsim_client.api.errors import NotFoundError

pytestmark = pytest.mark.system


def test_tag_scoped_objects_are_listed_on_the_tag(mgmt, settings, test_tag, data_dir):
    lab = mgmt.create_lab_with_tag("tag-lab", test_tag.id)
    agent = mgmt.create_agent_with_tag("tag-agent", data_dir("tag-agent"), test_tag.id)
    engine = mgmt.create_engine_with_tag("tag-engine", "", test_tag.id)
    endpoint = mgmt.create_endpoint_with_tag("tag-endpoint", "127.0.0.1:1164", settings.protocol, test_tag.id)
    user = mgmt.create_user_with_tag("tag-user", "tag user", "", "", "", "", test_tag.id)
    selector = mgmt.create_selector_with_tag("tagged", "${endpoint-id}.snmprec", test_tag.id)

    tag = mgmt.get_tag(test_tag.id)
    assert [x.id for x in tag.labs] == [lab.id]
    assert [a.id for a in tag.agents] == [agent.id]
    assert [e.id for e in tag.engines] == [engine.id]
    assert [e.id for e in tag.endpoints] == [endpoint.id]
    assert [u.id for u in tag.users] == [user.id]
    assert [s.id for s in tag.selectors] == [selector.id]


def test_delete_all_objects_with_tag(mgmt, test_tag, data_dir):
    lab = mgmt.create_lab_with_tag("tag-lab", test_tag.id)
    agent = mgmt.create_agent_with_tag("tag-agent", data_dir("tag-agent"), test_tag.id)
    mgmt.add_agent_to_lab(lab.id, agent.id)

    tag = mgmt.delete_all_objects_with_tag(test_tag.id)

    assert tag.id == test_tag.id
    assert tag.labs == []
    assert tag.agents == []
    with pytest.raises(NotFoundError):
        mgmt.get_lab(lab.id)
    with pytest.raises(NotFoundError):
        mgmt.get_agent(agent.id)
    # the tag itself survives
    assert mgmt.get_tag(test_tag.id).name == test_tag.name


def test_add_and_remove_tag(mgmt, test_tag):
    lab = mgmt.create_lab_with_tag("tag-lab", test_tag.id)
    extra = mgmt.create_tag("snmpsim-client-test-extra", "second tag")
    try:
        mgmt.add_tag_to_lab(lab.id, extra.id)
        assert sorted(t.id for t in mgmt.get_lab(lab.id).tags) == sorted([test_tag.id, extra.id])
        assert [x.id for x in mgmt.get_tag(extra.id).labs] == [lab.id]

        mgmt.remove_tag_from_lab(lab.id, extra.id)
        assert [t.id for t in mgmt.get_lab(lab.id).tags] == [test_tag.id]
    finally:
        mgmt.delete_tag(extra.id)

    with pytest.raises(NotFoundError):
        mgmt.get_tag(extra.id)


def test_tag_scoped_create_on_missing_tag(mgmt, test_tag):
    with pytest.raises(NotFoundError):
        mgmt.create_lab_with_tag("tag-orphan-lab", 999999)
