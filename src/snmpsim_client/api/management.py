from __future__ import annotations

from pathlib import Path

from snmpsim_client.api.base import ApiFacade, Filters, decode, require
from snmpsim_client.api.errors import InvalidArgumentError, NotARecordFileError
from snmpsim_client.api.models import Agent, Endpoint, Engine, Lab, Recording, Selector, Tag, User
from snmpsim_client.api.transport import MGMT_ENDPOINT_PATH

RECORD_FILE_SUFFIX = ".snmprec"
DEFAULT_PROTOCOL = "udpv4"
DEFAULT_DATA_DIR = "."
AUTO_ENGINE_ID = "auto"
NO_PROTO = "none"

_TEXT_PLAIN = {"Content-Type": "text/plain"}


def record_file_path(path: str) -> str:
    path = path.strip()
    if not path.endswith(RECORD_FILE_SUFFIX):
        raise NotARecordFileError(path)
    return path


class ManagementClient(ApiFacade):
    """Client for the snmpsim management api (labs, agents, engines, ...)."""

    prefix = MGMT_ENDPOINT_PATH

    # generic call patterns

    def _list(self, resource: str, into, filters: Filters | None):
        return decode(self._call("GET", resource, 200, filters=filters), list[into])

    def _get(self, resource: str, id: int, into):
        return decode(self._call("GET", f"{resource}/{id}", 200), into)

    def _create(self, resource: str, payload: dict, into, tag_id: int | None = None):
        path = resource if tag_id is None else f"tags/{tag_id}/{resource}"
        return decode(self._call("POST", path, 201, payload=payload), into)

    def _delete(self, resource: str, id: int) -> None:
        self._call("DELETE", f"{resource}/{id}", 204)

    def _link(self, resource: str, id: int, sub: str, sub_id: int) -> None:
        self._call("PUT", f"{resource}/{id}/{sub}/{sub_id}", 200)

    def _unlink(self, resource: str, id: int, sub: str, sub_id: int) -> None:
        self._call("DELETE", f"{resource}/{id}/{sub}/{sub_id}", 204)

    # labs

    def get_labs(self, filters: Filters | None = None) -> list[Lab]:
        return self._list("labs", Lab, filters)

    def get_lab(self, id: int) -> Lab:
        return self._get("labs", id, Lab)

    def create_lab(self, name: str) -> Lab:
        return self._create("labs", _lab_payload(name), Lab)

    def create_lab_with_tag(self, name: str, tag_id: int) -> Lab:
        return self._create("labs", _lab_payload(name), Lab, tag_id)

    def delete_lab(self, id: int) -> None:
        self._delete("labs", id)

    def add_agent_to_lab(self, lab_id: int, agent_id: int) -> None:
        self._link("labs", lab_id, "agent", agent_id)

    def remove_agent_from_lab(self, lab_id: int, agent_id: int) -> None:
        self._unlink("labs", lab_id, "agent", agent_id)

    def set_lab_power(self, lab_id: int, power: bool) -> None:
        state = "on" if power else "off"
        self._call("PUT", f"labs/{lab_id}/power/{state}", 200)

    def add_tag_to_lab(self, lab_id: int, tag_id: int) -> None:
        self._link("labs", lab_id, "tag", tag_id)

    def remove_tag_from_lab(self, lab_id: int, tag_id: int) -> None:
        self._unlink("labs", lab_id, "tag", tag_id)

    # engines

    def get_engines(self, filters: Filters | None = None) -> list[Engine]:
        return self._list("engines", Engine, filters)

    def get_engine(self, id: int) -> Engine:
        return self._get("engines", id, Engine)

    def create_engine(self, name: str, engine_id: str = "") -> Engine:
        return self._create("engines", _engine_payload(name, engine_id), Engine)

    def create_engine_with_tag(self, name: str, engine_id: str, tag_id: int) -> Engine:
        return self._create("engines", _engine_payload(name, engine_id), Engine, tag_id)

    def delete_engine(self, id: int) -> None:
        self._delete("engines", id)

    def add_user_to_engine(self, engine_id: int, user_id: int) -> None:
        self._link("engines", engine_id, "user", user_id)

    def remove_user_from_engine(self, engine_id: int, user_id: int) -> None:
        self._unlink("engines", engine_id, "user", user_id)

    def add_endpoint_to_engine(self, engine_id: int, endpoint_id: int) -> None:
        self._link("engines", engine_id, "endpoint", endpoint_id)

    def remove_endpoint_from_engine(self, engine_id: int, endpoint_id: int) -> None:
        self._unlink("engines", engine_id, "endpoint", endpoint_id)

    def add_tag_to_engine(self, engine_id: int, tag_id: int) -> None:
        self._link("engines", engine_id, "tag", tag_id)

    def remove_tag_from_engine(self, engine_id: int, tag_id: int) -> None:
        self._unlink("engines", engine_id, "tag", tag_id)

    # agents

    def get_agents(self, filters: Filters | None = None) -> list[Agent]:
        return self._list("agents", Agent, filters)

    def get_agent(self, id: int) -> Agent:
        return self._get("agents", id, Agent)

    def create_agent(self, name: str, data_dir: str = "") -> Agent:
        return self._create("agents", _agent_payload(name, data_dir), Agent)

    def create_agent_with_tag(self, name: str, data_dir: str, tag_id: int) -> Agent:
        return self._create("agents", _agent_payload(name, data_dir), Agent, tag_id)

    def delete_agent(self, id: int) -> None:
        self._delete("agents", id)

    def add_engine_to_agent(self, agent_id: int, engine_id: int) -> None:
        self._link("agents", agent_id, "engine", engine_id)

    def remove_engine_from_agent(self, agent_id: int, engine_id: int) -> None:
        self._unlink("agents", agent_id, "engine", engine_id)

    def add_selector_to_agent(self, agent_id: int, selector_id: int) -> None:
        self._link("agents", agent_id, "selector", selector_id)

    def remove_selector_from_agent(self, agent_id: int, selector_id: int) -> None:
        self._unlink("agents", agent_id, "selector", selector_id)

    def add_tag_to_agent(self, agent_id: int, tag_id: int) -> None:
        self._link("agents", agent_id, "tag", tag_id)

    def remove_tag_from_agent(self, agent_id: int, tag_id: int) -> None:
        self._unlink("agents", agent_id, "tag", tag_id)

    # endpoints

    def get_endpoints(self, filters: Filters | None = None) -> list[Endpoint]:
        return self._list("endpoints", Endpoint, filters)

    def get_endpoint(self, id: int) -> Endpoint:
        return self._get("endpoints", id, Endpoint)

    def create_endpoint(self, name: str, address: str, protocol: str = "") -> Endpoint:
        return self._create("endpoints", _endpoint_payload(name, address, protocol), Endpoint)

    def create_endpoint_with_tag(self, name: str, address: str, protocol: str, tag_id: int) -> Endpoint:
        return self._create("endpoints", _endpoint_payload(name, address, protocol), Endpoint, tag_id)

    def delete_endpoint(self, id: int) -> None:
        self._delete("endpoints", id)

    def add_tag_to_endpoint(self, endpoint_id: int, tag_id: int) -> None:
        self._link("endpoints", endpoint_id, "tag", tag_id)

    def remove_tag_from_endpoint(self, endpoint_id: int, tag_id: int) -> None:
        self._unlink("endpoints", endpoint_id, "tag", tag_id)

    # users

    def get_users(self, filters: Filters | None = None) -> list[User]:
        return self._list("users", User, filters)

    def get_user(self, id: int) -> User:
        return self._get("users", id, User)

    def create_user(
        self,
        user: str,
        name: str,
        auth_key: str = "",
        auth_proto: str = "",
        priv_key: str = "",
        priv_proto: str = "",
    ) -> User:
        payload = _user_payload(user, name, auth_key, auth_proto, priv_key, priv_proto)
        return self._create("users", payload, User)

    def create_user_with_tag(
        self,
        user: str,
        name: str,
        auth_key: str,
        auth_proto: str,
        priv_key: str,
        priv_proto: str,
        tag_id: int,
    ) -> User:
        payload = _user_payload(user, name, auth_key, auth_proto, priv_key, priv_proto)
        return self._create("users", payload, User, tag_id)

    def delete_user(self, id: int) -> None:
        self._delete("users", id)

    def add_tag_to_user(self, user_id: int, tag_id: int) -> None:
        self._link("users", user_id, "tag", tag_id)

    def remove_tag_from_user(self, user_id: int, tag_id: int) -> None:
        self._unlink("users", user_id, "tag", tag_id)

    # selectors

    def get_selectors(self, filters: Filters | None = None) -> list[Selector]:
        return self._list("selectors", Selector, filters)

    def get_selector(self, id: int) -> Selector:
        return self._get("selectors", id, Selector)

    def create_selector(self, comment: str, template: str) -> Selector:
        return self._create("selectors", _selector_payload(comment, template), Selector)

    def create_selector_with_tag(self, comment: str, template: str, tag_id: int) -> Selector:
        return self._create("selectors", _selector_payload(comment, template), Selector, tag_id)

    def delete_selector(self, id: int) -> None:
        self._delete("selectors", id)

    def add_tag_to_selector(self, selector_id: int, tag_id: int) -> None:
        self._link("selectors", selector_id, "tag", tag_id)

    def remove_tag_from_selector(self, selector_id: int, tag_id: int) -> None:
        self._unlink("selectors", selector_id, "tag", tag_id)

    # tags

    def get_tags(self, filters: Filters | None = None) -> list[Tag]:
        return self._list("tags", Tag, filters)

    def get_tag(self, id: int) -> Tag:
        return self._get("tags", id, Tag)

    def create_tag(self, name: str, description: str = "") -> Tag:
        payload = {"name": require(name, "name"), "description": description}
        return self._create("tags", payload, Tag)

    def delete_tag(self, id: int) -> None:
        self._delete("tags", id)

    def delete_all_objects_with_tag(self, tag_id: int) -> Tag:
        """Delete every object carrying the tag. The tag itself survives."""
        return decode(self._call("DELETE", f"tags/{tag_id}/objects", 200), Tag)

    # record files

    def get_record_files(self, filters: Filters | None = None) -> list[Recording]:
        return self._list("recordings", Recording, filters)

    def get_record_file(self, remote_path: str) -> str:
        remote_path = record_file_path(remote_path)
        response = self._call("GET", f"recordings/{remote_path}", 200, headers=_TEXT_PLAIN)
        return response.text

    def upload_record_file(self, local_path: str | Path, remote_path: str) -> None:
        """Upload a local .snmprec file to `remote_path` inside the data dir."""
        local_path = record_file_path(str(local_path))
        try:
            contents = Path(local_path).read_text()
        except OSError as e:
            raise InvalidArgumentError(f"error while reading file {local_path!r}") from e
        self.upload_record_file_string(contents, remote_path)

    def upload_record_file_string(self, contents: str, remote_path: str) -> None:
        remote_path = record_file_path(remote_path)
        self._call("POST", f"recordings/{remote_path}", 204, text=contents, headers=_TEXT_PLAIN)

    def delete_record_file(self, remote_path: str) -> None:
        remote_path = record_file_path(remote_path)
        self._call("DELETE", f"recordings/{remote_path}", 204, headers=_TEXT_PLAIN)


# request bodies


def _lab_payload(name: str) -> dict:
    return {"name": require(name, "name")}


def _engine_payload(name: str, engine_id: str) -> dict:
    return {"name": require(name, "name"), "engine_id": engine_id or AUTO_ENGINE_ID}


def _agent_payload(name: str, data_dir: str) -> dict:
    return {"name": require(name, "name"), "data_dir": data_dir or DEFAULT_DATA_DIR}


def _endpoint_payload(name: str, address: str, protocol: str) -> dict:
    return {
        "name": require(name, "name"),
        "address": require(address, "address"),
        "protocol": protocol or DEFAULT_PROTOCOL,
    }


def _user_payload(
    user: str, name: str, auth_key: str, auth_proto: str, priv_key: str, priv_proto: str
) -> dict:
    # an empty key must go out as null, not ""
    return {
        "user": require(user, "user"),
        "name": require(name, "name"),
        "auth_key": auth_key or None,
        "auth_proto": auth_proto or NO_PROTO,
        "priv_key": priv_key or None,
        "priv_proto": priv_proto or NO_PROTO,
    }


def _selector_payload(comment: str, template: str) -> dict:
    return {"comment": comment, "template": require(template, "template")}
