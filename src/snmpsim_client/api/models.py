"""
Records returned by the snmpsim control plane.

Field names follow the JSON keys of the REST api one to one. The records are
read-only snapshots; nothing here talks to the server.
"""
from __future__ import annotations

from typing import Any, get_args

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator


class Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        # the api sends null for empty relationships and unset scalars
        if value is None and info.field_name is not None:
            field = cls.model_fields[info.field_name]
            if not field.is_required() and type(None) not in get_args(field.annotation):
                return field.get_default(call_default_factory=True)
        return value


# management api


class Tag(Record):
    id: int
    name: str = ""
    description: str = ""
    agents: list[Agent] = []
    endpoints: list[Endpoint] = []
    engines: list[Engine] = []
    labs: list[Lab] = []
    selectors: list[Selector] = []
    users: list[User] = []


class Lab(Record):
    """Group of agents belonging to the same virtual laboratory."""

    id: int
    name: str = ""
    agents: list[Agent] = []
    power: str = ""
    tags: list[Tag] = []


class Engine(Record):
    """An SNMP engine identity, not yet bound to any transport endpoint."""

    id: int
    engine_id: str = ""
    name: str = ""
    agents: list[Agent] = []
    endpoints: list[Endpoint] = []
    users: list[User] = []
    tags: list[Tag] = []


class Agent(Record):
    """SNMP agent: engines plus the transport endpoints they bind."""

    id: int
    name: str = ""
    data_dir: str = ""
    engines: list[Engine] = []
    endpoints: list[Endpoint] = []
    labs: list[Lab] = []
    selectors: list[Selector] = []
    tags: list[Tag] = []


class Endpoint(Record):
    id: int
    name: str = ""
    protocol: str = ""
    address: str = ""
    engines: list[Engine] = []
    tags: list[Tag] = []


class User(Record):
    """SNMPv3 USM user."""

    id: int
    user: str = ""
    name: str = ""
    auth_key: str | None = None
    auth_proto: str = ""
    priv_key: str | None = None
    priv_proto: str = ""
    engines: list[Engine] = []
    tags: list[Tag] = []


class Selector(Record):
    """
    Template that expands into a simulation data file path per request.
    Known templates: ${context-engine-id}, ${context-name}, ${endpoint-id},
    ${source-address}.
    """

    id: int
    comment: str = ""
    template: str = ""
    tags: list[Tag] = []


class Recording(Record):
    id: int = 0
    name: str = ""
    path: str = ""


# metrics api


class ConsolePages(Record):
    count: int = 0
    last_update: str = ""


class Supervisor(Record):
    hostname: str = ""
    watch_dir: str = ""


class ProcessMetrics(Record):
    id: int
    path: str = ""
    runtime: int = 0
    cpu: int = 0
    memory: int = 0
    files: int = 0
    exits: int = 0
    changes: int = 0
    update_interval: int = 0
    last_update: str = ""
    console_pages: ConsolePages = ConsolePages()
    supervisor: Supervisor = Supervisor()


class ProcessEndpoint(Record):
    id: int
    protocol: str = ""
    address: str = ""


class Console(Record):
    id: int
    timestamp: str = ""
    text: str = ""


class PacketMetrics(Record):
    first_hit: int | None = None
    last_hit: int | None = None
    total: int | None = None
    parse_failures: int | None = None
    auth_failures: int | None = None
    context_failures: int | None = None


class Variation(Record):
    first_hit: int | None = None
    last_hit: int | None = None
    total: int | None = None
    name: str | None = None
    failures: int | None = None


class MessageMetrics(Record):
    first_hit: int | None = None
    last_hit: int | None = None
    pdus: int | None = None
    var_binds: int | None = None
    failures: int | None = None
    variations: list[Variation] = []


for _model in (Tag, Lab, Engine, Agent, Endpoint, User, Selector):
    _model.model_rebuild()
