"""
Build up and tear down a complete simulated lab through the management api.

Every step goes through the plain client; the flow only remembers what it
created so that `teardown` can undo it in reverse order. Teardown is
idempotent: objects that are already gone are skipped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from snmpsim_client.api.errors import NotFoundError, RequestFailedError
from snmpsim_client.api.management import ManagementClient
from snmpsim_client.api.metrics import MetricsClient
from snmpsim_client.api.models import Agent, Endpoint, Engine, Lab, ProcessMetrics, User
from snmpsim_client.utils.retry import RetryPolicy, poll_until, with_retries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AgentSpec:
    name: str
    data_dir: str
    engine_name: str
    engine_id: str = ""
    endpoint_name: str = ""
    endpoint_address: str = ""
    protocol: str = ""
    user: str = ""
    user_name: str = ""
    auth_key: str = ""
    auth_proto: str = ""
    priv_key: str = ""
    priv_proto: str = ""
    record_file: str = ""
    record_contents: str = ""


@dataclass
class LabSetup:
    client: ManagementClient
    lab_name: str
    tag_id: int | None = None

    lab: Lab | None = None
    agents: list[Agent] = field(default_factory=list)
    engines: list[Engine] = field(default_factory=list)
    endpoints: list[Endpoint] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    record_files: list[str] = field(default_factory=list)
    # (undo, description) pairs, replayed backwards by teardown
    _undo: list[tuple[Callable[[], None], str]] = field(default_factory=list)

    def build(self, agent_specs: list[AgentSpec], power_on: bool = True) -> Lab:
        c = self.client
        tag = self.tag_id

        self.lab = c.create_lab(self.lab_name) if tag is None else c.create_lab_with_tag(self.lab_name, tag)
        lab_id = self.lab.id
        self._remember(lambda: c.delete_lab(lab_id), f"lab {self.lab_name}")

        for spec in agent_specs:
            self._build_agent(spec)

        if power_on:
            c.set_lab_power(lab_id, True)
            self._remember(lambda: c.set_lab_power(lab_id, False), f"power of lab {self.lab_name}")
            logger.info("lab %s powered on", self.lab_name)

        self.lab = c.get_lab(lab_id)
        return self.lab

    def _build_agent(self, spec: AgentSpec) -> None:
        c = self.client
        tag = self.tag_id
        lab_id = self.lab.id

        if spec.record_file:
            c.upload_record_file_string(spec.record_contents, spec.record_file)
            self.record_files.append(spec.record_file)
            self._remember(lambda: c.delete_record_file(spec.record_file), f"record file {spec.record_file}")

        if tag is None:
            engine = c.create_engine(spec.engine_name, spec.engine_id)
            agent = c.create_agent(spec.name, spec.data_dir)
        else:
            engine = c.create_engine_with_tag(spec.engine_name, spec.engine_id, tag)
            agent = c.create_agent_with_tag(spec.name, spec.data_dir, tag)
        self.engines.append(engine)
        self._remember(lambda: c.delete_engine(engine.id), f"engine {engine.name}")
        self.agents.append(agent)
        self._remember(lambda: c.delete_agent(agent.id), f"agent {agent.name}")

        if spec.endpoint_address:
            if tag is None:
                endpoint = c.create_endpoint(spec.endpoint_name, spec.endpoint_address, spec.protocol)
            else:
                endpoint = c.create_endpoint_with_tag(
                    spec.endpoint_name, spec.endpoint_address, spec.protocol, tag
                )
            self.endpoints.append(endpoint)
            self._remember(lambda: c.delete_endpoint(endpoint.id), f"endpoint {endpoint.name}")
            c.add_endpoint_to_engine(engine.id, endpoint.id)
            self._remember(
                lambda: c.remove_endpoint_from_engine(engine.id, endpoint.id),
                f"endpoint {endpoint.name} on engine {engine.name}",
            )

        if spec.user:
            args = (spec.user, spec.user_name or spec.user, spec.auth_key, spec.auth_proto,
                    spec.priv_key, spec.priv_proto)
            user = c.create_user(*args) if tag is None else c.create_user_with_tag(*args, tag)
            self.users.append(user)
            self._remember(lambda: c.delete_user(user.id), f"user {user.name}")
            c.add_user_to_engine(engine.id, user.id)
            self._remember(
                lambda: c.remove_user_from_engine(engine.id, user.id),
                f"user {user.name} on engine {engine.name}",
            )

        c.add_engine_to_agent(agent.id, engine.id)
        self._remember(
            lambda: c.remove_engine_from_agent(agent.id, engine.id),
            f"engine {engine.name} on agent {agent.name}",
        )
        c.add_agent_to_lab(lab_id, agent.id)
        self._remember(
            lambda: c.remove_agent_from_lab(lab_id, agent.id),
            f"agent {agent.name} in lab {self.lab_name}",
        )
        logger.info("agent %s built (data dir %s)", agent.name, agent.data_dir)

    def _remember(self, undo: Callable[[], None], what: str) -> None:
        self._undo.append((undo, what))

    def teardown(self) -> None:
        while self._undo:
            # a step that fails stays on the stack for the next teardown
            undo, what = self._undo[-1]
            try:
                undo()
            except NotFoundError:
                logger.info("teardown: %s already gone", what)
            else:
                logger.info("teardown: removed %s", what)
            self._undo.pop()

        self.lab = None
        self.agents.clear()
        self.engines.clear()
        self.endpoints.clear()
        self.users.clear()
        self.record_files.clear()

    def __enter__(self) -> LabSetup:
        return self

    def __exit__(self, *exc_info) -> None:
        self.teardown()


def wait_until_reachable(metrics: MetricsClient, policy: RetryPolicy | None = None) -> list[ProcessMetrics]:
    """Retry `get_processes` while the metrics api cannot be reached at all."""
    policy = policy or RetryPolicy()
    return with_retries(metrics.get_processes, policy, retry_on=(RequestFailedError,))


def wait_for_agent_process(
    metrics: MetricsClient,
    data_dir: str,
    policy: RetryPolicy | None = None,
) -> ProcessMetrics:
    """Poll until a simulator process supervising `data_dir` shows up."""
    policy = policy or RetryPolicy()

    def _find() -> ProcessMetrics | None:
        for process in metrics.get_processes():
            if process.supervisor.watch_dir == data_dir:
                return process
        return None

    return poll_until(_find, policy, what=f"process for {data_dir}")
