from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from snmpsim_client.api.errors import InvalidArgumentError, ResponseDecodeError, expect_status
from snmpsim_client.api.transport import DEFAULT_TIMEOUT_S, SimApi
from snmpsim_client.config.settings import Settings

T = TypeVar("T")

Filters = Mapping[str, str]


def require(value: str, what: str) -> str:
    if not value:
        raise InvalidArgumentError(f"invalid {what}")
    return value


def decode(response: httpx.Response, into: type[T]) -> T:
    try:
        return TypeAdapter(into).validate_json(response.content)
    except ValidationError as e:
        raise ResponseDecodeError(f"error during unmarshalling http response: {e}") from e


class ApiFacade:
    """
    Common plumbing of the management and metrics clients. Wraps one SimApi
    handle; every resource method goes through `_call`.
    """

    prefix = ""

    def __init__(
        self,
        base_url: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        *,
        http_client: httpx.Client | None = None,
    ):
        self._api = SimApi(base_url, timeout_s, http_client=http_client)

    @classmethod
    def from_settings(cls, settings: Settings, *, http_client: httpx.Client | None = None):
        client = cls(settings.base_url, settings.timeout_s, http_client=http_client)
        if settings.username and settings.password:
            client.set_username_and_password(settings.username, settings.password)
        return client

    @property
    def api(self) -> SimApi:
        return self._api

    def set_username_and_password(self, username: str, password: str) -> None:
        self._api.set_username_and_password(username, password)

    def set_timeout(self, timeout_s: float) -> None:
        self._api.set_timeout(timeout_s)

    def close(self) -> None:
        self._api.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _call(
        self,
        method: str,
        path: str,
        expected: int,
        *,
        payload: Mapping[str, Any] | None = None,
        text: str = "",
        headers: Mapping[str, str] | None = None,
        filters: Filters | None = None,
    ) -> httpx.Response:
        body = json.dumps(payload) if payload is not None else text
        response = self._api.dispatch(method, self.prefix + path, body, headers, filters)
        return expect_status(response, expected)
