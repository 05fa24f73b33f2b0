from __future__ import annotations

import logging
from collections.abc import Mapping
from urllib.parse import quote

import httpx

from snmpsim_client.api.errors import (
    ClientNotValidError,
    InvalidArgumentError,
    InvalidMethodError,
    RequestFailedError,
)

logger = logging.getLogger(__name__)

MGMT_ENDPOINT_PATH = "snmpsim/mgmt/v1/"
METRICS_ENDPOINT_PATH = "snmpsim/metrics/v1/"

DEFAULT_TIMEOUT_S = 10.0
ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})


def escape_path(unescaped: str) -> str:
    """
    Percent-encode every '/'-separated segment on its own.
    Slashes stay path separators; everything inside a segment is escaped.
    """
    return "/".join(quote(part, safe="") for part in unescaped.split("/"))


class SimApi:
    """
    Client handle shared by the management and metrics facades.
    Holds the httpx client (its own or an injected one), the base url,
    credentials and timeout. The timeout is set on the client itself.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        *,
        http_client: httpx.Client | None = None,
    ):
        if not base_url:
            raise InvalidArgumentError("invalid base url")
        if not base_url.endswith("/"):
            base_url += "/"

        self._base_url = base_url
        self._username = ""
        self._password = ""
        self._use_auth = False
        self._timeout_s = timeout_s
        # an injected client belongs to the caller and is left open on close
        self._owns_client = http_client is None
        self._client: httpx.Client | None = http_client if http_client is not None else httpx.Client()
        self._client.timeout = timeout_s

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def use_auth(self) -> bool:
        return self._use_auth

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    def is_valid(self) -> bool:
        return self._client is not None

    def set_username_and_password(self, username: str, password: str) -> None:
        self._ensure_valid()
        if not username:
            raise InvalidArgumentError("invalid username")
        if not password:
            raise InvalidArgumentError("invalid password")
        self._username = username
        self._password = password
        self._use_auth = True

    def set_timeout(self, timeout_s: float) -> None:
        client = self._ensure_valid()
        client.timeout = timeout_s
        self._timeout_s = timeout_s

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
        self._client = None

    def dispatch(
        self,
        method: str,
        path: str,
        body: str = "",
        headers: Mapping[str, str] | None = None,
        query_params: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        client = self._ensure_valid()
        if method not in ALLOWED_METHODS:
            raise InvalidMethodError(f"invalid http method: {method}")

        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        url = self._base_url + escape_path(path)
        auth = (self._username, self._password) if self._use_auth else None

        try:
            response = client.request(
                method,
                url,
                content=body or None,
                headers=request_headers,
                params=dict(query_params) if query_params else None,
                auth=auth,
            )
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise RequestFailedError(f"error during http request: {e}") from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response

    def _ensure_valid(self) -> httpx.Client:
        if self._client is None:
            raise ClientNotValidError()
        return self._client
