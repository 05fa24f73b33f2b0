from __future__ import annotations

import httpx
from pydantic import BaseModel, ValidationError


class SnmpsimClientError(Exception):
    pass


class InvalidArgumentError(SnmpsimClientError, ValueError):
    """A required argument was empty or malformed. No request was made."""


class InvalidMethodError(InvalidArgumentError):
    pass


class NotARecordFileError(InvalidArgumentError):
    def __init__(self, path: str):
        super().__init__(f"not a valid record file: {path!r}")
        self.path = path


class ClientNotValidError(SnmpsimClientError):
    def __init__(self) -> None:
        super().__init__("client is closed and can no longer be used")


class RequestFailedError(SnmpsimClientError):
    """The HTTP round trip itself could not complete (dns, connect, timeout)."""


class ResponseDecodeError(SnmpsimClientError):
    pass


class ErrorResponse(BaseModel):
    message: str = ""
    status: int = 0


class HttpError(SnmpsimClientError):
    """The server answered with a status code the call did not expect."""

    def __init__(self, status_code: int, status: str, body: ErrorResponse | None = None):
        self.status_code = status_code
        self.status = status
        self.body = body
        super().__init__(self._describe())

    def _describe(self) -> str:
        msg = f"http error: status code: {self.status_code} // status: {self.status}"
        if self.body is not None:
            msg += f" // message: {self.body.message}"
        return msg


class BadRequestError(HttpError):
    pass


class NotFoundError(HttpError):
    pass


_BY_STATUS: dict[int, type[HttpError]] = {
    400: BadRequestError,
    404: NotFoundError,
}


def classify_response(response: httpx.Response) -> HttpError:
    body: ErrorResponse | None
    try:
        body = ErrorResponse.model_validate_json(response.content)
    except ValidationError:
        # bodies that are not a json object still produce an error, just without a message
        body = None

    cls = _BY_STATUS.get(response.status_code, HttpError)
    return cls(response.status_code, response.reason_phrase, body)


def expect_status(response: httpx.Response, expected: int) -> httpx.Response:
    if response.status_code != expected:
        raise classify_response(response)
    return response
