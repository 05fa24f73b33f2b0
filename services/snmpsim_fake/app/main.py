import os
import secrets

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, Field, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.snmpsim_fake.app.core.store import (
    MESSAGE_FILTERS,
    PACKET_FILTERS,
    ApiError,
    ControlPlaneStore,
    not_found,
)

HTTP_HOST = os.getenv("SNMPSIM_FAKE_HOST", "127.0.0.1")
HTTP_PORT = int(os.getenv("SNMPSIM_FAKE_PORT", "8080"))

MGMT_PREFIX = "/snmpsim/mgmt/v1"
METRICS_PREFIX = "/snmpsim/metrics/v1"


class LabIn(BaseModel):
    name: str = Field(min_length=1)


class AgentIn(BaseModel):
    name: str = Field(min_length=1)
    data_dir: str = Field(min_length=1)


class EngineIn(BaseModel):
    name: str = Field(min_length=1)
    engine_id: str = Field(min_length=1)


class EndpointIn(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    protocol: str = Field(pattern=r"^(udpv4|udpv6)$")


class UserIn(BaseModel):
    user: str = Field(min_length=1)
    name: str = Field(min_length=1)
    auth_key: str | None = Field(None, min_length=8)
    auth_proto: str = "none"
    priv_key: str | None = Field(None, min_length=8)
    priv_proto: str = "none"


class SelectorIn(BaseModel):
    comment: str = ""
    template: str = Field(min_length=1)


class TagIn(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""


BODIES: dict[str, type[BaseModel]] = {
    "labs": LabIn,
    "agents": AgentIn,
    "engines": EngineIn,
    "endpoints": EndpointIn,
    "users": UserIn,
    "selectors": SelectorIn,
    "tags": TagIn,
}


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse({"message": message, "status": status}, status_code=status)


def _parse(kind: str, payload: dict) -> dict:
    model = BODIES.get(kind)
    if model is None:
        raise not_found(f"unknown resource {kind}")
    try:
        return model.model_validate(payload).model_dump()
    except ValidationError as e:
        raise ApiError(400, f"invalid {kind[:-1]}: {e.errors()[0]['msg']}")


def _basic_auth(credentials: tuple[str, str] | None):
    security = HTTPBasic(auto_error=False)

    def check(given: HTTPBasicCredentials | None = Depends(security)) -> None:
        if credentials is None:
            return
        if given is None or not (
            secrets.compare_digest(given.username, credentials[0])
            and secrets.compare_digest(given.password, credentials[1])
        ):
            raise ApiError(401, "authentication required")

    return check


def _management_router(store: ControlPlaneStore) -> APIRouter:
    r = APIRouter(prefix=MGMT_PREFIX)

    # record files

    @r.get("/recordings")
    def list_recordings(request: Request):
        return store.list_recordings(dict(request.query_params))

    @r.get("/recordings/{path:path}")
    def get_recording(path: str):
        return PlainTextResponse(store.read(path))

    @r.post("/recordings/{path:path}", status_code=204)
    async def upload_recording(path: str, request: Request):
        store.upload(path, (await request.body()).decode())
        return Response(status_code=204)

    @r.delete("/recordings/{path:path}", status_code=204)
    def delete_recording(path: str):
        store.remove(path)
        return Response(status_code=204)

    # tags

    @r.delete("/tags/{tag_id:int}/objects")
    def delete_tagged_objects(tag_id: int):
        return store.delete_tagged(tag_id)

    @r.post("/tags/{tag_id:int}/{kind}", status_code=201)
    def create_tagged(tag_id: int, kind: str, payload: dict = Body(...)):
        return store.create(kind, _parse(kind, payload), tag_id=tag_id)

    # labs

    @r.put("/labs/{lab_id:int}/power/{state}")
    def set_power(lab_id: int, state: str):
        return store.set_power(lab_id, state)

    # generic resources

    @r.get("/{kind}")
    def list_objects(kind: str, request: Request):
        return store.list_objects(kind, dict(request.query_params))

    @r.post("/{kind}", status_code=201)
    def create(kind: str, payload: dict = Body(...)):
        return store.create(kind, _parse(kind, payload))

    @r.get("/{kind}/{id:int}")
    def get(kind: str, id: int):
        return store.render(kind, id)

    @r.delete("/{kind}/{id:int}", status_code=204)
    def delete(kind: str, id: int):
        store.delete(kind, id)
        return Response(status_code=204)

    @r.put("/{kind}/{id:int}/{sub}/{sub_id:int}")
    def link(kind: str, id: int, sub: str, sub_id: int):
        return store.link(kind, id, sub, sub_id)

    @r.delete("/{kind}/{id:int}/{sub}/{sub_id:int}", status_code=204)
    def unlink(kind: str, id: int, sub: str, sub_id: int):
        store.unlink(kind, id, sub, sub_id)
        return Response(status_code=204)

    return r


def _metrics_router(store: ControlPlaneStore) -> APIRouter:
    r = APIRouter(prefix=METRICS_PREFIX)

    @r.get("/processes")
    def processes(request: Request):
        return store.list_processes(dict(request.query_params))

    @r.get("/processes/{pid:int}")
    def process(pid: int):
        return store.process(pid)["metrics"]

    @r.get("/processes/{pid:int}/endpoints")
    def process_endpoints(pid: int):
        return store.process(pid)["endpoints"]

    @r.get("/processes/{pid:int}/endpoints/{eid:int}")
    def process_endpoint(pid: int, eid: int):
        for endpoint in store.process(pid)["endpoints"]:
            if endpoint["id"] == eid:
                return endpoint
        raise not_found(f"endpoint {eid} not found in process {pid}")

    @r.get("/processes/{pid:int}/console")
    def console_pages(pid: int):
        return store.process(pid)["console"]

    @r.get("/processes/{pid:int}/console/{page:int}")
    def console_page(pid: int, page: int):
        for console in store.process(pid)["console"]:
            if console["id"] == page:
                return console
        raise not_found(f"console page {page} not found in process {pid}")

    @r.get("/activity/packets")
    def packets(request: Request):
        return store.packets(dict(request.query_params))

    @r.get("/activity/packets/filters")
    def packet_filters():
        return PACKET_FILTERS

    @r.get("/activity/packets/filters/{name}")
    def packet_filter_values(name: str):
        return store.filter_values("packets", name)

    @r.get("/activity/messages")
    def messages(request: Request):
        return store.messages(dict(request.query_params))

    @r.get("/activity/messages/filters")
    def message_filters():
        return MESSAGE_FILTERS

    @r.get("/activity/messages/filters/{name}")
    def message_filter_values(name: str):
        return store.filter_values("messages", name)

    return r


def create_app(
    store: ControlPlaneStore | None = None,
    credentials: tuple[str, str] | None = None,
) -> FastAPI:
    store = store if store is not None else ControlPlaneStore()
    app = FastAPI(title="snmpsim control plane (fake)", version="0.1.0")
    app.state.store = store

    auth = [Depends(_basic_auth(credentials))]
    app.include_router(_management_router(store), dependencies=auth)
    app.include_router(_metrics_router(store), dependencies=auth)

    @app.exception_handler(ApiError)
    async def api_error(request: Request, exc: ApiError):
        return _error(exc.status, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error(400, "invalid request")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def _credentials_from_env() -> tuple[str, str] | None:
    username = os.getenv("SNMPSIM_FAKE_USERNAME", "")
    password = os.getenv("SNMPSIM_FAKE_PASSWORD", "")
    return (username, password) if username and password else None


app = create_app(credentials=_credentials_from_env())

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=HTTP_HOST,
        port=HTTP_PORT,
        reload=False)
