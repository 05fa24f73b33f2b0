from __future__ import annotations

import socket
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


def bad_request(message: str) -> ApiError:
    return ApiError(400, message)


def not_found(message: str) -> ApiError:
    return ApiError(404, message)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# scalar fields per resource kind, in the order the api renders them
FIELDS: dict[str, tuple[str, ...]] = {
    "labs": ("name", "power"),
    "agents": ("name", "data_dir"),
    "engines": ("name", "engine_id"),
    "endpoints": ("name", "protocol", "address"),
    "users": ("user", "name", "auth_key", "auth_proto", "priv_key", "priv_proto"),
    "selectors": ("comment", "template"),
    "tags": ("name", "description"),
}

# nested collections per kind
NESTED: dict[str, tuple[str, ...]] = {
    "labs": ("agents", "tags"),
    "agents": ("engines", "endpoints", "labs", "selectors", "tags"),
    "engines": ("agents", "endpoints", "users", "tags"),
    "endpoints": ("engines", "tags"),
    "users": ("engines", "tags"),
    "selectors": ("tags",),
    "tags": ("agents", "endpoints", "engines", "labs", "selectors", "users"),
}

TAGGABLE = ("labs", "agents", "engines", "endpoints", "users", "selectors")

# (parent kind, sub path) -> child kind
RELATIONS: dict[tuple[str, str], str] = {
    ("labs", "agent"): "agents",
    ("engines", "user"): "users",
    ("engines", "endpoint"): "endpoints",
    ("agents", "engine"): "engines",
    ("agents", "selector"): "selectors",
    **{(kind, "tag"): "tags" for kind in TAGGABLE},
}

UNIQUE_NAME = ("labs", "agents", "engines", "endpoints", "users", "tags")

PACKET_FILTERS = {
    "local_address": "Local transport endpoint address",
    "peer_address": "Remote peer address",
    "protocol": "Transport protocol",
}

MESSAGE_FILTERS = {
    "engine_id": "SNMP engine ID",
    "context_name": "SNMP context name",
    "pdu_type": "SNMP PDU type",
    "recording": "Simulation data file",
}


def _matches(obj: dict[str, Any], filters: dict[str, str], known: tuple[str, ...]) -> bool:
    # unknown filter names are ignored
    return all(str(obj.get(k)) == v for k, v in filters.items() if k in known)


@dataclass
class ControlPlaneStore:
    """In-memory state of the fake snmpsim control plane."""

    objects: dict[str, dict[int, dict[str, Any]]] = field(
        default_factory=lambda: {kind: {} for kind in FIELDS}
    )
    # (parent kind, parent id, child kind, child id)
    links: set[tuple[str, int, str, int]] = field(default_factory=set)
    recordings: dict[str, tuple[int, str]] = field(default_factory=dict)
    processes: dict[int, dict[str, Any]] = field(default_factory=dict)
    packet_samples: list[dict[str, Any]] = field(default_factory=list)
    message_samples: list[dict[str, Any]] = field(default_factory=list)
    _next_id: int = 0

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def reset(self) -> None:
        for table in self.objects.values():
            table.clear()
        self.links.clear()
        self.recordings.clear()
        self.processes.clear()
        self.packet_samples.clear()
        self.message_samples.clear()

    # objects

    def _table(self, kind: str) -> dict[int, dict[str, Any]]:
        if kind not in self.objects:
            raise not_found(f"unknown resource {kind}")
        return self.objects[kind]

    def _require(self, kind: str, id: int) -> dict[str, Any]:
        obj = self._table(kind).get(id)
        if obj is None:
            raise not_found(f"{kind[:-1]} with id {id} not found")
        return obj

    def render(self, kind: str, id: int) -> dict[str, Any]:
        obj = self._require(kind, id)
        out = {"id": id, **obj}
        for nested in NESTED[kind]:
            out[nested] = [self._shallow(nested, other) for other in self._linked(kind, id, nested)]
        return out

    def _shallow(self, kind: str, id: int) -> dict[str, Any]:
        return {"id": id, **self.objects[kind][id]}

    def _linked(self, kind: str, id: int, other_kind: str) -> list[int]:
        found = set()
        for pk, pid, ck, cid in self.links:
            if (pk, pid, ck) == (kind, id, other_kind):
                found.add(cid)
            elif (ck, cid, pk) == (kind, id, other_kind):
                found.add(pid)
        return sorted(found)

    def list_objects(self, kind: str, filters: dict[str, str]) -> list[dict[str, Any]]:
        table = self._table(kind)
        return [
            self.render(kind, id)
            for id, obj in sorted(table.items())
            if _matches(obj, filters, FIELDS[kind])
        ]

    def create(self, kind: str, values: dict[str, Any], tag_id: int | None = None) -> dict[str, Any]:
        table = self._table(kind)
        if tag_id is not None:
            if kind not in TAGGABLE:
                raise bad_request(f"{kind} can not be tagged")
            self._require("tags", tag_id)

        if kind in UNIQUE_NAME and any(o["name"] == values["name"] for o in table.values()):
            raise bad_request(f"{kind[:-1]} with name {values['name']!r} already exists")

        obj = {name: values.get(name) for name in FIELDS[kind]}
        if kind == "labs":
            obj["power"] = "off"
        id = self._new_id()
        table[id] = obj
        if tag_id is not None:
            self.links.add((kind, id, "tags", tag_id))
        return self.render(kind, id)

    def delete(self, kind: str, id: int) -> None:
        self._require(kind, id)
        del self.objects[kind][id]
        self.links = {
            link for link in self.links
            if (link[0], link[1]) != (kind, id) and (link[2], link[3]) != (kind, id)
        }
        if kind == "labs":
            self._drop_processes(id)

    # relationships

    def link(self, kind: str, id: int, sub: str, sub_id: int) -> dict[str, Any]:
        child_kind = self._relation(kind, sub)
        parent = self._table(kind).get(id)
        child = self.objects[child_kind].get(sub_id)
        if parent is None and child is None:
            raise not_found(f"neither {kind[:-1]} {id} nor {sub} {sub_id} exist")
        if parent is None:
            raise bad_request(f"{kind[:-1]} with id {id} does not exist")
        if child is None:
            raise bad_request(f"{sub} with id {sub_id} does not exist")

        key = (kind, id, child_kind, sub_id)
        if key in self.links:
            raise bad_request(f"{sub} {sub_id} is already attached to {kind[:-1]} {id}")
        self.links.add(key)
        return self.render(kind, id)

    def unlink(self, kind: str, id: int, sub: str, sub_id: int) -> None:
        child_kind = self._relation(kind, sub)
        self._require(kind, id)
        self._require(child_kind, sub_id)
        key = (kind, id, child_kind, sub_id)
        if key not in self.links:
            raise not_found(f"{sub} {sub_id} is not attached to {kind[:-1]} {id}")
        self.links.discard(key)

    def _relation(self, kind: str, sub: str) -> str:
        child_kind = RELATIONS.get((kind, sub))
        if child_kind is None:
            raise not_found(f"{kind} have no {sub} relationship")
        return child_kind

    def delete_tagged(self, tag_id: int) -> dict[str, Any]:
        self._require("tags", tag_id)
        tagged = [(pk, pid) for pk, pid, ck, cid in self.links if (ck, cid) == ("tags", tag_id)]
        for kind, id in tagged:
            if id in self.objects[kind]:
                self.delete(kind, id)
        return self.render("tags", tag_id)

    # lab power and the processes it spawns

    def set_power(self, lab_id: int, state: str) -> dict[str, Any]:
        lab = self._require("labs", lab_id)
        if state not in ("on", "off"):
            raise bad_request(f"invalid power state {state!r}")
        lab["power"] = state
        self._drop_processes(lab_id)
        if state == "on":
            for agent_id in self._linked("labs", lab_id, "agents"):
                self._spawn_process(lab_id, agent_id)
        return self.render("labs", lab_id)

    def _spawn_process(self, lab_id: int, agent_id: int) -> None:
        agent = self.objects["agents"][agent_id]
        endpoints = []
        for engine_id in self._linked("agents", agent_id, "engines"):
            for endpoint_id in self._linked("engines", engine_id, "endpoints"):
                endpoint = self.objects["endpoints"][endpoint_id]
                endpoints.append(
                    {"id": endpoint_id, "protocol": endpoint["protocol"], "address": endpoint["address"]}
                )
        ts = _now()
        pid = self._new_id()
        self.processes[pid] = {
            "lab_id": lab_id,
            "metrics": {
                "id": pid,
                "path": "snmpsim-command-responder",
                "runtime": 0,
                "cpu": 0,
                "memory": 0,
                "files": 0,
                "exits": 0,
                "changes": 0,
                "update_interval": 15,
                "last_update": ts,
                "console_pages": {"count": 1, "last_update": ts},
                "supervisor": {"hostname": socket.gethostname(), "watch_dir": agent["data_dir"]},
            },
            "endpoints": endpoints,
            "console": [{"id": 1, "timestamp": ts, "text": f"agent {agent['name']} started"}],
        }

    def _drop_processes(self, lab_id: int) -> None:
        for pid in [pid for pid, p in self.processes.items() if p["lab_id"] == lab_id]:
            del self.processes[pid]

    def list_processes(self, filters: dict[str, str]) -> list[dict[str, Any]]:
        known = ("path", "update_interval")
        return [
            p["metrics"] for _, p in sorted(self.processes.items())
            if _matches(p["metrics"], filters, known)
        ]

    def process(self, pid: int) -> dict[str, Any]:
        p = self.processes.get(pid)
        if p is None:
            raise not_found(f"process with id {pid} not found")
        return p

    # recordings

    def list_recordings(self, filters: dict[str, str]) -> list[dict[str, Any]]:
        out = [
            {"id": id, "name": path.rsplit("/", 1)[-1], "path": path}
            for path, (id, _) in sorted(self.recordings.items())
        ]
        return [r for r in out if _matches(r, filters, ("name", "path"))]

    def upload(self, path: str, text: str) -> None:
        if path in self.recordings:
            raise bad_request(f"record file {path} already exists")
        self.recordings[path] = (self._new_id(), text)

    def read(self, path: str) -> str:
        if path not in self.recordings:
            raise not_found(f"record file {path} not found")
        return self.recordings[path][1]

    def remove(self, path: str) -> None:
        if path not in self.recordings:
            raise not_found(f"record file {path} not found")
        del self.recordings[path]

    # activity

    def add_packet_activity(self, labels: dict[str, str], **counters: int) -> None:
        self.packet_samples.append({"labels": labels, "hit": int(datetime.now().timestamp()), **counters})

    def add_message_activity(
        self, labels: dict[str, str], variations: list[dict[str, Any]] | None = None, **counters: int
    ) -> None:
        self.message_samples.append(
            {"labels": labels, "hit": int(datetime.now().timestamp()), "variations": variations or [], **counters}
        )

    def packets(self, filters: dict[str, str]) -> dict[str, Any]:
        samples = self._select(self.packet_samples, filters, PACKET_FILTERS)
        out = self._hits(samples)
        for name in ("total", "parse_failures", "auth_failures", "context_failures"):
            out[name] = sum(s.get(name, 0) for s in samples)
        return out

    def messages(self, filters: dict[str, str]) -> dict[str, Any]:
        samples = self._select(self.message_samples, filters, MESSAGE_FILTERS)
        out = self._hits(samples)
        for name in ("pdus", "var_binds", "failures"):
            out[name] = sum(s.get(name, 0) for s in samples)

        variations: dict[str, dict[str, Any]] = {}
        for s in samples:
            for v in s["variations"]:
                agg = variations.setdefault(
                    v["name"], {"name": v["name"], "total": 0, "failures": 0,
                                "first_hit": s["hit"], "last_hit": s["hit"]}
                )
                agg["total"] += v.get("total", 0)
                agg["failures"] += v.get("failures", 0)
                agg["last_hit"] = s["hit"]
        out["variations"] = list(variations.values())
        return out

    def filter_values(self, kind: str, name: str) -> list[str]:
        known, samples = (
            (PACKET_FILTERS, self.packet_samples) if kind == "packets" else (MESSAGE_FILTERS, self.message_samples)
        )
        if name not in known:
            raise not_found(f"unknown filter {name}")
        return sorted({s["labels"][name] for s in samples if name in s["labels"]})

    @staticmethod
    def _select(samples: list[dict[str, Any]], filters: dict[str, str], known: dict[str, str]) -> list[dict[str, Any]]:
        return [s for s in samples if _matches(s["labels"], filters, tuple(known))]

    @staticmethod
    def _hits(samples: list[dict[str, Any]]) -> dict[str, Any]:
        if not samples:
            return {"first_hit": None, "last_hit": None}
        return {"first_hit": min(s["hit"] for s in samples), "last_hit": max(s["hit"] for s in samples)}
