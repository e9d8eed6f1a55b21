"""Cloud Foundry objects gathered during one scrape."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIMESTAMP = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d+))?(Z|z|[+-]\d{2}:\d{2})$"
)


def parse_timestamp(value: Any) -> datetime:
    """Parse an RFC 3339 timestamp; empty values give ZERO_TIME."""
    if isinstance(value, datetime):
        return value
    if value is None or value == "":
        return ZERO_TIME
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp: {value!r}")
    match = _TIMESTAMP.match(value.strip())
    if match is None:
        raise ValueError(f"invalid timestamp: {value!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    micro = int((fraction or "0")[:6].ljust(6, "0"))
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        hours, minutes = zone[1:].split(":")
        tz = timezone(sign * timedelta(hours=int(hours), minutes=int(minutes)))
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=tz
    )


@dataclass
class Relationship:
    guid: str = ""


def parse_relationships(data: Optional[dict]) -> dict[str, Relationship]:
    """Turn a ``relationships`` JSON object into a name to Relationship map."""
    result: dict[str, Relationship] = {}
    for name, rel in (data or {}).items():
        inner = rel.get("data") if isinstance(rel, dict) else None
        guid = inner.get("guid") or "" if isinstance(inner, dict) else ""
        result[name] = Relationship(guid)
    return result


def _null_int(data: dict, key: str) -> Optional[int]:
    value = data.get(key)
    return None if value is None else int(value)


@dataclass
class Info:
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Info":
        return cls(name=data.get("name") or "")


@dataclass
class QuotaApp:
    total_memory: Optional[int] = None
    instance_memory: Optional[int] = None
    total_app_instances: Optional[int] = None
    per_app_tasks: Optional[int] = None


@dataclass
class QuotaService:
    total_service_instances: Optional[int] = None
    total_service_keys: Optional[int] = None
    paid_service_plans: Optional[bool] = None


@dataclass
class QuotaDomain:
    total_domains: Optional[int] = None


@dataclass
class RouteLimit:
    total_routes: Optional[int] = None
    total_reserved_ports: Optional[int] = None


@dataclass
class Quota:
    guid: str = ""
    name: str = ""
    apps: QuotaApp = field(default_factory=QuotaApp)
    services: QuotaService = field(default_factory=QuotaService)
    routes: RouteLimit = field(default_factory=RouteLimit)
    domains: QuotaDomain = field(default_factory=QuotaDomain)

    @classmethod
    def from_dict(cls, data: dict) -> "Quota":
        apps = data.get("apps") or {}
        services = data.get("services") or {}
        routes = data.get("routes") or {}
        domains = data.get("domains") or {}
        paid = services.get("paid_services_allowed")
        return cls(
            guid=data.get("guid") or "",
            name=data.get("name") or "",
            apps=QuotaApp(
                total_memory=_null_int(apps, "total_memory_in_mb"),
                instance_memory=_null_int(apps, "per_process_memory_in_mb"),
                total_app_instances=_null_int(apps, "total_instances"),
                per_app_tasks=_null_int(apps, "per_app_tasks"),
            ),
            services=QuotaService(
                total_service_instances=_null_int(services, "total_service_instances"),
                total_service_keys=_null_int(services, "total_service_keys"),
                paid_service_plans=None if paid is None else bool(paid),
            ),
            routes=RouteLimit(
                total_routes=_null_int(routes, "total_routes"),
                total_reserved_ports=_null_int(routes, "total_reserved_ports"),
            ),
            domains=QuotaDomain(total_domains=_null_int(domains, "total_domains")),
        )


@dataclass
class Metadata:
    labels: dict[str, Optional[str]] = field(default_factory=dict)
    annotations: dict[str, Optional[str]] = field(default_factory=dict)


@dataclass
class Lifecycle:
    type: str = ""
    buildpacks: list[str] = field(default_factory=list)
    stack: str = ""


@dataclass
class Application:
    guid: str = ""
    name: str = ""
    state: str = ""
    metadata: Optional[Metadata] = None
    relationships: dict[str, Relationship] = field(default_factory=dict)
    lifecycle: Lifecycle = field(default_factory=Lifecycle)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Application":
        meta = data.get("metadata")
        metadata = None
        if isinstance(meta, dict):
            metadata = Metadata(
                labels=dict(meta.get("labels") or {}),
                annotations=dict(meta.get("annotations") or {}),
            )
        life = data.get("lifecycle") or {}
        life_data = life.get("data") or {}
        return cls(
            guid=data.get("guid") or "",
            name=data.get("name") or "",
            state=data.get("state") or "",
            metadata=metadata,
            relationships=parse_relationships(data.get("relationships")),
            lifecycle=Lifecycle(
                type=life.get("type") or "",
                buildpacks=list(life_data.get("buildpacks") or []),
                stack=life_data.get("stack") or "",
            ),
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
        )


@dataclass
class Task:
    guid: str = ""
    state: str = ""
    relationships: dict[str, Relationship] = field(default_factory=dict)
    created_at: datetime = ZERO_TIME
    memory_in_mb: int = 0
    disk_in_mb: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            guid=data.get("guid") or "",
            state=data.get("state") or "",
            relationships=parse_relationships(data.get("relationships")),
            created_at=parse_timestamp(data.get("created_at")),
            memory_in_mb=int(data.get("memory_in_mb") or 0),
            disk_in_mb=int(data.get("disk_in_mb") or 0),
        )


@dataclass
class Space:
    guid: str = ""
    name: str = ""
    relationships: dict[str, Relationship] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Space":
        return cls(
            guid=data.get("guid") or "",
            name=data.get("name") or "",
            relationships=parse_relationships(data.get("relationships")),
        )


@dataclass
class Stack:
    guid: str = ""
    name: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Stack":
        return cls(
            guid=data.get("guid") or "",
            name=data.get("name") or "",
            description=data.get("description") or "",
        )


@dataclass
class AppSummary:
    guid: str = ""
    running_instances: int = 0
    detected_buildpack: str = ""
    buildpack: str = ""
    stack_id: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "AppSummary":
        return cls(
            guid=data.get("guid") or "",
            running_instances=int(data.get("running_instances") or 0),
            detected_buildpack=data.get("detected_buildpack") or "",
            buildpack=data.get("buildpack") or "",
            stack_id=data.get("stack_guid") or "",
        )


@dataclass
class SpaceSummary:
    guid: str = ""
    name: str = ""
    apps: list[AppSummary] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "SpaceSummary":
        return cls(
            guid=data.get("guid") or "",
            name=data.get("name") or "",
            apps=[AppSummary.from_dict(app) for app in data.get("apps") or []],
        )


@dataclass
class EventActor:
    guid: str = ""
    type: str = ""
    name: str = ""


@dataclass
class EventTarget:
    guid: str = ""
    type: str = ""
    name: str = ""


@dataclass
class EventSpace:
    guid: str = ""


@dataclass
class EventOrg:
    guid: str = ""


@dataclass
class Event:
    guid: str = ""
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME
    type: str = ""
    actor: EventActor = field(default_factory=EventActor)
    target: EventTarget = field(default_factory=EventTarget)
    data: dict[str, Any] = field(default_factory=dict)
    space: EventSpace = field(default_factory=EventSpace)
    org: EventOrg = field(default_factory=EventOrg)

    @classmethod
    def from_dict(cls, data: dict) -> "Event":
        actor = data.get("actor") or {}
        target = data.get("target") or {}
        return cls(
            guid=data.get("guid") or "",
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            type=data.get("type") or "",
            actor=EventActor(
                guid=actor.get("guid") or "",
                type=actor.get("type") or "",
                name=actor.get("name") or "",
            ),
            target=EventTarget(
                guid=target.get("guid") or "",
                type=target.get("type") or "",
                name=target.get("name") or "",
            ),
            data=dict(data.get("data") or {}),
            space=EventSpace(guid=(data.get("space") or {}).get("guid") or ""),
            org=EventOrg(guid=(data.get("organization") or {}).get("guid") or ""),
        )


@dataclass
class CFObjects:
    """Everything fetched from the platform in one scrape."""

    info: Info = field(default_factory=Info)
    orgs: dict[str, dict[str, Any]] = field(default_factory=dict)
    org_quotas: dict[str, Quota] = field(default_factory=dict)
    spaces: dict[str, Space] = field(default_factory=dict)
    space_quotas: dict[str, Quota] = field(default_factory=dict)
    apps: dict[str, Application] = field(default_factory=dict)
    processes: dict[str, dict[str, Any]] = field(default_factory=dict)
    tasks: dict[str, Task] = field(default_factory=dict)
    routes: dict[str, dict[str, Any]] = field(default_factory=dict)
    routes_bindings: dict[str, dict[str, Any]] = field(default_factory=dict)
    segments: dict[str, dict[str, Any]] = field(default_factory=dict)
    service_instances: dict[str, dict[str, Any]] = field(default_factory=dict)
    security_groups: dict[str, dict[str, Any]] = field(default_factory=dict)
    stacks: dict[str, Stack] = field(default_factory=dict)
    buildpacks: dict[str, dict[str, Any]] = field(default_factory=dict)
    domains: dict[str, dict[str, Any]] = field(default_factory=dict)
    service_brokers: dict[str, dict[str, Any]] = field(default_factory=dict)
    service_offerings: dict[str, dict[str, Any]] = field(default_factory=dict)
    service_plans: dict[str, dict[str, Any]] = field(default_factory=dict)
    service_bindings: dict[str, dict[str, Any]] = field(default_factory=dict)
    space_summaries: dict[str, SpaceSummary] = field(default_factory=dict)
    app_summaries: dict[str, AppSummary] = field(default_factory=dict)
    app_processes: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    events: dict[str, Event] = field(default_factory=dict)
    users: dict[str, dict[str, Any]] = field(default_factory=dict)
    service_route_bindings: dict[str, dict[str, Any]] = field(default_factory=dict)
    took: float = 0.0
    error: Optional[BaseException] = None