"""Gathers Cloud Foundry objects for one scrape using a pool of workers."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, MutableMapping, TypeVar

from . import filters
from .filters import Filter
from .models import CFObjects
from .session import LARGE_QUERY, SORT_DESC, CFConfig, Query, SessionError, SessionExt
from .worker import Worker

log = logging.getLogger(__name__)

T = TypeVar("T")

EVENTS_WINDOW = timedelta(minutes=15)


def load_index(
    store: MutableMapping[str, T], objects: Iterable[T], key: Callable[[T], str]
) -> None:
    """Store every object under the key computed from it; later ones win."""
    for obj in objects:
        store[key(obj)] = obj


def _guid(resource: dict) -> str:
    return resource.get("guid") or ""


def _related_guid(resource: dict, name: str) -> str:
    rel = (resource.get("relationships") or {}).get(name) or {}
    data = rel.get("data") if isinstance(rel, dict) else None
    if not isinstance(data, dict):
        return ""
    return data.get("guid") or ""


class Fetcher:
    """Plans and runs the jobs that fill a CFObjects for one scrape."""

    def __init__(self, threads: int, config: CFConfig, filter: Filter) -> None:
        self.config = config
        self.worker = Worker(threads, filter)
        self._lock = threading.Lock()

    def get_objects(self) -> CFObjects:
        """Fetch everything the filter selects and record how long it took."""
        log.info("collecting objects from cloud foundry API")
        start = time.monotonic()
        data = self.fetch()
        took = time.monotonic() - start
        log.info("collecting objects from cloud foundry API (done, %.0f sec)", took)
        data.took = took
        return data

    def work_init(self) -> None:
        """Queue the jobs enabled by the filter."""
        w = self.worker
        w.reset()
        w.push("info", self._fetch_info)
        w.push_if("organizations", self._fetch_orgs, filters.APPLICATIONS, filters.ORGANIZATIONS)
        w.push_if("org_quotas", self._fetch_org_quotas, filters.ORGANIZATIONS)
        w.push_if("spaces", self._fetch_spaces, filters.APPLICATIONS, filters.SPACES)
        w.push_if("space_quotas", self._fetch_space_quotas, filters.SPACES)
        w.push_if("applications", self._fetch_applications, filters.APPLICATIONS)
        w.push_if("domains", self._fetch_domains, filters.DOMAINS)
        w.push_if("process", self._fetch_processes, filters.APPLICATIONS)
        w.push_if("routes", self._fetch_routes, filters.ROUTES)
        w.push_if("route_services", self._fetch_route_services, filters.ROUTES)
        w.push_if("security_groups", self._fetch_security_groups, filters.SECURITY_GROUPS)
        w.push_if("stacks", self._fetch_stacks, filters.STACKS)
        w.push_if("buildpacks", self._fetch_buildpacks, filters.BUILDPACKS)
        w.push_if("tasks", self._fetch_tasks, filters.TASKS)
        w.push_if("service_brokers", self._fetch_service_brokers, filters.SERVICES)
        w.push_if("service_offerings", self._fetch_service_offerings, filters.SERVICES)
        w.push_if("service_instances", self._fetch_service_instances, filters.SERVICE_INSTANCES)
        w.push_if("service_plans", self._fetch_service_plans, filters.SERVICE_PLANS)
        w.push_if("segments", self._fetch_isolation_segments, filters.ISOLATION_SEGMENTS)
        w.push_if("service_bindings", self._fetch_service_bindings, filters.SERVICE_BINDINGS)
        w.push_if(
            "service_route_bindings",
            self._fetch_service_route_bindings,
            filters.SERVICE_ROUTE_BINDINGS,
        )
        w.push_if("users", self._fetch_users, filters.EVENTS)
        w.push_if("events", self._fetch_events, filters.EVENTS)

    def fetch(self) -> CFObjects:
        """Run every planned job; a failure is stored in the result's ``error``."""
        result = CFObjects()
        try:
            session = SessionExt(self.config)
        except SessionError as err:
            log.error("unable to initialize cloud foundry clients: %s", err)
            result.error = err
            return result

        self.work_init()
        try:
            self.worker.do(session, result)
        except Exception as err:  # noqa: BLE001 - reported through the result
            result.error = err
        return result

    def _fetch_info(self, session: SessionExt, entry: CFObjects) -> None:
        entry.info = session.get_info()

    def _fetch_orgs(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.orgs, session.get_organizations(LARGE_QUERY), _guid)

    def _fetch_org_quotas(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.org_quotas, session.get_organization_quotas(), lambda q: q.guid)

    def _fetch_spaces(self, session: SessionExt, entry: CFObjects) -> None:
        spaces = session.get_spaces(LARGE_QUERY)
        load_index(entry.spaces, spaces, lambda s: s.guid)
        total = len(spaces)
        for idx, space in enumerate(spaces):
            name = f"space_summaries {idx:04d}/{total:04d} ({space.guid})"
            self.worker.push_if(name, self._space_summary_job(space.guid), filters.APPLICATIONS)

    def _space_summary_job(self, guid: str) -> Callable[[SessionExt, CFObjects], None]:
        def job(session: SessionExt, entry: CFObjects) -> None:
            # A space may vanish between listing and summary; that is not an error.
            try:
                summary = session.get_space_summary(guid)
            except SessionError as err:
                log.warning("could not fetch space '%s' summary: %s", guid, err)
                return
            with self._lock:
                entry.space_summaries[summary.guid] = summary
                for app in summary.apps:
                    entry.app_summaries[app.guid] = app

        return job

    def _fetch_space_quotas(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.space_quotas, session.get_space_quotas(), lambda q: q.guid)

    def _fetch_applications(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.apps, session.get_applications(), lambda a: a.guid)

    def _fetch_domains(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.domains, session.get_domains(LARGE_QUERY), _guid)

    def _fetch_processes(self, session: SessionExt, entry: CFObjects) -> None:
        processes = session.get_processes(LARGE_QUERY)
        load_index(entry.processes, processes, _guid)
        with self._lock:
            for process in processes:
                entry.app_processes.setdefault(_related_guid(process, "app"), []).append(process)

    def _fetch_routes(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.routes, session.get_routes(LARGE_QUERY), _guid)

    def _fetch_route_services(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(
            entry.routes_bindings,
            session.get_route_bindings(LARGE_QUERY),
            lambda r: _related_guid(r, "route"),
        )

    def _fetch_security_groups(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.security_groups, session.get_security_groups(LARGE_QUERY), _guid)

    def _fetch_stacks(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.stacks, session.get_stacks(LARGE_QUERY), lambda s: s.guid)

    def _fetch_buildpacks(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.buildpacks, session.get_buildpacks(LARGE_QUERY), _guid)

    def _fetch_tasks(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.tasks, session.get_tasks(), lambda t: t.guid)

    def _fetch_service_brokers(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.service_brokers, session.get_service_brokers(LARGE_QUERY), _guid)

    def _fetch_service_offerings(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.service_offerings, session.get_service_offerings(LARGE_QUERY), _guid)

    def _fetch_service_instances(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.service_instances, session.get_service_instances(LARGE_QUERY), _guid)

    def _fetch_service_plans(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.service_plans, session.get_service_plans(), _guid)

    def _fetch_service_bindings(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(
            entry.service_bindings, session.get_service_credential_bindings(LARGE_QUERY), _guid
        )

    def _fetch_service_route_bindings(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.service_route_bindings, session.get_route_bindings(LARGE_QUERY), _guid)

    def _fetch_isolation_segments(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.segments, session.get_isolation_segments(), _guid)

    def _fetch_users(self, session: SessionExt, entry: CFObjects) -> None:
        load_index(entry.users, session.get_users(LARGE_QUERY), _guid)

    def _fetch_events(self, session: SessionExt, entry: CFObjects) -> None:
        # Older events are of no use: the event metrics only report recent ones.
        since = datetime.now(timezone.utc) - EVENTS_WINDOW
        recent = Query("created_ats[gt]", (since.strftime("%Y-%m-%dT%H:%M:%SZ"),))
        load_index(
            entry.events, session.get_events(LARGE_QUERY, SORT_DESC, recent), lambda e: e.guid
        )

    def __repr__(self) -> str:
        return f"Fetcher(url={self.config.url!r})"