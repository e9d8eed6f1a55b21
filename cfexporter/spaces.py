"""Metrics describing Cloud Foundry spaces and their quotas."""

from __future__ import annotations

import logging
import time
from typing import Callable

from .metrics import (
    Counter,
    Desc,
    Gauge,
    GaugeVec,
    Sample,
    bool_to_float,
    null_int_to_float,
)
from .models import CFObjects, Quota, Relationship, Space

log = logging.getLogger(__name__)

RELATIONSHIP_ORGANIZATION = "organization"
RELATIONSHIP_QUOTA = "quota"

_SPACE_LABELS = ("space_id", "space_name", "organization_id")

_QUOTA_GAUGES: tuple[tuple[str, str, Callable[[Quota], float]], ...] = (
    (
        "non_basic_services_allowed",
        "A Cloud Foundry Space can provision instances of paid service plans? "
        "(1 for true, 0 for false).",
        lambda q: bool_to_float(q.services.paid_service_plans),
    ),
    (
        "instance_memory_mb_limit",
        "Maximum amount of memory (Mb) an application instance can have in a "
        "Cloud Foundry Space.",
        lambda q: null_int_to_float(q.apps.instance_memory),
    ),
    (
        "total_app_instances_quota",
        "Total number of application instances that may be created in a Cloud Foundry Space.",
        lambda q: null_int_to_float(q.apps.total_app_instances),
    ),
    (
        "total_app_tasks_quota",
        "Total number of application tasks that may be created in a Cloud Foundry Space.",
        lambda q: null_int_to_float(q.apps.per_app_tasks),
    ),
    (
        "total_memory_mb_quota",
        "Total amount of memory (Mb) a Cloud Foundry Space can have.",
        lambda q: null_int_to_float(q.apps.total_memory),
    ),
    (
        "total_reserved_route_ports_quota",
        "Total number of routes that may be created with reserved ports in a "
        "Cloud Foundry Space.",
        lambda q: null_int_to_float(q.routes.total_reserved_ports),
    ),
    (
        "total_routes_quota",
        "Total number of routes that may be created in a Cloud Foundry Space.",
        lambda q: null_int_to_float(q.routes.total_routes),
    ),
    (
        "total_service_keys_quota",
        "Total number of service keys that may be created in a Cloud Foundry Space.",
        lambda q: null_int_to_float(q.services.total_service_keys),
    ),
    (
        "total_services_quota",
        "Total number of service instances that may be created in a Cloud Foundry Space.",
        lambda q: null_int_to_float(q.services.total_service_instances),
    ),
)


class _SpaceReportError(LookupError):
    """A space refers to something that was not fetched."""


class SpacesCollector:
    """Turns the spaces of a scrape into metric samples."""

    def __init__(self, namespace: str, environment: str, deployment: str) -> None:
        self.namespace = namespace
        self.environment = environment
        self.deployment = deployment
        const = {"environment": environment, "deployment": deployment}

        self._info = GaugeVec(
            namespace,
            "space",
            "info",
            "Labeled Cloud Foundry Space information with a constant '1' value.",
            const,
            (*_SPACE_LABELS, "quota_name"),
        )
        self._quota_metrics: list[tuple[GaugeVec, Callable[[Quota], float]]] = [
            (GaugeVec(namespace, "space", name, help_text, const, _SPACE_LABELS), extract)
            for name, help_text, extract in _QUOTA_GAUGES
        ]
        self._scrapes_total = Counter(
            namespace,
            "spaces_scrapes",
            "total",
            "Total number of scrapes for Cloud Foundry Spaces.",
            const,
        )
        self._scrape_errors_total = Counter(
            namespace,
            "spaces_scrape_errors",
            "total",
            "Total number of scrapes errors of Cloud Foundry Spaces.",
            const,
        )
        self._last_scrape_error = Gauge(
            namespace,
            "",
            "last_spaces_scrape_error",
            "Whether the last scrape of Spaces metrics from Cloud Foundry resulted in an error "
            "(1 for error, 0 for success).",
            const,
        )
        self._last_scrape_timestamp = Gauge(
            namespace,
            "",
            "last_spaces_scrape_timestamp",
            "Number of seconds since 1970 since last scrape of Spaces metrics from Cloud Foundry.",
            const,
        )
        self._last_scrape_duration = Gauge(
            namespace,
            "",
            "last_spaces_scrape_duration_seconds",
            "Duration of the last scrape of Spaces metrics from Cloud Foundry.",
            const,
        )

    def _vecs(self) -> list[GaugeVec]:
        return [self._info, *(vec for vec, _ in self._quota_metrics)]

    def collect(self, objs: CFObjects) -> list[Sample]:
        """Samples for one scrape, including the scrape bookkeeping metrics."""
        samples: list[Sample] = []
        failed = objs.error is not None
        if not failed:
            failed = not self._report_spaces_metrics(objs, samples)
        if failed:
            self._scrape_errors_total.inc()

        samples.extend(self._scrape_errors_total.collect())
        self._scrapes_total.inc()
        samples.extend(self._scrapes_total.collect())
        self._last_scrape_error.set(1.0 if failed else 0.0)
        samples.extend(self._last_scrape_error.collect())
        self._last_scrape_timestamp.set(float(int(time.time())))
        samples.extend(self._last_scrape_timestamp.collect())
        self._last_scrape_duration.set(objs.took)
        samples.extend(self._last_scrape_duration.collect())
        return samples

    def describe(self) -> list[Desc]:
        """Descriptions of every metric this collector can produce."""
        descs: list[Desc] = []
        for vec in self._vecs():
            descs.extend(vec.describe())
        for single in (
            self._scrapes_total,
            self._scrape_errors_total,
            self._last_scrape_error,
            self._last_scrape_timestamp,
            self._last_scrape_duration,
        ):
            descs.extend(single.describe())
        return descs

    def _report_space(self, space: Space, objs: CFObjects) -> None:
        rel_org = space.relationships.get(RELATIONSHIP_ORGANIZATION)
        if rel_org is None:
            raise _SpaceReportError(f"could not find org relationship in space '{space.guid}'")
        quota_name = ""
        # The quota relationship may be present with an empty GUID.
        rel_quota = space.relationships.get(RELATIONSHIP_QUOTA, Relationship())
        if rel_quota.guid:
            quota = objs.space_quotas.get(rel_quota.guid)
            if quota is None:
                raise _SpaceReportError(
                    f"could not find space quota '{rel_quota.guid}' from space '{space.guid}'"
                )
            quota_name = quota.name
            for vec, extract in self._quota_metrics:
                vec.labels(space.guid, space.name, rel_org.guid).set(extract(quota))
        self._info.labels(space.guid, space.name, rel_org.guid, quota_name).set(1.0)

    def _report_spaces_metrics(self, objs: CFObjects, samples: list[Sample]) -> bool:
        """Fill the per-space gauges; False when any space could not be reported."""
        ok = True
        for vec in self._vecs():
            vec.reset()
        for space in objs.spaces.values():
            try:
                self._report_space(space, objs)
            except _SpaceReportError as err:
                log.warning("%s", err)
                ok = False
        for vec in self._vecs():
            samples.extend(vec.collect())
        return ok