"""Metrics describing the active Cloud Foundry tasks."""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone

from .metrics import Counter, Desc, Gauge, GaugeVec, Sample
from .models import CFObjects, Task

UNAVAILABLE_APPLICATION = "unavailable"

_TASK_LABELS = ("application_id", "state")


def _task_key(task: Task) -> tuple[str, str]:
    app = task.relationships.get("app")
    application_id = app.guid if app is not None and app.guid else UNAVAILABLE_APPLICATION
    return application_id, task.state


class TasksCollector:
    """Turns the tasks of a scrape into metric samples grouped by app and state."""

    def __init__(self, namespace: str, environment: str, deployment: str) -> None:
        self.namespace = namespace
        self.environment = environment
        self.deployment = deployment
        const = {"environment": environment, "deployment": deployment}

        def vec(name: str, help_text: str) -> GaugeVec:
            return GaugeVec(namespace, "task", name, help_text, const, _TASK_LABELS)

        self._info = vec("info", "Labeled Cloud Foundry Task information with a constant '1' value.")
        self._count = vec("count", "Number of Cloud Foundry Tasks.")
        self._memory_sum = vec("memory_mb_sum", "Sum of Cloud Foundry Tasks Memory (Mb).")
        self._disk_sum = vec("disk_quota_mb_sum", "Sum of Cloud Foundry Tasks Disk Quota (Mb).")
        self._oldest_created_at = vec(
            "oldest_created_at",
            "Number of seconds since 1970 of creation time of oldest Cloud Foundry task.",
        )
        self._scrapes_total = Counter(
            namespace,
            "tasks_scrapes",
            "total",
            "Total number of scrapes for Cloud Foundry Tasks.",
            const,
        )
        self._scrape_errors_total = Counter(
            namespace,
            "tasks_scrape_errors",
            "total",
            "Total number of scrape error of Cloud Foundry Tasks.",
            const,
        )
        self._last_scrape_error = Gauge(
            namespace,
            "",
            "last_tasks_scrape_error",
            "Whether the last scrape of Tasks metrics from Cloud Foundry resulted in an error "
            "(1 for error, 0 for success).",
            const,
        )
        self._last_scrape_timestamp = Gauge(
            namespace,
            "",
            "last_tasks_scrape_timestamp",
            "Number of seconds since 1970 since last scrape of Tasks metrics from Cloud Foundry.",
            const,
        )
        self._last_scrape_duration = Gauge(
            namespace,
            "",
            "last_tasks_scrape_duration_seconds",
            "Duration of the last scrape of Tasks metrics from Cloud Foundry.",
            const,
        )

    def _vecs(self) -> list[GaugeVec]:
        return [self._info, self._count, self._memory_sum, self._disk_sum, self._oldest_created_at]

    def collect(self, objs: CFObjects) -> list[Sample]:
        """Samples for one scrape, including the scrape bookkeeping metrics."""
        samples: list[Sample] = []
        failed = objs.error is not None
        if failed:
            self._scrape_errors_total.inc()
        else:
            self._report_tasks_metrics(objs, samples)

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
        for metric in (
            *self._vecs(),
            self._scrapes_total,
            self._scrape_errors_total,
            self._last_scrape_error,
            self._last_scrape_timestamp,
            self._last_scrape_duration,
        ):
            descs.extend(metric.describe())
        return descs

    def _report_tasks_metrics(self, objs: CFObjects, samples: list[Sample]) -> None:
        for vec in self._vecs():
            vec.reset()

        grouped: dict[tuple[str, str], list[Task]] = {}
        for task in objs.tasks.values():
            grouped.setdefault(_task_key(task), []).append(task)

        for key, tasks in grouped.items():
            self._info.labels(*key).set(1.0)
            self._count.labels(*key).set(float(len(tasks)))
            self._memory_sum.labels(*key).set(float(sum(t.memory_in_mb for t in tasks)))
            self._disk_sum.labels(*key).set(float(sum(t.disk_in_mb for t in tasks)))
            oldest = min((t.created_at for t in tasks), default=None)
            now = datetime.now(timezone.utc)
            if oldest is None or oldest >= now:
                oldest = now
            self._oldest_created_at.labels(*key).set(float(math.floor(oldest.timestamp())))

        for vec in self._vecs():
            samples.extend(vec.collect())