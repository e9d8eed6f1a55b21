"""Metrics describing the Cloud Foundry stacks."""

from __future__ import annotations

import time

from .metrics import Counter, Desc, Gauge, GaugeVec, Sample
from .models import CFObjects


class StacksCollector:
    """Turns the stacks of a scrape into metric samples."""

    def __init__(self, namespace: str, environment: str, deployment: str) -> None:
        self.namespace = namespace
        self.environment = environment
        self.deployment = deployment
        const = {"environment": environment, "deployment": deployment}

        self._info = GaugeVec(
            namespace,
            "stack",
            "info",
            "Labeled Cloud Foundry Stack information with a constant '1' value.",
            const,
            ("stack_id", "stack_name"),
        )
        self._scrapes_total = Counter(
            namespace,
            "stacks_scrapes",
            "total",
            "Total number of scrapes for Cloud Foundry Stacks.",
            const,
        )
        self._scrape_errors_total = Counter(
            namespace,
            "stacks_scrape_errors",
            "total",
            "Total number of scrape error of Cloud Foundry Stacks.",
            const,
        )
        self._last_scrape_error = Gauge(
            namespace,
            "",
            "last_stacks_scrape_error",
            "Whether the last scrape of Stacks metrics from Cloud Foundry resulted in an error "
            "(1 for error, 0 for success).",
            const,
        )
        self._last_scrape_timestamp = Gauge(
            namespace,
            "",
            "last_stacks_scrape_timestamp",
            "Number of seconds since 1970 since last scrape of Stacks metrics from Cloud Foundry.",
            const,
        )
        self._last_scrape_duration = Gauge(
            namespace,
            "",
            "last_stacks_scrape_duration_seconds",
            "Duration of the last scrape of Stacks metrics from Cloud Foundry.",
            const,
        )

    def collect(self, objs: CFObjects) -> list[Sample]:
        """Samples for one scrape, including the scrape bookkeeping metrics."""
        samples: list[Sample] = []
        failed = objs.error is not None
        if failed:
            self._scrape_errors_total.inc()
        else:
            self._report_stacks_metrics(objs, samples)

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
            self._info,
            self._scrapes_total,
            self._scrape_errors_total,
            self._last_scrape_error,
            self._last_scrape_timestamp,
            self._last_scrape_duration,
        ):
            descs.extend(metric.describe())
        return descs

    def _report_stacks_metrics(self, objs: CFObjects, samples: list[Sample]) -> None:
        self._info.reset()
        for stack in objs.stacks.values():
            self._info.labels(stack.guid, stack.name).set(1.0)
        samples.extend(self._info.collect())