"""Small metric primitives and the text exposition format."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional


def bool_to_float(val: Optional[bool]) -> float:
    """1 for True, 0 for False or missing."""
    if val is None:
        return 0.0
    if val:
        return 1.0
    return 0.0


def null_int_to_float(val: Optional[int]) -> float:
    """The value as a float, or -1 when it is unset."""
    if val is None:
        return -1.0
    return float(val)


def _fq_name(namespace: str, subsystem: str, name: str) -> str:
    if not name:
        raise ValueError("metric name must not be empty")
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass
class Desc:
    fq_name: str
    help: str
    const_labels: dict[str, str] = field(default_factory=dict)
    variable_labels: tuple[str, ...] = ()


@dataclass
class Sample:
    name: str
    labels: dict[str, str]
    value: float
    help: str = ""
    kind: str = "gauge"


class _Single:
    kind = "gauge"

    def __init__(self, namespace, subsystem, name, help, const_labels=None):
        self._desc = Desc(_fq_name(namespace, subsystem, name), help, dict(const_labels or {}))
        self._lock = threading.Lock()
        self._value = 0.0

    @property
    def value(self) -> float:
        return self._value

    def collect(self) -> list[Sample]:
        with self._lock:
            value = self._value
        d = self._desc
        return [Sample(d.fq_name, dict(d.const_labels), value, d.help, self.kind)]

    def describe(self) -> list[Desc]:
        return [self._desc]


class Counter(_Single):
    """Monotonically increasing value."""

    kind = "counter"

    def __init__(self, namespace, subsystem, name, help, const_labels=None):
        super().__init__(namespace, subsystem, name, help, const_labels)

    def inc(self, amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self._value += amount

    def collect(self) -> list[Sample]:
        return super().collect()

    def describe(self) -> list[Desc]:
        return super().describe()


class Gauge(_Single):
    """Value that can be set arbitrarily."""

    def __init__(self, namespace, subsystem, name, help, const_labels=None):
        super().__init__(namespace, subsystem, name, help, const_labels)

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def collect(self) -> list[Sample]:
        return super().collect()

    def describe(self) -> list[Desc]:
        return super().describe()


class _GaugeChild:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.value = 0.0

    def set(self, value: float) -> None:
        with self._lock:
            self.value = float(value)

    def inc(self, amount: float = 1.0) -> None:
        with self._lock:
            self.value += amount


class GaugeVec:
    """Family of gauges partitioned by label values."""

    def __init__(self, namespace, subsystem, name, help, const_labels=None, label_names=()):
        self._desc = Desc(
            _fq_name(namespace, subsystem, name),
            help,
            dict(const_labels or {}),
            tuple(label_names),
        )
        self._lock = threading.Lock()
        self._children: dict[tuple[str, ...], _GaugeChild] = {}

    def labels(self, *values) -> _GaugeChild:
        """The gauge for the given label values, created on first use."""
        if len(values) != len(self._desc.variable_labels):
            raise ValueError(
                f"{self._desc.fq_name}: expected {len(self._desc.variable_labels)} "
                f"label values, got {len(values)}"
            )
        key = tuple(str(v) for v in values)
        with self._lock:
            child = self._children.get(key)
            if child is None:
                child = self._children[key] = _GaugeChild()
            return child

    def reset(self) -> None:
        with self._lock:
            self._children.clear()

    def collect(self) -> list[Sample]:
        d = self._desc
        with self._lock:
            items = list(self._children.items())
        return [
            Sample(
                d.fq_name,
                {**d.const_labels, **dict(zip(d.variable_labels, key))},
                child.value,
                d.help,
                "gauge",
            )
            for key, child in items
        ]

    def describe(self) -> list[Desc]:
        return [self._desc]


def _format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _escape_help(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n")


def render_text(samples: Iterable[Sample]) -> str:
    """Render samples in the Prometheus text exposition format."""
    families: dict[str, list[Sample]] = {}
    for sample in samples:
        families.setdefault(sample.name, []).append(sample)
    lines: list[str] = []
    for name, group in families.items():
        first = group[0]
        if first.help:
            lines.append(f"# HELP {name} {_escape_help(first.help)}")
        lines.append(f"# TYPE {name} {first.kind}")
        for sample in group:
            labels = ",".join(
                f'{key}="{_escape_label(val)}"' for key, val in sorted(sample.labels.items())
            )
            label_part = f"{{{labels}}}" if labels else ""
            lines.append(f"{name}{label_part} {_format_value(float(sample.value))}")
    return "".join(line + "\n" for line in lines)