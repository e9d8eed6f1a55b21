# cfexporter

`cfexporter` fetches objects from the Cloud Foundry Cloud Controller API
(organizations, spaces, quotas, applications, processes, routes, stacks,
buildpacks, tasks, services, isolation segments, users and audit events) and
turns spaces, stacks and tasks into Prometheus-style metric samples.

## Modules

- `cfexporter.filters` — `Filter` decides which object kinds are fetched.
  With no arguments every kind except `tasks` and `events` is enabled. Given
  names, only those are enabled; names are trimmed of spaces and lower-cased,
  and an unknown name raises `ValueError`. `Filter.enabled`, `Filter.any` and
  `Filter.all` query it. The known names are in `filters.ALL`.
- `cfexporter.models` — dataclasses for the fetched objects (`Quota`, `Space`,
  `Stack`, `Task`, `Application`, `Event`, `SpaceSummary`, `AppSummary`, …)
  with `from_dict` constructors for the API's JSON, and `CFObjects`, the
  snapshot of one scrape, with its `took` duration and `error`.
- `cfexporter.session` — `CFConfig` holds the API URL and credentials.
  `SessionExt` logs in through the login endpoint the API root announces
  (client credentials when `client_id` is set, otherwise a password grant),
  follows v3 pagination and raises `SessionError` on failed requests.
- `cfexporter.worker` — `Worker` runs named jobs on a fixed number of threads;
  jobs may queue more jobs, and `wait` raises the first error a job raised.
- `cfexporter.fetcher` — `Fetcher` plans one job per enabled object kind, runs
  them and returns a `CFObjects`. `get_objects` also records how long the fetch
  took. A failure does not raise: it is stored in the result's `error`.
  A space summary that cannot be fetched is only logged.
- `cfexporter.spaces`, `cfexporter.stacks`, `cfexporter.tasks` —
  `SpacesCollector`, `StacksCollector` and `TasksCollector`. Each `collect`
  returns a list of `Sample`s: the per-object gauges plus a scrapes counter,
  a scrape-errors counter and last-error, last-timestamp and last-duration
  gauges. Each `describe` returns the `Desc` of every metric it can produce.
- `cfexporter.metrics` — `Counter`, `Gauge`, `GaugeVec`, `Sample`, `Desc`,
  and `render_text`, which writes samples in the Prometheus text exposition
  format.

## Example

```python
from cfexporter.fetcher import Fetcher
from cfexporter.filters import Filter
from cfexporter.metrics import render_text
from cfexporter.session import CFConfig
from cfexporter.spaces import SpacesCollector
from cfexporter.stacks import StacksCollector
from cfexporter.tasks import TasksCollector

password = "password"
config = CFConfig(
    url="https://api.example.com",
    username="admin",
    password=password,
)

fetcher = Fetcher(10, config, Filter("spaces", "stacks", "tasks"))
objects = fetcher.get_objects()

collectors = [
    SpacesCollector("cf", "production", "cf"),
    StacksCollector("cf", "production", "cf"),
    TasksCollector("cf", "production", "cf"),
]
samples = [sample for collector in collectors for sample in collector.collect(objects)]
print(render_text(samples))
```

## Filters

```python
from cfexporter.filters import Filter

f = Filter("applications", "stacks")
f.enabled("stacks")               # True
f.any("organizations", "spaces")  # False
f.all("applications", "stacks")   # True
```

## Metric values

- Unset quota limits are reported as `-1`; the paid-services flag is `1` or
  `0` (`0` when missing).
- A space whose quota or organization relationship cannot be resolved is
  skipped with a warning and the scrape counts as failed.
- Tasks are grouped by application GUID (`unavailable` when missing) and
  state; for each group the count, memory and disk sums and the oldest
  creation time are reported.

## What it does not do

The package has no command-line program and no HTTP server: it does not
serve a `/metrics` endpoint, read configuration files or schedule scrapes.
Metrics are only produced for spaces, stacks and tasks; the other fetched
objects are available in `CFObjects` but have no collector.