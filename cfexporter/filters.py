"""Selection of the Cloud Foundry resource families to collect."""

from __future__ import annotations

APPLICATIONS = "applications"
BUILDPACKS = "buildpacks"
DOMAINS = "domains"
EVENTS = "events"
ISOLATION_SEGMENTS = "isolationsegments"
ORGANIZATIONS = "organizations"
ROUTES = "routes"
SECURITY_GROUPS = "securitygroups"
SERVICE_BINDINGS = "servicebindings"
SERVICE_ROUTE_BINDINGS = "service_route_bindings"
SERVICE_INSTANCES = "serviceinstances"
SERVICE_PLANS = "serviceplans"
SERVICES = "services"
SPACES = "spaces"
STACKS = "stacks"
TASKS = "tasks"

ALL = (
    APPLICATIONS,
    BUILDPACKS,
    DOMAINS,
    EVENTS,
    ISOLATION_SEGMENTS,
    ORGANIZATIONS,
    ROUTES,
    SECURITY_GROUPS,
    SERVICE_BINDINGS,
    SERVICE_ROUTE_BINDINGS,
    SERVICE_INSTANCES,
    SERVICE_PLANS,
    SERVICES,
    SPACES,
    STACKS,
    TASKS,
)

_DISABLED_BY_DEFAULT = frozenset({TASKS, EVENTS})


class Filter:
    """Set of enabled resource families.

    With no names given, every family except tasks and events is enabled.
    Otherwise only the given families are enabled; an unknown name raises
    ValueError.
    """

    def __init__(self, *active: str) -> None:
        if not active:
            self._activated = {name: name not in _DISABLED_BY_DEFAULT for name in ALL}
            return
        activated = dict.fromkeys(ALL, False)
        for value in active:
            name = value.strip(" ").lower()
            if name not in activated:
                raise ValueError(f"Filter `{value}` is not supported")
            activated[name] = True
        self._activated = activated

    def enabled(self, name: str) -> bool:
        """Whether the family ``name`` is enabled."""
        return self._activated.get(name, False)

    def any(self, *names: str) -> bool:
        """Whether at least one of ``names`` is enabled."""
        return any(self.enabled(name) for name in names)

    def all(self, *names: str) -> bool:
        """Whether every one of ``names`` is enabled."""
        return all(self.enabled(name) for name in names)

    def __repr__(self) -> str:
        active = ", ".join(name for name, on in self._activated.items() if on)
        return f"Filter({active})"