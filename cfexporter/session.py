"""Authenticated access to the Cloud Foundry API."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, TypeVar

import requests

from .models import (
    Application,
    Event,
    Info,
    Quota,
    Space,
    SpaceSummary,
    Stack,
    Task,
)

log = logging.getLogger(__name__)

BIN_NAME = "cf_exporter"
DEFAULT_TIMEOUT = 60.0
DEFAULT_OAUTH_CLIENT = "cf"

PER_PAGE = "per_page"
ORDER_BY = "order_by"
STATES_FILTER = "states"

T = TypeVar("T")


class SessionError(Exception):
    """A request to the platform failed."""


@dataclass
class CFConfig:
    skip_ssl_validation: bool = False
    url: str = ""
    client_id: str = ""
    client_secret: str = ""
    username: str = ""
    password: str = ""


@dataclass(frozen=True)
class Query:
    """One query-string parameter; several values are joined by commas."""

    key: str
    values: tuple[str, ...] = ()

    @property
    def value(self) -> str:
        return ",".join(self.values)


LARGE_QUERY = Query(PER_PAGE, ("5000",))
SORT_DESC = Query(ORDER_BY, ("-created_at",))
TASK_ACTIVE_STATES = Query(STATES_FILTER, ("PENDING", "RUNNING", "CANCELING"))


def _params(queries: Iterable[Query]) -> dict[str, str]:
    return {query.key: query.value for query in queries}


class SessionExt:
    """Client for the v2 and v3 Cloud Controller APIs.

    Authentication happens on the first request, or explicitly through
    ``authenticate``.
    """

    def __init__(self, config: CFConfig, http: Optional[requests.Session] = None) -> None:
        if not config.url:
            raise SessionError("cloud foundry API url is not set")
        self._config = config
        self._api = config.url.rstrip("/")
        self._http = http if http is not None else requests.Session()
        self._http.headers["User-Agent"] = BIN_NAME
        self._verify = not config.skip_ssl_validation
        self._authorization: Optional[str] = None
        self._auth_lock = threading.Lock()

    def authenticate(self) -> None:
        """Obtain an access token from the platform's login server."""
        root = self._send("GET", f"{self._api}/", authorized=False)
        if root.status_code != 200:
            raise SessionError(f"unexpected status code {root.status_code} on request {self._api}/")
        links = self._json(root).get("links") or {}
        login = (links.get("login") or links.get("uaa") or {}).get("href")
        if not login:
            raise SessionError("cloud foundry API does not announce a login endpoint")

        config = self._config
        if config.client_id:
            data = {"grant_type": "client_credentials"}
            basic = (config.client_id, config.client_secret)
        else:
            data = {
                "grant_type": "password",
                "username": config.username,
                "password": config.password,
            }
            basic = (DEFAULT_OAUTH_CLIENT, "")
        url = f"{login.rstrip('/')}/oauth/token"
        resp = self._send("POST", url, authorized=False, data=data, auth=basic)
        if resp.status_code != 200:
            raise SessionError(f"authentication failed with status code {resp.status_code}")
        body = self._json(resp)
        access = body.get("access_token")
        if not access:
            raise SessionError("authentication response holds no access token")
        self._authorization = f"{body.get('token_type') or 'bearer'} {access}"

    def _send(self, method: str, url: str, *, authorized: bool = True, **kwargs: Any) -> requests.Response:
        headers = {"Accept": "application/json"}
        if authorized:
            with self._auth_lock:
                if self._authorization is None:
                    self.authenticate()
            headers["Authorization"] = self._authorization or ""
        try:
            return self._http.request(
                method, url, headers=headers, verify=self._verify, timeout=DEFAULT_TIMEOUT, **kwargs
            )
        except requests.RequestException as err:
            raise SessionError(str(err)) from err

    @staticmethod
    def _json(resp: requests.Response) -> dict:
        try:
            body = resp.json()
        except ValueError as err:
            raise SessionError(f"invalid JSON in response from {resp.url}") from err
        if not isinstance(body, dict):
            raise SessionError(f"unexpected JSON document from {resp.url}")
        return body

    def list_resources(self, path: str, *queries: Query) -> list[dict]:
        """All resources of a paginated v3 listing."""
        url: Optional[str] = f"{self._api}{path}"
        params: Optional[dict[str, str]] = _params(queries)
        found: list[dict] = []
        while url:
            resp = self._send("GET", url, params=params)
            if resp.status_code != 200:
                raise SessionError(f"unexpected status code {resp.status_code} on request {url}")
            body = self._json(resp)
            found.extend(body.get("resources") or [])
            pagination = body.get("pagination") or {}
            url = (pagination.get("next") or {}).get("href")
            params = None
        return found

    def _list(self, path: str, build: Callable[[dict], T], *queries: Query) -> list[T]:
        return [build(item) for item in self.list_resources(path, *queries)]

    def get_info(self) -> Info:
        resp = self._send("GET", f"{self._api}/v3/info")
        if resp.status_code != 200:
            raise SessionError("http error")
        return Info.from_dict(self._json(resp))

    def get_applications(self) -> list[Application]:
        return self._list("/v3/apps", Application.from_dict, LARGE_QUERY)

    def get_tasks(self) -> list[Task]:
        return self._list("/v3/tasks", Task.from_dict, LARGE_QUERY, TASK_ACTIVE_STATES)

    def get_organization_quotas(self) -> list[Quota]:
        return self._list("/v3/organization_quotas", Quota.from_dict, LARGE_QUERY)

    def get_space_quotas(self) -> list[Quota]:
        return self._list("/v3/space_quotas", Quota.from_dict, LARGE_QUERY)

    def get_events(self, *queries: Query) -> list[Event]:
        return self._list("/v3/audit_events", Event.from_dict, *queries)

    def get_space_summary(self, guid: str) -> SpaceSummary:
        path = f"/v2/spaces/{guid}/summary"
        resp = self._send("GET", f"{self._api}{path}")
        if resp.status_code != 200:
            raise SessionError(f"unexpected status code {resp.status_code} on request {path}")
        return SpaceSummary.from_dict(self._json(resp))

    def get_organizations(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/organizations", *queries)

    def get_spaces(self, *queries: Query) -> list[Space]:
        return self._list("/v3/spaces", Space.from_dict, *queries)

    def get_domains(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/domains", *queries)

    def get_processes(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/processes", *queries)

    def get_routes(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/routes", *queries)

    def get_route_bindings(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/service_route_bindings", *queries)

    def get_security_groups(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/security_groups", *queries)

    def get_stacks(self, *queries: Query) -> list[Stack]:
        return self._list("/v3/stacks", Stack.from_dict, *queries)

    def get_buildpacks(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/buildpacks", *queries)

    def get_service_brokers(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/service_brokers", *queries)

    def get_service_offerings(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/service_offerings", *queries)

    def get_service_instances(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/service_instances", *queries)

    def get_service_plans(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/service_plans", *queries)

    def get_service_credential_bindings(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/service_credential_bindings", *queries)

    def get_isolation_segments(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/isolation_segments", *queries)

    def get_users(self, *queries: Query) -> list[dict]:
        return self.list_resources("/v3/users", *queries)