from urllib.parse import parse_qs

import pytest
import responses
from responses import matchers

from cfexporter.session import (
    LARGE_QUERY,
    SORT_DESC,
    CFConfig,
    Query,
    SessionError,
    SessionExt,
)

API = "https://api.example.com"
LOGIN = "https://login.example.com"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        mock.add(responses.GET, API + "/", json={"links": {"login": {"href": LOGIN}}})
        mock.add(
            responses.POST,
            LOGIN + "/oauth/token",
            json={"access_token": "token", "token_type": "bearer"},
        )
        yield mock


def _client_session():
    return SessionExt(CFConfig(url=API, client_id="exporter", client_secret="secret"))


def _token_calls(mock):
    return [call for call in mock.calls if call.request.url.startswith(LOGIN)]


def test_missing_url_is_an_error():
    with pytest.raises(SessionError):
        SessionExt(CFConfig())


def test_get_info_sends_token(rsps):
    rsps.add(responses.GET, API + "/v3/info", json={"name": "example"})
    info = _client_session().get_info()
    assert info.name == "example"
    assert rsps.calls[-1].request.headers["Authorization"] == "bearer token"


def test_client_credentials_grant(rsps):
    rsps.add(responses.GET, API + "/v3/info", json={"name": "example"})
    info = _client_session().get_info()
    assert info.name == "example"
    token_call = _token_calls(rsps)[0]
    body = parse_qs(token_call.request.body)
    assert body["grant_type"] == ["client_credentials"]
    assert token_call.request.headers["Authorization"].startswith("Basic ")


def test_password_grant(rsps):
    password = "password"
    rsps.add(responses.GET, API + "/v3/info", json={"name": "example"})
    session = SessionExt(CFConfig(url=API + "/", username="admin", password=password))
    info = session.get_info()
    assert info.name == "example"
    body = parse_qs(_token_calls(rsps)[0].request.body)
    assert body["grant_type"] == ["password"]
    assert body["username"] == ["admin"]
    assert body["password"] == [password]


def test_authenticates_only_once(rsps):
    rsps.add(responses.GET, API + "/v3/info", json={"name": "example"})
    session = _client_session()
    first = session.get_info()
    second = session.get_info()
    assert (first.name, second.name) == ("example", "example")
    assert len(_token_calls(rsps)) == 1


def test_failed_authentication_raises(rsps):
    rsps.replace(responses.POST, LOGIN + "/oauth/token", status=401, json={})
    with pytest.raises(SessionError, match="401"):
        _client_session().authenticate()


def test_missing_login_link_raises(rsps):
    rsps.replace(responses.GET, API + "/", json={"links": {}})
    with pytest.raises(SessionError):
        _client_session().authenticate()


def test_get_info_http_error(rsps):
    rsps.add(responses.GET, API + "/v3/info", status=500, json={})
    with pytest.raises(SessionError, match="http error"):
        _client_session().get_info()


def test_list_follows_pagination(rsps):
    next_href = API + "/v3/stacks?page=2&per_page=5000"
    rsps.add(
        responses.GET,
        API + "/v3/stacks",
        json={
            "pagination": {"next": {"href": next_href}},
            "resources": [{"guid": "s1", "name": "cflinuxfs3"}],
        },
        match=[matchers.query_param_matcher({"per_page": "5000"})],
    )
    rsps.add(
        responses.GET,
        API + "/v3/stacks",
        json={"pagination": {"next": None}, "resources": [{"guid": "s2", "name": "cflinuxfs4"}]},
        match=[matchers.query_param_matcher({"page": "2", "per_page": "5000"})],
    )
    stacks = _client_session().get_stacks(LARGE_QUERY)
    assert [(s.guid, s.name) for s in stacks] == [("s1", "cflinuxfs3"), ("s2", "cflinuxfs4")]


def test_list_error_status_raises(rsps):
    rsps.add(responses.GET, API + "/v3/domains", status=503, json={})
    with pytest.raises(SessionError, match="503"):
        _client_session().get_domains(LARGE_QUERY)


def test_get_tasks_asks_for_active_states(rsps):
    rsps.add(
        responses.GET,
        API + "/v3/tasks",
        json={"resources": [{"guid": "t1", "state": "RUNNING", "memory_in_mb": 256}]},
        match=[
            matchers.query_param_matcher(
                {"per_page": "5000", "states": "PENDING,RUNNING,CANCELING"}
            )
        ],
    )
    tasks = _client_session().get_tasks()
    assert [(t.guid, t.state, t.memory_in_mb) for t in tasks] == [("t1", "RUNNING", 256)]


def test_get_events_passes_queries(rsps):
    recent = Query("created_ats[gt]", ("2024-01-01T00:00:00Z",))
    rsps.add(
        responses.GET,
        API + "/v3/audit_events",
        json={"resources": [{"guid": "e1", "type": "audit.app.create"}]},
        match=[
            matchers.query_param_matcher(
                {
                    "per_page": "5000",
                    "order_by": "-created_at",
                    "created_ats[gt]": "2024-01-01T00:00:00Z",
                }
            )
        ],
    )
    events = _client_session().get_events(LARGE_QUERY, SORT_DESC, recent)
    assert [(e.guid, e.type) for e in events] == [("e1", "audit.app.create")]


def test_get_spaces_parses_relationships(rsps):
    rsps.add(
        responses.GET,
        API + "/v3/spaces",
        json={
            "resources": [
                {
                    "guid": "sp1",
                    "name": "dev",
                    "relationships": {"organization": {"data": {"guid": "o1"}}},
                }
            ]
        },
    )
    spaces = _client_session().get_spaces(LARGE_QUERY)
    assert spaces[0].name == "dev"
    assert spaces[0].relationships["organization"].guid == "o1"


def test_raw_listings_return_resources(rsps):
    rsps.add(
        responses.GET,
        API + "/v3/organizations",
        json={"resources": [{"guid": "o1", "name": "org"}]},
    )
    orgs = _client_session().get_organizations(LARGE_QUERY)
    assert orgs == [{"guid": "o1", "name": "org"}]


def test_get_space_summary(rsps):
    rsps.add(
        responses.GET,
        API + "/v2/spaces/sp1/summary",
        json={"guid": "sp1", "name": "dev", "apps": [{"guid": "a1", "running_instances": 2}]},
    )
    summary = _client_session().get_space_summary("sp1")
    assert summary.guid == "sp1"
    assert [(a.guid, a.running_instances) for a in summary.apps] == [("a1", 2)]


def test_get_space_summary_error(rsps):
    rsps.add(responses.GET, API + "/v2/spaces/gone/summary", status=404, json={})
    with pytest.raises(SessionError, match="unexpected status code 404 on request /v2/spaces/gone/summary"):
        _client_session().get_space_summary("gone")


def test_query_value_joins_values():
    query = Query("states", ("A", "B"))
    assert query.value == "A,B"