import time

import pytest

from cfexporter.metrics import render_text
from cfexporter.models import (
    CFObjects,
    Quota,
    QuotaApp,
    QuotaService,
    Relationship,
    RouteLimit,
    Space,
)
from cfexporter.spaces import SpacesCollector


def make_collector():
    return SpacesCollector("cf", "env1", "dep1")


def make_quota(**kwargs):
    return Quota(
        guid="quota-1",
        name="small",
        apps=QuotaApp(
            total_memory=kwargs.get("total_memory", 2048),
            instance_memory=kwargs.get("instance_memory", 512),
            total_app_instances=kwargs.get("total_app_instances", 10),
            per_app_tasks=kwargs.get("per_app_tasks", 5),
        ),
        services=QuotaService(
            total_service_instances=kwargs.get("total_service_instances", 7),
            total_service_keys=kwargs.get("total_service_keys", 3),
            paid_service_plans=kwargs.get("paid", True),
        ),
        routes=RouteLimit(
            total_routes=kwargs.get("total_routes", 20),
            total_reserved_ports=kwargs.get("total_reserved_ports", 4),
        ),
    )


def make_space(guid, name, org="org-1", quota=None):
    rels = {"organization": Relationship(org)}
    if quota is not None:
        rels["quota"] = Relationship(quota)
    return Space(guid=guid, name=name, relationships=rels)


def by_name(samples, name):
    return [s for s in samples if s.name == name]


def single(samples, name):
    found = by_name(samples, name)
    assert len(found) == 1
    return found[0]


def test_info_metric_with_quota_name():
    objs = CFObjects()
    objs.space_quotas["quota-1"] = make_quota()
    objs.spaces["s1"] = make_space("s1", "dev", quota="quota-1")
    samples = make_collector().collect(objs)
    info = single(samples, "cf_space_info")
    assert info.value == 1.0
    assert info.labels == {
        "environment": "env1",
        "deployment": "dep1",
        "space_id": "s1",
        "space_name": "dev",
        "organization_id": "org-1",
        "quota_name": "small",
    }


def test_quota_values_reported():
    objs = CFObjects()
    quota = make_quota()
    objs.space_quotas["quota-1"] = quota
    objs.spaces["s1"] = make_space("s1", "dev", quota="quota-1")
    samples = make_collector().collect(objs)
    assert single(samples, "cf_space_non_basic_services_allowed").value == 1.0
    assert single(samples, "cf_space_instance_memory_mb_limit").value == quota.apps.instance_memory
    assert single(samples, "cf_space_total_memory_mb_quota").value == quota.apps.total_memory
    assert single(samples, "cf_space_total_app_instances_quota").value == quota.apps.total_app_instances
    assert single(samples, "cf_space_total_app_tasks_quota").value == quota.apps.per_app_tasks
    assert single(samples, "cf_space_total_routes_quota").value == quota.routes.total_routes
    assert (
        single(samples, "cf_space_total_reserved_route_ports_quota").value
        == quota.routes.total_reserved_ports
    )
    assert (
        single(samples, "cf_space_total_service_keys_quota").value
        == quota.services.total_service_keys
    )
    assert (
        single(samples, "cf_space_total_services_quota").value
        == quota.services.total_service_instances
    )
    assert single(samples, "cf_last_spaces_scrape_error").value == 0.0
    labels = single(samples, "cf_space_total_routes_quota").labels
    assert "quota_name" not in labels
    assert labels["space_id"] == "s1"


def test_unset_quota_values_are_minus_one():
    objs = CFObjects()
    objs.space_quotas["quota-1"] = make_quota(
        total_memory=None, total_routes=None, paid=None
    )
    objs.spaces["s1"] = make_space("s1", "dev", quota="quota-1")
    samples = make_collector().collect(objs)
    assert single(samples, "cf_space_total_memory_mb_quota").value == -1.0
    assert single(samples, "cf_space_total_routes_quota").value == -1.0
    assert single(samples, "cf_space_non_basic_services_allowed").value == 0.0


def test_space_without_quota_only_has_info():
    objs = CFObjects()
    objs.spaces["s1"] = make_space("s1", "dev", quota="")
    samples = make_collector().collect(objs)
    assert single(samples, "cf_space_info").labels["quota_name"] == ""
    assert by_name(samples, "cf_space_total_memory_mb_quota") == []
    assert single(samples, "cf_last_spaces_scrape_error").value == 0.0


def test_missing_quota_is_an_error_but_other_spaces_reported():
    objs = CFObjects()
    objs.spaces["bad"] = make_space("bad", "broken", quota="nowhere")
    objs.spaces["good"] = make_space("good", "fine")
    samples = make_collector().collect(objs)
    infos = by_name(samples, "cf_space_info")
    assert [s.labels["space_id"] for s in infos] == ["good"]
    assert single(samples, "cf_last_spaces_scrape_error").value == 1.0
    assert single(samples, "cf_spaces_scrape_errors_total").value == 1.0


def test_missing_org_relationship_is_an_error():
    objs = CFObjects()
    objs.spaces["s1"] = Space(guid="s1", name="orphan")
    samples = make_collector().collect(objs)
    assert by_name(samples, "cf_space_info") == []
    assert single(samples, "cf_last_spaces_scrape_error").value == 1.0


def test_fetch_error_skips_space_metrics():
    objs = CFObjects()
    objs.spaces["s1"] = make_space("s1", "dev")
    objs.error = RuntimeError("boom")
    samples = make_collector().collect(objs)
    assert [s.name for s in samples] == [
        "cf_spaces_scrape_errors_total",
        "cf_spaces_scrapes_total",
        "cf_last_spaces_scrape_error",
        "cf_last_spaces_scrape_timestamp",
        "cf_last_spaces_scrape_duration_seconds",
    ]
    assert single(samples, "cf_last_spaces_scrape_error").value == 1.0


def test_counters_accumulate_and_gauges_reset():
    collector = make_collector()
    first = CFObjects()
    first.spaces["s1"] = make_space("s1", "dev")
    first.spaces["s2"] = make_space("s2", "prod")
    collector.collect(first)
    second = CFObjects()
    second.spaces["s2"] = make_space("s2", "prod")
    samples = collector.collect(second)
    assert [s.labels["space_id"] for s in by_name(samples, "cf_space_info")] == ["s2"]
    assert single(samples, "cf_spaces_scrapes_total").value == 2.0
    assert single(samples, "cf_spaces_scrape_errors_total").value == 0.0


def test_timestamp_and_duration():
    objs = CFObjects(took=2.5)
    before = int(time.time())
    samples = make_collector().collect(objs)
    after = int(time.time())
    assert single(samples, "cf_last_spaces_scrape_duration_seconds").value == 2.5
    stamp = single(samples, "cf_last_spaces_scrape_timestamp").value
    assert before <= stamp <= after


def test_describe_lists_every_metric():
    names = [d.fq_name for d in make_collector().describe()]
    assert len(names) == 15
    assert names[0] == "cf_space_info"
    assert names[-1] == "cf_last_spaces_scrape_duration_seconds"
    assert "cf_spaces_scrapes_total" in names
    assert make_collector().describe()[0].variable_labels == (
        "space_id",
        "space_name",
        "organization_id",
        "quota_name",
    )


@pytest.mark.parametrize("namespace", ["cf", "other"])
def test_rendered_output_uses_namespace(namespace):
    collector = SpacesCollector(namespace, "env1", "dep1")
    text = render_text(collector.collect(CFObjects()))
    assert f"# TYPE {namespace}_spaces_scrapes_total counter" in text
    assert f"# TYPE {namespace}_last_spaces_scrape_error gauge" in text