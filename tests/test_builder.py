"""
End-to-end tests for the construction pass.
"""

import json

import pytest

from dbmigration import builder as builder_mod
from dbmigration.builder import build_stack
from dbmigration.errors import ConfigurationError, DependencyCycleError
from dbmigration.models import DependencyEdge, SubnetType
from dbmigration.parameters import resolve_parameters


EXPECTED_EDGES = {
    DependencyEdge("VpcSecurityGroup", "Vpc"),
    DependencyEdge("AuroraDBCluster", "Vpc"),
    DependencyEdge("AuroraDBCluster", "VpcSecurityGroup"),
    DependencyEdge("AuroraDBCluster", "importBucket"),
    DependencyEdge("AuroraDBCluster", "exportBucket"),
    DependencyEdge("AuroraDBCluster", "AuroraDBClusterSecret"),
}


def test_scenario_builds_the_full_topology(scenario_config) -> None:
    build = build_stack(scenario_config)

    tiers = {t.subnet_type for t in build.network.network.subnet_tiers}
    assert tiers == {SubnetType.PUBLIC, SubnetType.ISOLATED}
    assert [r.port for r in build.network.security_group.ingress_rules] == [22, 3306]
    assert len(build.buckets) == 2
    assert all(len(b.policy_statements) == 3 for b in build.buckets)
    assert build.cluster.credentials.secret_name == build.secret.secret_name
    assert len(build.graph) == 6
    assert len(build.outputs) == 8


def test_edge_set_is_exactly_the_six_required_edges(scenario_config) -> None:
    build = build_stack(scenario_config)

    assert set(build.graph.edges) == EXPECTED_EDGES
    assert len(build.graph.edges) == 6
    build.graph.validate()


def test_apply_order_respects_every_edge(scenario_config) -> None:
    order = build_stack(scenario_config).graph.topological_order()

    assert order == [
        "Vpc",
        "VpcSecurityGroup",
        "AuroraDBClusterSecret",
        "importBucket",
        "exportBucket",
        "AuroraDBCluster",
    ]
    for edge in EXPECTED_EDGES:
        assert order.index(edge.dependency) < order.index(edge.dependent)


def test_rebuilding_with_identical_parameters_is_idempotent(scenario_config) -> None:
    first = build_stack(scenario_config).to_dict()
    second = build_stack(dict(scenario_config)).to_dict()

    assert first == second
    assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)


def test_build_accepts_resolved_parameters(scenario_config) -> None:
    params = resolve_parameters(scenario_config)

    assert build_stack(params).params is params


def test_handoff_document_shape(scenario_config) -> None:
    doc = build_stack(scenario_config).to_dict()

    assert doc["stack"]["id"] == "stack-org-01"
    assert doc["stack"]["name"] == "mgr-stack"
    assert doc["stack"]["tags"] == {"name": "org-mgr-dev-us-east-1"}
    assert [n["kind"] for n in doc["graph"]["nodes"]] == [
        "network",
        "security_group",
        "secret",
        "bucket",
        "bucket",
        "database_cluster",
    ]
    cluster = doc["graph"]["nodes"][-1]
    assert cluster["credentials"]["password"].startswith("{{resolve:secretsmanager:")
    assert len(doc["outputs"]) == 8


def test_invalid_configuration_aborts_before_any_descriptor(scenario_config, monkeypatch) -> None:
    scenario_config["port"] = "not-a-port"
    calls = []
    monkeypatch.setattr(builder_mod, "provision_network", lambda *a, **k: calls.append(a))

    with pytest.raises(ConfigurationError):
        build_stack(scenario_config)

    assert calls == []


def test_graph_failure_publishes_no_outputs(scenario_config, monkeypatch) -> None:
    published = []

    def failing_validate(self) -> None:
        raise DependencyCycleError(["AuroraDBCluster", "Vpc", "AuroraDBCluster"])

    monkeypatch.setattr(builder_mod.DependencyGraph, "validate", failing_validate)
    monkeypatch.setattr(builder_mod, "publish_outputs", lambda *a, **k: published.append(a))

    with pytest.raises(DependencyCycleError):
        build_stack(scenario_config)

    assert published == []
