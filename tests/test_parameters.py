"""
Tests for parameter resolution: defaults, derived names and validation limits.
"""

import pytest
from hypothesis import given, strategies as st

from dbmigration.errors import ConfigurationError
from dbmigration.models import BucketRole, Role
from dbmigration.parameters import REQUIRED_FIELDS, resolve_parameters


def test_derived_names_for_default_scenario(params) -> None:
    assert params.name_prefix == "org-mgr-dev-us-east-1"
    assert params.secret_full_name == "org-mgr-dev-us-east-1-secret"
    assert params.secret_arn == (
        "arn:aws:secretsmanager:us-east-1:123456789012:secret:org-mgr-dev-us-east-1-secret"
    )
    assert params.cluster_name == "org-mgr-dev-us-east-1-db-server"
    assert params.cluster_arn == "arn:aws:rds:us-east-1:123456789012:cluster:org-mgr-dev-us-east-1-db-server"
    assert params.instance_identifier_base == "org-mgr-dev-us-east-1-db-server-"
    assert params.security_group_name == "org-mgr-vpc-sg"


def test_bucket_roles_are_ordered_import_then_export(params) -> None:
    assert params.bucket_roles == (
        BucketRole("import", Role.IMPORT),
        BucketRole("export", Role.EXPORT),
    )
    assert [params.bucket_name(b) for b in params.bucket_roles] == [
        "org-mgr-dev-us-east-1-import",
        "org-mgr-dev-us-east-1-export",
    ]


def test_optional_fields_fall_back_to_defaults(params) -> None:
    assert params.instances == 2
    assert params.password_length == 30
    assert params.cloudwatch_logs_exports == ("audit", "error", "general", "slowquery")
    assert params.db_cluster_parameter_group_name == "default.aurora-mysql5.7"
    assert params.secret_template == {"username": "db_admin"}


def test_region_name_falls_back_to_region(scenario_config) -> None:
    del scenario_config["region_name"]
    scenario_config["region"] = "eu-central-1"

    params = resolve_parameters(scenario_config)

    assert params.name_prefix == "org-mgr-dev-eu-central-1"


def test_string_values_from_environment_are_coerced(scenario_config) -> None:
    scenario_config.update(
        {
            "port": " 3307 ",
            "instances": "1",
            "deletion_protection": "false",
            "cloudwatch_logs_exports": "error, slowquery",
        }
    )

    params = resolve_parameters(scenario_config)

    assert params.port == 3307
    assert params.instances == 1
    assert params.deletion_protection is False
    assert params.cloudwatch_logs_exports == ("error", "slowquery")


@pytest.mark.parametrize("field", REQUIRED_FIELDS)
def test_missing_required_field_is_rejected(scenario_config, field) -> None:
    del scenario_config[field]

    with pytest.raises(ConfigurationError) as exc_info:
        resolve_parameters(scenario_config)

    assert exc_info.value.field == field


def test_blank_required_field_is_rejected(scenario_config) -> None:
    scenario_config["environment"] = "   "

    with pytest.raises(ConfigurationError) as exc_info:
        resolve_parameters(scenario_config)

    assert exc_info.value.field == "environment"


@pytest.mark.parametrize("port", ["abc", "33.06", True, [3306]])
def test_non_numeric_port_is_rejected(scenario_config, port) -> None:
    scenario_config["port"] = port

    with pytest.raises(ConfigurationError) as exc_info:
        resolve_parameters(scenario_config)

    assert exc_info.value.field == "port"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"port": 0}, "port"),
        ({"port": 70000}, "port"),
        ({"account": "12345"}, "account"),
        ({"region": "useast1"}, "region"),
        ({"org_name": "Org"}, "org_name"),
        ({"import_bucket_name": "Import"}, "import_bucket_name"),
        ({"export_bucket_name": "import"}, "export_bucket_name"),
        ({"db_cluster_identifier": "x" * 50}, "db_cluster_identifier"),
        ({"db_cluster_identifier": "db-"}, "db_cluster_identifier"),
        ({"secret_name": "bad secret"}, "secret_name"),
        ({"database_name": "1db"}, "database_name"),
        ({"instances": 0}, "instances"),
        ({"backup_retention_period": 36}, "backup_retention_period"),
        ({"monitoring_interval": 7}, "monitoring_interval"),
        ({"preferred_maintenance_window": "sun:25:00-sun:11:35"}, "preferred_maintenance_window"),
        ({"preferred_backup_window": "20:05"}, "preferred_backup_window"),
        ({"cloudwatch_logs_exports": ["audit", "postgresql"]}, "cloudwatch_logs_exports"),
        ({"secret_string_template": "not json"}, "secret_string_template"),
        ({"secret_string_template": '["username"]'}, "secret_string_template"),
        ({"secret_string_template": '{"user": "x"}'}, "secret_string_template"),
        ({"secret_string_template": '{"username": "x", "password": "y"}'}, "secret_string_template"),
    ],
)
def test_invalid_values_are_rejected(scenario_config, overrides, field) -> None:
    scenario_config.update(overrides)

    with pytest.raises(ConfigurationError) as exc_info:
        resolve_parameters(scenario_config)

    assert exc_info.value.field == field


def test_bucket_name_longer_than_63_characters_is_rejected(scenario_config) -> None:
    scenario_config["import_bucket_name"] = "i" * 50

    with pytest.raises(ConfigurationError) as exc_info:
        resolve_parameters(scenario_config)

    assert exc_info.value.field == "import_bucket_name"


def test_integer_account_is_zero_padded(scenario_config) -> None:
    scenario_config["account"] = 12345678901

    assert resolve_parameters(scenario_config).account == "012345678901"


_name_part = st.from_regex(r"[a-z][a-z0-9]{0,7}", fullmatch=True)


@given(org=_name_part, project=_name_part, env=_name_part)
def test_locators_are_pure_functions_of_their_inputs(org, project, env) -> None:
    config = {
        "org_name": org,
        "project_name": project,
        "environment": env,
        "region": "us-west-2",
        "account": "210987654321",
        "secret_name": "secret",
        "import_bucket_name": "import",
        "export_bucket_name": "export",
        "database_name": "testDB",
        "db_cluster_identifier": "db-server",
        "port": 3306,
    }

    first = resolve_parameters(config)
    second = resolve_parameters(dict(config))

    prefix = f"{org}-{project}-{env}-us-west-2"
    assert first == second
    assert first.secret_arn == second.secret_arn == (
        f"arn:aws:secretsmanager:us-west-2:210987654321:secret:{prefix}-secret"
    )
    assert first.cluster_arn == second.cluster_arn == (
        f"arn:aws:rds:us-west-2:210987654321:cluster:{prefix}-db-server"
    )
    assert [first.bucket_name(b) for b in first.bucket_roles] == [f"{prefix}-import", f"{prefix}-export"]
