"""
Tests for configuration loading: defaults, JSON file and environment precedence.
"""

import json

import pytest

from dbmigration.config import deploy_target, load_config, load_config_file
from dbmigration.defaults import DEFAULT_PARAMETERS
from dbmigration.errors import ConfigurationError
from dbmigration.parameters import resolve_parameters


def test_defaults_plus_deploy_target_resolve() -> None:
    config = load_config(environ={"CDK_DEFAULT_ACCOUNT": "123456789012", "CDK_DEFAULT_REGION": "us-east-1"})

    params = resolve_parameters(config)

    assert params.name_prefix == "org-mgr-dev-us-east-1"
    assert params.port == 3306


def test_deploy_variables_win_over_cli_defaults() -> None:
    target = deploy_target(
        {
            "CDK_DEFAULT_ACCOUNT": "111111111111",
            "CDK_DEPLOY_ACCOUNT": "222222222222",
            "CDK_DEFAULT_REGION": "eu-central-1",
        }
    )

    assert target == {"account": "222222222222", "region": "eu-central-1"}


def test_missing_deploy_target_is_left_to_resolution() -> None:
    config = load_config(environ={})

    assert "account" not in config
    with pytest.raises(ConfigurationError) as exc_info:
        resolve_parameters(config)
    assert exc_info.value.field == "region"


def test_file_overrides_defaults_and_environment_overrides_file(tmp_path) -> None:
    path = tmp_path / "stack.json"
    path.write_text(json.dumps({"port": 5432, "environment": "qa", "instances": 1}), encoding="utf-8")

    config = load_config(
        path,
        environ={
            "CDK_DEPLOY_ACCOUNT": "123456789012",
            "CDK_DEPLOY_REGION": "us-east-1",
            "MIGRATION_PORT": "3307",
            "MIGRATION_ENVIRONMENT": "  ",
        },
    )

    assert config["port"] == "3307"
    assert config["environment"] == "qa"
    assert config["instances"] == 1
    assert config["database_name"] == DEFAULT_PARAMETERS["database_name"]
    assert resolve_parameters(config).port == 3307


@pytest.mark.parametrize("content", ["[1, 2]", "{not json"])
def test_bad_config_file_is_a_configuration_error(tmp_path, content) -> None:
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config_file(path)


def test_unreadable_config_file_is_a_configuration_error(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        load_config_file(tmp_path / "missing.json")
