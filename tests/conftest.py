"""
Pytest configuration for the database migration stack test suite.

Tests import `dbmigration` and `infrastructure` from the repository root
without requiring an editable install, so the root is put on `sys.path`.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parent.parent


def pytest_configure() -> None:
    """
    Ensure the local packages are importable for tests.

    This is intentionally minimal and only affects the test runtime.
    """
    if str(REPO_ROOT) not in sys.path:
        # Prepend so local sources win over any globally installed package.
        sys.path.insert(0, str(REPO_ROOT))


SCENARIO = {
    "org_name": "org",
    "project_name": "mgr",
    "environment": "dev",
    "region_name": "us-east-1",
    "region": "us-east-1",
    "account": "123456789012",
    "secret_name": "secret",
    "import_bucket_name": "import",
    "export_bucket_name": "export",
    "database_name": "testDB",
    "db_cluster_identifier": "db-server",
    "port": 3306,
}


@pytest.fixture
def scenario_config() -> dict:
    """Minimal valid configuration; everything else comes from the defaults."""
    return dict(SCENARIO)


@pytest.fixture
def params(scenario_config):
    from dbmigration.parameters import resolve_parameters

    return resolve_parameters(scenario_config)


@pytest.fixture
def ctx(params):
    from dbmigration.context import BuildContext

    return BuildContext(account=params.account, region=params.region)
