"""AWS CDK Application for the Database Migration environment (dev-only)."""

import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from aws_cdk import App, Environment, Tags

from dbmigration.builder import build_stack
from dbmigration.config import load_config
from infrastructure.stacks.migration_stack import MigrationStack

logger = logging.getLogger("infrastructure.app")


def create_app(config_path=None) -> App:
    """
    Create and configure the CDK App (dev-only).

    Args:
        config_path: Optional JSON config file; defaults and MIGRATION_* /
            CDK_DEPLOY_* / CDK_DEFAULT_* environment variables apply otherwise

    Returns:
        Configured CDK App instance
    """
    app = App()
    config_path = config_path or app.node.try_get_context("config")

    build = build_stack(load_config(config_path))
    params = build.params

    # Global tags applied to all stacks in this app
    Tags.of(app).add("Project", "database-migration")
    Tags.of(app).add("ManagedBy", "CDK")
    Tags.of(app).add(params.tag_key_name, params.name_prefix)

    env_config = Environment(account=params.account, region=params.region)

    MigrationStack(
        app,
        params.stack_id,
        build=build,
        stack_name=params.stack_name,
        env=env_config,
        description=params.stack_description,
        termination_protection=False,
        analytics_reporting=True,
    )
    logger.info("synthesizing %s (%d outputs)", params.stack_name, len(build.outputs))

    return app


if __name__ == "__main__":
    create_app().synth()
