"""Default input parameters for the database migration stack (dev)."""

from __future__ import annotations

import json

ORG_NAME = "org"
PROJECT_NAME = "mgr"
SHORT_PREFIX = f"{ORG_NAME}-{PROJECT_NAME}"

DEFAULT_PARAMETERS = {
    # naming, tagging and stack
    "org_name": ORG_NAME,
    "project_name": PROJECT_NAME,
    "environment": "dev",
    "region_name": "us-east-1",
    "tag_key_name": "name",
    "stack_id": f"stack-{ORG_NAME}-01",
    "stack_name": "mgr-stack",
    "stack_description": "Deploys Resources for Database Migration with Python CDK.",
    # secret (username and password)
    "secret_name": "secret",
    "secret_description": "Dynamically generated secret - username and password",
    "exclude_characters": "@/'",
    "exclude_punctuation": True,
    "generate_string_key": "password",
    "password_length": 30,
    "require_each_included_type": False,
    "secret_string_template": json.dumps({"username": "db_admin"}),
    # aurora database
    "cloudwatch_logs_exports": ["audit", "error", "general", "slowquery"],
    "database_name": "testDB",
    "db_instance_parameter_group_name": "default.aurora-mysql5.7",
    "db_cluster_parameter_group_name": "default.aurora-mysql5.7",
    "db_cluster_description": f"The AWS RDS Aurora MySQL Cluster {SHORT_PREFIX}",
    "db_cluster_identifier": "db-server",
    "deletion_protection": True,
    "port": 3306,
    "instances": 2,
    "monitoring_interval": 60,
    "preferred_maintenance_window": "sun:11:05-sun:11:35",
    "preferred_backup_window": "20:05-20:35",
    "backup_retention_period": 1,
    "vpc_description": f"Vpc for {SHORT_PREFIX}",
    "vpc_security_group_description": f"Vpc Security Group for {SHORT_PREFIX}",
    # s3 buckets
    "import_bucket_name": "import",
    "export_bucket_name": "export",
}
