"""Aurora MySQL cluster descriptor wired to network, credentials and buckets."""

from __future__ import annotations

import logging
from typing import Sequence

from .context import BuildContext
from .models import (
    BucketDescriptor,
    CredentialReference,
    DatabaseClusterDescriptor,
    InstanceSpec,
    NetworkContext,
    ParameterGroupRef,
    Role,
    SecretDescriptor,
    StackParameters,
    SubnetType,
)
from .storage import bucket_for

logger = logging.getLogger(__name__)

ENGINE = "aurora-mysql"
ENGINE_VERSION = "5.7.12"
# Performance Insights is not supported on burstable3.medium, so it stays off.
INSTANCE_CLASS = "burstable3"
INSTANCE_SIZE = "medium"


def provision_database(
    ctx: BuildContext,
    params: StackParameters,
    network: NetworkContext,
    secret: SecretDescriptor,
    credentials: CredentialReference,
    buckets: Sequence[BucketDescriptor],
) -> DatabaseClusterDescriptor:
    """
    Build the non-serverless cluster descriptor and its dependency edges.

    Parameter groups are referenced by name only; a name that does not exist
    in the target account fails when the executor applies the graph.
    """
    import_bucket = bucket_for(buckets, Role.IMPORT)
    export_bucket = bucket_for(buckets, Role.EXPORT)

    instance_spec = InstanceSpec(
        instance_class=INSTANCE_CLASS,
        instance_size=INSTANCE_SIZE,
        subnet_type=SubnetType.ISOLATED,
        security_group_id=network.security_group.logical_id,
        parameter_group=ParameterGroupRef(
            "AuroraMySQLInstanceParameterGroup", params.db_instance_parameter_group_name, "instance"
        ),
        enable_performance_insights=False,
    )

    cluster = DatabaseClusterDescriptor(
        logical_id="AuroraDBCluster",
        cluster_identifier=params.cluster_name,
        instance_identifier_base=params.instance_identifier_base,
        default_database_name=params.database_name,
        engine=ENGINE,
        engine_version=ENGINE_VERSION,
        instances=params.instances,
        port=params.port,
        storage_encrypted=True,
        deletion_protection=params.deletion_protection,
        cloudwatch_logs_exports=params.cloudwatch_logs_exports,
        monitoring_interval=params.monitoring_interval,
        preferred_maintenance_window=params.preferred_maintenance_window,
        preferred_backup_window=params.preferred_backup_window,
        backup_retention_days=params.backup_retention_period,
        credentials=credentials,
        network_id=network.network.logical_id,
        instance_spec=instance_spec,
        cluster_parameter_group=ParameterGroupRef(
            "AuroraMySQLClusterParameterGroup", params.db_cluster_parameter_group_name, "cluster"
        ),
        s3_import_buckets=(import_bucket.logical_id,),
        s3_export_buckets=(export_bucket.logical_id,),
    )
    ctx.graph.add(cluster, name=cluster.cluster_identifier)

    for dependency in (network.network, network.security_group, import_bucket, export_bucket, secret):
        ctx.graph.require(cluster, dependency)

    logger.debug("cluster %s (%d instances)", cluster.cluster_identifier, cluster.instances)
    return cluster
