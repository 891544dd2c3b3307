"""
CDK stack that applies a finished migration descriptor graph.

The descriptor graph (see `dbmigration.builder.build_stack`) is rendered
construct by construct in topological order; every dependency edge becomes a
`node.add_dependency` call and every output record a `CfnOutput`.

Notes
-----
- The database credentials are read back from the generated secret by name
  (`Secret.from_secret_name_v2`), so the cluster never sees the plaintext.
- Parameter groups are imported by name; a missing group only fails at deploy
  time.
"""

from typing import Callable, Dict, Union

from aws_cdk import (
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
    aws_ec2 as ec2,
    aws_iam as iam,
    aws_rds as rds,
    aws_s3 as s3,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct

from dbmigration.builder import StackBuild
from dbmigration.models import (
    AttributeRef,
    BucketDescriptor,
    DatabaseClusterDescriptor,
    Descriptor,
    NetworkDescriptor,
    SecretDescriptor,
    SecurityGroupDescriptor,
    SubnetType,
)
from dbmigration.models import RemovalPolicy as DescriptorRemovalPolicy

_SUBNET_TYPES = {
    SubnetType.PUBLIC: ec2.SubnetType.PUBLIC,
    SubnetType.PRIVATE: ec2.SubnetType.PRIVATE_WITH_EGRESS,
    SubnetType.ISOLATED: ec2.SubnetType.PRIVATE_ISOLATED,
}

_REMOVAL_POLICIES = {
    DescriptorRemovalPolicy.DESTROY: RemovalPolicy.DESTROY,
    DescriptorRemovalPolicy.RETAIN: RemovalPolicy.RETAIN,
}

# Output attribute name -> CDK construct attribute
_ATTRIBUTES = {
    "VpcId": "vpc_id",
}


class MigrationStack(Stack):
    """Stack for the database migration environment (VPC, secret, buckets, Aurora)."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        build: StackBuild,
        **kwargs
    ) -> None:
        """
        Initialize the migration stack.

        Args:
            scope: The parent construct
            construct_id: The logical ID of the stack
            build: Validated descriptor graph and output records
            **kwargs: Additional arguments to pass to Stack
        """
        super().__init__(scope, construct_id, **kwargs)
        self.build = build
        self.resources: Dict[str, Construct] = {}

        renderers: Dict[str, Callable[[Descriptor], Construct]] = {
            NetworkDescriptor.kind: self._render_network,
            SecurityGroupDescriptor.kind: self._render_security_group,
            SecretDescriptor.kind: self._render_secret,
            BucketDescriptor.kind: self._render_bucket,
            DatabaseClusterDescriptor.kind: self._render_cluster,
        }

        # Dependencies are rendered before their dependents, so lookups below always hit.
        for logical_id in build.graph.topological_order():
            descriptor = build.graph.get(logical_id)
            self.resources[logical_id] = renderers[descriptor.kind](descriptor)

        for edge in build.graph.edges:
            self.resources[edge.dependent].node.add_dependency(self.resources[edge.dependency])

        for record in build.outputs:
            CfnOutput(
                self,
                record.logical_id,
                export_name=record.export_key,
                value=self._resolve(record.value),
                description=record.description,
            )

    def _resolve(self, value: Union[str, AttributeRef]) -> str:
        if isinstance(value, AttributeRef):
            return getattr(self.resources[value.logical_id], _ATTRIBUTES[value.attribute])
        return str(value)

    def _render_network(self, vpc: NetworkDescriptor) -> ec2.Vpc:
        return ec2.Vpc(
            self,
            vpc.logical_id,
            ip_addresses=ec2.IpAddresses.cidr(vpc.cidr),
            nat_gateways=vpc.nat_gateways,
            vpn_gateway=vpc.vpn_gateway,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name=tier.name,
                    subnet_type=_SUBNET_TYPES[tier.subnet_type],
                    cidr_mask=tier.cidr_mask,
                )
                for tier in vpc.subnet_tiers
            ],
        )

    def _render_security_group(self, group: SecurityGroupDescriptor) -> ec2.SecurityGroup:
        security_group = ec2.SecurityGroup(
            self,
            group.logical_id,
            vpc=self.resources[group.network_id],
            security_group_name=group.group_name,
            description=group.description,
            allow_all_outbound=group.allow_all_outbound,
        )
        for rule in group.ingress_rules:
            security_group.add_ingress_rule(
                ec2.Peer.ipv4(rule.peer),
                ec2.Port.tcp(rule.port),
                rule.description,
            )
        return security_group

    def _render_secret(self, secret: SecretDescriptor) -> secretsmanager.Secret:
        return secretsmanager.Secret(
            self,
            secret.logical_id,
            description=secret.description,
            secret_name=secret.secret_name,
            removal_policy=_REMOVAL_POLICIES[secret.removal_policy],
            generate_secret_string=secretsmanager.SecretStringGenerator(
                exclude_characters=secret.exclude_characters,
                exclude_punctuation=secret.exclude_punctuation,
                generate_string_key=secret.generate_string_key,
                password_length=secret.password_length,
                require_each_included_type=secret.require_each_included_type,
                secret_string_template=secret.secret_string_template,
            ),
        )

    def _render_bucket(self, bucket: BucketDescriptor) -> s3.Bucket:
        bpa = bucket.block_public_access
        s3_bucket = s3.Bucket(
            self,
            bucket.logical_id,
            bucket_name=bucket.bucket_name,
            versioned=bucket.versioned,
            removal_policy=_REMOVAL_POLICIES[bucket.removal_policy],
            access_control=s3.BucketAccessControl.PRIVATE,
            public_read_access=bucket.public_read_access,
            encryption=s3.BucketEncryption.S3_MANAGED,
            block_public_access=s3.BlockPublicAccess(
                block_public_acls=bpa.block_public_acls,
                block_public_policy=bpa.block_public_policy,
                ignore_public_acls=bpa.ignore_public_acls,
                restrict_public_buckets=bpa.restrict_public_buckets,
            ),
        )
        for statement in bucket.policy_statements:
            s3_bucket.add_to_resource_policy(
                iam.PolicyStatement(
                    sid=statement.sid,
                    effect=iam.Effect.ALLOW,
                    principals=[iam.ServicePrincipal(p) for p in statement.principals],
                    actions=list(statement.actions),
                    resources=list(statement.resources),
                    conditions=statement.conditions,
                )
            )
        return s3_bucket

    def _render_cluster(self, cluster: DatabaseClusterDescriptor) -> rds.DatabaseCluster:
        spec = cluster.instance_spec

        # Re-resolve the generated secret by name and pass field references only.
        referenced_secret = secretsmanager.Secret.from_secret_name_v2(
            self, "ReferencedAuroraDBClusterSecret", cluster.credentials.secret_name
        )
        credentials = rds.Credentials.from_password(
            referenced_secret.secret_value_from_json(cluster.credentials.username_field).unsafe_unwrap(),
            referenced_secret.secret_value_from_json(cluster.credentials.password_field),
        )

        vpc = self.resources[cluster.network_id]
        return rds.DatabaseCluster(
            self,
            cluster.logical_id,
            cluster_identifier=cluster.cluster_identifier,
            default_database_name=cluster.default_database_name,
            instance_identifier_base=cluster.instance_identifier_base,
            deletion_protection=cluster.deletion_protection,
            engine=rds.DatabaseClusterEngine.aurora_mysql(
                version=rds.AuroraMysqlEngineVersion.of(cluster.engine_version, cluster.engine_major_version)
            ),
            instances=cluster.instances,
            port=cluster.port,
            storage_encrypted=cluster.storage_encrypted,
            cloudwatch_logs_exports=list(cluster.cloudwatch_logs_exports),
            monitoring_interval=Duration.seconds(cluster.monitoring_interval) if cluster.monitoring_interval else None,
            removal_policy=_REMOVAL_POLICIES[cluster.removal_policy],
            preferred_maintenance_window=cluster.preferred_maintenance_window,
            backup=rds.BackupProps(
                preferred_window=cluster.preferred_backup_window,
                retention=Duration.days(cluster.backup_retention_days),
            ),
            credentials=credentials,
            instance_props=rds.InstanceProps(
                vpc=vpc,
                allow_major_version_upgrade=spec.allow_major_version_upgrade,
                auto_minor_version_upgrade=spec.auto_minor_version_upgrade,
                delete_automated_backups=spec.delete_automated_backups,
                instance_type=ec2.InstanceType.of(
                    getattr(ec2.InstanceClass, spec.instance_class.upper()),
                    getattr(ec2.InstanceSize, spec.instance_size.upper()),
                ),
                enable_performance_insights=spec.enable_performance_insights,
                security_groups=[self.resources[spec.security_group_id]],
                vpc_subnets=ec2.SubnetSelection(subnet_type=_SUBNET_TYPES[spec.subnet_type]),
                parameter_group=rds.ParameterGroup.from_parameter_group_name(
                    self, spec.parameter_group.logical_id, spec.parameter_group.name
                ),
            ),
            s3_import_buckets=[self.resources[logical_id] for logical_id in cluster.s3_import_buckets],
            s3_export_buckets=[self.resources[logical_id] for logical_id in cluster.s3_export_buckets],
            parameter_group=rds.ParameterGroup.from_parameter_group_name(
                self, cluster.cluster_parameter_group.logical_id, cluster.cluster_parameter_group.name
            ),
        )
