"""
Typed records for the migration stack descriptor graph.

Descriptors are in-memory, not-yet-applied representations of the resources
the stack provisions. They are created once during a construction pass and
only mutated (policy statements, dependency edges) before the pass finishes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union


class Role(str, Enum):
    """Purpose of a bucket from the database engine's point of view."""

    IMPORT = "import"
    EXPORT = "export"


class OutputKind(str, Enum):
    """Kind of bucket-derived output record, valued by its export-key suffix."""

    BUCKET = "BucketOutput"
    POLICY = "BucketPolicyOutput"


class RemovalPolicy(str, Enum):
    DESTROY = "destroy"
    RETAIN = "retain"


class SubnetType(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    ISOLATED = "isolated"


@dataclass(frozen=True)
class BucketRole:
    """A bucket base name paired with the role it plays for the cluster."""

    name: str
    role: Role


@dataclass(frozen=True)
class StackParameters:
    """
    Validated configuration for one migration stack.

    Produced once by `resolve_parameters`; every provisioner reads from this
    record and nothing else. Derived names are cached properties, so they are
    computed from the base fields exactly once per instance.
    """

    # naming, tagging and deploy target
    org_name: str
    project_name: str
    environment: str
    region_name: str
    account: str
    region: str
    tag_key_name: str
    stack_id: str
    stack_name: str
    stack_description: str
    # generated secret
    secret_name: str
    secret_description: str
    exclude_characters: str
    exclude_punctuation: bool
    generate_string_key: str
    password_length: int
    require_each_included_type: bool
    secret_string_template: str
    # database cluster
    cloudwatch_logs_exports: Tuple[str, ...]
    database_name: str
    db_instance_parameter_group_name: str
    db_cluster_parameter_group_name: str
    db_cluster_identifier: str
    db_cluster_description: str
    deletion_protection: bool
    port: int
    instances: int
    monitoring_interval: int
    preferred_maintenance_window: str
    preferred_backup_window: str
    backup_retention_period: int
    # network descriptions
    vpc_description: str
    vpc_security_group_description: str
    # buckets
    import_bucket_name: str
    export_bucket_name: str

    @cached_property
    def name_prefix(self) -> str:
        return f"{self.org_name}-{self.project_name}-{self.environment}-{self.region_name}"

    @cached_property
    def short_prefix(self) -> str:
        return f"{self.org_name}-{self.project_name}"

    @cached_property
    def secret_full_name(self) -> str:
        return f"{self.name_prefix}-{self.secret_name}"

    @cached_property
    def secret_arn(self) -> str:
        return f"arn:aws:secretsmanager:{self.region}:{self.account}:secret:{self.secret_full_name}"

    @cached_property
    def security_group_name(self) -> str:
        return f"{self.short_prefix}-vpc-sg"

    @cached_property
    def cluster_name(self) -> str:
        return f"{self.name_prefix}-{self.db_cluster_identifier}"

    @cached_property
    def cluster_arn(self) -> str:
        return f"arn:aws:rds:{self.region}:{self.account}:cluster:{self.cluster_name}"

    @cached_property
    def instance_identifier_base(self) -> str:
        return f"{self.cluster_name}-"

    @cached_property
    def bucket_roles(self) -> Tuple[BucketRole, ...]:
        """Bucket entries in role order: import first, export second."""
        return (
            BucketRole(self.import_bucket_name, Role.IMPORT),
            BucketRole(self.export_bucket_name, Role.EXPORT),
        )

    def bucket_name(self, bucket: BucketRole) -> str:
        return f"{self.name_prefix}-{bucket.name}"

    @property
    def secret_template(self) -> Dict[str, Any]:
        return json.loads(self.secret_string_template)


@dataclass(frozen=True)
class AttributeRef:
    """
    Deferred attribute of a descriptor, known only once the executor applies it.

    Rendered as a placeholder string when an output record is serialized.
    """

    logical_id: str
    attribute: str

    def __str__(self) -> str:
        return "${%s.%s}" % (self.logical_id, self.attribute)


@dataclass(frozen=True)
class IngressRule:
    peer: str
    protocol: str
    port: int
    description: str


@dataclass(frozen=True)
class SubnetTier:
    name: str
    subnet_type: SubnetType
    cidr_mask: int


@dataclass
class NetworkDescriptor:
    kind: ClassVar[str] = "network"

    logical_id: str
    cidr: str
    nat_gateways: int
    vpn_gateway: bool
    subnet_tiers: List[SubnetTier]
    description: str

    def tier(self, subnet_type: SubnetType) -> SubnetTier:
        for tier in self.subnet_tiers:
            if tier.subnet_type is subnet_type:
                return tier
        raise KeyError(subnet_type.value)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "logical_id": self.logical_id,
            "cidr": self.cidr,
            "nat_gateways": self.nat_gateways,
            "vpn_gateway": self.vpn_gateway,
            "subnet_tiers": [
                {"name": t.name, "subnet_type": t.subnet_type.value, "cidr_mask": t.cidr_mask}
                for t in self.subnet_tiers
            ],
            "description": self.description,
        }


@dataclass
class SecurityGroupDescriptor:
    kind: ClassVar[str] = "security_group"

    logical_id: str
    group_name: str
    description: str
    network_id: str
    allow_all_outbound: bool
    ingress_rules: List[IngressRule] = field(default_factory=list)

    def add_ingress_rule(self, rule: IngressRule) -> None:
        self.ingress_rules.append(rule)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "logical_id": self.logical_id,
            "group_name": self.group_name,
            "description": self.description,
            "network_id": self.network_id,
            "allow_all_outbound": self.allow_all_outbound,
            "ingress_rules": [
                {"peer": r.peer, "protocol": r.protocol, "port": r.port, "description": r.description}
                for r in self.ingress_rules
            ],
        }


@dataclass(frozen=True)
class NetworkContext:
    """The network and the access-control group bound to it."""

    network: NetworkDescriptor
    security_group: SecurityGroupDescriptor


@dataclass
class SecretDescriptor:
    kind: ClassVar[str] = "secret"

    logical_id: str
    secret_name: str
    description: str
    exclude_characters: str
    exclude_punctuation: bool
    generate_string_key: str
    password_length: int
    require_each_included_type: bool
    secret_string_template: str
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "logical_id": self.logical_id,
            "secret_name": self.secret_name,
            "description": self.description,
            "generate_secret_string": {
                "exclude_characters": self.exclude_characters,
                "exclude_punctuation": self.exclude_punctuation,
                "generate_string_key": self.generate_string_key,
                "password_length": self.password_length,
                "require_each_included_type": self.require_each_included_type,
                "secret_string_template": self.secret_string_template,
            },
            "removal_policy": self.removal_policy.value,
        }


@dataclass(frozen=True)
class SecretFieldRef:
    """Retrieval handle for one JSON field of a secret; never the value itself."""

    secret_name: str
    json_field: str

    def __str__(self) -> str:
        return "{{resolve:secretsmanager:%s:SecretString:%s}}" % (self.secret_name, self.json_field)


@dataclass(frozen=True)
class CredentialReference:
    """Username/password handles into a generated secret, looked up by name."""

    secret_name: str
    username_field: str
    password_field: str

    @property
    def username(self) -> SecretFieldRef:
        return SecretFieldRef(self.secret_name, self.username_field)

    @property
    def password(self) -> SecretFieldRef:
        return SecretFieldRef(self.secret_name, self.password_field)

    def to_dict(self) -> dict:
        return {"username": str(self.username), "password": str(self.password)}


@dataclass(frozen=True)
class PolicyStatement:
    sid: str
    principals: Tuple[str, ...]
    actions: Tuple[str, ...]
    resources: Tuple[str, ...]
    effect: str = "Allow"
    conditions: Optional[Dict[str, Dict[str, List[str]]]] = None

    def to_dict(self) -> dict:
        doc: Dict[str, Any] = {
            "Sid": self.sid,
            "Effect": self.effect,
            "Principal": {"Service": list(self.principals)},
            "Action": list(self.actions),
            "Resource": list(self.resources),
        }
        if self.conditions:
            doc["Condition"] = self.conditions
        return doc


@dataclass(frozen=True)
class BlockPublicAccess:
    block_public_acls: bool = True
    block_public_policy: bool = True
    ignore_public_acls: bool = True
    restrict_public_buckets: bool = True


@dataclass
class BucketDescriptor:
    kind: ClassVar[str] = "bucket"

    logical_id: str
    bucket: BucketRole
    bucket_name: str
    versioned: bool = False
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY
    access_control: str = "private"
    public_read_access: bool = False
    encryption: str = "s3_managed"
    block_public_access: BlockPublicAccess = field(default_factory=BlockPublicAccess)
    policy_statements: List[PolicyStatement] = field(default_factory=list)

    @property
    def role(self) -> Role:
        return self.bucket.role

    @property
    def bucket_arn(self) -> str:
        return f"arn:aws:s3:::{self.bucket_name}"

    def add_to_resource_policy(self, statement: PolicyStatement) -> None:
        self.policy_statements.append(statement)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "logical_id": self.logical_id,
            "role": self.role.value,
            "bucket_name": self.bucket_name,
            "versioned": self.versioned,
            "removal_policy": self.removal_policy.value,
            "access_control": self.access_control,
            "public_read_access": self.public_read_access,
            "encryption": self.encryption,
            "block_public_access": {
                "block_public_acls": self.block_public_access.block_public_acls,
                "block_public_policy": self.block_public_access.block_public_policy,
                "ignore_public_acls": self.block_public_access.ignore_public_acls,
                "restrict_public_buckets": self.block_public_access.restrict_public_buckets,
            },
            "policy": {
                "Version": "2012-10-17",
                "Statement": [s.to_dict() for s in self.policy_statements],
            },
        }


@dataclass(frozen=True)
class ParameterGroupRef:
    """A pre-existing parameter group, resolved by name when applied."""

    logical_id: str
    name: str
    scope: str  # "instance" or "cluster"


@dataclass(frozen=True)
class InstanceSpec:
    instance_class: str
    instance_size: str
    subnet_type: SubnetType
    security_group_id: str
    parameter_group: ParameterGroupRef
    enable_performance_insights: bool = False
    allow_major_version_upgrade: bool = True
    auto_minor_version_upgrade: bool = True
    delete_automated_backups: bool = True

    @property
    def instance_type(self) -> str:
        return f"{self.instance_class}.{self.instance_size}"


@dataclass
class DatabaseClusterDescriptor:
    kind: ClassVar[str] = "database_cluster"

    logical_id: str
    cluster_identifier: str
    instance_identifier_base: str
    default_database_name: str
    engine: str
    engine_version: str
    instances: int
    port: int
    storage_encrypted: bool
    deletion_protection: bool
    cloudwatch_logs_exports: Tuple[str, ...]
    monitoring_interval: int
    preferred_maintenance_window: str
    preferred_backup_window: str
    backup_retention_days: int
    credentials: CredentialReference
    network_id: str
    instance_spec: InstanceSpec
    cluster_parameter_group: ParameterGroupRef
    s3_import_buckets: Tuple[str, ...]
    s3_export_buckets: Tuple[str, ...]
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY

    @property
    def engine_major_version(self) -> str:
        return ".".join(self.engine_version.split(".")[:2])

    def to_dict(self) -> dict:
        spec = self.instance_spec
        return {
            "kind": self.kind,
            "logical_id": self.logical_id,
            "cluster_identifier": self.cluster_identifier,
            "instance_identifier_base": self.instance_identifier_base,
            "default_database_name": self.default_database_name,
            "engine": self.engine,
            "engine_version": self.engine_version,
            "instances": self.instances,
            "port": self.port,
            "storage_encrypted": self.storage_encrypted,
            "deletion_protection": self.deletion_protection,
            "cloudwatch_logs_exports": list(self.cloudwatch_logs_exports),
            "monitoring_interval": self.monitoring_interval,
            "preferred_maintenance_window": self.preferred_maintenance_window,
            "backup": {
                "preferred_window": self.preferred_backup_window,
                "retention_days": self.backup_retention_days,
            },
            "credentials": self.credentials.to_dict(),
            "network_id": self.network_id,
            "instance_spec": {
                "instance_type": spec.instance_type,
                "subnet_type": spec.subnet_type.value,
                "security_group_id": spec.security_group_id,
                "parameter_group": spec.parameter_group.name,
                "enable_performance_insights": spec.enable_performance_insights,
                "allow_major_version_upgrade": spec.allow_major_version_upgrade,
                "auto_minor_version_upgrade": spec.auto_minor_version_upgrade,
                "delete_automated_backups": spec.delete_automated_backups,
            },
            "cluster_parameter_group": self.cluster_parameter_group.name,
            "s3_import_buckets": list(self.s3_import_buckets),
            "s3_export_buckets": list(self.s3_export_buckets),
            "removal_policy": self.removal_policy.value,
        }


Descriptor = Union[
    NetworkDescriptor,
    SecurityGroupDescriptor,
    SecretDescriptor,
    BucketDescriptor,
    DatabaseClusterDescriptor,
]


@dataclass(frozen=True)
class DependencyEdge:
    """`dependent` must not be applied before `dependency` exists."""

    dependent: str
    dependency: str


@dataclass(frozen=True)
class OutputRecord:
    logical_id: str
    export_key: str
    value: Union[str, AttributeRef]
    description: Optional[str] = None

    def to_dict(self) -> dict:
        record = {"export_key": self.export_key, "value": str(self.value)}
        if self.description is not None:
            record["description"] = self.description
        return record
