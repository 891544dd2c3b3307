"""
Import/export buckets for the database cluster.

Both buckets get the same security posture: private, S3-managed encryption,
all public access blocked, and a resource policy with three statements that
let the ECS and RDS service principals read from and write to the bucket.
The same statement set is applied to each bucket on its own, so each bucket
policy can be audited without looking at the other.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from .context import BuildContext
from .errors import UnresolvedReferenceError
from .models import BucketDescriptor, BucketRole, PolicyStatement, Role, StackParameters

logger = logging.getLogger(__name__)

TRUSTED_PRINCIPALS = ("ecs.amazonaws.com", "rds.amazonaws.com")

CONSOLE_READ_ACTIONS = ("s3:GetBucketAcl", "s3:GetBucketLocation", "s3:ListBucket")
OBJECT_READ_ACTIONS = ("s3:GetObject", "s3:GetObjectAcl", "s3:GetObjectVersion", "s3:GetObjectTagging")
OBJECT_WRITE_ACTIONS = ("s3:PutObject",)
OWNER_FULL_CONTROL = {"StringEquals": {"s3:x-amz-acl": ["bucket-owner-full-control"]}}


def bucket_policy_statements(bucket_arn: str) -> List[PolicyStatement]:
    """Console-read, object-read and owner-conditioned object-write, in that order."""
    bucket_and_objects = (bucket_arn, f"{bucket_arn}/*")
    return [
        PolicyStatement(
            sid="AWSECSS3ConsoleBucketRead",
            principals=TRUSTED_PRINCIPALS,
            actions=CONSOLE_READ_ACTIONS,
            resources=(bucket_arn,),
        ),
        PolicyStatement(
            sid="AWSECSS3BucketObjectRead",
            principals=TRUSTED_PRINCIPALS,
            actions=OBJECT_READ_ACTIONS,
            resources=bucket_and_objects,
        ),
        PolicyStatement(
            sid="AWSECSS3PutObject",
            principals=TRUSTED_PRINCIPALS,
            actions=OBJECT_WRITE_ACTIONS,
            resources=bucket_and_objects,
            conditions=OWNER_FULL_CONTROL,
        ),
    ]


def provision_bucket(ctx: BuildContext, params: StackParameters, bucket: BucketRole) -> BucketDescriptor:
    descriptor = BucketDescriptor(
        logical_id=f"{bucket.name}Bucket",
        bucket=bucket,
        bucket_name=params.bucket_name(bucket),
    )
    for statement in bucket_policy_statements(descriptor.bucket_arn):
        descriptor.add_to_resource_policy(statement)
    ctx.graph.add(descriptor, name=descriptor.bucket_name)
    logger.debug("%s bucket %s", bucket.role.value, descriptor.bucket_name)
    return descriptor


def provision_buckets(ctx: BuildContext, params: StackParameters) -> List[BucketDescriptor]:
    """
    Build one bucket per role.

    Returns:
        Bucket descriptors in role order (import at index 0, export at index 1)
    """
    return [provision_bucket(ctx, params, bucket) for bucket in params.bucket_roles]


def bucket_for(buckets: Sequence[BucketDescriptor], role: Role) -> BucketDescriptor:
    matches = [b for b in buckets if b.role is role]
    if len(matches) != 1:
        raise UnresolvedReferenceError(f"expected exactly one {role.value} bucket, found {len(matches)}")
    return matches[0]
