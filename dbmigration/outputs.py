"""Named output records published after a successful construction pass."""

from __future__ import annotations

import logging
import re
from typing import List, Sequence

from .errors import NamingCollisionError
from .models import (
    AttributeRef,
    BucketDescriptor,
    BucketRole,
    DatabaseClusterDescriptor,
    NetworkContext,
    OutputKind,
    OutputRecord,
    StackParameters,
)

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")


def export_key(bucket: BucketRole, kind: OutputKind) -> str:
    """
    Export key for a bucket-derived output, e.g. ("import", BUCKET) -> "ImportBucketOutput".

    Only the first character is upper-cased; the rest of the base name is kept as is.
    """
    return bucket.name[:1].upper() + bucket.name[1:] + kind.value


def bucket_policy_arn(params: StackParameters, bucket: BucketDescriptor) -> str:
    return f"arn:aws:iam::{params.account}:policy/{bucket.bucket_name}-policy"


def _template_id(name: str) -> str:
    # CloudFormation drops non-alphanumerics from output ids
    return _NON_ALNUM_RE.sub("", name)


def ensure_unique_keys(records: Sequence[OutputRecord]) -> None:
    """
    Raise `NamingCollisionError` if two records share an output id or export key.

    Names are compared as the template sees them, so "my-data" and "mydata"
    collide even though the raw strings differ.
    """
    for attribute, kind in (("logical_id", "output id"), ("export_key", "export key")):
        seen = set()
        for record in records:
            name = getattr(record, attribute)
            if _template_id(name) in seen:
                raise NamingCollisionError(name, kind=kind)
            seen.add(_template_id(name))


def publish_outputs(
    params: StackParameters,
    network: NetworkContext,
    cluster: DatabaseClusterDescriptor,
    buckets: Sequence[BucketDescriptor],
) -> List[OutputRecord]:
    """
    Build the output records in their fixed order.

    The full list is checked for duplicate export keys before it is returned,
    so a collision never yields a partial output set.
    """
    records = [
        OutputRecord(
            logical_id="VpcOutput",
            export_key="Vpc",
            value=AttributeRef(network.network.logical_id, "VpcId"),
            description=params.vpc_description,
        ),
        OutputRecord(
            logical_id="VpcSecurityGroupOutput",
            export_key="VpcSecurityGroup",
            value=network.security_group.group_name,
            description=params.vpc_security_group_description,
        ),
        OutputRecord(
            logical_id="AuroraDBClusterSecretBOutput",
            export_key="AuroraDBClusterSecretBOutput",
            value=params.secret_arn,
            description=params.secret_description,
        ),
        OutputRecord(
            logical_id="AuroraDBClusterOutput",
            export_key="AuroraDBClusterOutput",
            value=f"arn:aws:rds:{params.region}:{params.account}:cluster:{cluster.cluster_identifier}",
            description=params.db_cluster_description,
        ),
    ]
    for bucket in buckets:
        for kind, value in (
            (OutputKind.BUCKET, bucket.bucket_arn),
            (OutputKind.POLICY, bucket_policy_arn(params, bucket)),
        ):
            key = export_key(bucket.bucket, kind)
            records.append(OutputRecord(logical_id=key, export_key=key, value=value))

    ensure_unique_keys(records)
    logger.debug("published %d output records", len(records))
    return records
