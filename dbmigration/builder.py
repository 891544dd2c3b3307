"""
Single construction pass for the database migration stack.

Order: parameters -> network -> secret -> buckets -> cluster -> graph check
-> outputs. Any error aborts the pass before outputs are published.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Union

from .context import BuildContext
from .database import provision_database
from .graph import DependencyGraph
from .models import (
    BucketDescriptor,
    CredentialReference,
    DatabaseClusterDescriptor,
    NetworkContext,
    OutputRecord,
    SecretDescriptor,
    StackParameters,
)
from .network import provision_network
from .outputs import publish_outputs
from .parameters import resolve_parameters
from .secret import provision_secret, reference_credentials
from .storage import provision_buckets

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StackBuild:
    """Finished descriptor graph plus the published outputs."""

    params: StackParameters
    network: NetworkContext
    secret: SecretDescriptor
    credentials: CredentialReference
    buckets: List[BucketDescriptor]
    cluster: DatabaseClusterDescriptor
    graph: DependencyGraph
    outputs: List[OutputRecord]

    def to_dict(self) -> dict:
        """JSON-ready handoff document for an external executor."""
        return {
            "stack": {
                "id": self.params.stack_id,
                "name": self.params.stack_name,
                "description": self.params.stack_description,
                "account": self.params.account,
                "region": self.params.region,
                "termination_protection": False,
                "analytics_reporting": True,
                "tags": {self.params.tag_key_name: self.params.name_prefix},
            },
            "graph": self.graph.to_dict(),
            "outputs": [record.to_dict() for record in self.outputs],
        }


def build_stack(config: Union[Mapping[str, Any], StackParameters]) -> StackBuild:
    """
    Run the full construction pass.

    Args:
        config: Raw configuration mapping or already-resolved parameters

    Returns:
        StackBuild with a validated, acyclic dependency graph

    Raises:
        ConfigurationError: invalid input (before any descriptor is built)
        NamingCollisionError: duplicate descriptor name or export key
        DependencyCycleError: the edge set is not acyclic
        UnresolvedReferenceError: a reference was used before registration
    """
    params = config if isinstance(config, StackParameters) else resolve_parameters(config)
    logger.info("building migration stack %s for %s/%s", params.name_prefix, params.account, params.region)

    ctx = BuildContext(account=params.account, region=params.region)
    network = provision_network(ctx, params)
    secret = provision_secret(ctx, params)
    credentials = reference_credentials(ctx, secret.secret_name)
    buckets = provision_buckets(ctx, params)
    cluster = provision_database(ctx, params, network, secret, credentials, buckets)

    ctx.graph.validate()
    outputs = publish_outputs(params, network, cluster, buckets)

    logger.info("built %d descriptors, %d edges, %d outputs", len(ctx.graph), len(ctx.graph.edges), len(outputs))
    return StackBuild(
        params=params,
        network=network,
        secret=secret,
        credentials=credentials,
        buckets=buckets,
        cluster=cluster,
        graph=ctx.graph,
        outputs=outputs,
    )
