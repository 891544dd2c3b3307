"""Network provisioning: VPC with public and isolated tiers, plus its security group."""

from __future__ import annotations

import logging

from .context import BuildContext
from .models import (
    IngressRule,
    NetworkContext,
    NetworkDescriptor,
    SecurityGroupDescriptor,
    StackParameters,
    SubnetTier,
    SubnetType,
)

logger = logging.getLogger(__name__)

VPC_CIDR = "10.0.0.0/16"
ANY_IPV4 = "0.0.0.0/0"
SSH_PORT = 22

PUBLIC_SUBNET = "public"
ISOLATED_SUBNET = "isolated"

OUTBOUND_DESCRIPTION = "Outbound: Allow SSH Access to EC2 instances"
SSH_INGRESS_DESCRIPTION = "Ingress Rule: Allow SSH Access From Outside"
PORT_INGRESS_DESCRIPTION = "Ingress Rule: Allow Access to Specified Port Access From Outside"


def provision_network(ctx: BuildContext, params: StackParameters) -> NetworkContext:
    """
    Build the VPC descriptor and the security group bound to it.

    The security group opens TCP 22 and the database port to any IPv4
    address; outbound traffic is unrestricted.
    """
    vpc = NetworkDescriptor(
        logical_id="Vpc",
        cidr=VPC_CIDR,
        nat_gateways=0,
        vpn_gateway=False,
        subnet_tiers=[
            SubnetTier(PUBLIC_SUBNET, SubnetType.PUBLIC, 24),
            SubnetTier(ISOLATED_SUBNET, SubnetType.ISOLATED, 28),
        ],
        description=params.vpc_description,
    )
    ctx.graph.add(vpc)

    security_group = SecurityGroupDescriptor(
        logical_id="VpcSecurityGroup",
        group_name=params.security_group_name,
        description=OUTBOUND_DESCRIPTION,
        network_id=vpc.logical_id,
        allow_all_outbound=True,
    )
    security_group.add_ingress_rule(IngressRule(ANY_IPV4, "tcp", SSH_PORT, SSH_INGRESS_DESCRIPTION))
    security_group.add_ingress_rule(IngressRule(ANY_IPV4, "tcp", params.port, PORT_INGRESS_DESCRIPTION))
    ctx.graph.add(security_group, name=security_group.group_name)
    ctx.graph.require(security_group, vpc)

    logger.debug("network %s with security group %s", vpc.cidr, security_group.group_name)
    return NetworkContext(network=vpc, security_group=security_group)
