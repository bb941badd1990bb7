"""
Networking components for VPC, DNS and inter-VPC routing.

Components:
- VpcComponent: VPC, tiered subnets, NAT, route tables, flow logs
- Route53Component: Hosted zone and records
- TransitGatewayComponent: Transit gateway, VPC attachments, RAM share
"""

from aws_modules.components.networking.vpc import VpcArgs, VpcComponent, VpcOutputs
from aws_modules.components.networking.route53 import (
    Route53Args,
    Route53Component,
    Route53Outputs,
)
from aws_modules.components.networking.transit_gateway import (
    TransitGatewayArgs,
    TransitGatewayComponent,
    TransitGatewayOutputs,
)

__all__ = [
    "VpcArgs",
    "VpcComponent",
    "VpcOutputs",
    "Route53Args",
    "Route53Component",
    "Route53Outputs",
    "TransitGatewayArgs",
    "TransitGatewayComponent",
    "TransitGatewayOutputs",
]
