"""
Transit Gateway hub for connecting VPCs.

Creates:
- Transit gateway with a private-range ASN
- One VPC attachment per entry in ``vpc_attachments``
- A custom route table (optional) that every attachment is associated with and
  propagates into, plus the attachment's static routes
- A RAM share of the gateway when ``ram_share_principals`` is given
"""

from dataclasses import dataclass
from typing import Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import ArgsBlock, InputStr, ModuleArgs
from aws_modules.configs.constants import TGW_ASN_RANGES
from aws_modules.utils.cidr import is_valid_cidr
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_unique

Toggle = Literal["enable", "disable"]


class TgwRouteArgs(ArgsBlock):
    """Static route pointing at the owning attachment (or a blackhole)."""

    destination_cidr_block: str
    blackhole: bool = False

    @field_validator("destination_cidr_block")
    @classmethod
    def _check_cidr(cls, value: str) -> str:
        if not is_valid_cidr(value):
            raise ValueError(f"'{value}' is not a valid CIDR block")
        return value


class VpcAttachmentArgs(ArgsBlock):
    """A VPC attached to the transit gateway."""

    vpc_id: InputStr
    subnet_ids: list[InputStr] = Field(min_length=1)
    appliance_mode_support: Toggle = "disable"
    dns_support: Toggle = "enable"
    ipv6_support: Toggle = "disable"
    routes: list[TgwRouteArgs] = Field(default_factory=list)

    @field_validator("subnet_ids")
    @classmethod
    def _check_subnets(cls, value: list[InputStr]) -> list[InputStr]:
        check_unique([s for s in value if isinstance(s, str)], "attachment subnet id")
        return value


class TransitGatewayArgs(ModuleArgs):
    """Input arguments for the transit gateway module."""

    description: str = "Managed by Pulumi"
    amazon_side_asn: int = 64512
    auto_accept_shared_attachments: Toggle = "disable"
    default_route_table_association: Toggle = "enable"
    default_route_table_propagation: Toggle = "enable"
    dns_support: Toggle = "enable"
    vpn_ecmp_support: Toggle = "enable"
    multicast_support: Toggle = "disable"
    transit_gateway_cidr_blocks: list[str] = Field(default_factory=list)
    vpc_attachments: dict[str, VpcAttachmentArgs] = Field(default_factory=dict)
    create_route_table: bool = True
    ram_share_principals: list[str] = Field(default_factory=list)
    ram_allow_external_principals: bool = False

    @field_validator("amazon_side_asn")
    @classmethod
    def _check_asn(cls, value: int) -> int:
        if not any(low <= value <= high for low, high in TGW_ASN_RANGES):
            ranges = ", ".join(f"{low}-{high}" for low, high in TGW_ASN_RANGES)
            raise ValueError(f"amazon_side_asn {value} is not in a private ASN range ({ranges})")
        return value

    @field_validator("transit_gateway_cidr_blocks")
    @classmethod
    def _check_cidr_blocks(cls, value: list[str]) -> list[str]:
        for cidr in value:
            if not is_valid_cidr(cidr):
                raise ValueError(f"'{cidr}' is not a valid CIDR block")
        return check_unique(value, "transit gateway CIDR block")

    @field_validator("ram_share_principals")
    @classmethod
    def _check_principals(cls, value: list[str]) -> list[str]:
        return check_unique(value, "RAM principal")

    @model_validator(mode="after")
    def _check_routes(self) -> "TransitGatewayArgs":
        no_route_table = not self.create_route_table and self.default_route_table_association == "disable"
        if no_route_table and self.vpc_attachments:
            raise ValueError(
                "vpc_attachments need a route table: set create_route_table "
                "or enable default_route_table_association"
            )
        destinations = [
            route.destination_cidr_block
            for attachment in self.vpc_attachments.values()
            for route in attachment.routes
        ]
        check_unique(destinations, "static route destination")
        return self


@dataclass
class TransitGatewayOutputs:
    """Output values from transit gateway component."""
    transit_gateway_id: pulumi.Output[str]
    transit_gateway_arn: pulumi.Output[str]
    route_table_id: pulumi.Output[str]
    vpc_attachment_ids: dict[str, pulumi.Output[str]]
    ram_resource_share_arn: pulumi.Output[str] | None


class TransitGatewayComponent(pulumi.ComponentResource):
    """
    Transit gateway with VPC attachments, routing and optional RAM share.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: TransitGatewayArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:networking:TransitGateway", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        self.transit_gateway = aws.ec2transitgateway.TransitGateway(
            f"{name}-tgw",
            description=args.description,
            amazon_side_asn=args.amazon_side_asn,
            auto_accept_shared_attachments=args.auto_accept_shared_attachments,
            default_route_table_association=args.default_route_table_association,
            default_route_table_propagation=args.default_route_table_propagation,
            dns_support=args.dns_support,
            vpn_ecmp_support=args.vpn_ecmp_support,
            multicast_support=args.multicast_support,
            transit_gateway_cidr_blocks=args.transit_gateway_cidr_blocks or None,
            tags=module_tags(environment, f"{name}-tgw", args.tags),
            opts=child_opts,
        )

        self.route_table = None
        if args.create_route_table:
            self.route_table = aws.ec2transitgateway.RouteTable(
                f"{name}-rt",
                transit_gateway_id=self.transit_gateway.id,
                tags=module_tags(environment, f"{name}-rt", args.tags),
                opts=child_opts,
            )
            self.route_table_id = self.route_table.id
        else:
            self.route_table_id = self.transit_gateway.association_default_route_table_id

        self.vpc_attachments: dict[str, aws.ec2transitgateway.VpcAttachment] = {}
        for key, attachment_args in args.vpc_attachments.items():
            self._attach_vpc(name, environment, key, attachment_args, args, child_opts)

        self.resource_share = None
        if args.ram_share_principals:
            self._share(name, environment, args, child_opts)

        outputs = self.get_outputs()
        self.register_outputs({
            "transit_gateway_id": outputs.transit_gateway_id,
            "transit_gateway_arn": outputs.transit_gateway_arn,
            "route_table_id": outputs.route_table_id,
            "vpc_attachment_ids": outputs.vpc_attachment_ids,
            "ram_resource_share_arn": outputs.ram_resource_share_arn,
        })

    def _attach_vpc(
        self,
        name: str,
        environment: str,
        key: str,
        attachment_args: VpcAttachmentArgs,
        args: TransitGatewayArgs,
        opts: pulumi.ResourceOptions,
    ) -> None:
        # With a custom route table the default association/propagation is turned off
        use_default = not args.create_route_table
        attachment = aws.ec2transitgateway.VpcAttachment(
            f"{name}-{key}-attachment",
            transit_gateway_id=self.transit_gateway.id,
            vpc_id=attachment_args.vpc_id,
            subnet_ids=attachment_args.subnet_ids,
            appliance_mode_support=attachment_args.appliance_mode_support,
            dns_support=attachment_args.dns_support,
            ipv6_support=attachment_args.ipv6_support,
            transit_gateway_default_route_table_association=use_default,
            transit_gateway_default_route_table_propagation=use_default,
            tags=module_tags(environment, f"{name}-{key}", args.tags),
            opts=opts,
        )
        self.vpc_attachments[key] = attachment

        if self.route_table is not None:
            aws.ec2transitgateway.RouteTableAssociation(
                f"{name}-{key}-rt-assoc",
                transit_gateway_attachment_id=attachment.id,
                transit_gateway_route_table_id=self.route_table.id,
                opts=opts,
            )
            aws.ec2transitgateway.RouteTablePropagation(
                f"{name}-{key}-rt-propagation",
                transit_gateway_attachment_id=attachment.id,
                transit_gateway_route_table_id=self.route_table.id,
                opts=opts,
            )

        for index, route in enumerate(attachment_args.routes):
            aws.ec2transitgateway.Route(
                f"{name}-{key}-route-{index}",
                destination_cidr_block=route.destination_cidr_block,
                blackhole=route.blackhole,
                transit_gateway_attachment_id=None if route.blackhole else attachment.id,
                transit_gateway_route_table_id=self.route_table_id,
                opts=opts,
            )

    def _share(
        self,
        name: str,
        environment: str,
        args: TransitGatewayArgs,
        opts: pulumi.ResourceOptions,
    ) -> None:
        self.resource_share = aws.ram.ResourceShare(
            f"{name}-share",
            name=f"{name}-tgw",
            allow_external_principals=args.ram_allow_external_principals,
            tags=module_tags(environment, f"{name}-share", args.tags),
            opts=opts,
        )
        aws.ram.ResourceAssociation(
            f"{name}-share-tgw",
            resource_arn=self.transit_gateway.arn,
            resource_share_arn=self.resource_share.arn,
            opts=opts,
        )
        for index, principal in enumerate(args.ram_share_principals):
            aws.ram.PrincipalAssociation(
                f"{name}-share-principal-{index}",
                principal=principal,
                resource_share_arn=self.resource_share.arn,
                opts=opts,
            )

    def get_outputs(self) -> TransitGatewayOutputs:
        """Get transit gateway output values."""
        return TransitGatewayOutputs(
            transit_gateway_id=self.transit_gateway.id,
            transit_gateway_arn=self.transit_gateway.arn,
            route_table_id=self.route_table_id,
            vpc_attachment_ids={key: a.id for key, a in self.vpc_attachments.items()},
            ram_resource_share_arn=self.resource_share.arn if self.resource_share else None,
        )
