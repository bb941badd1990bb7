"""
VPC Component Resource for Network Infrastructure.

Steps & Architecture:
1. VPC: The isolated network container. CIDR prefix must be between /16 and /24.
2. Subnets (one per AZ per tier, in AZ order):
   - Public: Route 0.0.0.0/0 -> Internet Gateway. Hosts NAT gateways.
   - Private: Route 0.0.0.0/0 -> NAT gateway when NAT is enabled, otherwise local only.
   - Database: Local route only. Grouped into a DB subnet group when there are 2+.
   When no subnet CIDRs are given, the three tiers are carved out of the VPC CIDR
   with ``cidr_subnet`` (public first, then private, then database).
3. NAT:
   - single_nat_gateway: one NAT in the first public subnet, one shared private route table.
   - otherwise: one NAT per private subnet, each in the public subnet of the same index,
     each with its own private route table.
4. Default resources: the default security group is adopted and emptied of rules.
5. Flow logs (optional): CloudWatch log group plus an IAM role for the delivery service.
"""

from dataclasses import dataclass
from typing import Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import ModuleArgs
from aws_modules.configs.constants import LOG_RETENTION_DAYS, MAX_AZS, VPC_PREFIX_RANGE
from aws_modules.utils import policies
from aws_modules.utils.cidr import find_overlap, is_valid_cidr, plan_subnets, prefix_length, subnet_within
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_unique

SUBNET_TIERS = ("public", "private", "database")


class VpcArgs(ModuleArgs):
    """Input arguments for the VPC module."""

    cidr_block: str = "10.0.0.0/16"
    azs: list[str] = Field(min_length=1, max_length=MAX_AZS)
    public_subnets: list[str] = Field(default_factory=list)
    private_subnets: list[str] = Field(default_factory=list)
    database_subnets: list[str] = Field(default_factory=list)
    map_public_ip_on_launch: bool = False

    enable_nat_gateway: bool = False
    single_nat_gateway: bool = False
    enable_dns_hostnames: bool = True
    enable_dns_support: bool = True

    enable_flow_log: bool = False
    flow_log_traffic_type: Literal["ACCEPT", "REJECT", "ALL"] = "ALL"
    flow_log_retention_in_days: int = 30

    manage_default_security_group: bool = True
    create_database_subnet_group: bool = True

    @field_validator("cidr_block")
    @classmethod
    def _check_cidr_block(cls, value: str) -> str:
        if not is_valid_cidr(value) or ":" in value:
            raise ValueError(f"'{value}' is not a valid IPv4 CIDR block")
        low, high = VPC_PREFIX_RANGE
        if not low <= prefix_length(value) <= high:
            raise ValueError(f"VPC CIDR prefix must be between /{low} and /{high}, got '{value}'")
        return value

    @field_validator("azs")
    @classmethod
    def _check_azs(cls, value: list[str]) -> list[str]:
        return check_unique(value, "availability zone")

    @field_validator("public_subnets", "private_subnets", "database_subnets")
    @classmethod
    def _check_subnet_cidrs(cls, value: list[str]) -> list[str]:
        for cidr in value:
            if not is_valid_cidr(cidr):
                raise ValueError(f"'{cidr}' is not a valid CIDR block")
        return value

    @field_validator("flow_log_retention_in_days")
    @classmethod
    def _check_retention(cls, value: int) -> int:
        if value not in LOG_RETENTION_DAYS:
            raise ValueError(f"flow_log_retention_in_days must be one of {sorted(LOG_RETENTION_DAYS)}")
        return value

    @model_validator(mode="after")
    def _check_layout(self) -> "VpcArgs":
        layout = self.subnet_layout()
        all_cidrs = []
        for tier, cidrs in layout.items():
            if len(cidrs) > len(self.azs):
                raise ValueError(f"{len(cidrs)} {tier} subnets but only {len(self.azs)} AZs")
            for cidr in cidrs:
                if not subnet_within(cidr, self.cidr_block):
                    raise ValueError(f"{tier} subnet '{cidr}' is outside the VPC CIDR '{self.cidr_block}'")
            all_cidrs.extend(cidrs)
        overlap = find_overlap(all_cidrs)
        if overlap:
            raise ValueError(f"subnets '{overlap[0]}' and '{overlap[1]}' overlap")

        if self.enable_nat_gateway:
            if not layout["public"]:
                raise ValueError("enable_nat_gateway requires at least one public subnet")
            if not self.single_nat_gateway and len(layout["public"]) < len(layout["private"]):
                raise ValueError(
                    "one NAT gateway per private subnet needs a public subnet for each; "
                    "add public subnets or set single_nat_gateway"
                )
        return self

    def subnet_layout(self) -> dict[str, list[str]]:
        """Subnet CIDRs per tier, computed from the VPC CIDR when none are given."""
        explicit = {
            "public": self.public_subnets,
            "private": self.private_subnets,
            "database": self.database_subnets,
        }
        if any(explicit.values()):
            return explicit
        return plan_subnets(self.cidr_block, len(self.azs), SUBNET_TIERS)

    @property
    def nat_gateway_count(self) -> int:
        if not self.enable_nat_gateway:
            return 0
        if self.single_nat_gateway:
            return 1
        return max(len(self.subnet_layout()["private"]), 1)


@dataclass
class VpcOutputs:
    """Output values from VPC component."""
    vpc_id: pulumi.Output[str]
    vpc_cidr_block: pulumi.Output[str]
    igw_id: pulumi.Output[str] | None
    public_subnet_ids: list[pulumi.Output[str]]
    private_subnet_ids: list[pulumi.Output[str]]
    database_subnet_ids: list[pulumi.Output[str]]
    database_subnet_group_name: pulumi.Output[str] | None
    nat_gateway_ids: list[pulumi.Output[str]]
    nat_public_ips: list[pulumi.Output[str]]
    public_route_table_id: pulumi.Output[str] | None
    private_route_table_ids: list[pulumi.Output[str]]


class VpcComponent(pulumi.ComponentResource):
    """
    VPC component with tiered subnets, optional NAT and flow logs.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: VpcArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:networking:Vpc", name, None, opts)
        self.environment = environment
        self.args = args

        child_opts = pulumi.ResourceOptions(parent=self)
        layout = args.subnet_layout()

        # Create VPC
        self.vpc = aws.ec2.Vpc(
            f"{name}-vpc",
            cidr_block=args.cidr_block,
            enable_dns_hostnames=args.enable_dns_hostnames,
            enable_dns_support=args.enable_dns_support,
            tags=self._tags(f"{name}-vpc"),
            opts=child_opts,
        )

        self.public_subnets = self._create_subnets(name, "public", layout["public"], child_opts)
        self.private_subnets = self._create_subnets(name, "private", layout["private"], child_opts)
        self.database_subnets = self._create_subnets(name, "database", layout["database"], child_opts)

        # Internet Gateway only when something can route to it
        self.igw = None
        if self.public_subnets:
            self.igw = aws.ec2.InternetGateway(
                f"{name}-igw",
                vpc_id=self.vpc.id,
                tags=self._tags(f"{name}-igw"),
                opts=child_opts,
            )

        self._create_nat_gateways(name, child_opts)
        self._create_route_tables(name, child_opts)

        self.database_subnet_group = None
        if args.create_database_subnet_group and len(self.database_subnets) >= 2:
            self.database_subnet_group = aws.rds.SubnetGroup(
                f"{name}-db-subnet-group",
                name=f"{name}-db".lower(),
                description=f"Database subnet group for {name}",
                subnet_ids=[subnet.id for subnet in self.database_subnets],
                tags=self._tags(f"{name}-db-subnet-group"),
                opts=child_opts,
            )

        if args.manage_default_security_group:
            # Adopted for management as it cannot be deleted
            aws.ec2.DefaultSecurityGroup(
                f"{name}-default-sg",
                vpc_id=self.vpc.id,
                ingress=[],  # DO NOT ADD RULES
                egress=[],  # DO NOT ADD RULES
                tags=self._tags("do-not-use-default"),
                opts=child_opts,
            )

        self.flow_log = None
        if args.enable_flow_log:
            self._create_flow_log(name, child_opts)

        outputs = self.get_outputs()
        self.register_outputs({
            "vpc_id": outputs.vpc_id,
            "vpc_cidr_block": outputs.vpc_cidr_block,
            "igw_id": outputs.igw_id,
            "public_subnet_ids": outputs.public_subnet_ids,
            "private_subnet_ids": outputs.private_subnet_ids,
            "database_subnet_ids": outputs.database_subnet_ids,
            "database_subnet_group_name": outputs.database_subnet_group_name,
            "nat_gateway_ids": outputs.nat_gateway_ids,
            "nat_public_ips": outputs.nat_public_ips,
            "public_route_table_id": outputs.public_route_table_id,
            "private_route_table_ids": outputs.private_route_table_ids,
        })

    def _tags(self, resource_name: str, **extra: str) -> dict[str, str]:
        return module_tags(self.environment, resource_name, {**self.args.tags, **extra})

    def _create_subnets(
        self,
        name: str,
        tier: str,
        cidrs: list[str],
        opts: pulumi.ResourceOptions,
    ) -> list[aws.ec2.Subnet]:
        subnets = []
        for index, cidr in enumerate(cidrs):
            az = self.args.azs[index]
            subnets.append(aws.ec2.Subnet(
                f"{name}-{tier}-{index}",
                vpc_id=self.vpc.id,
                cidr_block=cidr,
                availability_zone=az,
                map_public_ip_on_launch=self.args.map_public_ip_on_launch if tier == "public" else False,
                tags=self._tags(f"{name}-{tier}-{az}", Tier=tier),
                opts=opts,
            ))
        return subnets

    def _create_nat_gateways(self, name: str, opts: pulumi.ResourceOptions) -> None:
        self.nat_eips: list[aws.ec2.Eip] = []
        self.nat_gateways: list[aws.ec2.NatGateway] = []
        for index in range(self.args.nat_gateway_count):
            eip = aws.ec2.Eip(
                f"{name}-nat-eip-{index}",
                domain="vpc",
                tags=self._tags(f"{name}-nat-eip-{index}"),
                opts=pulumi.ResourceOptions(parent=self, depends_on=[self.igw]),
            )
            self.nat_eips.append(eip)
            self.nat_gateways.append(aws.ec2.NatGateway(
                f"{name}-nat-{index}",
                allocation_id=eip.id,
                subnet_id=self.public_subnets[index].id,
                tags=self._tags(f"{name}-nat-{index}"),
                opts=pulumi.ResourceOptions(parent=self, depends_on=[self.igw]),
            ))

    def _create_route_tables(self, name: str, opts: pulumi.ResourceOptions) -> None:
        """Create route tables for each subnet tier."""
        self.public_rt = None
        if self.public_subnets:
            self.public_rt = aws.ec2.RouteTable(
                f"{name}-public-rt",
                vpc_id=self.vpc.id,
                routes=[
                    aws.ec2.RouteTableRouteArgs(
                        cidr_block="0.0.0.0/0",
                        gateway_id=self.igw.id,
                    ),
                ],
                tags=self._tags(f"{name}-public-rt"),
                opts=opts,
            )
            for index, subnet in enumerate(self.public_subnets):
                aws.ec2.RouteTableAssociation(
                    f"{name}-public-rt-assoc-{index}",
                    subnet_id=subnet.id,
                    route_table_id=self.public_rt.id,
                    opts=opts,
                )

        # One private route table per NAT gateway, or a single local-only table
        self.private_rts: list[aws.ec2.RouteTable] = []
        if self.private_subnets:
            for index in range(max(len(self.nat_gateways), 1)):
                routes = []
                if self.nat_gateways:
                    routes.append(aws.ec2.RouteTableRouteArgs(
                        cidr_block="0.0.0.0/0",
                        nat_gateway_id=self.nat_gateways[index].id,
                    ))
                self.private_rts.append(aws.ec2.RouteTable(
                    f"{name}-private-rt-{index}",
                    vpc_id=self.vpc.id,
                    routes=routes,
                    tags=self._tags(f"{name}-private-rt-{index}"),
                    opts=opts,
                ))
            for index, subnet in enumerate(self.private_subnets):
                aws.ec2.RouteTableAssociation(
                    f"{name}-private-rt-assoc-{index}",
                    subnet_id=subnet.id,
                    route_table_id=self.private_rts[index % len(self.private_rts)].id,
                    opts=opts,
                )

        # Database subnets never route to the internet
        self.database_rt = None
        if self.database_subnets:
            self.database_rt = aws.ec2.RouteTable(
                f"{name}-database-rt",
                vpc_id=self.vpc.id,
                routes=[],
                tags=self._tags(f"{name}-database-rt"),
                opts=opts,
            )
            for index, subnet in enumerate(self.database_subnets):
                aws.ec2.RouteTableAssociation(
                    f"{name}-database-rt-assoc-{index}",
                    subnet_id=subnet.id,
                    route_table_id=self.database_rt.id,
                    opts=opts,
                )

    def _create_flow_log(self, name: str, opts: pulumi.ResourceOptions) -> None:
        self.flow_log_group = aws.cloudwatch.LogGroup(
            f"{name}-flow-logs",
            name=f"/aws/vpc-flow-log/{name}",
            retention_in_days=self.args.flow_log_retention_in_days,
            tags=self._tags(f"{name}-flow-logs"),
            opts=opts,
        )

        self.flow_log_role = aws.iam.Role(
            f"{name}-flow-log-role",
            assume_role_policy=policies.assume_role_policy("vpc-flow-logs.amazonaws.com"),
            tags=self._tags(f"{name}-flow-log-role"),
            opts=opts,
        )

        aws.iam.RolePolicy(
            f"{name}-flow-log-policy",
            role=self.flow_log_role.id,
            policy=policies.to_json(policies.policy_document([
                policies.statement(
                    [
                        "logs:CreateLogStream",
                        "logs:PutLogEvents",
                        "logs:DescribeLogGroups",
                        "logs:DescribeLogStreams",
                    ],
                    resources=[
                        self.flow_log_group.arn,
                        pulumi.Output.concat(self.flow_log_group.arn, ":*"),
                    ],
                ),
            ])),
            opts=opts,
        )

        self.flow_log = aws.ec2.FlowLog(
            f"{name}-flow-log",
            vpc_id=self.vpc.id,
            traffic_type=self.args.flow_log_traffic_type,
            log_destination_type="cloud-watch-logs",
            log_destination=self.flow_log_group.arn,
            iam_role_arn=self.flow_log_role.arn,
            tags=self._tags(f"{name}-flow-log"),
            opts=opts,
        )

    def get_outputs(self) -> VpcOutputs:
        """Get VPC output values."""
        return VpcOutputs(
            vpc_id=self.vpc.id,
            vpc_cidr_block=self.vpc.cidr_block,
            igw_id=self.igw.id if self.igw else None,
            public_subnet_ids=[s.id for s in self.public_subnets],
            private_subnet_ids=[s.id for s in self.private_subnets],
            database_subnet_ids=[s.id for s in self.database_subnets],
            database_subnet_group_name=self.database_subnet_group.name if self.database_subnet_group else None,
            nat_gateway_ids=[n.id for n in self.nat_gateways],
            nat_public_ips=[e.public_ip for e in self.nat_eips],
            public_route_table_id=self.public_rt.id if self.public_rt else None,
            private_route_table_ids=[rt.id for rt in self.private_rts],
        )
