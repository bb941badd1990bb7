"""
EC2 baseline component for a single hardened instance.

Key Components:
1. AMI: Latest Amazon Linux 2023 from the public SSM parameter unless ``ami_id`` is given.
2. Security Group: All egress, plus the caller's ingress rules (CIDR or source SG).
3. Instance Profile: IAM role with AmazonSSMManagedInstanceCore so Session Manager
   replaces SSH, plus any extra managed policies.
4. Storage (root_block_device): gp3 by default, always encrypted.
5. IMDSv2 (http_tokens="required", hop limit 1): always on, not configurable.
"""

import re
from dataclasses import dataclass
from typing import Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import ArgsBlock, InputStr, ModuleArgs
from aws_modules.configs.constants import AL2023_AMI_PARAMETER, MANAGED_POLICY_ARNS
from aws_modules.utils import policies
from aws_modules.utils.cidr import is_valid_cidr
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_arn, check_kms_key, check_port_range

INSTANCE_TYPE_PATTERN = re.compile(r"^[a-z][a-z0-9-]*\.[a-z0-9]+$")
IP_PROTOCOLS = frozenset({"tcp", "udp", "icmp", "icmpv6", "-1"})


class IngressRuleArgs(ArgsBlock):
    """Inbound rule on the instance security group."""

    description: str | None = None
    from_port: int | None = None
    to_port: int | None = None
    ip_protocol: str = "tcp"
    cidr_ipv4: str | None = None
    referenced_security_group_id: InputStr | None = None

    @field_validator("ip_protocol")
    @classmethod
    def _check_protocol(cls, value: str) -> str:
        if value not in IP_PROTOCOLS and not value.isdigit():
            raise ValueError(f"ip_protocol must be one of {sorted(IP_PROTOCOLS)} or a protocol number")
        return value

    @field_validator("cidr_ipv4")
    @classmethod
    def _check_cidr(cls, value: str | None) -> str | None:
        if value is not None and not is_valid_cidr(value):
            raise ValueError(f"'{value}' is not a valid IPv4 CIDR")
        return value

    @model_validator(mode="after")
    def _check_rule(self) -> "IngressRuleArgs":
        if (self.cidr_ipv4 is None) == (self.referenced_security_group_id is None):
            raise ValueError("ingress rules need exactly one of cidr_ipv4 or referenced_security_group_id")
        if self.ip_protocol == "-1":
            if self.from_port is not None or self.to_port is not None:
                raise ValueError("ports cannot be set when ip_protocol is '-1'")
            return self
        if self.from_port is None or self.to_port is None:
            raise ValueError(f"from_port and to_port are required for ip_protocol '{self.ip_protocol}'")
        check_port_range(self.from_port, self.to_port)
        return self


class Ec2BaselineArgs(ModuleArgs):
    """Input arguments for the EC2 baseline module."""

    instance_type: str = "t3.micro"
    ami_id: InputStr | None = None
    subnet_id: InputStr
    vpc_id: InputStr
    ingress_rules: list[IngressRuleArgs] = Field(default_factory=list)
    associate_public_ip_address: bool = False
    root_volume_size: int = Field(default=30, ge=8, le=16384)
    root_volume_type: Literal["gp2", "gp3", "io1", "io2"] = "gp3"
    kms_key_id: InputStr | None = None
    key_name: str | None = None
    user_data: str | None = None
    detailed_monitoring: bool = False
    policy_arns: list[str] = Field(default_factory=list)

    @field_validator("instance_type")
    @classmethod
    def _check_instance_type(cls, value: str) -> str:
        if not INSTANCE_TYPE_PATTERN.match(value):
            raise ValueError(f"'{value}' is not a valid instance type (expected family.size)")
        return value

    @field_validator("kms_key_id")
    @classmethod
    def _check_kms(cls, value: InputStr | None) -> InputStr | None:
        return check_kms_key(value) if isinstance(value, str) else value

    @field_validator("policy_arns")
    @classmethod
    def _check_policy_arns(cls, value: list[str]) -> list[str]:
        for arn in value:
            check_arn(arn, "iam")
        return value


@dataclass
class Ec2BaselineOutputs:
    """Output values from EC2 component."""
    instance_id: pulumi.Output[str]
    private_ip: pulumi.Output[str]
    security_group_id: pulumi.Output[str]
    role_arn: pulumi.Output[str]
    instance_profile_name: pulumi.Output[str]


class Ec2BaselineComponent(pulumi.ComponentResource):
    """
    EC2 instance with security group, instance profile and IMDSv2.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: Ec2BaselineArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:compute:Ec2Baseline", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        ami_id = args.ami_id
        if ami_id is None:
            ami_id = aws.ssm.get_parameter_output(name=AL2023_AMI_PARAMETER).value

        self.security_group = aws.ec2.SecurityGroup(
            f"{name}-sg",
            description=f"Security group for {name}",
            vpc_id=args.vpc_id,
            tags=module_tags(environment, f"{name}-sg", args.tags),
            opts=child_opts,
        )

        aws.vpc.SecurityGroupEgressRule(
            f"{name}-sgr-all-egress",
            description="Allow all IPv4 egress",
            cidr_ipv4="0.0.0.0/0",
            ip_protocol="-1",
            security_group_id=self.security_group.id,
            opts=child_opts,
        )

        for index, rule in enumerate(args.ingress_rules):
            aws.vpc.SecurityGroupIngressRule(
                f"{name}-sgr-ingress-{index}",
                description=rule.description,
                from_port=rule.from_port,
                to_port=rule.to_port,
                ip_protocol=rule.ip_protocol,
                cidr_ipv4=rule.cidr_ipv4,
                referenced_security_group_id=rule.referenced_security_group_id,
                security_group_id=self.security_group.id,
                opts=child_opts,
            )

        self.role = aws.iam.Role(
            f"{name}-role",
            assume_role_policy=policies.assume_role_policy("ec2.amazonaws.com"),
            tags=module_tags(environment, f"{name}-role", args.tags),
            opts=child_opts,
        )

        for index, policy_arn in enumerate([MANAGED_POLICY_ARNS["ssm_managed_instance"], *args.policy_arns]):
            aws.iam.RolePolicyAttachment(
                f"{name}-policy-attach-{index}",
                role=self.role.name,
                policy_arn=policy_arn,
                opts=child_opts,
            )

        self.instance_profile = aws.iam.InstanceProfile(
            f"{name}-profile",
            role=self.role.name,
            tags=module_tags(environment, f"{name}-profile", args.tags),
            opts=child_opts,
        )

        self.instance = aws.ec2.Instance(
            f"{name}-instance",
            ami=ami_id,
            instance_type=args.instance_type,
            subnet_id=args.subnet_id,
            vpc_security_group_ids=[self.security_group.id],
            iam_instance_profile=self.instance_profile.name,
            associate_public_ip_address=args.associate_public_ip_address,
            key_name=args.key_name,
            user_data=args.user_data,
            monitoring=args.detailed_monitoring,
            root_block_device=aws.ec2.InstanceRootBlockDeviceArgs(
                volume_size=args.root_volume_size,
                volume_type=args.root_volume_type,
                encrypted=True,
                kms_key_id=args.kms_key_id,
                delete_on_termination=True,
            ),
            metadata_options=aws.ec2.InstanceMetadataOptionsArgs(
                http_tokens="required",  # IMDSv2
                http_endpoint="enabled",
                http_put_response_hop_limit=1,
            ),
            tags=module_tags(environment, name, args.tags),
            opts=child_opts,
        )

        self.register_outputs({
            "instance_id": self.instance.id,
            "private_ip": self.instance.private_ip,
            "security_group_id": self.security_group.id,
            "role_arn": self.role.arn,
            "instance_profile_name": self.instance_profile.name,
        })

    def get_outputs(self) -> Ec2BaselineOutputs:
        """Get EC2 output values."""
        return Ec2BaselineOutputs(
            instance_id=self.instance.id,
            private_ip=self.instance.private_ip,
            security_group_id=self.security_group.id,
            role_arn=self.role.arn,
            instance_profile_name=self.instance_profile.name,
        )
