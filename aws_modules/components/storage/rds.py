"""
RDS Component for Relational Database.

Access Control - Who Can Connect:
1. Security groups in ``allowed_security_group_ids`` -> DB port
2. CIDR blocks in ``allowed_cidr_blocks`` -> DB port
3. Anyone else -> DENIED

How the Connection Works:
1. Routing: the instance lives in the given subnets (at least 2, one DB subnet group).
2. Security Group: created per instance, ingress on the engine port only from the allowed sources.
3. Credentials: manage_master_user_password=True means AWS auto-generates the password and
   stores it in Secrets Manager. The secret ARN is exported as ``master_user_secret_arn``.

Backups: retention below 7 days is raised to 7 with a warning; the maximum is 35.
"""

import re
from dataclasses import dataclass
from typing import Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import InputStr, ModuleArgs
from aws_modules.configs.constants import (
    MANAGED_POLICY_ARNS,
    RDS_DEFAULT_PORTS,
    RDS_LOG_EXPORTS,
    RDS_MAX_BACKUP_RETENTION_DAYS,
    RDS_MIN_BACKUP_RETENTION_DAYS,
    RDS_MONITORING_INTERVALS,
)
from aws_modules.utils import policies
from aws_modules.utils.cidr import is_valid_cidr
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_kms_key, check_unique

IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]{0,62}$")
DB_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]{0,62}$")
BACKUP_WINDOW_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d-([01]\d|2[0-3]):[0-5]\d$")
MAINTENANCE_WINDOW_PATTERN = re.compile(
    r"^(mon|tue|wed|thu|fri|sat|sun):([01]\d|2[0-3]):[0-5]\d-"
    r"(mon|tue|wed|thu|fri|sat|sun):([01]\d|2[0-3]):[0-5]\d$",
    re.IGNORECASE,
)


def check_identifier(value: str) -> str:
    if not IDENTIFIER_PATTERN.match(value):
        raise ValueError(
            f"identifier '{value}' must start with a letter and contain at most 63 letters, numbers or hyphens"
        )
    if "--" in value or value.endswith("-"):
        raise ValueError(f"identifier '{value}' cannot contain two consecutive hyphens or end with a hyphen")
    return value


def clamp_backup_retention(days: int) -> int:
    """Raise a retention period below the minimum up to it."""
    return max(days, RDS_MIN_BACKUP_RETENTION_DAYS)


class RdsArgs(ModuleArgs):
    """Input arguments for the RDS module."""

    identifier: str | None = None
    engine: Literal["postgres", "mysql", "mariadb"] = "postgres"
    engine_version: str | None = None
    instance_class: str = "db.t4g.micro"
    allocated_storage: int = Field(default=20, ge=20, le=65536)
    max_allocated_storage: int = Field(default=0, ge=0, le=65536)
    storage_type: Literal["gp2", "gp3", "io1", "io2"] = "gp3"
    db_name: str | None = None
    username: str = "dbadmin"
    password: InputStr | None = None
    port: int | None = Field(default=None, ge=1150, le=65535)
    manage_master_user_password: bool = True

    subnet_ids: list[InputStr] = Field(min_length=2)
    vpc_id: InputStr
    allowed_security_group_ids: list[InputStr] = Field(default_factory=list)
    allowed_cidr_blocks: list[str] = Field(default_factory=list)

    parameter_group_family: str | None = None
    parameters: dict[str, str] = Field(default_factory=dict)

    multi_az: bool = False
    deletion_protection: bool = True
    backup_retention_period: int = Field(default=RDS_MIN_BACKUP_RETENTION_DAYS, ge=0, le=RDS_MAX_BACKUP_RETENTION_DAYS)
    backup_window: str = "03:00-04:00"
    maintenance_window: str = "Mon:04:00-Mon:05:00"
    skip_final_snapshot: bool = False
    performance_insights_enabled: bool = False
    monitoring_interval: int = 0
    enabled_cloudwatch_logs_exports: list[str] = Field(default_factory=list)
    kms_key_id: InputStr | None = None

    @field_validator("identifier")
    @classmethod
    def _check_identifier(cls, value: str | None) -> str | None:
        return check_identifier(value) if value is not None else value

    @field_validator("instance_class")
    @classmethod
    def _check_instance_class(cls, value: str) -> str:
        if not value.startswith("db."):
            raise ValueError(f"instance_class '{value}' must start with 'db.'")
        return value

    @field_validator("db_name")
    @classmethod
    def _check_db_name(cls, value: str | None) -> str | None:
        if value is not None and not DB_NAME_PATTERN.match(value):
            raise ValueError(f"db_name '{value}' must start with a letter and contain only letters, numbers or underscores")
        return value

    @field_validator("subnet_ids")
    @classmethod
    def _check_subnets(cls, value: list[InputStr]) -> list[InputStr]:
        check_unique([s for s in value if isinstance(s, str)], "subnet id")
        return value

    @field_validator("allowed_cidr_blocks")
    @classmethod
    def _check_cidrs(cls, value: list[str]) -> list[str]:
        for cidr in value:
            if not is_valid_cidr(cidr):
                raise ValueError(f"'{cidr}' is not a valid CIDR block")
        return value

    @field_validator("backup_window")
    @classmethod
    def _check_backup_window(cls, value: str) -> str:
        if not BACKUP_WINDOW_PATTERN.match(value):
            raise ValueError(f"backup_window '{value}' must be in hh24:mi-hh24:mi format")
        return value

    @field_validator("maintenance_window")
    @classmethod
    def _check_maintenance_window(cls, value: str) -> str:
        if not MAINTENANCE_WINDOW_PATTERN.match(value):
            raise ValueError(f"maintenance_window '{value}' must be in ddd:hh24:mi-ddd:hh24:mi format")
        return value

    @field_validator("monitoring_interval")
    @classmethod
    def _check_monitoring_interval(cls, value: int) -> int:
        if value not in RDS_MONITORING_INTERVALS:
            raise ValueError(f"monitoring_interval must be one of {sorted(RDS_MONITORING_INTERVALS)}")
        return value

    @field_validator("kms_key_id")
    @classmethod
    def _check_kms(cls, value: InputStr | None) -> InputStr | None:
        return check_kms_key(value) if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_instance(self) -> "RdsArgs":
        if self.max_allocated_storage and self.max_allocated_storage < self.allocated_storage:
            raise ValueError("max_allocated_storage must be 0 (disabled) or at least allocated_storage")
        if self.manage_master_user_password and self.password is not None:
            raise ValueError("password cannot be set when manage_master_user_password is true")
        if not self.manage_master_user_password and self.password is None:
            raise ValueError("password is required when manage_master_user_password is false")
        if self.parameters and self.parameter_group_family is None:
            raise ValueError("parameters require parameter_group_family")
        allowed_exports = RDS_LOG_EXPORTS[self.engine]
        invalid = set(self.enabled_cloudwatch_logs_exports) - allowed_exports
        if invalid:
            raise ValueError(
                f"log exports {sorted(invalid)} are not valid for {self.engine}; "
                f"choose from {sorted(allowed_exports)}"
            )
        return self

    @property
    def db_port(self) -> int:
        return self.port or RDS_DEFAULT_PORTS[self.engine]


@dataclass
class RdsOutputs:
    """Output values from RDS component."""
    db_instance_arn: pulumi.Output[str]
    db_instance_identifier: pulumi.Output[str]
    endpoint: pulumi.Output[str]
    address: pulumi.Output[str]
    port: pulumi.Output[int]
    db_name: pulumi.Output[str]
    subnet_group_name: pulumi.Output[str]
    security_group_id: pulumi.Output[str]
    master_user_secret_arn: pulumi.Output[str] | None


class RdsComponent(pulumi.ComponentResource):
    """
    Single RDS instance (PostgreSQL, MySQL or MariaDB) with its own
    subnet group, security group and optional parameter group.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: RdsArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:storage:Rds", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        identifier = args.identifier or check_identifier(name)
        self.manages_password = args.manage_master_user_password
        port = args.db_port

        backup_retention = clamp_backup_retention(args.backup_retention_period)
        if backup_retention != args.backup_retention_period:
            pulumi.log.warn(
                f"backup_retention_period {args.backup_retention_period} raised to {backup_retention} days",
                resource=self,
            )

        # DB Subnet Group
        self.subnet_group = aws.rds.SubnetGroup(
            f"{name}-subnet-group",
            name=f"{identifier}-subnets".lower(),
            subnet_ids=args.subnet_ids,
            tags=module_tags(environment, f"{identifier}-subnets", args.tags),
            opts=child_opts,
        )

        self.security_group = aws.ec2.SecurityGroup(
            f"{name}-sg",
            description=f"Database access for {identifier}",
            vpc_id=args.vpc_id,
            tags=module_tags(environment, f"{identifier}-sg", args.tags),
            opts=child_opts,
        )

        for index, source_sg in enumerate(args.allowed_security_group_ids):
            aws.vpc.SecurityGroupIngressRule(
                f"{name}-sgr-sg-{index}",
                description="Database access from security group",
                from_port=port,
                to_port=port,
                ip_protocol="tcp",
                referenced_security_group_id=source_sg,
                security_group_id=self.security_group.id,
                opts=child_opts,
            )

        for index, cidr in enumerate(args.allowed_cidr_blocks):
            aws.vpc.SecurityGroupIngressRule(
                f"{name}-sgr-cidr-{index}",
                description=f"Database access from {cidr}",
                from_port=port,
                to_port=port,
                ip_protocol="tcp",
                cidr_ipv4=cidr,
                security_group_id=self.security_group.id,
                opts=child_opts,
            )

        # Parameter Group
        self.parameter_group = None
        if args.parameter_group_family:
            self.parameter_group = aws.rds.ParameterGroup(
                f"{name}-params",
                family=args.parameter_group_family,
                parameters=[
                    aws.rds.ParameterGroupParameterArgs(name=key, value=value)
                    for key, value in args.parameters.items()
                ],
                tags=module_tags(environment, f"{identifier}-params", args.tags),
                opts=child_opts,
            )

        self.monitoring_role = None
        if args.monitoring_interval > 0:
            self.monitoring_role = aws.iam.Role(
                f"{name}-monitoring-role",
                assume_role_policy=policies.assume_role_policy("monitoring.rds.amazonaws.com"),
                tags=module_tags(environment, f"{identifier}-monitoring", args.tags),
                opts=child_opts,
            )
            aws.iam.RolePolicyAttachment(
                f"{name}-monitoring-policy-attach",
                role=self.monitoring_role.name,
                policy_arn=MANAGED_POLICY_ARNS["rds_enhanced_monitoring"],
                opts=child_opts,
            )

        # RDS Instance
        self.instance = aws.rds.Instance(
            f"{name}-instance",
            identifier=identifier,
            engine=args.engine,
            engine_version=args.engine_version,
            instance_class=args.instance_class,
            allocated_storage=args.allocated_storage,
            max_allocated_storage=args.max_allocated_storage or None,
            storage_type=args.storage_type,
            storage_encrypted=True,
            kms_key_id=args.kms_key_id,
            db_name=args.db_name,
            username=args.username,
            password=args.password,
            manage_master_user_password=args.manage_master_user_password or None,  # Secrets Manager
            port=port,
            db_subnet_group_name=self.subnet_group.name,
            vpc_security_group_ids=[self.security_group.id],
            parameter_group_name=self.parameter_group.name if self.parameter_group else None,
            multi_az=args.multi_az,
            publicly_accessible=False,
            deletion_protection=args.deletion_protection,
            skip_final_snapshot=args.skip_final_snapshot,
            final_snapshot_identifier=None if args.skip_final_snapshot else f"{identifier}-final-snapshot",
            backup_retention_period=backup_retention,
            backup_window=args.backup_window,
            maintenance_window=args.maintenance_window,
            copy_tags_to_snapshot=True,
            performance_insights_enabled=args.performance_insights_enabled,
            monitoring_interval=args.monitoring_interval,
            monitoring_role_arn=self.monitoring_role.arn if self.monitoring_role else None,
            enabled_cloudwatch_logs_exports=args.enabled_cloudwatch_logs_exports or None,
            tags=module_tags(environment, identifier, args.tags),
            opts=child_opts,
        )

        outputs = self.get_outputs()
        self.register_outputs({
            "db_instance_arn": outputs.db_instance_arn,
            "db_instance_identifier": outputs.db_instance_identifier,
            "endpoint": outputs.endpoint,
            "address": outputs.address,
            "port": outputs.port,
            "db_name": outputs.db_name,
            "subnet_group_name": outputs.subnet_group_name,
            "security_group_id": outputs.security_group_id,
            "master_user_secret_arn": outputs.master_user_secret_arn,
        })

    def get_outputs(self) -> RdsOutputs:
        """Get RDS output values."""
        secret_arn = None
        if self.manages_password:
            secret_arn = self.instance.master_user_secrets.apply(
                lambda secrets: secrets[0].secret_arn if secrets else None
            )
        return RdsOutputs(
            db_instance_arn=self.instance.arn,
            db_instance_identifier=self.instance.identifier,
            endpoint=self.instance.endpoint,
            address=self.instance.address,
            port=self.instance.port,
            db_name=self.instance.db_name,
            subnet_group_name=self.subnet_group.name,
            security_group_id=self.security_group.id,
            master_user_secret_arn=secret_arn,
        )
