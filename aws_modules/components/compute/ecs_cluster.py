"""
ECS cluster component.

Creates:
- Cluster with Container Insights and execute-command configuration
- Log group for ECS Exec sessions (logging mode OVERRIDE only)
- Capacity provider association with a default strategy
- Cloud Map HTTP namespace for Service Connect (optional)
"""

import re
from dataclasses import dataclass
from typing import Any, Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import ArgsBlock, InputStr, ModuleArgs
from aws_modules.configs.constants import ECS_FARGATE_PROVIDERS, LOG_RETENTION_DAYS
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_kms_key, check_unique

CLUSTER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,255}$")


class CapacityProviderStrategyArgs(ArgsBlock):
    """One entry of the default capacity provider strategy."""

    capacity_provider: str
    weight: int = Field(default=1, ge=0, le=1000)
    base: int = Field(default=0, ge=0, le=100000)


class EcsClusterArgs(ModuleArgs):
    """Input arguments for the ECS cluster module."""

    cluster_name: str | None = None
    container_insights: Literal["enabled", "disabled", "enhanced"] = "enabled"
    capacity_providers: list[str] = Field(default_factory=lambda: list(ECS_FARGATE_PROVIDERS))
    default_capacity_provider_strategy: list[CapacityProviderStrategyArgs] = Field(default_factory=list)
    execute_command_logging: Literal["NONE", "DEFAULT", "OVERRIDE"] = "DEFAULT"
    execute_command_kms_key_id: InputStr | None = None
    log_retention_in_days: int = 90
    service_connect_namespace: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_strategy(cls, data: Any) -> Any:
        # The default strategy puts everything on the first attached provider
        if isinstance(data, dict) and "default_capacity_provider_strategy" not in data:
            providers = data.get("capacity_providers", ECS_FARGATE_PROVIDERS)
            if providers:
                data = {**data, "default_capacity_provider_strategy": [{"capacity_provider": providers[0]}]}
        return data

    @field_validator("cluster_name")
    @classmethod
    def _check_cluster_name(cls, value: str | None) -> str | None:
        if value is not None and not CLUSTER_NAME_PATTERN.match(value):
            raise ValueError("cluster_name must be 1-255 letters, numbers, hyphens or underscores")
        return value

    @field_validator("capacity_providers")
    @classmethod
    def _check_providers(cls, value: list[str]) -> list[str]:
        return check_unique(value, "capacity provider")

    @field_validator("execute_command_kms_key_id")
    @classmethod
    def _check_kms(cls, value: InputStr | None) -> InputStr | None:
        return check_kms_key(value) if isinstance(value, str) else value

    @field_validator("log_retention_in_days")
    @classmethod
    def _check_retention(cls, value: int) -> int:
        if value not in LOG_RETENTION_DAYS:
            raise ValueError(f"log_retention_in_days must be one of {sorted(LOG_RETENTION_DAYS)}")
        return value

    @model_validator(mode="after")
    def _check_strategy(self) -> "EcsClusterArgs":
        providers = [s.capacity_provider for s in self.default_capacity_provider_strategy]
        check_unique(providers, "strategy capacity provider")
        unknown = set(providers) - set(self.capacity_providers)
        if unknown:
            raise ValueError(
                f"strategy references capacity providers not attached to the cluster: {sorted(unknown)}"
            )
        if sum(1 for s in self.default_capacity_provider_strategy if s.base > 0) > 1:
            raise ValueError("only one capacity provider in a strategy can have a base defined")
        return self


@dataclass
class EcsClusterOutputs:
    """Output values from ECS cluster component."""
    cluster_arn: pulumi.Output[str]
    cluster_id: pulumi.Output[str]
    cluster_name: pulumi.Output[str]
    log_group_name: pulumi.Output[str] | None
    service_connect_namespace_arn: pulumi.Output[str] | None


class EcsClusterComponent(pulumi.ComponentResource):
    """
    ECS cluster with Fargate capacity providers by default.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: EcsClusterArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:compute:EcsCluster", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        cluster_name = args.cluster_name or name

        self.log_group = None
        log_configuration = None
        if args.execute_command_logging == "OVERRIDE":
            self.log_group = aws.cloudwatch.LogGroup(
                f"{name}-exec-logs",
                name=f"/aws/ecs/{cluster_name}/exec",
                retention_in_days=args.log_retention_in_days,
                tags=module_tags(environment, f"{cluster_name}-exec-logs", args.tags),
                opts=child_opts,
            )
            log_configuration = aws.ecs.ClusterConfigurationExecuteCommandConfigurationLogConfigurationArgs(
                cloud_watch_log_group_name=self.log_group.name,
                cloud_watch_encryption_enabled=args.execute_command_kms_key_id is not None,
            )

        self.namespace = None
        service_connect_defaults = None
        if args.service_connect_namespace:
            self.namespace = aws.servicediscovery.HttpNamespace(
                f"{name}-namespace",
                name=args.service_connect_namespace,
                description=f"Service Connect namespace for {cluster_name}",
                tags=module_tags(environment, args.service_connect_namespace, args.tags),
                opts=child_opts,
            )
            service_connect_defaults = aws.ecs.ClusterServiceConnectDefaultsArgs(
                namespace=self.namespace.arn,
            )

        self.cluster = aws.ecs.Cluster(
            f"{name}-cluster",
            name=cluster_name,
            settings=[
                aws.ecs.ClusterSettingArgs(
                    name="containerInsights",
                    value=args.container_insights,
                ),
            ],
            configuration=aws.ecs.ClusterConfigurationArgs(
                execute_command_configuration=aws.ecs.ClusterConfigurationExecuteCommandConfigurationArgs(
                    kms_key_id=args.execute_command_kms_key_id,
                    logging=args.execute_command_logging,
                    log_configuration=log_configuration,
                ),
            ),
            service_connect_defaults=service_connect_defaults,
            tags=module_tags(environment, cluster_name, args.tags),
            opts=child_opts,
        )

        self.capacity_providers = aws.ecs.ClusterCapacityProviders(
            f"{name}-capacity-providers",
            cluster_name=self.cluster.name,
            capacity_providers=args.capacity_providers,
            default_capacity_provider_strategies=[
                aws.ecs.ClusterCapacityProvidersDefaultCapacityProviderStrategyArgs(
                    capacity_provider=strategy.capacity_provider,
                    weight=strategy.weight,
                    base=strategy.base,
                )
                for strategy in args.default_capacity_provider_strategy
            ],
            opts=child_opts,
        )

        self.register_outputs({
            "cluster_arn": self.cluster.arn,
            "cluster_id": self.cluster.id,
            "cluster_name": self.cluster.name,
            "log_group_name": self.log_group.name if self.log_group else None,
            "service_connect_namespace_arn": self.namespace.arn if self.namespace else None,
        })

    def get_outputs(self) -> EcsClusterOutputs:
        """Get ECS cluster output values."""
        return EcsClusterOutputs(
            cluster_arn=self.cluster.arn,
            cluster_id=self.cluster.id,
            cluster_name=self.cluster.name,
            log_group_name=self.log_group.name if self.log_group else None,
            service_connect_namespace_arn=self.namespace.arn if self.namespace else None,
        )
