"""
Compute components for Lambda, ECS and EC2.

Components:
- LambdaFunctionComponent: Function, execution role, log group, triggers
- EcsClusterComponent: Cluster, capacity providers, exec logging
- Ec2BaselineComponent: Hardened instance with SG and instance profile
"""

from aws_modules.components.compute.lambda_function import (
    LambdaFunctionArgs,
    LambdaFunctionComponent,
    LambdaFunctionOutputs,
)
from aws_modules.components.compute.ecs_cluster import (
    EcsClusterArgs,
    EcsClusterComponent,
    EcsClusterOutputs,
)
from aws_modules.components.compute.ec2_baseline import (
    Ec2BaselineArgs,
    Ec2BaselineComponent,
    Ec2BaselineOutputs,
)

__all__ = [
    "LambdaFunctionArgs",
    "LambdaFunctionComponent",
    "LambdaFunctionOutputs",
    "EcsClusterArgs",
    "EcsClusterComponent",
    "EcsClusterOutputs",
    "Ec2BaselineArgs",
    "Ec2BaselineComponent",
    "Ec2BaselineOutputs",
]
