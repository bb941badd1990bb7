"""
Module registry for the composition root.

Maps the module keys used in stack config (``modules.<key>``) to their
input argument models, and builds validated arguments from raw config blocks.
"""

from typing import Any

from aws_modules.configs.base import ModuleArgs
from aws_modules.components.compute import EcsClusterArgs, Ec2BaselineArgs, LambdaFunctionArgs
from aws_modules.components.edge import CloudFrontArgs
from aws_modules.components.messaging import SnsTopicArgs, SqsQueueArgs
from aws_modules.components.networking import Route53Args, TransitGatewayArgs, VpcArgs
from aws_modules.components.storage import RdsArgs, S3BucketArgs

MODULE_ARGS: dict[str, type[ModuleArgs]] = {
    "vpc": VpcArgs,
    "transit-gateway": TransitGatewayArgs,
    "sns": SnsTopicArgs,
    "sqs": SqsQueueArgs,
    "s3-bucket": S3BucketArgs,
    "rds": RdsArgs,
    "lambda": LambdaFunctionArgs,
    "ecs-cluster": EcsClusterArgs,
    "ec2-baseline": Ec2BaselineArgs,
    "cloudfront": CloudFrontArgs,
    "route53": Route53Args,
}


def check_module_keys(modules: dict[str, Any]) -> None:
    """
    Reject module blocks the registry does not know.

    Raises:
        ValueError: Naming the first unknown key
    """
    for key in modules:
        if key not in MODULE_ARGS:
            raise ValueError(f"unknown module '{key}'; expected one of {sorted(MODULE_ARGS)}")


def load_module_args(
    key: str,
    raw: dict[str, Any] | None,
    stack_tags: dict[str, str] | None = None,
    **wiring: Any,
) -> ModuleArgs:
    """
    Validate a raw module block from stack config.

    Values wired from other modules' outputs only fill keys the config block
    leaves unset. Stack-level tags sit under the block's own tags.

    Args:
        key: Module key (e.g. 'sqs')
        raw: Config block for the module (None for an empty block)
        stack_tags: Tags applied to every module
        **wiring: Inputs taken from other modules' outputs

    Returns:
        Validated module arguments

    Raises:
        ValueError: If the key is unknown
        pydantic.ValidationError: If the block fails validation
    """
    if key not in MODULE_ARGS:
        raise ValueError(f"unknown module '{key}'; expected one of {sorted(MODULE_ARGS)}")

    block = dict(raw or {})
    for name, value in wiring.items():
        block.setdefault(name, value)
    block["tags"] = {**(stack_tags or {}), **block.get("tags", {})}
    return MODULE_ARGS[key].model_validate(block)
