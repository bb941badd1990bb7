"""
Configuration module for the AWS modules.

Provides type-safe configuration loading from Pulumi stack config files.
"""

from aws_modules.configs.base import ArgsBlock, InputStr, ModuleArgs, StackConfig
from aws_modules.configs.environment import get_config
from aws_modules.configs.constants import (
    DEFAULT_TAGS,
    IAM_POLICY_VERSION,
    LOG_RETENTION_DAYS,
    MANAGED_POLICY_ARNS,
)

__all__ = [
    "ArgsBlock",
    "InputStr",
    "ModuleArgs",
    "StackConfig",
    "get_config",
    "DEFAULT_TAGS",
    "IAM_POLICY_VERSION",
    "LOG_RETENTION_DAYS",
    "MANAGED_POLICY_ARNS",
]
