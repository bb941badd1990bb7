"""
Stack configuration loader.

Loads configuration from Pulumi stack config files.
"""

import pulumi

from aws_modules.configs.base import StackConfig


def get_config() -> StackConfig:
    """
    Load stack configuration from Pulumi stack config.

    Module blocks live under the ``modules`` key as a structured object,
    e.g. ``pulumi config set --path modules.sqs.name jobs``.

    Returns:
        StackConfig: Configuration object

    Raises:
        pulumi.ConfigMissingError: If required config values are missing
    """
    config = pulumi.Config()
    aws_config = pulumi.Config("aws")

    return StackConfig(
        project=config.get("project") or pulumi.get_project(),
        environment=config.require("environment"),
        region=aws_config.get("region") or "us-east-1",
        tags=config.get_object("tags") or {},
        modules=config.get_object("modules") or {},
    )
