"""
Base configuration for stack settings and module inputs.

Provides the stack configuration dataclass loaded from Pulumi stack configs
and the pydantic base model every module's input arguments inherit.
"""

from dataclasses import dataclass, field
from typing import Any, TypeAlias, Union

import pulumi
from pydantic import BaseModel, ConfigDict, Field

# Values that may be literal or come from another module's outputs.
# Predicates only run on literal values; Outputs are resolved by the engine.
InputStr: TypeAlias = Union[str, pulumi.Output]


class ArgsBlock(BaseModel):
    """Base class for nested input blocks (rules, records, attachments)."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        arbitrary_types_allowed=True,
    )


class ModuleArgs(ArgsBlock):
    """Base class for module input arguments."""

    tags: dict[str, str] = Field(
        default_factory=dict,
        description="Tags merged over the default tag set on every resource",
    )


@dataclass(frozen=True)
class StackConfig:
    """
    Stack-level configuration for a composition of modules.

    Attributes:
        project: Project identifier used as the resource name prefix
        environment: Deployment environment (dev, staging, prod)
        region: AWS region the stack deploys into
        tags: Extra tags applied on top of the default tag set
        modules: Raw module blocks keyed by module key (e.g. "vpc", "sqs")
    """
    project: str
    environment: str
    region: str
    tags: dict[str, str] = field(default_factory=dict)
    modules: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def is_production(self) -> bool:
        """Check if this is a production environment."""
        return self.environment == "prod"

    def is_enabled(self, module: str) -> bool:
        """Check whether a module block is present in the stack config."""
        return module in self.modules

    def get_tags(self) -> dict[str, str]:
        """Get environment-specific tags."""
        return {
            "Environment": self.environment,
            "Project": self.project,
            **self.tags,
        }
