"""
Resource naming conventions for consistent AWS resource names.

Follows pattern: {project}-{environment}-{resource}
"""

from dataclasses import dataclass

FIFO_SUFFIX = ".fifo"


def with_fifo_suffix(name: str, fifo: bool) -> str:
    """
    Append the ``.fifo`` suffix required by FIFO queues and topics.

    Args:
        name: Base queue or topic name (may already carry the suffix)
        fifo: Whether the resource is FIFO

    Returns:
        Name with the suffix when FIFO, unchanged otherwise
    """
    if not fifo or name.endswith(FIFO_SUFFIX):
        return name
    return f"{name}{FIFO_SUFFIX}"


def strip_fifo_suffix(name: str) -> str:
    """Drop a trailing ``.fifo`` so a suffix can be inserted before it."""
    if name.endswith(FIFO_SUFFIX):
        return name[: -len(FIFO_SUFFIX)]
    return name


@dataclass
class ResourceNamer:
    """
    Generates consistent resource names for AWS resources.

    Attributes:
        project: Project identifier
        environment: Deployment environment (dev, staging, prod)
    """
    project: str
    environment: str

    def name(self, resource: str) -> str:
        """
        Generate a resource name.

        Args:
            resource: Resource identifier (e.g., 'vpc', 'jobs-queue')

        Returns:
            Formatted resource name
        """
        if not resource:
            return f"{self.project}-{self.environment}"
        return f"{self.project}-{self.environment}-{resource}"

    def bucket_name(self, suffix: str) -> str:
        """
        Generate an S3 bucket name (must be globally unique).

        Bucket names are lowercase and capped at 63 characters.

        Args:
            suffix: Bucket suffix (e.g., 'assets', 'logs')

        Returns:
            Globally unique bucket name
        """
        return self.name(suffix).lower()[:63].rstrip("-")
