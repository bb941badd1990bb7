"""
Shared input predicates for module argument models.

Each ``check_*`` helper returns the value unchanged or raises ``ValueError``,
so it can be called from pydantic ``field_validator`` methods.
"""

import re

ARN_PATTERN = re.compile(
    r"^arn:(aws|aws-cn|aws-us-gov):(?P<service>[a-z0-9-]+):(?P<region>[a-z0-9-]*):"
    r"(?P<account>\d{12}|aws)?:(?P<resource>.+)$"
)
KMS_KEY_PATTERN = re.compile(
    r"^(alias/[A-Za-z0-9/_+=,.@-]+|[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}|mrk-[0-9a-f]{32})$"
)
DNS_NAME_PATTERN = re.compile(
    r"^(?=.{1,253}\.?$)(\*\.)?([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)*[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.?$"
)


def parse_arn(value: str) -> re.Match | None:
    return ARN_PATTERN.match(value)


def check_arn(value: str, service: str | None = None) -> str:
    """
    Validate an ARN, optionally for a specific service.

    Args:
        value: ARN to check
        service: Expected service namespace (e.g. 'sns', 'sqs')

    Returns:
        The ARN unchanged

    Raises:
        ValueError: If the ARN is malformed or for another service
    """
    match = parse_arn(value)
    if match is None:
        raise ValueError(f"'{value}' is not a valid ARN")
    if service is not None and match.group("service") != service:
        raise ValueError(f"'{value}' is not an {service} ARN")
    return value


def check_kms_key(value: str) -> str:
    """Accept a KMS key ARN, alias ARN, alias name, key id or multi-region key id."""
    if value.startswith("arn:"):
        return check_arn(value, "kms")
    if not KMS_KEY_PATTERN.match(value):
        raise ValueError(f"'{value}' is not a valid KMS key id, alias or ARN")
    return value


def check_dns_name(value: str) -> str:
    if not DNS_NAME_PATTERN.match(value.lower()):
        raise ValueError(f"'{value}' is not a valid DNS name")
    return value


def check_choice(value: str, allowed: frozenset[str] | set[str], label: str) -> str:
    if value not in allowed:
        raise ValueError(f"{label} must be one of {sorted(allowed)}, got '{value}'")
    return value


def check_unique(values: list, label: str) -> list:
    seen = set()
    for value in values:
        if value in seen:
            raise ValueError(f"duplicate {label}: '{value}'")
        seen.add(value)
    return values


def check_port_range(from_port: int, to_port: int) -> None:
    for port in (from_port, to_port):
        if not -1 <= port <= 65535:
            raise ValueError(f"port {port} is out of range")
    if from_port > to_port:
        raise ValueError(f"from_port {from_port} is greater than to_port {to_port}")
