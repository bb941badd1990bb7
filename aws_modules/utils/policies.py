"""
IAM policy document assembly.

Documents are plain dicts until serialized. Statements may carry
``pulumi.Output`` values (ARNs of resources created in the same program),
so serialization goes through ``pulumi.Output.json_dumps``.
"""

import json
from typing import Any

import pulumi

from aws_modules.configs.constants import IAM_POLICY_VERSION


def statement(
    actions: str | list[str],
    resources: Any = None,
    effect: str = "Allow",
    principals: dict[str, Any] | None = None,
    conditions: dict[str, dict[str, Any]] | None = None,
    sid: str | None = None,
) -> dict[str, Any]:
    """
    Build a single IAM policy statement.

    Args:
        actions: Action or list of actions
        resources: Resource ARN(s); may contain Outputs
        effect: "Allow" or "Deny"
        principals: Principal block, e.g. {"Service": "sns.amazonaws.com"}
        conditions: Condition block keyed by operator
        sid: Optional statement id

    Returns:
        Statement dictionary
    """
    stmt: dict[str, Any] = {"Effect": effect, "Action": actions}
    if sid:
        stmt = {"Sid": sid, **stmt}
    if principals is not None:
        stmt["Principal"] = principals
    if resources is not None:
        stmt["Resource"] = resources
    if conditions:
        stmt["Condition"] = conditions
    return stmt


def policy_document(statements: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "Version": IAM_POLICY_VERSION,
        "Statement": statements,
    }


def assume_role_policy(*services: str) -> str:
    """Trust policy letting the given AWS services assume a role."""
    return json.dumps(policy_document([
        statement(
            "sts:AssumeRole",
            principals={"Service": list(services) if len(services) > 1 else services[0]},
        ),
    ]))


def to_json(document: dict[str, Any]) -> pulumi.Output[str]:
    """Serialize a policy document that may contain Outputs."""
    return pulumi.Output.json_dumps(document)


def deny_insecure_transport(bucket_arn: pulumi.Input[str]) -> dict[str, Any]:
    """Statement denying any S3 request not sent over TLS."""
    return statement(
        "s3:*",
        resources=[bucket_arn, pulumi.Output.concat(bucket_arn, "/*")],
        effect="Deny",
        principals={"AWS": "*"},
        conditions={"Bool": {"aws:SecureTransport": "false"}},
        sid="DenyInsecureTransport",
    )


def normalize_statements(raw: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Convert caller-supplied snake_case statements into IAM form.

    Accepts keys ``sid``, ``effect``, ``actions``, ``resources``,
    ``principals`` and ``conditions``. Statements already in IAM form
    (``Action``/``Effect`` keys) pass through unchanged.
    """
    normalized = []
    for item in raw:
        if "Action" in item or "NotAction" in item:
            normalized.append(item)
            continue
        normalized.append(statement(
            item["actions"],
            resources=item.get("resources"),
            effect=item.get("effect", "Allow"),
            principals=item.get("principals"),
            conditions=item.get("conditions"),
            sid=item.get("sid"),
        ))
    return normalized
