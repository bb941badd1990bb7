"""
SNS topic component for fan-out messaging.

Creates:
- Topic (standard or FIFO, KMS-encrypted with the AWS managed key by default)
- Topic policy when publisher services or extra statements are given
- One subscription per entry in ``subscriptions``
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import ArgsBlock, InputStr, ModuleArgs
from aws_modules.configs.constants import SNS_PROTOCOLS, SNS_RAW_DELIVERY_PROTOCOLS
from aws_modules.utils import policies
from aws_modules.utils.naming import FIFO_SUFFIX, strip_fifo_suffix, with_fifo_suffix
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_arn, check_choice, check_kms_key

TOPIC_NAME_MAX = 256
TOPIC_NAME_PATTERN = re.compile(rf"^[A-Za-z0-9_-]{{1,{TOPIC_NAME_MAX}}}$")


class SnsSubscriptionArgs(ArgsBlock):
    """A single topic subscription."""

    protocol: str
    endpoint: InputStr
    raw_message_delivery: bool = False
    filter_policy: dict[str, Any] | None = None
    filter_policy_scope: Literal["MessageAttributes", "MessageBody"] | None = None
    subscription_role_arn: InputStr | None = None
    endpoint_auto_confirms: bool = False

    @field_validator("protocol")
    @classmethod
    def _check_protocol(cls, value: str) -> str:
        return check_choice(value, SNS_PROTOCOLS, "protocol")

    @model_validator(mode="after")
    def _check_protocol_options(self) -> "SnsSubscriptionArgs":
        if self.raw_message_delivery and self.protocol not in SNS_RAW_DELIVERY_PROTOCOLS:
            raise ValueError(f"raw_message_delivery is not supported for protocol '{self.protocol}'")
        if self.protocol == "firehose" and self.subscription_role_arn is None:
            raise ValueError("firehose subscriptions require subscription_role_arn")
        if self.filter_policy_scope is not None and self.filter_policy is None:
            raise ValueError("filter_policy_scope requires filter_policy")
        if self.protocol in {"sqs", "lambda", "firehose"} and isinstance(self.endpoint, str):
            check_arn(self.endpoint, self.protocol)
        return self


class SnsTopicArgs(ModuleArgs):
    """Input arguments for the SNS topic module."""

    name: str | None = Field(default=None, description="Topic name; defaults to the component name")
    display_name: str | None = None
    fifo_topic: bool = False
    content_based_deduplication: bool = False
    kms_master_key_id: str | None = "alias/aws/sns"
    signature_version: Literal[1, 2] = 1
    tracing_config: Literal["PassThrough", "Active"] | None = None
    delivery_policy: str | None = None
    allowed_publisher_services: list[str] = Field(default_factory=list)
    topic_policy_statements: list[dict[str, Any]] = Field(default_factory=list)
    subscriptions: dict[str, SnsSubscriptionArgs] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str | None) -> str | None:
        if value is not None and not TOPIC_NAME_PATTERN.match(strip_fifo_suffix(value)):
            raise ValueError(
                "topic name must be 1-256 alphanumeric characters, hyphens or underscores"
            )
        return value

    @field_validator("kms_master_key_id")
    @classmethod
    def _check_kms(cls, value: str | None) -> str | None:
        return check_kms_key(value) if value else value

    @model_validator(mode="after")
    def _check_fifo(self) -> "SnsTopicArgs":
        if self.content_based_deduplication and not self.fifo_topic:
            raise ValueError("content_based_deduplication requires fifo_topic")
        if self.name and self.name.endswith(FIFO_SUFFIX) and not self.fifo_topic:
            raise ValueError("only FIFO topics may use the .fifo suffix")
        base_max = TOPIC_NAME_MAX - len(FIFO_SUFFIX)
        if self.name and self.fifo_topic and len(strip_fifo_suffix(self.name)) > base_max:
            raise ValueError(f"FIFO topic names are limited to {base_max} characters before the .fifo suffix")
        return self


@dataclass
class SnsTopicOutputs:
    """Output values from SNS topic component."""
    topic_arn: pulumi.Output[str]
    topic_name: pulumi.Output[str]
    topic_id: pulumi.Output[str]
    subscription_arns: dict[str, pulumi.Output[str]]


class SnsTopicComponent(pulumi.ComponentResource):
    """
    SNS topic with optional policy and subscriptions.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: SnsTopicArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:messaging:SnsTopic", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        topic_name = with_fifo_suffix(args.name or name, args.fifo_topic)

        self.topic = aws.sns.Topic(
            f"{name}-topic",
            name=topic_name,
            display_name=args.display_name,
            fifo_topic=args.fifo_topic or None,
            content_based_deduplication=args.content_based_deduplication or None,
            kms_master_key_id=args.kms_master_key_id,
            signature_version=args.signature_version,
            tracing_config=args.tracing_config,
            delivery_policy=args.delivery_policy,
            tags=module_tags(environment, topic_name, args.tags),
            opts=child_opts,
        )

        self.topic_policy = None
        statements = policies.normalize_statements(args.topic_policy_statements)
        if args.allowed_publisher_services:
            statements.insert(0, policies.statement(
                "sns:Publish",
                resources=self.topic.arn,
                principals={"Service": args.allowed_publisher_services},
                sid="AllowServicePublish",
            ))
        if statements:
            self.topic_policy = aws.sns.TopicPolicy(
                f"{name}-policy",
                arn=self.topic.arn,
                policy=policies.to_json(policies.policy_document(statements)),
                opts=child_opts,
            )

        self.subscriptions: dict[str, aws.sns.TopicSubscription] = {}
        for key, sub in args.subscriptions.items():
            self.subscriptions[key] = aws.sns.TopicSubscription(
                f"{name}-sub-{key}",
                topic=self.topic.arn,
                protocol=sub.protocol,
                endpoint=sub.endpoint,
                raw_message_delivery=sub.raw_message_delivery or None,
                filter_policy=json.dumps(sub.filter_policy) if sub.filter_policy else None,
                filter_policy_scope=sub.filter_policy_scope,
                subscription_role_arn=sub.subscription_role_arn,
                endpoint_auto_confirms=sub.endpoint_auto_confirms or None,
                opts=child_opts,
            )

        pulumi.log.info(
            f"SNS topic '{topic_name}' with {len(self.subscriptions)} subscription(s)",
            resource=self,
        )

        self.register_outputs({
            "topic_arn": self.topic.arn,
            "topic_name": self.topic.name,
            "topic_id": self.topic.id,
            "subscription_arns": {k: s.arn for k, s in self.subscriptions.items()},
        })

    def get_outputs(self) -> SnsTopicOutputs:
        """Get SNS topic output values."""
        return SnsTopicOutputs(
            topic_arn=self.topic.arn,
            topic_name=self.topic.name,
            topic_id=self.topic.id,
            subscription_arns={k: s.arn for k, s in self.subscriptions.items()},
        )
