"""
SQS queue component for async processing.

Creates:
- Main queue (standard or FIFO)
- Dead letter queue and redrive policy when ``create_dlq`` is set
- Queue policy and SNS subscriptions when ``sns_topic_arns`` is set

FIFO queues only receive from FIFO topics and standard queues only from
standard topics. Literal topic ARNs are checked by their suffix; ARNs that
are outputs of another resource are taken as FIFO only when
``sns_topics_fifo`` is set.
"""

import json
from dataclasses import dataclass
from typing import Any, Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import InputStr, ModuleArgs
from aws_modules.configs.constants import SQS_LIMITS
from aws_modules.utils import policies
from aws_modules.utils.naming import FIFO_SUFFIX, strip_fifo_suffix, with_fifo_suffix
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_arn, check_kms_key, parse_arn


def _limit(key: str, default: int) -> Any:
    low, high = SQS_LIMITS[key]
    return Field(default=default, ge=low, le=high)


class SqsQueueArgs(ModuleArgs):
    """Input arguments for the SQS queue module."""

    name: str | None = Field(default=None, description="Queue name; defaults to the component name")
    fifo_queue: bool = False
    content_based_deduplication: bool = False
    deduplication_scope: Literal["messageGroup", "queue"] | None = None
    fifo_throughput_limit: Literal["perQueue", "perMessageGroupId"] | None = None
    delay_seconds: int = _limit("delay_seconds", 0)
    max_message_size: int = _limit("max_message_size", 262144)
    message_retention_seconds: int = _limit("message_retention_seconds", 345600)
    receive_wait_time_seconds: int = _limit("receive_wait_time_seconds", 0)
    visibility_timeout_seconds: int = _limit("visibility_timeout_seconds", 30)
    sqs_managed_sse_enabled: bool = True
    kms_master_key_id: str | None = None
    kms_data_key_reuse_period_seconds: int = _limit("kms_data_key_reuse_period_seconds", 300)

    create_dlq: bool = False
    dlq_max_receive_count: int = _limit("max_receive_count", 5)
    dlq_message_retention_seconds: int = _limit("message_retention_seconds", 1209600)

    sns_topic_arns: list[InputStr] = Field(default_factory=list)
    sns_topics_fifo: bool = Field(
        default=False,
        description="Whether topic ARNs given as outputs of other resources belong to FIFO topics",
    )
    raw_message_delivery: bool = False

    @field_validator("kms_master_key_id")
    @classmethod
    def _check_kms(cls, value: str | None) -> str | None:
        return check_kms_key(value) if value else value

    @field_validator("sns_topic_arns")
    @classmethod
    def _check_topic_arns(cls, values: list[InputStr]) -> list[InputStr]:
        for value in values:
            if isinstance(value, str):
                check_arn(value, "sns")
        return values

    @model_validator(mode="after")
    def _check_fifo(self) -> "SqsQueueArgs":
        if not self.fifo_queue:
            for attr in ("content_based_deduplication", "deduplication_scope", "fifo_throughput_limit"):
                if getattr(self, attr):
                    raise ValueError(f"{attr} is only valid for FIFO queues")
            if self.name and self.name.endswith(FIFO_SUFFIX):
                raise ValueError("only FIFO queues may use the .fifo suffix")
        if self.fifo_throughput_limit == "perMessageGroupId" and self.deduplication_scope != "messageGroup":
            raise ValueError(
                "fifo_throughput_limit 'perMessageGroupId' requires deduplication_scope 'messageGroup'"
            )
        kind = "FIFO" if self.fifo_queue else "standard"
        for topic_arn in self.sns_topic_arns:
            if isinstance(topic_arn, str):
                topic_is_fifo = parse_arn(topic_arn).group("resource").endswith(FIFO_SUFFIX)
                label = topic_arn
            else:
                topic_is_fifo = self.sns_topics_fifo
                label = f"sns_topics_fifo={topic_is_fifo}"
            if topic_is_fifo != self.fifo_queue:
                raise ValueError(f"{kind} queues must subscribe to {kind} topics: '{label}'")
        return self

    @model_validator(mode="after")
    def _check_encryption(self) -> "SqsQueueArgs":
        if self.kms_master_key_id and "sqs_managed_sse_enabled" in self.model_fields_set and self.sqs_managed_sse_enabled:
            raise ValueError("kms_master_key_id and sqs_managed_sse_enabled are mutually exclusive")
        return self

    @model_validator(mode="after")
    def _check_dlq(self) -> "SqsQueueArgs":
        if self.create_dlq and self.dlq_message_retention_seconds < self.message_retention_seconds:
            raise ValueError(
                "dlq_message_retention_seconds must be at least message_retention_seconds"
            )
        return self


@dataclass
class SqsQueueOutputs:
    """Output values from SQS queue component."""
    queue_url: pulumi.Output[str]
    queue_arn: pulumi.Output[str]
    queue_name: pulumi.Output[str]
    dlq_url: pulumi.Output[str] | None
    dlq_arn: pulumi.Output[str] | None
    dlq_name: pulumi.Output[str] | None


class SqsQueueComponent(pulumi.ComponentResource):
    """
    SQS queue with optional dead letter queue and SNS fan-in.

    The DLQ shares the main queue's FIFO-ness, as SQS requires.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: SqsQueueArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:messaging:SqsQueue", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        queue_name = with_fifo_suffix(args.name or name, args.fifo_queue)
        encryption = self._encryption_args(args)

        # Dead Letter Queue (must be created first for redrive policy)
        self.dlq = None
        redrive_policy = None
        if args.create_dlq:
            dlq_name = with_fifo_suffix(f"{strip_fifo_suffix(queue_name)}-dlq", args.fifo_queue)
            self.dlq = aws.sqs.Queue(
                f"{name}-dlq",
                name=dlq_name,
                fifo_queue=args.fifo_queue or None,
                message_retention_seconds=args.dlq_message_retention_seconds,
                tags=module_tags(environment, dlq_name, args.tags),
                opts=child_opts,
                **encryption,
            )
            redrive_policy = self.dlq.arn.apply(
                lambda arn: json.dumps({
                    "deadLetterTargetArn": arn,
                    "maxReceiveCount": args.dlq_max_receive_count,
                })
            )

        # Main Queue
        self.queue = aws.sqs.Queue(
            f"{name}-queue",
            name=queue_name,
            fifo_queue=args.fifo_queue or None,
            content_based_deduplication=args.content_based_deduplication or None,
            deduplication_scope=args.deduplication_scope,
            fifo_throughput_limit=args.fifo_throughput_limit,
            delay_seconds=args.delay_seconds,
            max_message_size=args.max_message_size,
            message_retention_seconds=args.message_retention_seconds,
            receive_wait_time_seconds=args.receive_wait_time_seconds,
            visibility_timeout_seconds=args.visibility_timeout_seconds,
            redrive_policy=redrive_policy,
            tags=module_tags(environment, queue_name, args.tags),
            opts=child_opts,
            **encryption,
        )

        if self.dlq is not None:
            # Allow DLQ to receive from main queue only
            aws.sqs.RedriveAllowPolicy(
                f"{name}-redrive-allow",
                queue_url=self.dlq.url,
                redrive_allow_policy=self.queue.arn.apply(
                    lambda arn: json.dumps({
                        "redrivePermission": "byQueue",
                        "sourceQueueArns": [arn],
                    })
                ),
                opts=child_opts,
            )

        self.queue_policy = None
        self.subscriptions: list[aws.sns.TopicSubscription] = []
        if args.sns_topic_arns:
            self._subscribe_topics(name, args, child_opts)

        self.register_outputs({
            "queue_url": self.queue.url,
            "queue_arn": self.queue.arn,
            "queue_name": self.queue.name,
            "dlq_url": self.dlq.url if self.dlq else None,
            "dlq_arn": self.dlq.arn if self.dlq else None,
            "dlq_name": self.dlq.name if self.dlq else None,
        })

    @staticmethod
    def _encryption_args(args: SqsQueueArgs) -> dict:
        if args.kms_master_key_id:
            return {
                "kms_master_key_id": args.kms_master_key_id,
                "kms_data_key_reuse_period_seconds": args.kms_data_key_reuse_period_seconds,
            }
        return {"sqs_managed_sse_enabled": args.sqs_managed_sse_enabled}

    def _subscribe_topics(
        self,
        name: str,
        args: SqsQueueArgs,
        opts: pulumi.ResourceOptions,
    ) -> None:
        """Let the topics deliver to the queue and subscribe to each of them."""
        self.queue_policy = aws.sqs.QueuePolicy(
            f"{name}-policy",
            queue_url=self.queue.url,
            policy=policies.to_json(policies.policy_document([
                policies.statement(
                    "sqs:SendMessage",
                    resources=self.queue.arn,
                    principals={"Service": "sns.amazonaws.com"},
                    conditions={"ArnEquals": {"aws:SourceArn": list(args.sns_topic_arns)}},
                    sid="AllowSnsTopics",
                ),
            ])),
            opts=opts,
        )

        for index, topic_arn in enumerate(args.sns_topic_arns):
            self.subscriptions.append(aws.sns.TopicSubscription(
                f"{name}-sub-{index}",
                topic=topic_arn,
                protocol="sqs",
                endpoint=self.queue.arn,
                raw_message_delivery=args.raw_message_delivery or None,
                opts=pulumi.ResourceOptions(parent=self, depends_on=[self.queue_policy]),
            ))

    def get_outputs(self) -> SqsQueueOutputs:
        """Get SQS queue output values."""
        return SqsQueueOutputs(
            queue_url=self.queue.url,
            queue_arn=self.queue.arn,
            queue_name=self.queue.name,
            dlq_url=self.dlq.url if self.dlq else None,
            dlq_arn=self.dlq.arn if self.dlq else None,
            dlq_name=self.dlq.name if self.dlq else None,
        )
