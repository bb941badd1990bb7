"""
Messaging components for fan-out and async processing.

Components:
- SnsTopicComponent: Topic, topic policy and subscriptions
- SqsQueueComponent: Queue, dead letter queue and SNS fan-in
"""

from aws_modules.components.messaging.sns_topic import (
    SnsSubscriptionArgs,
    SnsTopicArgs,
    SnsTopicComponent,
    SnsTopicOutputs,
)
from aws_modules.components.messaging.sqs_queue import (
    SqsQueueArgs,
    SqsQueueComponent,
    SqsQueueOutputs,
)

__all__ = [
    "SnsSubscriptionArgs",
    "SnsTopicArgs",
    "SnsTopicComponent",
    "SnsTopicOutputs",
    "SqsQueueArgs",
    "SqsQueueComponent",
    "SqsQueueOutputs",
]
