"""
Stack composition for the AWS modules.

Instantiates the modules enabled in stack config (``modules.<key>``) in
dependency order, wiring outputs into inputs the config leaves unset:
1. VPC → Transit Gateway
2. SNS → SQS, S3 Bucket, RDS
3. Lambda, ECS Cluster, EC2 Baseline
4. CloudFront → Route53
"""

import dataclasses
from typing import Any

import pulumi
import pulumi_aws as aws

from aws_modules.configs.base import StackConfig
from aws_modules.registry import check_module_keys, load_module_args
from aws_modules.utils.naming import ResourceNamer

# Messaging
from aws_modules.components.messaging.sns_topic import SnsTopicComponent
from aws_modules.components.messaging.sqs_queue import SqsQueueComponent

# Compute
from aws_modules.components.compute.lambda_function import LambdaFunctionComponent
from aws_modules.components.compute.ecs_cluster import EcsClusterComponent
from aws_modules.components.compute.ec2_baseline import Ec2BaselineComponent

# Networking
from aws_modules.components.networking.vpc import VpcComponent
from aws_modules.components.networking.route53 import Route53Component
from aws_modules.components.networking.transit_gateway import TransitGatewayComponent

# Edge
from aws_modules.components.edge.cloudfront import CloudFrontComponent

# Storage
from aws_modules.components.storage.s3_bucket import S3BucketComponent
from aws_modules.components.storage.rds import RdsComponent

DEFAULT_AZ_COUNT = 3


def _args(config: StackConfig, key: str, **wiring: Any):
    return load_module_args(key, config.modules.get(key), config.get_tags(), **wiring)


def _app_subnets(vpc_outputs) -> list:
    return vpc_outputs.private_subnet_ids or vpc_outputs.public_subnet_ids


def _alias_records(zone_name: str, aliases: list[str], cloudfront_outputs) -> list[dict]:
    """A and AAAA alias records for each CloudFront alias inside the zone."""
    zone_name = zone_name.rstrip(".")
    return [
        {
            "name": alias[: -len(zone_name) - 1] if alias != zone_name else "",
            "type": record_type,
            "alias": {
                "name": cloudfront_outputs.domain_name,
                "zone_id": cloudfront_outputs.hosted_zone_id,
            },
        }
        for alias in aliases
        if alias == zone_name or alias.endswith(f".{zone_name}")
        for record_type in ("A", "AAAA")
    ]


def build_stack(config: StackConfig) -> dict[str, pulumi.ComponentResource]:
    """
    Build every enabled module and return the components by module key.

    Keys come back in build order. Unknown module keys raise ValueError
    before any resource is declared.
    """
    check_module_keys(config.modules)
    namer = ResourceNamer(project=config.project, environment=config.environment)
    env = config.environment
    components: dict[str, pulumi.ComponentResource] = {}

    # --- Layer 1: Networking Foundation ---
    vpc_outputs = None
    if config.is_enabled("vpc"):
        wiring = {}
        if "azs" not in (config.modules["vpc"] or {}):
            zones = aws.get_availability_zones(state="available")
            wiring["azs"] = zones.names[:DEFAULT_AZ_COUNT]
        vpc = components["vpc"] = VpcComponent(namer.name("vpc"), env, _args(config, "vpc", **wiring))
        vpc_outputs = vpc.get_outputs()

    if config.is_enabled("transit-gateway"):
        wiring = {}
        if vpc_outputs and vpc_outputs.private_subnet_ids:
            wiring["vpc_attachments"] = {
                "vpc": {"vpc_id": vpc_outputs.vpc_id, "subnet_ids": vpc_outputs.private_subnet_ids},
            }
        components["transit-gateway"] = TransitGatewayComponent(
            namer.name("tgw"), env, _args(config, "transit-gateway", **wiring),
        )

    # --- Layer 2: Messaging and Storage ---
    sns = None
    if config.is_enabled("sns"):
        sns_args = _args(config, "sns")
        sns = components["sns"] = SnsTopicComponent(namer.name("sns"), env, sns_args)

    sqs = None
    if config.is_enabled("sqs"):
        wiring = {}
        if sns is not None:
            wiring = {
                "sns_topic_arns": [sns.get_outputs().topic_arn],
                "sns_topics_fifo": sns_args.fifo_topic,
            }
        sqs = components["sqs"] = SqsQueueComponent(namer.name("sqs"), env, _args(config, "sqs", **wiring))

    bucket = None
    # CloudFront takes over the bucket policy when it fronts this bucket
    cloudfront_owns_policy = (
        config.is_enabled("cloudfront")
        and "s3_origin" not in (config.modules["cloudfront"] or {})
    )
    if config.is_enabled("s3-bucket"):
        account_id = aws.get_caller_identity().account_id
        wiring = {"bucket": namer.bucket_name(f"{account_id}-{config.region}")}
        if cloudfront_owns_policy:
            wiring["create_bucket_policy"] = False
        bucket = components["s3-bucket"] = S3BucketComponent(
            namer.name("bucket"), env, _args(config, "s3-bucket", **wiring),
        )

    if config.is_enabled("rds"):
        wiring = {}
        if vpc_outputs:
            wiring = {
                "vpc_id": vpc_outputs.vpc_id,
                "subnet_ids": vpc_outputs.database_subnet_ids or _app_subnets(vpc_outputs),
            }
        components["rds"] = RdsComponent(namer.name("db"), env, _args(config, "rds", **wiring))

    # --- Layer 3: Compute ---
    if config.is_enabled("lambda"):
        raw = config.modules["lambda"] or {}
        wiring = {}
        if sqs is not None:
            wiring["sqs_event_sources"] = [{"queue_arn": sqs.get_outputs().queue_arn}]
        if vpc_outputs and "security_group_ids" in raw:
            wiring["subnet_ids"] = _app_subnets(vpc_outputs)
        components["lambda"] = LambdaFunctionComponent(namer.name("fn"), env, _args(config, "lambda", **wiring))

    if config.is_enabled("ecs-cluster"):
        components["ecs-cluster"] = EcsClusterComponent(namer.name("cluster"), env, _args(config, "ecs-cluster"))

    if config.is_enabled("ec2-baseline"):
        wiring = {}
        if vpc_outputs and _app_subnets(vpc_outputs):
            wiring = {"vpc_id": vpc_outputs.vpc_id, "subnet_id": _app_subnets(vpc_outputs)[0]}
        components["ec2-baseline"] = Ec2BaselineComponent(
            namer.name("ec2"), env, _args(config, "ec2-baseline", **wiring),
        )

    # --- Layer 4: Edge and DNS ---
    cloudfront_outputs = None
    cloudfront_aliases: list[str] = []
    if config.is_enabled("cloudfront"):
        wiring = {}
        if bucket is not None and cloudfront_owns_policy:
            bucket_outputs = bucket.get_outputs()
            wiring["s3_origin"] = {
                "bucket_id": bucket_outputs.bucket_id,
                "bucket_arn": bucket_outputs.bucket_arn,
                "bucket_regional_domain_name": bucket_outputs.bucket_regional_domain_name,
                "extra_policy_statements": bucket.policy_statements,
            }
        cloudfront_args = _args(config, "cloudfront", **wiring)
        cloudfront_aliases = cloudfront_args.aliases
        cdn = components["cloudfront"] = CloudFrontComponent(namer.name("cdn"), env, cloudfront_args)
        cloudfront_outputs = cdn.get_outputs()

    if config.is_enabled("route53"):
        raw = config.modules["route53"] or {}
        wiring = {}
        if cloudfront_outputs and cloudfront_aliases and "records" not in raw:
            wiring["records"] = _alias_records(raw.get("zone_name", ""), cloudfront_aliases, cloudfront_outputs)
        components["route53"] = Route53Component(namer.name("dns"), env, _args(config, "route53", **wiring))

    return components


def stack_exports(components: dict[str, pulumi.ComponentResource]) -> dict[str, Any]:
    """Every set field of each module's outputs, keyed ``<key>_<field>``."""
    exports = {}
    for key, component in components.items():
        outputs = component.get_outputs()
        prefix = key.replace("-", "_")
        for field in dataclasses.fields(outputs):
            value = getattr(outputs, field.name)
            if value is not None:
                exports[f"{prefix}_{field.name}"] = value
    return exports
