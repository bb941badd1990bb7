"""
CloudFront CDN Component.

Key Components:
1. Origins:
   - S3 Origin: Static assets. Secured via Origin Access Control (sigv4) so users
     CANNOT bypass CloudFront. The bucket policy only trusts this distribution
     (AWS:SourceArn condition).
   - Custom Origins: ALB, API Gateway or any HTTP(S) endpoint. Each one can claim a
     path pattern (e.g. /api/*), served with caching disabled.

2. Default Behavior:
   - Targets the S3 origin when there is one, otherwise the first custom origin.
   - Cached with the managed CachingOptimized policy unless ``cache_policy_id`` is given.

3. "SPA Hack" (spa_error_responses):
   - Single Page Apps handle routing in the browser.
   - 403/404 from S3 are answered with /index.html and a 200 OK.

4. Certificates:
   - CloudFront only reads ACM certificates from us-east-1.
   - Without one, the default *.cloudfront.net certificate is used and aliases are not allowed.
"""

import re
from dataclasses import dataclass
from typing import Any, Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import ArgsBlock, InputStr, ModuleArgs
from aws_modules.configs.constants import (
    CLOUDFRONT_ALL_VIEWER_EXCEPT_HOST_POLICY_ID,
    CLOUDFRONT_CACHING_DISABLED_POLICY_ID,
    CLOUDFRONT_CACHING_OPTIMIZED_POLICY_ID,
    CLOUDFRONT_CERTIFICATE_REGION,
)
from aws_modules.utils import policies
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_dns_name, check_unique, parse_arn

COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")
S3_ORIGIN_ID = "s3-origin"
ALL_METHODS = ["GET", "HEAD", "OPTIONS", "PUT", "POST", "PATCH", "DELETE"]


class S3OriginArgs(ArgsBlock):
    """Bucket served through Origin Access Control."""

    bucket_id: InputStr
    bucket_arn: InputStr
    bucket_regional_domain_name: InputStr
    attach_bucket_policy: bool = True
    # Merged into the bucket policy, which this distribution then owns
    extra_policy_statements: list[dict[str, Any]] = Field(default_factory=list)


class CustomOriginArgs(ArgsBlock):
    """HTTP(S) origin, optionally routed by path pattern."""

    origin_id: str
    domain_name: InputStr
    path_pattern: str | None = None
    http_port: int = Field(default=80, ge=1, le=65535)
    https_port: int = Field(default=443, ge=1, le=65535)
    origin_protocol_policy: Literal["http-only", "https-only", "match-viewer"] = "https-only"


class CloudFrontArgs(ModuleArgs):
    """Input arguments for the CloudFront module."""

    comment: str = "Managed by Pulumi"
    enabled: bool = True
    aliases: list[str] = Field(default_factory=list)
    acm_certificate_arn: str | None = None
    minimum_protocol_version: str = "TLSv1.2_2021"
    price_class: Literal["PriceClass_All", "PriceClass_200", "PriceClass_100"] = "PriceClass_100"
    default_root_object: str | None = "index.html"
    http_version: Literal["http1.1", "http2", "http2and3", "http3"] = "http2and3"
    s3_origin: S3OriginArgs | None = None
    custom_origins: list[CustomOriginArgs] = Field(default_factory=list)
    cache_policy_id: str = CLOUDFRONT_CACHING_OPTIMIZED_POLICY_ID
    spa_error_responses: bool = False
    logging_bucket: str | None = None
    logging_prefix: str = ""
    web_acl_id: str | None = None
    geo_restriction_type: Literal["none", "whitelist", "blacklist"] = "none"
    geo_restriction_locations: list[str] = Field(default_factory=list)

    @field_validator("aliases")
    @classmethod
    def _check_aliases(cls, value: list[str]) -> list[str]:
        for alias in value:
            check_dns_name(alias)
        return check_unique(value, "alias")

    @field_validator("acm_certificate_arn")
    @classmethod
    def _check_certificate(cls, value: str | None) -> str | None:
        if value is None:
            return value
        match = parse_arn(value)
        if match is None or match.group("service") != "acm":
            raise ValueError(f"'{value}' is not an ACM certificate ARN")
        if match.group("region") != CLOUDFRONT_CERTIFICATE_REGION:
            raise ValueError(f"CloudFront certificates must be issued in {CLOUDFRONT_CERTIFICATE_REGION}")
        return value

    @field_validator("geo_restriction_locations")
    @classmethod
    def _check_locations(cls, value: list[str]) -> list[str]:
        for code in value:
            if not COUNTRY_CODE_PATTERN.match(code):
                raise ValueError(f"'{code}' is not an ISO 3166-1 alpha-2 country code")
        return check_unique(value, "geo restriction location")

    @model_validator(mode="after")
    def _check_distribution(self) -> "CloudFrontArgs":
        if self.s3_origin is None and not self.custom_origins:
            raise ValueError("at least one origin (s3_origin or custom_origins) is required")
        if self.aliases and self.acm_certificate_arn is None:
            raise ValueError("aliases require acm_certificate_arn")
        if self.geo_restriction_type == "none" and self.geo_restriction_locations:
            raise ValueError("geo_restriction_locations require a whitelist or blacklist restriction type")
        if self.geo_restriction_type != "none" and not self.geo_restriction_locations:
            raise ValueError(f"a {self.geo_restriction_type} restriction needs geo_restriction_locations")
        origin_ids = [o.origin_id for o in self.custom_origins]
        if self.s3_origin is not None:
            origin_ids.append(S3_ORIGIN_ID)
        check_unique(origin_ids, "origin id")
        check_unique([o.path_pattern for o in self.custom_origins if o.path_pattern], "path pattern")
        return self


@dataclass
class CloudFrontOutputs:
    """Output values from CloudFront component."""
    distribution_id: pulumi.Output[str]
    distribution_arn: pulumi.Output[str]
    domain_name: pulumi.Output[str]
    hosted_zone_id: pulumi.Output[str]
    origin_access_control_id: pulumi.Output[str] | None


class CloudFrontComponent(pulumi.ComponentResource):
    """
    CloudFront distribution in front of an S3 bucket and/or custom origins.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: CloudFrontArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:edge:CloudFront", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        origins = []
        self.oac = None
        if args.s3_origin is not None:
            self.oac = aws.cloudfront.OriginAccessControl(
                f"{name}-oac",
                name=f"{name}-oac",
                description=f"OAC for {name}",
                origin_access_control_origin_type="s3",
                signing_behavior="always",
                signing_protocol="sigv4",
                opts=child_opts,
            )
            origins.append(aws.cloudfront.DistributionOriginArgs(
                domain_name=args.s3_origin.bucket_regional_domain_name,
                origin_id=S3_ORIGIN_ID,
                origin_access_control_id=self.oac.id,
            ))

        for origin in args.custom_origins:
            origins.append(aws.cloudfront.DistributionOriginArgs(
                domain_name=origin.domain_name,
                origin_id=origin.origin_id,
                custom_origin_config=aws.cloudfront.DistributionOriginCustomOriginConfigArgs(
                    http_port=origin.http_port,
                    https_port=origin.https_port,
                    origin_protocol_policy=origin.origin_protocol_policy,
                    origin_ssl_protocols=["TLSv1.2"],
                ),
            ))

        default_origin_id = S3_ORIGIN_ID if args.s3_origin else args.custom_origins[0].origin_id

        # Path-routed origins are dynamic: no caching, forward viewer headers
        ordered_cache_behaviors = [
            aws.cloudfront.DistributionOrderedCacheBehaviorArgs(
                path_pattern=origin.path_pattern,
                target_origin_id=origin.origin_id,
                viewer_protocol_policy="redirect-to-https",
                allowed_methods=ALL_METHODS,
                cached_methods=["GET", "HEAD"],
                compress=True,
                cache_policy_id=CLOUDFRONT_CACHING_DISABLED_POLICY_ID,
                origin_request_policy_id=CLOUDFRONT_ALL_VIEWER_EXCEPT_HOST_POLICY_ID,
            )
            for origin in args.custom_origins
            if origin.path_pattern
        ]

        custom_error_responses = []
        if args.spa_error_responses:
            # SPA routing - return index.html for 403/404
            custom_error_responses = [
                aws.cloudfront.DistributionCustomErrorResponseArgs(
                    error_code=code,
                    response_code=200,
                    response_page_path="/index.html",
                )
                for code in (403, 404)
            ]

        if args.acm_certificate_arn:
            viewer_certificate = aws.cloudfront.DistributionViewerCertificateArgs(
                acm_certificate_arn=args.acm_certificate_arn,
                ssl_support_method="sni-only",
                minimum_protocol_version=args.minimum_protocol_version,
            )
        else:
            viewer_certificate = aws.cloudfront.DistributionViewerCertificateArgs(
                cloudfront_default_certificate=True,
            )

        logging_config = None
        if args.logging_bucket:
            logging_config = aws.cloudfront.DistributionLoggingConfigArgs(
                bucket=args.logging_bucket,
                prefix=args.logging_prefix,
                include_cookies=False,
            )

        self.distribution = aws.cloudfront.Distribution(
            f"{name}-distribution",
            enabled=args.enabled,
            is_ipv6_enabled=True,
            comment=args.comment,
            aliases=args.aliases or None,
            default_root_object=args.default_root_object,
            http_version=args.http_version,
            price_class=args.price_class,
            web_acl_id=args.web_acl_id,
            origins=origins,
            ordered_cache_behaviors=ordered_cache_behaviors or None,
            default_cache_behavior=aws.cloudfront.DistributionDefaultCacheBehaviorArgs(
                target_origin_id=default_origin_id,
                viewer_protocol_policy="redirect-to-https",
                allowed_methods=["GET", "HEAD", "OPTIONS"],
                cached_methods=["GET", "HEAD"],
                cache_policy_id=args.cache_policy_id,
                compress=True,
            ),
            custom_error_responses=custom_error_responses or None,
            restrictions=aws.cloudfront.DistributionRestrictionsArgs(
                geo_restriction=aws.cloudfront.DistributionRestrictionsGeoRestrictionArgs(
                    restriction_type=args.geo_restriction_type,
                    locations=args.geo_restriction_locations or None,
                ),
            ),
            viewer_certificate=viewer_certificate,
            logging_config=logging_config,
            tags=module_tags(environment, f"{name}-distribution", args.tags),
            opts=child_opts,
        )

        self.bucket_policy = None
        if args.s3_origin is not None and args.s3_origin.attach_bucket_policy:
            self.bucket_policy = aws.s3.BucketPolicy(
                f"{name}-bucket-policy",
                bucket=args.s3_origin.bucket_id,
                policy=policies.to_json(policies.policy_document([
                    *policies.normalize_statements(args.s3_origin.extra_policy_statements),
                    policies.statement(
                        "s3:GetObject",
                        resources=pulumi.Output.concat(args.s3_origin.bucket_arn, "/*"),
                        principals={"Service": "cloudfront.amazonaws.com"},
                        conditions={"StringEquals": {"AWS:SourceArn": self.distribution.arn}},
                        sid="AllowCloudFrontServicePrincipal",
                    ),
                ])),
                opts=pulumi.ResourceOptions(parent=self, depends_on=[self.distribution]),
            )

        outputs = self.get_outputs()
        self.register_outputs({
            "distribution_id": outputs.distribution_id,
            "distribution_arn": outputs.distribution_arn,
            "domain_name": outputs.domain_name,
            "hosted_zone_id": outputs.hosted_zone_id,
            "origin_access_control_id": outputs.origin_access_control_id,
        })

    def get_outputs(self) -> CloudFrontOutputs:
        """Get CloudFront output values."""
        return CloudFrontOutputs(
            distribution_id=self.distribution.id,
            distribution_arn=self.distribution.arn,
            domain_name=self.distribution.domain_name,
            hosted_zone_id=self.distribution.hosted_zone_id,
            origin_access_control_id=self.oac.id if self.oac else None,
        )
