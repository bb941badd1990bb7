"""
Tests for the CloudFront module.
"""

import json

import pulumi
import pytest
from pydantic import ValidationError

from aws_modules.components.edge.cloudfront import (
    CloudFrontArgs,
    CloudFrontComponent,
    CustomOriginArgs,
    S3OriginArgs,
)

BUCKET_ORIGIN = {
    "bucket_id": "assets",
    "bucket_arn": "arn:aws:s3:::assets",
    "bucket_regional_domain_name": "assets.s3.us-east-1.amazonaws.com",
}


class TestCloudFrontArgs:
    """Input validation for distributions."""

    def test_needs_an_origin(self):
        """A distribution needs at least one origin."""
        with pytest.raises(ValidationError, match="at least one origin"):
            CloudFrontArgs()

    def test_defaults(self):
        """Defaults favour the cheapest price class and a bucket policy."""
        args = CloudFrontArgs(s3_origin=BUCKET_ORIGIN)
        assert args.price_class == "PriceClass_100"
        assert args.default_root_object == "index.html"
        assert args.s3_origin.attach_bucket_policy is True

    def test_aliases_require_certificate(self):
        """Aliases need an ACM certificate."""
        with pytest.raises(ValidationError, match="aliases require acm_certificate_arn"):
            CloudFrontArgs(s3_origin=BUCKET_ORIGIN, aliases=["www.example.com"])

    def test_certificate_must_be_in_us_east_1(self, certificate_arn):
        """CloudFront certificates must live in us-east-1."""
        assert CloudFrontArgs(s3_origin=BUCKET_ORIGIN, acm_certificate_arn=certificate_arn)
        with pytest.raises(ValidationError, match="us-east-1"):
            CloudFrontArgs(
                s3_origin=BUCKET_ORIGIN,
                acm_certificate_arn=certificate_arn.replace("us-east-1", "eu-west-1"),
            )

    def test_certificate_must_be_acm(self):
        """Only ACM certificate ARNs are accepted."""
        with pytest.raises(ValidationError, match="not an ACM certificate ARN"):
            CloudFrontArgs(
                s3_origin=BUCKET_ORIGIN,
                acm_certificate_arn="arn:aws:iam::123456789012:server-certificate/site",
            )

    def test_aliases_are_dns_names(self, certificate_arn):
        """Aliases must be valid and unique DNS names."""
        with pytest.raises(ValidationError, match="valid DNS name"):
            CloudFrontArgs(s3_origin=BUCKET_ORIGIN, acm_certificate_arn=certificate_arn, aliases=["bad host"])
        with pytest.raises(ValidationError, match="duplicate alias"):
            CloudFrontArgs(
                s3_origin=BUCKET_ORIGIN,
                acm_certificate_arn=certificate_arn,
                aliases=["www.example.com", "www.example.com"],
            )

    def test_geo_restriction_consistency(self):
        """Geo restriction type and locations go together."""
        with pytest.raises(ValidationError, match="needs geo_restriction_locations"):
            CloudFrontArgs(s3_origin=BUCKET_ORIGIN, geo_restriction_type="whitelist")
        with pytest.raises(ValidationError, match="require a whitelist or blacklist"):
            CloudFrontArgs(s3_origin=BUCKET_ORIGIN, geo_restriction_locations=["US"])
        with pytest.raises(ValidationError, match="country code"):
            CloudFrontArgs(s3_origin=BUCKET_ORIGIN, geo_restriction_type="blacklist", geo_restriction_locations=["usa"])

    def test_origin_ids_unique(self):
        """Origin ids are unique across S3 and custom origins."""
        with pytest.raises(ValidationError, match="duplicate origin id"):
            CloudFrontArgs(s3_origin=BUCKET_ORIGIN, custom_origins=[
                CustomOriginArgs(origin_id="s3-origin", domain_name="api.example.com"),
            ])

    def test_path_patterns_unique(self):
        """Path patterns are unique."""
        with pytest.raises(ValidationError, match="duplicate path pattern"):
            CloudFrontArgs(custom_origins=[
                CustomOriginArgs(origin_id="api", domain_name="api.example.com", path_pattern="/api/*"),
                CustomOriginArgs(origin_id="legacy", domain_name="old.example.com", path_pattern="/api/*"),
            ])

    def test_origin_protocol_policy_values(self):
        """Origin protocol policy comes from a fixed set."""
        with pytest.raises(ValidationError):
            CustomOriginArgs(origin_id="api", domain_name="api.example.com", origin_protocol_policy="tls")


class TestCloudFrontComponent:
    """Distribution wiring."""

    @pulumi.runtime.test
    def test_bucket_policy_trusts_only_this_distribution(self):
        """The OAC grant is scoped to this distribution's ARN."""
        cdn = CloudFrontComponent("cdn", "dev", CloudFrontArgs(s3_origin=BUCKET_ORIGIN))
        assert cdn.oac is not None
        assert cdn.bucket_policy is not None

        def check(args):
            policy, distribution_arn = args
            statement = json.loads(policy)["Statement"][-1]
            assert statement["Principal"] == {"Service": "cloudfront.amazonaws.com"}
            assert statement["Action"] == "s3:GetObject"
            assert statement["Resource"] == "arn:aws:s3:::assets/*"
            assert statement["Condition"]["StringEquals"]["AWS:SourceArn"] == distribution_arn

        return pulumi.Output.all(cdn.bucket_policy.policy, cdn.distribution.arn).apply(check)

    @pulumi.runtime.test
    def test_extra_statements_come_first(self):
        """Extra bucket statements precede the OAC grant."""
        deny = {"sid": "DenyDelete", "effect": "Deny", "actions": ["s3:DeleteObject"], "resources": ["*"],
                "principals": {"AWS": "*"}}
        cdn = CloudFrontComponent("cdn", "dev", CloudFrontArgs(
            s3_origin=S3OriginArgs(**BUCKET_ORIGIN, extra_policy_statements=[deny]),
        ))

        def check(policy):
            statements = json.loads(policy)["Statement"]
            assert [s["Sid"] for s in statements] == ["DenyDelete", "AllowCloudFrontServicePrincipal"]

        return cdn.bucket_policy.policy.apply(check)

    @pulumi.runtime.test
    def test_no_bucket_policy_when_detached(self):
        """No bucket policy is written when detached."""
        cdn = CloudFrontComponent("cdn", "dev", CloudFrontArgs(
            s3_origin=S3OriginArgs(**BUCKET_ORIGIN, attach_bucket_policy=False),
        ))
        assert cdn.bucket_policy is None

    @pulumi.runtime.test
    def test_custom_origin_only(self):
        """A custom-origin distribution has no OAC."""
        cdn = CloudFrontComponent("api", "dev", CloudFrontArgs(
            default_root_object=None,
            custom_origins=[CustomOriginArgs(origin_id="alb", domain_name="alb.example.com")],
        ))
        assert cdn.oac is None
        assert cdn.bucket_policy is None
        assert cdn.get_outputs().origin_access_control_id is None

        def check(behavior):
            assert behavior.target_origin_id == "alb"

        return cdn.distribution.default_cache_behavior.apply(check)

    @pulumi.runtime.test
    def test_path_routed_origin_is_not_cached(self):
        """Path-routed origins use the caching-disabled policy."""
        cdn = CloudFrontComponent("site", "dev", CloudFrontArgs(
            s3_origin=BUCKET_ORIGIN,
            custom_origins=[
                CustomOriginArgs(origin_id="api", domain_name="api.example.com", path_pattern="/api/*"),
            ],
            spa_error_responses=True,
        ))

        def check(args):
            behaviors, errors = args
            assert behaviors[0].path_pattern == "/api/*"
            assert behaviors[0].cache_policy_id == "4135ea2d-6df8-44a3-9df3-4b5a84be39ad"
            assert sorted(e.error_code for e in errors) == [403, 404]
            assert all(e.response_page_path == "/index.html" for e in errors)

        return pulumi.Output.all(
            cdn.distribution.ordered_cache_behaviors,
            cdn.distribution.custom_error_responses,
        ).apply(check)

    @pulumi.runtime.test
    def test_certificate_and_aliases(self, certificate_arn):
        """Aliases are served with an SNI certificate."""
        cdn = CloudFrontComponent("site", "dev", CloudFrontArgs(
            s3_origin=BUCKET_ORIGIN,
            aliases=["www.example.com"],
            acm_certificate_arn=certificate_arn,
        ))

        def check(args):
            certificate, aliases, zone_id = args
            assert certificate.acm_certificate_arn == certificate_arn
            assert certificate.ssl_support_method == "sni-only"
            assert aliases == ["www.example.com"]
            assert zone_id == "Z2FDTNDATAQYW2"

        return pulumi.Output.all(
            cdn.distribution.viewer_certificate,
            cdn.distribution.aliases,
            cdn.get_outputs().hosted_zone_id,
        ).apply(check)
