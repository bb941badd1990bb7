"""
Tests for shared helpers: naming, tags, CIDR math, policies and predicates.
"""

import json

import pytest

from aws_modules.utils.cidr import (
    cidr_subnet,
    find_overlap,
    is_valid_cidr,
    plan_subnets,
    subnet_within,
)
from aws_modules.utils.naming import ResourceNamer, strip_fifo_suffix, with_fifo_suffix
from aws_modules.utils.policies import (
    assume_role_policy,
    normalize_statements,
    policy_document,
    statement,
)
from aws_modules.utils.tags import create_tags, merge_tags, module_tags
from aws_modules.utils.validators import (
    check_arn,
    check_choice,
    check_dns_name,
    check_kms_key,
    check_port_range,
    check_unique,
)


class TestResourceNamer:
    """Tests for naming conventions."""

    def test_name_pattern(self):
        """Names are <project>-<environment>-<resource>."""
        namer = ResourceNamer(project="acme", environment="dev")
        assert namer.name("vpc") == "acme-dev-vpc"

    def test_empty_resource_gives_base_name(self):
        """An empty resource gives the bare project-environment prefix."""
        namer = ResourceNamer(project="acme", environment="dev")
        assert namer.name("") == "acme-dev"

    def test_bucket_name_is_lowercase_and_capped(self):
        """Bucket names are lowercase and capped at 63 characters."""
        namer = ResourceNamer(project="Acme", environment="prod")
        name = namer.bucket_name("x" * 80)
        assert name == name.lower()
        assert len(name) <= 63
        assert not name.endswith("-")

    def test_fifo_suffix_not_doubled(self):
        """The .fifo suffix is added once and stripped cleanly."""
        assert with_fifo_suffix("jobs.fifo", fifo=True) == "jobs.fifo"
        assert strip_fifo_suffix("jobs.fifo") == "jobs"
        assert strip_fifo_suffix("jobs") == "jobs"


class TestTags:
    """Tests for the tag factory."""

    def test_create_tags_includes_defaults(self):
        """Default tags are kept alongside extra tags."""
        tags = create_tags("dev", "queue", Team="core")
        assert tags["ManagedBy"] == "pulumi"
        assert tags["Environment"] == "dev"
        assert tags["Name"] == "queue"
        assert tags["Team"] == "core"

    def test_merge_tags_later_wins(self):
        """Later tag maps override earlier ones."""
        assert merge_tags({"a": "1", "b": "1"}, {"b": "2"}, {"c": "3"}) == {"a": "1", "b": "2", "c": "3"}

    def test_module_tags_caller_overrides_defaults(self):
        """Caller tags override the default tags."""
        tags = module_tags("dev", "queue", {"ManagedBy": "team", "Owner": "ops"})
        assert tags["ManagedBy"] == "team"
        assert tags["Owner"] == "ops"
        assert tags["Name"] == "queue"


class TestCidr:
    """Tests for CIDR helpers."""

    def test_cidr_subnet_matches_terraform(self):
        """Results match terraform's cidrsubnet."""
        assert cidr_subnet("10.0.0.0/16", 8, 0) == "10.0.0.0/24"
        assert cidr_subnet("10.0.0.0/16", 8, 2) == "10.0.2.0/24"
        assert cidr_subnet("10.0.0.0/16", 4, 15) == "10.0.240.0/20"

    def test_cidr_subnet_rejects_out_of_range_netnum(self):
        """A netnum that does not fit in newbits is rejected."""
        with pytest.raises(ValueError):
            cidr_subnet("10.0.0.0/16", 2, 4)

    def test_cidr_subnet_rejects_too_many_bits(self):
        """Prefixes longer than /32 are rejected."""
        with pytest.raises(ValueError):
            cidr_subnet("10.0.0.0/30", 4, 0)

    def test_is_valid_cidr(self):
        """Only network addresses with a prefix are valid."""
        assert is_valid_cidr("10.0.0.0/16")
        assert not is_valid_cidr("10.0.0.1/16")
        assert not is_valid_cidr("10.0.0.0")
        assert not is_valid_cidr("not-a-cidr")

    def test_subnet_within(self):
        """Containment in the VPC range."""
        assert subnet_within("10.0.1.0/24", "10.0.0.0/16")
        assert not subnet_within("10.1.0.0/24", "10.0.0.0/16")

    def test_find_overlap(self):
        """The first overlapping pair is returned."""
        assert find_overlap(["10.0.0.0/24", "10.0.1.0/24"]) is None
        assert find_overlap(["10.0.0.0/23", "10.0.1.0/24"]) == ("10.0.0.0/23", "10.0.1.0/24")

    def test_plan_subnets_layout(self):
        """Tiers are carved in order with no overlap."""
        layout = plan_subnets("10.0.0.0/16", 3, ("public", "private", "database"))
        assert layout["public"] == ["10.0.0.0/20", "10.0.16.0/20", "10.0.32.0/20"]
        assert layout["private"][0] == "10.0.48.0/20"
        assert layout["database"][2] == "10.0.128.0/20"
        assert find_overlap([c for cidrs in layout.values() for c in cidrs]) is None

    def test_plan_subnets_rejects_small_vpc(self):
        """A VPC too small for the layout is rejected."""
        with pytest.raises(ValueError, match="too small"):
            plan_subnets("10.0.0.0/26", 2, ("public", "private"))


class TestPolicies:
    """Tests for IAM policy document assembly."""

    def test_statement_shape(self):
        """Statements use IAM key names."""
        stmt = statement("s3:GetObject", resources="arn:aws:s3:::b/*", sid="Read")
        assert stmt == {
            "Sid": "Read",
            "Effect": "Allow",
            "Action": "s3:GetObject",
            "Resource": "arn:aws:s3:::b/*",
        }

    def test_policy_document_version(self):
        """Documents carry the 2012-10-17 version."""
        assert policy_document([])["Version"] == "2012-10-17"

    def test_assume_role_policy_single_service(self):
        """One service is a plain string principal."""
        doc = json.loads(assume_role_policy("lambda.amazonaws.com"))
        stmt = doc["Statement"][0]
        assert stmt["Action"] == "sts:AssumeRole"
        assert stmt["Principal"] == {"Service": "lambda.amazonaws.com"}

    def test_assume_role_policy_multiple_services(self):
        """Several services become a list principal."""
        doc = json.loads(assume_role_policy("ec2.amazonaws.com", "ssm.amazonaws.com"))
        assert doc["Statement"][0]["Principal"]["Service"] == ["ec2.amazonaws.com", "ssm.amazonaws.com"]

    def test_normalize_statements(self):
        """snake_case statements are converted and IAM-form ones pass through."""
        raw = [
            {"actions": ["sqs:SendMessage"], "resources": ["*"], "sid": "Send"},
            {"Effect": "Deny", "Action": "s3:*", "Resource": "*"},
        ]
        normalized = normalize_statements(raw)
        assert normalized[0] == {"Sid": "Send", "Effect": "Allow", "Action": ["sqs:SendMessage"], "Resource": ["*"]}
        assert normalized[1] is raw[1]


class TestValidators:
    """Tests for shared input predicates."""

    def test_check_arn_service(self):
        """ARNs must belong to the expected service."""
        arn = "arn:aws:sqs:us-east-1:123456789012:jobs"
        assert check_arn(arn, "sqs") == arn
        with pytest.raises(ValueError, match="not an sns ARN"):
            check_arn(arn, "sns")

    def test_check_arn_rejects_garbage(self):
        """Non-ARN strings are rejected."""
        with pytest.raises(ValueError, match="not a valid ARN"):
            check_arn("jobs")

    def test_check_kms_key_forms(self):
        """Aliases, key ids and key ARNs are accepted."""
        assert check_kms_key("alias/aws/sqs") == "alias/aws/sqs"
        assert check_kms_key("1234abcd-12ab-34cd-56ef-1234567890ab")
        assert check_kms_key("arn:aws:kms:us-east-1:123456789012:key/1234abcd-12ab-34cd-56ef-1234567890ab")
        with pytest.raises(ValueError):
            check_kms_key("my-key")

    def test_check_dns_name(self):
        """DNS names and wildcards are accepted."""
        assert check_dns_name("www.example.com") == "www.example.com"
        assert check_dns_name("*.example.com")
        with pytest.raises(ValueError):
            check_dns_name("bad_name..com")

    def test_check_choice_and_unique(self):
        """Choices must be known and lists unique."""
        assert check_choice("a", {"a", "b"}, "letter") == "a"
        with pytest.raises(ValueError, match="letter must be one of"):
            check_choice("c", {"a", "b"}, "letter")
        with pytest.raises(ValueError, match="duplicate"):
            check_unique(["x", "x"], "item")

    def test_check_port_range(self):
        """Ports are ordered and within 0-65535."""
        check_port_range(443, 443)
        with pytest.raises(ValueError, match="greater than"):
            check_port_range(443, 80)
        with pytest.raises(ValueError, match="out of range"):
            check_port_range(0, 70000)
