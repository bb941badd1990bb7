"""
Tests for the S3 bucket and RDS modules.
"""

import json

import pulumi
import pytest
from pydantic import ValidationError

from aws_modules.components.storage.rds import (
    RdsArgs,
    RdsComponent,
    check_identifier,
    clamp_backup_retention,
)
from aws_modules.components.storage.s3_bucket import (
    LifecycleRuleArgs,
    S3BucketArgs,
    S3BucketComponent,
    check_bucket_name,
)

NETWORK = {"vpc_id": "vpc-1", "subnet_ids": ["subnet-a", "subnet-b"]}


class TestBucketName:
    """S3 naming rules."""

    @pytest.mark.parametrize("name", ["abc", "my-bucket", "logs.example.com", "a" * 63])
    def test_accepts_valid_names(self, name):
        """Lowercase names of 3 to 63 characters are accepted."""
        assert check_bucket_name(name) == name

    @pytest.mark.parametrize("name", ["ab", "a" * 64, "MyBucket", "-bucket", "bucket-", "my_bucket"])
    def test_rejects_bad_shape(self, name):
        """Names with the wrong length or characters are rejected."""
        with pytest.raises(ValueError, match="3-63 lowercase"):
            check_bucket_name(name)

    def test_rejects_adjacent_periods(self):
        """Adjacent periods are rejected."""
        with pytest.raises(ValueError, match="adjacent periods"):
            check_bucket_name("my..bucket")

    def test_rejects_ip_address(self):
        """Names shaped like IP addresses are rejected."""
        with pytest.raises(ValueError, match="IP address"):
            check_bucket_name("192.168.5.4")

    @pytest.mark.parametrize("name", ["xn--bucket", "sthree-bucket", "amzn-s3-demo-bucket"])
    def test_rejects_reserved_prefixes(self, name):
        """Reserved prefixes are rejected."""
        with pytest.raises(ValueError, match="reserved prefix"):
            check_bucket_name(name)

    @pytest.mark.parametrize("name", ["bucket-s3alias", "bucket--ol-s3", "bucket.mrap", "bucket--x-s3"])
    def test_rejects_reserved_suffixes(self, name):
        """Reserved suffixes are rejected."""
        with pytest.raises(ValueError, match="reserved suffix"):
            check_bucket_name(name)


class TestS3BucketArgs:
    """Input validation for buckets."""

    def test_secure_defaults(self):
        """Buckets default to private, versioned and encrypted."""
        args = S3BucketArgs()
        assert args.versioning is True
        assert args.block_public_access is True
        assert args.sse_algorithm == "AES256"
        assert args.object_ownership == "BucketOwnerEnforced"
        assert args.attach_deny_insecure_transport_policy is True

    def test_kms_algorithm_needs_key(self):
        """KMS encryption and a KMS key go together."""
        with pytest.raises(ValidationError, match="kms_key_id is required"):
            S3BucketArgs(sse_algorithm="aws:kms")
        with pytest.raises(ValidationError, match="kms_key_id requires sse_algorithm"):
            S3BucketArgs(kms_key_id="alias/data")
        assert S3BucketArgs(sse_algorithm="aws:kms", kms_key_id="alias/data")

    def test_rejects_bad_kms_key(self):
        """Malformed KMS keys are rejected."""
        with pytest.raises(ValidationError, match="KMS key"):
            S3BucketArgs(sse_algorithm="aws:kms", kms_key_id="data-key")

    def test_transitions_strictly_increasing(self):
        """Transition days strictly increase."""
        with pytest.raises(ValidationError, match="strictly increasing"):
            LifecycleRuleArgs(id="archive", transitions=[
                {"days": 90, "storage_class": "GLACIER"},
                {"days": 30, "storage_class": "STANDARD_IA"},
            ])

    def test_expiration_after_last_transition(self):
        """Expiration comes after the last transition."""
        with pytest.raises(ValidationError, match="after the last transition"):
            LifecycleRuleArgs(
                id="archive",
                expiration_days=30,
                transitions=[{"days": 30, "storage_class": "STANDARD_IA"}],
            )

    def test_rule_needs_an_action(self):
        """Lifecycle rules need at least one action."""
        with pytest.raises(ValidationError, match="has no action"):
            LifecycleRuleArgs(id="noop")

    def test_storage_class_values(self):
        """Transition storage classes come from a fixed set."""
        with pytest.raises(ValidationError, match="storage_class must be one of"):
            LifecycleRuleArgs(id="archive", transitions=[{"days": 30, "storage_class": "COLD"}])

    def test_rule_ids_unique(self):
        """Lifecycle rule ids are unique."""
        rule = {"id": "tmp", "expiration_days": 7}
        with pytest.raises(ValidationError, match="duplicate lifecycle rule id"):
            S3BucketArgs(lifecycle_rules=[rule, rule])

    def test_noncurrent_expiration_needs_versioning(self):
        """Noncurrent version expiration needs versioning."""
        with pytest.raises(ValidationError, match="requires versioning"):
            S3BucketArgs(versioning=False, lifecycle_rules=[{"id": "old", "noncurrent_version_expiration_days": 30}])


class TestS3BucketComponent:
    """Bucket wiring."""

    @pulumi.runtime.test
    def test_policy_denies_insecure_transport(self):
        """The bucket policy denies requests without TLS."""
        bucket = S3BucketComponent("site", "dev", S3BucketArgs(bucket="acme-site"))
        assert bucket.bucket_policy is not None
        assert bucket.versioning is not None
        assert bucket.public_access_block is not None

        def check(policy):
            statement = json.loads(policy)["Statement"][0]
            assert statement["Sid"] == "DenyInsecureTransport"
            assert statement["Effect"] == "Deny"
            assert statement["Resource"] == ["arn:aws:s3:::acme-site", "arn:aws:s3:::acme-site/*"]
            assert statement["Condition"] == {"Bool": {"aws:SecureTransport": "false"}}

        return bucket.bucket_policy.policy.apply(check)

    @pulumi.runtime.test
    def test_caller_statements_follow_tls_deny(self):
        """Caller statements follow the TLS deny."""
        bucket = S3BucketComponent("site", "dev", S3BucketArgs(policy_statements=[
            {"sid": "ReadOnly", "actions": ["s3:GetObject"], "resources": ["*"], "principals": {"AWS": "*"}},
        ]))

        def check(policy):
            assert [s["Sid"] for s in json.loads(policy)["Statement"]] == ["DenyInsecureTransport", "ReadOnly"]

        return bucket.bucket_policy.policy.apply(check)

    @pulumi.runtime.test
    def test_policy_left_to_another_owner(self):
        """Statements are exposed instead of written when another module owns the policy."""
        bucket = S3BucketComponent("site", "dev", S3BucketArgs(create_bucket_policy=False))
        assert bucket.bucket_policy is None
        assert bucket.policy_statements[0]["Sid"] == "DenyInsecureTransport"

    @pulumi.runtime.test
    def test_no_policy_without_statements(self):
        """No policy is written when there is nothing to put in it."""
        bucket = S3BucketComponent("raw", "dev", S3BucketArgs(
            versioning=False,
            attach_deny_insecure_transport_policy=False,
        ))
        assert bucket.bucket_policy is None
        assert bucket.versioning is None

    @pulumi.runtime.test
    def test_outputs(self):
        """ARN and regional domain name outputs follow the bucket name."""
        outputs = S3BucketComponent("site", "dev", S3BucketArgs(bucket="acme-site")).get_outputs()

        def check(args):
            arn, regional = args
            assert arn == "arn:aws:s3:::acme-site"
            assert regional == "acme-site.s3.us-east-1.amazonaws.com"

        return pulumi.Output.all(outputs.bucket_arn, outputs.bucket_regional_domain_name).apply(check)


class TestRdsArgs:
    """Input validation for RDS instances."""

    def test_defaults(self):
        """Instances default to Postgres with deletion protection and a managed password."""
        args = RdsArgs(**NETWORK)
        assert args.engine == "postgres"
        assert args.db_port == 5432
        assert args.backup_retention_period == 7
        assert args.deletion_protection is True
        assert args.manage_master_user_password is True

    def test_engine_default_ports(self):
        """Each engine gets its default port unless one is set."""
        assert RdsArgs(**NETWORK, engine="mysql").db_port == 3306
        assert RdsArgs(**NETWORK, engine="mysql", port=3307).db_port == 3307

    def test_needs_two_subnets(self):
        """The subnet group needs at least two subnets."""
        with pytest.raises(ValidationError):
            RdsArgs(vpc_id="vpc-1", subnet_ids=["subnet-a"])

    def test_identifier_rules(self):
        """Identifiers follow the RDS naming rules."""
        assert check_identifier("orders-db") == "orders-db"
        with pytest.raises(ValueError, match="must start with a letter"):
            check_identifier("1db")
        with pytest.raises(ValueError, match="consecutive hyphens"):
            check_identifier("orders--db")
        with pytest.raises(ValueError, match="end with a hyphen"):
            check_identifier("orders-")

    def test_windows(self):
        """Backup and maintenance windows must be well formed."""
        with pytest.raises(ValidationError, match="backup_window"):
            RdsArgs(**NETWORK, backup_window="3:00-4:00")
        with pytest.raises(ValidationError, match="maintenance_window"):
            RdsArgs(**NETWORK, maintenance_window="Monday:04:00-Monday:05:00")
        assert RdsArgs(**NETWORK, maintenance_window="sun:23:30-mon:00:30")

    def test_password_modes(self):
        """A password is set only when RDS does not manage it."""
        with pytest.raises(ValidationError, match="password cannot be set"):
            RdsArgs(**NETWORK, password="hunter22")
        with pytest.raises(ValidationError, match="password is required"):
            RdsArgs(**NETWORK, manage_master_user_password=False)
        assert RdsArgs(**NETWORK, manage_master_user_password=False, password="hunter22")

    def test_log_exports_per_engine(self):
        """Log exports must exist for the engine."""
        assert RdsArgs(**NETWORK, enabled_cloudwatch_logs_exports=["postgresql"])
        with pytest.raises(ValidationError, match="not valid for postgres"):
            RdsArgs(**NETWORK, enabled_cloudwatch_logs_exports=["slowquery"])

    def test_parameters_need_family(self):
        """Parameters need a parameter group family."""
        with pytest.raises(ValidationError, match="parameter_group_family"):
            RdsArgs(**NETWORK, parameters={"log_min_duration_statement": "500"})

    def test_storage_autoscaling_ceiling(self):
        """The autoscaling ceiling is above the allocated storage."""
        with pytest.raises(ValidationError, match="max_allocated_storage"):
            RdsArgs(**NETWORK, allocated_storage=100, max_allocated_storage=50)

    def test_retention_upper_bound(self):
        """Retention above 35 days is rejected."""
        with pytest.raises(ValidationError):
            RdsArgs(**NETWORK, backup_retention_period=36)

    def test_clamp_backup_retention(self):
        """Retention below 7 days is raised to 7."""
        assert clamp_backup_retention(0) == 7
        assert clamp_backup_retention(1) == 7
        assert clamp_backup_retention(14) == 14


class TestRdsComponent:
    """RDS wiring."""

    @pulumi.runtime.test
    def test_low_retention_is_raised(self):
        """The instance gets the raised retention."""
        db = RdsComponent("orders", "dev", RdsArgs(**NETWORK, backup_retention_period=1))

        def check(retention):
            assert retention == 7

        return db.instance.backup_retention_period.apply(check)

    @pulumi.runtime.test
    def test_instance_is_private_and_encrypted(self):
        """Instances are private and encrypted."""
        db = RdsComponent("orders", "dev", RdsArgs(**NETWORK))
        assert db.parameter_group is None
        assert db.monitoring_role is None

        def check(args):
            public, encrypted, snapshot, port = args
            assert public is False
            assert encrypted is True
            assert snapshot == "orders-final-snapshot"
            assert port == 5432

        return pulumi.Output.all(
            db.instance.publicly_accessible,
            db.instance.storage_encrypted,
            db.instance.final_snapshot_identifier,
            db.instance.port,
        ).apply(check)

    @pulumi.runtime.test
    def test_secret_output_only_with_managed_password(self):
        """The secret ARN output exists only with a managed password."""
        managed = RdsComponent("orders", "dev", RdsArgs(**NETWORK))
        assert managed.get_outputs().master_user_secret_arn is not None

        static = RdsComponent("legacy", "dev", RdsArgs(
            **NETWORK, manage_master_user_password=False, password="hunter22",
        ))
        assert static.get_outputs().master_user_secret_arn is None

    @pulumi.runtime.test
    def test_parameter_group_and_monitoring(self):
        """Parameters and enhanced monitoring create their resources."""
        db = RdsComponent("orders", "dev", RdsArgs(
            **NETWORK,
            parameter_group_family="postgres16",
            parameters={"log_min_duration_statement": "500"},
            monitoring_interval=60,
        ))
        assert db.monitoring_role is not None

        def check(params):
            assert params[0].name == "log_min_duration_statement"
            assert params[0].value == "500"

        return db.parameter_group.parameters.apply(check)

    @pulumi.runtime.test
    def test_endpoint_outputs(self):
        """Endpoint and port outputs come from the instance."""
        outputs = RdsComponent("orders", "dev", RdsArgs(**NETWORK, identifier="orders-db")).get_outputs()

        def check(args):
            address, subnet_group = args
            assert address.startswith("orders-db.")
            assert subnet_group == "orders-db-subnets"

        return pulumi.Output.all(outputs.address, outputs.subnet_group_name).apply(check)
