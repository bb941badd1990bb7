"""
S3 Bucket Component.

Security Principle: Buckets are PRIVATE by default.
- PublicAccessBlock on (absolute lockdown) unless explicitly turned off.
- Object ownership BucketOwnerEnforced (ACLs disabled).
- Server-side encryption always configured (AES256, or KMS with a caller key).
- Bucket policy denies any request not sent over TLS.

Optional features: versioning, lifecycle rules, access logging and extra
policy statements. Only one BucketPolicy may exist per bucket, so when another
component owns the policy (CloudFront with an OAC origin) set
``create_bucket_policy=False`` and hand it ``policy_statements``.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Any, Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import ArgsBlock, InputStr, ModuleArgs
from aws_modules.configs.constants import S3_STORAGE_CLASSES
from aws_modules.utils import policies
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_choice, check_kms_key, check_unique

BUCKET_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
RESERVED_PREFIXES = ("xn--", "sthree-", "amzn-s3-demo-")
RESERVED_SUFFIXES = ("-s3alias", "--ol-s3", ".mrap", "--x-s3")


def check_bucket_name(value: str) -> str:
    """
    Validate an S3 general purpose bucket name.

    Raises:
        ValueError: If the name breaks any of the S3 naming rules
    """
    if not BUCKET_NAME_PATTERN.match(value):
        raise ValueError(
            f"bucket name '{value}' must be 3-63 lowercase letters, numbers, dots or hyphens, "
            "starting and ending with a letter or number"
        )
    if ".." in value:
        raise ValueError(f"bucket name '{value}' cannot contain adjacent periods")
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        pass
    else:
        raise ValueError(f"bucket name '{value}' cannot be formatted as an IP address")
    if value.startswith(RESERVED_PREFIXES):
        raise ValueError(f"bucket name '{value}' uses a reserved prefix")
    if value.endswith(RESERVED_SUFFIXES):
        raise ValueError(f"bucket name '{value}' uses a reserved suffix")
    return value


class TransitionArgs(ArgsBlock):
    days: int = Field(ge=0)
    storage_class: str

    @field_validator("storage_class")
    @classmethod
    def _check_storage_class(cls, value: str) -> str:
        return check_choice(value, S3_STORAGE_CLASSES, "storage_class")


class LifecycleRuleArgs(ArgsBlock):
    """One lifecycle rule, filtered by key prefix."""

    id: str = Field(min_length=1, max_length=255)
    enabled: bool = True
    prefix: str = ""
    expiration_days: int | None = Field(default=None, ge=1)
    noncurrent_version_expiration_days: int | None = Field(default=None, ge=1)
    transitions: list[TransitionArgs] = Field(default_factory=list)
    abort_incomplete_multipart_upload_days: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_rule(self) -> "LifecycleRuleArgs":
        days = [t.days for t in self.transitions]
        if any(later <= earlier for earlier, later in zip(days, days[1:])):
            raise ValueError(f"lifecycle rule '{self.id}': transition days must be strictly increasing")
        if self.expiration_days is not None and days and self.expiration_days <= days[-1]:
            raise ValueError(f"lifecycle rule '{self.id}': expiration must come after the last transition")
        if not (
            self.expiration_days
            or self.noncurrent_version_expiration_days
            or self.transitions
            or self.abort_incomplete_multipart_upload_days
        ):
            raise ValueError(f"lifecycle rule '{self.id}' has no action")
        return self


class S3BucketArgs(ModuleArgs):
    """Input arguments for the S3 bucket module."""

    bucket: str | None = None
    force_destroy: bool = False
    versioning: bool = True
    sse_algorithm: Literal["AES256", "aws:kms", "aws:kms:dsse"] = "AES256"
    kms_key_id: InputStr | None = None
    bucket_key_enabled: bool = True
    block_public_access: bool = True
    object_ownership: Literal["BucketOwnerEnforced", "BucketOwnerPreferred", "ObjectWriter"] = (
        "BucketOwnerEnforced"
    )
    lifecycle_rules: list[LifecycleRuleArgs] = Field(default_factory=list)
    attach_deny_insecure_transport_policy: bool = True
    policy_statements: list[dict[str, Any]] = Field(default_factory=list)
    create_bucket_policy: bool = True
    logging_target_bucket: InputStr | None = None
    logging_target_prefix: str = ""

    @field_validator("bucket")
    @classmethod
    def _check_bucket(cls, value: str | None) -> str | None:
        return check_bucket_name(value) if value is not None else value

    @field_validator("kms_key_id")
    @classmethod
    def _check_kms(cls, value: InputStr | None) -> InputStr | None:
        return check_kms_key(value) if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_bucket_config(self) -> "S3BucketArgs":
        uses_kms = self.sse_algorithm != "AES256"
        if uses_kms and self.kms_key_id is None:
            raise ValueError(f"kms_key_id is required when sse_algorithm is '{self.sse_algorithm}'")
        if not uses_kms and self.kms_key_id is not None:
            raise ValueError("kms_key_id requires sse_algorithm 'aws:kms' or 'aws:kms:dsse'")
        check_unique([rule.id for rule in self.lifecycle_rules], "lifecycle rule id")
        if not self.versioning and any(r.noncurrent_version_expiration_days for r in self.lifecycle_rules):
            raise ValueError("noncurrent_version_expiration_days requires versioning")
        return self


@dataclass
class S3BucketOutputs:
    """Output values from S3 bucket component."""
    bucket_id: pulumi.Output[str]
    bucket_arn: pulumi.Output[str]
    bucket_domain_name: pulumi.Output[str]
    bucket_regional_domain_name: pulumi.Output[str]


class S3BucketComponent(pulumi.ComponentResource):
    """
    Private, encrypted S3 bucket with optional versioning, lifecycle and logging.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: S3BucketArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:storage:S3Bucket", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        self.bucket = aws.s3.Bucket(
            f"{name}-bucket",
            bucket=args.bucket,
            force_destroy=args.force_destroy,
            tags=module_tags(environment, args.bucket or name, args.tags),
            opts=child_opts,
        )

        aws.s3.BucketOwnershipControls(
            f"{name}-ownership",
            bucket=self.bucket.id,
            rule=aws.s3.BucketOwnershipControlsRuleArgs(
                object_ownership=args.object_ownership,
            ),
            opts=child_opts,
        )

        self.public_access_block = None
        if args.block_public_access:
            # Block all public access
            self.public_access_block = aws.s3.BucketPublicAccessBlock(
                f"{name}-public-access-block",
                bucket=self.bucket.id,
                block_public_acls=True,
                block_public_policy=True,
                ignore_public_acls=True,
                restrict_public_buckets=True,
                opts=child_opts,
            )

        self.versioning = None
        if args.versioning:
            self.versioning = aws.s3.BucketVersioning(
                f"{name}-versioning",
                bucket=self.bucket.id,
                versioning_configuration=aws.s3.BucketVersioningVersioningConfigurationArgs(
                    status="Enabled",
                ),
                opts=child_opts,
            )

        aws.s3.BucketServerSideEncryptionConfiguration(
            f"{name}-encryption",
            bucket=self.bucket.id,
            rules=[aws.s3.BucketServerSideEncryptionConfigurationRuleArgs(
                apply_server_side_encryption_by_default=aws.s3.BucketServerSideEncryptionConfigurationRuleApplyServerSideEncryptionByDefaultArgs(
                    sse_algorithm=args.sse_algorithm,
                    kms_master_key_id=args.kms_key_id,
                ),
                bucket_key_enabled=args.bucket_key_enabled if args.sse_algorithm != "AES256" else None,
            )],
            opts=child_opts,
        )

        if args.lifecycle_rules:
            self._create_lifecycle(name, args, child_opts)

        if args.logging_target_bucket is not None:
            aws.s3.BucketLogging(
                f"{name}-logging",
                bucket=self.bucket.id,
                target_bucket=args.logging_target_bucket,
                target_prefix=args.logging_target_prefix,
                opts=child_opts,
            )

        self.policy_statements: list[dict[str, Any]] = []
        if args.attach_deny_insecure_transport_policy:
            self.policy_statements.append(policies.deny_insecure_transport(self.bucket.arn))
        self.policy_statements.extend(policies.normalize_statements(args.policy_statements))

        self.bucket_policy = None
        if args.create_bucket_policy and self.policy_statements:
            self.bucket_policy = aws.s3.BucketPolicy(
                f"{name}-policy",
                bucket=self.bucket.id,
                policy=policies.to_json(policies.policy_document(self.policy_statements)),
                # Ordered after the public access block
                opts=pulumi.ResourceOptions(
                    parent=self,
                    depends_on=[self.public_access_block] if self.public_access_block else None,
                ),
            )

        self.register_outputs({
            "bucket_id": self.bucket.id,
            "bucket_arn": self.bucket.arn,
            "bucket_domain_name": self.bucket.bucket_domain_name,
            "bucket_regional_domain_name": self.bucket.bucket_regional_domain_name,
        })

    def _create_lifecycle(self, name: str, args: S3BucketArgs, opts: pulumi.ResourceOptions) -> None:
        rules = []
        for rule in args.lifecycle_rules:
            rules.append(aws.s3.BucketLifecycleConfigurationRuleArgs(
                id=rule.id,
                status="Enabled" if rule.enabled else "Disabled",
                filter=aws.s3.BucketLifecycleConfigurationRuleFilterArgs(prefix=rule.prefix),
                expiration=aws.s3.BucketLifecycleConfigurationRuleExpirationArgs(
                    days=rule.expiration_days,
                ) if rule.expiration_days else None,
                noncurrent_version_expiration=aws.s3.BucketLifecycleConfigurationRuleNoncurrentVersionExpirationArgs(
                    noncurrent_days=rule.noncurrent_version_expiration_days,
                ) if rule.noncurrent_version_expiration_days else None,
                transitions=[
                    aws.s3.BucketLifecycleConfigurationRuleTransitionArgs(
                        days=t.days,
                        storage_class=t.storage_class,
                    )
                    for t in rule.transitions
                ] or None,
                abort_incomplete_multipart_upload=aws.s3.BucketLifecycleConfigurationRuleAbortIncompleteMultipartUploadArgs(
                    days_after_initiation=rule.abort_incomplete_multipart_upload_days,
                ) if rule.abort_incomplete_multipart_upload_days else None,
            ))

        aws.s3.BucketLifecycleConfiguration(
            f"{name}-lifecycle",
            bucket=self.bucket.id,
            rules=rules,
            # Ordered after versioning
            opts=pulumi.ResourceOptions(
                parent=self,
                depends_on=[self.versioning] if self.versioning else None,
            ),
        )

    def get_outputs(self) -> S3BucketOutputs:
        """Get S3 bucket output values."""
        return S3BucketOutputs(
            bucket_id=self.bucket.id,
            bucket_arn=self.bucket.arn,
            bucket_domain_name=self.bucket.bucket_domain_name,
            bucket_regional_domain_name=self.bucket.bucket_regional_domain_name,
        )
