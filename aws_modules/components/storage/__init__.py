"""
Storage components for S3 and RDS.

Components:
- S3BucketComponent: Private encrypted bucket, lifecycle, logging, policy
- RdsComponent: RDS instance with subnet group, security group, monitoring
"""

from aws_modules.components.storage.s3_bucket import (
    S3BucketArgs,
    S3BucketComponent,
    S3BucketOutputs,
)
from aws_modules.components.storage.rds import RdsArgs, RdsComponent, RdsOutputs

__all__ = [
    "S3BucketArgs",
    "S3BucketComponent",
    "S3BucketOutputs",
    "RdsArgs",
    "RdsComponent",
    "RdsOutputs",
]
