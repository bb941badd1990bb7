"""
Infrastructure constants for the AWS modules.

Contains allowed values, numeric limits, managed policy ARNs and default tags.
"""

from typing import Final

# Default tags applied to all resources
DEFAULT_TAGS: Final[dict[str, str]] = {
    "ManagedBy": "pulumi",
}

IAM_POLICY_VERSION: Final[str] = "2012-10-17"

# AWS managed policies
MANAGED_POLICY_ARNS: Final[dict[str, str]] = {
    "lambda_basic_execution": "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole",
    "lambda_vpc_access": "arn:aws:iam::aws:policy/service-role/AWSLambdaVPCAccessExecutionRole",
    "xray_write": "arn:aws:iam::aws:policy/AWSXRayDaemonWriteAccess",
    "ssm_managed_instance": "arn:aws:iam::aws:policy/AmazonSSMManagedInstanceCore",
    "rds_enhanced_monitoring": "arn:aws:iam::aws:policy/service-role/AmazonRDSEnhancedMonitoringRole",
}

# CloudWatch Logs only accepts these retention periods (0 = never expire)
LOG_RETENTION_DAYS: Final[frozenset[int]] = frozenset({
    0, 1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731,
    1096, 1827, 2192, 2557, 2922, 3288, 3653,
})

# SNS
SNS_PROTOCOLS: Final[frozenset[str]] = frozenset({
    "sqs", "lambda", "http", "https", "email", "email-json", "sms", "application", "firehose",
})
SNS_RAW_DELIVERY_PROTOCOLS: Final[frozenset[str]] = frozenset({"sqs", "http", "https", "firehose"})

# SQS limits
SQS_LIMITS: Final[dict[str, tuple[int, int]]] = {
    "delay_seconds": (0, 900),
    "max_message_size": (1024, 262144),
    "message_retention_seconds": (60, 1209600),
    "receive_wait_time_seconds": (0, 20),
    "visibility_timeout_seconds": (0, 43200),
    "kms_data_key_reuse_period_seconds": (60, 86400),
    "max_receive_count": (1, 1000),
}

# Lambda
LAMBDA_RUNTIMES: Final[frozenset[str]] = frozenset({
    "python3.9", "python3.10", "python3.11", "python3.12", "python3.13",
    "nodejs18.x", "nodejs20.x", "nodejs22.x",
    "java11", "java17", "java21",
    "dotnet8",
    "ruby3.2", "ruby3.3",
    "provided.al2", "provided.al2023",
})

# ECS
ECS_FARGATE_PROVIDERS: Final[tuple[str, str]] = ("FARGATE", "FARGATE_SPOT")

# EC2
AL2023_AMI_PARAMETER: Final[str] = "/aws/service/ami-amazon-linux-latest/al2023-ami-kernel-default-x86_64"

# VPC
VPC_PREFIX_RANGE: Final[tuple[int, int]] = (16, 24)
MAX_AZS: Final[int] = 6

# Route53
ROUTE53_RECORD_TYPES: Final[frozenset[str]] = frozenset({
    "A", "AAAA", "CAA", "CNAME", "DS", "MX", "NAPTR", "NS", "PTR", "SOA", "SPF", "SRV", "TXT",
})
ROUTE53_DEFAULT_TTL: Final[int] = 300

# Transit Gateway private ASN ranges (inclusive)
TGW_ASN_RANGES: Final[tuple[tuple[int, int], ...]] = (
    (64512, 65534),
    (4200000000, 4294967294),
)

# CloudFront
CLOUDFRONT_PRICE_CLASSES: Final[frozenset[str]] = frozenset({
    "PriceClass_All", "PriceClass_200", "PriceClass_100",
})
# Managed cache policy "CachingOptimized"
CLOUDFRONT_CACHING_OPTIMIZED_POLICY_ID: Final[str] = "658327ea-f89d-4fab-a63d-7e88639e58f6"
# Managed cache policy "CachingDisabled" and origin request policy "AllViewerExceptHostHeader"
CLOUDFRONT_CACHING_DISABLED_POLICY_ID: Final[str] = "4135ea2d-6df8-44a3-9df3-4b5a84be39ad"
CLOUDFRONT_ALL_VIEWER_EXCEPT_HOST_POLICY_ID: Final[str] = "b689b0a8-53d0-40ab-baf2-68738e2966ac"
CLOUDFRONT_CERTIFICATE_REGION: Final[str] = "us-east-1"
CLOUDFRONT_HOSTED_ZONE_ID: Final[str] = "Z2FDTNDATAQYW2"

# S3
S3_STORAGE_CLASSES: Final[frozenset[str]] = frozenset({
    "STANDARD_IA", "ONEZONE_IA", "INTELLIGENT_TIERING", "GLACIER_IR", "GLACIER", "DEEP_ARCHIVE",
})

# RDS
RDS_DEFAULT_PORTS: Final[dict[str, int]] = {
    "postgres": 5432,
    "mysql": 3306,
    "mariadb": 3306,
}
RDS_LOG_EXPORTS: Final[dict[str, frozenset[str]]] = {
    "postgres": frozenset({"postgresql", "upgrade"}),
    "mysql": frozenset({"audit", "error", "general", "slowquery"}),
    "mariadb": frozenset({"audit", "error", "general", "slowquery"}),
}
RDS_MIN_BACKUP_RETENTION_DAYS: Final[int] = 7
RDS_MAX_BACKUP_RETENTION_DAYS: Final[int] = 35
RDS_MONITORING_INTERVALS: Final[frozenset[int]] = frozenset({0, 1, 5, 10, 15, 30, 60})
