"""
Pulumi component resources for reusable AWS modules.

Each submodule provides ComponentResource classes with a pydantic Args model
and an Outputs dataclass:
- messaging: SNS topics, SQS queues
- compute: Lambda functions, ECS clusters, EC2 instances
- networking: VPC, Route53, Transit Gateway
- edge: CloudFront
- storage: S3 buckets, RDS
"""
