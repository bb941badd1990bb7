"""
Reusable AWS infrastructure modules built as Pulumi component resources.

This package defines:
- Messaging: SNS topics and SQS queues with DLQs and subscriptions
- Compute: Lambda functions, ECS clusters and an EC2 baseline instance
- Networking: VPC, Route53 zones and Transit Gateway hubs
- Edge: CloudFront distributions
- Storage: S3 buckets and RDS instances
"""
