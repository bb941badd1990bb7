"""
Shared test fixtures and configuration for entire test suite.

Provides: Pulumi runtime mocks so components can be constructed without a
provider or engine, canned data source results, and fake ARNs for wiring
module inputs.
Dependencies: pytest, pulumi
"""

import pulumi
import pytest

ACCOUNT_ID = "123456789012"
REGION = "us-east-1"

# Attributes the provider would compute, keyed by resource type token
COMPUTED_ATTRIBUTES = {
    "aws:sqs/queue:Queue": lambda name, inputs: {
        "url": f"https://sqs.{REGION}.amazonaws.com/{ACCOUNT_ID}/{inputs.get('name', name)}",
        "arn": f"arn:aws:sqs:{REGION}:{ACCOUNT_ID}:{inputs.get('name', name)}",
    },
    "aws:sns/topic:Topic": lambda name, inputs: {
        "arn": f"arn:aws:sns:{REGION}:{ACCOUNT_ID}:{inputs.get('name', name)}",
    },
    "aws:lambda/function:Function": lambda name, inputs: {
        "arn": f"arn:aws:lambda:{REGION}:{ACCOUNT_ID}:function:{inputs.get('name', name)}",
        "invokeArn": f"arn:aws:apigateway:{REGION}:lambda:path/functions/{name}/invocations",
    },
    "aws:s3/bucket:Bucket": lambda name, inputs: {
        "arn": f"arn:aws:s3:::{inputs.get('bucket', name)}",
        "bucketDomainName": f"{inputs.get('bucket', name)}.s3.amazonaws.com",
        "bucketRegionalDomainName": f"{inputs.get('bucket', name)}.s3.{REGION}.amazonaws.com",
    },
    "aws:cloudfront/distribution:Distribution": lambda name, inputs: {
        "arn": f"arn:aws:cloudfront::{ACCOUNT_ID}:distribution/{name}",
        "domainName": f"{name}.cloudfront.net",
        "hostedZoneId": "Z2FDTNDATAQYW2",
    },
    "aws:rds/instance:Instance": lambda name, inputs: {
        "arn": f"arn:aws:rds:{REGION}:{ACCOUNT_ID}:db:{inputs.get('identifier', name)}",
        "address": f"{inputs.get('identifier', name)}.abc123.{REGION}.rds.amazonaws.com",
        "endpoint": f"{inputs.get('identifier', name)}.abc123.{REGION}.rds.amazonaws.com:{inputs.get('port', 5432)}",
    },
    "aws:route53/zone:Zone": lambda name, inputs: {
        "zoneId": "Z0123456789ABCDEFGHIJ",
        "nameServers": ["ns-1.awsdns-01.org", "ns-2.awsdns-02.com"],
    },
}

# Data source results, keyed by invoke token
INVOKE_RESULTS = {
    "aws:index/getAvailabilityZones:getAvailabilityZones": {
        "names": ["us-east-1a", "us-east-1b", "us-east-1c", "us-east-1d"],
        "zoneIds": ["use1-az1", "use1-az2", "use1-az4", "use1-az6"],
        "id": REGION,
    },
    "aws:index/getCallerIdentity:getCallerIdentity": {
        "accountId": ACCOUNT_ID,
        "arn": f"arn:aws:iam::{ACCOUNT_ID}:user/deployer",
        "id": ACCOUNT_ID,
        "userId": "AIDAEXAMPLE",
    },
}


class AwsMocks(pulumi.runtime.Mocks):
    """Echo inputs back as state, adding ids, ARNs and computed attributes."""

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        service = args.typ.split(":")[1].split("/")[0]
        outputs.setdefault("arn", f"arn:aws:{service}:{REGION}:{ACCOUNT_ID}:{args.name}")
        computed = COMPUTED_ATTRIBUTES.get(args.typ)
        if computed is not None:
            outputs.update(computed(args.name, args.inputs))
        return [f"{args.name}-id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        result = INVOKE_RESULTS.get(args.token)
        return dict(result) if result is not None else {}


pulumi.runtime.set_mocks(AwsMocks(), preview=False)


@pytest.fixture
def topic_arn():
    return f"arn:aws:sns:{REGION}:{ACCOUNT_ID}:orders"


@pytest.fixture
def fifo_topic_arn():
    return f"arn:aws:sns:{REGION}:{ACCOUNT_ID}:orders.fifo"


@pytest.fixture
def queue_arn():
    return f"arn:aws:sqs:{REGION}:{ACCOUNT_ID}:jobs"


@pytest.fixture
def certificate_arn():
    return f"arn:aws:acm:us-east-1:{ACCOUNT_ID}:certificate/0a1b2c3d-4e5f-6789-abcd-ef0123456789"
