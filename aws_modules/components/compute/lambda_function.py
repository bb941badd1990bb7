"""
Lambda function component.

Creates:
- CloudWatch log group for function logs
- Execution role with managed policy attachments and an inline policy
  assembled from event sources, the dead letter target and caller statements
- Lambda function (ZIP or container image), optionally VPC-attached
- SQS event source mappings and invoke permissions for triggers
"""

import re
from dataclasses import dataclass
from typing import Any, Literal

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import ArgsBlock, InputStr, ModuleArgs
from aws_modules.configs.constants import LAMBDA_RUNTIMES, LOG_RETENTION_DAYS, MANAGED_POLICY_ARNS
from aws_modules.utils import policies
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_arn, check_choice, parse_arn

FUNCTION_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
ENV_KEY_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
RESERVED_ENV_KEYS = frozenset({
    "_HANDLER", "_X_AMZN_TRACE_ID", "AWS_ACCESS_KEY", "AWS_ACCESS_KEY_ID",
    "AWS_DEFAULT_REGION", "AWS_EXECUTION_ENV", "AWS_LAMBDA_FUNCTION_MEMORY_SIZE",
    "AWS_LAMBDA_FUNCTION_NAME", "AWS_LAMBDA_FUNCTION_VERSION", "AWS_LAMBDA_INITIALIZATION_TYPE",
    "AWS_LAMBDA_LOG_GROUP_NAME", "AWS_LAMBDA_LOG_STREAM_NAME", "AWS_LAMBDA_RUNTIME_API",
    "AWS_REGION", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN", "LAMBDA_RUNTIME_DIR",
    "LAMBDA_TASK_ROOT", "TZ",
})


class SqsEventSourceArgs(ArgsBlock):
    """SQS queue polled by the function."""

    queue_arn: InputStr
    batch_size: int = Field(default=10, ge=1, le=10000)
    maximum_batching_window_in_seconds: int = Field(default=0, ge=0, le=300)
    enabled: bool = True
    report_batch_item_failures: bool = False

    @field_validator("queue_arn")
    @classmethod
    def _check_queue_arn(cls, value: InputStr) -> InputStr:
        return check_arn(value, "sqs") if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_batching(self) -> "SqsEventSourceArgs":
        if self.batch_size > 10 and self.maximum_batching_window_in_seconds < 1:
            raise ValueError("batch_size above 10 requires maximum_batching_window_in_seconds >= 1")
        return self


class AllowedTriggerArgs(ArgsBlock):
    """A service allowed to invoke the function."""

    principal: str
    source_arn: InputStr | None = None

    @field_validator("source_arn")
    @classmethod
    def _check_source_arn(cls, value: InputStr | None) -> InputStr | None:
        return check_arn(value) if isinstance(value, str) else value


class LambdaFunctionArgs(ModuleArgs):
    """Input arguments for the Lambda function module."""

    function_name: str | None = None
    description: str | None = None
    package_type: Literal["Zip", "Image"] = "Zip"
    runtime: str | None = None
    handler: str | None = None
    filename: str | None = None
    s3_bucket: InputStr | None = None
    s3_key: str | None = None
    image_uri: InputStr | None = None
    architectures: list[Literal["x86_64", "arm64"]] = Field(default_factory=lambda: ["x86_64"], min_length=1, max_length=1)
    memory_size: int = Field(default=128, ge=128, le=10240)
    timeout: int = Field(default=3, ge=1, le=900)
    ephemeral_storage_size: int = Field(default=512, ge=512, le=10240)
    reserved_concurrent_executions: int = Field(default=-1, ge=-1)
    environment_variables: dict[str, InputStr] = Field(default_factory=dict)

    subnet_ids: list[InputStr] = Field(default_factory=list)
    security_group_ids: list[InputStr] = Field(default_factory=list)

    log_retention_in_days: int = 14
    log_kms_key_id: InputStr | None = None
    tracing_mode: Literal["PassThrough", "Active"] | None = None
    dead_letter_target_arn: InputStr | None = None

    policy_statements: list[dict[str, Any]] = Field(default_factory=list)
    policy_arns: list[str] = Field(default_factory=list)
    sqs_event_sources: list[SqsEventSourceArgs] = Field(default_factory=list)
    allowed_triggers: dict[str, AllowedTriggerArgs] = Field(default_factory=dict)

    @field_validator("function_name")
    @classmethod
    def _check_function_name(cls, value: str | None) -> str | None:
        if value is not None and not FUNCTION_NAME_PATTERN.match(value):
            raise ValueError("function_name must be 1-64 alphanumeric characters, hyphens or underscores")
        return value

    @field_validator("runtime")
    @classmethod
    def _check_runtime(cls, value: str | None) -> str | None:
        return check_choice(value, LAMBDA_RUNTIMES, "runtime") if value else value

    @field_validator("log_retention_in_days")
    @classmethod
    def _check_retention(cls, value: int) -> int:
        if value not in LOG_RETENTION_DAYS:
            raise ValueError(f"log_retention_in_days must be one of {sorted(LOG_RETENTION_DAYS)}")
        return value

    @field_validator("environment_variables")
    @classmethod
    def _check_environment(cls, value: dict[str, InputStr]) -> dict[str, InputStr]:
        for key in value:
            if not ENV_KEY_PATTERN.match(key):
                raise ValueError(f"invalid environment variable name '{key}'")
            if key in RESERVED_ENV_KEYS:
                raise ValueError(f"environment variable '{key}' is reserved by Lambda")
        return value

    @field_validator("policy_arns")
    @classmethod
    def _check_policy_arns(cls, value: list[str]) -> list[str]:
        for arn in value:
            check_arn(arn, "iam")
        return value

    @field_validator("dead_letter_target_arn")
    @classmethod
    def _check_dlq_target(cls, value: InputStr | None) -> InputStr | None:
        if isinstance(value, str) and parse_arn(check_arn(value)).group("service") not in {"sqs", "sns"}:
            raise ValueError("dead_letter_target_arn must be an SQS queue or SNS topic ARN")
        return value

    @model_validator(mode="after")
    def _check_package(self) -> "LambdaFunctionArgs":
        if self.package_type == "Image":
            if self.image_uri is None:
                raise ValueError("Image packages require image_uri")
            if self.runtime or self.handler or self.filename or self.s3_bucket:
                raise ValueError("Image packages take no runtime, handler, filename or s3 source")
            return self
        if not self.runtime or not self.handler:
            raise ValueError("Zip packages require runtime and handler")
        if self.image_uri is not None:
            raise ValueError("image_uri requires package_type 'Image'")
        sources = [self.filename is not None, self.s3_bucket is not None or self.s3_key is not None]
        if sum(sources) != 1:
            raise ValueError("Zip packages require exactly one of filename or s3_bucket/s3_key")
        if sources[1] and (self.s3_bucket is None or self.s3_key is None):
            raise ValueError("s3_bucket and s3_key must be set together")
        return self

    @model_validator(mode="after")
    def _check_vpc(self) -> "LambdaFunctionArgs":
        if bool(self.subnet_ids) != bool(self.security_group_ids):
            raise ValueError("subnet_ids and security_group_ids must be set together")
        return self


@dataclass
class LambdaFunctionOutputs:
    """Output values from Lambda component."""
    function_arn: pulumi.Output[str]
    function_name: pulumi.Output[str]
    invoke_arn: pulumi.Output[str]
    role_arn: pulumi.Output[str]
    role_name: pulumi.Output[str]
    log_group_name: pulumi.Output[str]


class LambdaFunctionComponent(pulumi.ComponentResource):
    """
    Lambda function with its execution role, log group and triggers.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: LambdaFunctionArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:compute:LambdaFunction", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        function_name = args.function_name or name

        # CloudWatch Log Group
        self.log_group = aws.cloudwatch.LogGroup(
            f"{name}-logs",
            name=f"/aws/lambda/{function_name}",
            retention_in_days=args.log_retention_in_days,
            kms_key_id=args.log_kms_key_id,
            tags=module_tags(environment, f"{function_name}-logs", args.tags),
            opts=child_opts,
        )

        role_dependencies = self._create_role(name, environment, function_name, args, child_opts)

        self.function = aws.lambda_.Function(
            f"{name}-function",
            name=function_name,
            description=args.description,
            role=self.role.arn,
            package_type=args.package_type,
            **self._code_args(args),
            architectures=args.architectures,
            memory_size=args.memory_size,
            timeout=args.timeout,
            ephemeral_storage=aws.lambda_.FunctionEphemeralStorageArgs(
                size=args.ephemeral_storage_size,
            ),
            reserved_concurrent_executions=args.reserved_concurrent_executions,
            environment=aws.lambda_.FunctionEnvironmentArgs(
                variables=args.environment_variables,
            ) if args.environment_variables else None,
            vpc_config=aws.lambda_.FunctionVpcConfigArgs(
                subnet_ids=args.subnet_ids,
                security_group_ids=args.security_group_ids,
            ) if args.subnet_ids else None,
            tracing_config=aws.lambda_.FunctionTracingConfigArgs(
                mode=args.tracing_mode,
            ) if args.tracing_mode else None,
            dead_letter_config=aws.lambda_.FunctionDeadLetterConfigArgs(
                target_arn=args.dead_letter_target_arn,
            ) if args.dead_letter_target_arn is not None else None,
            tags=module_tags(environment, function_name, args.tags),
            opts=pulumi.ResourceOptions(
                parent=self,
                depends_on=[self.log_group, *role_dependencies],
            ),
        )

        # SQS Event Source Mappings
        self.event_source_mappings: list[aws.lambda_.EventSourceMapping] = []
        for index, source in enumerate(args.sqs_event_sources):
            self.event_source_mappings.append(aws.lambda_.EventSourceMapping(
                f"{name}-sqs-trigger-{index}",
                event_source_arn=source.queue_arn,
                function_name=self.function.arn,
                batch_size=source.batch_size,
                maximum_batching_window_in_seconds=source.maximum_batching_window_in_seconds,
                enabled=source.enabled,
                function_response_types=["ReportBatchItemFailures"] if source.report_batch_item_failures else None,
                opts=child_opts,
            ))

        self.permissions: dict[str, aws.lambda_.Permission] = {}
        for key, trigger in args.allowed_triggers.items():
            self.permissions[key] = aws.lambda_.Permission(
                f"{name}-allow-{key}",
                action="lambda:InvokeFunction",
                function=self.function.name,
                principal=trigger.principal,
                source_arn=trigger.source_arn,
                statement_id=f"Allow{key.replace('-', '').replace('_', '').title()}",
                opts=child_opts,
            )

        self.register_outputs({
            "function_arn": self.function.arn,
            "function_name": self.function.name,
            "invoke_arn": self.function.invoke_arn,
            "role_arn": self.role.arn,
            "role_name": self.role.name,
            "log_group_name": self.log_group.name,
        })

    @staticmethod
    def _code_args(args: LambdaFunctionArgs) -> dict[str, Any]:
        if args.package_type == "Image":
            return {"image_uri": args.image_uri}
        code: dict[str, Any] = {"runtime": args.runtime, "handler": args.handler}
        if args.filename is not None:
            code["code"] = pulumi.FileArchive(args.filename)
        else:
            code["s3_bucket"] = args.s3_bucket
            code["s3_key"] = args.s3_key
        return code

    def _create_role(
        self,
        name: str,
        environment: str,
        function_name: str,
        args: LambdaFunctionArgs,
        opts: pulumi.ResourceOptions,
    ) -> list[pulumi.Resource]:
        """Create the execution role; returns resources the function must wait for."""
        self.role = aws.iam.Role(
            f"{name}-role",
            name=f"{function_name}-role"[:64],
            assume_role_policy=policies.assume_role_policy("lambda.amazonaws.com"),
            tags=module_tags(environment, f"{function_name}-role", args.tags),
            opts=opts,
        )

        policy_arns = {"basic": MANAGED_POLICY_ARNS["lambda_basic_execution"]}
        if args.subnet_ids:
            policy_arns["vpc"] = MANAGED_POLICY_ARNS["lambda_vpc_access"]
        if args.tracing_mode == "Active":
            policy_arns["xray"] = MANAGED_POLICY_ARNS["xray_write"]
        for index, arn in enumerate(args.policy_arns):
            policy_arns[f"extra-{index}"] = arn

        dependencies: list[pulumi.Resource] = [
            aws.iam.RolePolicyAttachment(
                f"{name}-{key}-policy-attach",
                role=self.role.name,
                policy_arn=arn,
                opts=opts,
            )
            for key, arn in policy_arns.items()
        ]

        statements = []
        if args.sqs_event_sources:
            statements.append(policies.statement(
                [
                    "sqs:ReceiveMessage",
                    "sqs:DeleteMessage",
                    "sqs:GetQueueAttributes",
                    "sqs:ChangeMessageVisibility",
                ],
                resources=[source.queue_arn for source in args.sqs_event_sources],
                sid="PollEventSources",
            ))
        if isinstance(args.dead_letter_target_arn, str):
            service = parse_arn(args.dead_letter_target_arn).group("service")
            action = "sqs:SendMessage" if service == "sqs" else "sns:Publish"
            statements.append(policies.statement(
                action, resources=args.dead_letter_target_arn, sid="DeadLetterTarget",
            ))
        elif args.dead_letter_target_arn is not None:
            statements.append(policies.statement(
                ["sqs:SendMessage", "sns:Publish"],
                resources=args.dead_letter_target_arn,
                sid="DeadLetterTarget",
            ))
        statements.extend(policies.normalize_statements(args.policy_statements))

        self.role_policy = None
        if statements:
            self.role_policy = aws.iam.RolePolicy(
                f"{name}-inline-policy",
                role=self.role.id,
                policy=policies.to_json(policies.policy_document(statements)),
                opts=opts,
            )
            dependencies.append(self.role_policy)

        return dependencies

    def get_outputs(self) -> LambdaFunctionOutputs:
        """Get Lambda output values."""
        return LambdaFunctionOutputs(
            function_arn=self.function.arn,
            function_name=self.function.name,
            invoke_arn=self.function.invoke_arn,
            role_arn=self.role.arn,
            role_name=self.role.name,
            log_group_name=self.log_group.name,
        )
