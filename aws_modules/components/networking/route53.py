"""
Route53 hosted zone and records.

A public zone is created by default; passing ``private_zone_vpc_ids`` makes it
private to those VPCs. With ``create_zone=False`` records are added to an
existing zone given by ``zone_id``.

Record names are relative to the zone: "" or "@" is the apex, "www" becomes
"www.<zone_name>".
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws
from pydantic import Field, field_validator, model_validator

from aws_modules.configs.base import ArgsBlock, InputStr, ModuleArgs
from aws_modules.configs.constants import ROUTE53_DEFAULT_TTL, ROUTE53_RECORD_TYPES
from aws_modules.utils.tags import module_tags
from aws_modules.utils.validators import check_choice, check_dns_name

APEX_NAMES = frozenset({"", "@"})


class AliasArgs(ArgsBlock):
    """Alias target (CloudFront, ALB, S3 website, another record)."""

    name: InputStr
    zone_id: InputStr
    evaluate_target_health: bool = False


class RecordArgs(ArgsBlock):
    """A record set in the zone."""

    name: str = ""
    type: str
    ttl: int | None = Field(default=None, ge=0, le=2147483647)
    records: list[str] = Field(default_factory=list)
    alias: AliasArgs | None = None
    set_identifier: str | None = None
    weight: int | None = Field(default=None, ge=0, le=255)

    @field_validator("type")
    @classmethod
    def _check_type(cls, value: str) -> str:
        return check_choice(value.upper(), ROUTE53_RECORD_TYPES, "record type")

    @model_validator(mode="after")
    def _check_record(self) -> "RecordArgs":
        if bool(self.records) == (self.alias is not None):
            raise ValueError(f"record '{self.name or '@'}' needs exactly one of records or alias")
        if self.alias is not None and self.ttl is not None:
            raise ValueError("ttl cannot be set on alias records")
        if self.type == "CNAME" and self.is_apex:
            raise ValueError("CNAME records are not allowed at the zone apex")
        if self.weight is not None and self.set_identifier is None:
            raise ValueError("weighted records require set_identifier")
        return self

    @property
    def is_apex(self) -> bool:
        return self.name in APEX_NAMES

    def fqdn(self, zone_name: str) -> str:
        zone_name = zone_name.rstrip(".")
        return zone_name if self.is_apex else f"{self.name}.{zone_name}"


class Route53Args(ModuleArgs):
    """Input arguments for the Route53 module."""

    zone_name: str
    comment: str = "Managed by Pulumi"
    force_destroy: bool = False
    private_zone_vpc_ids: list[InputStr] = Field(default_factory=list)
    create_zone: bool = True
    zone_id: InputStr | None = None
    records: list[RecordArgs] = Field(default_factory=list)

    @field_validator("zone_name")
    @classmethod
    def _check_zone_name(cls, value: str) -> str:
        return check_dns_name(value).rstrip(".").lower()

    @model_validator(mode="after")
    def _check_zone(self) -> "Route53Args":
        if not self.create_zone and self.zone_id is None:
            raise ValueError("zone_id is required when create_zone is false")
        if self.create_zone and self.zone_id is not None:
            raise ValueError("zone_id cannot be set when create_zone is true")
        if not self.create_zone and self.private_zone_vpc_ids:
            raise ValueError("private_zone_vpc_ids only applies when creating the zone")
        seen = set()
        for record in self.records:
            key = (record.fqdn(self.zone_name), record.type, record.set_identifier)
            if key in seen:
                raise ValueError(f"duplicate {record.type} record for '{key[0]}'")
            seen.add(key)
        return self

    @property
    def is_private(self) -> bool:
        return bool(self.private_zone_vpc_ids)


@dataclass
class Route53Outputs:
    """Output values from Route53 component."""
    zone_id: pulumi.Output[str]
    zone_arn: pulumi.Output[str] | None
    name_servers: pulumi.Output[list[str]] | None
    record_fqdns: list[pulumi.Output[str]]


class Route53Component(pulumi.ComponentResource):
    """
    Hosted zone (public or private) and its records.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        args: Route53Args,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:networking:Route53", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        self.zone = None
        if args.create_zone:
            self.zone = aws.route53.Zone(
                f"{name}-zone",
                name=args.zone_name,
                comment=args.comment,
                force_destroy=args.force_destroy,
                vpcs=[
                    aws.route53.ZoneVpcArgs(vpc_id=vpc_id)
                    for vpc_id in args.private_zone_vpc_ids
                ] or None,
                tags=module_tags(environment, args.zone_name, args.tags),
                opts=child_opts,
            )
            self.zone_id = self.zone.zone_id
        else:
            self.zone_id = pulumi.Output.from_input(args.zone_id)

        self.records: list[aws.route53.Record] = []
        for index, record in enumerate(args.records):
            self.records.append(aws.route53.Record(
                f"{name}-record-{index}",
                zone_id=self.zone_id,
                name=record.fqdn(args.zone_name),
                type=record.type,
                ttl=None if record.alias else (record.ttl if record.ttl is not None else ROUTE53_DEFAULT_TTL),
                records=record.records or None,
                aliases=[
                    aws.route53.RecordAliasArgs(
                        name=record.alias.name,
                        zone_id=record.alias.zone_id,
                        evaluate_target_health=record.alias.evaluate_target_health,
                    ),
                ] if record.alias else None,
                set_identifier=record.set_identifier,
                weighted_routing_policies=[
                    aws.route53.RecordWeightedRoutingPolicyArgs(weight=record.weight),
                ] if record.weight is not None else None,
                opts=child_opts,
            ))

        outputs = self.get_outputs()
        self.register_outputs({
            "zone_id": outputs.zone_id,
            "zone_arn": outputs.zone_arn,
            "name_servers": outputs.name_servers,
            "record_fqdns": outputs.record_fqdns,
        })

    def get_outputs(self) -> Route53Outputs:
        """Get Route53 output values."""
        return Route53Outputs(
            zone_id=self.zone_id,
            zone_arn=self.zone.arn if self.zone else None,
            name_servers=self.zone.name_servers if self.zone else None,
            record_fqdns=[record.fqdn for record in self.records],
        )
