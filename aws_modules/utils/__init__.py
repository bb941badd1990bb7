"""
Utility functions for the AWS modules.

Provides naming conventions, tag factories, CIDR math, IAM policy
documents and shared input predicates.
"""

from aws_modules.utils.naming import ResourceNamer, with_fifo_suffix
from aws_modules.utils.tags import create_tags, merge_tags
from aws_modules.utils.cidr import cidr_subnet, plan_subnets
from aws_modules.utils.policies import assume_role_policy, policy_document, statement

__all__ = [
    "ResourceNamer",
    "with_fifo_suffix",
    "create_tags",
    "merge_tags",
    "cidr_subnet",
    "plan_subnets",
    "assume_role_policy",
    "policy_document",
    "statement",
]
