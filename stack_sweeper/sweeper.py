"""Find CloudFormation stacks by name prefix and request their deletion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from botocore.exceptions import ClientError

DEFAULT_STACK_PREFIX = "eks"


@dataclass
class StackSweepResult:
    """Stacks whose deletion was requested, and the ones AWS refused."""

    requested: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)


def find_stacks_by_prefix(cfn_client, prefix=DEFAULT_STACK_PREFIX):
    """
    Return the names of live stacks whose name starts with ``prefix``.

    Args:
        cfn_client: Boto3 CloudFormation client
        prefix: Case-sensitive stack name prefix

    Returns:
        list[str]: Matching stack names in the order AWS returned them
    """
    paginator = cfn_client.get_paginator("describe_stacks")
    return [
        stack["StackName"]
        for page in paginator.paginate()
        for stack in page["Stacks"]
        if stack["StackName"].startswith(prefix) and stack.get("StackStatus") != "DELETE_COMPLETE"
    ]


def delete_stacks(cfn_client, stack_names):
    """
    Request deletion of every stack in ``stack_names``.

    Deletion is asynchronous; this returns once every request has been sent.
    A refused request is logged and recorded, and the sweep carries on.
    """
    result = StackSweepResult()
    for stack_name in stack_names:
        print(f"Deleting stack {stack_name}")
        try:
            cfn_client.delete_stack(StackName=stack_name)
        except ClientError as exc:
            logging.error("Failed to delete stack %s: %s", stack_name, exc)
            result.failed.append((stack_name, str(exc)))
            continue
        result.requested.append(stack_name)
    return result
