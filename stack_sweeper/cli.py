"""
Command-line interface for the CloudFormation stack sweeper.
"""

from __future__ import annotations

import argparse
import logging
import sys

from botocore.exceptions import BotoCoreError, ClientError

from teardown_toolkit.common.aws_client_factory import create_cloudformation_client
from teardown_toolkit.common.cli_utils import configure_logging

from .sweeper import DEFAULT_STACK_PREFIX, delete_stacks, find_stacks_by_prefix


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments for the stack sweeper."""
    parser = argparse.ArgumentParser(
        description="Delete every CloudFormation stack whose name starts with a prefix."
    )
    parser.add_argument(
        "--prefix",
        default=DEFAULT_STACK_PREFIX,
        help=f"Stack name prefix to match (default: {DEFAULT_STACK_PREFIX}).",
    )
    parser.add_argument("--region", help="AWS Region (default: the SDK's configured region).")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the stack sweeper CLI."""
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.verbose)

    cfn_client = create_cloudformation_client(args.region)
    try:
        stack_names = find_stacks_by_prefix(cfn_client, args.prefix)
    except (ClientError, BotoCoreError) as exc:
        logging.error("Failed to list CloudFormation stacks: %s", exc)
        return 1

    if not stack_names:
        print(f"No stacks found starting with '{args.prefix}'")
        return 0

    result = delete_stacks(cfn_client, stack_names)
    print("Deletion initiated for all specified stacks.")
    if result.failed:
        print(f"{len(result.failed)} deletion request(s) failed; see log for details.")
    return 0
