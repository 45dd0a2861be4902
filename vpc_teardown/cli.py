"""
Command-line interface and main entry point for the VPC teardown tool.

Handles workflow orchestration, exit codes and the final summary.
"""

from __future__ import annotations

import logging
import sys

from botocore.exceptions import BotoCoreError, ClientError

from teardown_toolkit.common.aws_client_factory import create_ec2_client, create_elbv2_client
from teardown_toolkit.common.cli_utils import configure_logging

from .args_parser import parse_args
from .config import ConfigurationError, build_config
from .exceptions import TeardownAbortedError, VpcNotAvailableError
from .listing import list_vpcs
from .pipeline import run_teardown

EXIT_OK = 0
EXIT_PRECONDITION_FAILED = 1
EXIT_TEARDOWN_ABORTED = 2


def _handle_list_vpc(region) -> int:
    """List VPCs without mutating anything. Returns exit code."""
    if not region:
        logging.error("AWS region is required.")
        return EXIT_PRECONDITION_FAILED

    ec2_client = create_ec2_client(region)
    try:
        list_vpcs(ec2_client, region)
    except (ClientError, BotoCoreError) as exc:
        logging.error("Failed to list VPCs in %s: %s", region, exc)
        return EXIT_PRECONDITION_FAILED
    return EXIT_OK


def print_summary(reports) -> None:
    """Print what happened to each target VPC."""
    if not reports:
        return
    print("\n" + "=" * 80)
    print("🎯 TEARDOWN SUMMARY")
    print("=" * 80)
    for report in reports:
        if report.declined:
            print(f"  ⏭️  {report.vpc_id}: skipped (not confirmed)")
            continue
        print(f"  ✅ {report.vpc_id}: deleted")
        leftovers = report.skipped_resources
        if leftovers:
            print(f"     left in place: {', '.join(leftovers)}")


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the VPC teardown CLI.

    Returns EXIT_OK, EXIT_PRECONDITION_FAILED for usage, configuration and
    availability failures, or EXIT_TEARDOWN_ABORTED when a phase fails.
    """
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.verbose)

    if args.list_vpc:
        return _handle_list_vpc(args.region)

    try:
        config = build_config(args)
    except ConfigurationError as exc:
        logging.error("%s", exc)
        return EXIT_PRECONDITION_FAILED

    ec2_client = create_ec2_client(config.region)
    elbv2_client = create_elbv2_client(config.region)

    try:
        reports = run_teardown(ec2_client, elbv2_client, config)
    except VpcNotAvailableError as exc:
        logging.error("%s", exc)
        return EXIT_PRECONDITION_FAILED
    except TeardownAbortedError as exc:
        logging.error("%s", exc)
        return EXIT_TEARDOWN_ABORTED
    except (ClientError, BotoCoreError) as exc:
        logging.error("Unable to resolve target VPCs in %s: %s", config.region, exc)
        return EXIT_PRECONDITION_FAILED

    print_summary(reports)
    return EXIT_OK
