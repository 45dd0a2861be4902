"""
Argument parsing for the VPC teardown CLI.

Handles command-line argument definition, parsing, and validation.
"""

from __future__ import annotations

import argparse
import sys

from .config import DEFAULT_REGION

EXAMPLES = """Example:
    %(prog)s --region us-east-1 --non-interactive
    %(prog)s --region us-east-1 --list-vpc
    %(prog)s --region us-east-1 --vpc-id vpc-0123456789abcdef0 --interactive

Exit status:
    0  teardown finished, VPCs listed, or help shown
    1  usage error, missing --region with --list-vpc, target VPC not available,
       or invalid configuration
    2  teardown aborted by a failed AWS call or wait
"""

USAGE_ERROR_EXIT_CODE = 1


class TeardownArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that prints usage and exits 1 on any usage error."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(USAGE_ERROR_EXIT_CODE, f"{self.prog}: error: {message}\n")


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value!r}")
    return number


def build_parser() -> TeardownArgumentParser:
    """Create the argument parser for the VPC teardown CLI."""
    parser = TeardownArgumentParser(
        description="Force-delete AWS VPCs and every resource that depends on them.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--region",
        help=f"AWS Region (eg. us-east-1). Teardown defaults to {DEFAULT_REGION}; "
        "required with --list-vpc.",
    )
    parser.add_argument(
        "--list-vpc",
        action="store_true",
        help="List all VPCs in the specific region and exit without deleting anything.",
    )
    parser.add_argument(
        "--vpc-id",
        dest="vpc_ids",
        action="append",
        metavar="VPC_ID",
        help="Only tear down this VPC (repeatable). Default: every VPC in the region.",
    )

    prompt_group = parser.add_mutually_exclusive_group()
    prompt_group.add_argument(
        "--non-interactive",
        dest="interactive",
        action="store_false",
        help="Run with no confirmation prompt (the default).",
    )
    prompt_group.add_argument(
        "--interactive",
        dest="interactive",
        action="store_true",
        help="Ask for confirmation before tearing down each VPC.",
    )
    parser.set_defaults(interactive=False)

    parser.add_argument(
        "--wait-timeout",
        type=_positive_float,
        metavar="SECONDS",
        help="Give up waiting for a resource state change after SECONDS (default: 900).",
    )
    parser.add_argument(
        "--poll-interval",
        type=_positive_float,
        metavar="SECONDS",
        help="Initial delay between status polls (default: per resource type).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    """
    Parse and validate command-line arguments for the VPC teardown CLI.

    Exits with status 1 after printing usage when no arguments are given or
    the arguments are invalid; ``-h``/``--help`` exits with status 0.
    """
    parser = build_parser()
    if not argv:
        parser.print_usage(sys.stderr)
        parser.exit(USAGE_ERROR_EXIT_CODE)
    return parser.parse_args(argv)
