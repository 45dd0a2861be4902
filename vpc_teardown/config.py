"""
Configuration for the VPC teardown tool.

Defaults live in module constants; environment variables (optionally loaded
from a .env file) override them, and command-line flags override both.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from teardown_toolkit.common.aws_client_factory import load_environment

DEFAULT_REGION = "us-west-2"

# Regions without VPN support; VPN phases are skipped there.
DEFAULT_SKIP_VPN_REGIONS = ("cn-north-1", "cn-northwest-1")

DEFAULT_WAIT_TIMEOUT_SECONDS = 900.0
NAT_GATEWAY_POLL_SECONDS = 10.0
NAT_GATEWAY_SWEEP_POLL_SECONDS = 3.0
DETACH_POLL_SECONDS = 3.0
DEFAULT_BACKOFF_FACTOR = 1.5
DEFAULT_MAX_INTERVAL_SECONDS = 30.0
WAITER_DELAY_SECONDS = 15

SKIP_VPN_REGIONS_ENV = "VPC_TEARDOWN_SKIP_VPN_REGIONS"
WAIT_TIMEOUT_ENV = "VPC_TEARDOWN_WAIT_TIMEOUT"
POLL_INTERVAL_ENV = "VPC_TEARDOWN_POLL_INTERVAL"


class ConfigurationError(RuntimeError):
    """Raised when an environment setting cannot be parsed."""


@dataclass(frozen=True)
class WaitPolicy:
    """Bounds for every wait performed during teardown."""

    timeout_seconds: float = DEFAULT_WAIT_TIMEOUT_SECONDS
    poll_interval_seconds: Optional[float] = None
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    max_interval_seconds: float = DEFAULT_MAX_INTERVAL_SECONDS

    def interval(self, default: float) -> float:
        """Return the configured poll interval, or the phase-specific default."""
        if self.poll_interval_seconds is not None:
            return self.poll_interval_seconds
        return default

    @property
    def waiter_delay(self) -> int:
        return WAITER_DELAY_SECONDS

    @property
    def waiter_max_attempts(self) -> int:
        return max(1, int(self.timeout_seconds // self.waiter_delay))


@dataclass(frozen=True)
class TeardownConfig:
    """Everything a teardown run needs to know, resolved once at startup."""

    region: str = DEFAULT_REGION
    interactive: bool = False
    vpc_ids: tuple[str, ...] = ()
    skip_vpn_regions: frozenset[str] = frozenset(DEFAULT_SKIP_VPN_REGIONS)
    wait: WaitPolicy = field(default_factory=WaitPolicy)

    @property
    def vpn_supported(self) -> bool:
        return self.region not in self.skip_vpn_regions


def _positive_float(environ: Mapping[str, str], name: str) -> Optional[float]:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def _skip_vpn_regions(environ: Mapping[str, str]) -> frozenset[str]:
    raw = environ.get(SKIP_VPN_REGIONS_ENV)
    if raw is None:
        return frozenset(DEFAULT_SKIP_VPN_REGIONS)
    return frozenset(region.strip() for region in raw.split(",") if region.strip())


def build_config(args, environ: Optional[Mapping[str, str]] = None) -> TeardownConfig:
    """
    Build a TeardownConfig from parsed arguments and the environment.

    Args:
        args: argparse.Namespace produced by ``vpc_teardown.args_parser.parse_args``
        environ: Mapping used instead of os.environ (the .env file is only
                 loaded when this is omitted)

    Raises:
        ConfigurationError: If an environment override is malformed
    """
    if environ is None:
        load_environment()
        environ = os.environ

    timeout = args.wait_timeout or _positive_float(environ, WAIT_TIMEOUT_ENV)
    poll_interval = args.poll_interval or _positive_float(environ, POLL_INTERVAL_ENV)

    return TeardownConfig(
        region=args.region or DEFAULT_REGION,
        interactive=args.interactive,
        vpc_ids=tuple(dict.fromkeys(args.vpc_ids or [])),
        skip_vpn_regions=_skip_vpn_regions(environ),
        wait=WaitPolicy(
            timeout_seconds=timeout or DEFAULT_WAIT_TIMEOUT_SECONDS,
            poll_interval_seconds=poll_interval,
        ),
    )
