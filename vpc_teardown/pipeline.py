"""
VPC teardown orchestration.

Resolves the target VPCs, checks they are all available before touching
anything, asks for confirmation when running interactively, and runs the
ordered phases for each VPC. The first fatal phase stops the whole run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from teardown_toolkit.common import vpc_cleanup_utils as vpc_utils
from teardown_toolkit.common.cli_utils import confirm_action
from teardown_toolkit.common.waiter_utils import WaitTimeoutError

from .config import TeardownConfig
from .exceptions import TeardownAbortedError, TeardownError, VpcNotAvailableError
from .phases import PHASES, Phase, PhaseResult, TeardownContext

FATAL_ERRORS = (ClientError, BotoCoreError, WaitTimeoutError, TeardownError)


@dataclass
class TeardownReport:
    """Phase-by-phase record of one VPC teardown."""

    vpc_id: str
    results: list[PhaseResult] = field(default_factory=list)
    declined: bool = False

    @property
    def failed_phase(self) -> Optional[PhaseResult]:
        return next((result for result in self.results if result.fatal), None)

    @property
    def succeeded(self) -> bool:
        return not self.declined and self.failed_phase is None

    @property
    def skipped_resources(self) -> list[str]:
        return [resource for result in self.results for resource in result.skipped]


def resolve_vpc_ids(ec2_client, requested: Sequence[str] = ()) -> list[str]:
    """Return the requested VPC IDs, or every VPC in the region when none were requested."""
    if requested:
        return list(requested)
    return [vpc["VpcId"] for vpc in vpc_utils.list_vpcs(ec2_client)]


def ensure_vpcs_available(ec2_client, vpc_ids: Sequence[str]) -> None:
    """
    Check every target VPC is 'available' before any deletion starts.

    Raises:
        VpcNotAvailableError: For the first VPC in any other state
    """
    for vpc_id in vpc_ids:
        state = vpc_utils.get_vpc_state(ec2_client, vpc_id)
        if state != "available":
            raise VpcNotAvailableError(vpc_id, state)


def run_phases(ctx: TeardownContext, phases: Sequence[Phase] = PHASES) -> TeardownReport:
    """Run ``phases`` in order for one VPC, stopping at the first fatal error."""
    report = TeardownReport(ctx.vpc_id)
    for phase in phases:
        result = PhaseResult(phase.name, ctx.vpc_id)
        report.results.append(result)

        if not phase.enabled(ctx.config):
            print(f"Skipping {phase.title}: not available in {ctx.config.region}")
            result.disabled = True
            continue

        print(f"Process of {phase.title} ...")
        try:
            phase.run(ctx, result)
        except FATAL_ERRORS as exc:
            result.error = exc
            logging.error("Phase '%s' failed for %s: %s", phase.name, ctx.vpc_id, exc)
            break

        if result.skipped:
            logging.debug("Phase '%s' left %s in place", phase.name, ", ".join(result.skipped))
    return report


def teardown_vpc(
    ec2_client,
    elbv2_client,
    vpc_id: str,
    config: TeardownConfig,
    phases: Sequence[Phase] = PHASES,
) -> TeardownReport:
    """
    Delete one VPC and everything in it.

    Raises:
        TeardownAbortedError: If a phase failed fatally; the partial report is attached
    """
    ctx = TeardownContext(ec2=ec2_client, elbv2=elbv2_client, vpc_id=vpc_id, config=config)
    report = run_phases(ctx, phases)
    if report.failed_phase is not None:
        raise TeardownAbortedError(report)
    print("Done.")
    return report


def run_teardown(
    ec2_client,
    elbv2_client,
    config: TeardownConfig,
    phases: Sequence[Phase] = PHASES,
) -> list[TeardownReport]:
    """
    Tear down every target VPC in ``config.region``.

    Returns:
        One report per target VPC, in processing order

    Raises:
        VpcNotAvailableError: If any target is not available (nothing was deleted)
        TeardownAbortedError: If a phase failed fatally (later VPCs were not processed)
    """
    vpc_ids = resolve_vpc_ids(ec2_client, config.vpc_ids)
    if not vpc_ids:
        print(f"No VPCs found in {config.region}")
        return []

    ensure_vpcs_available(ec2_client, vpc_ids)

    reports = []
    for vpc_id in vpc_ids:
        print(f"Processing VPC: {vpc_id}")
        prompt = f"*** Are you sure to delete the VPC of {vpc_id} in {config.region} (y/n)? "
        if not confirm_action(prompt, skip_prompt=not config.interactive):
            print(f"Skipping VPC {vpc_id}")
            reports.append(TeardownReport(vpc_id, declined=True))
            continue
        reports.append(teardown_vpc(ec2_client, elbv2_client, vpc_id, config, phases))
    return reports
