"""
Exceptions for the VPC teardown package.
"""


class TeardownError(RuntimeError):
    """Base class for teardown failures reported by the CLI."""


class VpcNotAvailableError(TeardownError):
    """Raised when a target VPC is not in the 'available' state."""

    def __init__(self, vpc_id: str, state: str):
        super().__init__(f"The VPC of {vpc_id} is NOT available now! (state: {state})")
        self.vpc_id = vpc_id
        self.state = state


class TeardownAbortedError(TeardownError):
    """Raised when a phase fails fatally and the run stops."""

    def __init__(self, report):
        failed = report.failed_phase
        super().__init__(
            f"Teardown of {report.vpc_id} aborted in phase '{failed.name}': {failed.error}"
        )
        self.report = report
