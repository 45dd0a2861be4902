"""
VPC teardown package.

Force-delete AWS VPCs together with every resource that depends on them.
"""

from . import args_parser, cli, config, exceptions, listing, phases, pipeline
from .config import TeardownConfig, WaitPolicy
from .exceptions import TeardownAbortedError, TeardownError, VpcNotAvailableError
from .phases import PHASES, Phase, PhaseResult, TeardownContext
from .pipeline import TeardownReport, run_teardown, teardown_vpc

__all__ = [
    "PHASES",
    "Phase",
    "PhaseResult",
    "TeardownAbortedError",
    "TeardownConfig",
    "TeardownContext",
    "TeardownError",
    "TeardownReport",
    "VpcNotAvailableError",
    "WaitPolicy",
    "args_parser",
    "cli",
    "config",
    "exceptions",
    "listing",
    "phases",
    "pipeline",
    "run_teardown",
    "teardown_vpc",
]
