"""
CloudFormation stack sweeper package.

Delete every stack whose name starts with a given prefix.
"""

from . import cli, sweeper
from .sweeper import StackSweepResult, delete_stacks, find_stacks_by_prefix

__all__ = [
    "StackSweepResult",
    "cli",
    "delete_stacks",
    "find_stacks_by_prefix",
    "sweeper",
]
