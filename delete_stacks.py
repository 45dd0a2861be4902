#!/usr/bin/env python3
"""
Delete every CloudFormation stack whose name starts with a prefix.

This is a thin wrapper around the stack_sweeper package.
"""
from __future__ import annotations

from stack_sweeper.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
