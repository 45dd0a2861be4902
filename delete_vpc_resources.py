#!/usr/bin/env python3
"""
Force-delete AWS VPCs and every resource that depends on them.

Walks NAT gateways, ENIs, load balancers, instances, VPN and peering
connections, endpoints, ACLs, security groups, gateways, subnets and route
tables in dependency order before deleting the VPC itself.

This is a thin wrapper around the vpc_teardown package.
"""
from __future__ import annotations

from vpc_teardown.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
