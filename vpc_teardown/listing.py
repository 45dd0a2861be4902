"""Read-only VPC listing for ``--list-vpc``."""

from __future__ import annotations

from teardown_toolkit.common import vpc_cleanup_utils as vpc_utils
from teardown_toolkit.common.aws_common import extract_tag_value
from teardown_toolkit.common.format_utils import format_table

HEADERS = ("VPC ID", "Name", "CIDR", "State", "Default")


def build_vpc_rows(vpcs):
    """Turn describe_vpcs entries into table rows."""
    return [
        (
            vpc["VpcId"],
            extract_tag_value(vpc, "Name", default="-"),
            vpc.get("CidrBlock", "-"),
            vpc.get("State", "-"),
            "yes" if vpc.get("IsDefault") else "no",
        )
        for vpc in vpcs
    ]


def list_vpcs(ec2_client, region):
    """Print every VPC in the region and return how many were found."""
    vpcs = vpc_utils.list_vpcs(ec2_client)
    if not vpcs:
        print(f"No VPCs found in {region}")
        return 0

    print(f"VPCs in {region}:")
    print(format_table(HEADERS, build_vpc_rows(vpcs)))
    return len(vpcs)
