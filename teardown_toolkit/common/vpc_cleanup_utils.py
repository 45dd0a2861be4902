"""Shared VPC query helpers used by the teardown phases."""

NAT_GATEWAY_ACTIVE_STATES = ("pending", "available", "deleting")
LIVE_INSTANCE_STATES = ("pending", "running", "shutting-down", "stopping", "stopped")
CLOSED_PEERING_STATES = ("deleted", "deleting", "rejected", "failed", "expired")
CLOSED_ENDPOINT_STATES = ("deleted", "deleting")
CLOSED_VPN_STATES = ("deleted", "deleting")
# Only the requester may delete a peering request the accepter has not answered.
REQUESTER_ONLY_PEERING_STATES = ("pending-acceptance",)


def vpc_filter(vpc_id, name="vpc-id"):
    """Build the server-side filter list scoping a describe call to one VPC."""
    return [{"Name": name, "Values": [vpc_id]}]


def is_default_security_group(security_group):
    """Return True for the VPC's default security group, which cannot be deleted."""
    return security_group.get("GroupName", "").lower() == "default"


def is_default_network_acl(network_acl):
    """Return True for the VPC's default network ACL."""
    return bool(network_acl.get("IsDefault"))


def is_main_route_table(route_table):
    """Return True if any association marks the route table as the VPC's main table."""
    return any(assoc.get("Main") for assoc in route_table.get("Associations", []))


def list_vpcs(ec2_client, vpc_ids=None):
    """Return VPC descriptions in the client's region, optionally limited to ``vpc_ids``."""
    paginator = ec2_client.get_paginator("describe_vpcs")
    params = {"VpcIds": list(vpc_ids)} if vpc_ids else {}
    vpcs = []
    for page in paginator.paginate(**params):
        vpcs.extend(page.get("Vpcs", []))
    return vpcs


def get_vpc_state(ec2_client, vpc_id):
    """Return the state string of a single VPC."""
    response = ec2_client.describe_vpcs(VpcIds=[vpc_id])
    return response["Vpcs"][0]["State"]


def list_nat_gateways(ec2_client, vpc_id, states=None):
    """
    Return NAT gateways in a VPC.

    Args:
        ec2_client: Boto3 EC2 client instance
        vpc_id: VPC ID to process
        states: Optional iterable of states to keep (server-side filter)
    """
    filters = vpc_filter(vpc_id)
    if states:
        filters.append({"Name": "state", "Values": list(states)})
    response = ec2_client.describe_nat_gateways(Filters=filters)
    return response["NatGateways"]


def get_nat_gateway_state(ec2_client, nat_gateway_id):
    """Return the current state of one NAT gateway, or None if it is gone."""
    response = ec2_client.describe_nat_gateways(NatGatewayIds=[nat_gateway_id])
    gateways = response["NatGateways"]
    if not gateways:
        return None
    return gateways[0]["State"]


def list_network_interfaces(ec2_client, vpc_id):
    """Return all network interfaces in a VPC."""
    response = ec2_client.describe_network_interfaces(Filters=vpc_filter(vpc_id))
    return response["NetworkInterfaces"]


def list_instances(ec2_client, vpc_id, states):
    """Return instances in a VPC whose state is one of ``states``."""
    response = ec2_client.describe_instances(
        Filters=vpc_filter(vpc_id) + [{"Name": "instance-state-name", "Values": list(states)}]
    )
    return [
        instance
        for reservation in response["Reservations"]
        for instance in reservation["Instances"]
    ]


def list_load_balancers(elbv2_client, vpc_id):
    """Return ELBv2 load balancers that live in a VPC."""
    paginator = elbv2_client.get_paginator("describe_load_balancers")
    return [
        lb
        for page in paginator.paginate()
        for lb in page["LoadBalancers"]
        if lb.get("VpcId") == vpc_id
    ]


def list_listeners(elbv2_client, load_balancer_arn):
    """Return the listeners of one load balancer."""
    paginator = elbv2_client.get_paginator("describe_listeners")
    return [
        listener
        for page in paginator.paginate(LoadBalancerArn=load_balancer_arn)
        for listener in page["Listeners"]
    ]


def list_target_groups(elbv2_client, vpc_id):
    """Return ELBv2 target groups that belong to a VPC."""
    paginator = elbv2_client.get_paginator("describe_target_groups")
    return [
        tg
        for page in paginator.paginate()
        for tg in page["TargetGroups"]
        if tg.get("VpcId") == vpc_id
    ]


def list_vpn_gateways(ec2_client, vpc_id):
    """Return VPN gateways attached to a VPC that are not already deleted."""
    response = ec2_client.describe_vpn_gateways(Filters=vpc_filter(vpc_id, "attachment.vpc-id"))
    return [gw for gw in response["VpnGateways"] if gw.get("State") not in CLOSED_VPN_STATES]


def has_live_vpc_attachment(vpn_gateway, vpc_id=None):
    """
    Return True if the VPN gateway has an attachment that is not detached.

    The attachment.vpc-id filter also matches attachments left in the
    'detached' state, so callers check the attachment state themselves.
    With ``vpc_id`` omitted any VPC counts.
    """
    return any(
        attachment.get("State") != "detached" and (vpc_id is None or attachment.get("VpcId") == vpc_id)
        for attachment in vpn_gateway.get("VpcAttachments", [])
    )


def is_vpn_gateway_attached(ec2_client, vpn_gateway_id, vpc_id):
    """Return True while a VPN gateway still has a live attachment to the VPC."""
    response = ec2_client.describe_vpn_gateways(VpnGatewayIds=[vpn_gateway_id])
    return any(has_live_vpc_attachment(gateway, vpc_id) for gateway in response["VpnGateways"])


def list_vpn_connections(ec2_client, vpn_gateway_ids):
    """Return live VPN connections terminating on the given VPN gateways."""
    if not vpn_gateway_ids:
        return []
    response = ec2_client.describe_vpn_connections(
        Filters=[{"Name": "vpn-gateway-id", "Values": list(vpn_gateway_ids)}]
    )
    return [conn for conn in response["VpnConnections"] if conn.get("State") not in CLOSED_VPN_STATES]


def list_peering_connections(ec2_client, vpc_id):
    """
    Return live peering connections where the VPC is requester or accepter.

    Requests still pending acceptance are only returned from the requester
    side; the accepter cannot delete them.
    """
    seen = {}
    for filter_name in ("requester-vpc-info.vpc-id", "accepter-vpc-info.vpc-id"):
        response = ec2_client.describe_vpc_peering_connections(Filters=vpc_filter(vpc_id, filter_name))
        for peering in response["VpcPeeringConnections"]:
            status = peering.get("Status", {}).get("Code")
            if status in CLOSED_PEERING_STATES:
                continue
            if filter_name.startswith("accepter") and status in REQUESTER_ONLY_PEERING_STATES:
                continue
            seen.setdefault(peering["VpcPeeringConnectionId"], peering)
    return list(seen.values())


def list_vpc_endpoints(ec2_client, vpc_id):
    """Return VPC endpoints that are not already being deleted."""
    response = ec2_client.describe_vpc_endpoints(Filters=vpc_filter(vpc_id))
    return [
        endpoint
        for endpoint in response["VpcEndpoints"]
        if endpoint.get("State", "").lower() not in CLOSED_ENDPOINT_STATES
    ]


def list_egress_only_gateways(ec2_client, vpc_id):
    """Return egress-only internet gateways attached to a VPC."""
    response = ec2_client.describe_egress_only_internet_gateways()
    return [
        gateway
        for gateway in response["EgressOnlyInternetGateways"]
        if any(att.get("VpcId") == vpc_id for att in gateway.get("Attachments", []))
    ]


def list_network_acls(ec2_client, vpc_id):
    """Return all network ACLs in a VPC."""
    response = ec2_client.describe_network_acls(Filters=vpc_filter(vpc_id))
    return response["NetworkAcls"]


def list_security_groups(ec2_client, vpc_id):
    """Return all security groups in a VPC."""
    response = ec2_client.describe_security_groups(Filters=vpc_filter(vpc_id))
    return response["SecurityGroups"]


def list_internet_gateways(ec2_client, vpc_id):
    """Return internet gateways attached to a VPC."""
    response = ec2_client.describe_internet_gateways(Filters=vpc_filter(vpc_id, "attachment.vpc-id"))
    return response["InternetGateways"]


def is_internet_gateway_attached(ec2_client, igw_id, vpc_id):
    """Return True while an internet gateway is still attached to the VPC."""
    response = ec2_client.describe_internet_gateways(InternetGatewayIds=[igw_id])
    for gateway in response["InternetGateways"]:
        for attachment in gateway.get("Attachments", []):
            if attachment.get("VpcId") == vpc_id:
                return True
    return False


def list_subnets(ec2_client, vpc_id):
    """Return all subnets in a VPC."""
    response = ec2_client.describe_subnets(Filters=vpc_filter(vpc_id))
    return response["Subnets"]


def list_route_tables(ec2_client, vpc_id):
    """Return all route tables in a VPC."""
    response = ec2_client.describe_route_tables(Filters=vpc_filter(vpc_id))
    return response["RouteTables"]
