"""
Teardown phases for a single VPC.

Each phase queries the resources of one kind scoped to the VPC, filters out
what must not be deleted, issues the mutating calls and waits where the next
phase depends on the change having landed. Phases record what they touched in
a PhaseResult. Only the first ENI pass tolerates failures; everywhere else a
botocore error propagates and the pipeline stops.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from botocore.exceptions import ClientError

from teardown_toolkit.common import vpc_cleanup_utils as vpc_utils
from teardown_toolkit.common import waiter_utils
from teardown_toolkit.common.aws_common import get_error_code

from .config import (
    DETACH_POLL_SECONDS,
    NAT_GATEWAY_POLL_SECONDS,
    NAT_GATEWAY_SWEEP_POLL_SECONDS,
    TeardownConfig,
)
from .exceptions import TeardownError


class UnsuccessfulDeletionError(TeardownError):
    """Raised when a batch delete call reports items it could not delete."""


@dataclass
class TeardownContext:
    """Clients and settings shared by every phase of one VPC teardown."""

    ec2: object
    elbv2: object
    vpc_id: str
    config: TeardownConfig

    def wait_until(self, predicate, description, default_interval):
        policy = self.config.wait
        return waiter_utils.wait_until(
            predicate,
            description,
            timeout=policy.timeout_seconds,
            interval=policy.interval(default_interval),
            backoff=policy.backoff_factor,
            max_interval=policy.max_interval_seconds,
        )

    @property
    def waiter_settings(self) -> dict:
        policy = self.config.wait
        return {"delay": policy.waiter_delay, "max_attempts": policy.waiter_max_attempts}


@dataclass
class PhaseResult:
    """Outcome of one phase: what was acted on, what was skipped, and any fatal error."""

    name: str
    vpc_id: str
    acted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    error: Optional[BaseException] = None
    disabled: bool = False

    @property
    def fatal(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class Phase:
    """A named step of the teardown pipeline."""

    name: str
    title: str
    run: Callable[[TeardownContext, PhaseResult], None]
    enabled: Callable[[TeardownConfig], bool] = lambda config: True


def delete_nat_gateways(ctx: TeardownContext, result: PhaseResult) -> None:
    """Delete every NAT gateway and wait for each one to reach 'deleted'."""
    for nat in vpc_utils.list_nat_gateways(ctx.ec2, ctx.vpc_id):
        nat_id = nat["NatGatewayId"]
        if nat["State"] in ("deleted", "failed"):
            continue
        if nat["State"] != "deleting":
            print(f"    Deleting NAT Gateway: {nat_id}")
            ctx.ec2.delete_nat_gateway(NatGatewayId=nat_id)

        print(f"    Waiting for NAT Gateway {nat_id} to be deleted...")
        ctx.wait_until(
            lambda nat_id=nat_id: vpc_utils.get_nat_gateway_state(ctx.ec2, nat_id) in (None, "deleted"),
            f"NAT gateway {nat_id} to be deleted",
            NAT_GATEWAY_POLL_SECONDS,
        )
        result.acted.append(nat_id)


def _attachment_id(eni):
    return eni.get("Attachment", {}).get("AttachmentId")


def delete_network_interfaces_soft(ctx: TeardownContext, result: PhaseResult) -> None:
    """
    Detach and delete ENIs, skipping the ones AWS will not let go of.

    Interfaces owned by AWS services (load balancers, NAT gateways, endpoints)
    refuse detach and delete; those are logged and left for the later phases
    that remove their owners.
    """
    for eni in vpc_utils.list_network_interfaces(ctx.ec2, ctx.vpc_id):
        eni_id = eni["NetworkInterfaceId"]
        print(f"Processing ENI: {eni_id}")

        attachment_id = _attachment_id(eni)
        if attachment_id:
            print(f"    Attempting to detach ENI: {eni_id}")
            try:
                ctx.ec2.detach_network_interface(AttachmentId=attachment_id, Force=True)
            except ClientError as exc:
                logging.warning(
                    "Unable to detach ENI %s (may be managed by AWS): %s. Skipping...",
                    eni_id,
                    get_error_code(exc),
                )
                result.skipped.append(eni_id)
                continue
            print(f"    Waiting for ENI {eni_id} to be detached...")
            waiter_utils.wait_network_interface_available(ctx.ec2, eni_id, **ctx.waiter_settings)

        print(f"    Attempting to delete ENI: {eni_id}")
        try:
            ctx.ec2.delete_network_interface(NetworkInterfaceId=eni_id)
        except ClientError as exc:
            logging.warning(
                "Failed to delete ENI %s. It might still be in use or managed by AWS: %s",
                eni_id,
                get_error_code(exc),
            )
            result.skipped.append(eni_id)
            continue
        print(f"    ✅ ENI {eni_id} deleted successfully.")
        result.acted.append(eni_id)


def delete_load_balancers(ctx: TeardownContext, result: PhaseResult) -> None:
    """Delete the listeners of every load balancer in the VPC, then the load balancers."""
    for lb in vpc_utils.list_load_balancers(ctx.elbv2, ctx.vpc_id):
        lb_arn = lb["LoadBalancerArn"]
        for listener in vpc_utils.list_listeners(ctx.elbv2, lb_arn):
            print(f"    delete listener of {listener['ListenerArn']}")
            ctx.elbv2.delete_listener(ListenerArn=listener["ListenerArn"])

        print(f"    delete elb of {lb_arn}")
        ctx.elbv2.delete_load_balancer(LoadBalancerArn=lb_arn)
        result.acted.append(lb_arn)

    if result.acted:
        print("    wait until load balancers are deleted")
        waiter_utils.wait_load_balancers_deleted(ctx.elbv2, result.acted, **ctx.waiter_settings)


def delete_target_groups(ctx: TeardownContext, result: PhaseResult) -> None:
    for tg in vpc_utils.list_target_groups(ctx.elbv2, ctx.vpc_id):
        tg_arn = tg["TargetGroupArn"]
        print(f"    delete target group of {tg_arn}")
        ctx.elbv2.delete_target_group(TargetGroupArn=tg_arn)
        result.acted.append(tg_arn)


def stop_instances(ctx: TeardownContext, result: PhaseResult) -> None:
    """Lift stop protection and stop every running instance, one at a time."""
    for instance in vpc_utils.list_instances(ctx.ec2, ctx.vpc_id, ("running",)):
        instance_id = instance["InstanceId"]
        print(f"    enable api to stop of {instance_id}")
        ctx.ec2.modify_instance_attribute(InstanceId=instance_id, DisableApiStop={"Value": False})

        print(f"    stop instance of {instance_id}")
        ctx.ec2.stop_instances(InstanceIds=[instance_id])

        print("    wait until instance stopped")
        waiter_utils.wait_instance_stopped(ctx.ec2, instance_id, **ctx.waiter_settings)
        result.acted.append(instance_id)


def terminate_instances(ctx: TeardownContext, result: PhaseResult) -> None:
    """Lift termination protection and terminate every instance not yet terminated."""
    for instance in vpc_utils.list_instances(ctx.ec2, ctx.vpc_id, vpc_utils.LIVE_INSTANCE_STATES):
        instance_id = instance["InstanceId"]
        print(f"    enable api termination of {instance_id}")
        ctx.ec2.modify_instance_attribute(
            InstanceId=instance_id, DisableApiTermination={"Value": False}
        )

        print(f"    terminate instance of {instance_id}")
        ctx.ec2.terminate_instances(InstanceIds=[instance_id])

        print("    wait until instance terminated")
        waiter_utils.wait_instance_terminated(ctx.ec2, instance_id, **ctx.waiter_settings)
        result.acted.append(instance_id)


def sweep_nat_gateways(ctx: TeardownContext, result: PhaseResult) -> None:
    """Delete NAT gateways created since the first pass and wait until none is active."""
    for nat in vpc_utils.list_nat_gateways(ctx.ec2, ctx.vpc_id, states=("pending", "available")):
        nat_id = nat["NatGatewayId"]
        print(f"    delete NAT Gateway of {nat_id}")
        ctx.ec2.delete_nat_gateway(NatGatewayId=nat_id)
        result.acted.append(nat_id)

    print("    waiting for state of deleted")
    ctx.wait_until(
        lambda: not vpc_utils.list_nat_gateways(
            ctx.ec2, ctx.vpc_id, states=vpc_utils.NAT_GATEWAY_ACTIVE_STATES
        ),
        f"NAT gateways in {ctx.vpc_id} to be deleted",
        NAT_GATEWAY_SWEEP_POLL_SECONDS,
    )


def delete_vpn_connections(ctx: TeardownContext, result: PhaseResult) -> None:
    gateway_ids = [gw["VpnGatewayId"] for gw in vpc_utils.list_vpn_gateways(ctx.ec2, ctx.vpc_id)]
    for vpn in vpc_utils.list_vpn_connections(ctx.ec2, gateway_ids):
        vpn_id = vpn["VpnConnectionId"]
        print(f"    delete VPN Connection of {vpn_id}")
        ctx.ec2.delete_vpn_connection(VpnConnectionId=vpn_id)

        print("    wait until deleted")
        waiter_utils.wait_vpn_connection_deleted(ctx.ec2, vpn_id, **ctx.waiter_settings)
        result.acted.append(vpn_id)


def delete_vpn_gateways(ctx: TeardownContext, result: PhaseResult) -> None:
    """
    Detach each VPN gateway from the VPC, wait for the detachment, then delete it.

    A gateway already detached from this VPC goes straight to deletion, unless
    it is now attached to another VPC, in which case it is left in place.
    """
    for gateway in vpc_utils.list_vpn_gateways(ctx.ec2, ctx.vpc_id):
        gateway_id = gateway["VpnGatewayId"]
        if vpc_utils.has_live_vpc_attachment(gateway, ctx.vpc_id):
            print(f"    detach VPN Gateway of {gateway_id}")
            ctx.ec2.detach_vpn_gateway(VpnGatewayId=gateway_id, VpcId=ctx.vpc_id)
            ctx.wait_until(
                lambda gateway_id=gateway_id: not vpc_utils.is_vpn_gateway_attached(
                    ctx.ec2, gateway_id, ctx.vpc_id
                ),
                f"VPN gateway {gateway_id} to detach",
                DETACH_POLL_SECONDS,
            )
        elif vpc_utils.has_live_vpc_attachment(gateway):
            logging.warning("VPN gateway %s is attached to another VPC. Skipping...", gateway_id)
            result.skipped.append(gateway_id)
            continue

        print(f"    delete VPN Gateway of {gateway_id}")
        ctx.ec2.delete_vpn_gateway(VpnGatewayId=gateway_id)
        result.acted.append(gateway_id)


def delete_peering_connections(ctx: TeardownContext, result: PhaseResult) -> None:
    for peering in vpc_utils.list_peering_connections(ctx.ec2, ctx.vpc_id):
        peering_id = peering["VpcPeeringConnectionId"]
        print(f"    delete VPC Peering of {peering_id}")
        ctx.ec2.delete_vpc_peering_connection(VpcPeeringConnectionId=peering_id)

        print("    wait until deleted")
        waiter_utils.wait_vpc_peering_connection_deleted(ctx.ec2, peering_id, **ctx.waiter_settings)
        result.acted.append(peering_id)


def delete_vpc_endpoints(ctx: TeardownContext, result: PhaseResult) -> None:
    for endpoint in vpc_utils.list_vpc_endpoints(ctx.ec2, ctx.vpc_id):
        endpoint_id = endpoint["VpcEndpointId"]
        print(f"    delete endpoint of {endpoint_id}")
        response = ctx.ec2.delete_vpc_endpoints(VpcEndpointIds=[endpoint_id])
        unsuccessful = response.get("Unsuccessful", [])
        if unsuccessful:
            message = unsuccessful[0].get("Error", {}).get("Message", "unknown error")
            raise UnsuccessfulDeletionError(f"Could not delete VPC endpoint {endpoint_id}: {message}")
        result.acted.append(endpoint_id)


def delete_egress_only_gateways(ctx: TeardownContext, result: PhaseResult) -> None:
    for gateway in vpc_utils.list_egress_only_gateways(ctx.ec2, ctx.vpc_id):
        gateway_id = gateway["EgressOnlyInternetGatewayId"]
        print(f"    delete Egress Only Internet Gateway of {gateway_id}")
        ctx.ec2.delete_egress_only_internet_gateway(EgressOnlyInternetGatewayId=gateway_id)
        result.acted.append(gateway_id)


def delete_network_acls(ctx: TeardownContext, result: PhaseResult) -> None:
    for acl in vpc_utils.list_network_acls(ctx.ec2, ctx.vpc_id):
        acl_id = acl["NetworkAclId"]
        if vpc_utils.is_default_network_acl(acl):
            result.skipped.append(acl_id)
            continue
        print(f"    delete ACL of {acl_id}")
        ctx.ec2.delete_network_acl(NetworkAclId=acl_id)
        result.acted.append(acl_id)


def disassociate_elastic_ips(ctx: TeardownContext, result: PhaseResult) -> None:
    for eni in vpc_utils.list_network_interfaces(ctx.ec2, ctx.vpc_id):
        association_id = eni.get("Association", {}).get("AssociationId")
        if not association_id:
            continue
        print(f"    disassociate EIP association-id of {association_id}")
        ctx.ec2.disassociate_address(AssociationId=association_id)
        result.acted.append(association_id)


def delete_network_interfaces(ctx: TeardownContext, result: PhaseResult) -> None:
    """Detach and delete the ENIs left after their owners are gone; failures are fatal."""
    for eni in vpc_utils.list_network_interfaces(ctx.ec2, ctx.vpc_id):
        eni_id = eni["NetworkInterfaceId"]
        attachment_id = _attachment_id(eni)
        if attachment_id:
            print(f"    detach Network Interface of {eni_id} (attachment {attachment_id})")
            ctx.ec2.detach_network_interface(AttachmentId=attachment_id)
            waiter_utils.wait_network_interface_available(ctx.ec2, eni_id, **ctx.waiter_settings)

        print(f"    delete Network Interface of {eni_id}")
        ctx.ec2.delete_network_interface(NetworkInterfaceId=eni_id)
        result.acted.append(eni_id)


def revoke_security_group_rules(ctx: TeardownContext, result: PhaseResult) -> None:
    """
    Revoke every ingress and egress rule of the non-default security groups.

    Groups that reference each other cannot be deleted until the references
    are gone, so all rules are revoked before any group is deleted.
    """
    for sg in vpc_utils.list_security_groups(ctx.ec2, ctx.vpc_id):
        sg_id = sg["GroupId"]
        if vpc_utils.is_default_security_group(sg):
            result.skipped.append(sg_id)
            continue

        revoked = False
        for direction, key in (("ingress", "IpPermissions"), ("egress", "IpPermissionsEgress")):
            permissions = sg.get(key, [])
            if not permissions:
                print(f"    no {direction} rules on {sg_id}, going forward...")
                continue
            print(f"    revoke {direction} rules of Security group of {sg_id}")
            if direction == "ingress":
                ctx.ec2.revoke_security_group_ingress(GroupId=sg_id, IpPermissions=permissions)
            else:
                ctx.ec2.revoke_security_group_egress(GroupId=sg_id, IpPermissions=permissions)
            revoked = True
        if revoked:
            result.acted.append(sg_id)


def delete_security_groups(ctx: TeardownContext, result: PhaseResult) -> None:
    for sg in vpc_utils.list_security_groups(ctx.ec2, ctx.vpc_id):
        sg_id = sg["GroupId"]
        if vpc_utils.is_default_security_group(sg):
            result.skipped.append(sg_id)
            continue
        print(f"    delete Security group of {sg_id}")
        ctx.ec2.delete_security_group(GroupId=sg_id)
        result.acted.append(sg_id)


def delete_internet_gateways(ctx: TeardownContext, result: PhaseResult) -> None:
    """Detach each internet gateway, wait until the VPC is no longer attached, then delete it."""
    for igw in vpc_utils.list_internet_gateways(ctx.ec2, ctx.vpc_id):
        igw_id = igw["InternetGatewayId"]
        print(f"    detach IGW of {igw_id}")
        ctx.ec2.detach_internet_gateway(InternetGatewayId=igw_id, VpcId=ctx.vpc_id)
        ctx.wait_until(
            lambda igw_id=igw_id: not vpc_utils.is_internet_gateway_attached(
                ctx.ec2, igw_id, ctx.vpc_id
            ),
            f"internet gateway {igw_id} to detach",
            DETACH_POLL_SECONDS,
        )

        print(f"    delete IGW of {igw_id}")
        ctx.ec2.delete_internet_gateway(InternetGatewayId=igw_id)
        result.acted.append(igw_id)


def delete_subnets(ctx: TeardownContext, result: PhaseResult) -> None:
    for subnet in vpc_utils.list_subnets(ctx.ec2, ctx.vpc_id):
        subnet_id = subnet["SubnetId"]
        print(f"    delete Subnet of {subnet_id}")
        ctx.ec2.delete_subnet(SubnetId=subnet_id)
        result.acted.append(subnet_id)


def delete_route_tables(ctx: TeardownContext, result: PhaseResult) -> None:
    for route_table in vpc_utils.list_route_tables(ctx.ec2, ctx.vpc_id):
        rt_id = route_table["RouteTableId"]
        if vpc_utils.is_main_route_table(route_table):
            result.skipped.append(rt_id)
            continue
        print(f"    delete Route Table of {rt_id}")
        ctx.ec2.delete_route_table(RouteTableId=rt_id)
        result.acted.append(rt_id)


def delete_vpc(ctx: TeardownContext, result: PhaseResult) -> None:
    print(f"Finally, delete the VPC of {ctx.vpc_id}")
    ctx.ec2.delete_vpc(VpcId=ctx.vpc_id)
    result.acted.append(ctx.vpc_id)


def _vpn_supported(config: TeardownConfig) -> bool:
    return config.vpn_supported


# Order follows the AWS dependency graph: owners before the resources they pin.
PHASES: tuple[Phase, ...] = (
    Phase("nat_gateways", "NAT Gateways", delete_nat_gateways),
    Phase("network_interfaces_soft", "ENIs", delete_network_interfaces_soft),
    Phase("load_balancers", "ELB", delete_load_balancers),
    Phase("target_groups", "Target Groups", delete_target_groups),
    Phase("stop_instances", "EC2 instance(s) stop", stop_instances),
    Phase("terminate_instances", "EC2 instance(s) termination", terminate_instances),
    Phase("nat_gateway_sweep", "NAT Gateway", sweep_nat_gateways),
    Phase("vpn_connections", "VPN connection", delete_vpn_connections, _vpn_supported),
    Phase("vpn_gateways", "VPN Gateway", delete_vpn_gateways, _vpn_supported),
    Phase("peering_connections", "VPC Peering", delete_peering_connections),
    Phase("vpc_endpoints", "VPC endpoints", delete_vpc_endpoints),
    Phase("egress_only_gateways", "Egress Only Internet Gateway", delete_egress_only_gateways),
    Phase("network_acls", "Network ACLs", delete_network_acls),
    Phase("elastic_ip_associations", "Elastic IP", disassociate_elastic_ips),
    Phase("network_interfaces", "Network Interface", delete_network_interfaces),
    Phase("security_group_rules", "Security Group(s) IpPermissions", revoke_security_group_rules),
    Phase("security_groups", "Security Group", delete_security_groups),
    Phase("internet_gateways", "Internet Gateway", delete_internet_gateways),
    Phase("subnets", "Subnet", delete_subnets),
    Phase("route_tables", "Route Table", delete_route_tables),
    Phase("vpc", "VPC", delete_vpc),
)
