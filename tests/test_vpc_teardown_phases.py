"""Tests for vpc_teardown/phases.py module."""

from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from teardown_toolkit.common.waiter_utils import WaitTimeoutError
from tests.assertions import assert_equal
from tests.vpc_teardown_test_utils import VPC_ID, SimulatedAws, client_error, mutating_calls
from vpc_teardown import phases
from vpc_teardown.config import TeardownConfig, WaitPolicy
from vpc_teardown.phases import PHASES, PhaseResult, TeardownContext, UnsuccessfulDeletionError


def _run(phase_func, aws, config):
    ctx = TeardownContext(ec2=aws.ec2, elbv2=aws.elbv2, vpc_id=VPC_ID, config=config)
    result = PhaseResult(phase_func.__name__, VPC_ID)
    phase_func(ctx, result)
    return result


def test_phase_order():
    assert_equal(
        [phase.name for phase in PHASES],
        [
            "nat_gateways",
            "network_interfaces_soft",
            "load_balancers",
            "target_groups",
            "stop_instances",
            "terminate_instances",
            "nat_gateway_sweep",
            "vpn_connections",
            "vpn_gateways",
            "peering_connections",
            "vpc_endpoints",
            "egress_only_gateways",
            "network_acls",
            "elastic_ip_associations",
            "network_interfaces",
            "security_group_rules",
            "security_groups",
            "internet_gateways",
            "subnets",
            "route_tables",
            "vpc",
        ],
    )


def test_vpn_phases_disabled_in_unsupported_regions():
    config = TeardownConfig(region="cn-north-1")
    disabled = [phase.name for phase in PHASES if not phase.enabled(config)]

    assert_equal(disabled, ["vpn_connections", "vpn_gateways"])


def test_teardown_context_waiter_settings():
    ctx = TeardownContext(None, None, VPC_ID, TeardownConfig(wait=WaitPolicy(timeout_seconds=150.0)))

    assert_equal(ctx.waiter_settings, {"delay": 15, "max_attempts": 10})


class TestNatGateways:
    """Tests for the NAT gateway phases."""

    def test_deletes_and_waits_for_deletion(self, fast_config, no_sleep):
        aws = SimulatedAws(
            nat_gateways=[
                {"NatGatewayId": "nat-1", "State": "available"},
                {"NatGatewayId": "nat-2", "State": "deleting"},
                {"NatGatewayId": "nat-3", "State": "deleted"},
                {"NatGatewayId": "nat-4", "State": "failed"},
            ]
        )

        result = _run(phases.delete_nat_gateways, aws, fast_config)

        aws.ec2.delete_nat_gateway.assert_called_once_with(NatGatewayId="nat-1")
        assert_equal(result.acted, ["nat-1", "nat-2"])

    def test_deletion_wait_times_out(self, no_sleep):
        aws = SimulatedAws(nat_gateways=[{"NatGatewayId": "nat-1", "State": "available"}])
        aws.ec2.delete_nat_gateway.side_effect = None
        config = TeardownConfig(wait=WaitPolicy(timeout_seconds=0.05, poll_interval_seconds=0.01))

        with pytest.raises(WaitTimeoutError, match="nat-1"):
            _run(phases.delete_nat_gateways, aws, config)

    def test_sweep_deletes_pending_and_available(self, fast_config, no_sleep):
        aws = SimulatedAws(
            nat_gateways=[
                {"NatGatewayId": "nat-1", "State": "pending"},
                {"NatGatewayId": "nat-2", "State": "available"},
                {"NatGatewayId": "nat-3", "State": "deleted"},
            ]
        )

        result = _run(phases.sweep_nat_gateways, aws, fast_config)

        assert_equal(result.acted, ["nat-1", "nat-2"])
        assert all(nat["State"] == "deleted" for nat in aws.nat_gateways)


class TestSoftNetworkInterfaces:
    """Tests for the tolerant first ENI pass."""

    def test_detaches_waits_and_deletes(self, fast_config):
        aws = SimulatedAws(
            network_interfaces=[
                {"NetworkInterfaceId": "eni-1", "Attachment": {"AttachmentId": "attach-1"}},
                {"NetworkInterfaceId": "eni-2"},
            ]
        )

        result = _run(phases.delete_network_interfaces_soft, aws, fast_config)

        aws.ec2.detach_network_interface.assert_called_once_with(AttachmentId="attach-1", Force=True)
        aws.ec2.get_waiter.assert_called_once_with("network_interface_available")
        assert_equal(result.acted, ["eni-1", "eni-2"])
        assert_equal(aws.network_interfaces, [])

    def test_refused_detach_is_skipped_and_processing_continues(self, fast_config, caplog):
        aws = SimulatedAws(
            network_interfaces=[
                {"NetworkInterfaceId": "eni-elb", "Attachment": {"AttachmentId": "attach-elb"}},
                {"NetworkInterfaceId": "eni-2"},
            ]
        )
        aws.ec2.detach_network_interface.side_effect = client_error("OperationNotPermitted")

        result = _run(phases.delete_network_interfaces_soft, aws, fast_config)

        assert_equal(result.skipped, ["eni-elb"])
        assert_equal(result.acted, ["eni-2"])
        assert not result.fatal
        assert "Unable to detach ENI eni-elb" in caplog.text

    def test_refused_delete_is_skipped(self, fast_config):
        aws = SimulatedAws(network_interfaces=[{"NetworkInterfaceId": "eni-1"}])
        aws.ec2.delete_network_interface.side_effect = client_error("InvalidNetworkInterface.InUse")

        result = _run(phases.delete_network_interfaces_soft, aws, fast_config)

        assert_equal(result.skipped, ["eni-1"])
        assert_equal(result.acted, [])


class TestLoadBalancing:
    """Tests for the load balancer and target group phases."""

    def test_listeners_deleted_before_load_balancer(self, fast_config):
        aws = SimulatedAws(
            load_balancers=[
                {"LoadBalancerArn": "arn:lb/1", "VpcId": VPC_ID},
                {"LoadBalancerArn": "arn:lb/other", "VpcId": "vpc-other"},
            ],
            listeners={"arn:lb/1": [{"ListenerArn": "arn:l/1"}, {"ListenerArn": "arn:l/2"}]},
        )

        result = _run(phases.delete_load_balancers, aws, fast_config)

        assert_equal(
            mutating_calls(aws.elbv2),
            ["delete_listener", "delete_listener", "delete_load_balancer"],
        )
        assert_equal(result.acted, ["arn:lb/1"])
        aws.elbv2.get_waiter.assert_called_once_with("load_balancers_deleted")

    def test_no_wait_without_load_balancers(self, fast_config):
        aws = SimulatedAws()

        _run(phases.delete_load_balancers, aws, fast_config)

        aws.elbv2.get_waiter.assert_not_called()

    def test_target_groups(self, fast_config):
        aws = SimulatedAws(
            target_groups=[
                {"TargetGroupArn": "arn:tg/1", "VpcId": VPC_ID},
                {"TargetGroupArn": "arn:tg/2", "VpcId": "vpc-other"},
            ]
        )

        result = _run(phases.delete_target_groups, aws, fast_config)

        aws.elbv2.delete_target_group.assert_called_once_with(TargetGroupArn="arn:tg/1")
        assert_equal(result.acted, ["arn:tg/1"])


class TestInstances:
    """Tests for the instance stop and terminate phases."""

    def test_stop_lifts_protection_and_waits(self, fast_config):
        aws = SimulatedAws(instances=[{"InstanceId": "i-1", "State": {"Name": "running"}}])

        result = _run(phases.stop_instances, aws, fast_config)

        aws.ec2.modify_instance_attribute.assert_called_once_with(
            InstanceId="i-1", DisableApiStop={"Value": False}
        )
        aws.ec2.stop_instances.assert_called_once_with(InstanceIds=["i-1"])
        aws.ec2.get_waiter.assert_called_once_with("instance_stopped")
        assert_equal(result.acted, ["i-1"])

    def test_terminate_skips_terminated_instances(self, fast_config):
        aws = SimulatedAws(
            instances=[
                {"InstanceId": "i-1", "State": {"Name": "stopped"}},
                {"InstanceId": "i-2", "State": {"Name": "terminated"}},
            ]
        )

        result = _run(phases.terminate_instances, aws, fast_config)

        aws.ec2.modify_instance_attribute.assert_called_once_with(
            InstanceId="i-1", DisableApiTermination={"Value": False}
        )
        aws.ec2.terminate_instances.assert_called_once_with(InstanceIds=["i-1"])
        assert_equal(result.acted, ["i-1"])


class TestVpn:
    """Tests for the VPN phases."""

    def test_connections_found_through_gateways(self, fast_config):
        aws = SimulatedAws(
            vpn_gateways=[{"VpnGatewayId": "vgw-1", "State": "available", "VpcAttachments": []}],
            vpn_connections=[
                {"VpnConnectionId": "vpn-1", "VpnGatewayId": "vgw-1", "State": "available"},
                {"VpnConnectionId": "vpn-2", "VpnGatewayId": "vgw-9", "State": "available"},
            ],
        )

        result = _run(phases.delete_vpn_connections, aws, fast_config)

        aws.ec2.delete_vpn_connection.assert_called_once_with(VpnConnectionId="vpn-1")
        aws.ec2.get_waiter.assert_called_once_with("vpn_connection_deleted")
        assert_equal(result.acted, ["vpn-1"])

    def test_gateway_detached_before_delete(self, fast_config, no_sleep):
        aws = SimulatedAws(
            vpn_gateways=[
                {
                    "VpnGatewayId": "vgw-1",
                    "State": "available",
                    "VpcAttachments": [{"VpcId": VPC_ID, "State": "attached"}],
                }
            ]
        )

        result = _run(phases.delete_vpn_gateways, aws, fast_config)

        assert_equal(mutating_calls(aws.ec2), ["detach_vpn_gateway", "delete_vpn_gateway"])
        aws.ec2.detach_vpn_gateway.assert_called_once_with(VpnGatewayId="vgw-1", VpcId=VPC_ID)
        assert_equal(result.acted, ["vgw-1"])


def test_peering_connections_deleted_and_awaited(fast_config):
    aws = SimulatedAws(
        peerings=[
            {
                "VpcPeeringConnectionId": "pcx-1",
                "Status": {"Code": "active"},
                "RequesterVpcInfo": {"VpcId": "vpc-other"},
                "AccepterVpcInfo": {"VpcId": VPC_ID},
            }
        ]
    )

    result = _run(phases.delete_peering_connections, aws, fast_config)

    aws.ec2.delete_vpc_peering_connection.assert_called_once_with(VpcPeeringConnectionId="pcx-1")
    aws.ec2.get_waiter.assert_called_once_with("vpc_peering_connection_deleted")
    assert_equal(result.acted, ["pcx-1"])


class TestVpcEndpoints:
    """Tests for the VPC endpoint phase."""

    def test_deletes_endpoints(self, fast_config):
        aws = SimulatedAws(endpoints=[{"VpcEndpointId": "vpce-1", "State": "available"}])

        result = _run(phases.delete_vpc_endpoints, aws, fast_config)

        aws.ec2.delete_vpc_endpoints.assert_called_once_with(VpcEndpointIds=["vpce-1"])
        assert_equal(result.acted, ["vpce-1"])

    def test_unsuccessful_item_is_fatal(self, fast_config):
        aws = SimulatedAws(endpoints=[{"VpcEndpointId": "vpce-1", "State": "available"}])
        aws.ec2.delete_vpc_endpoints.side_effect = None
        aws.ec2.delete_vpc_endpoints.return_value = {
            "Unsuccessful": [{"ResourceId": "vpce-1", "Error": {"Message": "in use"}}]
        }

        with pytest.raises(UnsuccessfulDeletionError, match="vpce-1: in use"):
            _run(phases.delete_vpc_endpoints, aws, fast_config)


def test_egress_only_gateways(fast_config):
    aws = SimulatedAws(
        egress_gateways=[
            {"EgressOnlyInternetGatewayId": "eigw-1", "Attachments": [{"VpcId": VPC_ID}]},
            {"EgressOnlyInternetGatewayId": "eigw-2", "Attachments": [{"VpcId": "vpc-other"}]},
        ]
    )

    result = _run(phases.delete_egress_only_gateways, aws, fast_config)

    aws.ec2.delete_egress_only_internet_gateway.assert_called_once_with(
        EgressOnlyInternetGatewayId="eigw-1"
    )
    assert_equal(result.acted, ["eigw-1"])


def test_default_network_acl_is_never_deleted(fast_config):
    aws = SimulatedAws(
        network_acls=[
            {"NetworkAclId": "acl-default", "IsDefault": True},
            {"NetworkAclId": "acl-1", "IsDefault": False},
        ]
    )

    result = _run(phases.delete_network_acls, aws, fast_config)

    aws.ec2.delete_network_acl.assert_called_once_with(NetworkAclId="acl-1")
    assert_equal(result.skipped, ["acl-default"])


def test_elastic_ip_associations_released(fast_config):
    aws = SimulatedAws(
        network_interfaces=[
            {"NetworkInterfaceId": "eni-1", "Association": {"AssociationId": "eipassoc-1"}},
            {"NetworkInterfaceId": "eni-2", "Association": {"PublicIp": "54.0.0.2"}},
            {"NetworkInterfaceId": "eni-3"},
        ]
    )

    result = _run(phases.disassociate_elastic_ips, aws, fast_config)

    aws.ec2.disassociate_address.assert_called_once_with(AssociationId="eipassoc-1")
    assert_equal(result.acted, ["eipassoc-1"])


class TestNetworkInterfaces:
    """Tests for the strict second ENI pass."""

    def test_detaches_without_force_and_deletes(self, fast_config):
        aws = SimulatedAws(
            network_interfaces=[
                {"NetworkInterfaceId": "eni-1", "Attachment": {"AttachmentId": "attach-1"}}
            ]
        )

        result = _run(phases.delete_network_interfaces, aws, fast_config)

        aws.ec2.detach_network_interface.assert_called_once_with(AttachmentId="attach-1")
        aws.ec2.delete_network_interface.assert_called_once_with(NetworkInterfaceId="eni-1")
        assert_equal(result.acted, ["eni-1"])

    def test_failure_propagates(self, fast_config):
        aws = SimulatedAws(network_interfaces=[{"NetworkInterfaceId": "eni-1"}])
        aws.ec2.delete_network_interface.side_effect = client_error("InvalidNetworkInterface.InUse")

        with pytest.raises(ClientError):
            _run(phases.delete_network_interfaces, aws, fast_config)


class TestSecurityGroups:
    """Tests for the security group phases."""

    def test_rules_revoked_on_non_default_groups_only(self, fast_config):
        aws = SimulatedAws(
            security_groups=[
                {
                    "GroupId": "sg-default",
                    "GroupName": "default",
                    "IpPermissions": [{"IpProtocol": "-1"}],
                    "IpPermissionsEgress": [{"IpProtocol": "-1"}],
                },
                {
                    "GroupId": "sg-1",
                    "GroupName": "web",
                    "IpPermissions": [{"IpProtocol": "tcp", "FromPort": 22, "ToPort": 22}],
                    "IpPermissionsEgress": [],
                },
            ]
        )

        result = _run(phases.revoke_security_group_rules, aws, fast_config)

        aws.ec2.revoke_security_group_ingress.assert_called_once_with(
            GroupId="sg-1", IpPermissions=[{"IpProtocol": "tcp", "FromPort": 22, "ToPort": 22}]
        )
        aws.ec2.revoke_security_group_egress.assert_not_called()
        assert_equal(result.acted, ["sg-1"])
        assert_equal(result.skipped, ["sg-default"])

    def test_default_group_is_never_deleted(self, fast_config):
        aws = SimulatedAws(
            security_groups=[
                {"GroupId": "sg-default", "GroupName": "default"},
                {"GroupId": "sg-1", "GroupName": "web"},
            ]
        )

        result = _run(phases.delete_security_groups, aws, fast_config)

        aws.ec2.delete_security_group.assert_called_once_with(GroupId="sg-1")
        assert_equal(result.skipped, ["sg-default"])


def test_internet_gateway_detached_then_deleted(fast_config, no_sleep):
    aws = SimulatedAws(
        internet_gateways=[{"InternetGatewayId": "igw-1", "Attachments": [{"VpcId": VPC_ID}]}]
    )

    result = _run(phases.delete_internet_gateways, aws, fast_config)

    assert_equal(mutating_calls(aws.ec2), ["detach_internet_gateway", "delete_internet_gateway"])
    assert_equal(result.acted, ["igw-1"])


def test_internet_gateway_detach_wait_times_out(no_sleep):
    aws = SimulatedAws(
        internet_gateways=[{"InternetGatewayId": "igw-1", "Attachments": [{"VpcId": VPC_ID}]}]
    )
    aws.ec2.detach_internet_gateway.side_effect = None
    config = TeardownConfig(wait=WaitPolicy(timeout_seconds=0.05, poll_interval_seconds=0.01))

    with pytest.raises(WaitTimeoutError, match="igw-1"):
        _run(phases.delete_internet_gateways, aws, config)

    aws.ec2.delete_internet_gateway.assert_not_called()


def test_subnets(fast_config):
    aws = SimulatedAws(subnets=[{"SubnetId": "subnet-1"}, {"SubnetId": "subnet-2"}])

    result = _run(phases.delete_subnets, aws, fast_config)

    assert_equal(result.acted, ["subnet-1", "subnet-2"])
    assert_equal(aws.subnets, [])


def test_main_route_table_is_never_deleted(fast_config):
    aws = SimulatedAws(
        route_tables=[
            {"RouteTableId": "rtb-main", "Associations": [{"Main": True}]},
            {"RouteTableId": "rtb-1", "Associations": []},
        ]
    )

    result = _run(phases.delete_route_tables, aws, fast_config)

    aws.ec2.delete_route_table.assert_called_once_with(RouteTableId="rtb-1")
    assert_equal(result.skipped, ["rtb-main"])


def test_delete_vpc(fast_config, capsys):
    aws = SimulatedAws()

    result = _run(phases.delete_vpc, aws, fast_config)

    aws.ec2.delete_vpc.assert_called_once_with(VpcId=VPC_ID)
    assert_equal(result.acted, [VPC_ID])
    assert f"Finally, delete the VPC of {VPC_ID}" in capsys.readouterr().out


@pytest.mark.parametrize("phase", [phase for phase in PHASES if phase.name != "vpc"], ids=lambda p: p.name)
def test_empty_vpc_phases_issue_no_mutations(phase, fast_config, no_sleep):
    aws = SimulatedAws()

    result = _run(phase.run, aws, fast_config)

    assert_equal(mutating_calls(aws.ec2), [])
    assert_equal(mutating_calls(aws.elbv2), [])
    assert_equal(result.acted, [])
    assert not result.fatal


class TestVpnGatewayRerun:
    """VPN gateways left detached by an earlier, interrupted run."""

    def test_detached_gateway_is_deleted_without_detach(self, fast_config, no_sleep):
        aws = SimulatedAws(
            vpn_gateways=[
                {
                    "VpnGatewayId": "vgw-1",
                    "State": "available",
                    "VpcAttachments": [{"VpcId": VPC_ID, "State": "detached"}],
                }
            ]
        )

        result = _run(phases.delete_vpn_gateways, aws, fast_config)

        aws.ec2.detach_vpn_gateway.assert_not_called()
        aws.ec2.delete_vpn_gateway.assert_called_once_with(VpnGatewayId="vgw-1")
        assert_equal(result.acted, ["vgw-1"])

    def test_gateway_attached_elsewhere_is_left_in_place(self, fast_config, caplog):
        aws = SimulatedAws(
            vpn_gateways=[
                {
                    "VpnGatewayId": "vgw-1",
                    "State": "available",
                    "VpcAttachments": [
                        {"VpcId": VPC_ID, "State": "detached"},
                        {"VpcId": "vpc-other", "State": "attached"},
                    ],
                }
            ]
        )

        result = _run(phases.delete_vpn_gateways, aws, fast_config)

        assert_equal(mutating_calls(aws.ec2), [])
        assert_equal(result.skipped, ["vgw-1"])
        assert not result.fatal
        assert "attached to another VPC" in caplog.text


def test_pending_peering_request_from_another_vpc_is_not_deleted(fast_config):
    aws = SimulatedAws(
        peerings=[
            {
                "VpcPeeringConnectionId": "pcx-1",
                "Status": {"Code": "pending-acceptance"},
                "RequesterVpcInfo": {"VpcId": "vpc-other"},
                "AccepterVpcInfo": {"VpcId": VPC_ID},
            }
        ]
    )

    result = _run(phases.delete_peering_connections, aws, fast_config)

    aws.ec2.delete_vpc_peering_connection.assert_not_called()
    assert_equal(result.acted, [])


def test_group_without_rules_is_not_recorded_as_revoked(fast_config):
    aws = SimulatedAws(
        security_groups=[
            {"GroupId": "sg-1", "GroupName": "web", "IpPermissions": [], "IpPermissionsEgress": []}
        ]
    )

    result = _run(phases.revoke_security_group_rules, aws, fast_config)

    assert_equal(mutating_calls(aws.ec2), [])
    assert_equal(result.acted, [])
