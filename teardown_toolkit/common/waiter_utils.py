"""
Consolidated AWS waiter utilities.

This module wraps the native boto3 waiters used during teardown with explicit
delay/attempt settings, and provides ``wait_until`` for the resource states
boto3 has no waiter for (NAT gateway deletion, gateway detachment).
"""

import logging
import time


class WaitTimeoutError(TimeoutError):
    """Raised when a polled condition does not hold before the timeout."""

    def __init__(self, description: str, timeout: float):
        super().__init__(f"Timed out after {timeout:g}s waiting for {description}")
        self.description = description
        self.timeout = timeout


def wait_until(
    predicate,
    description,
    *,
    timeout=900.0,
    interval=3.0,
    backoff=1.0,
    max_interval=30.0,
):
    """
    Poll ``predicate`` until it returns a truthy value.

    Args:
        predicate: Zero-argument callable re-querying the remote state
        description: Human readable description used in logs and errors
        timeout: Seconds to keep polling before giving up
        interval: Initial delay between polls in seconds
        backoff: Multiplier applied to the delay after each poll (1.0 = fixed)
        max_interval: Upper bound for the delay between polls

    Returns:
        The first truthy value returned by ``predicate``.

    Raises:
        WaitTimeoutError: If the predicate is still false when the timeout elapses
    """
    deadline = time.monotonic() + timeout
    delay = interval
    while True:
        result = predicate()
        if result:
            return result

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise WaitTimeoutError(description, timeout)

        logging.debug("Waiting %.1fs for %s", delay, description)
        time.sleep(min(delay, remaining))
        delay = min(delay * backoff, max_interval)


def _wait(ec2_client, waiter_name, delay, max_attempts, **kwargs):
    waiter = ec2_client.get_waiter(waiter_name)
    waiter.wait(WaiterConfig={"Delay": delay, "MaxAttempts": max_attempts}, **kwargs)


def wait_network_interface_available(ec2_client, eni_id, delay=5, max_attempts=60):
    """
    Wait for a network interface to become available (detached).

    Raises:
        WaiterError: If waiter times out or encounters an error
    """
    _wait(
        ec2_client,
        "network_interface_available",
        delay,
        max_attempts,
        NetworkInterfaceIds=[eni_id],
    )


def wait_instance_stopped(ec2_client, instance_id, delay=15, max_attempts=40):
    """Wait for an EC2 instance to reach the stopped state."""
    _wait(ec2_client, "instance_stopped", delay, max_attempts, InstanceIds=[instance_id])


def wait_instance_terminated(ec2_client, instance_id, delay=15, max_attempts=40):
    """Wait for an EC2 instance to reach the terminated state."""
    _wait(ec2_client, "instance_terminated", delay, max_attempts, InstanceIds=[instance_id])


def wait_vpn_connection_deleted(ec2_client, vpn_connection_id, delay=15, max_attempts=40):
    """Wait for a VPN connection to reach the deleted state."""
    _wait(
        ec2_client,
        "vpn_connection_deleted",
        delay,
        max_attempts,
        VpnConnectionIds=[vpn_connection_id],
    )


def wait_load_balancers_deleted(elbv2_client, load_balancer_arns, delay=15, max_attempts=40):
    """Wait for ELBv2 load balancers to disappear."""
    _wait(
        elbv2_client,
        "load_balancers_deleted",
        delay,
        max_attempts,
        LoadBalancerArns=list(load_balancer_arns),
    )


def wait_vpc_peering_connection_deleted(ec2_client, peering_id, delay=15, max_attempts=40):
    """Wait for a VPC peering connection to reach the deleted state."""
    _wait(
        ec2_client,
        "vpc_peering_connection_deleted",
        delay,
        max_attempts,
        VpcPeeringConnectionIds=[peering_id],
    )
