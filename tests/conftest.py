"""Shared pytest fixtures for test files."""

from __future__ import annotations

import copy

import pytest
from botocore.exceptions import ClientError

from teardown_toolkit.common import waiter_utils
from vpc_teardown.config import TeardownConfig, WaitPolicy

from tests.vpc_teardown_test_utils import SimulatedAws


class _DefaultResponse(dict):
    """Dict returning empty list for missing keys."""

    def __missing__(self, key):
        return []


_DEFAULT_RESPONSES: dict[str, dict] = {
    "describe_vpcs": _DefaultResponse(Vpcs=[]),
    "describe_instances": _DefaultResponse(Reservations=[]),
    "describe_stacks": _DefaultResponse(Stacks=[]),
}


class _StubBotoClient:
    """Minimal stub for boto3 clients used in tests."""

    def __init__(self, service_name: str, **kwargs):
        self.service_name = service_name
        self.region_name = kwargs.get("region_name")
        self.exceptions = ClientError

    def __getattr__(self, name: str):
        def _method(*args, **kwargs):
            del args, kwargs
            response = _DEFAULT_RESPONSES.get(name)
            if response is None:
                return _DefaultResponse()
            return copy.deepcopy(response)

        return _method


@pytest.fixture(autouse=True)
def stub_boto3_client(monkeypatch):
    """Replace boto3.client with a stub so tests don't call real AWS."""

    def fake_client(service_name, **kwargs):
        return _StubBotoClient(service_name, **kwargs)

    monkeypatch.setattr("boto3.client", fake_client)


@pytest.fixture(autouse=True)
def stub_credentials(monkeypatch):
    """Provide fake AWS credentials so create_client doesn't fail."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "stub-key")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "stub-secret")
    monkeypatch.delenv("AWS_SESSION_TOKEN", raising=False)


@pytest.fixture(name="no_sleep")
def fixture_no_sleep(monkeypatch):
    """Record wait_until sleeps instead of sleeping."""
    sleeps = []
    monkeypatch.setattr(waiter_utils.time, "sleep", sleeps.append)
    return sleeps


@pytest.fixture(name="fast_config")
def fixture_fast_config():
    """Teardown config with a short wait timeout and a region that supports VPN."""
    return TeardownConfig(
        region="us-east-1",
        wait=WaitPolicy(timeout_seconds=5.0, poll_interval_seconds=0.01),
    )


@pytest.fixture(name="simulated_aws")
def fixture_simulated_aws():
    """Simulated provider with one empty, available VPC."""
    return SimulatedAws()
