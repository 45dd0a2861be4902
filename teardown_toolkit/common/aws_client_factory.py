#!/usr/bin/env python3
"""
AWS Client Factory Module
Provides standardized boto3 client creation for the teardown tools.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import boto3
from dotenv import load_dotenv


def _resolve_env_path(env_path: Optional[str] = None) -> str:
    """
    Determine which .env file should be used for AWS settings.

    Priority order:
      1. Explicit parameter
      2. AWS_ENV_FILE environment variable
      3. ~/.env
    """
    if env_path:
        return env_path
    aws_env_file = os.environ.get("AWS_ENV_FILE")
    if aws_env_file:
        return aws_env_file
    return str(Path.home() / ".env")


def load_environment(env_path: Optional[str] = None) -> str:
    """Load the resolved .env file into os.environ and return its path."""
    resolved_path = _resolve_env_path(env_path)
    load_dotenv(resolved_path)
    return resolved_path


def load_credentials_from_env(env_path: Optional[str] = None) -> tuple[str, str]:
    """
    Load AWS credentials from .env file and return them as a tuple.

    Args:
        env_path: Optional override path (defaults to ~/.env)

    Returns:
        tuple: (aws_access_key_id, aws_secret_access_key)

    Raises:
        ValueError: If credentials are not found in .env file
    """
    resolved_path = load_environment(env_path)

    aws_access_key_id = os.getenv("AWS_ACCESS_KEY_ID")
    aws_secret_access_key = os.getenv("AWS_SECRET_ACCESS_KEY")
    if aws_access_key_id and aws_secret_access_key:
        logging.debug("AWS credentials loaded from %s", resolved_path)
        if os.getenv("AWS_SESSION_TOKEN"):
            logging.debug("AWS session token loaded from %s", resolved_path)
        return aws_access_key_id, aws_secret_access_key

    raise ValueError(f"AWS credentials not found in {resolved_path}")


def create_client(
    service_name: str,
    region: Optional[str] = None,
    aws_access_key_id: Optional[str] = None,
    aws_secret_access_key: Optional[str] = None,
    aws_session_token: Optional[str] = None,
):
    """
    Create a boto3 client for any AWS service.

    Explicit credentials win, then credentials from the .env file. When
    neither is available the client falls back to boto3's default
    credential chain (profiles, instance roles, SSO).

    Args:
        service_name: AWS service name (e.g., 'ec2', 'elbv2', 'cloudformation')
        region: AWS region name (optional, boto3 resolves a default when omitted)
        aws_access_key_id: Optional AWS access key
        aws_secret_access_key: Optional AWS secret key
        aws_session_token: Optional AWS session token

    Returns:
        boto3.client: Configured AWS service client
    """
    client_kwargs = {}
    if region is not None:
        client_kwargs["region_name"] = region

    if aws_access_key_id is None or aws_secret_access_key is None:
        try:
            aws_access_key_id, aws_secret_access_key = load_credentials_from_env()
        except ValueError as exc:
            logging.debug("%s; using the default credential chain", exc)
            return boto3.client(service_name, **client_kwargs)

    if aws_session_token is None:
        aws_session_token = os.getenv("AWS_SESSION_TOKEN")

    client_kwargs["aws_access_key_id"] = aws_access_key_id
    client_kwargs["aws_secret_access_key"] = aws_secret_access_key
    if aws_session_token:
        client_kwargs["aws_session_token"] = aws_session_token

    return boto3.client(service_name, **client_kwargs)


def create_ec2_client(region: str):
    """Create an EC2 boto3 client."""
    return create_client("ec2", region)


def create_elbv2_client(region: str):
    """Create an Elastic Load Balancing v2 boto3 client."""
    return create_client("elbv2", region)


def create_cloudformation_client(region: Optional[str] = None):
    """Create a CloudFormation boto3 client."""
    return create_client("cloudformation", region)
