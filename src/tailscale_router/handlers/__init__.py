"""Custom resource handlers that talk to the Tailscale control plane.

These modules run inside Lambda. They only import aiohttp, boto3 and the
CDK-free parts of this package.
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiohttp
import boto3

from ..tailscale_api import TailscaleClient

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30


def configure_logging() -> None:
    """Apply LOG_LEVEL to the root logger Lambda already installed."""
    logging.getLogger().setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())


def as_bool(value: object, default: bool = False) -> bool:
    """Read a boolean custom resource property.

    CloudFormation delivers every scalar property as a string.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("true", "1", "yes")


def get_api_key() -> str:
    """Read the Tailscale API access token from Secrets Manager."""
    secret_id = os.environ["TAILSCALE_API_KEY_SECRET"]
    client = boto3.client("secretsmanager")
    response = client.get_secret_value(SecretId=secret_id)
    return response["SecretString"].strip()


@asynccontextmanager
async def open_client() -> AsyncIterator[TailscaleClient]:
    """Open a Tailscale client for the tailnet configured on the function."""
    api_key = get_api_key()
    timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        yield TailscaleClient(
            session, api_key, tailnet=os.environ.get("TAILSCALE_TAILNET", "-")
        )
