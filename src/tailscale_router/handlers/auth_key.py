"""Custom::TailscaleAuthKey handler.

Create and Update issue a fresh auth key and store it as the current version
of the router's auth key secret. Delete revokes the key.
"""

import asyncio
import logging
from typing import Any

import aiohttp
import boto3
from botocore.exceptions import ClientError

from ..errors import AuthKeyIssueError, TailscaleAPIError
from . import as_bool, configure_logging, open_client

logger = logging.getLogger(__name__)


async def _issue_key(properties: dict[str, Any]) -> dict[str, Any]:
    secret_id = properties["SecretId"]

    async with open_client() as client:
        try:
            auth_key = await client.create_auth_key(
                reusable=as_bool(properties.get("Reusable"), default=True),
                preauthorized=as_bool(properties.get("Preauthorized"), default=True),
                tags=list(properties.get("Tags", [])),
                description=properties.get("Description"),
            )
        except (TailscaleAPIError, aiohttp.ClientError) as e:
            raise AuthKeyIssueError(f"Control plane did not issue an auth key: {e}") from e

        try:
            boto3.client("secretsmanager").put_secret_value(
                SecretId=secret_id, SecretString=auth_key.key
            )
        except ClientError:
            # Don't leave a live key behind that no secret references
            logger.error(f"Failed to store auth key {auth_key.id} in {secret_id}, revoking it")
            try:
                await client.delete_auth_key(auth_key.id)
            except (TailscaleAPIError, aiohttp.ClientError) as e:
                logger.error(f"Could not revoke auth key {auth_key.id}: {e}")
            raise

    logger.info(f"Stored auth key {auth_key.id} in {secret_id}")
    return {"PhysicalResourceId": auth_key.id, "Data": {"KeyId": auth_key.id}}


async def _revoke_key(key_id: str) -> None:
    async with open_client() as client:
        try:
            await client.delete_auth_key(key_id)
        except TailscaleAPIError as e:
            if e.status != 404:
                raise
            logger.info(f"Auth key {key_id} already revoked")


def on_event(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Provider framework entry point."""
    configure_logging()
    request_type = event["RequestType"]
    logger.info(f"{request_type} auth key for {event.get('LogicalResourceId')}")

    if request_type in ("Create", "Update"):
        return asyncio.run(_issue_key(event["ResourceProperties"]))

    if request_type == "Delete":
        key_id = event["PhysicalResourceId"]
        asyncio.run(_revoke_key(key_id))
        return {"PhysicalResourceId": key_id}

    raise ValueError(f"Unknown request type: {request_type}")
