"""Custom::TailscaleDeviceRoutes handler.

The router only appears in the tailnet once its container has started and
logged in, so Create and Update hand over to `is_complete`, which the
Provider framework polls until the device shows up or the wait window closes.
"""

import asyncio
import logging
import time
from typing import Any

from ..errors import ProvisioningTimeoutError
from . import configure_logging, open_client

logger = logging.getLogger(__name__)


async def _register_routes(hostname: str, routes: list[str]) -> str | None:
    """Enable routes on the device, returning its id or None if it is not there yet."""
    async with open_client() as client:
        device = await client.find_device(hostname)
        if device is None:
            return None
        await client.set_device_routes(device["id"], routes)
        return device["id"]


async def _clear_routes(hostname: str) -> None:
    async with open_client() as client:
        device = await client.find_device(hostname)
        if device is None:
            logger.info(f"Device {hostname} no longer exists, nothing to clear")
            return
        await client.set_device_routes(device["id"], [])


def on_event(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Provider framework entry point."""
    configure_logging()
    request_type = event["RequestType"]
    properties = event["ResourceProperties"]
    hostname = properties["Hostname"]
    logger.info(f"{request_type} routes for {hostname}")

    if request_type in ("Create", "Update"):
        deadline = time.time() + int(properties["WaitSeconds"])
        return {"PhysicalResourceId": hostname, "Data": {"WaitDeadline": str(deadline)}}

    if request_type == "Delete":
        asyncio.run(_clear_routes(event["PhysicalResourceId"]))
        return {"PhysicalResourceId": event["PhysicalResourceId"]}

    raise ValueError(f"Unknown request type: {request_type}")


def is_complete(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Provider framework completion check."""
    configure_logging()
    if event["RequestType"] == "Delete":
        return {"IsComplete": True}

    properties = event["ResourceProperties"]
    hostname = properties["Hostname"]
    routes = list(properties["Routes"])

    device_id = asyncio.run(_register_routes(hostname, routes))
    if device_id is None:
        deadline = float(event["Data"]["WaitDeadline"])
        if time.time() >= deadline:
            raise ProvisioningTimeoutError(
                f"Device {hostname} did not join the tailnet within "
                f"{properties['WaitSeconds']} seconds"
            )
        logger.info(f"Waiting for {hostname} to join the tailnet")
        return {"IsComplete": False}

    return {"IsComplete": True, "Data": {"DeviceId": device_id}}
