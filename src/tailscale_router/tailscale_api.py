"""Client for the Tailscale control plane API.

Covers the calls the subnet router needs: issuing and revoking auth keys,
finding the router device by its MagicDNS name, and setting the subnet routes
it advertises.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from .errors import TailscaleAPIError

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.tailscale.com/api/v2"


@dataclass(frozen=True)
class AuthKey:
    """An auth key issued by the control plane.

    Attributes:
        id: Key id, used to revoke the key
        key: Secret key value passed to `tailscale up --authkey`
        expires: Expiry timestamp (RFC 3339), if any
    """

    id: str
    key: str
    expires: str | None = None


def normalize_hostname(name: str) -> str:
    """Lowercase a MagicDNS name and drop any trailing dot."""
    return name.strip().rstrip(".").lower()


class TailscaleClient:
    """Thin async wrapper around the Tailscale v2 REST API.

    Example:
        >>> async with aiohttp.ClientSession() as session:
        ...     client = TailscaleClient(session, api_key)
        ...     device = await client.find_device("vpc-123-tailscale.tailc9b40.ts.net")
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: str,
        tailnet: str = "-",
        base_url: str = API_BASE_URL,
    ):
        """Initialize the client.

        Args:
            session: An aiohttp ClientSession for making HTTP requests
            api_key: Tailscale API access token
            tailnet: Tailnet name ("-" = the tailnet the token belongs to)
            base_url: API base URL
        """
        self._session = session
        self._api_key = api_key
        self.tailnet = tailnet
        self.base_url = base_url.rstrip("/")

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

    async def _request(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Send a request and decode the JSON body.

        Raises:
            TailscaleAPIError: If the API answers with a 4xx/5xx status
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        async with self._session.request(
            method, url, json=payload, headers=self._headers
        ) as response:
            body = await response.text()
            if response.status >= 400:
                try:
                    message = json.loads(body).get("message", body)
                except (ValueError, AttributeError):
                    message = body
                raise TailscaleAPIError(response.status, message)
            return json.loads(body) if body else {}

    async def create_auth_key(
        self,
        reusable: bool = True,
        preauthorized: bool = True,
        ephemeral: bool = False,
        tags: list[str] | None = None,
        description: str | None = None,
        expiry_seconds: int | None = None,
    ) -> AuthKey:
        """Issue a new auth key for device registration.

        Args:
            reusable: Whether the key can register more than one device
            preauthorized: Whether devices skip manual approval
            ephemeral: Whether devices are removed when they go offline
            tags: ACL tags applied to devices registered with the key
            description: Short description shown in the admin console
            expiry_seconds: Key lifetime (None = control plane default)

        Returns:
            The issued key
        """
        create: dict[str, Any] = {
            "reusable": reusable,
            "ephemeral": ephemeral,
            "preauthorized": preauthorized,
        }
        if tags:
            create["tags"] = tags

        payload: dict[str, Any] = {"capabilities": {"devices": {"create": create}}}
        if description:
            payload["description"] = description
        if expiry_seconds is not None:
            payload["expirySeconds"] = expiry_seconds

        data = await self._request("POST", f"/tailnet/{self.tailnet}/keys", payload)
        logger.info(f"Issued auth key {data['id']}")
        return AuthKey(id=data["id"], key=data["key"], expires=data.get("expires"))

    async def delete_auth_key(self, key_id: str) -> None:
        """Revoke an auth key."""
        await self._request("DELETE", f"/tailnet/{self.tailnet}/keys/{key_id}")
        logger.info(f"Revoked auth key {key_id}")

    async def list_devices(self) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/tailnet/{self.tailnet}/devices")
        return data.get("devices", [])

    async def find_device(self, hostname: str) -> dict[str, Any] | None:
        """Find a device by its fully qualified MagicDNS name.

        Args:
            hostname: Name such as "vpc-123-tailscale.tailc9b40.ts.net"

        Returns:
            The device record, or None if no device has that name yet
        """
        wanted = normalize_hostname(hostname)
        for device in await self.list_devices():
            if normalize_hostname(device.get("name", "")) == wanted:
                return device
        return None

    async def set_device_routes(self, device_id: str, routes: list[str]) -> dict[str, Any]:
        """Set the subnet routes enabled for a device.

        Args:
            device_id: Device id as returned by the devices endpoint
            routes: CIDR blocks to enable (an empty list clears them)

        Returns:
            The advertised and enabled routes reported by the API
        """
        data = await self._request(
            "POST", f"/device/{device_id}/routes", {"routes": routes}
        )
        logger.info(f"Set routes {routes} on device {device_id}")
        return data
