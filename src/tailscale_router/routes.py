"""Advertise the VPC CIDR from the router's tailnet device."""

import logging
from dataclasses import dataclass

from aws_cdk import CustomResource, Duration
from aws_cdk import aws_ecs as ecs
from aws_cdk import aws_secretsmanager as secretsmanager
from aws_cdk import custom_resources as cr
from constructs import Construct

from .functions import create_tailscale_function
from .names import ResourceNames

logger = logging.getLogger(__name__)

POLL_INTERVAL = Duration.seconds(15)


@dataclass(frozen=True)
class DeviceRouteRegistration:
    """Subnet routes registered on the router device.

    Attributes:
        hostname: MagicDNS name the device is looked up by
        routes: CIDR blocks advertised by the device
        resource: The custom resource doing the registration
    """

    hostname: str
    routes: list[str]
    resource: CustomResource


def register_device_routes(
    scope: Construct,
    names: ResourceNames,
    cidr_block: str,
    service: ecs.FargateService,
    api_key_secret: secretsmanager.ISecret,
    tailnet: str,
    wait_minutes: int = 5,
    log_level: str = "INFO",
) -> DeviceRouteRegistration:
    """Enable the VPC CIDR as a subnet route on the router device.

    The device only exists after the service has started the container, so
    the registration takes the service name as input and waits for the
    device for at most `wait_minutes`.

    Args:
        scope: Parent construct
        names: Resource names for this VPC
        cidr_block: Route to advertise
        service: The router service
        api_key_secret: Secret holding the Tailscale API token
        tailnet: Tailnet name for API calls
        wait_minutes: How long to wait for the device to appear
        log_level: LOG_LEVEL for the handlers

    Returns:
        The registration
    """
    on_event = create_tailscale_function(
        scope,
        "DeviceRoutesFunction",
        "device_routes.on_event",
        api_key_secret,
        tailnet,
        log_level,
    )
    is_complete = create_tailscale_function(
        scope,
        "DeviceRoutesCompleteFunction",
        "device_routes.is_complete",
        api_key_secret,
        tailnet,
        log_level,
    )

    provider = cr.Provider(
        scope,
        "DeviceRoutesProvider",
        on_event_handler=on_event,
        is_complete_handler=is_complete,
        query_interval=POLL_INTERVAL,
        # The handler enforces the wait window; this is the hard stop behind it
        total_timeout=Duration.minutes(wait_minutes + 1),
    )

    routes = [cidr_block]
    logger.info(f"Registering routes {routes} on {names.device_fqdn}")
    resource = CustomResource(
        scope,
        "DeviceRoutes",
        service_token=provider.service_token,
        resource_type="Custom::TailscaleDeviceRoutes",
        properties={
            "Hostname": names.device_fqdn,
            "Routes": routes,
            "WaitSeconds": wait_minutes * 60,
            "ServiceName": service.service_name,
        },
    )
    resource.node.add_dependency(service)

    return DeviceRouteRegistration(
        hostname=names.device_fqdn, routes=routes, resource=resource
    )
