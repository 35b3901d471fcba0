"""Auth key secret for the router container.

The router either reuses a secret the caller already manages or gets a new
secret filled with a preauthorized, reusable key from the control plane.
"""

import logging
import re
from dataclasses import dataclass

from aws_cdk import CustomResource
from aws_cdk import aws_secretsmanager as secretsmanager
from aws_cdk import custom_resources as cr
from constructs import Construct

from .functions import create_tailscale_function
from .names import ResourceNames

logger = logging.getLogger(__name__)

SECRETS_ARN_PREFIX = "arn:aws:secretsmanager"

# Secrets Manager appends "-" plus six random characters to every secret ARN
COMPLETE_ARN_SUFFIX = re.compile(r"-[A-Za-z0-9]{6}$")


@dataclass(frozen=True)
class AuthKeySecret:
    """Reference to the secret holding the router's auth key.

    Attributes:
        secret: The secret; gives both its id and ARN
        created: True if this deployment created the secret
        ready: Resource that must finish before the secret holds a usable key
    """

    secret: secretsmanager.ISecret
    created: bool
    ready: Construct | None = None


def get_auth_key_secret(scope: Construct, locator: str) -> AuthKeySecret:
    """Import an existing secret by ARN or by name."""
    if locator.startswith(SECRETS_ARN_PREFIX) and COMPLETE_ARN_SUFFIX.search(locator):
        logger.info(f"Using auth key secret by ARN: {locator}")
        secret = secretsmanager.Secret.from_secret_complete_arn(scope, "AuthKeySecret", locator)
    elif locator.startswith(SECRETS_ARN_PREFIX):
        logger.info(f"Using auth key secret by partial ARN: {locator}")
        secret = secretsmanager.Secret.from_secret_partial_arn(scope, "AuthKeySecret", locator)
    else:
        logger.info(f"Using auth key secret by name: {locator}")
        secret = secretsmanager.Secret.from_secret_name_v2(scope, "AuthKeySecret", locator)
    return AuthKeySecret(secret=secret, created=False)


def create_auth_key_secret(
    scope: Construct,
    names: ResourceNames,
    api_key_secret: secretsmanager.ISecret,
    tailnet: str,
    tags: list[str] | None = None,
    log_level: str = "INFO",
) -> AuthKeySecret:
    """Create a secret and fill it with a freshly issued auth key."""
    logger.info(f"Creating auth key secret {names.auth_key_secret}")
    secret = secretsmanager.Secret(
        scope,
        "AuthKeySecret",
        secret_name=names.auth_key_secret,
        description=f"Tailscale auth key for the subnet router in {names.vpc_id}",
    )

    function = create_tailscale_function(
        scope,
        "AuthKeyFunction",
        "auth_key.on_event",
        api_key_secret,
        tailnet,
        log_level,
    )
    secret.grant_write(function)

    provider = cr.Provider(scope, "AuthKeyProvider", on_event_handler=function)

    auth_key = CustomResource(
        scope,
        "AuthKey",
        service_token=provider.service_token,
        resource_type="Custom::TailscaleAuthKey",
        properties={
            "SecretId": secret.secret_arn,
            "Reusable": True,
            "Preauthorized": True,
            "Tags": list(tags or []),
            "Description": f"subnet router {names.device}",
        },
    )
    return AuthKeySecret(secret=secret, created=True, ready=auth_key)


def ensure_auth_key_secret(
    scope: Construct,
    locator: str | None,
    names: ResourceNames,
    api_key_secret: secretsmanager.ISecret,
    tailnet: str,
    tags: list[str] | None = None,
    log_level: str = "INFO",
) -> AuthKeySecret:
    """Look up the auth key secret if one is named, otherwise create one.

    Args:
        scope: Parent construct
        locator: Secret name or ARN (None/empty = create a new secret and key)
        names: Resource names for this VPC
        api_key_secret: Secret holding the Tailscale API token
        tailnet: Tailnet name for the key request
        tags: ACL tags for the issued key
        log_level: LOG_LEVEL for the key handler

    Returns:
        Reference to the secret
    """
    if locator:
        return get_auth_key_secret(scope, locator)
    return create_auth_key_secret(scope, names, api_key_secret, tailnet, tags, log_level)
