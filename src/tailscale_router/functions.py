"""Lambda functions backing the Tailscale custom resources."""

from pathlib import Path

from aws_cdk import BundlingOptions, Duration
from aws_cdk import aws_lambda as lambda_
from aws_cdk import aws_secretsmanager as secretsmanager
from constructs import Construct

PACKAGE_ROOT = Path(__file__).resolve().parent
RUNTIME = lambda_.Runtime.PYTHON_3_12


def handler_code() -> lambda_.Code:
    """Package this library plus aiohttp for Lambda.

    The bundle keeps the tailscale_router package layout so handlers are
    addressed as tailscale_router.handlers.<module>.<function>.
    """
    return lambda_.Code.from_asset(
        str(PACKAGE_ROOT),
        exclude=["**/__pycache__"],
        bundling=BundlingOptions(
            image=RUNTIME.bundling_image,
            command=[
                "bash",
                "-c",
                "pip install --no-cache-dir -r handlers/requirements.txt -t /asset-output "
                "&& mkdir -p /asset-output/tailscale_router "
                "&& cp -r . /asset-output/tailscale_router/",
            ],
        ),
    )


def create_tailscale_function(
    scope: Construct,
    construct_id: str,
    handler: str,
    api_key_secret: secretsmanager.ISecret,
    tailnet: str,
    log_level: str = "INFO",
    timeout: Duration | None = None,
) -> lambda_.Function:
    """Create a function that calls the Tailscale API.

    Args:
        scope: Parent construct
        construct_id: Construct id of the function
        handler: Handler path relative to tailscale_router.handlers (e.g. "auth_key.on_event")
        api_key_secret: Secret holding the Tailscale API access token
        tailnet: Tailnet name passed to the API
        log_level: LOG_LEVEL for the handler
        timeout: Function timeout (default one minute)

    Returns:
        The function, already allowed to read the API key secret
    """
    function = lambda_.Function(
        scope,
        construct_id,
        runtime=RUNTIME,
        handler=f"tailscale_router.handlers.{handler}",
        code=handler_code(),
        timeout=timeout or Duration.minutes(1),
        environment={
            "TAILSCALE_API_KEY_SECRET": api_key_secret.secret_name,
            "TAILSCALE_TAILNET": tailnet,
            "LOG_LEVEL": log_level,
        },
    )
    api_key_secret.grant_read(function)
    return function
