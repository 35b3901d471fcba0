"""Errors raised while provisioning the subnet router.

Every failure aborts the steps that depend on it. Partial deployments are
reconciled by running the deployment again, so nothing here is retried.
"""


class SubnetRouterError(Exception):
    """Base class for subnet router failures."""


class CredentialNotFoundError(SubnetRouterError):
    """The auth key secret named by the caller does not exist."""


class ClusterNotFoundError(SubnetRouterError):
    """The existing ECS cluster named by the caller does not exist."""


class DeviceNotFoundError(SubnetRouterError):
    """No tailnet device carries the expected hostname."""


class PermissionDeniedError(SubnetRouterError):
    """AWS refused a lookup or write because of missing permissions."""


class ProvisioningTimeoutError(DeviceNotFoundError):
    """The router device did not join the tailnet within the wait window."""


class ImageBuildError(SubnetRouterError):
    """The container image cannot be built from the configured context."""


class AuthKeyIssueError(SubnetRouterError):
    """The control plane did not issue an auth key."""


class TailscaleAPIError(SubnetRouterError):
    """The Tailscale API answered with an error status.

    Attributes:
        status: HTTP status code of the response
        message: Error message returned by the API, if any
    """

    def __init__(self, status: int, message: str):
        super().__init__(f"Tailscale API error {status}: {message}")
        self.status = status
        self.message = message
