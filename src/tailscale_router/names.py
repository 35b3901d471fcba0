"""Resource naming for a subnet router deployment.

All names derive from the VPC id plus fixed suffixes, so deploying twice
against the same VPC targets the same resources.
"""

from dataclasses import dataclass

# Path inside the container where tailscaled keeps its state
STATE_DIRECTORY = "/var/lib/tailscale"

# Shared by every deployment; access points are referenced by id downstream
ACCESS_POINT_NAME = "var-lib-tailscale"

CONTAINER_NAME = "tailscale"
SERVICE_NAME = "tailscale"
LOG_STREAM_PREFIX = "ecs"


@dataclass(frozen=True)
class ResourceNames:
    """Names of every resource created for one VPC.

    Attributes:
        vpc_id: VPC the router is deployed into
        tailnet_domain: MagicDNS domain of the tailnet (e.g. "tailc9b40.ts.net")
    """

    vpc_id: str
    tailnet_domain: str

    @property
    def device(self) -> str:
        """Hostname the router registers with in the tailnet."""
        return f"{self.vpc_id}-tailscale"

    @property
    def device_fqdn(self) -> str:
        return f"{self.device}.{self.tailnet_domain}"

    @property
    def log_group(self) -> str:
        return f"/ecs/{self.vpc_id}-tailscale"

    @property
    def cluster(self) -> str:
        return f"tailscale-{self.vpc_id}"

    @property
    def task_family(self) -> str:
        return f"{self.vpc_id}-tailscale"

    @property
    def file_system(self) -> str:
        return f"{self.vpc_id}-tailscale"

    @property
    def auth_key_secret(self) -> str:
        return f"tailscale/{self.vpc_id}/auth-key"

    @property
    def execution_role(self) -> str:
        return f"ecs-task-execution-{self.vpc_id}-tailscale"

    @property
    def task_role(self) -> str:
        return f"ecs-task-{self.vpc_id}-tailscale"

    @property
    def secrets_policy(self) -> str:
        return f"ecs-task-secrets-{self.vpc_id}-tailscale"

    @property
    def logs_policy(self) -> str:
        return f"ecs-task-logs-{self.vpc_id}-tailscale"
