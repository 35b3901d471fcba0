"""
Tailscale Subnet Router CDK Stack

Creates:
- Secrets Manager secret with a Tailscale auth key (unless one is supplied)
- IAM roles scoped to that secret and the router's log group
- EFS file system for tailscaled state, with one mount target per subnet
- ECS cluster (unless one is supplied), task definition and Fargate service
- Subnet route registration for the VPC CIDR on the router device
"""
from pathlib import Path

from aws_cdk import CfnOutput, Stack
from constructs import Construct

from .config import Config
from .router import SubnetRouter


class SubnetRouterStack(Stack):
    """CDK Stack for the Tailscale subnet router."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: Config,
        build_root: Path | str = ".",
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        router_config = config.router

        self.router = SubnetRouter(
            self,
            "SubnetRouter",
            network=config.network,
            tailscale=config.tailscale,
            cluster_name=router_config.cluster_name,
            auth_key_secret=router_config.auth_key_secret,
            image=router_config.image,
            build_context=Path(build_root) / router_config.build_context,
            dockerfile=router_config.dockerfile,
            log_level=config.logging.level,
        )

        # Outputs
        CfnOutput(
            self,
            "ClusterName",
            value=self.router.service.cluster.cluster_name,
            description="ECS cluster running the subnet router",
        )

        CfnOutput(
            self,
            "ServiceName",
            value=self.router.service.service.service_name,
            description="ECS service running the subnet router",
        )

        CfnOutput(
            self,
            "DeviceHostname",
            value=self.router.device_routes.hostname,
            description="MagicDNS name of the router device",
        )

        CfnOutput(
            self,
            "FileSystemId",
            value=self.router.storage.file_system_id,
            description="EFS file system holding tailscaled state",
        )

        CfnOutput(
            self,
            "AuthKeySecretArn",
            value=self.router.auth_key.secret.secret_arn,
            description="Secret holding the router's Tailscale auth key",
        )

        CfnOutput(
            self,
            "LogGroupName",
            value=self.router.log_group.log_group_name,
            description="CloudWatch log group for router output",
        )
