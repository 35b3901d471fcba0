"""SubnetRouter construct: wires the router resources together in dependency order."""

import logging
from pathlib import Path

from aws_cdk import RemovalPolicy, Stack
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_logs as logs
from aws_cdk import aws_secretsmanager as secretsmanager
from constructs import Construct

from .auth_secret import ensure_auth_key_secret
from .config import NetworkContext, TailscaleConfig
from .ecs import create_ecs_service
from .efs import create_efs_file_system
from .iam import create_ecs_roles
from .image import ensure_docker_image
from .names import ResourceNames
from .routes import register_device_routes

logger = logging.getLogger(__name__)


class SubnetRouter(Construct):
    """Tailscale subnet router running as a Fargate task inside a VPC.

    Creates, in order: the auth key secret (or imports one), a log group, the
    task roles, an EFS file system for tailscaled state, the container image
    (or uses a given one), the ECS service, and finally registers the VPC
    CIDR as an advertised route once the router device has joined the tailnet.

    Example:
        >>> router = SubnetRouter(
        ...     stack,
        ...     "SubnetRouter",
        ...     network=NetworkContext("vpc-123", "10.0.0.0/16", ("subnet-a",), ("sg-1",)),
        ...     tailscale=TailscaleConfig(),
        ... )
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        network: NetworkContext,
        tailscale: TailscaleConfig,
        cluster_name: str | None = None,
        auth_key_secret: str | None = None,
        image: str | None = None,
        build_context: Path | str = "docker",
        dockerfile: str = "tailscale.Dockerfile",
        log_level: str = "INFO",
    ) -> None:
        """Initialize the router.

        Args:
            scope: Parent construct
            construct_id: Construct id
            network: VPC, subnets and security groups to deploy into
            tailscale: Control plane settings
            cluster_name: Existing ECS cluster (None = create one)
            auth_key_secret: Existing auth key secret name or ARN (None = issue a key)
            image: Pre-built image reference (None = build one)
            build_context: Docker build context for the bundled image
            dockerfile: Dockerfile inside the build context
            log_level: LOG_LEVEL for the control plane handlers
        """
        super().__init__(scope, construct_id)

        self.network = network
        self.names = ResourceNames(network.vpc_id, tailscale.tailnet_domain)
        logger.info(f"Declaring subnet router {self.names.device} for {network.vpc_id}")

        self.vpc = ec2.Vpc.from_vpc_attributes(
            self,
            "Vpc",
            vpc_id=network.vpc_id,
            vpc_cidr_block=network.cidr_block,
            availability_zones=Stack.of(self).availability_zones,
        )

        self.api_key_secret = secretsmanager.Secret.from_secret_name_v2(
            self, "ApiKeySecret", tailscale.api_key_secret
        )

        self.auth_key = ensure_auth_key_secret(
            self,
            auth_key_secret,
            names=self.names,
            api_key_secret=self.api_key_secret,
            tailnet=tailscale.tailnet,
            tags=tailscale.tags,
            log_level=log_level,
        )

        self.log_group = logs.LogGroup(
            self,
            "LogGroup",
            log_group_name=self.names.log_group,
            retention=logs.RetentionDays.ONE_DAY,
            removal_policy=RemovalPolicy.DESTROY,
        )

        self.roles = create_ecs_roles(
            self,
            self.names,
            auth_key_secret=self.auth_key.secret,
            log_group_arn=self.log_group.log_group_arn,
        )

        self.storage = create_efs_file_system(
            self,
            self.names,
            subnet_ids=network.subnet_ids,
            security_group_ids=network.security_group_ids,
        )

        self.image = ensure_docker_image(self, image, build_context, dockerfile)

        self.service = create_ecs_service(
            self,
            self.names,
            network=network,
            vpc=self.vpc,
            roles=self.roles,
            storage=self.storage,
            image=self.image,
            auth_key=self.auth_key,
            log_group=self.log_group,
            cluster_name=cluster_name,
        )

        self.device_routes = register_device_routes(
            self,
            self.names,
            cidr_block=network.cidr_block,
            service=self.service.service,
            api_key_secret=self.api_key_secret,
            tailnet=tailscale.tailnet,
            wait_minutes=tailscale.device_wait_minutes,
            log_level=log_level,
        )
