"""ECS cluster, task definition and service for the router."""

import logging
from dataclasses import dataclass

from aws_cdk import Duration
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecs as ecs
from aws_cdk import aws_logs as logs
from constructs import Construct

from .auth_secret import AuthKeySecret
from .config import NetworkContext
from .efs import SharedStorage
from .iam import RolePair
from .image import ResolvedImage
from .names import (
    CONTAINER_NAME,
    LOG_STREAM_PREFIX,
    SERVICE_NAME,
    STATE_DIRECTORY,
    ResourceNames,
)

logger = logging.getLogger(__name__)

TASK_CPU = 256
TASK_MEMORY_MIB = 512


@dataclass(frozen=True)
class RouterService:
    """Handles to the running router.

    Attributes:
        cluster: Cluster the service runs in
        task_definition: Router task definition
        service: The Fargate service
        cluster_created: True if this deployment created the cluster
    """

    cluster: ecs.ICluster
    task_definition: ecs.FargateTaskDefinition
    service: ecs.FargateService
    cluster_created: bool


def ensure_cluster(
    scope: Construct,
    names: ResourceNames,
    vpc: ec2.IVpc,
    cluster_name: str | None = None,
) -> ecs.ICluster:
    """Reference an existing cluster by name, or create one for this VPC."""
    if cluster_name:
        logger.info(f"Using existing ECS cluster {cluster_name}")
        return ecs.Cluster.from_cluster_attributes(
            scope, "Cluster", cluster_name=cluster_name, vpc=vpc
        )
    logger.info(f"Creating ECS cluster {names.cluster}")
    return ecs.Cluster(scope, "Cluster", cluster_name=names.cluster, vpc=vpc)


def create_task_definition(
    scope: Construct,
    names: ResourceNames,
    network: NetworkContext,
    roles: RolePair,
    storage: SharedStorage,
    image: ResolvedImage,
    auth_key: AuthKeySecret,
    log_group: logs.ILogGroup,
) -> ecs.FargateTaskDefinition:
    """Single-container Fargate task running tailscaled."""
    task_definition = ecs.FargateTaskDefinition(
        scope,
        "TaskDefinition",
        family=names.task_family,
        cpu=TASK_CPU,
        memory_limit_mib=TASK_MEMORY_MIB,
        execution_role=roles.execution_role,
        task_role=roles.task_role,
        volumes=[
            ecs.Volume(
                name=storage.access_point_name,
                efs_volume_configuration=ecs.EfsVolumeConfiguration(
                    file_system_id=storage.file_system_id,
                    transit_encryption="ENABLED",
                    authorization_config=ecs.AuthorizationConfig(
                        access_point_id=storage.access_point_id,
                        iam="DISABLED",
                    ),
                ),
            ),
        ],
    )

    container = task_definition.add_container(
        CONTAINER_NAME,
        container_name=CONTAINER_NAME,
        image=image.image,
        essential=True,
        cpu=TASK_CPU,
        memory_limit_mib=TASK_MEMORY_MIB,
        memory_reservation_mib=TASK_MEMORY_MIB,
        environment={
            "TAILSCALE_HOSTNAME": names.device,
            "TAILSCALE_ADVERTISE_ROUTES": network.cidr_block,
        },
        secrets={
            "TAILSCALE_AUTH_KEY": ecs.Secret.from_secrets_manager(auth_key.secret),
        },
        health_check=ecs.HealthCheck(
            command=["CMD", "tailscale", "status"],
            interval=Duration.seconds(30),
            timeout=Duration.seconds(5),
            retries=3,
            start_period=Duration.seconds(0),
        ),
        linux_parameters=ecs.LinuxParameters(
            scope, "LinuxParameters", init_process_enabled=True
        ),
        logging=ecs.LogDrivers.aws_logs(
            log_group=log_group,
            stream_prefix=LOG_STREAM_PREFIX,
        ),
    )
    container.add_mount_points(
        ecs.MountPoint(
            container_path=STATE_DIRECTORY,
            source_volume=storage.access_point_name,
            read_only=False,
        )
    )
    return task_definition


def create_ecs_service(
    scope: Construct,
    names: ResourceNames,
    network: NetworkContext,
    vpc: ec2.IVpc,
    roles: RolePair,
    storage: SharedStorage,
    image: ResolvedImage,
    auth_key: AuthKeySecret,
    log_group: logs.ILogGroup,
    cluster_name: str | None = None,
) -> RouterService:
    """Run the router as a single private Fargate task.

    Args:
        scope: Parent construct
        names: Resource names for this VPC
        network: VPC, subnets and security groups for the task
        vpc: Imported VPC
        roles: Execution and task roles
        storage: EFS file system and access point for tailscaled state
        image: Router container image
        auth_key: Secret holding the auth key
        log_group: Log group for container output
        cluster_name: Existing cluster to run in (None = create one)

    Returns:
        Handles to the cluster, task definition and service
    """
    task_definition = create_task_definition(
        scope, names, network, roles, storage, image, auth_key, log_group
    )
    cluster = ensure_cluster(scope, names, vpc, cluster_name)

    subnets = [
        ec2.Subnet.from_subnet_id(scope, f"Subnet-{subnet_id}", subnet_id)
        for subnet_id in network.unique_subnet_ids
    ]
    security_groups = [
        ec2.SecurityGroup.from_security_group_id(
            scope, f"SecurityGroup-{group_id}", group_id, mutable=False
        )
        for group_id in dict.fromkeys(network.security_group_ids)
    ]

    service = ecs.FargateService(
        scope,
        "Service",
        service_name=SERVICE_NAME,
        cluster=cluster,
        task_definition=task_definition,
        desired_count=1,
        min_healthy_percent=100,
        enable_execute_command=True,
        deployment_controller=ecs.DeploymentController(
            type=ecs.DeploymentControllerType.ECS,
        ),
        # A failed deployment stays failed until an operator steps in
        circuit_breaker=ecs.DeploymentCircuitBreaker(enable=False, rollback=False),
        assign_public_ip=False,
        vpc_subnets=ec2.SubnetSelection(subnets=subnets),
        security_groups=security_groups,
    )

    # Tasks can't mount EFS or read the key before these exist
    service.node.add_dependency(*storage.mount_targets)
    if auth_key.ready is not None:
        service.node.add_dependency(auth_key.ready)

    return RouterService(
        cluster=cluster,
        task_definition=task_definition,
        service=service,
        cluster_created=not cluster_name,
    )
