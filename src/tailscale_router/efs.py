"""EFS file system that keeps tailscaled state across task restarts."""

import logging
from dataclasses import dataclass, field

from aws_cdk import aws_efs as efs
from constructs import Construct

from .names import ACCESS_POINT_NAME, STATE_DIRECTORY, ResourceNames

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedStorage:
    """Handles to the router's shared storage.

    Attributes:
        file_system: The EFS file system
        access_point: Access point rooted at the state directory
        access_point_name: Display name of the access point (same for every VPC)
        mount_targets: One mount target per unique subnet
    """

    file_system: efs.CfnFileSystem
    access_point: efs.CfnAccessPoint
    access_point_name: str
    mount_targets: list[efs.CfnMountTarget] = field(default_factory=list)

    @property
    def file_system_id(self) -> str:
        return self.file_system.ref

    @property
    def access_point_id(self) -> str:
        return self.access_point.attr_access_point_id


def create_efs_file_system(
    scope: Construct,
    names: ResourceNames,
    subnet_ids: list[str] | tuple[str, ...],
    security_group_ids: list[str] | tuple[str, ...],
) -> SharedStorage:
    """Create the file system, its access point and one mount target per subnet.

    Duplicate subnet ids are collapsed, since a subnet can hold only one mount
    target per file system. Mount target construct ids are keyed on the subnet
    id, so an update never asks a subnet to hold an old and a new mount target
    at the same time.

    Args:
        scope: Parent construct
        names: Resource names for this VPC
        subnet_ids: Subnets to mount the file system in (may contain duplicates)
        security_group_ids: Security groups for every mount target

    Returns:
        Handles to the created storage
    """
    file_system = efs.CfnFileSystem(
        scope,
        "FileSystem",
        encrypted=True,
        lifecycle_policies=[
            efs.CfnFileSystem.LifecyclePolicyProperty(transition_to_ia="AFTER_30_DAYS"),
            efs.CfnFileSystem.LifecyclePolicyProperty(
                transition_to_primary_storage_class="AFTER_1_ACCESS"
            ),
        ],
        file_system_tags=[
            efs.CfnFileSystem.ElasticFileSystemTagProperty(key="Name", value=names.file_system),
        ],
    )

    access_point = efs.CfnAccessPoint(
        scope,
        "AccessPoint",
        file_system_id=file_system.ref,
        root_directory=efs.CfnAccessPoint.RootDirectoryProperty(
            path=STATE_DIRECTORY,
            # Lets EFS create the directory on first mount
            creation_info=efs.CfnAccessPoint.CreationInfoProperty(
                owner_uid="0",
                owner_gid="0",
                permissions="0755",
            ),
        ),
        access_point_tags=[
            efs.CfnAccessPoint.AccessPointTagProperty(key="Name", value=ACCESS_POINT_NAME),
        ],
    )

    unique_subnet_ids = list(dict.fromkeys(subnet_ids))
    if len(unique_subnet_ids) != len(subnet_ids):
        logger.info(
            f"Collapsed {len(subnet_ids)} subnet ids to {len(unique_subnet_ids)} mount targets"
        )

    mount_targets = [
        efs.CfnMountTarget(
            scope,
            f"MountTarget-{subnet_id}",
            file_system_id=file_system.ref,
            subnet_id=subnet_id,
            security_groups=list(security_group_ids),
        )
        for subnet_id in unique_subnet_ids
    ]

    return SharedStorage(
        file_system=file_system,
        access_point=access_point,
        access_point_name=ACCESS_POINT_NAME,
        mount_targets=mount_targets,
    )
