"""Container image for the router."""

import logging
from dataclasses import dataclass
from pathlib import Path

from aws_cdk import aws_ecr_assets as ecr_assets
from aws_cdk import aws_ecs as ecs
from constructs import Construct

from .errors import ImageBuildError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedImage:
    """Image the router task runs.

    Attributes:
        image: Image for the container definition
        uri: Pull reference of the image
        asset: The build asset, if this deployment builds the image
    """

    image: ecs.ContainerImage
    uri: str
    asset: ecr_assets.DockerImageAsset | None = None

    @property
    def built(self) -> bool:
        return self.asset is not None


def build_docker_image(
    scope: Construct, build_context: Path | str, dockerfile: str
) -> ResolvedImage:
    """Build the bundled Tailscale image and publish it to the asset repository.

    Raises:
        ImageBuildError: If the build context or Dockerfile is missing
    """
    context = Path(build_context)
    if not context.is_dir():
        raise ImageBuildError(f"Build context not found: {context}")
    if not (context / dockerfile).is_file():
        raise ImageBuildError(f"Dockerfile not found: {context / dockerfile}")

    logger.info(f"Building Tailscale image from {context / dockerfile}")
    asset = ecr_assets.DockerImageAsset(
        scope,
        "Image",
        directory=str(context),
        file=dockerfile,
        platform=ecr_assets.Platform.LINUX_AMD64,
        # BuildKit writes cache metadata into the image for later builds
        build_args={"BUILDKIT_INLINE_CACHE": "1"},
    )
    return ResolvedImage(
        image=ecs.ContainerImage.from_docker_image_asset(asset),
        uri=asset.image_uri,
        asset=asset,
    )


def ensure_docker_image(
    scope: Construct,
    image: str | None,
    build_context: Path | str = "docker",
    dockerfile: str = "tailscale.Dockerfile",
) -> ResolvedImage:
    """Use the given image reference, or build one if none is given.

    Args:
        scope: Parent construct
        image: Pre-built image reference (e.g. "tailscale/tailscale:stable")
        build_context: Docker build context directory
        dockerfile: Dockerfile name inside the build context

    Returns:
        The image for the router container
    """
    if image:
        logger.info(f"Using pre-built image {image}")
        return ResolvedImage(image=ecs.ContainerImage.from_registry(image), uri=image)
    return build_docker_image(scope, build_context, dockerfile)
