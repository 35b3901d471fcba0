"""Synth-time checks that the pre-existing resources named in the config exist.

CloudFormation only notices a missing secret or cluster halfway through a
deployment. These lookups fail before anything is deployed.
"""

import logging

import boto3
from botocore.exceptions import ClientError

from .config import Config
from .errors import ClusterNotFoundError, CredentialNotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

ACCESS_DENIED_CODES = ("AccessDeniedException", "AccessDenied", "UnauthorizedOperation")


def verify_secret(client, secret_id: str) -> str:
    """Check that a secret exists.

    Args:
        client: boto3 Secrets Manager client
        secret_id: Secret name or ARN

    Returns:
        The secret's full ARN

    Raises:
        CredentialNotFoundError: If no such secret exists
        PermissionDeniedError: If the caller may not describe the secret
    """
    try:
        response = client.describe_secret(SecretId=secret_id)
    except ClientError as e:
        code = e.response["Error"]["Code"]
        if code == "ResourceNotFoundException":
            raise CredentialNotFoundError(f"Secret not found: {secret_id}") from e
        if code in ACCESS_DENIED_CODES:
            raise PermissionDeniedError(f"Not allowed to describe secret {secret_id}") from e
        raise
    logger.info(f"Found secret {response['ARN']}")
    return response["ARN"]


def verify_cluster(client, cluster_name: str) -> str:
    """Check that an ECS cluster exists and is active.

    Args:
        client: boto3 ECS client
        cluster_name: Cluster name

    Returns:
        The cluster ARN

    Raises:
        ClusterNotFoundError: If the cluster is missing or inactive
        PermissionDeniedError: If the caller may not describe clusters
    """
    try:
        response = client.describe_clusters(clusters=[cluster_name])
    except ClientError as e:
        if e.response["Error"]["Code"] in ACCESS_DENIED_CODES:
            raise PermissionDeniedError(f"Not allowed to describe cluster {cluster_name}") from e
        raise

    for cluster in response.get("clusters", []):
        if cluster.get("status") == "ACTIVE":
            logger.info(f"Found cluster {cluster['clusterArn']}")
            return cluster["clusterArn"]

    raise ClusterNotFoundError(f"ECS cluster not found or inactive: {cluster_name}")


def run_preflight(config: Config, session: boto3.session.Session | None = None) -> None:
    """Look up every pre-existing resource the config refers to.

    Args:
        config: Loaded configuration
        session: boto3 session (default: one for the configured region)
    """
    session = session or boto3.session.Session(region_name=config.aws.region)

    secrets_client = session.client("secretsmanager")
    verify_secret(secrets_client, config.tailscale.api_key_secret)
    if config.router.auth_key_secret:
        verify_secret(secrets_client, config.router.auth_key_secret)

    if config.router.cluster_name:
        verify_cluster(session.client("ecs"), config.router.cluster_name)

    logger.info("Preflight checks passed")
