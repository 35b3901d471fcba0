"""Tests for synth-time preflight checks."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tailscale_router.config import (
    AWSConfig,
    Config,
    LoggingConfig,
    PreflightConfig,
    RouterConfig,
    TailscaleConfig,
)
from tailscale_router.errors import (
    ClusterNotFoundError,
    CredentialNotFoundError,
    PermissionDeniedError,
)
from tailscale_router.preflight import run_preflight, verify_cluster, verify_secret

SECRET_ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:tailscale/api-key-AbCdEf"
CLUSTER_ARN = "arn:aws:ecs:us-east-1:123456789012:cluster/shared"


def client_error(code, operation):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestVerifySecret:
    def test_returns_arn(self):
        client = MagicMock()
        client.describe_secret.return_value = {"ARN": SECRET_ARN}

        assert verify_secret(client, "tailscale/api-key") == SECRET_ARN
        client.describe_secret.assert_called_once_with(SecretId="tailscale/api-key")

    def test_missing_secret(self):
        client = MagicMock()
        client.describe_secret.side_effect = client_error(
            "ResourceNotFoundException", "DescribeSecret"
        )

        with pytest.raises(CredentialNotFoundError, match="tailscale/api-key"):
            verify_secret(client, "tailscale/api-key")

    def test_access_denied(self):
        client = MagicMock()
        client.describe_secret.side_effect = client_error("AccessDeniedException", "DescribeSecret")

        with pytest.raises(PermissionDeniedError):
            verify_secret(client, "tailscale/api-key")

    def test_other_errors_propagate(self):
        client = MagicMock()
        client.describe_secret.side_effect = client_error("ThrottlingException", "DescribeSecret")

        with pytest.raises(ClientError):
            verify_secret(client, "tailscale/api-key")


class TestVerifyCluster:
    def test_active_cluster(self):
        client = MagicMock()
        client.describe_clusters.return_value = {
            "clusters": [{"clusterArn": CLUSTER_ARN, "status": "ACTIVE"}]
        }

        assert verify_cluster(client, "shared") == CLUSTER_ARN

    def test_inactive_cluster(self):
        client = MagicMock()
        client.describe_clusters.return_value = {
            "clusters": [{"clusterArn": CLUSTER_ARN, "status": "INACTIVE"}]
        }

        with pytest.raises(ClusterNotFoundError, match="shared"):
            verify_cluster(client, "shared")

    def test_missing_cluster(self):
        client = MagicMock()
        client.describe_clusters.return_value = {
            "clusters": [],
            "failures": [{"arn": CLUSTER_ARN, "reason": "MISSING"}],
        }

        with pytest.raises(ClusterNotFoundError):
            verify_cluster(client, "shared")


def test_run_preflight_checks_named_resources(network):
    """Test that every pre-existing resource in the config is looked up."""
    config = Config(
        network=network,
        router=RouterConfig(cluster_name="shared", auth_key_secret="tailscale/shared"),
        tailscale=TailscaleConfig(),
        aws=AWSConfig(),
        logging=LoggingConfig(),
        preflight=PreflightConfig(enabled=True),
    )
    secrets = MagicMock()
    secrets.describe_secret.return_value = {"ARN": SECRET_ARN}
    ecs = MagicMock()
    ecs.describe_clusters.return_value = {
        "clusters": [{"clusterArn": CLUSTER_ARN, "status": "ACTIVE"}]
    }
    session = MagicMock()
    session.client.side_effect = lambda name: {"secretsmanager": secrets, "ecs": ecs}[name]

    run_preflight(config, session=session)

    checked = [call.kwargs["SecretId"] for call in secrets.describe_secret.call_args_list]
    assert checked == ["tailscale/api-key", "tailscale/shared"]
    ecs.describe_clusters.assert_called_once_with(clusters=["shared"])


def test_run_preflight_skips_unset_resources(network):
    config = Config(
        network=network,
        router=RouterConfig(),
        tailscale=TailscaleConfig(),
        aws=AWSConfig(),
        logging=LoggingConfig(),
        preflight=PreflightConfig(enabled=True),
    )
    secrets = MagicMock()
    secrets.describe_secret.return_value = {"ARN": SECRET_ARN}
    session = MagicMock()
    session.client.return_value = secrets

    run_preflight(config, session=session)

    secrets.describe_secret.assert_called_once_with(SecretId="tailscale/api-key")
    session.client.assert_called_once_with("secretsmanager")
