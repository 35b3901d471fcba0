"""End-to-end tests for the SubnetRouter construct."""

import json

import pytest
from aws_cdk import aws_ecr_assets as ecr_assets

from tailscale_router.config import TailscaleConfig


def test_full_deployment_for_vpc(synth_router):
    """Test the resources declared for vpc-123 with nothing pre-existing."""
    stack, router, template = synth_router()

    assert router.names.device == "vpc-123-tailscale"

    template.resource_count_is("AWS::SecretsManager::Secret", 1)
    template.resource_count_is("Custom::TailscaleAuthKey", 1)
    template.resource_count_is("AWS::ECS::Cluster", 1)
    template.resource_count_is("AWS::ECS::Service", 1)
    template.resource_count_is("AWS::EFS::FileSystem", 1)
    template.resource_count_is("AWS::EFS::AccessPoint", 1)
    template.resource_count_is("AWS::EFS::MountTarget", 2)
    template.resource_count_is("Custom::TailscaleDeviceRoutes", 1)

    template.has_resource_properties(
        "AWS::Logs::LogGroup",
        {"LogGroupName": "/ecs/vpc-123-tailscale", "RetentionInDays": 1},
    )
    template.has_resource(
        "AWS::Logs::LogGroup",
        {"DeletionPolicy": "Delete", "UpdateReplacePolicy": "Delete"},
    )

    assert router.image.built is True
    assert any(isinstance(c, ecr_assets.DockerImageAsset) for c in stack.node.find_all())


def test_deployment_with_existing_resources(synth_router):
    """Test that supplied cluster, secret and image are used, not created."""
    stack, router, template = synth_router(
        cluster_name="shared",
        auth_key_secret="tailscale/shared",
        image="tailscale/tailscale:stable",
    )

    template.resource_count_is("AWS::SecretsManager::Secret", 0)
    template.resource_count_is("Custom::TailscaleAuthKey", 0)
    template.resource_count_is("AWS::ECS::Cluster", 0)
    template.resource_count_is("AWS::ECS::Service", 1)

    assert router.image.built is False
    assert not any(isinstance(c, ecr_assets.DockerImageAsset) for c in stack.node.find_all())

    (task_definition,) = template.find_resources("AWS::ECS::TaskDefinition").values()
    container = task_definition["Properties"]["ContainerDefinitions"][0]
    assert container["Image"] == "tailscale/tailscale:stable"


def test_names_follow_tailnet_domain(synth_router):
    _, router, template = synth_router(tailscale=TailscaleConfig(tailnet_domain="tail9999.ts.net"))

    assert router.device_routes.hostname == "vpc-123-tailscale.tail9999.ts.net"
    template.has_resource_properties(
        "Custom::TailscaleDeviceRoutes", {"Hostname": "vpc-123-tailscale.tail9999.ts.net"}
    )


def _secrets_policy_resource(template):
    policies = template.find_resources(
        "AWS::IAM::ManagedPolicy",
        {"Properties": {"ManagedPolicyName": "ecs-task-secrets-vpc-123-tailscale"}},
    )
    (policy,) = policies.values()
    (statement,) = policy["Properties"]["PolicyDocument"]["Statement"]
    return json.dumps(statement["Resource"])


@pytest.mark.parametrize(
    "locator, expected",
    [
        ("tailscale/shared", ":secret:tailscale/shared-??????"),
        (
            "arn:aws:secretsmanager:us-east-1:123456789012:secret:tailscale/shared",
            "arn:aws:secretsmanager:us-east-1:123456789012:secret:tailscale/shared-??????",
        ),
        (
            "arn:aws:secretsmanager:us-east-1:123456789012:secret:tailscale/shared-AbCdEf",
            "arn:aws:secretsmanager:us-east-1:123456789012:secret:tailscale/shared-AbCdEf\"",
        ),
    ],
)
def test_secrets_policy_matches_existing_secret(synth_router, locator, expected):
    """Test that the execution role's policy covers the real secret ARN."""
    _, _, template = synth_router(auth_key_secret=locator)

    assert expected in _secrets_policy_resource(template)


def test_secrets_policy_references_created_secret(synth_router):
    stack, router, template = synth_router()
    secret_id = stack.get_logical_id(router.auth_key.secret.node.default_child)

    assert _secrets_policy_resource(template) == json.dumps({"Ref": secret_id})
