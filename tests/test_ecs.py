"""Tests for the router's ECS resources."""

from aws_cdk.assertions import Match

from tailscale_router.ecs import TASK_CPU, TASK_MEMORY_MIB


def _only(template, resource_type):
    resources = template.find_resources(resource_type)
    assert len(resources) == 1
    return next(iter(resources.items()))


def test_creates_cluster_when_none_given(synth_router):
    _, router, template = synth_router()

    assert router.service.cluster_created is True
    template.resource_count_is("AWS::ECS::Cluster", 1)
    template.has_resource_properties("AWS::ECS::Cluster", {"ClusterName": "tailscale-vpc-123"})


def test_uses_existing_cluster(synth_router):
    """Test that a named cluster is referenced and never created."""
    _, router, template = synth_router(cluster_name="shared")

    assert router.service.cluster_created is False
    template.resource_count_is("AWS::ECS::Cluster", 0)
    template.has_resource_properties("AWS::ECS::Service", {"Cluster": "shared"})


def test_task_definition(synth_router):
    _, _, template = synth_router()

    template.has_resource_properties(
        "AWS::ECS::TaskDefinition",
        {
            "Family": "vpc-123-tailscale",
            "Cpu": str(TASK_CPU),
            "Memory": str(TASK_MEMORY_MIB),
            "NetworkMode": "awsvpc",
            "RequiresCompatibilities": ["FARGATE"],
            "Volumes": [
                {
                    "Name": "var-lib-tailscale",
                    "EFSVolumeConfiguration": {
                        "FilesystemId": Match.any_value(),
                        "TransitEncryption": "ENABLED",
                        "AuthorizationConfig": {
                            "AccessPointId": Match.any_value(),
                            "IAM": "DISABLED",
                        },
                    },
                }
            ],
        },
    )


def test_container_definition(synth_router):
    """Test the tailscale container's settings."""
    _, _, template = synth_router()
    _, task_definition = _only(template, "AWS::ECS::TaskDefinition")

    containers = task_definition["Properties"]["ContainerDefinitions"]
    assert len(containers) == 1
    container = containers[0]

    assert container["Name"] == "tailscale"
    assert container["Essential"] is True
    assert container["Cpu"] == 256
    assert container["Memory"] == 512
    assert container["MemoryReservation"] == 512

    environment = {item["Name"]: item["Value"] for item in container["Environment"]}
    assert environment == {
        "TAILSCALE_HOSTNAME": "vpc-123-tailscale",
        "TAILSCALE_ADVERTISE_ROUTES": "10.0.0.0/16",
    }
    assert [secret["Name"] for secret in container["Secrets"]] == ["TAILSCALE_AUTH_KEY"]

    assert container["HealthCheck"] == {
        "Command": ["CMD", "tailscale", "status"],
        "Interval": 30,
        "Timeout": 5,
        "Retries": 3,
        "StartPeriod": 0,
    }
    assert container["LinuxParameters"]["InitProcessEnabled"] is True
    assert container["MountPoints"] == [
        {
            "ContainerPath": "/var/lib/tailscale",
            "SourceVolume": "var-lib-tailscale",
            "ReadOnly": False,
        }
    ]
    assert container["LogConfiguration"]["LogDriver"] == "awslogs"
    assert container["LogConfiguration"]["Options"]["awslogs-stream-prefix"] == "ecs"


def test_service_properties(synth_router):
    _, _, template = synth_router()

    template.has_resource_properties(
        "AWS::ECS::Service",
        {
            "ServiceName": "tailscale",
            "DesiredCount": 1,
            "LaunchType": "FARGATE",
            "EnableExecuteCommand": True,
            "DeploymentController": {"Type": "ECS"},
            "DeploymentConfiguration": {
                "MinimumHealthyPercent": 100,
                "DeploymentCircuitBreaker": {"Enable": False, "Rollback": False},
            },
            "NetworkConfiguration": {
                "AwsvpcConfiguration": {
                    "AssignPublicIp": "DISABLED",
                    "Subnets": ["subnet-a", "subnet-b"],
                    "SecurityGroups": ["sg-1"],
                }
            },
        },
    )


def test_service_waits_for_storage_and_key(synth_router):
    """Test that the service depends on every mount target and the issued key."""
    stack, router, template = synth_router()
    _, service = _only(template, "AWS::ECS::Service")

    depends_on = service["DependsOn"]
    for mount_target in router.storage.mount_targets:
        assert stack.get_logical_id(mount_target) in depends_on
    assert stack.get_logical_id(router.auth_key.ready.node.default_child) in depends_on


def test_existing_auth_key_adds_no_key_dependency(synth_router):
    _, router, template = synth_router(auth_key_secret="tailscale/shared")

    assert router.auth_key.ready is None
    template.resource_count_is("Custom::TailscaleAuthKey", 0)
