"""Pytest configuration and fixtures for subnet router tests."""

import tempfile
from pathlib import Path

import pytest
from aws_cdk import App, Stack
from aws_cdk.assertions import Template

from tailscale_router.config import NetworkContext, TailscaleConfig
from tailscale_router.names import ResourceNames
from tailscale_router.router import SubnetRouter

OVERRIDE_VARIABLES = (
    "VPC_ID",
    "VPC_CIDR_BLOCK",
    "SUBNET_IDS",
    "SECURITY_GROUP_IDS",
    "TARGET_ECS_CLUSTER",
    "TAILSCALE_AUTH_KEY_SECRET",
    "TAILSCALE_IMAGE",
    "TAILSCALE_TAILNET",
    "TAILSCALE_TAILNET_DOMAIN",
    "TAILSCALE_API_KEY_SECRET",
    "CDK_DEFAULT_ACCOUNT",
    "CDK_DEFAULT_REGION",
    "LOG_LEVEL",
    "LOG_FILE",
    "PREFLIGHT_ENABLED",
    "SUBNET_ROUTER_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep config overrides from the developer's shell out of the tests."""
    for name in OVERRIDE_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config_path(temp_dir):
    """Create a temporary config file path."""
    return temp_dir / "test_config.toml"


@pytest.fixture
def build_context(temp_dir):
    """Create a minimal Docker build context."""
    context = temp_dir / "docker"
    context.mkdir()
    (context / "tailscale.Dockerfile").write_text("FROM tailscale/tailscale:stable\n")
    return context


@pytest.fixture
def network():
    """The VPC used throughout the tests, with a duplicated subnet id."""
    return NetworkContext(
        vpc_id="vpc-123",
        cidr_block="10.0.0.0/16",
        subnet_ids=("subnet-a", "subnet-a", "subnet-b"),
        security_group_ids=("sg-1",),
    )


@pytest.fixture
def names():
    return ResourceNames("vpc-123", "tailc9b40.ts.net")


def make_app() -> App:
    """App that skips Lambda bundling, so no Docker daemon is needed."""
    return App(context={"aws:cdk:bundling-stacks": []})


@pytest.fixture
def app():
    return make_app()


@pytest.fixture
def stack():
    """An empty stack to declare resources in."""
    return Stack(make_app(), "TestStack")


@pytest.fixture
def synth_router(network, build_context):
    """Build a SubnetRouter in a fresh stack and synthesize it.

    Keyword arguments override the SubnetRouter defaults used here.
    """

    def _synth(**overrides):
        stack = Stack(make_app(), "RouterStack")
        options = {
            "network": network,
            "tailscale": TailscaleConfig(),
            "build_context": build_context,
        }
        options.update(overrides)
        router = SubnetRouter(stack, "SubnetRouter", **options)
        return stack, router, Template.from_stack(stack)

    return _synth
