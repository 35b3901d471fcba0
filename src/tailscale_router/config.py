"""Configuration management for the Tailscale subnet router."""

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path

DEFAULT_CONFIG_PATH = "config/subnet_router.toml"


@dataclass(frozen=True)
class NetworkContext:
    """The VPC the router is deployed into.

    Attributes:
        vpc_id: VPC identifier (e.g. "vpc-0abc123")
        cidr_block: CIDR block of the VPC, advertised to the tailnet
        subnet_ids: Subnets for the router task and the EFS mount targets
        security_group_ids: Security groups for the router task and mount targets
    """

    vpc_id: str
    cidr_block: str
    subnet_ids: tuple[str, ...]
    security_group_ids: tuple[str, ...] = ()

    @property
    def unique_subnet_ids(self) -> list[str]:
        """Subnet ids without duplicates, in their original order."""
        return list(dict.fromkeys(self.subnet_ids))


@dataclass
class RouterConfig:
    """Optional pre-existing resources and build settings.

    Attributes:
        stack_name: CloudFormation stack name
        cluster_name: Existing ECS cluster name (None = create one)
        auth_key_secret: Name or ARN of an existing auth key secret (None = issue a new key)
        image: Pre-built Tailscale image reference (None = build docker/tailscale.Dockerfile)
        build_context: Docker build context directory
        dockerfile: Dockerfile name inside the build context
    """

    stack_name: str = "TailscaleSubnetRouter"
    cluster_name: str | None = None
    auth_key_secret: str | None = None
    image: str | None = None
    build_context: str = "docker"
    dockerfile: str = "tailscale.Dockerfile"


@dataclass
class TailscaleConfig:
    """Tailscale control plane configuration.

    Attributes:
        tailnet: Tailnet name for API calls ("-" = tailnet of the API key)
        tailnet_domain: MagicDNS domain used to find the router device
        api_key_secret: Secrets Manager secret holding the Tailscale API access token
        tags: ACL tags applied to issued auth keys
        device_wait_minutes: How long to wait for the router to join the tailnet
    """

    tailnet: str = "-"
    tailnet_domain: str = "tailc9b40.ts.net"
    api_key_secret: str = "tailscale/api-key"
    tags: list[str] = field(default_factory=list)
    device_wait_minutes: int = 5


@dataclass
class AWSConfig:
    """Deployment environment.

    Attributes:
        account: AWS account id (None = environment-agnostic stack)
        region: AWS region
    """

    account: str | None = None
    region: str = "us-east-1"


@dataclass
class LoggingConfig:
    """Logging configuration.

    Attributes:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log message format string
        file: Optional log file path
    """

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None


@dataclass
class PreflightConfig:
    """Synth-time lookups of the pre-existing resources named in the config.

    Attributes:
        enabled: Whether to check that the named secret and cluster exist
    """

    enabled: bool = False


@dataclass
class Config:
    """Main application configuration.

    Attributes:
        network: VPC to deploy into
        router: Optional pre-existing resources and build settings
        tailscale: Tailscale control plane configuration
        aws: Deployment environment
        logging: Logging configuration
        preflight: Synth-time lookup configuration
    """

    network: NetworkContext
    router: RouterConfig
    tailscale: TailscaleConfig
    aws: AWSConfig
    logging: LoggingConfig
    preflight: PreflightConfig


def _split_ids(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _is_truthy(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _check_keys(cls, section: str, data: dict) -> None:
    unknown = sorted(set(data) - {f.name for f in fields(cls)})
    if unknown:
        raise ValueError(f"Unknown keys in [{section}]: {', '.join(unknown)}")


def _build_section(cls, section: str, data: dict):
    """Build a section dataclass, rejecting keys it does not define."""
    _check_keys(cls, section, data)
    return cls(**data)


def load_config(config_path: Path | str) -> Config:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Parsed configuration object

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        ValueError: If configuration is invalid

    Example:
        >>> config = load_config("config/subnet_router.toml")
        >>> print(config.network.vpc_id)
        'vpc-0abc123'
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    if "network" not in data:
        raise ValueError("Missing required section: network")

    # Parse network config
    network_data = data["network"]

    # Override with environment variables if set
    if os.getenv("VPC_ID"):
        network_data["vpc_id"] = os.getenv("VPC_ID")
    if os.getenv("VPC_CIDR_BLOCK"):
        network_data["cidr_block"] = os.getenv("VPC_CIDR_BLOCK")
    if os.getenv("SUBNET_IDS"):
        network_data["subnet_ids"] = _split_ids(os.getenv("SUBNET_IDS"))
    if os.getenv("SECURITY_GROUP_IDS"):
        network_data["security_group_ids"] = _split_ids(os.getenv("SECURITY_GROUP_IDS"))

    _check_keys(NetworkContext, "network", network_data)

    if not network_data.get("vpc_id"):
        raise ValueError("network.vpc_id is required")
    if not network_data.get("cidr_block"):
        raise ValueError("network.cidr_block is required")
    if not network_data.get("subnet_ids"):
        raise ValueError("At least one subnet must be configured")
    if not network_data.get("security_group_ids"):
        raise ValueError("At least one security group must be configured")

    network = NetworkContext(
        vpc_id=network_data["vpc_id"],
        cidr_block=network_data["cidr_block"],
        subnet_ids=tuple(network_data["subnet_ids"]),
        security_group_ids=tuple(network_data.get("security_group_ids", ())),
    )

    # Parse router config (optional)
    router_data = data.get("router", {})

    # Override with environment variables if set
    if os.getenv("TARGET_ECS_CLUSTER"):
        router_data["cluster_name"] = os.getenv("TARGET_ECS_CLUSTER")
    if os.getenv("TAILSCALE_AUTH_KEY_SECRET"):
        router_data["auth_key_secret"] = os.getenv("TAILSCALE_AUTH_KEY_SECRET")
    if os.getenv("TAILSCALE_IMAGE"):
        router_data["image"] = os.getenv("TAILSCALE_IMAGE")

    # Empty strings in TOML mean "not set"
    for key in ("cluster_name", "auth_key_secret", "image"):
        if router_data.get(key) == "":
            router_data[key] = None

    router_config = _build_section(RouterConfig, "router", router_data)

    # Parse tailscale config (optional)
    tailscale_data = data.get("tailscale", {})

    # Override with environment variables if set
    if os.getenv("TAILSCALE_TAILNET"):
        tailscale_data["tailnet"] = os.getenv("TAILSCALE_TAILNET")
    if os.getenv("TAILSCALE_TAILNET_DOMAIN"):
        tailscale_data["tailnet_domain"] = os.getenv("TAILSCALE_TAILNET_DOMAIN")
    if os.getenv("TAILSCALE_API_KEY_SECRET"):
        tailscale_data["api_key_secret"] = os.getenv("TAILSCALE_API_KEY_SECRET")

    tailscale_config = _build_section(TailscaleConfig, "tailscale", tailscale_data)

    if tailscale_config.device_wait_minutes < 1:
        raise ValueError("tailscale.device_wait_minutes must be at least 1")

    # Parse AWS config (optional)
    aws_data = data.get("aws", {})

    if os.getenv("CDK_DEFAULT_ACCOUNT"):
        aws_data["account"] = os.getenv("CDK_DEFAULT_ACCOUNT")
    if os.getenv("CDK_DEFAULT_REGION"):
        aws_data["region"] = os.getenv("CDK_DEFAULT_REGION")

    aws_config = _build_section(AWSConfig, "aws", aws_data)

    # Parse logging config (optional)
    logging_data = data.get("logging", {})

    if os.getenv("LOG_LEVEL"):
        logging_data["level"] = os.getenv("LOG_LEVEL")
    if os.getenv("LOG_FILE"):
        logging_data["file"] = os.getenv("LOG_FILE")

    logging_config = _build_section(LoggingConfig, "logging", logging_data)

    # Parse preflight config (optional)
    preflight_data = data.get("preflight", {})

    if os.getenv("PREFLIGHT_ENABLED"):
        preflight_data["enabled"] = _is_truthy(os.getenv("PREFLIGHT_ENABLED"))

    preflight_config = _build_section(PreflightConfig, "preflight", preflight_data)

    return Config(
        network=network,
        router=router_config,
        tailscale=tailscale_config,
        aws=aws_config,
        logging=logging_config,
        preflight=preflight_config,
    )
