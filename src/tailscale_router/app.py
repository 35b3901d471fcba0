"""CDK application entry point for the Tailscale subnet router."""

import logging
import os
import sys
from pathlib import Path

from aws_cdk import App, Environment
from dotenv import load_dotenv

from .config import DEFAULT_CONFIG_PATH, Config, LoggingConfig, load_config
from .errors import SubnetRouterError
from .preflight import run_preflight
from .stack import SubnetRouterStack

logger = logging.getLogger(__name__)


def setup_logging(log_config: LoggingConfig) -> None:
    """Configure logging based on config."""
    logging.basicConfig(
        level=getattr(logging, log_config.level.upper()),
        format=log_config.format,
        stream=sys.stderr,
    )

    # Add file handler if specified
    if log_config.file:
        file_handler = logging.FileHandler(log_config.file)
        file_handler.setFormatter(logging.Formatter(log_config.format))
        logging.getLogger().addHandler(file_handler)
        logger.info(f"Logging to file: {log_config.file}")


def build_app(config: Config, app: App | None = None, build_root: Path | str = ".") -> tuple[App, SubnetRouterStack]:
    """Create the CDK app and the router stack.

    Args:
        config: Loaded configuration
        app: Existing App to add the stack to (default: a new one)
        build_root: Directory the image build context is relative to

    Returns:
        The app and the stack
    """
    app = app or App()

    env = (
        Environment(account=config.aws.account, region=config.aws.region)
        if config.aws.account
        else None
    )

    stack = SubnetRouterStack(
        app,
        config.router.stack_name,
        config=config,
        build_root=build_root,
        env=env,
        description=f"Tailscale subnet router for {config.network.vpc_id}",
    )
    return app, stack


def resolve_config_path(app: App, config_path: str | None = None) -> str:
    """Pick the config file: argument, then CDK context, then env, then default."""
    return (
        config_path
        or app.node.try_get_context("config")
        or os.getenv("SUBNET_ROUTER_CONFIG")
        or DEFAULT_CONFIG_PATH
    )


def main(config_path: str | None = None) -> None:
    """Main entry point.

    Args:
        config_path: Optional path to config file (default: config/subnet_router.toml)
    """
    # Load environment variables from .env file if it exists
    load_dotenv()

    app = App()
    config_path = resolve_config_path(app, config_path)

    try:
        config = load_config(config_path)
        setup_logging(config.logging)

        if config.preflight.enabled:
            logger.info("Running preflight checks...")
            run_preflight(config)

        build_app(config, app)
        app.synth()
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print(
            "Please create a configuration file. "
            "See config/subnet_router.example.toml for an example.",
            file=sys.stderr,
        )
        sys.exit(1)
    except (SubnetRouterError, ValueError) as e:
        logger.error(f"Cannot synthesize subnet router: {e}")
        sys.exit(1)
