"""Tailscale subnet router for AWS.

Runs a Tailscale node as a Fargate task inside a VPC and advertises the VPC
CIDR to the tailnet.

The package root stays free of CDK imports: the custom-resource handlers are
bundled from this package into Lambda, where only aiohttp and boto3 exist.
"""

__version__ = "0.1.0"
