#!/usr/bin/env python3
"""
Tailscale Subnet Router Infrastructure

AWS CDK app for running a Tailscale subnet router inside an existing VPC.
"""
import sys

from tailscale_router.app import main

if __name__ == "__main__":
    config_path = sys.argv[1] if len(sys.argv) > 1 else None
    main(config_path)
