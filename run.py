#!/usr/bin/env python3
"""
Accounting Service Entry Point

Starts the FastAPI server with host and port taken from the configuration.
"""

import sys

from accounting.api import run_server
from accounting.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Accounting Service...")
    print(f"API available at: http://{config.api_host}:{config.api_port}")
    print(f"Documentation at: http://{config.api_host}:{config.api_port}/docs")
    if not config.security_validator_url:
        print("Security validator not configured, accounts wait for an explicit verdict")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Accounting Service...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
