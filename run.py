#!/usr/bin/env python3
"""
Core Lending Entry Point

Starts the FastAPI server for repayment plans, payments and due amounts.
"""

import sys

from core_lending.api import run_server
from core_lending.config import get_config
from core_lending.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    setup_logging(level=config.log_level, fmt=config.log_format)

    print("Starting Core Lending...")
    print(f"Storage: {config.database_url}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(host=config.api_host, port=config.api_port, debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Core Lending...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
